"""Pytest tests for the position sequencer.

Covers: bare movetext and full PGN, ply metadata, canonical FENs for
castling and promotion, SetUp/FEN headers, and invalid records.
"""

from __future__ import annotations

import chess
import pytest

from game_review.errors import InvalidRecord
from game_review.sequencer import sequence_game

_AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"

_FULL_PGN = """\
[Event "Casual Game"]
[Site "?"]
[White "Alice"]
[Black "Bob"]
[Result "1-0"]

1. e4 e5 2. Bc4 Nc6 3. Qh5 Nf6 4. Qxf7# 1-0
"""


class TestBareMovetext:

    def test_one_move_pair(self):
        game = sequence_game("1. e4 e5")
        assert len(game.plies) == 2
        assert len(game.positions) == 3
        assert game.starting_fen == chess.STARTING_FEN
        assert game.positions[1] == _AFTER_E4

    def test_ply_metadata(self):
        game = sequence_game("1. e4 e5 2. Nf3")
        first, second, third = game.plies
        assert (first.index, first.move_number, first.side, first.notation) == (0, 1, "white", "e4")
        assert (second.index, second.move_number, second.side) == (1, 1, "black")
        assert (third.index, third.move_number, third.side, third.notation) == (2, 2, "white", "Nf3")
        assert third.uci == "g1f3"

    def test_positions_follow_plies(self):
        game = sequence_game("1. d4 d5 2. c4")
        assert game.positions[0] == game.starting_fen
        assert game.positions[1:] == [p.resulting_fen for p in game.plies]

    def test_uci_moves(self):
        game = sequence_game("1. e4 c5")
        assert game.uci_moves == ["e2e4", "c7c5"]


class TestFullPGN:

    def test_headers_kept(self):
        game = sequence_game(_FULL_PGN)
        assert game.headers["White"] == "Alice"
        assert len(game.plies) == 7

    def test_mate_notation(self):
        game = sequence_game(_FULL_PGN)
        assert game.plies[-1].notation == "Qxf7#"
        assert chess.Board(game.plies[-1].resulting_fen).is_checkmate()


class TestCanonicalPositions:

    def test_castling(self):
        game = sequence_game("1. e4 e5 2. Nf3 Nc6 3. Bc4 Bc5 4. O-O")
        castle = game.plies[-1]
        assert castle.notation == "O-O"
        assert castle.uci == "e1g1"
        board = chess.Board(castle.resulting_fen)
        assert board.piece_at(chess.G1) == chess.Piece(chess.KING, chess.WHITE)
        assert board.piece_at(chess.F1) == chess.Piece(chess.ROOK, chess.WHITE)

    def test_promotion(self):
        pgn = '[SetUp "1"]\n[FEN "8/P6k/8/8/8/8/8/K7 w - - 0 1"]\n\n1. a8=Q *'
        game = sequence_game(pgn)
        assert game.plies[0].notation == "a8=Q"
        assert game.plies[0].uci == "a7a8q"
        assert chess.Board(game.plies[0].resulting_fen).piece_at(chess.A8).symbol() == "Q"


class TestSetUpHeader:

    def test_black_to_move_start(self):
        fen = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
        pgn = f'[SetUp "1"]\n[FEN "{fen}"]\n\n1... e5 2. Nf3 *'
        game = sequence_game(pgn)
        assert game.starting_fen == fen
        assert game.plies[0].side == "black"
        assert game.plies[0].move_number == 1
        assert game.plies[1].side == "white"
        assert game.plies[1].move_number == 2


class TestInvalidRecord:

    @pytest.mark.parametrize("text", ["", "   \n  "])
    def test_empty(self, text):
        with pytest.raises(InvalidRecord):
            sequence_game(text)

    def test_no_moves(self):
        with pytest.raises(InvalidRecord, match="No moves"):
            sequence_game('[Event "Empty"]\n\n*')

    def test_illegal_move(self):
        with pytest.raises(InvalidRecord):
            sequence_game("1. e4 e5 2. Ke3")

    def test_not_chess(self):
        with pytest.raises(InvalidRecord):
            sequence_game("hello world")

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            sequence_game("")
