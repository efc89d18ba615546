"""Replay a game record into the ordered list of positions to evaluate.

Uses python-chess to parse PGN movetext and replay it move by move, so
castling, promotion and disambiguation always resolve to the same FEN the
evaluator will receive.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field

import chess
import chess.pgn

from game_review.errors import InvalidRecord
from game_review.models import BLACK, WHITE, PlyRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SequencedGame:
    """Starting position plus every ply of one game, in order."""

    starting_fen: str
    plies: list[PlyRecord]
    headers: dict = field(default_factory=dict)

    @property
    def positions(self) -> list[str]:
        """All FENs to evaluate: the start followed by one per ply."""
        return [self.starting_fen] + [p.resulting_fen for p in self.plies]

    @property
    def uci_moves(self) -> list[str]:
        return [p.uci for p in self.plies]


def sequence_game(movetext: str) -> SequencedGame:
    """Parse movetext and replay it into ply records.

    Accepts a full PGN (headers optional) or bare movetext such as
    ``"1. e4 e5 2. Nf3"``. Honours SetUp/FEN headers.

    Args:
        movetext: The game record.

    Returns:
        SequencedGame with len(positions) == len(plies) + 1.

    Raises:
        InvalidRecord: If the record cannot be parsed, contains an illegal
            move, or has no moves at all.
    """
    if not movetext or not movetext.strip():
        raise InvalidRecord("Empty game record")

    try:
        game = chess.pgn.read_game(io.StringIO(movetext))
    except (ValueError, KeyError) as exc:
        raise InvalidRecord(f"Could not parse game record: {exc}") from exc

    if game is None:
        raise InvalidRecord("No game found in record")
    if game.errors:
        raise InvalidRecord(f"Invalid game record: {game.errors[0]}")

    board = game.board()
    starting_fen = board.fen()
    plies: list[PlyRecord] = []

    for index, move in enumerate(game.mainline_moves()):
        if move not in board.legal_moves:
            raise InvalidRecord(f"Illegal move at ply {index + 1}: {move.uci()}")
        side = WHITE if board.turn == chess.WHITE else BLACK
        move_number = board.fullmove_number
        san = board.san(move)
        board.push(move)
        plies.append(PlyRecord(
            index=index,
            move_number=move_number,
            side=side,
            notation=san,
            uci=move.uci(),
            resulting_fen=board.fen(),
        ))

    if not plies:
        raise InvalidRecord("No moves found in game record")

    logger.debug("Sequenced %d plies from %s", len(plies), starting_fen)
    return SequencedGame(
        starting_fen=starting_fen,
        plies=plies,
        headers=dict(game.headers),
    )
