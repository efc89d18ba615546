"""Pytest tests for the local Stockfish evaluator.

Tests mock Stockfish so they don't require the actual binary.
Covers: binary discovery, score perspective, mate handling, failure
markers, engine restarts and the terminal-position shortcut.
"""

from __future__ import annotations

import chess
import chess.engine
import pytest
from unittest.mock import MagicMock, patch

from game_review.engine import LocalEngine, _find_stockfish
from game_review.errors import EvaluationUnavailable
from game_review.evaluator import MATE_SCORE, cp_to_win_probability
from game_review.models import Evaluation, EvaluationFailure

_AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
_FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_mock_engine() -> MagicMock:
    """Create a mock SimpleEngine that passes basic checks."""
    eng = MagicMock(spec=chess.engine.SimpleEngine)
    eng.ping = MagicMock()
    eng.quit = MagicMock()
    return eng


def _info(score: chess.engine.Score, turn: chess.Color, pv=None, depth=12) -> dict:
    return {
        "score": chess.engine.PovScore(score, turn),
        "pv": pv or [],
        "depth": depth,
    }


@pytest.fixture
def mock_popen():
    """Patch popen_uci so LocalEngine can be constructed without Stockfish."""
    eng = _make_mock_engine()
    with patch("chess.engine.SimpleEngine.popen_uci", return_value=eng) as popen:
        yield popen, eng


# ---------------------------------------------------------------------------
# Binary discovery
# ---------------------------------------------------------------------------


class TestFindStockfish:

    def test_stockfish_not_found(self, monkeypatch):
        monkeypatch.delenv("STOCKFISH_PATH", raising=False)
        with patch("game_review.engine.Path.is_file", return_value=False), \
             patch("game_review.engine.shutil.which", return_value=None):
            with pytest.raises(FileNotFoundError, match="Stockfish not found"):
                _find_stockfish()

    def test_found_via_which(self, monkeypatch):
        monkeypatch.delenv("STOCKFISH_PATH", raising=False)
        with patch("game_review.engine.Path.is_file", return_value=False), \
             patch("game_review.engine.shutil.which", return_value="/snap/bin/stockfish"):
            assert _find_stockfish() == "/snap/bin/stockfish"

    def test_found_via_known_path(self, monkeypatch):
        monkeypatch.delenv("STOCKFISH_PATH", raising=False)
        with patch("game_review.engine.Path.is_file", return_value=True), \
             patch("game_review.engine.shutil.which", return_value=None):
            assert _find_stockfish() == "/opt/homebrew/bin/stockfish"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("STOCKFISH_PATH", "/custom/stockfish")
        with patch("game_review.engine.Path.is_file", return_value=True):
            assert _find_stockfish() == "/custom/stockfish"

    def test_explicit_path_skips_discovery(self, mock_popen):
        popen, _ = mock_popen
        with patch("game_review.engine._find_stockfish") as find:
            LocalEngine("/bin/sf")
        find.assert_not_called()
        popen.assert_called_once_with("/bin/sf")


# ---------------------------------------------------------------------------
# Single positions
# ---------------------------------------------------------------------------


class TestEvaluatePosition:

    def test_white_perspective(self, mock_popen):
        _, eng = mock_popen
        # Black to move and Black is 0.30 better
        eng.analyse.return_value = _info(
            chess.engine.Cp(30), chess.BLACK, pv=[chess.Move.from_uci("e7e5")],
        )
        engine = LocalEngine("/bin/sf", depth=12)
        ev = engine.evaluate_position(_AFTER_E4)
        assert ev.score == -30
        assert ev.win_probability == pytest.approx(cp_to_win_probability(-30), abs=0.01)
        assert ev.best_reply == "e5"
        assert ev.best_reply_uci == "e7e5"
        assert ev.depth == 12
        assert ev.fen == _AFTER_E4

    def test_depth_limit_passed(self, mock_popen):
        _, eng = mock_popen
        eng.analyse.return_value = _info(chess.engine.Cp(0), chess.WHITE)
        LocalEngine("/bin/sf", depth=9).evaluate_position(chess.STARTING_FEN)
        limit = eng.analyse.call_args.args[1]
        assert limit.depth == 9

    def test_mate_score(self, mock_popen):
        _, eng = mock_popen
        eng.analyse.return_value = _info(chess.engine.Mate(2), chess.WHITE)
        ev = LocalEngine("/bin/sf").evaluate_position(chess.STARTING_FEN)
        assert ev.mate == 2
        assert ev.win_probability == 100.0
        assert ev.score == MATE_SCORE - 2

    def test_checkmate_skips_engine(self, mock_popen):
        _, eng = mock_popen
        ev = LocalEngine("/bin/sf").evaluate_position(_FOOLS_MATE)
        assert ev.win_probability == 0.0
        eng.analyse.assert_not_called()

    def test_restart_after_termination(self, mock_popen):
        popen, eng = mock_popen
        eng.analyse.side_effect = [
            chess.engine.EngineTerminatedError("gone"),
            _info(chess.engine.Cp(15), chess.WHITE),
        ]
        ev = LocalEngine("/bin/sf").evaluate_position(chess.STARTING_FEN)
        assert ev.score == 15
        assert popen.call_count == 2


# ---------------------------------------------------------------------------
# Position lists
# ---------------------------------------------------------------------------


class TestEvaluatePositions:

    def test_failure_marker(self, mock_popen):
        _, eng = mock_popen
        eng.analyse.side_effect = [
            _info(chess.engine.Cp(20), chess.WHITE),
            chess.engine.EngineError("bad position"),
        ]
        results = LocalEngine("/bin/sf").evaluate_positions([chess.STARTING_FEN, _AFTER_E4])
        assert isinstance(results[0], Evaluation)
        assert isinstance(results[1], EvaluationFailure)

    def test_invalid_fen_marker(self, mock_popen):
        _, eng = mock_popen
        eng.analyse.return_value = _info(chess.engine.Cp(20), chess.WHITE)
        results = LocalEngine("/bin/sf").evaluate_positions([chess.STARTING_FEN, "garbage"])
        assert isinstance(results[1], EvaluationFailure)

    def test_all_failed(self, mock_popen):
        _, eng = mock_popen
        eng.analyse.side_effect = chess.engine.EngineError("broken")
        with pytest.raises(EvaluationUnavailable):
            LocalEngine("/bin/sf").evaluate_positions([chess.STARTING_FEN])

    def test_progress(self, mock_popen):
        _, eng = mock_popen
        eng.analyse.return_value = _info(chess.engine.Cp(0), chess.WHITE)
        seen = []
        LocalEngine("/bin/sf").evaluate_positions(
            [chess.STARTING_FEN, _AFTER_E4], on_progress=lambda d, t: seen.append((d, t)),
        )
        assert seen == [(1, 2), (2, 2)]

    def test_close(self, mock_popen):
        _, eng = mock_popen
        LocalEngine("/bin/sf").close()
        eng.quit.assert_called_once()
