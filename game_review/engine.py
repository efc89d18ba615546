"""Local Stockfish evaluator.

Wraps a Stockfish binary via the python-chess UCI interface and offers the
same evaluate_positions() contract as the remote EvaluationClient, so a
game can be reviewed offline. Scores are converted to White's perspective
and to a win probability with the same curve the remote service uses.
"""

from __future__ import annotations

import logging
import os
import shutil
import threading
from pathlib import Path

import chess
import chess.engine

from game_review.config import DEFAULT_DEPTH
from game_review.errors import AnalysisCancelled, EvaluationUnavailable
from game_review.evaluator import (
    MATE_SCORE,
    EvaluationResult,
    ProgressCallback,
    cp_to_win_probability,
    terminal_evaluation,
)
from game_review.models import Evaluation, EvaluationFailure

logger = logging.getLogger(__name__)

# Stockfish search paths in priority order
_STOCKFISH_PATHS = [
    "/opt/homebrew/bin/stockfish",
    "/usr/local/bin/stockfish",
    "/usr/bin/stockfish",
    "/usr/games/stockfish",
]


def _find_stockfish() -> str:
    """Auto-detect Stockfish binary path.

    Checks STOCKFISH_PATH, then known install paths, then PATH.

    Raises:
        FileNotFoundError: If Stockfish is not found anywhere.
    """
    env_path = os.environ.get("STOCKFISH_PATH")
    if env_path and Path(env_path).is_file():
        return env_path

    for path_str in _STOCKFISH_PATHS:
        if Path(path_str).is_file():
            return path_str

    which_result = shutil.which("stockfish")
    if which_result is not None:
        return which_result

    raise FileNotFoundError(
        "Stockfish not found. Install it or set STOCKFISH_PATH."
    )


class LocalEngine:
    """Stockfish-backed position evaluator."""

    def __init__(self, stockfish_path: str | None = None, depth: int = DEFAULT_DEPTH) -> None:
        """Start Stockfish.

        Args:
            stockfish_path: Explicit path to the binary, auto-detected if None.
            depth: Default search depth.

        Raises:
            FileNotFoundError: If Stockfish is not found.
        """
        self._stockfish_path = stockfish_path or _find_stockfish()
        self._depth = depth
        self._engine = self._open_engine()

    def _open_engine(self) -> chess.engine.SimpleEngine:
        return chess.engine.SimpleEngine.popen_uci(self._stockfish_path)

    def _ensure_engine(self) -> None:
        """Ensure engine process is alive, restart once if terminated."""
        try:
            self._engine.ping()
        except chess.engine.EngineTerminatedError:
            logger.warning("Stockfish terminated, restarting")
            self._engine = self._open_engine()

    def evaluate_position(self, fen: str, depth: int | None = None) -> Evaluation:
        """Evaluate one position at full strength.

        Raises:
            ValueError: If the FEN is invalid.
            chess.engine.EngineError: If the engine fails twice in a row.
        """
        terminal = terminal_evaluation(fen)
        if terminal is not None:
            return terminal

        board = chess.Board(fen)
        self._ensure_engine()
        try:
            return self._evaluate_inner(board, depth or self._depth)
        except chess.engine.EngineTerminatedError:
            self._engine = self._open_engine()
            return self._evaluate_inner(board, depth or self._depth)

    def _evaluate_inner(self, board: chess.Board, depth: int) -> Evaluation:
        info = self._engine.analyse(board, chess.engine.Limit(depth=depth))

        score = info["score"].white()
        mate = score.mate()
        cp = score.score(mate_score=MATE_SCORE)

        if mate is not None:
            win = 100.0 if mate > 0 else 0.0
        else:
            win = cp_to_win_probability(cp)

        best_uci = None
        best_san = None
        pv = info.get("pv", [])
        if pv:
            best_uci = pv[0].uci()
            best_san = board.san(pv[0])

        return Evaluation(
            fen=board.fen(),
            score=cp,
            win_probability=round(win, 2),
            best_reply=best_san,
            best_reply_uci=best_uci,
            depth=int(info.get("depth", depth)),
            mate=mate,
        )

    def evaluate_positions(
        self,
        positions: list[str],
        depth: int | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[EvaluationResult]:
        """Evaluate positions in order; a failing position becomes a failure marker.

        Raises:
            AnalysisCancelled: cancel_event was set.
            EvaluationUnavailable: No position could be scored.
        """
        total = len(positions)
        results: list[EvaluationResult] = []

        for index, fen in enumerate(positions):
            if cancel_event is not None and cancel_event.is_set():
                raise AnalysisCancelled(f"Cancelled after {index}/{total} positions")
            try:
                results.append(self.evaluate_position(fen, depth))
            except (ValueError, chess.engine.EngineError) as exc:
                logger.warning("Position %d unscored: %s", index, exc)
                results.append(EvaluationFailure(fen=fen, reason=str(exc)))
            if on_progress is not None:
                on_progress(index + 1, total)

        if total and all(isinstance(r, EvaluationFailure) for r in results):
            raise EvaluationUnavailable("Stockfish failed for every position", results=results)
        return results

    def close(self) -> None:
        """Clean up Stockfish process."""
        try:
            self._engine.quit()
        except chess.engine.EngineTerminatedError:
            pass
