"""MCP server for the game review core.

Exposes game review tools via FastMCP: a full review of a PGN, single
move classification from two evaluations, and best-effort AI coaching.
Each review is independent; nothing is stored between calls.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import replace
from pathlib import Path

# Add project root and mcp-server dir to path for imports
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_MCP_SERVER_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(_PROJECT_ROOT))
sys.path.insert(0, str(_MCP_SERVER_DIR))

from mcp.server.fastmcp import FastMCP  # noqa: E402

from game_review.classifier import classify_move as _classify_move  # noqa: E402
from game_review.classifier import get_threshold_table  # noqa: E402
from game_review.coach import request_coaching  # noqa: E402
from game_review.config import Settings  # noqa: E402
from game_review.errors import CoachUnavailable, GameReviewError  # noqa: E402
from game_review.evaluator import EvaluationClient, cp_to_win_probability  # noqa: E402
from game_review.models import BLACK, WHITE, Evaluation  # noqa: E402
from game_review.pipeline import evaluate_game  # noqa: E402

from response_schemas import minify_game_evaluation  # noqa: E402

logger = logging.getLogger(__name__)

mcp = FastMCP("chess-game-review")


def _make_evaluator(settings: Settings):
    """Build the evaluator used by review_game (patched in tests)."""
    return EvaluationClient(settings)


@mcp.tool()
def review_game(pgn: str, depth: int | None = None, include_moves: bool = False) -> dict:
    """Classify every move of a game and compute accuracy per side.

    Args:
        pgn: PGN text or bare movetext, e.g. "1. e4 e5 2. Nf3".
        depth: Evaluator search depth (default from configuration).
        include_moves: Return the full per-move list, not just errors.

    Returns:
        Minified review with accuracy, counts, errors and summary text,
        or {"error": ...} on failure.
    """
    try:
        settings = Settings.from_env()
        if depth is not None:
            settings = replace(settings, depth=depth)
            settings.validate()
    except ValueError as exc:
        return {"error": str(exc)}

    evaluator = _make_evaluator(settings)
    try:
        evaluation = evaluate_game(pgn, evaluator=evaluator, settings=settings)
    except GameReviewError as exc:
        logger.warning("Review failed: %s", exc)
        return {"error": str(exc)}
    finally:
        evaluator.close()

    return minify_game_evaluation(evaluation.to_dict(), include_moves=include_moves)


@mcp.tool()
def classify_move(
    before: float,
    after: float,
    side: str = "white",
    unit: str = "win_probability",
) -> dict:
    """Classify one move from the evaluations before and after it.

    Args:
        before: White-perspective value before the move (win % or centipawns).
        after: White-perspective value after the move.
        side: Side that moved, 'white' or 'black'.
        unit: 'win_probability' (0-100) or 'centipawns'.

    Returns:
        Dict with class and loss, or {"error": ...}.
    """
    if side not in (WHITE, BLACK):
        return {"error": f"Invalid side: {side}"}
    try:
        table = get_threshold_table(unit)
    except ValueError as exc:
        return {"error": str(exc)}

    def _evaluation(value: float) -> Evaluation:
        if table.centipawns:
            return Evaluation(fen="", score=int(value), win_probability=cp_to_win_probability(value))
        return Evaluation(fen="", score=0, win_probability=float(value))

    result = _classify_move(_evaluation(before), _evaluation(after), side, table=table)
    return {"class": result.classification, "loss": result.loss, "unit": table.name}


@mcp.tool()
def coach_game(pgn: str, summary: str = "") -> dict:
    """Ask the AI coaching service for a written review of a game.

    Args:
        pgn: PGN text of the game.
        summary: Digest from review_game to ground the review.

    Returns:
        The coaching review dict, or {"error": ...}.
    """
    try:
        return request_coaching(pgn, summary, Settings.from_env())
    except (CoachUnavailable, ValueError) as exc:
        return {"error": str(exc)}


if __name__ == "__main__":
    mcp.run()
