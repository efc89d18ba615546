"""Compact text digest of a game evaluation for the AI coaching service."""

from __future__ import annotations

from game_review.accuracy import clamp
from game_review.config import DEFAULT_SUMMARY_LIMIT
from game_review.models import (
    BLACK,
    BLUNDER,
    ERROR_CLASSES,
    INACCURACY,
    MISTAKE,
    WHITE,
    EvaluatedMove,
    GameEvaluation,
)


def move_label(move: EvaluatedMove) -> str:
    """Numbered notation, e.g. ``12. Nf3`` or ``12... Nxe4``."""
    dots = "." if move.ply.side == WHITE else "..."
    return f"{move.ply.move_number}{dots} {move.ply.notation}"


def _counts_line(evaluation: GameEvaluation, side: str) -> str:
    plies = [m for m in evaluation.moves if m.side == side]
    scored = [m for m in plies if m.classification is not None]
    if plies and not scored:
        return f"{side.capitalize()}: Blunders N/A, Mistakes N/A, Inaccuracies N/A"
    counts = evaluation.counts(side)
    return (
        f"{side.capitalize()}: Blunders {counts.get(BLUNDER, 0)}, "
        f"Mistakes {counts.get(MISTAKE, 0)}, "
        f"Inaccuracies {counts.get(INACCURACY, 0)}"
    )


def _loss_text(evaluation: GameEvaluation, move: EvaluatedMove) -> str:
    c = move.classification
    if evaluation.thresholds == "centipawns":
        return f"{c.classification}, -{clamp(c.loss, 0, 1000):.0f}cp"
    return f"{c.classification}, -{clamp(c.loss):.1f} win%"


def worst_errors(evaluation: GameEvaluation, limit: int = DEFAULT_SUMMARY_LIMIT) -> list[EvaluatedMove]:
    """Blunders, mistakes and inaccuracies, most severe first, capped at limit."""
    errors = [
        m for m in evaluation.moves
        if m.classification is not None and m.classification.classification in ERROR_CLASSES
    ]
    errors.sort(key=lambda m: (-m.classification.loss, m.ply.index))
    return errors[:limit]


def format_summary(evaluation: GameEvaluation, limit: int = DEFAULT_SUMMARY_LIMIT) -> str:
    """Render the digest: accuracies, error counts and the worst moves.

    Args:
        evaluation: A fully classified game.
        limit: Maximum number of itemized errors.

    Returns:
        Multi-line text, bounded by ``limit`` error lines.
    """
    lines = [f"Engine analysis at depth {evaluation.depth}:"]
    if evaluation.opening:
        lines.append(f"Opening: {evaluation.opening}")
    lines.append(
        f"White accuracy: {evaluation.accuracy[WHITE]:.1f}%, "
        f"Black accuracy: {evaluation.accuracy[BLACK]:.1f}%"
    )
    lines.append(_counts_line(evaluation, WHITE))
    lines.append(_counts_line(evaluation, BLACK))

    unscored = evaluation.unscored_plies
    if unscored:
        lines.append(f"Unscored plies: {len(unscored)} (evaluator unavailable)")

    errors = worst_errors(evaluation, limit)
    if errors:
        lines.append("Most severe errors:")
        for move in errors:
            lines.append(f"  {move_label(move)} ({move.side}, {_loss_text(evaluation, move)})")
    return "\n".join(lines)
