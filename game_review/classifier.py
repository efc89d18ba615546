"""Move classification from consecutive evaluations.

Both evaluations are stored from White's perspective. Each ply is judged
from the mover's side: loss = mover's chances before - mover's chances
after, so a positive loss means the move made things worse.

The default table works in win-probability points; the centipawn table
uses the classic engine scale.
"""

from __future__ import annotations

from dataclasses import dataclass

from game_review.models import (
    BLUNDER,
    BOOK,
    BRILLIANT,
    ERROR_CLASSES,
    EXCELLENT,
    GOOD,
    INACCURACY,
    MISTAKE,
    WHITE,
    Evaluation,
    EvaluationFailure,
    MoveClassification,
    PlyRecord,
)


@dataclass(frozen=True)
class ThresholdTable:
    """Loss boundaries for each class, in the table's unit.

    Errors are classified by loss >= threshold; gains by loss <= -threshold.
    """

    name: str
    centipawns: bool
    blunder: float
    mistake: float
    inaccuracy: float
    excellent: float
    brilliant: float


WIN_PROBABILITY_TABLE = ThresholdTable(
    name="win_probability",
    centipawns=False,
    blunder=20.0,
    mistake=10.0,
    inaccuracy=5.0,
    excellent=1.0,
    brilliant=5.0,
)

CENTIPAWN_TABLE = ThresholdTable(
    name="centipawns",
    centipawns=True,
    blunder=200.0,
    mistake=100.0,
    inaccuracy=50.0,
    excellent=20.0,
    brilliant=50.0,
)

THRESHOLD_TABLES = {
    WIN_PROBABILITY_TABLE.name: WIN_PROBABILITY_TABLE,
    CENTIPAWN_TABLE.name: CENTIPAWN_TABLE,
}


def get_threshold_table(name: str) -> ThresholdTable:
    """Look up a threshold table by name.

    Raises:
        ValueError: If no table has that name.
    """
    try:
        return THRESHOLD_TABLES[name]
    except KeyError:
        known = ", ".join(sorted(THRESHOLD_TABLES))
        raise ValueError(f"Unknown threshold table {name!r} (known: {known})") from None


def to_mover_perspective(value: float, side: str, centipawns: bool = False) -> float:
    """Convert a White-perspective score or win probability to the mover's view."""
    if side == WHITE:
        return value
    if centipawns:
        return -value
    return 100.0 - value


def _signal(evaluation: Evaluation, table: ThresholdTable) -> float:
    if table.centipawns:
        return float(evaluation.score)
    return evaluation.win_probability


def move_loss(
    before: Evaluation,
    after: Evaluation,
    side: str,
    table: ThresholdTable = WIN_PROBABILITY_TABLE,
) -> float:
    """How much the mover's chances dropped, rounded to hundredths."""
    pov_before = to_mover_perspective(_signal(before, table), side, table.centipawns)
    pov_after = to_mover_perspective(_signal(after, table), side, table.centipawns)
    return round(pov_before - pov_after, 2)


def label_for_loss(loss: float, table: ThresholdTable = WIN_PROBABILITY_TABLE) -> str:
    """Map a loss to its class under the given table."""
    if loss >= table.blunder:
        return BLUNDER
    if loss >= table.mistake:
        return MISTAKE
    if loss >= table.inaccuracy:
        return INACCURACY
    if loss <= -table.brilliant:
        return BRILLIANT
    if loss <= -table.excellent:
        return EXCELLENT
    return GOOD


def classify_move(
    before: Evaluation,
    after: Evaluation,
    side: str,
    ply_index: int = 0,
    table: ThresholdTable = WIN_PROBABILITY_TABLE,
) -> MoveClassification:
    """Classify the ply that led from ``before`` to ``after``.

    Args:
        before: Evaluation of the position before the move.
        after: Evaluation of the position after the move.
        side: The side that moved.
        ply_index: Index of the ply, carried into the result.
        table: Threshold table to classify with.

    Returns:
        MoveClassification with the unclamped loss.
    """
    loss = move_loss(before, after, side, table)
    return MoveClassification(
        ply_index=ply_index,
        moving_side=side,
        classification=label_for_loss(loss, table),
        loss=loss,
    )


def classify_game(
    plies: list[PlyRecord],
    evaluations: list[Evaluation | EvaluationFailure],
    table: ThresholdTable = WIN_PROBABILITY_TABLE,
    book_plies: int = 0,
) -> list[MoveClassification | None]:
    """Classify every ply whose two neighbouring evaluations succeeded.

    Args:
        plies: Ply records in order.
        evaluations: len(plies) + 1 results; index 0 is the start position.
        table: Threshold table to classify with.
        book_plies: Leading plies that follow a known opening line; those
            that are not errors are labelled book.

    Returns:
        One entry per ply; None where either evaluation failed.

    Raises:
        ValueError: If the evaluation list is not one longer than the plies.
    """
    if len(evaluations) != len(plies) + 1:
        raise ValueError(
            f"Expected {len(plies) + 1} evaluations, got {len(evaluations)}"
        )

    results: list[MoveClassification | None] = []
    for ply in plies:
        before = evaluations[ply.index]
        after = evaluations[ply.index + 1]
        if not isinstance(before, Evaluation) or not isinstance(after, Evaluation):
            results.append(None)
            continue

        classification = classify_move(before, after, ply.side, ply.index, table)
        if ply.index < book_plies and classification.classification not in ERROR_CLASSES:
            classification = MoveClassification(
                ply_index=ply.index,
                moving_side=ply.side,
                classification=BOOK,
                loss=classification.loss,
            )
        results.append(classification)

    return results
