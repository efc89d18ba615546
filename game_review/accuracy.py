"""Per-side accuracy from classified moves.

Two stages: every move's loss (win-probability points) goes through a
saturating exponential decay to a 0-100 move accuracy, then the moves of
one side are combined with a mean that punishes low outliers.

Decay: accuracy = clamp(120 * exp(-0.08 * loss) - 20, 0, 100), with
loss <= 0.5 scoring 100. That gives ~60 for a 5-point loss, ~4 at 20
points and 0 from ~23 points on. Losses must be in win-probability
points whatever table was used to label the moves.
"""

from __future__ import annotations

import math
from typing import Callable, Iterable

from game_review.models import BLACK, WHITE, MoveClassification

DECAY_SCALE = 120.0
DECAY_RATE = 0.08
DECAY_OFFSET = -20.0
LOSS_TOLERANCE = 0.5

# Per-move floor for the harmonic mean
HARMONIC_FLOOR = 10.0

# Accuracy of a side with no scored moves
EMPTY_ACCURACY = 100.0


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp into [low, high], mapping NaN to low."""
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def move_accuracy(loss: float) -> float:
    """Map one move's loss in win-probability points to a 0-100 score."""
    if math.isnan(loss):
        return 0.0
    if loss <= LOSS_TOLERANCE:
        return 100.0
    return clamp(DECAY_SCALE * math.exp(-DECAY_RATE * loss) + DECAY_OFFSET)


def harmonic_mean(scores: list[float]) -> float:
    """Harmonic mean with every score floored at HARMONIC_FLOOR."""
    if not scores:
        return EMPTY_ACCURACY
    floored = [max(s, HARMONIC_FLOOR) for s in scores]
    return len(floored) / sum(1.0 / s for s in floored)


def quadratic_mean(scores: list[float]) -> float:
    """100 minus the root-mean-square of each move's shortfall from 100."""
    if not scores:
        return EMPTY_ACCURACY
    shortfall = [(100.0 - s) / 100.0 for s in scores]
    rms = math.sqrt(sum(x * x for x in shortfall) / len(shortfall))
    return 100.0 * (1.0 - rms)


AGGREGATORS: dict[str, Callable[[list[float]], float]] = {
    "harmonic": harmonic_mean,
    "quadratic": quadratic_mean,
}


def get_aggregator(name: str) -> Callable[[list[float]], float]:
    """Look up an aggregation strategy by name.

    Raises:
        ValueError: If no strategy has that name.
    """
    try:
        return AGGREGATORS[name]
    except KeyError:
        known = ", ".join(sorted(AGGREGATORS))
        raise ValueError(f"Unknown aggregation {name!r} (known: {known})") from None


def side_accuracy(
    classifications: Iterable[MoveClassification],
    aggregation: str = "harmonic",
) -> float:
    """Accuracy for one side's classified moves, rounded to one decimal.

    Args:
        classifications: The side's moves (already filtered by side).
        aggregation: Name of the aggregation strategy.

    Returns:
        Accuracy in [0, 100]; 100 when there are no moves.
    """
    aggregate = get_aggregator(aggregation)
    scores = [move_accuracy(c.loss) for c in classifications]
    if not scores:
        return EMPTY_ACCURACY
    return round(clamp(aggregate(scores)), 1)


def game_accuracy(
    classifications: Iterable[MoveClassification | None],
    aggregation: str = "harmonic",
) -> dict[str, float]:
    """Accuracy per side for a whole game's classifications."""
    by_side: dict[str, list[MoveClassification]] = {WHITE: [], BLACK: []}
    for c in classifications:
        if c is not None:
            by_side[c.moving_side].append(c)
    return {side: side_accuracy(moves, aggregation) for side, moves in by_side.items()}
