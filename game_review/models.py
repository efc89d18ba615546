"""Shared data models for the game review core.

PlyRecord, Evaluation and MoveClassification are produced by the
sequencer, evaluator and classifier respectively; GameEvaluation is
the aggregate handed back to callers of evaluate_game().
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

WHITE = "white"
BLACK = "black"

BLUNDER = "blunder"
MISTAKE = "mistake"
INACCURACY = "inaccuracy"
GOOD = "good"
EXCELLENT = "excellent"
BRILLIANT = "brilliant"
BOOK = "book"

# Error classes, most severe first
ERROR_CLASSES = (BLUNDER, MISTAKE, INACCURACY)


@dataclass(frozen=True)
class PlyRecord:
    """One half-move and the position it produced."""

    index: int
    move_number: int
    side: str
    notation: str
    uci: str
    resulting_fen: str


@dataclass(frozen=True)
class Evaluation:
    """Evaluator output for one position, always from White's perspective."""

    fen: str
    score: int
    win_probability: float
    best_reply: str | None = None
    best_reply_uci: str | None = None
    depth: int = 0
    mate: int | None = None


@dataclass(frozen=True)
class EvaluationFailure:
    """Marker for a position the evaluator could not score."""

    fen: str
    reason: str


@dataclass(frozen=True)
class MoveClassification:
    """Quality label for one ply, derived from its two neighbouring evaluations."""

    ply_index: int
    moving_side: str
    classification: str
    loss: float


@dataclass
class EvaluatedMove:
    """A ply together with the evaluation after it and its classification."""

    ply: PlyRecord
    evaluation: Evaluation | None
    classification: MoveClassification | None

    @property
    def side(self) -> str:
        return self.ply.side

    @property
    def label(self) -> str | None:
        if self.classification is None:
            return None
        return self.classification.classification


@dataclass
class GameEvaluation:
    """Full result of one game analysis."""

    moves: list[EvaluatedMove] = field(default_factory=list)
    accuracy: dict = field(default_factory=lambda: {WHITE: 100.0, BLACK: 100.0})
    summary_text: str = ""
    depth: int = 0
    opening: str | None = None
    starting_fen: str = ""
    thresholds: str = "win_probability"

    @property
    def unscored_plies(self) -> list[int]:
        """Indices of plies that received no classification."""
        return [m.ply.index for m in self.moves if m.classification is None]

    def classifications(self, side: str | None = None) -> list[MoveClassification]:
        """Classified moves in ply order, optionally filtered to one side."""
        return [
            m.classification
            for m in self.moves
            if m.classification is not None
            and (side is None or m.classification.moving_side == side)
        ]

    def counts(self, side: str | None = None) -> dict[str, int]:
        """Number of moves per class for one side (or both)."""
        result: dict[str, int] = {}
        for c in self.classifications(side):
            result[c.classification] = result.get(c.classification, 0) + 1
        return result

    def to_dict(self) -> dict:
        return {
            "starting_fen": self.starting_fen,
            "depth": self.depth,
            "opening": self.opening,
            "thresholds": self.thresholds,
            "accuracy": dict(self.accuracy),
            "unscored_plies": self.unscored_plies,
            "moves": [asdict(m) for m in self.moves],
            "summary_text": self.summary_text,
        }
