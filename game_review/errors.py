"""Exception hierarchy for the game review core."""

from __future__ import annotations


class GameReviewError(Exception):
    """Base class for all game review errors."""


class InvalidRecord(GameReviewError, ValueError):
    """The game record could not be parsed or holds no moves."""


class EvaluationTransientFailure(GameReviewError):
    """The evaluator reported that it is temporarily overloaded."""


class EvaluationHardFailure(GameReviewError):
    """Transport or protocol failure unrelated to overload.

    ``retryable`` is False when repeating the request cannot help, e.g. the
    evaluator rejected the position itself.
    """

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class EvaluationUnavailable(GameReviewError):
    """The evaluator could not be reached at all.

    ``results`` holds whatever was scored before giving up, aligned by
    position index (unattempted positions are EvaluationFailure markers).
    """

    def __init__(self, message: str, results: list | None = None) -> None:
        super().__init__(message)
        self.results = results or []


class AnalysisCancelled(GameReviewError):
    """The caller asked the analysis to stop."""


class CoachUnavailable(GameReviewError):
    """The AI coaching service refused or failed the request."""
