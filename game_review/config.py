"""Configuration for the game review core.

Defaults live in module constants; Settings.from_env() overrides them
from CHESS_REVIEW_* environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from game_review.accuracy import get_aggregator
from game_review.classifier import get_threshold_table

DEFAULT_EVAL_URL = "https://chess-api.com/v1"
DEFAULT_COACH_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_COACH_MODEL = "gpt-4o-mini"

DEFAULT_DEPTH = 16
DEFAULT_MAX_THINKING_MS = 100

# Remote evaluator rate limiting
DEFAULT_CALL_DELAY = 0.15
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF = 3.0
DEFAULT_TRANSPORT_BACKOFF = 2.0
DEFAULT_TIMEOUT = 15.0

DEFAULT_AGGREGATION = "harmonic"
DEFAULT_THRESHOLDS = "win_probability"

# Itemized errors in the summary digest
DEFAULT_SUMMARY_LIMIT = 20

_ENV_PREFIX = "CHESS_REVIEW_"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(_ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{_ENV_PREFIX}{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(_ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{_ENV_PREFIX}{name} must be a number, got {raw!r}") from None


def _env_str(name: str, default: str | None) -> str | None:
    raw = os.environ.get(_ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


@dataclass(frozen=True)
class Settings:
    """Tunable parameters for one analysis run."""

    eval_url: str = DEFAULT_EVAL_URL
    depth: int = DEFAULT_DEPTH
    max_thinking_ms: int = DEFAULT_MAX_THINKING_MS
    call_delay: float = DEFAULT_CALL_DELAY
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff: float = DEFAULT_BACKOFF
    transport_backoff: float = DEFAULT_TRANSPORT_BACKOFF
    timeout: float = DEFAULT_TIMEOUT
    aggregation: str = DEFAULT_AGGREGATION
    thresholds: str = DEFAULT_THRESHOLDS
    summary_limit: int = DEFAULT_SUMMARY_LIMIT
    coach_url: str = DEFAULT_COACH_URL
    coach_key: str | None = None
    coach_model: str = DEFAULT_COACH_MODEL

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from CHESS_REVIEW_* environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed or is out of range.
        """
        settings = cls(
            eval_url=_env_str("EVAL_URL", DEFAULT_EVAL_URL),
            depth=_env_int("DEPTH", DEFAULT_DEPTH),
            max_thinking_ms=_env_int("MAX_THINKING_MS", DEFAULT_MAX_THINKING_MS),
            call_delay=_env_float("CALL_DELAY", DEFAULT_CALL_DELAY),
            max_attempts=_env_int("MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
            backoff=_env_float("BACKOFF", DEFAULT_BACKOFF),
            transport_backoff=_env_float("TRANSPORT_BACKOFF", DEFAULT_TRANSPORT_BACKOFF),
            timeout=_env_float("TIMEOUT", DEFAULT_TIMEOUT),
            aggregation=_env_str("AGGREGATION", DEFAULT_AGGREGATION),
            thresholds=_env_str("THRESHOLDS", DEFAULT_THRESHOLDS),
            summary_limit=_env_int("SUMMARY_LIMIT", DEFAULT_SUMMARY_LIMIT),
            coach_url=_env_str("COACH_URL", DEFAULT_COACH_URL),
            coach_key=_env_str("COACH_KEY", None),
            coach_model=_env_str("COACH_MODEL", DEFAULT_COACH_MODEL),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Reject values that would stall or break the pipeline."""
        if self.depth < 1:
            raise ValueError(f"depth must be >= 1, got {self.depth}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        for name in ("call_delay", "backoff", "transport_backoff"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if self.summary_limit < 1:
            raise ValueError(f"summary_limit must be >= 1, got {self.summary_limit}")
        get_aggregator(self.aggregation)
        get_threshold_table(self.thresholds)
