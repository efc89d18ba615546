"""Shared test fixtures with dual-mode support (stubbed vs real evaluator).

Usage:
    pytest tests/                  # Fast, stubbed evaluator (no network, no Stockfish)
    pytest tests/ --e2e            # Also run tests against the real services

Fixtures:
    stub_evaluator  - Factory for a deterministic StubEvaluator.
    clean_env       - Removes CHESS_REVIEW_* variables for the test.
"""

from __future__ import annotations

import os

import pytest

from game_review.errors import AnalysisCancelled, EvaluationUnavailable
from game_review.evaluator import cp_to_win_probability
from game_review.models import Evaluation, EvaluationFailure


# ---------------------------------------------------------------------------
# CLI option and marker registration
# ---------------------------------------------------------------------------


def pytest_addoption(parser):
    """Register --e2e CLI flag for real evaluator tests."""
    parser.addoption(
        "--e2e",
        action="store_true",
        default=False,
        help="Run against the real evaluator service / Stockfish.",
    )


def pytest_configure(config):
    """Register the e2e marker."""
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end (requires network or Stockfish)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip e2e tests unless --e2e is given."""
    if config.getoption("--e2e"):
        return
    skip = pytest.mark.skip(reason="needs --e2e")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip)


# ---------------------------------------------------------------------------
# Stub evaluator
# ---------------------------------------------------------------------------


class StubEvaluator:
    """Deterministic evaluator scripted by position index.

    Either ``pawns`` (White-perspective scores in pawns, converted to a win
    probability with the remote service's curve) or ``win`` (White win
    probabilities) gives one value per position; missing trailing values
    repeat the last one. Indices in ``fail_at`` return failure markers.
    """

    def __init__(self, pawns=None, win=None, fail_at=(), fail_all=False):
        self.pawns = list(pawns) if pawns is not None else None
        self.win = list(win) if win is not None else None
        self.fail_at = set(fail_at)
        self.fail_all = fail_all
        self.calls: list[list[str]] = []
        self.closed = False

    def _value(self, values, index, default):
        if not values:
            return default
        return values[min(index, len(values) - 1)]

    def evaluate_positions(self, positions, depth=None, on_progress=None, cancel_event=None):
        self.calls.append(list(positions))
        results = []
        for index, fen in enumerate(positions):
            if cancel_event is not None and cancel_event.is_set():
                raise AnalysisCancelled("cancelled")
            if index in self.fail_at or self.fail_all:
                results.append(EvaluationFailure(fen=fen, reason="stub failure"))
            else:
                if self.pawns is not None:
                    cp = round(self._value(self.pawns, index, 0.0) * 100)
                    win = cp_to_win_probability(cp)
                else:
                    win = float(self._value(self.win, index, 50.0))
                    cp = 0
                results.append(Evaluation(
                    fen=fen,
                    score=cp,
                    win_probability=win,
                    best_reply="Nf3",
                    depth=depth or 0,
                ))
            if on_progress is not None:
                on_progress(index + 1, len(positions))
        if self.fail_all:
            raise EvaluationUnavailable("stub evaluator down", results=results)
        return results

    def close(self):
        self.closed = True


@pytest.fixture()
def stub_evaluator():
    """Factory fixture: stub_evaluator(pawns=[...]) or stub_evaluator(win=[...])."""
    return StubEvaluator


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture()
def clean_env(monkeypatch):
    """Remove CHESS_REVIEW_* variables so Settings.from_env() sees defaults."""
    for key in list(os.environ):
        if key.startswith("CHESS_REVIEW_"):
            monkeypatch.delenv(key, raising=False)
    yield monkeypatch
