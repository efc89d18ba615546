"""Client for the remote position evaluator.

Positions are sent one at a time with a fixed delay between calls to
respect the service's rate limit. An explicit overload response
("HIGH_USAGE" or HTTP 429) is retried with linear backoff; a transport
failure is retried once. A position that still fails is returned as an
EvaluationFailure marker so the rest of the game can be scored.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, Protocol

import chess
import requests

from game_review.config import Settings
from game_review.errors import (
    AnalysisCancelled,
    EvaluationHardFailure,
    EvaluationTransientFailure,
    EvaluationUnavailable,
)
from game_review.models import Evaluation, EvaluationFailure

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
EvaluationResult = Evaluation | EvaluationFailure

_OVERLOAD_CODES = {"HIGH_USAGE", "OVERLOADED", "RATE_LIMIT"}

MATE_SCORE = 10000


def cp_to_win_probability(cp: float) -> float:
    """White's winning chance (0-100) for a centipawn score from White's side."""
    return 50 + 50 * (2 / (1 + math.exp(-0.00368208 * cp)) - 1)


def terminal_evaluation(fen: str) -> Evaluation | None:
    """Evaluation for a finished game position, or None if play goes on.

    Raises:
        ValueError: If the FEN is invalid.
    """
    board = chess.Board(fen)
    if board.is_checkmate():
        white_mated = board.turn == chess.WHITE
        return Evaluation(
            fen=fen,
            score=-MATE_SCORE if white_mated else MATE_SCORE,
            win_probability=0.0 if white_mated else 100.0,
            mate=0,
        )
    if board.is_stalemate() or board.is_insufficient_material():
        return Evaluation(fen=fen, score=0, win_probability=50.0)
    return None


def _check_cancelled(cancel_event: threading.Event | None, stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelled(f"Cancelled during {stage}")


class PositionEvaluator(Protocol):
    """Anything that can score an ordered list of FENs."""

    def evaluate_positions(
        self,
        positions: list[str],
        depth: int | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[EvaluationResult]:
        ...


def parse_evaluation(fen: str, payload: dict) -> Evaluation:
    """Convert an evaluator response body into an Evaluation.

    Raises:
        EvaluationTransientFailure: On an overload error payload.
        EvaluationHardFailure: On any other error payload or a malformed body.
    """
    if not isinstance(payload, dict):
        raise EvaluationHardFailure("Evaluator returned a non-object body", retryable=False)

    if payload.get("type") == "error" or ("error" in payload and "eval" not in payload):
        code = str(payload.get("error") or "")
        text = payload.get("text") or code or "evaluator error"
        if code.upper() in _OVERLOAD_CODES:
            raise EvaluationTransientFailure(text)
        raise EvaluationHardFailure(text, retryable=False)

    mate = payload.get("mate")
    mate = int(mate) if mate not in (None, 0) else None

    if mate is not None:
        score = MATE_SCORE if mate > 0 else -MATE_SCORE
    elif payload.get("centipawns") is not None:
        score = int(payload["centipawns"])
    elif payload.get("eval") is not None:
        score = round(float(payload["eval"]) * 100)
    else:
        raise EvaluationHardFailure("Evaluator response has no score", retryable=False)

    win = payload.get("winChance")
    if win is None:
        if mate is not None:
            win = 100.0 if mate > 0 else 0.0
        else:
            win = cp_to_win_probability(score)
    win = min(100.0, max(0.0, float(win)))

    return Evaluation(
        fen=fen,
        score=score,
        win_probability=win,
        best_reply=payload.get("san") or None,
        best_reply_uci=payload.get("move") or None,
        depth=int(payload.get("depth") or 0),
        mate=mate,
    )


class EvaluationClient:
    """Sequential, rate-limited client for the remote evaluator."""

    def __init__(
        self,
        settings: Settings | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Create a client.

        Args:
            settings: Endpoint, depth and retry policy. Defaults to Settings().
            session: Optional requests session (injected in tests).
            sleep: Delay function, replaced in tests to avoid real waits.
        """
        self._settings = settings or Settings()
        self._session = session or requests.Session()
        self._sleep = sleep

    def _request(self, fen: str, depth: int) -> Evaluation:
        """Single HTTP round trip without retries."""
        body = {
            "fen": fen,
            "depth": depth,
            "maxThinkingTime": self._settings.max_thinking_ms,
        }
        try:
            response = self._session.post(
                self._settings.eval_url,
                json=body,
                timeout=self._settings.timeout,
            )
        except requests.RequestException as exc:
            raise EvaluationHardFailure(f"Evaluator request failed: {exc}") from exc

        if response.status_code == 429:
            raise EvaluationTransientFailure("Evaluator rate limit (HTTP 429)")
        if not response.ok:
            raise EvaluationHardFailure(f"Evaluator returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise EvaluationHardFailure("Evaluator returned invalid JSON") from exc

        return parse_evaluation(fen, payload)

    def evaluate_position(
        self,
        fen: str,
        depth: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Evaluation:
        """Evaluate one position, retrying per the configured policy.

        cancel_event is checked before every backoff and retry.

        Raises:
            AnalysisCancelled: cancel_event was set between attempts.
            EvaluationTransientFailure: Still overloaded after all attempts.
            EvaluationHardFailure: Transport or protocol failure.
        """
        try:
            terminal = terminal_evaluation(fen)
        except ValueError as exc:
            raise EvaluationHardFailure(f"Invalid position: {exc}", retryable=False) from exc
        if terminal is not None:
            return terminal

        depth = depth or self._settings.depth
        max_attempts = self._settings.max_attempts
        transport_retried = False

        for attempt in range(max_attempts):
            if attempt:
                _check_cancelled(cancel_event, "retry")
            try:
                return self._request(fen, depth)
            except EvaluationTransientFailure as exc:
                if attempt + 1 >= max_attempts:
                    raise
                _check_cancelled(cancel_event, "overload backoff")
                delay = self._settings.backoff * (attempt + 1)
                logger.warning(
                    "Evaluator overloaded (%s), retry %d/%d in %.1fs",
                    exc, attempt + 1, max_attempts - 1, delay,
                )
                self._sleep(delay)
            except EvaluationHardFailure as exc:
                if not exc.retryable or transport_retried or attempt + 1 >= max_attempts:
                    raise
                _check_cancelled(cancel_event, "transport retry")
                transport_retried = True
                logger.warning("Evaluator request failed (%s), retrying once", exc)
                self._sleep(self._settings.transport_backoff)

        # Unreachable: the loop either returns or raises
        raise EvaluationHardFailure("No evaluation attempts made")

    def evaluate_positions(
        self,
        positions: list[str],
        depth: int | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[EvaluationResult]:
        """Evaluate positions in order, tolerating per-position failures.

        Args:
            positions: FENs to evaluate.
            depth: Search depth (defaults to settings.depth).
            on_progress: Called as on_progress(done, total) after each position.
            cancel_event: Checked before each call; when set the run stops.

        Returns:
            One Evaluation or EvaluationFailure per input, same order.

        Raises:
            AnalysisCancelled: cancel_event was set.
            EvaluationUnavailable: The first position failed at the transport
                level, or no position could be scored at all.
        """
        total = len(positions)
        results: list[EvaluationResult] = []

        for index, fen in enumerate(positions):
            if cancel_event is not None and cancel_event.is_set():
                raise AnalysisCancelled(f"Cancelled after {index}/{total} positions")
            if index > 0 and self._settings.call_delay > 0:
                self._sleep(self._settings.call_delay)

            try:
                results.append(self.evaluate_position(fen, depth, cancel_event))
            except EvaluationTransientFailure as exc:
                logger.warning("Position %d unscored, evaluator overloaded: %s", index, exc)
                results.append(EvaluationFailure(fen=fen, reason=str(exc)))
            except EvaluationHardFailure as exc:
                if index == 0 and exc.retryable:
                    failed = [EvaluationFailure(fen=f, reason="not attempted") for f in positions]
                    failed[0] = EvaluationFailure(fen=fen, reason=str(exc))
                    raise EvaluationUnavailable(
                        f"Evaluator unreachable: {exc}", results=failed
                    ) from exc
                logger.warning("Position %d unscored: %s", index, exc)
                results.append(EvaluationFailure(fen=fen, reason=str(exc)))

            logger.debug("Evaluated position %d/%d", index + 1, total)
            if on_progress is not None:
                on_progress(index + 1, total)

        if total and all(isinstance(r, EvaluationFailure) for r in results):
            raise EvaluationUnavailable("Evaluator failed for every position", results=results)

        return results

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self._session.close()
