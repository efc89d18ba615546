"""Best-effort AI coaching text from an engine summary.

Sends the summary digest plus the PGN to an OpenAI-compatible
chat-completions endpoint and returns the parsed JSON review. Nothing in
evaluate_game() depends on this module.
"""

from __future__ import annotations

import json
import logging
import re

import requests

from game_review.config import Settings
from game_review.errors import CoachUnavailable

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are an expert chess coach. Always respond with valid JSON only. "
    "No markdown formatting."
)

_RESPONSE_FORMAT = """{
  "summary": "2-3 sentence overall summary of the game",
  "phases": [
    {"phase": "opening" | "middlegame" | "endgame", "assessment": "good" | "okay" | "poor",
     "moves": "e.g. moves 1-12", "explanation": "...", "suggestion": "..."}
  ],
  "critical_mistakes": [{"move": "e.g. 15. Bxf7+", "why_bad": "...", "better_move": "..."}],
  "things_done_well": [{"description": "...", "move_range": "e.g. moves 5-10"}],
  "practice_recommendations": [{"theme": "lichess theme slug", "label": "...", "reason": "..."}]
}"""

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def build_prompt(pgn: str, summary_text: str = "", player: str | None = None) -> str:
    """Assemble the coaching prompt."""
    if player:
        context = f"PLAYER: {player}"
    else:
        context = "Extract player names, ratings and result from the PGN headers if available."

    engine = ""
    if summary_text:
        engine = (
            f"\n\nENGINE ANALYSIS:\n{summary_text}\n\n"
            "Ground your analysis in the engine data above: the listed errors are the "
            "actual blunders and mistakes. Explain why they were bad."
        )

    return (
        "Analyze this game and give actionable post-game feedback.\n\n"
        f"{context}{engine}\n\nPGN:\n{pgn}\n\n"
        f"Respond with ONLY valid JSON in this format:\n{_RESPONSE_FORMAT}"
    )


def parse_reply(content: str) -> dict:
    """Parse the model reply, tolerating a surrounding code fence.

    Raises:
        CoachUnavailable: If the reply is not a JSON object.
    """
    match = _FENCE_RE.search(content)
    text = match.group(1) if match else content
    try:
        data = json.loads(text.strip())
    except json.JSONDecodeError as exc:
        raise CoachUnavailable("Could not parse coaching reply") from exc
    if not isinstance(data, dict):
        raise CoachUnavailable("Coaching reply is not a JSON object")
    return data


def request_coaching(
    pgn: str,
    summary_text: str = "",
    settings: Settings | None = None,
    session: requests.Session | None = None,
    player: str | None = None,
) -> dict:
    """Ask the AI service for a coaching review.

    Raises:
        CoachUnavailable: No API key, rate limit, usage limit, transport
            failure or an unparsable reply.
    """
    settings = settings or Settings()
    if not settings.coach_key:
        raise CoachUnavailable("CHESS_REVIEW_COACH_KEY is not configured")

    session = session or requests.Session()
    body = {
        "model": settings.coach_model,
        "messages": [
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": build_prompt(pgn, summary_text, player)},
        ],
    }
    try:
        response = session.post(
            settings.coach_url,
            json=body,
            headers={"Authorization": f"Bearer {settings.coach_key}"},
            timeout=settings.timeout * 4,
        )
    except requests.RequestException as exc:
        raise CoachUnavailable(f"Coaching request failed: {exc}") from exc

    if response.status_code == 429:
        raise CoachUnavailable("Rate limit exceeded. Please try again shortly.")
    if response.status_code == 402:
        raise CoachUnavailable("AI usage limit reached.")
    if not response.ok:
        logger.error("Coaching service error %s: %s", response.status_code, response.text[:200])
        raise CoachUnavailable(f"Coaching service returned HTTP {response.status_code}")

    try:
        content = response.json()["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise CoachUnavailable("Malformed coaching response") from exc
    return parse_reply(content or "")
