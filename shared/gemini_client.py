"""Thin wrapper around the Gemini generateContent REST endpoint."""

from __future__ import annotations

import logging

import requests

logger = logging.getLogger(__name__)

_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-2.0-flash"


def generate_url(model: str = DEFAULT_MODEL) -> str:
    return f"{_BASE_URL}/{model}:generateContent"


def generate_content(
    prompt: str,
    *,
    api_key: str,
    model: str = DEFAULT_MODEL,
    timeout: int = 30,
    case_id: str = "",
) -> dict:
    """Send a single-turn user prompt and return the decoded JSON response.

    Raises RuntimeError if the key is missing and requests.HTTPError on a
    non-2xx status. Records token usage against *case_id* in the usage ledger.
    """
    if not api_key:
        raise RuntimeError(
            "GEMINI_API_KEY is not set. Add it to arrest-cases/.env to enable summaries."
        )

    resp = requests.post(
        generate_url(model),
        params={"key": api_key},
        json={"contents": [{"role": "user", "parts": [{"text": prompt}]}]},
        timeout=timeout,
    )
    resp.raise_for_status()
    data = resp.json()

    try:
        from shared.usage_tracker import record_summary_call

        usage = data.get("usageMetadata") or {}
        record_summary_call(
            case_id,
            model,
            prompt_tokens=usage.get("promptTokenCount", 0),
            output_tokens=usage.get("candidatesTokenCount", 0),
        )
    except (OSError, TypeError, AttributeError):
        logger.exception("Could not record Gemini usage")

    return data


def first_candidate_text(response: dict) -> str:
    """Return ``candidates[0].content.parts[0].text``.

    Raises ValueError when that path is missing or not a string.
    """
    try:
        text = response["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ValueError("Unexpected response shape from generateContent") from exc
    if not isinstance(text, str):
        raise ValueError("Unexpected response shape from generateContent")
    return text
