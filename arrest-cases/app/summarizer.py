"""AI case summaries via Gemini."""

from __future__ import annotations

import logging
import sys as _sys
from dataclasses import dataclass
from pathlib import Path

import requests

from app.cases import NOT_PROVIDED, ArrestCase, format_timestamp
from app.config import Settings

_sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.gemini_client import first_candidate_text, generate_content

logger = logging.getLogger(__name__)

MSG_UNEXPECTED = "Could not generate summary. Unexpected AI response."
MSG_FAILED = "Failed to generate summary. Please try again."

_PROMPT_HEADER = (
    "Summarize the following arrest case details concisely, focusing on the key "
    "facts for a court staff member. Include the arrested user, reason, evidence, "
    "and court availability."
)


@dataclass
class SummaryResult:
    text: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


def _listed(values: list[str]) -> str:
    return ", ".join(values) if values else NOT_PROVIDED


def build_prompt(case: ArrestCase) -> str:
    return (
        f"{_PROMPT_HEADER}\n\n"
        f"Arrested User: {case.arrested_user}\n"
        f"Reason for Arrest: {case.reason}\n"
        f"Evidence: {_listed(case.evidence_urls)}\n"
        f"Court Dates Availability: {_listed(case.court_dates_availability)}\n"
        f"Officer ID: {case.officer_id}\n"
        f"Submission Date: {format_timestamp(case.submission_date)}\n"
        f"Context of Incident: {case.context_of_incident or NOT_PROVIDED}"
    )


def summarize(case: ArrestCase, settings: Settings) -> SummaryResult:
    """Ask Gemini for a narrative summary of *case*.

    Never raises for call or response failures; those come back as a
    SummaryResult with ``error`` set. No retries and no caching.
    """
    try:
        response = generate_content(
            build_prompt(case),
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            case_id=case.id,
        )
    except (requests.RequestException, RuntimeError) as e:
        logger.error("Error calling Gemini API for case %s: %s", case.id, e)
        return SummaryResult(error=MSG_FAILED)
    except ValueError as e:
        # body was not JSON
        logger.error("Undecodable Gemini response for case %s: %s", case.id, e)
        return SummaryResult(error=MSG_FAILED)

    try:
        return SummaryResult(text=first_candidate_text(response))
    except ValueError:
        logger.error("Gemini API response structure unexpected: %r", response)
        return SummaryResult(error=MSG_UNEXPECTED)
