"""Tests for arrest-cases/app/summarizer.py — prompt building and error states."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from app.cases import ArrestCase
from app.config import Settings
from app.summarizer import MSG_FAILED, MSG_UNEXPECTED, build_prompt, summarize


@pytest.fixture()
def case():
    return ArrestCase(
        id="case-1",
        officer_id="officer-badge-1234",
        arrested_user="John Doe",
        reason="Theft - 2.1-01 [CLASS 4 FELONY]",
        evidence_urls=["footage", "receipt"],
        court_dates_availability=[],
        submission_date=datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc),
    )


@pytest.fixture()
def settings():
    return Settings(gemini_api_key="test-key", gemini_model="gemini-2.0-flash")


def _response(json_data: dict) -> MagicMock:
    resp = MagicMock()
    resp.json.return_value = json_data
    resp.raise_for_status.return_value = None
    return resp


_GOOD = {"candidates": [{"content": {"parts": [{"text": "John Doe was arrested for theft."}]}}]}


class TestBuildPrompt:
    def test_includes_all_fields(self, case):
        prompt = build_prompt(case)
        assert prompt.startswith("Summarize the following arrest case details concisely")
        assert "Arrested User: John Doe" in prompt
        assert "Reason for Arrest: Theft - 2.1-01 [CLASS 4 FELONY]" in prompt
        assert "Evidence: footage, receipt" in prompt
        assert "Officer ID: officer-badge-1234" in prompt
        assert "Submission Date: January 15, 2024 at 02:30 PM" in prompt

    def test_missing_values_say_none_provided(self, case):
        prompt = build_prompt(case)
        assert "Court Dates Availability: None provided." in prompt
        assert "Context of Incident: None provided." in prompt


class TestSummarize:
    def test_returns_first_candidate_text(self, case, settings):
        with patch("shared.gemini_client.requests.post", return_value=_response(_GOOD)) as post:
            result = summarize(case, settings)
        assert result.ok
        assert result.text == "John Doe was arrested for theft."
        body = post.call_args.kwargs["json"]
        assert body["contents"][0]["role"] == "user"
        assert "John Doe" in body["contents"][0]["parts"][0]["text"]

    @pytest.mark.parametrize("payload", [{}, {"candidates": []}, {"candidates": [{"content": {}}]}])
    def test_unexpected_shape(self, case, settings, payload):
        with patch("shared.gemini_client.requests.post", return_value=_response(payload)):
            result = summarize(case, settings)
        assert not result.ok
        assert result.error == MSG_UNEXPECTED

    def test_transport_failure(self, case, settings):
        with patch("shared.gemini_client.requests.post",
                   side_effect=requests.ConnectionError("down")):
            result = summarize(case, settings)
        assert result.error == MSG_FAILED
        assert result.text == ""

    def test_http_error(self, case, settings):
        resp = _response({})
        resp.raise_for_status.side_effect = requests.HTTPError("500")
        with patch("shared.gemini_client.requests.post", return_value=resp):
            assert summarize(case, settings).error == MSG_FAILED

    def test_missing_key_never_calls_out(self, case):
        with patch("shared.gemini_client.requests.post") as post:
            result = summarize(case, Settings(gemini_api_key=""))
        post.assert_not_called()
        assert result.error == MSG_FAILED

    def test_each_call_hits_endpoint(self, case, settings):
        with patch("shared.gemini_client.requests.post", return_value=_response(_GOOD)) as post:
            summarize(case, settings)
            summarize(case, settings)
        assert post.call_count == 2
