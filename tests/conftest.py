"""Shared fixtures for all tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

_TOOL_DIR = Path(__file__).resolve().parent.parent / "arrest-cases"
if str(_TOOL_DIR) not in sys.path:
    sys.path.insert(0, str(_TOOL_DIR))

import shared.auth as auth_mod
import shared.usage_tracker as tracker_mod


class TickingClock:
    """Store clock that advances by *step* on every read."""

    def __init__(self, start: datetime, step: timedelta = timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture(autouse=True)
def tmp_config_dir(tmp_path: Path):
    """Redirect session, token and usage files to tmp_path for every test."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    with patch.object(auth_mod, "_CONFIG_DIR", config_dir), \
         patch.object(auth_mod, "_SESSIONS_FILE", config_dir / "sessions.json"), \
         patch.object(auth_mod, "_TOKENS_FILE", config_dir / "auth-tokens.json"), \
         patch.object(tracker_mod, "_CONFIG_DIR", config_dir), \
         patch.object(tracker_mod, "_LEDGER_FILE", config_dir / "api-usage.json"):
        yield config_dir


@pytest.fixture()
def tmp_data_dir(tmp_path: Path):
    """Provide a temporary data directory for case storage."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture()
def clock():
    return TickingClock(datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc))


@pytest.fixture()
def store(tmp_data_dir, clock):
    from app.store import CaseStore

    return CaseStore(tmp_data_dir, "test-app", clock=clock)


@pytest.fixture()
def session():
    """A live anonymous session."""
    return auth_mod.sign_in_anonymously()


@pytest.fixture()
def add_case(store):
    """Insert a pending case and return its id. Keyword args override fields."""
    from app.cases import new_case_document

    def _add(arrested_user: str = "John Doe", reason: str = "Theft", **overrides) -> str:
        doc = new_case_document(
            officer_id=overrides.pop("officer_id", "officer-1"),
            arrested_user=arrested_user,
            reason=reason,
            evidence_urls=overrides.pop("evidence_urls", ""),
            court_dates_availability=overrides.pop("court_dates_availability", ""),
            context_of_incident=overrides.pop("context_of_incident", ""),
        )
        doc.update(overrides)
        return store.add(doc)

    return _add
