"""Shared identity sessions for the case tools.

A session is either anonymous or derived from a bootstrap (custom) token
issued ahead of time by an administrator. Each session exposes a stable
opaque ``uid`` that is recorded as ``officerId`` / ``reviewerId`` on the
records the actor touches. No roles are attached to a session: any live
session may submit and review.

The dashboard calls require_session() right after st.set_page_config() and
CSS. It signs the browser session in (token first, anonymous as fallback)
and keeps the uid in st.session_state.

Sessions are persisted in data/config/sessions.json (uid -> metadata).
Issued bootstrap tokens live in data/config/auth-tokens.json.
"""

from __future__ import annotations

import json
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import streamlit as st

logger = logging.getLogger(__name__)

_CONFIG_DIR = Path(__file__).resolve().parent.parent / "data" / "config"
_SESSIONS_FILE = _CONFIG_DIR / "sessions.json"
_TOKENS_FILE = _CONFIG_DIR / "auth-tokens.json"

_DEFAULT_SESSION_HOURS = 24
_TOKEN_HOURS = 1

PROVIDER_ANONYMOUS = "anonymous"
PROVIDER_CUSTOM_TOKEN = "custom_token"


class AuthError(RuntimeError):
    """A bootstrap token was rejected."""


class NotAuthenticatedError(RuntimeError):
    """An operation was attempted without a live session."""


@dataclass
class Session:
    uid: str
    provider: str
    created_at: datetime

    @property
    def is_anonymous(self) -> bool:
        return self.provider == PROVIDER_ANONYMOUS


# ── Internal helpers ─────────────────────────────────────────────────────────


def _load_json(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text())
    except (json.JSONDecodeError, OSError):
        return {}


def _save_json(path: Path, data: dict) -> None:
    _CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))


def _hours_since(ts: str) -> float | None:
    try:
        created = datetime.fromisoformat(ts)
    except (ValueError, TypeError):
        return None
    return (datetime.now(timezone.utc) - created).total_seconds() / 3600


def _create_session(uid: str, provider: str) -> Session:
    now = datetime.now(timezone.utc)
    sessions = _load_json(_SESSIONS_FILE)
    sessions[uid] = {"provider": provider, "created_at": now.isoformat()}
    _save_json(_SESSIONS_FILE, sessions)
    return Session(uid=uid, provider=provider, created_at=now)


# ── Sign-in ──────────────────────────────────────────────────────────────────


def sign_in_anonymously() -> Session:
    """Start a new anonymous session with a fresh uid."""
    session = _create_session(uuid.uuid4().hex, PROVIDER_ANONYMOUS)
    logger.info("Signed in anonymously as %s", session.uid)
    return session


def issue_custom_token(uid: str | None = None) -> str:
    """Issue a short-lived bootstrap token bound to *uid* (new uid if omitted)."""
    token = secrets.token_urlsafe(32)
    tokens = _load_json(_TOKENS_FILE)
    tokens[token] = {
        "uid": uid or uuid.uuid4().hex,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    _save_json(_TOKENS_FILE, tokens)
    return token


def sign_in_with_custom_token(token: str) -> Session:
    """Exchange a bootstrap token for a session. Raises AuthError if rejected."""
    entry = _load_json(_TOKENS_FILE).get(token)
    if not entry or not entry.get("uid"):
        raise AuthError("Invalid custom token.")
    age = _hours_since(entry.get("created_at", ""))
    if age is None or age >= _TOKEN_HOURS:
        raise AuthError("Custom token has expired.")
    session = _create_session(entry["uid"], PROVIDER_CUSTOM_TOKEN)
    logger.info("Signed in with custom token as %s", session.uid)
    return session


def establish_session(bootstrap_token: str = "") -> Session:
    """Sign in with the bootstrap token when given, else anonymously.

    A rejected token falls back to an anonymous session.
    """
    if bootstrap_token:
        try:
            return sign_in_with_custom_token(bootstrap_token)
        except AuthError as exc:
            logger.warning("Custom token sign-in failed (%s); falling back to anonymous", exc)
    return sign_in_anonymously()


# ── Session lookup ───────────────────────────────────────────────────────────


def get_session(uid: str, session_hours: int = _DEFAULT_SESSION_HOURS) -> Session | None:
    """Return the live session for *uid*, or None if unknown or expired."""
    if not uid:
        return None
    entry = _load_json(_SESSIONS_FILE).get(uid)
    if not entry:
        return None
    age = _hours_since(entry.get("created_at", ""))
    if age is None or age >= session_hours:
        return None
    return Session(
        uid=uid,
        provider=entry.get("provider", PROVIDER_ANONYMOUS),
        created_at=datetime.fromisoformat(entry["created_at"]),
    )


def session_is_valid(uid: str, session_hours: int = _DEFAULT_SESSION_HOURS) -> bool:
    return get_session(uid, session_hours) is not None


def sign_out(uid: str) -> None:
    """Drop a session."""
    sessions = _load_json(_SESSIONS_FILE)
    if sessions.pop(uid, None) is not None:
        _save_json(_SESSIONS_FILE, sessions)
        logger.info("Signed out %s", uid)


# ── Streamlit gate ───────────────────────────────────────────────────────────


def require_session(
    bootstrap_token: str = "",
    session_hours: int = _DEFAULT_SESSION_HOURS,
) -> Session:
    """Return the browser's live session, signing in first if needed."""
    uid = st.session_state.get("_auth_uid")
    if uid:
        session = get_session(uid, session_hours)
        if session is not None:
            return session
        st.session_state.pop("_auth_uid", None)

    session = establish_session(bootstrap_token)
    st.session_state["_auth_uid"] = session.uid
    return session


def render_sign_out() -> None:
    """Render a small right-aligned Sign Out button after the nav bar."""
    uid = st.session_state.get("_auth_uid")
    if not uid:
        return
    cols = st.columns([8, 1])
    with cols[1]:
        if st.button("Sign Out", key="_auth_sign_out", type="tertiary"):
            st.session_state.pop("_auth_uid", None)
            sign_out(uid)
            st.rerun()
