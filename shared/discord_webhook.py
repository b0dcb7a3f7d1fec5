"""Outbound Discord webhook notifications.

Delivery is best-effort: send() never raises. Callers get a result dict
with "success" and "message" or "error" keys, and failures are logged.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import requests

logger = logging.getLogger(__name__)

DEFAULT_USERNAME = "Arrest Management System"
DEFAULT_AVATAR_URL = "https://placehold.co/128x128/007bff/ffffff?text=AMS"

NEW_CASE_TITLE = "New Arrest Submitted!"
NEW_CASE_DESCRIPTION = "A new arrest has been submitted for review."
NEW_CASE_COLOR = 3447003  # blue

# Discord rejects embed field values that are empty or over 1024 characters.
FIELD_VALUE_LIMIT = 1000


def _field_value(text: str | None) -> str:
    if not text:
        return "N/A"
    if len(text) > FIELD_VALUE_LIMIT:
        return text[:FIELD_VALUE_LIMIT] + "..."
    return text


def build_new_case_message(
    case_id: str,
    arrested_user: str,
    reason: str,
    officer_id: str,
    *,
    username: str = DEFAULT_USERNAME,
    avatar_url: str = DEFAULT_AVATAR_URL,
    timestamp: datetime | None = None,
) -> dict:
    """Build the webhook JSON body announcing a new case."""
    ts = timestamp or datetime.now(timezone.utc)
    return {
        "username": username,
        "avatar_url": avatar_url,
        "embeds": [
            {
                "title": NEW_CASE_TITLE,
                "description": NEW_CASE_DESCRIPTION,
                "color": NEW_CASE_COLOR,
                "fields": [
                    {"name": "Arrested User", "value": _field_value(arrested_user), "inline": True},
                    {"name": "Reason", "value": _field_value(reason), "inline": True},
                    {"name": "Officer ID", "value": _field_value(officer_id)},
                    {"name": "Case ID", "value": _field_value(case_id)},
                ],
                "timestamp": ts.isoformat(),
                "footer": {"text": username},
            }
        ],
    }


class DiscordWebhook:
    """A configured webhook endpoint."""

    def __init__(
        self,
        url: str,
        username: str = DEFAULT_USERNAME,
        avatar_url: str = DEFAULT_AVATAR_URL,
        timeout: int = 10,
    ):
        self.url = url
        self.username = username
        self.avatar_url = avatar_url
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def notify_new_case(
        self, case_id: str, arrested_user: str, reason: str, officer_id: str
    ) -> dict:
        payload = build_new_case_message(
            case_id,
            arrested_user,
            reason,
            officer_id,
            username=self.username,
            avatar_url=self.avatar_url,
        )
        return self.send(payload, case_id=case_id)

    def send(self, payload: dict, case_id: str = "") -> dict:
        """POST *payload* to the webhook.

        Returns:
            dict with "success" (bool) and "message" or "error" keys.
        """
        if not self.enabled:
            return {"success": False, "error": "Webhook URL is not configured."}
        try:
            resp = requests.post(self.url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error("Discord notification failed: %s", e)
            self._record(case_id, ok=False, error=str(e))
            return {"success": False, "error": str(e)}

        logger.info("Discord notification sent (%s)", case_id or "no case")
        self._record(case_id, ok=True)
        return {"success": True, "message": "Discord notification sent."}

    def _record(self, case_id: str, ok: bool, error: str = "") -> None:
        try:
            from shared.usage_tracker import record_notification

            record_notification(case_id, ok, error)
        except OSError:
            logger.exception("Could not record webhook usage")
