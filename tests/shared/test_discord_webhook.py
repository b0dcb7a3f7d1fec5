"""Tests for shared/discord_webhook.py — payload shape and best-effort delivery."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import requests

import shared.usage_tracker as tracker_mod
from shared.discord_webhook import DiscordWebhook, build_new_case_message


class TestBuildMessage:
    def test_payload_shape(self):
        ts = datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc)
        msg = build_new_case_message("case-1", "John Doe", "Theft", "officer-1", timestamp=ts)
        assert msg["username"] == "Arrest Management System"
        assert msg["avatar_url"].startswith("https://placehold.co/")
        embed = msg["embeds"][0]
        assert embed["title"] == "New Arrest Submitted!"
        assert embed["description"] == "A new arrest has been submitted for review."
        assert embed["color"] == 3447003
        assert embed["timestamp"] == ts.isoformat()
        assert embed["footer"] == {"text": "Arrest Management System"}
        assert [f["name"] for f in embed["fields"]] == [
            "Arrested User", "Reason", "Officer ID", "Case ID",
        ]
        assert embed["fields"][0] == {"name": "Arrested User", "value": "John Doe", "inline": True}
        assert embed["fields"][3]["value"] == "case-1"

    def test_long_reason_is_truncated(self):
        msg = build_new_case_message("id1", "John", "x" * 1500, "officer-1")
        values = [f["value"] for f in msg["embeds"][0]["fields"]]
        assert values[1] == "x" * 1000 + "..."
        assert all(0 < len(v) <= 1024 for v in values)

    def test_empty_values_become_na(self):
        msg = build_new_case_message("id1", "", "", "")
        values = [f["value"] for f in msg["embeds"][0]["fields"]]
        assert values == ["N/A", "N/A", "N/A", "id1"]

    def test_custom_sender(self):
        msg = build_new_case_message("c", "u", "r", "o", username="Bot", avatar_url="http://a")
        assert msg["username"] == "Bot"
        assert msg["embeds"][0]["footer"]["text"] == "Bot"


class TestSend:
    def test_success(self):
        hook = DiscordWebhook("https://discord.test/hook")
        resp = MagicMock()
        with patch("shared.discord_webhook.requests.post", return_value=resp) as post:
            result = hook.notify_new_case("case-1", "John Doe", "Theft", "officer-1")
        assert result["success"] is True
        assert post.call_args.args[0] == "https://discord.test/hook"
        assert post.call_args.kwargs["json"]["embeds"][0]["fields"][3]["value"] == "case-1"
        entries = tracker_mod.read_ledger()
        assert entries[0]["service"] == "discord"
        assert entries[0]["case_id"] == "case-1"
        assert entries[0]["ok"] is True

    def test_failure_is_returned_not_raised(self, caplog):
        hook = DiscordWebhook("https://discord.test/hook")
        with patch("shared.discord_webhook.requests.post",
                   side_effect=requests.ConnectionError("refused")):
            result = hook.send({"content": "x"})
        assert result == {"success": False, "error": "refused"}
        assert "Discord notification failed" in caplog.text

    def test_http_error_status(self):
        hook = DiscordWebhook("https://discord.test/hook")
        resp = MagicMock()
        resp.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
        with patch("shared.discord_webhook.requests.post", return_value=resp):
            result = hook.send({"content": "x"})
        assert not result["success"]

    def test_disabled_without_url(self):
        hook = DiscordWebhook("")
        assert not hook.enabled
        with patch("shared.discord_webhook.requests.post") as post:
            result = hook.send({"content": "x"})
        post.assert_not_called()
        assert not result["success"]
