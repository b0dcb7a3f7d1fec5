"""Process-wide composition: settings, store and webhook built once."""

from __future__ import annotations

import logging
import sys as _sys
from dataclasses import dataclass
from pathlib import Path

from app.cases import seed_demo_cases
from app.config import Settings, get_settings
from app.store import CaseStore

_sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.discord_webhook import DiscordWebhook

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    store: CaseStore
    webhook: DiscordWebhook


def build_context(settings: Settings | None = None) -> AppContext:
    settings = settings or get_settings()
    store = CaseStore(settings.data_dir, settings.app_id)
    webhook = DiscordWebhook(
        settings.discord_webhook_url,
        username=settings.webhook_username,
        avatar_url=settings.webhook_avatar_url,
    )
    if not webhook.enabled:
        logger.info("Discord webhook URL not set; new-case notifications disabled")
    if settings.seed_demo_data:
        added = seed_demo_cases(store)
        if added:
            logger.info("Seeded %d demo cases into %s", added, settings.app_id)
    return AppContext(settings=settings, store=store, webhook=webhook)
