"""Ledger of outbound calls made while handling arrest cases.

Every Gemini summary request and every Discord new-case notification
appends one entry, keyed by the case it was made for. The dashboard and
the API read back a per-month roll-up of summary spend and notification
failures.

Stored as a JSON list in data/config/api-usage.json. Entries older than
``RETENTION_DAYS`` are dropped whenever the ledger is written.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path

_CONFIG_DIR = Path(__file__).resolve().parent.parent / "data" / "config"
_LEDGER_FILE = _CONFIG_DIR / "api-usage.json"

RETENTION_DAYS = 90

SERVICE_GEMINI = "gemini"
SERVICE_DISCORD = "discord"

# USD per million tokens, (prompt, output)
GEMINI_RATES = {
    "gemini-2.0-flash": (0.10, 0.40),
    "gemini-2.0-flash-lite": (0.075, 0.30),
    "gemini-2.5-flash": (0.30, 2.50),
}
_FALLBACK_RATE_MODEL = "gemini-2.0-flash"


def read_ledger() -> list[dict]:
    """All retained entries, oldest first. A missing or unreadable file reads as empty."""
    try:
        entries = json.loads(_LEDGER_FILE.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return []
    return entries if isinstance(entries, list) else []


def _append(entry: dict) -> None:
    cutoff = (datetime.now() - timedelta(days=RETENTION_DAYS)).isoformat()
    kept = [e for e in read_ledger() if e.get("at", "") >= cutoff]
    kept.append(entry)
    _CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    _LEDGER_FILE.write_text(json.dumps(kept, indent=2), encoding="utf-8")


def summary_cost(model: str, prompt_tokens: int, output_tokens: int) -> float:
    prompt_rate, output_rate = GEMINI_RATES.get(model, GEMINI_RATES[_FALLBACK_RATE_MODEL])
    return (prompt_tokens * prompt_rate + output_tokens * output_rate) / 1_000_000


def record_summary_call(
    case_id: str, model: str, prompt_tokens: int = 0, output_tokens: int = 0
) -> None:
    _append({
        "at": datetime.now().isoformat(timespec="seconds"),
        "service": SERVICE_GEMINI,
        "case_id": case_id,
        "ok": True,
        "model": model,
        "prompt_tokens": prompt_tokens,
        "output_tokens": output_tokens,
        "cost_usd": round(summary_cost(model, prompt_tokens, output_tokens), 6),
    })


def record_notification(case_id: str, ok: bool, error: str = "") -> None:
    entry = {
        "at": datetime.now().isoformat(timespec="seconds"),
        "service": SERVICE_DISCORD,
        "case_id": case_id,
        "ok": ok,
    }
    if error:
        entry["error"] = error
    _append(entry)


def monthly_summary(year: int | None = None, month: int | None = None) -> dict:
    """Roll up one month (default: the current one) by service."""
    now = datetime.now()
    prefix = f"{year or now.year}-{(month or now.month):02d}"
    gemini = {"calls": 0, "prompt_tokens": 0, "output_tokens": 0, "cost_usd": 0.0}
    discord = {"sent": 0, "failed": 0}

    for e in read_ledger():
        if not e.get("at", "").startswith(prefix):
            continue
        if e.get("service") == SERVICE_GEMINI:
            gemini["calls"] += 1
            gemini["prompt_tokens"] += e.get("prompt_tokens", 0)
            gemini["output_tokens"] += e.get("output_tokens", 0)
            gemini["cost_usd"] += e.get("cost_usd", 0.0)
        elif e.get("service") == SERVICE_DISCORD:
            discord["sent" if e.get("ok") else "failed"] += 1

    gemini["cost_usd"] = round(gemini["cost_usd"], 6)
    return {"month": prefix, SERVICE_GEMINI: gemini, SERVICE_DISCORD: discord}
