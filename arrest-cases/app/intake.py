"""Officer intake: form state, validation, persistence, notification."""

from __future__ import annotations

import logging
import sys as _sys
from dataclasses import dataclass, field
from pathlib import Path

from app.cases import (
    CHARGES_LIST,
    CaseValidationError,
    join_charges,
    new_case_document,
    search_charges,
)
from app.store import CaseStore, CaseStoreError

_sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.auth import Session
from shared.discord_webhook import DiscordWebhook

logger = logging.getLogger(__name__)

MSG_NOT_READY = "Database not ready or user not authenticated. Please wait."
MSG_SUBMITTED = "Arrest submitted successfully!"


@dataclass
class IntakeForm:
    """Raw officer input. Comma-separated fields are split on submit."""

    arrested_user: str = ""
    charges: list[str] = field(default_factory=list)
    reason_text: str = ""
    evidence_urls: str = ""
    court_dates_availability: str = ""
    context_of_incident: str = ""

    @property
    def reason(self) -> str:
        """Selected charges joined by ", ", or the free-text reason if none."""
        if self.charges:
            return join_charges(self.charges)
        return self.reason_text

    def add_charge(self, charge: str) -> bool:
        if charge not in CHARGES_LIST or charge in self.charges:
            return False
        self.charges.append(charge)
        return True

    def remove_charge(self, charge: str) -> bool:
        if charge not in self.charges:
            return False
        self.charges.remove(charge)
        return True

    def available_charges(self, term: str = "") -> list[str]:
        return search_charges(term, self.charges)

    def clear(self) -> None:
        self.arrested_user = ""
        self.charges = []
        self.reason_text = ""
        self.evidence_urls = ""
        self.court_dates_availability = ""
        self.context_of_incident = ""


@dataclass
class SubmitResult:
    success: bool
    message: str
    case_id: str | None = None
    notified: bool = False
    failure: str = ""  # "not_ready", "validation" or "store"


class IntakeController:
    def __init__(
        self,
        store: CaseStore,
        session: Session | None,
        webhook: DiscordWebhook | None = None,
    ):
        self.store = store
        self.session = session
        self.webhook = webhook

    def submit(self, form: IntakeForm) -> SubmitResult:
        """Validate and persist *form*, then notify. Clears the form on success.

        On any failure the form is left untouched and nothing is sent.
        """
        if self.session is None or not self.session.uid:
            return SubmitResult(False, MSG_NOT_READY, failure="not_ready")

        try:
            doc = new_case_document(
                officer_id=self.session.uid,
                arrested_user=form.arrested_user,
                reason=form.reason,
                evidence_urls=form.evidence_urls,
                court_dates_availability=form.court_dates_availability,
                context_of_incident=form.context_of_incident,
            )
        except CaseValidationError as e:
            return SubmitResult(False, str(e), failure="validation")

        try:
            case_id = self.store.add(doc)
        except CaseStoreError as e:
            logger.error("Error adding arrest: %s", e)
            return SubmitResult(False, f"Error submitting arrest: {e}", failure="store")

        notified = False
        if self.webhook is not None and self.webhook.enabled:
            result = self.webhook.notify_new_case(
                case_id, doc["arrestedUser"], doc["reason"], doc["officerId"]
            )
            notified = result["success"]

        form.clear()
        return SubmitResult(True, MSG_SUBMITTED, case_id=case_id, notified=notified)
