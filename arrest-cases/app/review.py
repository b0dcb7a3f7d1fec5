"""Court staff review: live case list, search/filter, detail view, decisions.

The controller holds one store subscription for its lifetime. Every
snapshot replaces the local list wholesale (re-sorted newest first);
filters are applied on read so changing them never touches the store.
"""

from __future__ import annotations

import logging
import sys as _sys
from pathlib import Path
from typing import Any, MutableMapping

from app import cases as case_model
from app.cases import (
    STATUS_FILTER_ALL,
    ArrestCase,
    CaseStatus,
    CaseValidationError,
    cases_from_documents,
    filter_cases,
    parse_decision,
    parse_status_filter,
    sort_newest_first,
    status_counts,
)
from app.config import Settings
from app.store import CaseStore, CaseStoreError, Subscription
from app.summarizer import SummaryResult, summarize

_sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.auth import NotAuthenticatedError, Session

logger = logging.getLogger(__name__)

MSG_NOT_READY = "Database not ready or user not authenticated. Please wait."

SUCCESS = "success"
ERROR = "error"


class ReviewDashboard:
    def __init__(self, store: CaseStore, session: Session | None):
        self.store = store
        self.session = session
        self.status_filter = STATUS_FILTER_ALL
        self.search_id = ""
        self.search_name = ""
        self.selected_case_id: str | None = None
        self.pending_decision: CaseStatus | None = None
        self.summary: SummaryResult | None = None
        self.message = ""
        self.message_type = ""
        self._cases: list[ArrestCase] = []
        self._subscription: Subscription | None = None

    # -- subscription lifecycle --

    def open(self) -> None:
        """Start listening to the case collection. No-op if already open."""
        if self._subscription is not None:
            return
        if self.session is None or not self.session.uid:
            self._set_message(MSG_NOT_READY, ERROR)
            return
        self._subscription = self.store.subscribe(
            self._on_snapshot, on_error=self._on_error
        )

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    @property
    def is_open(self) -> bool:
        return self._subscription is not None

    def __enter__(self) -> ReviewDashboard:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _on_snapshot(self, docs: list[dict]) -> None:
        self._cases = sort_newest_first(cases_from_documents(docs))

    def _on_error(self, exc: Exception) -> None:
        self._set_message(f"Error loading cases: {exc}", ERROR)

    # -- list view --

    @property
    def cases(self) -> list[ArrestCase]:
        return list(self._cases)

    def visible_cases(self) -> list[ArrestCase]:
        return filter_cases(
            self._cases, self.status_filter, self.search_id, self.search_name
        )

    def set_status_filter(self, status: str) -> None:
        self.status_filter = parse_status_filter(status)

    def set_search_id(self, term: str) -> None:
        self.search_id = term
        if term:
            self.search_name = ""

    def set_search_name(self, term: str) -> None:
        self.search_name = term
        if term:
            self.search_id = ""

    def clear_filters(self) -> None:
        self.status_filter = STATUS_FILTER_ALL
        self.search_id = ""
        self.search_name = ""

    @property
    def has_filters(self) -> bool:
        return bool(
            self.search_id or self.search_name or self.status_filter != STATUS_FILTER_ALL
        )

    def status_counts(self) -> dict[str, int]:
        """Per-status totals over every case, ignoring the active filters."""
        return status_counts(self._cases)

    # -- detail view --

    @property
    def selected_case(self) -> ArrestCase | None:
        if self.selected_case_id is None:
            return None
        for case in self._cases:
            if case.id == self.selected_case_id:
                return case
        return None

    def review_case(self, case_id: str) -> ArrestCase | None:
        """Open the detail view for *case_id*."""
        self.selected_case_id = case_id
        self.pending_decision = None
        self.summary = None
        case = self.selected_case
        if case is None:
            self._set_message(f"Case not found: {case_id}", ERROR)
            self.selected_case_id = None
        return case

    def close_case(self) -> None:
        self.selected_case_id = None
        self.pending_decision = None
        self.summary = None

    def generate_summary(self, settings: Settings) -> SummaryResult | None:
        case = self.selected_case
        if case is None:
            return None
        self.summary = summarize(case, settings)
        return self.summary

    # -- decisions --

    def press_decision(self, decision: str | CaseStatus, notes: str = "") -> bool:
        """Two-step Accept/Deny. The first press arms, a second press confirms.

        Returns True once the decision has been written.
        """
        if self.selected_case_id is None:
            return False
        status = parse_decision(decision)
        if self.pending_decision != status:
            self.pending_decision = status
            return False
        return self.decide(self.selected_case_id, status, notes)

    def cancel_decision(self) -> None:
        self.pending_decision = None

    def decide(self, case_id: str, decision: str | CaseStatus, notes: str = "") -> bool:
        try:
            updated = case_model.decide(self.store, self.session, case_id, decision, notes)
        except NotAuthenticatedError:
            self._set_message(MSG_NOT_READY, ERROR)
            return False
        except (CaseValidationError, CaseStoreError) as e:
            logger.error("Error updating case %s: %s", case_id, e)
            self._set_message(f"Error updating case status: {e}", ERROR)
            return False

        self._set_message(f"Case {case_id} updated to {updated.status.value}.", SUCCESS)
        self.close_case()
        return True

    def save_notes(self, case_id: str, notes: str) -> bool:
        try:
            case_model.save_notes(self.store, self.session, case_id, notes)
        except NotAuthenticatedError:
            self._set_message(MSG_NOT_READY, ERROR)
            return False
        except (CaseValidationError, CaseStoreError) as e:
            logger.error("Error saving notes for case %s: %s", case_id, e)
            self._set_message(f"Error saving notes: {e}", ERROR)
            return False

        self._set_message(f"Notes saved for case {case_id}.", SUCCESS)
        return True

    # -- banner --

    def _set_message(self, text: str, kind: str) -> None:
        self.message = text
        self.message_type = kind

    def dismiss_message(self) -> None:
        self.message = ""
        self.message_type = ""


# Widget keys the dashboard binds to the controller's filters.
FILTER_WIDGET_DEFAULTS = {"status_filter": STATUS_FILTER_ALL, "search_id": "", "search_name": ""}


def dashboard_for_session(
    state: MutableMapping[str, Any], store: CaseStore, session: Session
) -> ReviewDashboard:
    """Return the controller kept in *state*, rebuilding it if the session changed.

    A rebuilt controller starts with no filters, so the filter widget values
    in *state* are reset to match.
    """
    review = state.get("review")
    if review is not None and review.session is not None and review.session.uid == session.uid:
        return review
    if review is not None:
        review.close()
    review = ReviewDashboard(store, session)
    state["review"] = review
    state.update(FILTER_WIDGET_DEFAULTS)
    return review
