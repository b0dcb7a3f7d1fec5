"""Case record schema, status lifecycle, and dashboard filter rules.

A case starts in ``Pending Review`` and is moved to ``Accepted`` or
``Denied`` by a reviewer. The transition itself does not check the
current status: deciding an already-decided case overwrites the
reviewer, notes and review date. Only the dashboard hides the controls.
"""

from __future__ import annotations

import logging
import sys as _sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

from app.store import SERVER_TIMESTAMP, CaseStore

_sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.auth import NotAuthenticatedError, Session

logger = logging.getLogger(__name__)

# ── Status ───────────────────────────────────────────────────────────────────


class CaseStatus(str, Enum):
    PENDING_REVIEW = "Pending Review"
    ACCEPTED = "Accepted"
    DENIED = "Denied"


STATUS_FILTER_ALL = "All"
STATUS_FILTERS: list[str] = [STATUS_FILTER_ALL] + [s.value for s in CaseStatus]
DECISIONS: tuple[CaseStatus, ...] = (CaseStatus.ACCEPTED, CaseStatus.DENIED)

NOT_PROVIDED = "None provided."


class CaseValidationError(ValueError):
    """Input rejected before anything is written."""


# ── Charge catalogue ─────────────────────────────────────────────────────────

CHARGES_LIST: list[str] = [
    "Murder - 1.2-01 [CLASS 2 FELONY]",
    "Involuntary Manslaughter - 1.2-02 [CLASS 5 FELONY]",
    "Assault - 1.3-01 [CLASS 3 MISDEMEANOR]",
    "Battery - 1.3-02 [CLASS 2 MISDEMEANOR]",
    "Theft - 2.1-01 [CLASS 4 FELONY]",
    "Burglary - 2.2-01 [CLASS 3 FELONY]",
    "Drug Possession - 3.1-01 [CLASS 1 MISDEMEANOR]",
    "Drug Distribution - 3.1-02 [CLASS 2 FELONY]",
    "DUI - 4.1-01 [CLASS 1 MISDEMEANOR]",
    "Reckless Driving - 4.2-01 [CLASS 2 MISDEMEANOR]",
    "Fraud - 5.1-01 [CLASS 4 FELONY]",
    "Identity Theft - 5.2-01 [CLASS 3 FELONY]",
    "Domestic Violence - 6.1-01 [CLASS 2 MISDEMEANOR]",
    "Harassment - 6.2-01 [CLASS 3 MISDEMEANOR]",
    "Vandalism - 7.1-01 [CLASS 1 MISDEMEANOR]",
]


def search_charges(term: str, selected: Iterable[str] = ()) -> list[str]:
    """Return catalogue charges containing *term*, minus those already selected."""
    needle = term.strip().lower()
    chosen = set(selected)
    return [c for c in CHARGES_LIST if needle in c.lower() and c not in chosen]


def join_charges(charges: Iterable[str]) -> str:
    return ", ".join(charges)


def parse_charges(reason: str) -> list[str]:
    """Split a stored reason back into its individual charges."""
    return split_list(reason)


SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"


def charge_severity(charge: str) -> str:
    """CLASS 1-2 felonies rank high, other felonies medium, everything else low."""
    if "FELONY" not in charge:
        return SEVERITY_LOW
    if "CLASS 1" in charge or "CLASS 2" in charge:
        return SEVERITY_HIGH
    return SEVERITY_MEDIUM


# ── Record ───────────────────────────────────────────────────────────────────


@dataclass
class ArrestCase:
    """One arrest submission and its review outcome."""

    id: str
    officer_id: str
    arrested_user: str
    reason: str
    evidence_urls: list[str] = field(default_factory=list)
    court_dates_availability: list[str] = field(default_factory=list)
    context_of_incident: str = ""
    status: CaseStatus = CaseStatus.PENDING_REVIEW
    submission_date: datetime | None = None
    court_staff_notes: str = ""
    review_date: datetime | None = None
    reviewer_id: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == CaseStatus.PENDING_REVIEW

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> ArrestCase:
        """Build a case from a stored document (camelCase keys plus ``id``).

        Raises CaseValidationError if the stored status is not a known one.
        """
        raw_status = doc.get("status", CaseStatus.PENDING_REVIEW.value)
        try:
            status = CaseStatus(raw_status)
        except ValueError:
            raise CaseValidationError(
                f"Case {doc.get('id')} has unknown status {raw_status!r}"
            ) from None
        dates = doc.get("courtDatesAvailability") or []
        if isinstance(dates, str):
            dates = [dates]
        return cls(
            id=doc["id"],
            officer_id=doc.get("officerId", ""),
            arrested_user=doc.get("arrestedUser", ""),
            reason=doc.get("reason", ""),
            evidence_urls=list(doc.get("evidenceUrls") or []),
            court_dates_availability=list(dates),
            context_of_incident=doc.get("contextOfIncident") or "",
            status=status,
            submission_date=doc.get("submissionDate"),
            court_staff_notes=doc.get("courtStaffNotes") or "",
            review_date=doc.get("reviewDate"),
            reviewer_id=doc.get("reviewerId"),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "officerId": self.officer_id,
            "arrestedUser": self.arrested_user,
            "reason": self.reason,
            "evidenceUrls": list(self.evidence_urls),
            "courtDatesAvailability": list(self.court_dates_availability),
            "contextOfIncident": self.context_of_incident,
            "status": self.status.value,
            "submissionDate": self.submission_date,
            "courtStaffNotes": self.court_staff_notes,
            "reviewDate": self.review_date,
            "reviewerId": self.reviewer_id,
        }


def cases_from_documents(docs: Iterable[dict[str, Any]]) -> list[ArrestCase]:
    """Convert stored documents, skipping (and logging) any that do not parse."""
    cases = []
    for doc in docs:
        try:
            cases.append(ArrestCase.from_document(doc))
        except CaseValidationError as e:
            logger.warning("Skipping unreadable case record: %s", e)
    return cases


# ── Field derivation ─────────────────────────────────────────────────────────


def split_list(text: str | None) -> list[str]:
    """Split comma-separated input, trim each item, and drop empties.

    ``" a, b ,,c "`` -> ``["a", "b", "c"]``
    """
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


def new_case_document(
    officer_id: str,
    arrested_user: str,
    reason: str,
    evidence_urls: str = "",
    court_dates_availability: str = "",
    context_of_incident: str = "",
) -> dict[str, Any]:
    """Assemble the document for a fresh submission.

    Raises CaseValidationError if the arrested user or reason is blank.
    """
    arrested_user = (arrested_user or "").strip()
    reason = (reason or "").strip()
    if not arrested_user or not reason:
        raise CaseValidationError("Arrested User and Reason are required.")
    return {
        "officerId": officer_id,
        "arrestedUser": arrested_user,
        "reason": reason,
        "evidenceUrls": split_list(evidence_urls),
        "courtDatesAvailability": split_list(court_dates_availability),
        "contextOfIncident": (context_of_incident or "").strip(),
        "status": CaseStatus.PENDING_REVIEW.value,
        "submissionDate": SERVER_TIMESTAMP,
        "courtStaffNotes": "",
        "reviewDate": None,
        "reviewerId": None,
    }


# ── Transitions ──────────────────────────────────────────────────────────────


def _require_session(session: Session | None) -> Session:
    if session is None or not session.uid:
        raise NotAuthenticatedError(
            "Database not ready or user not authenticated. Please wait."
        )
    return session


def parse_decision(decision: str | CaseStatus) -> CaseStatus:
    try:
        status = CaseStatus(decision)
    except ValueError:
        status = None
    if status not in DECISIONS:
        raise CaseValidationError(
            f"Invalid decision '{decision}'. Must be one of: "
            f"{', '.join(d.value for d in DECISIONS)}"
        )
    return status


def decide(
    store: CaseStore,
    session: Session | None,
    case_id: str,
    decision: str | CaseStatus,
    notes: str = "",
) -> ArrestCase:
    """Record a reviewer's decision on a case.

    Sets status, notes, reviewer and review date in one document write.
    Store failures propagate as CaseStoreError; nothing is retried.
    """
    session = _require_session(session)
    status = parse_decision(decision)
    doc = store.update(case_id, {
        "status": status.value,
        "courtStaffNotes": notes,
        "reviewDate": SERVER_TIMESTAMP,
        "reviewerId": session.uid,
    })
    return ArrestCase.from_document(doc)


def save_notes(
    store: CaseStore,
    session: Session | None,
    case_id: str,
    notes: str,
) -> ArrestCase:
    """Update court staff notes without touching the review outcome."""
    _require_session(session)
    doc = store.update(case_id, {"courtStaffNotes": notes})
    return ArrestCase.from_document(doc)


# ── Ordering and filtering ───────────────────────────────────────────────────

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(case: ArrestCase) -> datetime:
    ts = case.submission_date
    if ts is None:
        return _EPOCH
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def sort_newest_first(cases: Iterable[ArrestCase]) -> list[ArrestCase]:
    """Order by submission date, newest first; undated cases sort last."""
    return sorted(cases, key=_sort_key, reverse=True)


def parse_status_filter(value: str | None) -> str:
    """Validate a status filter value; None and "" mean "All"."""
    if not value:
        return STATUS_FILTER_ALL
    if value not in STATUS_FILTERS:
        raise CaseValidationError(
            f"Invalid status filter '{value}'. Must be one of: {', '.join(STATUS_FILTERS)}"
        )
    return value


def filter_cases(
    cases: Iterable[ArrestCase],
    status_filter: str = STATUS_FILTER_ALL,
    search_id: str = "",
    search_name: str = "",
) -> list[ArrestCase]:
    """Apply the dashboard search and status filter, preserving order.

    A non-empty id term wins over the name term. Both are case-insensitive
    substring matches. The status filter applies last unless it is "All".
    """
    result = list(cases)
    if search_id:
        term = search_id.lower()
        result = [c for c in result if term in c.id.lower()]
    elif search_name:
        term = search_name.lower()
        result = [c for c in result if term in c.arrested_user.lower()]

    if status_filter != STATUS_FILTER_ALL:
        result = [c for c in result if c.status.value == status_filter]
    return result


def status_counts(cases: Iterable[ArrestCase]) -> dict[str, int]:
    """Totals per status, e.g. ``{"total": 5, "pending": 2, "accepted": 2, "denied": 1}``."""
    counts = {"total": 0, "pending": 0, "accepted": 0, "denied": 0}
    keys = {
        CaseStatus.PENDING_REVIEW: "pending",
        CaseStatus.ACCEPTED: "accepted",
        CaseStatus.DENIED: "denied",
    }
    for case in cases:
        counts["total"] += 1
        counts[keys[case.status]] += 1
    return counts


def format_timestamp(ts: datetime | None) -> str:
    """Human-readable timestamp, e.g. ``January 15, 2024 at 02:30 PM``."""
    if ts is None:
        return "N/A"
    return ts.strftime("%B %d, %Y at %I:%M %p")


# ── Demo data ────────────────────────────────────────────────────────────────


def _days_ago(days: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


DEMO_CASES: list[dict[str, Any]] = [
    {
        "officerId": "officer-badge-1234",
        "arrestedUser": "John Doe",
        "reason": "Theft - 2.1-01 [CLASS 4 FELONY], Vandalism - 7.1-01 [CLASS 1 MISDEMEANOR]",
        "contextOfIncident": (
            "Responded to a theft report at Main Street Store. Security footage "
            "showed the suspect concealing merchandise and bypassing checkout. "
            "Suspect was apprehended in the parking lot with merchandise valued "
            "at $450 and admitted to spray-painting the store's exterior wall."
        ),
        "evidenceUrls": [
            "Security camera footage from Main Street Store",
            "Witness statements from store clerk and customer",
            "Recovered merchandise valued at $450",
        ],
        "courtDatesAvailability": ["2024-02-15"],
        "status": CaseStatus.PENDING_REVIEW.value,
        "age_days": 0,
        "courtStaffNotes": "",
    },
    {
        "officerId": "officer-badge-5678",
        "arrestedUser": "Jane Smith",
        "reason": "DUI - 4.1-01 [CLASS 1 MISDEMEANOR]",
        "contextOfIncident": (
            "Traffic stop on Highway 83 after the vehicle was observed swerving "
            "between lanes. Field sobriety tests failed; breathalyzer showed a "
            "BAC of 0.12."
        ),
        "evidenceUrls": [
            "Breathalyzer results showing 0.12 BAC",
            "Field sobriety test video",
            "Officer body cam footage",
        ],
        "courtDatesAvailability": ["2024-02-20"],
        "status": CaseStatus.ACCEPTED.value,
        "age_days": 1,
        "courtStaffNotes": "Case reviewed and approved for prosecution. All evidence properly documented.",
    },
    {
        "officerId": "officer-badge-9012",
        "arrestedUser": "Bob Johnson",
        "reason": "Assault - 1.3-01 [CLASS 3 MISDEMEANOR]",
        "contextOfIncident": (
            "Disturbance call at Murphy's Bar. Witnesses reported the suspect "
            "struck another patron during an argument; the victim was treated "
            "by paramedics."
        ),
        "evidenceUrls": [
            "Medical reports from victim",
            "Witness testimony from 3 bystanders",
            "Photos of injuries",
        ],
        "courtDatesAvailability": ["2024-02-25"],
        "status": CaseStatus.DENIED.value,
        "age_days": 2,
        "courtStaffNotes": "Insufficient evidence to proceed. Witness statements are contradictory.",
    },
    {
        "officerId": "officer-badge-3456",
        "arrestedUser": "Alice Williams",
        "reason": "Drug Possession - 3.1-01 [CLASS 1 MISDEMEANOR]",
        "contextOfIncident": (
            "Routine traffic stop for speeding on Elm Street. Odor of marijuana "
            "gave probable cause for a search; 2.3 grams recovered from the "
            "center console."
        ),
        "evidenceUrls": [
            "Recovered substance tested positive for marijuana (2.3g)",
            "Search warrant documentation",
        ],
        "courtDatesAvailability": ["2024-03-01"],
        "status": CaseStatus.PENDING_REVIEW.value,
        "age_days": 0.5,
        "courtStaffNotes": "",
    },
    {
        "officerId": "officer-badge-7890",
        "arrestedUser": "Michael Brown",
        "reason": "Burglary - 2.2-01 [CLASS 3 FELONY], Theft - 2.1-01 [CLASS 4 FELONY]",
        "contextOfIncident": (
            "Silent alarm at Johnson Electronics. Suspect observed exiting "
            "through a broken rear window carrying equipment and apprehended "
            "after a brief foot pursuit."
        ),
        "evidenceUrls": [
            "Fingerprints on broken window",
            "Stolen items found in suspect's vehicle",
            "Neighbor security footage",
        ],
        "courtDatesAvailability": ["2024-03-05"],
        "status": CaseStatus.ACCEPTED.value,
        "age_days": 3,
        "courtStaffNotes": "Strong evidence case. Recommend proceeding with full charges.",
    },
]


def seed_demo_cases(store: CaseStore, reviewer_id: str = "demo-reviewer") -> int:
    """Populate an empty collection with the demo cases. Returns count added."""
    if not store.is_empty():
        return 0
    for demo in DEMO_CASES:
        doc = {k: v for k, v in demo.items() if k != "age_days"}
        doc["submissionDate"] = _days_ago(demo["age_days"])
        decided = doc["status"] != CaseStatus.PENDING_REVIEW.value
        doc["reviewDate"] = doc["submissionDate"] + timedelta(hours=6) if decided else None
        doc["reviewerId"] = reviewer_id if decided else None
        store.add(doc)
    return len(DEMO_CASES)
