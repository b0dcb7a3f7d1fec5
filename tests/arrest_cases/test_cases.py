"""Tests for arrest-cases/app/cases.py — lifecycle, derivation, filtering."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.cases import (
    CHARGES_LIST,
    DEMO_CASES,
    STATUS_FILTERS,
    ArrestCase,
    CaseStatus,
    CaseValidationError,
    cases_from_documents,
    charge_severity,
    decide,
    filter_cases,
    format_timestamp,
    join_charges,
    new_case_document,
    parse_charges,
    parse_status_filter,
    save_notes,
    search_charges,
    seed_demo_cases,
    sort_newest_first,
    split_list,
    status_counts,
)
from app.store import SERVER_TIMESTAMP, CaseNotFoundError
from shared.auth import NotAuthenticatedError


def _case(case_id: str, name: str = "X", status: CaseStatus = CaseStatus.PENDING_REVIEW,
          submitted: datetime | None = None) -> ArrestCase:
    return ArrestCase(
        id=case_id, officer_id="o", arrested_user=name, reason="r",
        status=status, submission_date=submitted,
    )


# ── Field derivation ─────────────────────────────────────────────────────


class TestSplitList:
    def test_trims_and_drops_empties(self):
        assert split_list(" a, b ,,c ") == ["a", "b", "c"]

    def test_empty_and_none(self):
        assert split_list("") == []
        assert split_list(None) == []
        assert split_list(" , ,") == []

    def test_preserves_order(self):
        assert split_list("z,y,x") == ["z", "y", "x"]


class TestNewCaseDocument:
    def test_initial_state(self):
        doc = new_case_document("officer-1", "John Doe", "Theft", "a, ,b", "2024-02-15,")
        assert doc["status"] == "Pending Review"
        assert doc["reviewDate"] is None
        assert doc["reviewerId"] is None
        assert doc["courtStaffNotes"] == ""
        assert doc["submissionDate"] is SERVER_TIMESTAMP
        assert doc["evidenceUrls"] == ["a", "b"]
        assert doc["courtDatesAvailability"] == ["2024-02-15"]

    def test_trims_required_fields(self):
        doc = new_case_document("o", "  Jane  ", "  DUI ")
        assert doc["arrestedUser"] == "Jane"
        assert doc["reason"] == "DUI"

    @pytest.mark.parametrize("user,reason", [("", "Theft"), ("John", ""), ("   ", "x"), ("x", "  ")])
    def test_missing_required_raises(self, user, reason):
        with pytest.raises(CaseValidationError, match="Arrested User and Reason are required."):
            new_case_document("o", user, reason)


class TestArrestCaseDocument:
    def test_from_document_defaults(self):
        case = ArrestCase.from_document({"id": "c1", "arrestedUser": "A", "reason": "R"})
        assert case.status == CaseStatus.PENDING_REVIEW
        assert case.evidence_urls == []
        assert case.is_pending

    def test_single_date_string_becomes_list(self):
        case = ArrestCase.from_document({"id": "c1", "courtDatesAvailability": "2024-03-01"})
        assert case.court_dates_availability == ["2024-03-01"]

    def test_to_document_uses_wire_names(self):
        doc = _case("c1", status=CaseStatus.DENIED).to_document()
        assert doc["status"] == "Denied"
        assert doc["arrestedUser"] == "X"
        assert "officerId" in doc and "courtStaffNotes" in doc

    def test_unknown_status_rejected(self):
        with pytest.raises(CaseValidationError, match="unknown status 'Closed'"):
            ArrestCase.from_document({"id": "c1", "status": "Closed"})

    def test_unreadable_records_skipped(self, caplog):
        cases = cases_from_documents([
            {"id": "good", "status": "Accepted"},
            {"id": "bad", "status": "Closed"},
        ])
        assert [c.id for c in cases] == ["good"]
        assert "Skipping unreadable case record" in caplog.text


# ── Charges ──────────────────────────────────────────────────────────────


class TestCharges:
    def test_catalogue_size(self):
        assert len(CHARGES_LIST) == 15
        assert "Theft - 2.1-01 [CLASS 4 FELONY]" in CHARGES_LIST

    def test_search_case_insensitive(self):
        results = search_charges("THEFT")
        assert "Theft - 2.1-01 [CLASS 4 FELONY]" in results
        assert "Identity Theft - 5.2-01 [CLASS 3 FELONY]" in results

    def test_search_excludes_selected(self):
        results = search_charges("theft", ["Theft - 2.1-01 [CLASS 4 FELONY]"])
        assert results == ["Identity Theft - 5.2-01 [CLASS 3 FELONY]"]

    def test_empty_term_returns_all(self):
        assert search_charges("") == CHARGES_LIST

    def test_join(self):
        assert join_charges(["A", "B"]) == "A, B"

    def test_parse_charges_round_trips_join(self):
        reason = "Murder - 1.2-01 [CLASS 2 FELONY], DUI - 4.1-01 [CLASS 1 MISDEMEANOR]"
        assert parse_charges(reason) == [
            "Murder - 1.2-01 [CLASS 2 FELONY]", "DUI - 4.1-01 [CLASS 1 MISDEMEANOR]",
        ]
        assert parse_charges("") == []

    @pytest.mark.parametrize("charge, severity", [
        ("Murder - 1.2-01 [CLASS 2 FELONY]", "high"),
        ("Theft - 2.1-01 [CLASS 4 FELONY]", "medium"),
        ("Involuntary Manslaughter - 1.2-02 [CLASS 5 FELONY]", "medium"),
        ("DUI - 4.1-01 [CLASS 1 MISDEMEANOR]", "low"),
        ("Shoplifting", "low"),
    ])
    def test_charge_severity(self, charge, severity):
        assert charge_severity(charge) == severity


# ── Decide / save notes ──────────────────────────────────────────────────


class TestDecide:
    def test_accept_sets_review_fields(self, store, session, add_case):
        case_id = add_case()
        decide(store, session, case_id, CaseStatus.ACCEPTED, "ok")
        doc = store.get(case_id)
        assert doc["status"] == "Accepted"
        assert doc["courtStaffNotes"] == "ok"
        assert doc["reviewerId"] == session.uid
        assert doc["reviewDate"] is not None

    def test_accepts_plain_string(self, store, session, add_case):
        case_id = add_case()
        case = decide(store, session, case_id, "Denied", "no")
        assert case.status == CaseStatus.DENIED

    def test_review_date_after_submission(self, store, session, add_case):
        case_id = add_case()
        case = decide(store, session, case_id, "Accepted")
        assert case.review_date > case.submission_date

    def test_redeciding_overwrites(self, store, session, add_case):
        case_id = add_case()
        decide(store, session, case_id, "Accepted", "first")
        case = decide(store, session, case_id, "Denied", "second")
        assert case.status == CaseStatus.DENIED
        assert case.court_staff_notes == "second"

    @pytest.mark.parametrize("bad", ["Pending Review", "Maybe", ""])
    def test_invalid_decision(self, store, session, add_case, bad):
        case_id = add_case()
        with pytest.raises(CaseValidationError):
            decide(store, session, case_id, bad)
        assert store.get(case_id)["status"] == "Pending Review"

    def test_requires_session(self, store, add_case):
        case_id = add_case()
        with pytest.raises(NotAuthenticatedError):
            decide(store, None, case_id, "Accepted")
        assert store.get(case_id)["reviewerId"] is None

    def test_missing_case(self, store, session):
        with pytest.raises(CaseNotFoundError):
            decide(store, session, "missing", "Accepted")


class TestSaveNotes:
    def test_only_notes_change(self, store, session, add_case):
        case_id = add_case()
        case = save_notes(store, session, case_id, "call back Tuesday")
        assert case.court_staff_notes == "call back Tuesday"
        assert case.status == CaseStatus.PENDING_REVIEW
        assert case.review_date is None
        assert case.reviewer_id is None


# ── Sorting and filtering ────────────────────────────────────────────────


class TestSortNewestFirst:
    def test_descending(self):
        t1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
        t2, t3 = t1 + timedelta(hours=1), t1 + timedelta(hours=2)
        ordered = sort_newest_first([_case("a", submitted=t1), _case("c", submitted=t3),
                                     _case("b", submitted=t2)])
        assert [c.id for c in ordered] == ["c", "b", "a"]

    def test_undated_last(self):
        t1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
        ordered = sort_newest_first([_case("none"), _case("dated", submitted=t1)])
        assert [c.id for c in ordered] == ["dated", "none"]


class TestFilterCases:
    def setup_method(self):
        self.cases = [
            _case("A1", "John Doe", CaseStatus.ACCEPTED),
            _case("A2", "Jane Smith", CaseStatus.PENDING_REVIEW),
            _case("B1", "Bob Johnson", CaseStatus.ACCEPTED),
        ]

    def test_id_substring_case_insensitive(self):
        result = filter_cases(self.cases, search_id="a")
        assert {c.id for c in result} == {"A1", "A2"}

    def test_id_term_wins_over_name(self):
        result = filter_cases(self.cases, search_id="b1", search_name="jane")
        assert [c.id for c in result] == ["B1"]

    def test_name_substring(self):
        result = filter_cases(self.cases, search_name="JOHN")
        assert {c.id for c in result} == {"A1", "B1"}

    def test_status_applied_after_search(self):
        result = filter_cases(self.cases, status_filter="Accepted", search_id="a")
        assert [c.id for c in result] == ["A1"]

    def test_all_keeps_everything_in_order(self):
        assert filter_cases(self.cases) == self.cases

    def test_parse_status_filter(self):
        assert parse_status_filter("") == "All"
        assert parse_status_filter("Denied") == "Denied"
        assert STATUS_FILTERS[0] == "All"
        with pytest.raises(CaseValidationError):
            parse_status_filter("Closed")


def test_format_timestamp():
    ts = datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc)
    assert format_timestamp(ts) == "January 15, 2024 at 02:30 PM"
    assert format_timestamp(None) == "N/A"


# ── Demo data ────────────────────────────────────────────────────────────


class TestSeedDemoCases:
    def test_seeds_empty_store(self, store):
        assert seed_demo_cases(store) == len(DEMO_CASES)
        docs = store.list_documents()
        assert {d["arrestedUser"] for d in docs} == {
            "John Doe", "Jane Smith", "Bob Johnson", "Alice Williams", "Michael Brown",
        }
        for d in docs:
            if d["status"] == "Pending Review":
                assert d["reviewDate"] is None and d["reviewerId"] is None
            else:
                assert d["reviewDate"] is not None and d["reviewerId"]

    def test_skips_non_empty_store(self, store, add_case):
        add_case()
        assert seed_demo_cases(store) == 0
        assert len(store.list_documents()) == 1


class TestStatusCounts:
    def test_counts_each_status(self):
        cases = [
            _case("a"), _case("b"),
            _case("c", status=CaseStatus.ACCEPTED),
            _case("d", status=CaseStatus.DENIED),
        ]
        assert status_counts(cases) == {"total": 4, "pending": 2, "accepted": 1, "denied": 1}

    def test_empty(self):
        assert status_counts([]) == {"total": 0, "pending": 0, "accepted": 0, "denied": 0}
