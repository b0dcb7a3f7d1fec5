"""FastAPI backend for the Arrest Cases tool.

Exposes the same intake and review operations as the dashboard. Callers
open a session with POST /api/session and pass the returned uid in the
X-User-Id header on every other call.
"""

from __future__ import annotations

import sys as _sys
from pathlib import Path

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from pydantic import BaseModel

from app.cases import (
    CHARGES_LIST,
    ArrestCase,
    CaseValidationError,
    cases_from_documents,
    filter_cases,
    parse_status_filter,
    sort_newest_first,
)
from app import cases as case_model
from app.context import AppContext, build_context
from app.intake import IntakeController, IntakeForm
from app.store import CaseNotFoundError, CaseStoreError
from app.summarizer import summarize

_sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared import usage_tracker
from shared.auth import Session, establish_session, get_session, sign_out
from shared.log_setup import setup_logging

app = FastAPI(title="Arrest Cases API", version="1.0.0")

_context: AppContext | None = None


def get_context() -> AppContext:
    global _context
    if _context is None:
        _context = build_context()
        setup_logging(_context.settings.log_level, _context.settings.log_format)
    return _context


def current_session(
    x_user_id: str | None = Header(None),
    ctx: AppContext = Depends(get_context),
) -> Session:
    session = get_session(x_user_id or "", ctx.settings.session_hours)
    if session is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session


# ── Request / response schemas ───────────────────────────────────────────────


class SessionRequest(BaseModel):
    token: str = ""


class CaseCreate(BaseModel):
    arrested_user: str
    reason: str = ""
    charges: list[str] = []
    evidence_urls: str = ""
    court_dates_availability: str = ""
    context_of_incident: str = ""


class DecisionIn(BaseModel):
    decision: str
    notes: str = ""


class NotesIn(BaseModel):
    notes: str


def _load_case(ctx: AppContext, case_id: str) -> ArrestCase:
    try:
        doc = ctx.store.get(case_id)
    except CaseStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if doc is None:
        raise HTTPException(status_code=404, detail=f"Case not found: {case_id}")
    try:
        return ArrestCase.from_document(doc)
    except CaseValidationError as e:
        raise HTTPException(status_code=503, detail=str(e))


# ── Session ──────────────────────────────────────────────────────────────────


@app.post("/api/session", status_code=201)
def api_open_session(body: SessionRequest) -> dict:
    """Sign in with a bootstrap token, or anonymously if none/invalid."""
    session = establish_session(body.token)
    return {"uid": session.uid, "provider": session.provider}


@app.delete("/api/session")
def api_close_session(session: Session = Depends(current_session)) -> dict:
    sign_out(session.uid)
    return {"signed_out": True, "uid": session.uid}


# ── Reference data ───────────────────────────────────────────────────────────


@app.get("/api/charges")
def api_list_charges(q: str = Query("", description="Substring filter")) -> list[str]:
    return case_model.search_charges(q) if q else list(CHARGES_LIST)


@app.get("/api/usage")
def api_usage(
    year: int | None = Query(None, ge=2000),
    month: int | None = Query(None, ge=1, le=12),
    session: Session = Depends(current_session),
) -> dict:
    """Summary calls and webhook notifications for one month (default: current)."""
    return usage_tracker.monthly_summary(year, month)


# ── Cases ────────────────────────────────────────────────────────────────────


@app.get("/api/cases")
def api_list_cases(
    status: str = Query("All", description="Status filter, or All"),
    case_id: str = Query("", description="Case id substring"),
    name: str = Query("", description="Arrested user substring"),
    session: Session = Depends(current_session),
    ctx: AppContext = Depends(get_context),
) -> list[dict]:
    """Newest first, filtered the same way as the review dashboard."""
    try:
        status = parse_status_filter(status)
    except CaseValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    try:
        docs = ctx.store.list_documents()
    except CaseStoreError as e:
        raise HTTPException(status_code=503, detail=f"Error loading cases: {e}")
    cases = sort_newest_first(cases_from_documents(docs))
    return [c.to_document() for c in filter_cases(cases, status, case_id, name)]


@app.get("/api/cases/{case_id}")
def api_get_case(
    case_id: str,
    session: Session = Depends(current_session),
    ctx: AppContext = Depends(get_context),
) -> dict:
    return _load_case(ctx, case_id).to_document()


@app.post("/api/cases", status_code=201)
def api_submit_case(
    body: CaseCreate,
    session: Session = Depends(current_session),
    ctx: AppContext = Depends(get_context),
) -> dict:
    """Submit a new arrest. Charges, when given, take precedence over reason."""
    form = IntakeForm(
        arrested_user=body.arrested_user,
        reason_text=body.reason,
        evidence_urls=body.evidence_urls,
        court_dates_availability=body.court_dates_availability,
        context_of_incident=body.context_of_incident,
    )
    for charge in body.charges:
        if not form.add_charge(charge):
            raise HTTPException(status_code=422, detail=f"Unknown or duplicate charge: {charge}")

    result = IntakeController(ctx.store, session, ctx.webhook).submit(form)
    if not result.success:
        code = 422 if result.failure == "validation" else 503
        raise HTTPException(status_code=code, detail=result.message)
    return {
        **_load_case(ctx, result.case_id).to_document(),
        "message": result.message,
        "notified": result.notified,
    }


@app.post("/api/cases/{case_id}/decision")
def api_decide_case(
    case_id: str,
    body: DecisionIn,
    session: Session = Depends(current_session),
    ctx: AppContext = Depends(get_context),
) -> dict:
    """Accept or deny a case. Already-decided cases are overwritten."""
    try:
        case = case_model.decide(ctx.store, session, case_id, body.decision, body.notes)
    except CaseValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CaseStoreError as e:
        raise HTTPException(status_code=503, detail=f"Error updating case status: {e}")
    return case.to_document()


@app.put("/api/cases/{case_id}/notes")
def api_save_notes(
    case_id: str,
    body: NotesIn,
    session: Session = Depends(current_session),
    ctx: AppContext = Depends(get_context),
) -> dict:
    try:
        case = case_model.save_notes(ctx.store, session, case_id, body.notes)
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (CaseStoreError, CaseValidationError) as e:
        raise HTTPException(status_code=503, detail=f"Error saving notes: {e}")
    return case.to_document()


@app.post("/api/cases/{case_id}/summary")
def api_summarize_case(
    case_id: str,
    session: Session = Depends(current_session),
    ctx: AppContext = Depends(get_context),
) -> dict:
    result = summarize(_load_case(ctx, case_id), ctx.settings)
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.error)
    return {"id": case_id, "summary": result.text}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8510)
