"""Response session endpoints.

These endpoints are the backend of the survey page: the page opens a session,
posts contact details and answers, and renders whatever question the session
view says is next.

Rejected actions (missing required answer, busy session, wrong step) return
422 with the unchanged session view so the page can show the message inline.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from survey_flow.schemas.session import (
    AnswerRequest,
    ContactRequest,
    OpenSessionRequest,
    RejectedView,
    SessionView,
)
from survey_flow.services.exceptions import SurveyLoadError
from survey_flow.services.response_collector import StepResult
from survey_flow.services.session_registry import ResponseSession, SessionRegistry
from survey_flow.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_registry(request: Request) -> SessionRegistry:
    """Dependency returning the session registry created at startup."""
    return request.app.state.session_registry


def _require_session(registry: SessionRegistry, session_id: str) -> ResponseSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Survey session not found or expired")
    return session


def _respond(registry: SessionRegistry, session: ResponseSession, result: StepResult):
    """Build the response for an action and drop finished sessions."""
    view = SessionView.from_collector(session.id, session.collector)
    registry.discard_if_done(session)

    if result.accepted:
        return view

    rejected = RejectedView(detail=result.error_message or "Request rejected", session=view)
    return JSONResponse(status_code=422, content=rejected.model_dump(mode="json", by_alias=True))


@router.post(
    "/api/tenants/{tenant_id}/surveys/{survey_id}/sessions",
    status_code=201,
    response_model=SessionView,
)
async def open_session(
    tenant_id: str,
    survey_id: str,
    registry: Annotated[SessionRegistry, Depends(get_registry)],
    body: Optional[OpenSessionRequest] = None,
):
    """Open a response session and load the survey.

    Returns the first step: the contact form, or the first visible question
    after any leading classifier nodes have been resolved.

    Raises:
        HTTPException: 404 if the survey cannot be loaded
    """
    session = registry.open(tenant_id, survey_id, honeypot=body.honeypot if body else "")
    try:
        await session.collector.load()
    except SurveyLoadError as e:
        registry.discard(session.id)
        logger.info(f"Could not open session for {tenant_id}/{survey_id}: {e}")
        raise HTTPException(status_code=404, detail=str(e) or "Failed to load survey")

    view = SessionView.from_collector(session.id, session.collector)
    registry.discard_if_done(session)
    return view


@router.get("/api/sessions/{session_id}", response_model=SessionView)
async def get_session(
    session_id: str,
    registry: Annotated[SessionRegistry, Depends(get_registry)],
):
    """Return the current state of a response session."""
    session = _require_session(registry, session_id)
    return SessionView.from_collector(session.id, session.collector)


@router.post("/api/sessions/{session_id}/contact", response_model=SessionView)
async def submit_contact(
    session_id: str,
    body: ContactRequest,
    registry: Annotated[SessionRegistry, Depends(get_registry)],
):
    """Submit contact details and move on to the questions."""
    session = _require_session(registry, session_id)
    result = await session.collector.submit_contact(name=body.name, email=body.email, phone=body.phone)
    return _respond(registry, session, result)


@router.post("/api/sessions/{session_id}/answers", response_model=SessionView)
async def submit_answer(
    session_id: str,
    body: AnswerRequest,
    registry: Annotated[SessionRegistry, Depends(get_registry)],
):
    """Answer the current question."""
    session = _require_session(registry, session_id)
    result = await session.collector.submit_answer(body.answer)
    return _respond(registry, session, result)


@router.post("/api/sessions/{session_id}/submit", response_model=SessionView)
async def retry_submission(
    session_id: str,
    registry: Annotated[SessionRegistry, Depends(get_registry)],
):
    """Resend a response whose submission failed."""
    session = _require_session(registry, session_id)
    result = await session.collector.retry_submission()
    return _respond(registry, session, result)


@router.delete("/api/sessions/{session_id}", status_code=204)
async def abandon_session(
    session_id: str,
    registry: Annotated[SessionRegistry, Depends(get_registry)],
) -> Response:
    """Abandon a response session; in-flight results are discarded."""
    if not registry.discard(session_id):
        raise HTTPException(status_code=404, detail="Survey session not found or expired")
    return Response(status_code=204)


@router.post("/api/sessions/{session_id}/back", response_model=SessionView)
async def go_back(
    session_id: str,
    registry: Annotated[SessionRegistry, Depends(get_registry)],
):
    """Return to the previous question; its earlier answer comes back as previousAnswer."""
    session = _require_session(registry, session_id)
    result = session.collector.go_back()
    return _respond(registry, session, result)
