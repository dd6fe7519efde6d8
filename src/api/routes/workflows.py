"""Workflow session routes: /api/workflows."""
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from src.api.dependencies import get_sessions, get_workflow, handle, require
from src.api.envelope import success_response
from src.errors import SessionNotFound
from src.schemas.session import WorkflowRequest, WorkflowSession
from src.workflow.session_store import SessionStore

router = APIRouter(prefix="/api/workflows", tags=["workflows"])

AGENT_TYPE = "workflow"


def load_session(sessions: SessionStore, session_id: str) -> WorkflowSession:
    session = sessions.get(session_id)
    if session is None:
        raise SessionNotFound(session_id)
    return session


@router.post("")
async def run_workflow(request: Request) -> JSONResponse:
    """Run a full workflow: ``{rawIdea, teamSize?, enableSprintPlanning?, ...}``.

    ``message`` is accepted as an alias for ``rawIdea``.
    """
    workflow = get_workflow(request)

    async def run(body: dict[str, Any], started: float, session_id: str) -> JSONResponse:
        if "rawIdea" not in body and "message" in body:
            body = {**body, "rawIdea": body["message"]}
        require(body, "rawIdea")
        workflow_request = WorkflowRequest.model_validate({**body, "sessionId": session_id})
        session = await workflow.run(workflow_request)
        return success_response(AGENT_TYPE, session, started, session.session_id)

    return await handle(AGENT_TYPE, request, run)


@router.get("/{session_id}")
async def get_workflow_session(session_id: str, request: Request) -> JSONResponse:
    sessions = get_sessions(request)

    async def run(body: dict[str, Any], started: float, _: str) -> JSONResponse:
        return success_response(AGENT_TYPE, load_session(sessions, session_id), started, session_id)

    return await handle(AGENT_TYPE, request, run, read_json=False, session_id=session_id)


@router.post("/{session_id}/feedback")
async def submit_feedback(session_id: str, request: Request) -> JSONResponse:
    """Route feedback for a session: ``{message}``."""
    sessions = get_sessions(request)
    workflow = get_workflow(request)

    async def run(body: dict[str, Any], started: float, _: str) -> JSONResponse:
        message = require(body, "message")
        session = load_session(sessions, session_id)
        entry = await workflow.submit_feedback(session, str(message))
        return success_response(
            AGENT_TYPE,
            {
                "decision": entry.decision.to_json_dict(),
                "applied": entry.applied,
                "session": session.to_json_dict(),
            },
            started,
            session_id,
            confidence=entry.decision.confidence,
        )

    return await handle(AGENT_TYPE, request, run, session_id=session_id)


@router.post("/{session_id}/confirm")
async def confirm_feedback(session_id: str, request: Request) -> JSONResponse:
    """Apply the feedback decision waiting for approval."""
    sessions = get_sessions(request)
    workflow = get_workflow(request)

    async def run(body: dict[str, Any], started: float, _: str) -> JSONResponse:
        session = await workflow.confirm_pending(load_session(sessions, session_id))
        return success_response(AGENT_TYPE, session, started, session_id)

    return await handle(AGENT_TYPE, request, run, read_json=False, session_id=session_id)


@router.delete("/{session_id}")
async def delete_workflow_session(session_id: str, request: Request) -> JSONResponse:
    """Drop a session once any run or feedback on it has finished."""
    sessions = get_sessions(request)

    async def run(body: dict[str, Any], started: float, _: str) -> JSONResponse:
        load_session(sessions, session_id)
        async with sessions.lock(session_id):
            sessions.delete(session_id)
        return success_response(AGENT_TYPE, {"deleted": True}, started, session_id)

    return await handle(AGENT_TYPE, request, run, read_json=False, session_id=session_id)
