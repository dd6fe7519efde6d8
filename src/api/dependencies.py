"""Request-scoped access to objects built in the app lifespan."""
import time
from typing import Any, Awaitable, Callable, Optional

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from src.api.envelope import error_response, status_for
from src.errors import ProductMaestroError, ValidationError
from src.steps.base import is_missing
from src.workflow.conversational import ConversationalWorkflow
from src.workflow.services import Services
from src.workflow.session_store import SessionStore, new_session_id

logger = structlog.get_logger()

Handler = Callable[[dict[str, Any], float, str], Awaitable[JSONResponse]]


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_workflow(request: Request) -> ConversationalWorkflow:
    return ConversationalWorkflow(get_services(request), get_sessions(request))


async def read_body(request: Request) -> dict[str, Any]:
    """Parse a JSON object body.

    Raises:
        ValidationError: Body is not valid JSON or not an object.
    """
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("body", "Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("body", "Request body must be a JSON object")
    return body


def require(body: dict[str, Any], field: str) -> Any:
    """Return ``body[field]`` or raise if it is missing or empty."""
    value = body.get(field)
    if is_missing(value):
        if field == "message":
            raise ValidationError(field, "Message is required")
        raise ValidationError(field)
    return value


async def handle(
    agent_type: str,
    request: Request,
    handler: Handler,
    read_json: bool = True,
    session_id: Optional[str] = None,
) -> JSONResponse:
    """Parse the body, run ``handler`` and map every failure onto the envelope.

    ``session_id`` pins the session (path parameter); otherwise it comes
    from the body's ``sessionId`` or a fresh one is generated.
    """
    started = time.perf_counter()
    pinned = session_id
    session_id = session_id or new_session_id()
    try:
        body = await read_body(request) if read_json else {}
        if pinned is None:
            session_id = str(body.get("sessionId") or session_id)
        return await handler(body, started, session_id)
    except ProductMaestroError as e:
        status = status_for(e)
        log = logger.warning if status < 500 else logger.error
        log("request_failed", agent_type=agent_type, error_code=e.code, error=e.message)
        return error_response(
            agent_type, status, e.message, started, session_id, code=e.code, details=e.details
        )
    except PydanticValidationError as e:
        logger.warning("request_invalid", agent_type=agent_type, errors=e.error_count())
        message = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        return error_response(
            agent_type, 400, f"Invalid request: {message}", started, session_id, code="VALIDATION_ERROR"
        )
    except Exception as e:
        logger.error("request_error", agent_type=agent_type, error=str(e), exc_info=True)
        return error_response(agent_type, 500, str(e) or "Internal server error", started, session_id)
