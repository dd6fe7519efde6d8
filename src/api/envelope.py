"""Uniform response envelope for every API route.

    {success, data?, error?, metadata: {agentType, processingTime,
     confidence, sessionId, usage?, toolCalls?}}

Failures add errorCode and, when the error carries them, details.
"""
import time
from typing import Any, Optional

from fastapi.responses import JSONResponse
from pydantic import Field

from src.errors import ProductMaestroError
from src.llm.types import TokenUsage, ToolCall
from src.schemas.base import CamelModel


class Usage(CamelModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ResponseMetadata(CamelModel):
    agent_type: str
    processing_time: float = Field(description="Milliseconds")
    confidence: float = 1.0
    session_id: str
    usage: Optional[Usage] = None
    tool_calls: Optional[list[ToolCall]] = None


class Envelope(CamelModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    metadata: ResponseMetadata


def elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def confidence_from_attempts(attempts: int) -> float:
    """1.0 when the first answer validated, lower for each retry."""
    return round(1.0 / max(1, attempts), 2)


def _respond(envelope: Envelope, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


def success_response(
    agent_type: str,
    data: Any,
    started: float,
    session_id: str,
    confidence: float = 1.0,
    usage: Optional[TokenUsage] = None,
    tool_calls: Optional[list[ToolCall]] = None,
) -> JSONResponse:
    if isinstance(data, CamelModel):
        data = data.to_json_dict()
    return _respond(
        Envelope(
            success=True,
            data=data,
            metadata=ResponseMetadata(
                agent_type=agent_type,
                processing_time=elapsed_ms(started),
                confidence=confidence,
                session_id=session_id,
                usage=Usage(**usage.model_dump()) if usage else None,
                tool_calls=tool_calls,
            ),
        ),
        200,
    )


def error_response(
    agent_type: str,
    status_code: int,
    message: str,
    started: float,
    session_id: str,
    code: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> JSONResponse:
    return _respond(
        Envelope(
            success=False,
            error=message,
            error_code=code,
            details=details or None,
            metadata=ResponseMetadata(
                agent_type=agent_type,
                processing_time=elapsed_ms(started),
                confidence=0.0,
                session_id=session_id,
            ),
        ),
        status_code,
    )


def status_for(error: Exception) -> int:
    """HTTP status for an exception raised while handling a request."""
    code = getattr(error, "code", None) if isinstance(error, ProductMaestroError) else None
    if code == "VALIDATION_ERROR":
        return 400
    if code == "NOT_FOUND":
        return 404
    if code == "CONFIGURATION_ERROR":
        return 503
    return 500
