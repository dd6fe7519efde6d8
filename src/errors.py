"""
Error taxonomy for Product Maestro.

Every error carries a machine-readable code so route handlers can build
the response envelope without inspecting exception types one by one.
"""

from typing import Any, Optional


class ProductMaestroError(Exception):
    """Base exception for all Product Maestro errors."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses and session records."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Input / configuration
# =============================================================================


class ValidationError(ProductMaestroError):
    """A required input field is missing or empty."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"{field} is required", details={"field": field})
        self.field = field


class ConfigurationError(ProductMaestroError):
    """An integration the caller explicitly asked for is not configured."""

    code = "CONFIGURATION_ERROR"


# =============================================================================
# Model output
# =============================================================================


class MalformedAgentResponse(ProductMaestroError):
    """Model output could not be parsed into the expected structured shape."""

    code = "MALFORMED_AGENT_RESPONSE"

    def __init__(self, schema_name: str, raw_text: str, errors: str, attempts: int = 1) -> None:
        super().__init__(
            f"Agent response did not match {schema_name} after {attempts} attempt(s)",
            details={
                "schema": schema_name,
                "errors": errors,
                "attempts": attempts,
                "raw_text": raw_text,
            },
        )
        self.schema_name = schema_name
        self.raw_text = raw_text
        self.errors = errors
        self.attempts = attempts


class UnknownRoutingTarget(ProductMaestroError):
    """The feedback router named a step outside the known enumeration."""

    code = "UNKNOWN_ROUTING_TARGET"

    def __init__(self, raw_target: str) -> None:
        super().__init__(f"Unknown routing target: {raw_target!r}", details={"target": raw_target})
        self.raw_target = raw_target


class DataIntegrityError(ProductMaestroError):
    """An artifact references an id that does not exist in the session."""

    code = "DATA_INTEGRITY_ERROR"

    def __init__(self, message: str, unknown_ids: list[str]) -> None:
        super().__init__(message, details={"unknown_ids": unknown_ids})
        self.unknown_ids = unknown_ids


# =============================================================================
# Network
# =============================================================================


class VendorAPIError(ProductMaestroError):
    """Non-2xx response from Linear, Miro, Notion or Pinecone."""

    code = "VENDOR_API_ERROR"

    def __init__(
        self,
        vendor: str,
        status_code: int,
        message: str,
        response_body: Optional[Any] = None,
    ) -> None:
        super().__init__(
            f"{vendor} API error {status_code}: {message}",
            details={"vendor": vendor, "status_code": status_code},
        )
        self.vendor = vendor
        self.status_code = status_code
        self.response_body = response_body


class TransportError(ProductMaestroError):
    """Network-level failure: DNS, timeout, connection reset."""

    code = "TRANSPORT_ERROR"

    def __init__(self, vendor: str, message: str) -> None:
        super().__init__(f"{vendor} request failed: {message}", details={"vendor": vendor})
        self.vendor = vendor


class SessionNotFound(ProductMaestroError):
    """No workflow session with the given id."""

    code = "NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} not found", details={"session_id": session_id})
        self.session_id = session_id
