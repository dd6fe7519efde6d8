"""Shared aiohttp plumbing for vendor API clients."""
import asyncio
import logging
import time
from typing import Any, Optional

import aiohttp
from pydantic import BaseModel

from src.errors import TransportError, VendorAPIError

logger = logging.getLogger(__name__)


class VendorResponse(BaseModel):
    """Normalized vendor response.

    Non-2xx responses come back with ``success=False`` instead of raising;
    callers that cannot continue without the data use ``unwrap()``.
    """
    vendor: str
    success: bool
    status: int
    data: Any = None
    message: str = ""

    def unwrap(self) -> Any:
        """Return data or raise VendorAPIError for a failed response."""
        if not self.success:
            raise VendorAPIError(
                vendor=self.vendor,
                status_code=self.status,
                message=self.message,
                response_body=self.data,
            )
        return self.data


class VendorClient:
    """Base client for Linear, Miro, Notion and Pinecone.

    Sections:
    - Core: init, session, close, _request
    - Subclasses: auth headers and vendor operations
    """

    vendor = "vendor"

    # -------------------------------------------------------------------------
    # Core: Initialization and HTTP request handling
    # -------------------------------------------------------------------------

    def __init__(self, api_key: str, base_url: str, timeout_seconds: float = 30.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers={"Content-Type": "application/json", **self._auth_headers()},
            )
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def _error_message(self, body: Any, reason: Optional[str]) -> str:
        """Pull a human-readable message out of an error body."""
        if isinstance(body, dict):
            for key in ("message", "error", "detail"):
                if isinstance(body.get(key), str):
                    return body[key]
        return reason or "Request failed"

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[Any] = None,
        params: Optional[dict[str, Any]] = None,
        base_url: Optional[str] = None,
    ) -> VendorResponse:
        """Make one HTTP request.

        Returns:
            VendorResponse, successful only for 2xx statuses.

        Raises:
            TransportError: On timeout or connection failure.
        """
        url = f"{(base_url or self.base_url).rstrip('/')}{endpoint}"
        session = await self._get_session()
        start_time = time.monotonic()

        try:
            logger.debug(
                f"{self.vendor} API request",
                extra={"method": method, "url": url},
            )
            async with session.request(method, url, json=json_data, params=params) as response:
                duration_ms = (time.monotonic() - start_time) * 1000
                # content_length can be None with chunked encoding
                try:
                    body = await response.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError):
                    body = None

                logger.info(
                    f"{self.vendor} API response",
                    extra={
                        "method": method,
                        "url": url,
                        "status": response.status,
                        "duration_ms": round(duration_ms, 2),
                    },
                )

                if 200 <= response.status < 300:
                    return VendorResponse(
                        vendor=self.vendor, success=True, status=response.status, data=body
                    )
                return VendorResponse(
                    vendor=self.vendor,
                    success=False,
                    status=response.status,
                    data=body,
                    message=self._error_message(body, response.reason),
                )

        except asyncio.TimeoutError as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.warning(
                f"{self.vendor} API timeout",
                extra={"method": method, "url": url, "duration_ms": round(duration_ms, 2)},
            )
            raise TransportError(self.vendor, f"timed out after {round(duration_ms)}ms") from e

        except aiohttp.ClientError as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.warning(
                f"{self.vendor} API connection error: {e}",
                extra={
                    "method": method,
                    "url": url,
                    "duration_ms": round(duration_ms, 2),
                    "error": str(e),
                },
            )
            raise TransportError(self.vendor, str(e)) from e
