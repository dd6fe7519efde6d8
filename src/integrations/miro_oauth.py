"""OAuth2 authorization-code flow for Miro.

The flow issues a random ``state`` with each authorization URL and only
accepts a callback that returns an outstanding state. Tokens are handed to
a ``TokenStore``; ``JsonFileTokenStore`` keeps them in a local JSON file.
"""
import asyncio
import json
import logging
import secrets
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

import aiohttp
from pydantic import BaseModel

from src.errors import ConfigurationError, TransportError, ValidationError, VendorAPIError

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://miro.com/oauth/authorize"
TOKEN_URL = "https://api.miro.com/v1/oauth/token"
DEFAULT_SCOPES = ("boards:read", "boards:write")

# Pending states older than this are discarded
STATE_TTL_SECONDS = 600


class OAuthToken(BaseModel):
    access_token: str
    token_type: str = "bearer"
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    user_id: Optional[str] = None
    team_id: Optional[str] = None
    obtained_at: float = 0.0


# =============================================================================
# Token storage
# =============================================================================


class TokenStore(ABC):
    """Where exchanged tokens are kept."""

    @abstractmethod
    def save(self, token: OAuthToken) -> None: ...

    @abstractmethod
    def load(self) -> Optional[OAuthToken]: ...


class JsonFileTokenStore(TokenStore):
    """Keep the latest token in a JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def save(self, token: OAuthToken) -> None:
        self.path.write_text(token.model_dump_json(indent=2))
        logger.info("Miro token saved", extra={"path": str(self.path)})

    def load(self) -> Optional[OAuthToken]:
        if not self.path.exists():
            return None
        try:
            return OAuthToken.model_validate(json.loads(self.path.read_text()))
        except (ValueError, OSError) as e:
            logger.warning(f"Could not read Miro token file: {e}", extra={"path": str(self.path)})
            return None


# =============================================================================
# Flow
# =============================================================================


class MiroOAuthFlow:
    """Authorization-code flow: authorize URL, state check, code exchange."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        token_store: TokenStore,
        scopes: tuple[str, ...] = DEFAULT_SCOPES,
        timeout_seconds: float = 30.0,
    ):
        if not client_id or not client_secret:
            raise ConfigurationError("MIRO_CLIENT_ID and MIRO_CLIENT_SECRET are required for OAuth")
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.token_store = token_store
        self.scopes = scopes
        self.timeout_seconds = timeout_seconds
        self._pending_states: dict[str, float] = {}

    def authorization_url(self) -> tuple[str, str]:
        """Build the URL to send the user to.

        Returns:
            (url, state)
        """
        self._expire_states()
        state = secrets.token_urlsafe(24)
        self._pending_states[state] = time.time()
        query = urlencode({
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.scopes),
            "state": state,
        })
        return f"{AUTHORIZE_URL}?{query}", state

    def _expire_states(self) -> None:
        cutoff = time.time() - STATE_TTL_SECONDS
        for state, issued_at in list(self._pending_states.items()):
            if issued_at < cutoff:
                del self._pending_states[state]

    def consume_state(self, state: Optional[str]) -> None:
        """Accept a callback state exactly once.

        Raises:
            ValidationError: Missing, unknown or expired state.
        """
        self._expire_states()
        if not state or self._pending_states.pop(state, None) is None:
            raise ValidationError("state", "Invalid or expired OAuth state")

    async def exchange_code(self, code: str, state: Optional[str]) -> OAuthToken:
        """Exchange an authorization code for a token and store it.

        Raises:
            ValidationError: Missing code or bad state.
            VendorAPIError: Miro rejected the exchange.
            TransportError: Network failure.
        """
        if not code:
            raise ValidationError("code")
        self.consume_state(state)

        params = {
            "grant_type": "authorization_code",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "redirect_uri": self.redirect_uri,
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(TOKEN_URL, params=params) as response:
                    try:
                        body = await response.json(content_type=None)
                    except ValueError:
                        body = {}
                    if response.status >= 300:
                        message = (body or {}).get("message") or response.reason or "Token exchange failed"
                        raise VendorAPIError("miro", response.status, message, response_body=body)
        except aiohttp.ClientError as e:
            raise TransportError("miro", str(e)) from e
        except asyncio.TimeoutError as e:
            raise TransportError("miro", "token exchange timed out") from e

        token = OAuthToken.model_validate({**(body or {}), "obtained_at": time.time()})
        self.token_store.save(token)
        logger.info("Miro OAuth token exchanged", extra={"team_id": token.team_id})
        return token
