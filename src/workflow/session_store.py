"""In-memory session storage.

Sessions live for the lifetime of the process. Each session has its own
lock so that a workflow run and a feedback submission for the same session
never interleave.
"""
import asyncio
import time
import uuid
from typing import Optional

import structlog

from src.schemas.session import WorkflowSession

logger = structlog.get_logger()


def new_session_id() -> str:
    return f"session-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class SessionStore:
    """Holds workflow sessions keyed by session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, WorkflowSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, session_id: str) -> Optional[WorkflowSession]:
        return self._sessions.get(session_id)

    def save(self, session: WorkflowSession) -> None:
        self._sessions[session.session_id] = session

    def lock(self, session_id: str) -> asyncio.Lock:
        """Get or create the lock for a session."""
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._locks.pop(session_id, None)
        logger.debug("session_deleted", session_id=session_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions
