"""Workflow orchestration: feedback routing, sessions and services."""

from src.workflow.conversational import ConversationalWorkflow
from src.workflow.feedback_router import FeedbackRouter
from src.workflow.services import Services
from src.workflow.session_store import SessionStore, new_session_id

__all__ = [
    "ConversationalWorkflow",
    "FeedbackRouter",
    "Services",
    "SessionStore",
    "new_session_id",
]
