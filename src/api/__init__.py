"""HTTP surface: agent, workflow and integration routes."""

from src.api.app import create_fastapi_app

__all__ = ["create_fastapi_app"]
