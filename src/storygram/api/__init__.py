"""HTTP routes for the Storygram service."""

from .routes import get_session, router

__all__ = ["get_session", "router"]
