"""API routes."""

from darf_engine.api.routes.documents import router as documents_router
from darf_engine.api.routes.health import router as health_router

__all__ = ["documents_router", "health_router"]
