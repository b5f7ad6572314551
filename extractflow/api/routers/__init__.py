"""API routers."""

from .admin import router as admin_router
from .credits import router as credits_router
from .health import router as health_router
from .sessions import router as sessions_router

__all__ = [
    "admin_router",
    "credits_router",
    "health_router",
    "sessions_router",
]
