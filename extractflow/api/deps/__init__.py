"""Dependency injection for API routes."""

from extractflow.api.deps.dependencies import (
    get_admin_service,
    get_credit_service,
    get_current_user,
    get_extraction_client,
    get_service_cache,
    get_session_service,
    get_storage,
    require_admin,
)

__all__ = [
    "get_admin_service",
    "get_credit_service",
    "get_current_user",
    "get_extraction_client",
    "get_service_cache",
    "get_session_service",
    "get_storage",
    "require_admin",
]
