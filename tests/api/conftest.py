"""
Shared fixtures for HTTP route tests.

Routes run against mocked services; the app-level exception handler is
installed so domain errors are rendered exactly as in production.
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from extractflow.api.deps import (
    get_admin_service,
    get_credit_service,
    get_current_user,
    get_session_service,
    require_admin,
)
from extractflow.api.errors import register_exception_handlers
from extractflow.api.routers import admin_router, credits_router, health_router, sessions_router
from extractflow.boundary.db import UserRole


@pytest.fixture
def caller():
    user = MagicMock()
    user.id = uuid.uuid4()
    user.role = UserRole.USER
    return user


@pytest.fixture
def mock_session_service():
    return AsyncMock()


@pytest.fixture
def mock_credit_service():
    return AsyncMock()


@pytest.fixture
def mock_admin_service():
    return AsyncMock()


@pytest.fixture
def app(caller, mock_session_service, mock_credit_service, mock_admin_service):
    app = FastAPI()
    register_exception_handlers(app)
    for router in (health_router, sessions_router, credits_router, admin_router):
        app.include_router(router)
    app.dependency_overrides[get_current_user] = lambda: caller
    app.dependency_overrides[require_admin] = lambda: caller
    app.dependency_overrides[get_session_service] = lambda: mock_session_service
    app.dependency_overrides[get_credit_service] = lambda: mock_credit_service
    app.dependency_overrides[get_admin_service] = lambda: mock_admin_service
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def session_payload():
    """Factory for session dicts as the services return them."""

    def _payload(**overrides) -> dict:
        now = datetime.now(timezone.utc)
        payload = {
            "id": uuid.uuid4(),
            "status": "uploading",
            "total_units": 3,
            "completed_units": 0,
            "model_id": "prebuilt-invoice",
            "expires_at": now,
            "created_at": now,
            "updated_at": now,
            "post_processing_status": None,
            "error_message": None,
            "has_result": False,
        }
        payload.update(overrides)
        return payload

    return _payload
