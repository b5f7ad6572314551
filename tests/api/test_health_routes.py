from unittest.mock import AsyncMock

from sqlalchemy.exc import OperationalError

from extractflow.boundary.db import get_async_db


def _db_override(db):
    async def _get_db():
        yield db

    return _get_db


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "message": "Server Healthy"}


def test_health_check_db(app, client):
    db = AsyncMock()
    app.dependency_overrides[get_async_db] = _db_override(db)

    response = client.get("/health/db")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "message": "Database connection OK"}
    db.execute.assert_awaited_once()


def test_health_check_db_unavailable(app, client):
    db = AsyncMock()
    db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
    app.dependency_overrides[get_async_db] = _db_override(db)

    response = client.get("/health/db")

    assert response.status_code == 503
    assert response.json()["detail"] == "Database unavailable"
