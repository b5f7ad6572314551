"""
Shared test fixtures and configuration for entire test suite.

Provides: In-memory async database, fake blob storage, scripted extraction
client, user and session factories.
Dependencies: pytest, pytest-asyncio, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

import uuid
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from extractflow.boundary.db import Base, UserModel, UserRole, user_crud
from extractflow.boundary.extraction import ExtractionResult, ExtractionStatus
from extractflow.configs.processing import ProcessingSettings
from extractflow.core.credit_ledger import CreditLedger
from extractflow.core.exceptions import BlobNotFoundError, ExternalServiceError
from extractflow.core.session_manager import SessionManager, UploadUnit


class FakeBlobStorage:
    """Dict-backed BlobStorage."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.fail_delete_prefix = False

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        self.objects[key] = data

    def get(self, key: str) -> bytes:
        if key not in self.objects:
            raise BlobNotFoundError(key)
        return self.objects[key]

    def delete(self, key: str) -> bool:
        return self.objects.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        if self.fail_delete_prefix:
            raise RuntimeError("storage unavailable")
        keys = [k for k in self.objects if k.startswith(prefix)]
        for key in keys:
            del self.objects[key]
        return len(keys)

    def exists(self, key: str) -> bool:
        return key in self.objects

    def generate_download_url(self, key: str, expires_in: int = 3600) -> str:
        return f"https://blobs.test/{key}?expires_in={expires_in}"

    def keys_under(self, prefix: str) -> list[str]:
        return sorted(k for k in self.objects if k.startswith(prefix))


class FakeExtractionClient:
    """
    Scripted ExtractionClient.

    Outcomes are keyed by the submitted bytes so a test can decide the fate
    of each unit up front. Unscripted units stay RUNNING.
    """

    def __init__(self) -> None:
        self.outcomes: dict[bytes, ExtractionResult] = {}
        self.reject: set[bytes] = set()
        self.poll_error = False
        self.submitted: dict[str, bytes] = {}
        self.poll_calls = 0

    def succeed(self, data: bytes, fields: dict[str, Any]) -> None:
        self.outcomes[data] = ExtractionResult(status=ExtractionStatus.SUCCEEDED, fields=fields)

    def fail(self, data: bytes, error: str = "Document could not be analyzed") -> None:
        self.outcomes[data] = ExtractionResult(status=ExtractionStatus.FAILED, error=error)

    async def submit(self, file_bytes: bytes, model_id: str) -> str:
        if file_bytes in self.reject:
            raise ExternalServiceError("Extraction submit rejected with HTTP 400")
        ref = f"op-{len(self.submitted) + 1}"
        self.submitted[ref] = file_bytes
        return ref

    async def poll(self, operation_ref: str) -> ExtractionResult:
        self.poll_calls += 1
        if self.poll_error:
            raise ExternalServiceError("Extraction poll failed", operation_ref=operation_ref)
        data = self.submitted[operation_ref]
        return self.outcomes.get(data, ExtractionResult(status=ExtractionStatus.RUNNING))


@pytest.fixture
async def session_factory():
    """
    In-memory SQLite database shared by every session the factory opens.

    Yields:
        async_sessionmaker: Factory bound to a fresh schema
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )

    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    """Async session for one test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage() -> FakeBlobStorage:
    return FakeBlobStorage()


@pytest.fixture
def extraction() -> FakeExtractionClient:
    return FakeExtractionClient()


@pytest.fixture
def processing() -> ProcessingSettings:
    return ProcessingSettings(
        session_ttl_hours=24,
        credits_per_page=1,
        poll_timeout_minutes=30,
        polling_batch_size=100,
    )


@pytest.fixture
def make_user(db):
    """
    Factory creating a committed user with an initial purchase.

    Usage:
        user = await make_user(credits=10)
    """

    async def _make_user(credits: int = 0, role: UserRole = UserRole.USER) -> UserModel:
        user = await user_crud.create(
            db,
            email=f"{uuid.uuid4().hex}@example.com",
            role=role,
            credit_balance=0,
        )
        if credits:
            await CreditLedger(db).credit(user.id, credits, "Initial purchase")
        await db.commit()
        return await user_crud.get_by_id(db, user.id)

    return _make_user


@pytest.fixture
def manager(db, storage, extraction, processing) -> SessionManager:
    return SessionManager(db, storage, extraction, processing=processing, environment="test")


@pytest.fixture
def make_session(manager):
    """
    Factory creating a committed session with one single-page unit per payload.

    Usage:
        session = await make_session(user, [b"a", b"b"])
    """

    async def _make_session(user: UserModel, payloads: list[bytes], file_name: str = "invoice.pdf", **options):
        batch = [
            UploadUnit(file_name=file_name, data=payload, page_number=index)
            for index, payload in enumerate(payloads, start=1)
        ]
        return await manager.create_session(user.id, batch, model_id="prebuilt-invoice", **options)

    return _make_session
