"""
Tests for SessionService.

System role: Verification of upload validation, splitting and the
client-facing session views
"""

from io import BytesIO

import pytest
from pypdf import PdfWriter

from extractflow.application.services.session_service import SessionService
from extractflow.boundary.db import session_crud
from extractflow.configs import Settings
from extractflow.configs.processing import ProcessingSettings
from extractflow.core.credit_ledger import CreditLedger
from extractflow.core.exceptions import (
    InsufficientCreditsError,
    PermissionDeniedError,
    SessionNotReadyError,
    ValidationError,
)
from extractflow.models.session import SessionOptions


def _pdf(pages: int) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        processing=ProcessingSettings(max_files_per_upload=2, credits_per_page=1),
    )


@pytest.fixture
def service(db, storage, settings) -> SessionService:
    return SessionService(db, storage, settings)


class TestCreateSession:
    """Test suite for SessionService.create_session()."""

    async def test_pages_become_jobs(self, service, storage, make_user) -> None:
        user = await make_user(credits=10)
        user_id = user.id

        result = await service.create_session(
            user_id, [("batch.pdf", _pdf(3), "application/pdf"), ("one.pdf", _pdf(1), None)]
        )

        assert result["status"] == "uploading"
        assert result["total_units"] == 4
        assert result["model_id"] == "prebuilt-invoice"
        assert len(await service.get_jobs(result["id"], user_id)) == 4
        assert len([k for k in storage.objects if "/uploads/" in k]) == 4
        assert await CreditLedger(service.db).balance(user_id) == 6

    async def test_options_are_stored(self, db, service, make_user) -> None:
        user = await make_user(credits=5)
        options = SessionOptions.model_validate(
            {
                "model_id": "prebuilt-receipt",
                "naming_template": [{"type": "field", "field_name": "MerchantName"}],
                "column_config": {"column_order": ["Total"]},
                "field_transformations": {"Total": {"type": "NUMBER_FORMAT", "config": {"decimals": 0}}},
            }
        )

        result = await service.create_session(user.id, [("r.pdf", _pdf(1), None)], options)

        stored = await session_crud.get_by_id(db, result["id"])
        assert stored.model_id == "prebuilt-receipt"
        assert stored.naming_template == [{"type": "field", "field_name": "MerchantName"}]
        assert stored.column_config["column_order"] == ["Total"]
        assert stored.field_transformations["Total"]["config"] == {"decimals": 0}

    async def test_too_many_files(self, service, make_user) -> None:
        user = await make_user(credits=10)
        files = [(f"f{i}.pdf", _pdf(1), None) for i in range(3)]

        with pytest.raises(ValidationError, match="At most 2 files"):
            await service.create_session(user.id, files)

    async def test_no_files(self, service, make_user) -> None:
        user = await make_user(credits=10)
        with pytest.raises(ValidationError):
            await service.create_session(user.id, [])

    async def test_invalid_transformation(self, service, make_user) -> None:
        user = await make_user(credits=10)
        options = SessionOptions.model_validate(
            {
                "field_transformations": {
                    "Vendor": {
                        "type": "TEXT_REPLACE",
                        "config": {"replacements": [{"from": "(", "to": "", "regex": True}]},
                    }
                }
            }
        )

        with pytest.raises(ValidationError, match="Invalid transformation for Vendor"):
            await service.create_session(user.id, [("a.pdf", _pdf(1), None)], options)

    async def test_insufficient_credits_leaves_nothing(self, service, storage, make_user) -> None:
        user = await make_user(credits=1)
        user_id = user.id

        with pytest.raises(InsufficientCreditsError):
            await service.create_session(user_id, [("big.pdf", _pdf(2), None)])

        assert await service.list_sessions(user_id) == []
        assert storage.objects == {}
        assert await CreditLedger(service.db).balance(user_id) == 1


class TestSessionViews:
    """Test suite for status, listing, cancel and download."""

    async def test_status_and_listing(self, service, make_user) -> None:
        user = await make_user(credits=5)
        user_id = user.id
        created = await service.create_session(user_id, [("a.pdf", _pdf(2), None)])

        status = await service.get_status(created["id"], user_id)
        listed = await service.list_sessions(user_id)

        assert status == {"status": "uploading", "processed_units": 0, "total_units": 2, "error": None}
        assert [s["id"] for s in listed] == [created["id"]]

    async def test_other_user_is_denied(self, service, make_user) -> None:
        owner = await make_user(credits=5)
        intruder = await make_user(credits=5)
        intruder_id = intruder.id
        created = await service.create_session(owner.id, [("a.pdf", _pdf(1), None)])

        with pytest.raises(PermissionDeniedError):
            await service.get_status(created["id"], intruder_id)

    async def test_cancel_refunds(self, service, make_user) -> None:
        user = await make_user(credits=5)
        user_id = user.id
        created = await service.create_session(user_id, [("a.pdf", _pdf(2), None)])

        cancelled = await service.cancel(created["id"], user_id)

        assert cancelled["status"] == "cancelled"
        assert await CreditLedger(service.db).balance(user_id) == 5

    async def test_download_before_bundle(self, service, make_user) -> None:
        user = await make_user(credits=5)
        user_id = user.id
        created = await service.create_session(user_id, [("a.pdf", _pdf(1), None)])

        with pytest.raises(SessionNotReadyError):
            await service.get_download(created["id"], user_id)
