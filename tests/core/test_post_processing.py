"""
Tests for PostProcessor.

System role: Verification of naming, report and bundle production and of
the single-run guard
"""

from io import BytesIO
from zipfile import ZipFile

import pytest
from openpyxl import load_workbook

from extractflow.boundary.db import (
    PostProcessingStatus,
    SessionStatus,
    session_crud,
)
from extractflow.core.bundling import REPORT_FILE_NAME
from extractflow.core.exceptions import BundlingError
from extractflow.core.post_processing import PostProcessor

NAMING_TEMPLATE = [
    {"type": "field", "field_name": "VendorName", "transform": "uppercase"},
    {"type": "text", "value": "_"},
    {"type": "field", "field_name": "InvoiceDate"},
]
COLUMN_CONFIG = {"column_order": ["Total"], "columns": {"VendorName": {"display_name": "Vendor"}}}
TRANSFORMATIONS = {"InvoiceDate": {"type": "DATE_PARSE", "config": {"outputFormat": "yyyy-MM-dd"}}}
FIELDS = {
    "VendorName": {"type": "string", "content": "Acme Corp"},
    "InvoiceDate": {"type": "date", "content": "01/15/2024"},
    "Total": {"type": "currency", "content": "100"},
}


@pytest.fixture
def processor(db, storage) -> PostProcessor:
    return PostProcessor(db, storage)


@pytest.fixture
async def completed_session(manager, extraction, make_user, make_session):
    user = await make_user(credits=5)
    session = await make_session(
        user,
        [b"p1", b"p2"],
        naming_template=NAMING_TEMPLATE,
        column_config=COLUMN_CONFIG,
        field_transformations=TRANSFORMATIONS,
    )
    extraction.succeed(b"p1", FIELDS)
    extraction.succeed(b"p2", FIELDS)
    await manager.tracker.poll_active_jobs()
    return session


class TestPostProcessorRun:
    """Test suite for PostProcessor.run()."""

    async def test_bundle_contents(self, processor, storage, manager, completed_session) -> None:
        session = await processor.run(completed_session.id)

        assert session.status == SessionStatus.COMPLETED
        assert session.post_processing_status == PostProcessingStatus.COMPLETED
        with ZipFile(BytesIO(storage.get(session.result_bundle_ref))) as archive:
            names = sorted(archive.namelist())
            report = load_workbook(BytesIO(archive.read(REPORT_FILE_NAME))).active

        assert names == [
            REPORT_FILE_NAME,
            "pdfs/ACME_CORP_2024-01-15.pdf",
            "pdfs/ACME_CORP_2024-01-15_1.pdf",
        ]
        rows = [tuple(row) for row in report.iter_rows(values_only=True)]
        assert rows[0] == ("File Name", "Status", "Processing Date", "Total", "InvoiceDate", "Vendor")
        assert rows[1][1] == "COMPLETED"
        assert rows[1][3:] == ("100", "2024-01-15", "Acme Corp")

        renamed = sorted(job.renamed_file_name for job in await manager.get_jobs(session.id))
        assert renamed == ["ACME_CORP_2024-01-15.pdf", "ACME_CORP_2024-01-15_1.pdf"]

    async def test_bundle_key_is_session_scoped(self, processor, completed_session) -> None:
        session = await processor.run(completed_session.id)
        assert session.result_bundle_ref == (
            f"{session.blob_prefix}exports/session_{session.id}.zip"
        )

    async def test_second_run_is_skipped(self, processor, storage, completed_session) -> None:
        first = await processor.run(completed_session.id)
        bundle = storage.get(first.result_bundle_ref)
        storage.objects[first.result_bundle_ref] = b"sentinel"

        second = await processor.run(completed_session.id)

        assert second.status == SessionStatus.COMPLETED
        assert storage.get(second.result_bundle_ref) == b"sentinel"
        assert bundle != b"sentinel"

    async def test_claimed_elsewhere_is_left_alone(self, db, processor, storage, completed_session) -> None:
        session_id = completed_session.id
        assert await session_crud.claim_post_processing(db, session_id)
        await db.commit()

        session = await processor.run(session_id)

        assert session.result_bundle_ref is None
        assert not [k for k in storage.objects if k.endswith(".zip")]

    async def test_failure_marks_session_failed(self, db, processor, storage, completed_session) -> None:
        session_id = completed_session.id
        storage.objects = {k: v for k, v in storage.objects.items() if "uploads/" not in k}

        with pytest.raises(BundlingError):
            await processor.run(session_id)

        session = await session_crud.get_by_id(db, session_id)
        assert session.status == SessionStatus.FAILED
        assert session.post_processing_status == PostProcessingStatus.FAILED
        assert session.error_message.startswith("Bundling failed")
