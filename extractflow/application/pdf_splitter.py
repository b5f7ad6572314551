"""
PDF page splitting.

Every page of an uploaded PDF becomes its own unit (one job, one credit
per page). Non-PDF uploads are routed whole as a single unit.

Dependencies: pypdf
System role: Upload to unit conversion
"""

import logging
from io import BytesIO

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from extractflow.core.exceptions import ValidationError
from extractflow.core.session_manager import UploadUnit

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


def looks_like_pdf(data: bytes) -> bool:
    """Whether the bytes carry a PDF header."""
    head = data[:1024].lstrip()
    if head.startswith(b"\xef\xbb\xbf"):
        head = head[3:].lstrip()
    return head.startswith(b"%PDF")


def _page_name(file_name: str, page_number: int) -> str:
    stem = file_name.rsplit(".", 1)[0] if "." in file_name else file_name
    return f"{stem}_page_{page_number}.pdf"


def split_upload(file_name: str, data: bytes, content_type: str | None = None) -> list[UploadUnit]:
    """
    Turn one uploaded file into units.

    Args:
        file_name: Original upload name
        data: Upload bytes
        content_type: Declared MIME type

    Returns:
        list[UploadUnit]: One unit per PDF page, or a single unit

    Raises:
        ValidationError: Empty upload, or a PDF that cannot be read
    """
    if not data:
        raise ValidationError(f"Uploaded file {file_name} is empty", field="files")

    declared_pdf = file_name.lower().endswith(".pdf") or (content_type or "").lower().endswith("/pdf")
    if not looks_like_pdf(data):
        if declared_pdf:
            raise ValidationError(f"{file_name} is not a valid PDF", field="files")
        return [
            UploadUnit(
                file_name=file_name,
                data=data,
                content_type=content_type or "application/octet-stream",
            )
        ]

    try:
        reader = PdfReader(BytesIO(data))
        page_count = len(reader.pages)
    except PdfReadError as e:
        raise ValidationError(f"{file_name} could not be read: {e}", field="files") from e

    if page_count == 0:
        raise ValidationError(f"{file_name} has no pages", field="files")

    if page_count == 1:
        return [UploadUnit(file_name=file_name, data=data, content_type=PDF_CONTENT_TYPE)]

    units = []
    for index, page in enumerate(reader.pages, start=1):
        writer = PdfWriter()
        writer.add_page(page)
        buffer = BytesIO()
        writer.write(buffer)
        units.append(
            UploadUnit(
                file_name=_page_name(file_name, index),
                data=buffer.getvalue(),
                page_number=index,
                page_count=1,
                content_type=PDF_CONTENT_TYPE,
            )
        )

    logger.info(f"{__name__}:split_upload - Split {file_name} into {page_count} pages")
    return units
