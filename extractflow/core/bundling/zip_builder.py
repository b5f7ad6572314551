"""
Zip bundle of renamed units plus the spreadsheet report.

Layout:
    pdfs/<renamed file name>
    extraction_report.xlsx

Dependencies: zipfile (stdlib)
System role: Downloadable result bundle
"""

from dataclasses import dataclass
from io import BytesIO
from typing import Sequence
from zipfile import ZIP_DEFLATED, ZipFile

from extractflow.core.bundling.spreadsheet import REPORT_FILE_NAME


@dataclass
class BundleEntry:
    """One renamed file inside the bundle."""

    file_name: str
    data: bytes


def build_bundle(entries: Sequence[BundleEntry], report: bytes) -> bytes:
    """
    Write the bundle archive.

    Args:
        entries: Renamed files; names must already be unique
        report: xlsx report content

    Returns:
        bytes: Zip archive content
    """
    buffer = BytesIO()
    with ZipFile(buffer, "w", compression=ZIP_DEFLATED, compresslevel=9) as archive:
        for entry in entries:
            archive.writestr(f"pdfs/{entry.file_name}", entry.data)
        archive.writestr(REPORT_FILE_NAME, report)
    return buffer.getvalue()
