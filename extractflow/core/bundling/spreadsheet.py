"""
Spreadsheet report of extracted fields.

One row per completed unit: File Name, Status, Processing Date, then the
extracted fields. Column order, visibility, display names and date
formats come from the session's column configuration:

    {"column_order": ["InvoiceId", "InvoiceDate"],
     "columns": {"InvoiceDate": {"display_name": "Date", "format": "DD/MM/YYYY"},
                 "VendorAddress": {"visible": false}}}

Dependencies: openpyxl
System role: Tabular export inside the result bundle
"""

from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from typing import Any, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from extractflow.core.naming.field_values import extract_field_value, format_date, parse_date

REPORT_FILE_NAME = "extraction_report.xlsx"
FIXED_HEADERS = ["File Name", "Status", "Processing Date"]
DATE_FORMATS = {"MM/DD/YYYY", "DD/MM/YYYY", "YYYY-MM-DD"}
_MAX_COLUMN_WIDTH = 50


@dataclass
class ReportRow:
    """One unit as it appears in the report."""

    file_name: str
    status: str
    processed_at: datetime
    fields: dict[str, Any] = field(default_factory=dict)


def resolve_columns(
    field_names: set[str],
    column_config: dict[str, Any] | None,
) -> list[tuple[str, str]]:
    """
    Decide which field columns appear and in what order.

    Configured order first (names not present in the data are skipped),
    remaining fields alphabetically, hidden columns dropped.

    Args:
        field_names: Every field name found across rows
        column_config: Session column configuration

    Returns:
        list[tuple[str, str]]: (field_name, header) pairs
    """
    column_config = column_config or {}
    configured = [n for n in column_config.get("column_order") or [] if n in field_names]
    ordered = configured + sorted(field_names - set(configured))

    columns = column_config.get("columns") or {}
    resolved = []
    for name in ordered:
        options = columns.get(name) or {}
        if options.get("visible", True) is False:
            continue
        resolved.append((name, options.get("display_name") or name))
    return resolved


def _cell_value(name: str, raw: Any, options: dict[str, Any]) -> str:
    value = extract_field_value(raw)
    date_format = options.get("format")
    if value and date_format in DATE_FORMATS and "date" in name.lower():
        parsed = parse_date(value)
        if parsed is not None:
            return format_date(parsed, date_format)
    return value


def build_report(rows: Sequence[ReportRow], column_config: dict[str, Any] | None = None) -> bytes:
    """
    Render the report workbook.

    Args:
        rows: Report rows in bundle order
        column_config: Session column configuration

    Returns:
        bytes: xlsx file content
    """
    column_config = column_config or {}
    columns = column_config.get("columns") or {}

    field_names: set[str] = set()
    for row in rows:
        field_names.update(row.fields.keys())
    field_columns = resolve_columns(field_names, column_config)

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Extraction Report"

    headers = FIXED_HEADERS + [header for _, header in field_columns]
    sheet.append(headers)
    for cell in sheet[1]:
        cell.font = Font(bold=True)

    for row in rows:
        values = [row.file_name, row.status, row.processed_at.isoformat()]
        for name, _ in field_columns:
            values.append(_cell_value(name, row.fields.get(name), columns.get(name) or {}))
        sheet.append(values)

    for index, header in enumerate(headers, start=1):
        letter = get_column_letter(index)
        longest = max(
            (len(str(cell.value or "")) for cell in sheet[letter]),
            default=len(header),
        )
        sheet.column_dimensions[letter].width = min(longest + 2, _MAX_COLUMN_WIDTH)

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
