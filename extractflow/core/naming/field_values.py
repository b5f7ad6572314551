"""
Helpers for raw extraction field values.

The extraction service returns either plain values or field objects
(`{"type": "string", "valueString": ..., "content": ...}`), selection marks
and signatures. Everything downstream works on the plain string these
helpers produce.

Dependencies: None
System role: Field value normalization shared by naming and reporting
"""

import re
from datetime import date, datetime
from typing import Any

_VALUE_KEYS = (
    "value",
    "content",
    "text",
    "valueString",
    "valueDate",
    "valueData",
    "date",
    "valueNumber",
    "valueInteger",
)

_DATE_FORMATS = (
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%Y-%m-%d",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%m-%d-%Y",
    "%d-%m-%Y",
    "%m.%d.%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%Y%m%d",
)

# Longest tokens first so MMMM is not read as MM + MM.
_DATE_TOKEN_RE = re.compile(r"YYYY|yyyy|MMMM|MMM|MM|DD|dd|YY|yy")
_DATE_TOKENS = {
    "YYYY": "%Y",
    "yyyy": "%Y",
    "YY": "%y",
    "yy": "%y",
    "MMMM": "%B",
    "MMM": "%b",
    "MM": "%m",
    "DD": "%d",
    "dd": "%d",
}


def extract_field_value(field: Any) -> str:
    """
    Reduce a raw field to a plain string.

    Args:
        field: Plain value, field object, list, or None

    Returns:
        str: Field value, empty string when nothing usable is present
    """
    if field is None:
        return ""
    if isinstance(field, (str, int, float)):
        return str(field)
    if isinstance(field, list):
        return extract_field_value(field[0]) if field else ""
    if not isinstance(field, dict):
        return ""

    kind = field.get("kind") or field.get("type")
    if kind == "selectionMark":
        state = field.get("state") or field.get("valueSelectionMark")
        return "Yes" if state == "selected" else "No"
    if kind == "signature":
        state = field.get("state") or field.get("valueSignature")
        return "Signed" if state == "signed" else "Not Signed"

    for key in _VALUE_KEYS:
        value = field.get(key)
        if value is None:
            continue
        if isinstance(value, (dict, list)):
            return extract_field_value(value)
        return str(value)
    return ""


def _parse_compact_digits(text: str) -> date | None:
    """MDYY, MMDYY or MMDDYY digit runs, years in 2000-2099."""
    if len(text) == 4:
        month, day, year = text[0], text[1], text[2:]
    elif len(text) == 5:
        month, day, year = text[:2], text[2], text[3:]
    elif len(text) == 6:
        month, day, year = text[:2], text[2:4], text[4:]
    else:
        return None
    try:
        return date(2000 + int(year), int(month), int(day))
    except ValueError:
        return None


def parse_date(value: Any, input_format: str | None = None) -> date | None:
    """
    Parse a date from free text.

    Tries, in order: an explicit format, compact digit runs, common
    formats, then ISO 8601.

    Args:
        value: Raw value (string, number or field object)
        input_format: Optional token format (e.g. MM/DD/YYYY) tried first

    Returns:
        date | None: Parsed date, or None if nothing matched
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = extract_field_value(value).strip()
    if not text:
        return None

    if input_format and input_format != "auto":
        try:
            return datetime.strptime(text, to_strftime(input_format)).date()
        except ValueError:
            pass

    if text.isdigit() and 4 <= len(text) <= 6:
        compact = _parse_compact_digits(text)
        if compact is not None:
            return compact

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def to_strftime(pattern: str) -> str:
    """Convert a token pattern (YYYY-MM-DD, yyyy-MM-dd, MMM DD) to strftime."""
    escaped = pattern.replace("%", "%%")
    return _DATE_TOKEN_RE.sub(lambda m: _DATE_TOKENS[m.group(0)], escaped)


def format_date(value: date, pattern: str = "YYYY-MM-DD") -> str:
    """Render a date with a token pattern."""
    return value.strftime(to_strftime(pattern))
