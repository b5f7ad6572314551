"""
File naming from extracted fields.

A naming template is an ordered list of elements:

    [{"type": "field", "field_name": "VendorName", "transform": "uppercase"},
     {"type": "text", "value": "_"},
     {"type": "field", "field_name": "InvoiceDate", "transform": "date:YYYY-MM-DD"}]

Field transforms: uppercase, lowercase, camelcase, kebabcase,
date:<FORMAT>, truncate:<N>, replace:<from>:<to>.

Dependencies: None
System role: Renaming of completed units during post-processing
"""

import re
from typing import Any

from extractflow.core.naming.field_values import extract_field_value, format_date, parse_date

_MAX_SEGMENT_LENGTH = 50


class FileNamer:
    """Renders naming templates into safe file names."""

    def apply_transform(self, value: str, transform: str | None) -> str:
        """
        Apply one naming transform to a value.

        Args:
            value: Plain field value
            transform: Transform spec such as 'truncate:10'

        Returns:
            str: Transformed value (unchanged for unknown transforms)
        """
        if not transform or not value:
            return value

        kind, _, params = transform.partition(":")

        if kind == "uppercase":
            return value.upper()
        if kind == "lowercase":
            return value.lower()
        if kind == "camelcase":
            return self.to_camel_case(value)
        if kind == "kebabcase":
            return self.to_kebab_case(value)
        if kind == "date":
            parsed = parse_date(value)
            if parsed is None:
                return value
            return format_date(parsed, params or "YYYY-MM-DD")
        if kind == "truncate":
            try:
                length = int(params)
            except ValueError:
                length = _MAX_SEGMENT_LENGTH
            return value[:length]
        if kind == "replace":
            source, sep, target = params.partition(":")
            if not sep or not source:
                return value
            return value.replace(source, target)
        return value

    @staticmethod
    def to_camel_case(value: str) -> str:
        result = re.sub(r"[^a-zA-Z0-9]+(.)", lambda m: m.group(1).upper(), value)
        return result[:1].lower() + result[1:]

    @staticmethod
    def to_kebab_case(value: str) -> str:
        result = re.sub(r"[^a-zA-Z0-9]+", "-", value)
        result = re.sub(r"([a-z])([A-Z])", r"\1-\2", result)
        return result.lower().strip("-")

    @staticmethod
    def sanitize(value: str) -> str:
        """Keep [a-zA-Z0-9-_], collapse underscores, cap at 50 characters."""
        result = re.sub(r"[^a-zA-Z0-9\-_]", "_", value)
        result = re.sub(r"_+", "_", result)
        return result.strip("_")[:_MAX_SEGMENT_LENGTH]

    def generate(
        self,
        elements: list[dict[str, Any]] | None,
        fields: dict[str, Any] | None,
    ) -> str | None:
        """
        Render a naming template.

        Args:
            elements: Template elements
            fields: Field values (plain or raw extraction objects)

        Returns:
            str | None: Base file name without extension, None without a template
        """
        if not elements:
            return None

        fields = fields or {}
        parts: list[str] = []
        for element in elements:
            if element.get("type") == "text":
                # Literal text never carries path separators into archive entries.
                parts.append(re.sub(r"[^a-zA-Z0-9\-_ .]", "_", element.get("value") or ""))
            elif element.get("type") == "field":
                field_name = element.get("field_name") or ""
                raw = extract_field_value(fields.get(field_name))
                transformed = self.apply_transform(raw, element.get("transform"))
                parts.append(self.sanitize(transformed or field_name or "Unknown"))

        name = "".join(parts).strip(" .")
        return name or None

    @staticmethod
    def make_unique(file_name: str, taken: set[str]) -> str:
        """
        Disambiguate a file name against names already used.

        report.pdf, report.pdf -> report.pdf, report_1.pdf

        Args:
            file_name: Desired name with extension
            taken: Names already used; updated in place

        Returns:
            str: Unique name
        """
        candidate = file_name
        stem, dot, extension = file_name.rpartition(".")
        if not dot:
            stem, extension = file_name, ""
        counter = 1
        while candidate in taken:
            candidate = f"{stem}_{counter}.{extension}" if extension else f"{stem}_{counter}"
            counter += 1
        taken.add(candidate)
        return candidate
