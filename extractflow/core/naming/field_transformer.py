"""
Field value transformations.

Normalizes extracted values before they are used for file naming and the
spreadsheet report. Configured per field on the session:

    {"InvoiceDate": {"type": "DATE_PARSE", "config": {"outputFormat": "yyyy-MM-dd"}}}

Dependencies: None
System role: Per-field value normalization
"""

import enum
import logging
import re
from typing import Any

from extractflow.core.naming.field_values import extract_field_value, format_date, parse_date

logger = logging.getLogger(__name__)


class TransformationType(str, enum.Enum):
    """Supported field transformations."""

    NONE = "NONE"
    DATE_PARSE = "DATE_PARSE"
    NUMBER_FORMAT = "NUMBER_FORMAT"
    TEXT_REPLACE = "TEXT_REPLACE"


class FieldTransformer:
    """Applies configured transformations to extracted field values."""

    def transform(
        self,
        value: Any,
        transformation_type: TransformationType | str,
        config: dict[str, Any] | None = None,
    ) -> Any:
        """
        Transform one value.

        Values that cannot be transformed are returned unchanged.

        Args:
            value: Plain field value
            transformation_type: Transformation to apply
            config: Transformation options

        Returns:
            Transformed value
        """
        config = config or {}
        if not value:
            return value

        try:
            kind = TransformationType(transformation_type)
        except ValueError:
            logger.warning(f"{__name__}:transform - Unsupported transformation {transformation_type}")
            return value

        if kind == TransformationType.DATE_PARSE:
            return self.transform_date(value, config)
        if kind == TransformationType.NUMBER_FORMAT:
            return self.transform_number(value, config)
        if kind == TransformationType.TEXT_REPLACE:
            return self.transform_text(value, config)
        return value

    def transform_date(self, value: Any, config: dict[str, Any]) -> Any:
        """
        Parse a date in any common format and re-render it.

        Config:
            inputFormat: Token format tried first ('auto' to skip)
            outputFormat: Token format of the result (default yyyy-MM-dd)
        """
        parsed = parse_date(value, config.get("inputFormat"))
        if parsed is None:
            logger.debug(f"{__name__}:transform_date - Unable to parse date value: {value}")
            return value
        return format_date(parsed, config.get("outputFormat", "yyyy-MM-dd"))

    def transform_number(self, value: Any, config: dict[str, Any]) -> Any:
        """
        Format a number.

        Config:
            decimals: Digits after the decimal separator (default 2)
            thousandsSeparator: Grouping separator (default ',')
            decimalSeparator: Decimal separator (default '.')
            prefix / suffix: Text around the number
            returnAsNumber: Return a float instead of a string
        """
        digits = re.sub(r"[^0-9.\-]", "", str(value))
        try:
            number = float(digits)
        except ValueError:
            return value

        decimals = int(config.get("decimals", 2))
        if config.get("returnAsNumber"):
            return round(number, decimals)

        rendered = f"{number:,.{decimals}f}"
        integer, _, fraction = rendered.partition(".")
        integer = integer.replace(",", config.get("thousandsSeparator", ","))
        formatted = integer + (config.get("decimalSeparator", ".") + fraction if fraction else "")
        return f"{config.get('prefix', '')}{formatted}{config.get('suffix', '')}"

    def transform_text(self, value: Any, config: dict[str, Any]) -> str:
        """
        Trim, replace and re-case text.

        Config:
            replacements: [{"from": ..., "to": ..., "regex": bool}]
            case: 'upper', 'lower', 'title' or 'none'
            trim: Strip surrounding whitespace (default True)
        """
        result = str(value)
        if config.get("trim", True):
            result = result.strip()

        for replacement in config.get("replacements", []):
            source = replacement.get("from", "")
            target = replacement.get("to", "")
            if not source:
                continue
            if replacement.get("regex"):
                result = re.sub(source, target, result)
            else:
                result = result.replace(source, target)

        case = config.get("case", "none")
        if case == "upper":
            result = result.upper()
        elif case == "lower":
            result = result.lower()
        elif case == "title":
            result = re.sub(r"\w\S*", lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), result)
        return result

    def transform_fields(
        self,
        fields: dict[str, Any] | None,
        transformations: dict[str, dict[str, Any]] | None,
    ) -> dict[str, Any]:
        """
        Flatten raw extracted fields and apply per-field transformations.

        Args:
            fields: Raw extracted field map
            transformations: {field_name: {"type": ..., "config": {...}}}

        Returns:
            dict: field_name -> plain (possibly transformed) value
        """
        transformations = transformations or {}
        result: dict[str, Any] = {}
        for name, raw in (fields or {}).items():
            value = extract_field_value(raw)
            spec = transformations.get(name)
            if spec:
                value = self.transform(value, spec.get("type", "NONE"), spec.get("config"))
            result[name] = value
        return result

    def validate_config(
        self,
        transformation_type: str,
        config: dict[str, Any] | None = None,
    ) -> list[str]:
        """
        Check a transformation configuration.

        Returns:
            list[str]: Problems found, empty when valid
        """
        config = config or {}
        errors: list[str] = []

        try:
            kind = TransformationType(transformation_type)
        except ValueError:
            return [f"Unsupported transformation type: {transformation_type}"]

        if kind == TransformationType.NUMBER_FORMAT:
            decimals = config.get("decimals")
            if decimals is not None and (not isinstance(decimals, int) or decimals < 0):
                errors.append("Decimals must be a non-negative integer")
        elif kind == TransformationType.TEXT_REPLACE:
            replacements = config.get("replacements")
            if replacements is not None and not isinstance(replacements, list):
                errors.append("Replacements must be an array")
            for replacement in replacements or []:
                if replacement.get("regex"):
                    try:
                        re.compile(replacement.get("from", ""))
                    except re.error as e:
                        errors.append(f"Invalid pattern {replacement.get('from')!r}: {e}")
        return errors
