"""
Field value handling and file naming.

Exports:
  - extract_field_value, parse_date, format_date: Raw field helpers
  - FieldTransformer, TransformationType: Per-field value transforms
  - FileNamer: Naming template rendering and sanitization
"""

from extractflow.core.naming.field_transformer import FieldTransformer, TransformationType
from extractflow.core.naming.field_values import extract_field_value, format_date, parse_date
from extractflow.core.naming.file_namer import FileNamer

__all__ = [
    "extract_field_value",
    "parse_date",
    "format_date",
    "FieldTransformer",
    "TransformationType",
    "FileNamer",
]
