"""
Result bundle writers.

Exports:
  - ReportRow, build_report: Spreadsheet report (xlsx)
  - BundleEntry, build_bundle: Zip bundle of renamed files plus the report
"""

from extractflow.core.bundling.spreadsheet import REPORT_FILE_NAME, ReportRow, build_report, resolve_columns
from extractflow.core.bundling.zip_builder import BundleEntry, build_bundle

__all__ = [
    "REPORT_FILE_NAME",
    "ReportRow",
    "build_report",
    "resolve_columns",
    "BundleEntry",
    "build_bundle",
]
