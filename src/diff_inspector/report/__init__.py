"""Console and JSON reports, and the organized SQL output directories."""

from .formatters import (
    build_schema_report,
    export_report_json,
    format_data_report_console,
    format_schema_report_console,
)
from .writer import build_insert_script, write_data_output, write_schema_output

__all__ = [
    "build_schema_report",
    "build_insert_script",
    "export_report_json",
    "format_data_report_console",
    "format_schema_report_console",
    "write_data_output",
    "write_schema_output",
]
