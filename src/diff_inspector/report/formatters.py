"""
Report formatting and export.

Console reports are plain text; JSON reports are plain dictionaries built
from the result objects.
"""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from diff_inspector.data.models import ComparisonStatus, DataComparisonResult
from diff_inspector.schema.models import SchemaComparisonResult


def export_report_json(report: dict[str, Any], output_path) -> None:
    """
    Export report to JSON file

    Args:
        report: Report dictionary
        output_path: Path to output file
    """
    path = Path(output_path)
    if path.parent != Path("."):
        path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2, default=str)


def build_schema_report(result: SchemaComparisonResult) -> dict[str, Any]:
    """Timestamped JSON report of a schema comparison."""
    return {
        "timestamp": datetime.now(UTC).isoformat(),
        "summary": {
            "source_stats": {"total_tables": result.source_total_tables},
            "target_stats": {"total_tables": result.target_total_tables},
            "common_tables": list(result.common_tables),
            "only_in_source": list(result.only_in_source),
            "only_in_target": list(result.only_in_target),
            "table_differences": [d.to_dict() for d in result.table_differences],
        },
        "counts": result.summary,
    }


def format_schema_report_console(result: SchemaComparisonResult, verbose: bool = False) -> str:
    """
    Format a schema comparison for console output

    Args:
        result: Schema comparison result
        verbose: Also list every common table

    Returns:
        Formatted string for console display
    """
    lines = []

    lines.append("=" * 80)
    lines.append("SCHEMA COMPARISON")
    lines.append("=" * 80)
    lines.append(f"Total tables (source): {result.source_total_tables}")
    lines.append(f"Total tables (target): {result.target_total_tables}")
    lines.append(f"Common tables: {len(result.common_tables)}")
    lines.append(f"Only in source: {len(result.only_in_source)}")
    lines.append(f"Only in target: {len(result.only_in_target)}")
    lines.append(f"Tables with differences: {len(result.table_differences)}")
    lines.append("")

    if result.only_in_source:
        lines.append("ONLY IN SOURCE")
        lines.append("-" * 80)
        lines.extend(f"  {name}" for name in result.only_in_source)
        lines.append("")

    if result.only_in_target:
        lines.append("ONLY IN TARGET")
        lines.append("-" * 80)
        lines.extend(f"  {name}" for name in result.only_in_target)
        lines.append("")

    if result.table_differences:
        lines.append("TABLE DIFFERENCES")
        lines.append("-" * 80)
        for difference in result.table_differences:
            lines.append(f"Table: {difference.table_name}")
            for column in difference.column_differences:
                lines.append(f"  Column {column.column_name}: {column.difference}")
            for constraint in difference.constraint_differences:
                lines.append(f"  {constraint.constraint_name}: {constraint.difference}")
            for index in difference.index_differences:
                lines.append(f"  {index.index_name}: {index.difference}")
            lines.append("")

    if verbose and result.common_tables:
        lines.append("COMMON TABLES")
        lines.append("-" * 80)
        lines.extend(f"  {name}" for name in result.common_tables)
        lines.append("")

    if not result.has_differences:
        lines.append("Schemas are identical.")

    lines.append("=" * 80)
    return "\n".join(lines)


def format_data_report_console(result: DataComparisonResult) -> str:
    """Format a data comparison for console output."""
    summary = result.summary
    lines = []

    lines.append("=" * 80)
    lines.append("DATA COMPARISON")
    lines.append("=" * 80)
    lines.append(f"Tables compared: {summary['total_tables']}")
    lines.append(f"Tables with differences: {summary['tables_with_differences']}")
    lines.append(f"Total missing records: {summary['total_missing_records']:,}")
    lines.append(f"Tables skipped: {summary['tables_skipped']}")
    lines.append(f"Tables failed: {summary['tables_failed']}")
    lines.append("")

    lines.append("TABLES")
    lines.append("-" * 80)
    for table in result.table_results:
        if table.status is ComparisonStatus.COMPLETE:
            state = "DIFFERENT" if table.has_differences else "OK"
            lines.append(
                f"{table.table_name}: {state} "
                f"(source {table.total_source_records:,}, target {table.total_target_records:,}, "
                f"missing in target {len(table.missing_in_target):,}, "
                f"missing in source {len(table.missing_in_source):,})"
            )
        else:
            # Not examined, so not known to be clean
            lines.append(f"{table.table_name}: {table.status.value.upper()} ({table.reason})")
    lines.append("")

    if result.insert_queries:
        lines.append("GENERATED INSERTS")
        lines.append("-" * 80)
        for query in result.insert_queries:
            lines.append(
                f"{query.direction.value} {query.table_name}: {query.record_count:,} records"
            )
        lines.append("")

    lines.append("=" * 80)
    return "\n".join(lines)
