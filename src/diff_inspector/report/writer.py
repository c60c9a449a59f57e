"""
Organized output of generated SQL.

Layout under ``base_dir``::

    source-to-target/   statements to run on the target
        missing-tables.sql | missing-records.sql
        report.json
    target-to-source/   statements to run on the source
        ...
    schema-summary-report.json | summary-report.json
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Sequence

from diff_inspector.data.models import InsertDirection, InsertQuery
from diff_inspector.schema.models import CreateDirection, CreateTableQuery

from .formatters import export_report_json

logger = logging.getLogger(__name__)

SOURCE_TO_TARGET = "source-to-target"
TARGET_TO_SOURCE = "target-to-source"


def _prepare_dirs(base_dir) -> tuple[Path, Path, Path]:
    base = Path(base_dir)
    source_to_target = base / SOURCE_TO_TARGET
    target_to_source = base / TARGET_TO_SOURCE
    source_to_target.mkdir(parents=True, exist_ok=True)
    target_to_source.mkdir(parents=True, exist_ok=True)
    return base, source_to_target, target_to_source


def _write_text(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")
    logger.info(f"Wrote {path}")


def _create_table_script(queries: Sequence[CreateTableQuery], missing_side: str, now: str) -> str:
    sql = "-- Auto-generated CREATE TABLE statements\n"
    sql += f"-- Tables missing in {missing_side} database\n"
    sql += f"-- Generated at: {now}\n\n"
    for query in queries:
        sql += query.sql
    return sql


def write_schema_output(queries: Sequence[CreateTableQuery], base_dir="output") -> dict[str, Any]:
    """
    Write CREATE TABLE scripts and reports for missing tables.

    Returns:
        Counts per direction and the total
    """
    base, source_to_target, target_to_source = _prepare_dirs(base_dir)
    now = datetime.now(UTC).isoformat()

    to_target = [q for q in queries if q.query_type is CreateDirection.CREATE_IN_TARGET]
    to_source = [q for q in queries if q.query_type is CreateDirection.CREATE_IN_SOURCE]

    for directory, selected, missing_side, direction in (
        (source_to_target, to_target, "target", CreateDirection.CREATE_IN_TARGET),
        (target_to_source, to_source, "source", CreateDirection.CREATE_IN_SOURCE),
    ):
        if not selected:
            continue
        _write_text(directory / "missing-tables.sql", _create_table_script(selected, missing_side, now))
        export_report_json({
            "timestamp": now,
            "type": direction.value,
            "description": f"Tables missing in {missing_side} database",
            "tables": [
                {"table_name": q.table_name, "description": q.description} for q in selected
            ],
        }, directory / "report.json")

    export_report_json({
        "timestamp": now,
        "summary": {
            "total_missing_tables": len(queries),
            "missing_in_target": len(to_target),
            "missing_in_source": len(to_source),
        },
        "details": {
            SOURCE_TO_TARGET: [q.table_name for q in to_target],
            TARGET_TO_SOURCE: [q.table_name for q in to_source],
        },
    }, base / "schema-summary-report.json")

    return {
        "source_to_target": len(to_target),
        "target_to_source": len(to_source),
        "total": len(queries),
    }


def build_insert_script(queries: Sequence[InsertQuery]) -> str:
    """All INSERT statements as one SQL script with a comment per statement."""
    lines = [
        "-- Auto-generated INSERT statements",
        f"-- Generated at: {datetime.now(UTC).isoformat()}",
        "",
    ]
    for query in queries:
        lines.append(f"-- {query.direction.value} - {query.record_count} records for {query.table_name}")
        lines.append(f"-- {query.description}")
        lines.append(query.query)
        lines.append("")
    return "\n".join(lines)


def write_data_output(queries: Sequence[InsertQuery], base_dir="output") -> dict[str, Any]:
    """
    Write INSERT scripts and reports for missing records.

    Returns:
        Statement counts per direction, total statements and total records
    """
    base, source_to_target, target_to_source = _prepare_dirs(base_dir)
    now = datetime.now(UTC).isoformat()

    to_target = [q for q in queries if q.direction is InsertDirection.INSERT_TO_TARGET]
    to_source = [q for q in queries if q.direction is InsertDirection.INSERT_TO_SOURCE]

    for directory, selected, label in (
        (source_to_target, to_target, "source -> target"),
        (target_to_source, to_source, "target -> source"),
    ):
        if not selected:
            continue
        _write_text(directory / "missing-records.sql", build_insert_script(selected))
        export_report_json({
            "timestamp": now,
            "direction": label,
            "total_queries": len(selected),
            "total_records": sum(q.record_count for q in selected),
            "tables": [
                {
                    "table_name": q.table_name,
                    "record_count": q.record_count,
                    "description": q.description,
                }
                for q in selected
            ],
        }, directory / "report.json")

    total_records = sum(q.record_count for q in queries)
    export_report_json({
        "timestamp": now,
        "summary": {
            "total_queries": len(queries),
            "total_records": total_records,
            SOURCE_TO_TARGET: len(to_target),
            TARGET_TO_SOURCE: len(to_source),
        },
    }, base / "summary-report.json")

    return {
        "source_to_target": len(to_target),
        "target_to_source": len(to_source),
        "total": len(queries),
        "total_records": total_records,
    }
