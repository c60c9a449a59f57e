"""
Applying generated CREATE TABLE and INSERT statements to live sides.

Each statement runs on its own in autocommit mode. A failed statement is
recorded and the rest still run; there is no transaction spanning them.
"""

import logging
from typing import Any, Callable, Optional, Sequence

from diff_inspector.data.models import InsertDirection, InsertQuery
from diff_inspector.db.connection import connect
from diff_inspector.errors import DatabaseConnectionError
from diff_inspector.schema.models import CreateDirection, CreateTableQuery

logger = logging.getLogger(__name__)


def _empty_side_result() -> dict[str, Any]:
    return {"success": 0, "failed": 0, "errors": []}


def _execute_statements(
    statements: Sequence[tuple[str, str]],
    url: Optional[str],
    side: str,
    dry_run: bool,
    connection_provider: Callable,
) -> dict[str, Any]:
    """Run ``(table, sql)`` pairs against ``url``; returns success/failed/errors."""
    result = _empty_side_result()
    if not statements:
        return result

    if dry_run:
        for table, _ in statements:
            logger.info(f"[dry-run] Would execute statement for {table} on {side}")
            result["success"] += 1
        return result

    if not url:
        for table, _ in statements:
            result["failed"] += 1
            result["errors"].append({"table": table, "error": f"No database URL for {side}"})
        logger.error(f"Cannot apply {len(statements)} statements: {side} is not a live database")
        return result

    with connection_provider(url) as connection:
        for table, sql in statements:
            try:
                connection.execute(sql)
                result["success"] += 1
                logger.info(f"Applied statement for {table} on {side}")
            except DatabaseConnectionError:
                raise
            except Exception as e:
                result["failed"] += 1
                result["errors"].append({"table": table, "error": str(e)})
                logger.error(f"Statement for {table} failed on {side}: {e}")
    return result


def _combine(source_result: dict[str, Any], target_result: dict[str, Any]) -> dict[str, Any]:
    return {
        "success": source_result["success"] + target_result["success"],
        "failed": source_result["failed"] + target_result["failed"],
        "errors": source_result["errors"] + target_result["errors"],
        "source": source_result,
        "target": target_result,
    }


def execute_create_table_queries(
    queries: Sequence[CreateTableQuery],
    source_url: Optional[str],
    target_url: Optional[str],
    dry_run: bool = False,
    connection_provider: Callable = connect,
) -> dict[str, Any]:
    """Create missing tables on the side that lacks them."""
    to_source = [
        (q.table_name, q.sql) for q in queries if q.query_type is CreateDirection.CREATE_IN_SOURCE
    ]
    to_target = [
        (q.table_name, q.sql) for q in queries if q.query_type is CreateDirection.CREATE_IN_TARGET
    ]
    return _combine(
        _execute_statements(to_source, source_url, "source", dry_run, connection_provider),
        _execute_statements(to_target, target_url, "target", dry_run, connection_provider),
    )


def execute_insert_queries(
    queries: Sequence[InsertQuery],
    source_url: Optional[str],
    target_url: Optional[str],
    dry_run: bool = False,
    connection_provider: Callable = connect,
) -> dict[str, Any]:
    """Insert missing records on the side that lacks them."""
    to_source = [
        (q.table_name, q.query) for q in queries if q.direction is InsertDirection.INSERT_TO_SOURCE
    ]
    to_target = [
        (q.table_name, q.query) for q in queries if q.direction is InsertDirection.INSERT_TO_TARGET
    ]
    return _combine(
        _execute_statements(to_source, source_url, "source", dry_run, connection_provider),
        _execute_statements(to_target, target_url, "target", dry_run, connection_provider),
    )
