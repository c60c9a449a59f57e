"""Multi-row INSERT generation for records missing on one side."""

from typing import Sequence

from diff_inspector.db.quoting import quote_identifier, quote_identifier_list

from .formatting import format_value
from .models import InsertDirection, InsertQuery, Record, TableDataDifference


def build_insert_sql(table_name: str, records: Sequence[Record]) -> str:
    """
    One ``INSERT INTO "t" (...) VALUES (...), (...);`` for all records.

    The column list comes from the first record; every record is assumed to
    have the same columns.
    """
    if not records:
        raise ValueError("Cannot build INSERT without records")

    columns = list(records[0].keys())
    rows = [
        "(" + ", ".join(format_value(record.get(column)) for column in columns) + ")"
        for record in records
    ]
    return (
        f"INSERT INTO {quote_identifier(table_name)} ({quote_identifier_list(columns)}) "
        f"VALUES {', '.join(rows)};"
    )


def generate_insert_queries(table_name: str, difference: TableDataDifference) -> list[InsertQuery]:
    """One InsertQuery per direction that has missing records."""
    queries = []

    if difference.missing_in_target:
        queries.append(InsertQuery(
            direction=InsertDirection.INSERT_TO_TARGET,
            table_name=table_name,
            record_count=len(difference.missing_in_target),
            query=build_insert_sql(table_name, difference.missing_in_target),
            description="Records from source missing in target",
        ))

    if difference.missing_in_source:
        queries.append(InsertQuery(
            direction=InsertDirection.INSERT_TO_SOURCE,
            table_name=table_name,
            record_count=len(difference.missing_in_source),
            query=build_insert_sql(table_name, difference.missing_in_source),
            description="Records from target missing in source",
        ))

    return queries
