"""
Structural comparison of two schema snapshots.

Foreign keys and indexes are compared by name only: a renamed but otherwise
identical constraint counts as a difference, and two differently shaped
constraints that share a name do not.
"""

import logging

from diff_inspector.utils.tracing import trace_operation

from .ddl import generate_create_table_sql
from .models import (
    ColumnDifference,
    ConstraintDifference,
    CreateDirection,
    CreateTableQuery,
    IndexDifference,
    SchemaComparisonResult,
    SchemaSnapshot,
    TableDescriptor,
    TableDifference,
)

logger = logging.getLogger(__name__)


def _bracketed(names) -> str:
    return f"[{', '.join(names)}]"


def compare_table(source_table: TableDescriptor, target_table: TableDescriptor) -> TableDifference:
    """
    Compare one table present on both sides.

    Column presence is checked in both directions; shared columns are
    compared on raw data type text and on nullability, one record per
    mismatch. Primary keys, foreign key names and index names each yield at
    most one record.
    """
    difference = TableDifference(table_name=source_table.name)

    source_columns = {column.name: column for column in source_table.columns}
    target_columns = {column.name: column for column in target_table.columns}

    for name in source_columns:
        if name not in target_columns:
            difference.column_differences.append(
                ColumnDifference(name, "Column exists in source but not in target")
            )

    for name in target_columns:
        if name not in source_columns:
            difference.column_differences.append(
                ColumnDifference(name, "Column exists in target but not in source")
            )

    for name, source_column in source_columns.items():
        target_column = target_columns.get(name)
        if target_column is None:
            continue
        if source_column.data_type != target_column.data_type:
            difference.column_differences.append(ColumnDifference(
                name,
                f"Data type difference: {source_column.data_type} vs {target_column.data_type}",
            ))
        if source_column.nullable != target_column.nullable:
            difference.column_differences.append(ColumnDifference(
                name,
                f"Nullable difference: {source_column.nullable} vs {target_column.nullable}",
            ))

    source_pks = sorted(source_table.primary_keys)
    target_pks = sorted(target_table.primary_keys)
    if source_pks != target_pks:
        difference.constraint_differences.append(ConstraintDifference(
            "PRIMARY KEY",
            f"Primary key difference: {_bracketed(source_pks)} vs {_bracketed(target_pks)}",
        ))

    source_fks = sorted(fk.name for fk in source_table.foreign_keys)
    target_fks = sorted(fk.name for fk in target_table.foreign_keys)
    if source_fks != target_fks:
        difference.constraint_differences.append(ConstraintDifference(
            "FOREIGN KEYS",
            f"Foreign key difference: {_bracketed(source_fks)} vs {_bracketed(target_fks)}",
        ))

    source_indexes = sorted(index.name for index in source_table.indexes)
    target_indexes = sorted(index.name for index in target_table.indexes)
    if source_indexes != target_indexes:
        difference.index_differences.append(IndexDifference(
            "ALL INDEXES",
            f"Index difference: {_bracketed(source_indexes)} vs {_bracketed(target_indexes)}",
        ))

    return difference


def compare_schemas(
    source: SchemaSnapshot,
    target: SchemaSnapshot,
    verbose: bool = False,
) -> SchemaComparisonResult:
    """
    Compare two schema snapshots.

    Output lists keep source order (``only_in_target`` keeps target order).
    Only tables that actually differ appear in ``table_differences``. A
    CREATE TABLE statement is generated for every table present on exactly
    one side.

    Args:
        source: Source side snapshot
        target: Target side snapshot
        verbose: Attach both snapshots to ``detailed_comparison``

    Returns:
        SchemaComparisonResult
    """
    with trace_operation(
        "compare_schemas",
        source_tables=source.total_tables,
        target_tables=target.total_tables,
    ):
        source_names = source.table_names()
        target_names = target.table_names()
        source_set = set(source_names)
        target_set = set(target_names)

        common_tables = [name for name in source_names if name in target_set]
        only_in_source = [name for name in source_names if name not in target_set]
        only_in_target = [name for name in target_names if name not in source_set]

        table_differences = []
        for name in common_tables:
            difference = compare_table(source.table(name), target.table(name))
            if difference.has_differences:
                table_differences.append(difference)

        create_table_queries = []
        for name in only_in_source:
            create_table_queries.append(CreateTableQuery(
                query_type=CreateDirection.CREATE_IN_TARGET,
                table_name=name,
                sql=generate_create_table_sql(source.table(name), CreateDirection.CREATE_IN_TARGET),
                description=f"Create {name} table from source in target",
            ))
        for name in only_in_target:
            create_table_queries.append(CreateTableQuery(
                query_type=CreateDirection.CREATE_IN_SOURCE,
                table_name=name,
                sql=generate_create_table_sql(target.table(name), CreateDirection.CREATE_IN_SOURCE),
                description=f"Create {name} table from target in source",
            ))

        logger.info(
            f"Schema comparison: {len(common_tables)} common tables, "
            f"{len(only_in_source)} only in source, {len(only_in_target)} only in target, "
            f"{len(table_differences)} with differences"
        )

        return SchemaComparisonResult(
            source_total_tables=source.total_tables,
            target_total_tables=target.total_tables,
            common_tables=common_tables,
            only_in_source=only_in_source,
            only_in_target=only_in_target,
            table_differences=table_differences,
            create_table_queries=create_table_queries,
            detailed_comparison=(
                {"source_schema": source.to_dict(), "target_schema": target.to_dict()}
                if verbose else None
            ),
        )
