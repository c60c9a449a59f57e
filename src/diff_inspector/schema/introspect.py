"""
Builds a SchemaSnapshot from a live database through information_schema
and pg_indexes.
"""

import logging
import re
from typing import Optional, Sequence

from diff_inspector.dump.tokenizer import extract_parenthesized, plain_identifiers
from diff_inspector.utils.tracing import trace_operation

from .models import (
    ColumnDescriptor,
    ForeignKeyDescriptor,
    IndexDescriptor,
    SchemaSnapshot,
    TableDescriptor,
    TypeDetails,
)

logger = logging.getLogger(__name__)

TABLES_QUERY = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = %s
    AND table_type = 'BASE TABLE'
    ORDER BY table_name
"""

COLUMNS_QUERY = """
    SELECT
        column_name,
        data_type,
        is_nullable,
        column_default,
        character_maximum_length,
        numeric_precision,
        numeric_scale
    FROM information_schema.columns
    WHERE table_schema = %s
    AND table_name = %s
    ORDER BY ordinal_position
"""

PRIMARY_KEYS_QUERY = """
    SELECT kcu.column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
        ON tc.constraint_name = kcu.constraint_name
        AND tc.table_schema = kcu.table_schema
    WHERE tc.constraint_type = 'PRIMARY KEY'
    AND tc.table_schema = %s
    AND tc.table_name = %s
    ORDER BY kcu.ordinal_position
"""

FOREIGN_KEYS_QUERY = """
    SELECT
        kcu.constraint_name,
        kcu.column_name,
        kcu.ordinal_position,
        rkcu.table_name AS foreign_table_name,
        rkcu.column_name AS foreign_column_name
    FROM information_schema.referential_constraints AS rc
    JOIN information_schema.key_column_usage AS kcu
        ON kcu.constraint_name = rc.constraint_name
        AND kcu.constraint_schema = rc.constraint_schema
    JOIN information_schema.key_column_usage AS rkcu
        ON rkcu.constraint_name = rc.unique_constraint_name
        AND rkcu.constraint_schema = rc.unique_constraint_schema
        AND rkcu.ordinal_position = kcu.position_in_unique_constraint
    WHERE kcu.table_schema = %s
    AND kcu.table_name = %s
    ORDER BY kcu.constraint_name, kcu.ordinal_position
"""

INDEXES_QUERY = """
    SELECT indexname, indexdef
    FROM pg_indexes
    WHERE schemaname = %s
    AND tablename = %s
    ORDER BY indexname
"""

INDEX_USING_PATTERN = re.compile(r"\bUSING\s+\w+\s*(?=\()", re.IGNORECASE)


def list_tables(connection, schema: str, tables: Optional[Sequence[str]] = None) -> list[str]:
    """Base tables of ``schema`` by name, optionally restricted to ``tables``."""
    rows = connection.query(TABLES_QUERY, (schema,))
    names = [row["table_name"] for row in rows]
    if tables:
        wanted = set(tables)
        names = [name for name in names if name in wanted]
    return names


def get_primary_key_columns(connection, schema: str, table: str) -> list[str]:
    rows = connection.query(PRIMARY_KEYS_QUERY, (schema, table))
    return [row["column_name"] for row in rows]


def get_columns(connection, schema: str, table: str) -> list[ColumnDescriptor]:
    rows = connection.query(COLUMNS_QUERY, (schema, table))
    return [
        ColumnDescriptor(
            name=row["column_name"],
            data_type=row["data_type"],
            nullable=row["is_nullable"] == "YES",
            default_value=row["column_default"],
            type_details=TypeDetails(
                max_length=row["character_maximum_length"],
                precision=row["numeric_precision"],
                scale=row["numeric_scale"],
            ),
        )
        for row in rows
    ]


def get_foreign_keys(connection, schema: str, table: str) -> list[ForeignKeyDescriptor]:
    """
    One descriptor per constraint; multi-column keys are folded together.

    Each row pairs a local column with the referenced column at the same
    position of the referenced key, so the two tuples line up.
    """
    rows = connection.query(FOREIGN_KEYS_QUERY, (schema, table))

    grouped: dict[str, dict] = {}
    for row in rows:
        entry = grouped.setdefault(row["constraint_name"], {
            "referenced_table": row["foreign_table_name"],
            "pairs": [],
        })
        entry["pairs"].append(
            (row["ordinal_position"], row["column_name"], row["foreign_column_name"])
        )

    foreign_keys = []
    for name, entry in grouped.items():
        pairs = sorted(entry["pairs"])
        foreign_keys.append(ForeignKeyDescriptor(
            name=name,
            columns=tuple(column for _, column, _ in pairs),
            referenced_table=entry["referenced_table"],
            referenced_columns=tuple(referenced for _, _, referenced in pairs),
        ))
    return foreign_keys


def index_columns_from_definition(definition: str) -> Optional[tuple[str, ...]]:
    """
    Recover the column list of a plain index definition.

    >>> index_columns_from_definition(
    ...     "CREATE UNIQUE INDEX users_pkey ON public.users USING btree (id)")
    ('id',)

    Expression indexes and anything else that is not a bare column list
    give None.
    """
    match = INDEX_USING_PATTERN.search(definition)
    if not match:
        return None
    try:
        inner, _ = extract_parenthesized(definition, match.end())
    except ValueError:
        return None

    return plain_identifiers(inner)


def get_indexes(connection, schema: str, table: str) -> list[IndexDescriptor]:
    rows = connection.query(INDEXES_QUERY, (schema, table))
    return [
        IndexDescriptor(
            name=row["indexname"],
            columns=index_columns_from_definition(row["indexdef"]),
            unique="UNIQUE" in row["indexdef"],
            definition=row["indexdef"],
        )
        for row in rows
    ]


def introspect_table(connection, schema: str, table: str) -> TableDescriptor:
    return TableDescriptor(
        name=table,
        columns=tuple(get_columns(connection, schema, table)),
        primary_keys=tuple(get_primary_key_columns(connection, schema, table)),
        foreign_keys=tuple(get_foreign_keys(connection, schema, table)),
        indexes=tuple(get_indexes(connection, schema, table)),
    )


def introspect_schema(
    connection,
    schema: str = "public",
    tables: Optional[Sequence[str]] = None,
) -> SchemaSnapshot:
    """
    Introspect every base table of ``schema`` (or only ``tables``).

    Args:
        connection: Object with ``query(sql, params) -> list[dict]``
        schema: Schema name
        tables: Optional allow-list of table names

    Returns:
        SchemaSnapshot in table-name order
    """
    with trace_operation("introspect_schema", schema=schema):
        names = list_tables(connection, schema, tables)
        logger.info(f"Introspecting {len(names)} tables in schema {schema}")
        return SchemaSnapshot(
            schema=schema,
            tables=tuple(introspect_table(connection, schema, name) for name in names),
        )
