"""Schema snapshots, structural comparison and DDL generation."""

from .compare import compare_schemas, compare_table
from .ddl import generate_create_table_sql
from .introspect import get_primary_key_columns, introspect_schema, list_tables
from .models import (
    ColumnDescriptor,
    CreateDirection,
    CreateTableQuery,
    ForeignKeyDescriptor,
    IndexDescriptor,
    SchemaComparisonResult,
    SchemaSnapshot,
    TableDescriptor,
    TableDifference,
    TypeDetails,
)

__all__ = [
    "compare_schemas",
    "compare_table",
    "generate_create_table_sql",
    "introspect_schema",
    "list_tables",
    "get_primary_key_columns",
    "ColumnDescriptor",
    "CreateDirection",
    "CreateTableQuery",
    "ForeignKeyDescriptor",
    "IndexDescriptor",
    "SchemaComparisonResult",
    "SchemaSnapshot",
    "TableDescriptor",
    "TableDifference",
    "TypeDetails",
]
