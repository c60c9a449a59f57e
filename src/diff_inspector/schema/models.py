"""
Schema snapshot and schema comparison result types.

A snapshot has the same shape whether it was introspected from a live
database or recovered from a dump file. Snapshots are immutable once built.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# Default recorded for dump-derived columns; the expression itself is not kept
DEFAULT_MARKER = "default"


@dataclass(frozen=True)
class TypeDetails:
    """Length/precision/scale, only known from live introspection."""

    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    data_type: str
    nullable: bool = True
    default_value: Optional[str] = None
    type_details: Optional[TypeDetails] = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "name": self.name,
            "data_type": self.data_type,
            "nullable": self.nullable,
            "default_value": self.default_value,
        }
        # Dump-derived columns carry no type details at all
        if self.type_details is not None:
            data["max_length"] = self.type_details.max_length
            data["precision"] = self.type_details.precision
            data["scale"] = self.type_details.scale
        return data


@dataclass(frozen=True)
class ForeignKeyDescriptor:
    name: str
    columns: tuple[str, ...]
    referenced_table: str
    referenced_columns: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "columns": list(self.columns),
            "referenced_table": self.referenced_table,
            "referenced_columns": list(self.referenced_columns),
        }


@dataclass(frozen=True)
class IndexDescriptor:
    """
    An index on a table.

    ``columns`` is None when only the index definition text is known and the
    column list could not be recovered from it.
    """

    name: str
    columns: Optional[tuple[str, ...]] = None
    unique: bool = False
    definition: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "columns": list(self.columns) if self.columns is not None else None,
            "unique": self.unique,
            "definition": self.definition,
        }


@dataclass(frozen=True)
class TableDescriptor:
    name: str
    columns: tuple[ColumnDescriptor, ...] = ()
    primary_keys: tuple[str, ...] = ()
    foreign_keys: tuple[ForeignKeyDescriptor, ...] = ()
    indexes: tuple[IndexDescriptor, ...] = ()

    def column(self, name: str) -> Optional[ColumnDescriptor]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "columns": [column.to_dict() for column in self.columns],
            "primary_keys": list(self.primary_keys),
            "foreign_keys": [fk.to_dict() for fk in self.foreign_keys],
            "indexes": [index.to_dict() for index in self.indexes],
        }


@dataclass(frozen=True)
class SchemaSnapshot:
    """Tables of one schema, in declaration or introspection order."""

    schema: str
    tables: tuple[TableDescriptor, ...] = ()

    @property
    def total_tables(self) -> int:
        return len(self.tables)

    def table_names(self) -> list[str]:
        return [table.name for table in self.tables]

    def table(self, name: str) -> Optional[TableDescriptor]:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema": self.schema,
            "total_tables": self.total_tables,
            "tables": [table.to_dict() for table in self.tables],
        }


@dataclass
class ColumnDifference:
    column_name: str
    difference: str

    def to_dict(self) -> dict[str, Any]:
        return {"column_name": self.column_name, "difference": self.difference}


@dataclass
class ConstraintDifference:
    constraint_name: str
    difference: str

    def to_dict(self) -> dict[str, Any]:
        return {"constraint_name": self.constraint_name, "difference": self.difference}


@dataclass
class IndexDifference:
    index_name: str
    difference: str

    def to_dict(self) -> dict[str, Any]:
        return {"index_name": self.index_name, "difference": self.difference}


@dataclass
class TableDifference:
    """Structural differences of one table present on both sides."""

    table_name: str
    column_differences: list[ColumnDifference] = field(default_factory=list)
    constraint_differences: list[ConstraintDifference] = field(default_factory=list)
    index_differences: list[IndexDifference] = field(default_factory=list)

    @property
    def has_differences(self) -> bool:
        return bool(
            self.column_differences
            or self.constraint_differences
            or self.index_differences
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_name": self.table_name,
            "has_differences": self.has_differences,
            "column_differences": [d.to_dict() for d in self.column_differences],
            "constraint_differences": [d.to_dict() for d in self.constraint_differences],
            "index_differences": [d.to_dict() for d in self.index_differences],
        }


class CreateDirection(Enum):
    """Which side a generated CREATE TABLE is meant for."""

    CREATE_IN_TARGET = "CREATE_IN_TARGET"  # table exists only in source
    CREATE_IN_SOURCE = "CREATE_IN_SOURCE"  # table exists only in target


@dataclass
class CreateTableQuery:
    query_type: CreateDirection
    table_name: str
    sql: str
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.query_type.value,
            "table_name": self.table_name,
            "sql": self.sql,
            "description": self.description,
        }


@dataclass
class SchemaComparisonResult:
    source_total_tables: int
    target_total_tables: int
    common_tables: list[str]
    only_in_source: list[str]
    only_in_target: list[str]
    table_differences: list[TableDifference] = field(default_factory=list)
    create_table_queries: list[CreateTableQuery] = field(default_factory=list)
    detailed_comparison: Optional[dict[str, Any]] = None

    @property
    def summary(self) -> dict[str, int]:
        return {
            "total_missing_tables": len(self.only_in_source) + len(self.only_in_target),
            "missing_in_target": len(self.only_in_source),
            "missing_in_source": len(self.only_in_target),
            "total_create_queries": len(self.create_table_queries),
            "tables_with_differences": len(self.table_differences),
        }

    @property
    def has_differences(self) -> bool:
        return bool(self.only_in_source or self.only_in_target or self.table_differences)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_stats": {"total_tables": self.source_total_tables},
            "target_stats": {"total_tables": self.target_total_tables},
            "common_tables": list(self.common_tables),
            "only_in_source": list(self.only_in_source),
            "only_in_target": list(self.only_in_target),
            "table_differences": [d.to_dict() for d in self.table_differences],
            "create_table_queries": [q.to_dict() for q in self.create_table_queries],
            "summary": self.summary,
            "detailed_comparison": self.detailed_comparison,
        }
