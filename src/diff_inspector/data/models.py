"""
Record snapshot and data comparison result types.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

# One logical row: column name -> typed value
Record = dict[str, Any]


@dataclass(frozen=True)
class TableRecords:
    records: tuple[Record, ...] = ()

    @property
    def total_records(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class DataSnapshot:
    """Records per table, as recovered from a dump."""

    tables: Mapping[str, TableRecords] = field(default_factory=dict)

    def __getitem__(self, table_name: str) -> TableRecords:
        return self.tables[table_name]

    def __contains__(self, table_name: object) -> bool:
        return table_name in self.tables

    def records(self, table_name: str) -> list[Record]:
        table = self.tables.get(table_name)
        return list(table.records) if table is not None else []


class ComparisonStatus(Enum):
    """
    Outcome of comparing one table's data.

    SKIPPED and FAILED tables report no differences, but they were never
    actually examined and must not be read as clean.
    """

    COMPLETE = "complete"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class TableDataDifference:
    table_name: str
    status: ComparisonStatus = ComparisonStatus.COMPLETE
    missing_in_source: list[Record] = field(default_factory=list)
    missing_in_target: list[Record] = field(default_factory=list)
    total_source_records: int = 0
    total_target_records: int = 0
    key_columns: list[str] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def has_differences(self) -> bool:
        return bool(self.missing_in_source or self.missing_in_target)

    @property
    def is_complete(self) -> bool:
        return self.status is ComparisonStatus.COMPLETE

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_name": self.table_name,
            "status": self.status.value,
            "has_differences": self.has_differences,
            "missing_in_source_count": len(self.missing_in_source),
            "missing_in_target_count": len(self.missing_in_target),
            "total_source_records": self.total_source_records,
            "total_target_records": self.total_target_records,
            "key_columns": list(self.key_columns),
            "reason": self.reason,
        }


class InsertDirection(Enum):
    INSERT_TO_TARGET = "INSERT_TO_TARGET"  # rows missing in target
    INSERT_TO_SOURCE = "INSERT_TO_SOURCE"  # rows missing in source


@dataclass
class InsertQuery:
    direction: InsertDirection
    table_name: str
    record_count: int
    query: str
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.direction.value,
            "table_name": self.table_name,
            "record_count": self.record_count,
            "query": self.query,
            "description": self.description,
        }


@dataclass
class DataComparisonResult:
    table_results: list[TableDataDifference] = field(default_factory=list)
    insert_queries: list[InsertQuery] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, int]:
        return {
            "total_tables": len(self.table_results),
            "tables_with_differences": sum(1 for r in self.table_results if r.has_differences),
            "total_missing_records": sum(
                len(r.missing_in_source) + len(r.missing_in_target)
                for r in self.table_results
            ),
            "tables_skipped": sum(
                1 for r in self.table_results if r.status is ComparisonStatus.SKIPPED
            ),
            "tables_failed": sum(
                1 for r in self.table_results if r.status is ComparisonStatus.FAILED
            ),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "table_results": [r.to_dict() for r in self.table_results],
            "insert_queries": [q.to_dict() for q in self.insert_queries],
        }
