"""Record snapshots, extraction, reconciliation and INSERT generation."""

from .models import (
    ComparisonStatus,
    DataComparisonResult,
    DataSnapshot,
    InsertDirection,
    InsertQuery,
    Record,
    TableDataDifference,
    TableRecords,
)

__all__ = [
    "ComparisonStatus",
    "DataComparisonResult",
    "DataSnapshot",
    "InsertDirection",
    "InsertQuery",
    "Record",
    "TableDataDifference",
    "TableRecords",
]
