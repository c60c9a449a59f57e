"""
Key-based set reconciliation of one table's records across two sides.

Records are matched only by their key columns. Two records with the same
key are the same logical row even if other columns differ; no cell-level
comparison is done. Records whose key columns are all NULL share one key
and collapse into a single row.
"""

import logging
from typing import Optional, Sequence

from diff_inspector.errors import DatabaseConnectionError
from diff_inspector.utils.metrics import MISSING_RECORDS, TABLES_COMPARED
from diff_inspector.utils.tracing import trace_operation

from .models import ComparisonStatus, Record, TableDataDifference

logger = logging.getLogger(__name__)

KEY_DELIMITER = "|"


def record_key(record: Record, key_columns: Sequence[str]) -> str:
    """
    Lookup token for a record: key values stringified and joined by ``|``.

    NULL or missing values become the empty string.
    """
    return KEY_DELIMITER.join(
        "" if record.get(column) is None else str(record.get(column))
        for column in key_columns
    )


def resolve_key_columns(
    primary_keys: Optional[Sequence[str]],
    source_sample: Optional[Record],
    target_sample: Optional[Record],
) -> list[str]:
    """
    Pick the columns that identify a row.

    Primary keys win. Otherwise the first available sample (source first)
    decides: ``["id"]`` when it has an ``id`` field, else all its columns.
    With no sample on either side there is nothing to key on.
    """
    if primary_keys:
        return list(primary_keys)

    sample = source_sample if source_sample is not None else target_sample
    if sample is None:
        return []
    if "id" in sample:
        return ["id"]
    return list(sample.keys())


def _index_by_key(records: Sequence[Record], key_columns: Sequence[str]) -> dict[str, Record]:
    indexed: dict[str, Record] = {}
    for record in records:
        indexed[record_key(record, key_columns)] = record
    return indexed


def compare_table_data(
    table_name: str,
    source_extractor,
    target_extractor,
    key_columns: Optional[Sequence[str]] = None,
) -> TableDataDifference:
    """
    Compare one table's records between the two sides.

    Key columns are resolved first (see ``resolve_key_columns``); the source
    side is then extracted before the target side. Missing-record lists keep
    extraction order.

    A table with no usable key columns comes back SKIPPED. Any error other
    than a lost connection comes back as FAILED with the error message.
    Neither carries differences, and neither means the table is clean.

    Raises:
        DatabaseConnectionError: Connection lost on either side
    """
    with trace_operation("compare_table_data", table=table_name) as span:
        keys = list(key_columns) if key_columns else []
        try:
            if not keys:
                keys = resolve_key_columns(
                    None, source_extractor.sample(), target_extractor.sample()
                )

            if not keys:
                logger.warning(f"No key columns found for table {table_name}, skipping")
                TABLES_COMPARED.labels(status=ComparisonStatus.SKIPPED.value).inc()
                span.set_attribute("status", ComparisonStatus.SKIPPED.value)
                return TableDataDifference(
                    table_name=table_name,
                    status=ComparisonStatus.SKIPPED,
                    reason="No primary key and no sample record to derive a key from",
                )

            source_records = source_extractor.extract(keys)
            target_records = target_extractor.extract(keys)

        except DatabaseConnectionError:
            raise
        except Exception as e:
            logger.error(f"Error comparing table {table_name}: {e}", exc_info=True)
            TABLES_COMPARED.labels(status=ComparisonStatus.FAILED.value).inc()
            span.set_attribute("status", ComparisonStatus.FAILED.value)
            return TableDataDifference(
                table_name=table_name,
                status=ComparisonStatus.FAILED,
                key_columns=keys,
                reason=str(e),
            )

        source_by_key = _index_by_key(source_records, keys)
        target_by_key = _index_by_key(target_records, keys)

        missing_in_target = [
            record for key, record in source_by_key.items() if key not in target_by_key
        ]
        missing_in_source = [
            record for key, record in target_by_key.items() if key not in source_by_key
        ]

        TABLES_COMPARED.labels(status=ComparisonStatus.COMPLETE.value).inc()
        MISSING_RECORDS.labels(direction="missing_in_target").inc(len(missing_in_target))
        MISSING_RECORDS.labels(direction="missing_in_source").inc(len(missing_in_source))
        span.set_attribute("status", ComparisonStatus.COMPLETE.value)
        span.set_attribute("missing_in_target", len(missing_in_target))
        span.set_attribute("missing_in_source", len(missing_in_source))

        logger.info(
            f"Table {table_name}: {len(source_records)} source / {len(target_records)} target "
            f"records, {len(missing_in_target)} missing in target, "
            f"{len(missing_in_source)} missing in source"
        )

        return TableDataDifference(
            table_name=table_name,
            status=ComparisonStatus.COMPLETE,
            missing_in_source=missing_in_source,
            missing_in_target=missing_in_target,
            total_source_records=len(source_records),
            total_target_records=len(target_records),
            key_columns=keys,
        )
