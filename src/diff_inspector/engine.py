"""
Schema and data comparison between a source and a target side.

Every call opens its own sides and closes them before returning; nothing
carries over between calls.

Usage:
    inspector = DiffInspector(schema="public", batch_size=5000)
    schema_result = inspector.compare_schemas(
        SourceSpec("source", url="postgresql://..."),
        SourceSpec("target", dump_path="backup.sql"),
    )
"""

import logging
from contextlib import ExitStack
from typing import Callable, Optional, Sequence

from diff_inspector.data.extract import DEFAULT_BATCH_SIZE
from diff_inspector.data.inserts import generate_insert_queries
from diff_inspector.data.models import (
    ComparisonStatus,
    DataComparisonResult,
    TableDataDifference,
)
from diff_inspector.data.reconciler import compare_table_data
from diff_inspector.db.connection import connect
from diff_inspector.parallel import ParallelReconciler
from diff_inspector.schema.compare import compare_schemas
from diff_inspector.schema.models import SchemaComparisonResult
from diff_inspector.sources import SourceSpec, open_side

logger = logging.getLogger(__name__)


class DiffInspector:
    """
    Compares two sides, each a live database or a dump file.

    Args:
        schema: Schema to compare (default: public)
        tables: Optional allow-list of table names
        batch_size: Rows per batch when extracting from a live side
        max_retries: Retries per failed batch
        workers: Tables compared concurrently; 1 means sequential
        connection_provider: Callable ``url -> connection``
    """

    def __init__(
        self,
        schema: str = "public",
        tables: Optional[Sequence[str]] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_retries: int = 3,
        workers: int = 1,
        connection_provider: Callable = connect,
    ):
        self.schema = schema
        self.tables = list(tables) if tables else None
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.workers = max(1, workers)
        self.connection_provider = connection_provider

    def _open(self, stack: ExitStack, spec: SourceSpec):
        return stack.enter_context(open_side(
            spec,
            schema=self.schema,
            tables=self.tables,
            connection_provider=self.connection_provider,
            batch_size=self.batch_size,
            max_retries=self.max_retries,
        ))

    def compare_schemas(
        self,
        source_spec: SourceSpec,
        target_spec: SourceSpec,
        verbose: bool = False,
    ) -> SchemaComparisonResult:
        """Structural comparison of the two sides."""
        with ExitStack() as stack:
            source = self._open(stack, source_spec)
            target = self._open(stack, target_spec)
            return compare_schemas(source.schema_snapshot(), target.schema_snapshot(), verbose)

    def compare_data(self, source_spec: SourceSpec, target_spec: SourceSpec) -> DataComparisonResult:
        """
        Record-level comparison of the tables both sides have.

        The schema comparison runs to completion first; only its common
        tables are compared. INSERT statements are generated for every
        table with missing records.

        Raises:
            DatabaseConnectionError: A live side lost its connection
            ParseFatalError: A dump file could not be read
        """
        with ExitStack() as stack:
            source = self._open(stack, source_spec)
            target = self._open(stack, target_spec)

            schema_result = compare_schemas(source.schema_snapshot(), target.schema_snapshot())
            common_tables = schema_result.common_tables
            logger.info(f"Found {len(common_tables)} common tables")

            if self.workers > 1 and len(common_tables) > 1:
                table_results = self._compare_parallel(source, target, common_tables)
            else:
                table_results = [
                    self._compare_table(source, target, table) for table in common_tables
                ]

        result = DataComparisonResult(table_results=table_results)
        for table_result in table_results:
            if table_result.has_differences:
                result.insert_queries.extend(
                    generate_insert_queries(table_result.table_name, table_result)
                )
        return result

    @staticmethod
    def _key_columns(source, target, table: str) -> list[str]:
        """Primary keys from a live side, source first; empty when neither is live."""
        for side in (source, target):
            if side.is_live:
                primary_keys = side.primary_keys(table)
                if primary_keys:
                    return primary_keys
        return []

    def _compare_table(self, source, target, table: str) -> TableDataDifference:
        return compare_table_data(
            table,
            source.extractor(table),
            target.extractor(table),
            key_columns=self._key_columns(source, target, table),
        )

    def _compare_table_in_worker(self, table: str, source, target) -> TableDataDifference:
        with ExitStack() as stack:
            worker_source = stack.enter_context(source.for_worker())
            worker_target = stack.enter_context(target.for_worker())
            return self._compare_table(worker_source, worker_target, table)

    def _compare_parallel(self, source, target, tables: list[str]) -> list[TableDataDifference]:
        pool = ParallelReconciler(max_workers=self.workers)
        outcome = pool.reconcile_tables(
            tables,
            self._compare_table_in_worker,
            source=source,
            target=target,
        )

        errors = {error["table"]: error["error"] for error in outcome["errors"]}
        table_results = []
        for table in tables:
            if table in outcome["results"]:
                table_results.append(outcome["results"][table])
            else:
                table_results.append(TableDataDifference(
                    table_name=table,
                    status=ComparisonStatus.FAILED,
                    reason=errors.get(table, "unknown error"),
                ))
        return table_results
