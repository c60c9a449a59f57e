"""
Record extraction for one table of one side.

Dump sides hand back their parsed records. Live sides page through the
table ordered by the key columns, retrying failed batches with exponential
backoff and halving the batch size when retries run out.
"""

import logging
import time
from typing import Optional, Sequence

from diff_inspector.db.quoting import qualified_name, quote_identifier_list
from diff_inspector.errors import DatabaseConnectionError, ExtractionError
from diff_inspector.utils.logging import ContextLogger
from diff_inspector.utils.metrics import BATCH_BISECTIONS, BATCH_RETRIES, EXTRACTION_DURATION
from diff_inspector.utils.retry import retry_with_backoff
from diff_inspector.utils.tracing import add_span_attributes, trace_operation

from .models import Record

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10000


class RecordListExtractor:
    """Extractor over records already in memory (a parsed dump)."""

    def __init__(self, records: Sequence[Record]):
        self.records = list(records)

    def sample(self) -> Optional[Record]:
        return self.records[0] if self.records else None

    def extract(self, key_columns: Sequence[str]) -> list[Record]:
        return list(self.records)


class BatchExtractor:
    """
    Paginated extraction from a live table.

    Each batch is ``SELECT * ... ORDER BY <keys> LIMIT n OFFSET m``; a batch
    shorter than ``n`` ends the table. A failing batch is retried up to
    ``max_retries`` times with delays of ``base_delay * 2 ** attempt``
    seconds. When retries are exhausted the batch size is halved and the
    whole table is extracted again from offset 0, down to ``min_batch_size``.
    Connection loss is never retried.

    Args:
        connection: Object with ``query(sql, params) -> list[dict]``
        schema: Schema name
        table: Table name
        batch_size: Rows per batch (default: 10000)
        max_retries: Retries per batch after the first attempt (default: 3)
        base_delay: First retry delay in seconds (default: 2.0)
        min_batch_size: Smallest batch size tried before giving up (default: 1)
        side: Side label used in logs
    """

    def __init__(
        self,
        connection,
        schema: str,
        table: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_retries: int = 3,
        base_delay: float = 2.0,
        min_batch_size: int = 1,
        side: str = "live",
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.connection = connection
        self.schema = schema
        self.table = table
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.min_batch_size = max(1, min_batch_size)
        self.log = ContextLogger(__name__, table=table, side=side)

    def _select(self, key_columns: Sequence[str]) -> str:
        sql = f"SELECT * FROM {qualified_name(self.schema, self.table)}"
        if key_columns:
            sql += f" ORDER BY {quote_identifier_list(key_columns)}"
        return sql + " LIMIT %s OFFSET %s"

    def _fetch_batch(self, sql: str, limit: int, offset: int) -> list[Record]:
        return self.connection.query(sql, (limit, offset))

    def _on_retry(self, attempt: int, error: Exception, delay: float) -> None:
        BATCH_RETRIES.labels(table=self.table).inc()

    def sample(self) -> Optional[Record]:
        rows = self.connection.query(
            f"SELECT * FROM {qualified_name(self.schema, self.table)} LIMIT 1"
        )
        return rows[0] if rows else None

    def extract(self, key_columns: Sequence[str]) -> list[Record]:
        """
        Fetch every row of the table ordered by ``key_columns``.

        Raises:
            ExtractionError: If a batch still fails at ``min_batch_size``
            DatabaseConnectionError: If the connection is lost
        """
        with trace_operation("extract_table", table=self.table, batch_size=self.batch_size) as span:
            start = time.time()
            records = self._extract_all(self._select(key_columns), self.batch_size)
            EXTRACTION_DURATION.labels(table=self.table).observe(time.time() - start)
            span.set_attribute("records", len(records))
            return records

    def _extract_all(self, sql: str, batch_size: int) -> list[Record]:
        fetch = retry_with_backoff(
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            jitter=False,
            non_retryable_exceptions=(DatabaseConnectionError,),
            on_retry=self._on_retry,
        )(self._fetch_batch)

        records: list[Record] = []
        offset = 0
        while True:
            try:
                batch = fetch(sql, batch_size, offset)
            except DatabaseConnectionError:
                raise
            except Exception as e:
                if batch_size <= self.min_batch_size:
                    raise ExtractionError(
                        self.table, f"batch at offset {offset} failed: {e}"
                    ) from e
                smaller = max(self.min_batch_size, batch_size // 2)
                BATCH_BISECTIONS.labels(table=self.table).inc()
                add_span_attributes(bisected_batch_size=smaller)
                self.log.warning(
                    f"Retries exhausted, restarting with batch size {smaller}",
                    offset=offset,
                    batch_size=batch_size,
                )
                return self._extract_all(sql, smaller)

            records.extend(batch)
            self.log.debug(
                f"Fetched {len(batch)} rows", offset=offset, batch_size=batch_size
            )
            if len(batch) < batch_size:
                return records
            offset += batch_size
