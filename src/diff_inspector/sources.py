"""
The two kinds of comparison side: a live database or a parsed dump file.

Both expose the same surface to the engine: a schema snapshot, the primary
keys known for a table, and a record extractor per table.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence

from diff_inspector.data.extract import DEFAULT_BATCH_SIZE, BatchExtractor, RecordListExtractor
from diff_inspector.db.connection import connect
from diff_inspector.dump.parser import DumpParser, DumpParseResult
from diff_inspector.schema.introspect import get_primary_key_columns, introspect_schema
from diff_inspector.schema.models import SchemaSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceSpec:
    """One side of a comparison: exactly one of ``url`` or ``dump_path``."""

    label: str
    url: Optional[str] = None
    dump_path: Optional[str] = None

    def __post_init__(self):
        if bool(self.url) == bool(self.dump_path):
            raise ValueError(
                f"{self.label}: exactly one of a database URL or a dump file is required"
            )

    @property
    def is_dump(self) -> bool:
        return bool(self.dump_path)


def _filter_tables(snapshot: SchemaSnapshot, tables: Optional[Sequence[str]]) -> SchemaSnapshot:
    if not tables:
        return snapshot
    wanted = set(tables)
    return SchemaSnapshot(
        schema=snapshot.schema,
        tables=tuple(table for table in snapshot.tables if table.name in wanted),
    )


class DumpSide:
    """A side backed by a parsed dump file."""

    is_live = False

    def __init__(self, label: str, parsed: DumpParseResult, tables: Optional[Sequence[str]] = None):
        self.label = label
        self.parsed = parsed
        self._snapshot = _filter_tables(parsed.schema_snapshot, tables)

    def schema_snapshot(self) -> SchemaSnapshot:
        return self._snapshot

    def primary_keys(self, table: str) -> list[str]:
        # Dump constraints are not trusted for keying rows; callers sample instead
        return []

    def extractor(self, table: str) -> RecordListExtractor:
        return RecordListExtractor(self.parsed.data_snapshot.records(table))

    @contextmanager
    def for_worker(self) -> Iterator["DumpSide"]:
        yield self


class LiveSide:
    """A side backed by a live connection. The schema is introspected once, on demand."""

    is_live = True

    def __init__(
        self,
        label: str,
        connection,
        url: str,
        schema: str = "public",
        tables: Optional[Sequence[str]] = None,
        connection_provider: Callable = connect,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_retries: int = 3,
    ):
        self.label = label
        self.connection = connection
        self.url = url
        self.schema = schema
        self.tables = list(tables) if tables else None
        self.connection_provider = connection_provider
        self.batch_size = batch_size
        self.max_retries = max_retries
        self._snapshot: Optional[SchemaSnapshot] = None

    def schema_snapshot(self) -> SchemaSnapshot:
        if self._snapshot is None:
            self._snapshot = introspect_schema(self.connection, self.schema, self.tables)
        return self._snapshot

    def primary_keys(self, table: str) -> list[str]:
        if self._snapshot is not None:
            descriptor = self._snapshot.table(table)
            if descriptor is not None:
                return list(descriptor.primary_keys)
        return get_primary_key_columns(self.connection, self.schema, table)

    def extractor(self, table: str) -> BatchExtractor:
        return BatchExtractor(
            self.connection,
            self.schema,
            table,
            batch_size=self.batch_size,
            max_retries=self.max_retries,
            side=self.label,
        )

    @contextmanager
    def for_worker(self) -> Iterator["LiveSide"]:
        """A copy of this side on its own connection, closed on exit."""
        connection = self.connection_provider(self.url)
        try:
            worker = LiveSide(
                self.label,
                connection,
                self.url,
                schema=self.schema,
                tables=self.tables,
                connection_provider=self.connection_provider,
                batch_size=self.batch_size,
                max_retries=self.max_retries,
            )
            worker._snapshot = self._snapshot
            yield worker
        finally:
            connection.close()


@contextmanager
def open_side(
    spec: SourceSpec,
    schema: str = "public",
    tables: Optional[Sequence[str]] = None,
    connection_provider: Callable = connect,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_retries: int = 3,
):
    """
    Open one side for the duration of a comparison.

    Dump files are parsed up front. Live connections are closed on exit,
    whether the comparison succeeded or not.

    Raises:
        ParseFatalError: Dump file cannot be read
        DatabaseConnectionError: Database cannot be reached
    """
    if spec.is_dump:
        logger.info(f"Parsing {spec.label} dump file {spec.dump_path}")
        parsed = DumpParser(schema=schema).parse_file(spec.dump_path)
        yield DumpSide(spec.label, parsed, tables)
        return

    logger.info(f"Connecting to {spec.label} database")
    connection = connection_provider(spec.url)
    try:
        yield LiveSide(
            spec.label,
            connection,
            spec.url,
            schema=schema,
            tables=tables,
            connection_provider=connection_provider,
            batch_size=batch_size,
            max_retries=max_retries,
        )
    finally:
        connection.close()
        logger.debug(f"Closed {spec.label} connection")
