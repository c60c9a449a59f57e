"""
Best-effort parser for plain-text ``pg_dump`` SQL files.

Recovers table structure (columns, primary and foreign keys, indexes) and
``INSERT`` data for one schema. Recognized statements are ``CREATE TABLE``,
``ALTER TABLE ... ADD CONSTRAINT``, ``CREATE [UNIQUE] INDEX`` and
``INSERT INTO``; everything else is ignored. A malformed statement is
skipped without aborting the parse.

Known limitations:
- Column lines are only recognized when their type is in ``TYPE_KEYWORDS``;
  multi-line CHECK constraints and generated-column expressions are ignored.
- DEFAULT expressions are not retained, only the fact that one exists.
- ``COPY ... FROM stdin`` data blocks are skipped, not loaded.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from diff_inspector.data.models import DataSnapshot, Record, TableRecords
from diff_inspector.errors import ParseFatalError, ParseRecoverableError
from diff_inspector.schema.models import (
    DEFAULT_MARKER,
    ColumnDescriptor,
    ForeignKeyDescriptor,
    IndexDescriptor,
    SchemaSnapshot,
    TableDescriptor,
)
from diff_inspector.utils.metrics import DUMP_STATEMENTS_SKIPPED

from .tokenizer import (
    extract_parenthesized,
    is_quoted,
    parse_value,
    plain_identifiers,
    split_identifiers,
    split_value_groups,
    split_values,
    unquote,
)

logger = logging.getLogger(__name__)


TYPE_KEYWORDS = (
    "integer", "bigint", "smallint", "character varying", "varchar",
    "character", "text", "numeric", "decimal", "real", "double precision",
    "boolean", "date", "timestamp", "time", "interval", "uuid", "json",
    "jsonb", "bytea", "serial", "bigserial",
)
TYPE_KEYWORD_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in TYPE_KEYWORDS) + r")\b", re.IGNORECASE
)

IDENT = r'(?:"(?:[^"]|"")+"|\w+)'

CREATE_TABLE_PATTERN = re.compile(
    rf"^CREATE\s+(?:UNLOGGED\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?"
    rf"(?:(?P<schema>{IDENT})\.)?(?P<table>{IDENT})",
    re.IGNORECASE,
)
TABLE_LEVEL_CLAUSE_PATTERN = re.compile(
    r"^(?:CONSTRAINT|PRIMARY\s+KEY|FOREIGN\s+KEY|CHECK|UNIQUE|EXCLUDE)\b", re.IGNORECASE
)
COLUMN_PATTERN = re.compile(
    rf"^(?P<name>{IDENT})\s+(?P<type>.+?)"
    r"(?=\s+(?:NOT\s+NULL|NULL|DEFAULT|COLLATE|CONSTRAINT|PRIMARY\s+KEY|UNIQUE"
    r"|CHECK|REFERENCES|GENERATED)\b|$)",
    re.IGNORECASE,
)
NOT_NULL_PATTERN = re.compile(r"\bNOT\s+NULL\b", re.IGNORECASE)
DEFAULT_PATTERN = re.compile(r"\sDEFAULT\s", re.IGNORECASE)
VARCHAR_PATTERN = re.compile(r"^varchar\b", re.IGNORECASE)

ALTER_TABLE_PATTERN = re.compile(
    rf"^ALTER\s+TABLE\s+(?:ONLY\s+)?(?:(?P<schema>{IDENT})\.)?(?P<table>{IDENT})\s+(?P<rest>.*)$",
    re.IGNORECASE | re.DOTALL,
)
PRIMARY_KEY_PATTERN = re.compile(
    rf"^ADD\s+CONSTRAINT\s+(?P<name>{IDENT})\s+PRIMARY\s+KEY\s*\((?P<columns>[^)]+)\)",
    re.IGNORECASE,
)
UNIQUE_CONSTRAINT_PATTERN = re.compile(
    rf"^ADD\s+CONSTRAINT\s+(?P<name>{IDENT})\s+UNIQUE\s*\((?P<columns>[^)]+)\)",
    re.IGNORECASE,
)
FOREIGN_KEY_PATTERN = re.compile(
    rf"^ADD\s+CONSTRAINT\s+(?P<name>{IDENT})\s+FOREIGN\s+KEY\s*\((?P<columns>[^)]+)\)\s*"
    rf"REFERENCES\s+(?:{IDENT}\.)?(?P<ref_table>{IDENT})\s*\((?P<ref_columns>[^)]+)\)",
    re.IGNORECASE,
)

CREATE_INDEX_PATTERN = re.compile(
    rf"^CREATE\s+(?P<unique>UNIQUE\s+)?INDEX\s+(?:CONCURRENTLY\s+)?(?:IF\s+NOT\s+EXISTS\s+)?"
    rf"(?P<name>{IDENT})\s+ON\s+(?:ONLY\s+)?(?:(?P<schema>{IDENT})\.)?(?P<table>{IDENT})\s*"
    r"(?:USING\s+\w+\s*)?(?=\()",
    re.IGNORECASE,
)

INSERT_PATTERN = re.compile(
    rf"^INSERT\s+INTO\s+(?:(?P<schema>{IDENT})\.)?(?P<table>{IDENT})\s*",
    re.IGNORECASE,
)
VALUES_KEYWORD_PATTERN = re.compile(r"\s*VALUES\s*", re.IGNORECASE)

STATEMENT_STARTS = (
    ("insert", re.compile(r"^INSERT\s+INTO\b", re.IGNORECASE)),
    ("alter", re.compile(r"^ALTER\s+TABLE\b", re.IGNORECASE)),
    ("index", re.compile(r"^CREATE\s+(?:UNIQUE\s+)?INDEX\b", re.IGNORECASE)),
)
COPY_PATTERN = re.compile(r"^COPY\s+.*\bFROM\s+stdin\s*;$", re.IGNORECASE)


def _name(identifier: Optional[str]) -> Optional[str]:
    if identifier is None:
        return None
    return unquote(identifier) if is_quoted(identifier) else identifier


@dataclass
class _TableBuilder:
    """Mutable table state while the dump is being read."""

    name: str
    columns: list[ColumnDescriptor] = field(default_factory=list)
    primary_keys: list[str] = field(default_factory=list)
    foreign_keys: list[ForeignKeyDescriptor] = field(default_factory=list)
    indexes: list[IndexDescriptor] = field(default_factory=list)
    records: list[Record] = field(default_factory=list)

    def build(self) -> TableDescriptor:
        return TableDescriptor(
            name=self.name,
            columns=tuple(self.columns),
            primary_keys=tuple(self.primary_keys),
            foreign_keys=tuple(self.foreign_keys),
            indexes=tuple(self.indexes),
        )


@dataclass(frozen=True)
class DumpParseResult:
    schema_snapshot: SchemaSnapshot
    data_snapshot: DataSnapshot
    statements_skipped: int = 0


class DumpParser:
    """
    Parses dump text into a schema snapshot and a data snapshot.

    Only objects in ``schema`` are captured; unqualified names belong to
    ``public``. A parser instance holds no state between calls.

    Usage:
        result = DumpParser(schema="public").parse_file("backup.sql")
        users = result.schema_snapshot.table("users")
        rows = result.data_snapshot.records("users")
    """

    def __init__(self, schema: str = "public"):
        self.schema = schema

    def parse_file(self, path) -> DumpParseResult:
        """
        Read and parse a dump file.

        Raises:
            ParseFatalError: If the file cannot be read or decoded
        """
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ParseFatalError(f"Cannot read dump file {path}: {e}") from e

        logger.info(f"Parsing dump file {path.name} ({len(content) / 1024 / 1024:.2f} MB)")
        result = self.parse_content(content)
        logger.info(
            f"Parsed {result.schema_snapshot.total_tables} tables from {path.name} "
            f"({result.statements_skipped} statements skipped)"
        )
        return result

    def parse_content(self, content: str) -> DumpParseResult:
        """Parse dump text. Pure apart from logging and metrics."""
        return _DumpReader(self.schema).read(content)


class _DumpReader:
    """Single forward pass over the dump's lines."""

    def __init__(self, schema: str):
        self.schema = schema
        self.tables: dict[str, _TableBuilder] = {}
        self.current_table: Optional[_TableBuilder] = None
        self.buffer: list[str] = []
        self.buffer_kind: Optional[str] = None
        self.in_copy_block = False
        self.statements_skipped = 0

    def read(self, content: str) -> DumpParseResult:
        for raw_line in content.splitlines():
            self._feed(raw_line.strip())

        if self.buffer:
            self._skip(ParseRecoverableError(
                f"Unterminated {self.buffer_kind} statement at end of dump"
            ))
            self._clear_buffer()

        builders = list(self.tables.values())
        schema_snapshot = SchemaSnapshot(
            schema=self.schema,
            tables=tuple(builder.build() for builder in builders),
        )
        data_snapshot = DataSnapshot(tables={
            builder.name: TableRecords(records=tuple(builder.records))
            for builder in builders
        })
        return DumpParseResult(schema_snapshot, data_snapshot, self.statements_skipped)

    def _feed(self, line: str) -> None:
        if self.in_copy_block:
            if line == "\\.":
                self.in_copy_block = False
            return

        if self.current_table is not None:
            self._feed_table_body(line)
            return

        if self.buffer:
            kind = self._statement_kind(line)
            if kind is None and not line.upper().startswith("CREATE TABLE"):
                self.buffer.append(line)
                if line.endswith(";"):
                    self._flush_buffer()
                return
            # A new statement began before the buffered one was terminated
            self._skip(ParseRecoverableError(
                f"Unterminated {self.buffer_kind} statement: {self.buffer[0][:80]}"
            ))
            self._clear_buffer()

        if not line or line.startswith("--"):
            return

        if COPY_PATTERN.match(line):
            self.in_copy_block = True
            return

        match = CREATE_TABLE_PATTERN.match(line)
        if match:
            self._open_table(match, line)
            return

        kind = self._statement_kind(line)
        if kind is None:
            return
        self.buffer = [line]
        self.buffer_kind = kind
        if line.endswith(";"):
            self._flush_buffer()

    # CREATE TABLE

    def _open_table(self, match: re.Match, line: str) -> None:
        schema = _name(match.group("schema")) or "public"
        table_name = _name(match.group("table"))
        if schema != self.schema:
            return

        builder = _TableBuilder(name=table_name)
        self.tables[table_name] = builder
        self.current_table = builder

        # Single-line form: CREATE TABLE t (id integer, name text);
        open_paren = line.find("(", match.end())
        if open_paren != -1 and ");" in line:
            try:
                inner, _ = extract_parenthesized(line, open_paren)
            except ValueError:
                inner = ""
            for definition in split_values(inner):
                self._parse_column(definition)
            self.current_table = None

    def _feed_table_body(self, line: str) -> None:
        if not line or line.startswith("--"):
            return

        definition = line
        closes = ");" in line
        if closes:
            definition = line[:line.rfind(");")]
        definition = definition.strip().rstrip(",").strip()

        if definition and definition != "(":
            self._parse_column(definition)

        if closes:
            self.current_table = None

    def _parse_column(self, definition: str) -> None:
        if TABLE_LEVEL_CLAUSE_PATTERN.match(definition):
            return

        match = COLUMN_PATTERN.match(definition)
        if not match:
            return

        data_type = match.group("type").strip()
        if not TYPE_KEYWORD_PATTERN.search(data_type):
            return
        data_type = VARCHAR_PATTERN.sub("character varying", data_type)

        self.current_table.columns.append(ColumnDescriptor(
            name=_name(match.group("name")),
            data_type=data_type,
            nullable=not NOT_NULL_PATTERN.search(definition),
            default_value=DEFAULT_MARKER if DEFAULT_PATTERN.search(f" {definition} ") else None,
        ))

    # Buffered statements

    @staticmethod
    def _statement_kind(line: str) -> Optional[str]:
        for kind, pattern in STATEMENT_STARTS:
            if pattern.match(line):
                return kind
        return None

    def _clear_buffer(self) -> None:
        self.buffer = []
        self.buffer_kind = None

    def _flush_buffer(self) -> None:
        statement = " ".join(self.buffer)
        kind = self.buffer_kind
        self._clear_buffer()

        handlers = {
            "insert": self._parse_insert,
            "alter": self._parse_alter_table,
            "index": self._parse_create_index,
        }
        try:
            handlers[kind](statement)
        except ParseRecoverableError as e:
            self._skip(e)

    def _skip(self, error: ParseRecoverableError) -> None:
        self.statements_skipped += 1
        DUMP_STATEMENTS_SKIPPED.inc()
        logger.debug(f"Skipping malformed statement: {error}")

    def _captured(self, schema: Optional[str], table: str) -> Optional[_TableBuilder]:
        if (schema or "public") != self.schema:
            return None
        return self.tables.get(table)

    # ALTER TABLE ... ADD CONSTRAINT

    def _parse_alter_table(self, statement: str) -> None:
        match = ALTER_TABLE_PATTERN.match(statement)
        if not match:
            raise ParseRecoverableError(f"Unrecognized ALTER TABLE: {statement[:80]}")

        rest = match.group("rest")
        upper_rest = rest.upper()
        is_primary_key = "PRIMARY KEY" in upper_rest
        is_foreign_key = "FOREIGN KEY" in upper_rest
        is_unique = UNIQUE_CONSTRAINT_PATTERN.match(rest) is not None
        if "ADD CONSTRAINT" not in upper_rest or not (
            is_primary_key or is_foreign_key or is_unique
        ):
            # OWNER TO, SET DEFAULT, CHECK constraints and the like
            return

        builder = self._captured(_name(match.group("schema")), _name(match.group("table")))

        if is_primary_key or is_unique:
            pattern = PRIMARY_KEY_PATTERN if is_primary_key else UNIQUE_CONSTRAINT_PATTERN
            key_match = pattern.match(rest)
            if not key_match:
                raise ParseRecoverableError(f"Malformed key constraint: {statement[:80]}")
            if builder is None:
                return
            columns = split_identifiers(key_match.group("columns"))
            if is_primary_key:
                builder.primary_keys = columns
            # The server backs both constraint kinds with a unique index of the same name
            builder.indexes.append(IndexDescriptor(
                name=_name(key_match.group("name")),
                columns=tuple(columns),
                unique=True,
            ))
            return

        fk_match = FOREIGN_KEY_PATTERN.match(rest)
        if not fk_match:
            raise ParseRecoverableError(f"Malformed FOREIGN KEY constraint: {statement[:80]}")
        if builder is not None:
            builder.foreign_keys.append(ForeignKeyDescriptor(
                name=_name(fk_match.group("name")),
                columns=tuple(split_identifiers(fk_match.group("columns"))),
                referenced_table=_name(fk_match.group("ref_table")),
                referenced_columns=tuple(split_identifiers(fk_match.group("ref_columns"))),
            ))

    # CREATE INDEX

    def _parse_create_index(self, statement: str) -> None:
        match = CREATE_INDEX_PATTERN.match(statement)
        if not match:
            raise ParseRecoverableError(f"Malformed CREATE INDEX: {statement[:80]}")

        try:
            columns_text, _ = extract_parenthesized(statement, match.end())
        except ValueError as e:
            raise ParseRecoverableError(f"Malformed CREATE INDEX column list: {e}") from e

        builder = self._captured(_name(match.group("schema")), _name(match.group("table")))
        if builder is None:
            return
        builder.indexes.append(IndexDescriptor(
            name=_name(match.group("name")),
            columns=plain_identifiers(columns_text),
            unique=bool(match.group("unique")),
            definition=statement.rstrip(";").strip(),
        ))

    # INSERT INTO

    def _parse_insert(self, statement: str) -> None:
        match = INSERT_PATTERN.match(statement)
        if not match:
            raise ParseRecoverableError(f"Malformed INSERT: {statement[:80]}")

        builder = self._captured(_name(match.group("schema")), _name(match.group("table")))
        if builder is None:
            return

        position = match.end()
        if statement.startswith("(", position):
            try:
                columns_text, position = extract_parenthesized(statement, position)
            except ValueError as e:
                raise ParseRecoverableError(f"Malformed INSERT column list: {e}") from e
            columns = split_identifiers(columns_text)
        else:
            # INSERT INTO t VALUES (...) relies on declaration order
            columns = builder.build().column_names()

        values_match = VALUES_KEYWORD_PATTERN.match(statement, position)
        if not values_match or not columns:
            raise ParseRecoverableError(f"INSERT without usable VALUES: {statement[:80]}")

        values_clause = statement[values_match.end():].rstrip().rstrip(";")
        try:
            groups = split_value_groups(values_clause)
        except ValueError as e:
            raise ParseRecoverableError(f"Malformed VALUES clause: {e}") from e

        for group in groups:
            tokens = split_values(group)
            if len(tokens) != len(columns):
                logger.debug(
                    f"Dropping tuple for {builder.name}: "
                    f"{len(tokens)} values for {len(columns)} columns"
                )
                continue
            builder.records.append(
                {column: parse_value(token) for column, token in zip(columns, tokens)}
            )
