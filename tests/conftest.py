"""
Pytest configuration and fixtures for diff inspector tests.
Provides in-memory database fakes and sample dump files; no server needed.
"""

import logging
import re
from pathlib import Path

import pytest


USERS_DUMP = """--
-- PostgreSQL database dump
--

SET statement_timeout = 0;

CREATE TABLE public.users (
    id integer NOT NULL,
    name character varying
);

ALTER TABLE public.users OWNER TO postgres;

INSERT INTO users (id, name) VALUES (1, 'Ann'), (2, NULL);
"""

SELECT_PATTERN = re.compile(r'^SELECT \* FROM "(?P<schema>[^"]+)"\."(?P<table>[^"]+)"')


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "property: mark test as property-based test")


def column_row(name, data_type, nullable=True, default=None, max_length=None):
    """One information_schema.columns row."""
    return {
        "column_name": name,
        "data_type": data_type,
        "is_nullable": "YES" if nullable else "NO",
        "column_default": default,
        "character_maximum_length": max_length,
        "numeric_precision": None,
        "numeric_scale": None,
    }


class FakeDatabase:
    """
    Tables of one schema held in memory.

    ``tables`` maps a table name to a dict with ``columns`` (information_schema
    rows), optional ``primary_keys``, ``indexes`` (pg_indexes rows) and ``rows``
    (already in key order).
    """

    def __init__(self, tables=None, schema="public"):
        self.schema = schema
        self.tables = tables or {}
        self.connections = []

    def connect(self, url=None):
        connection = FakeConnection(self)
        self.connections.append(connection)
        return connection


class FakeConnection:
    """Stand-in for PostgresConnection that answers introspection and paging queries."""

    def __init__(self, database: FakeDatabase):
        self.database = database
        self.closed = False
        self.queries = []
        self.executed = []

    def _table(self, name):
        return self.database.tables.get(name, {})

    def query(self, sql, params=None):
        self.queries.append((sql, params))

        if "information_schema.tables" in sql:
            return [{"table_name": name} for name in sorted(self.database.tables)]
        if "information_schema.columns" in sql:
            return list(self._table(params[1]).get("columns", []))
        if "'PRIMARY KEY'" in sql:
            return [{"column_name": c} for c in self._table(params[1]).get("primary_keys", [])]
        if "referential_constraints" in sql:
            return list(self._table(params[1]).get("foreign_keys", []))
        if "pg_indexes" in sql:
            return list(self._table(params[1]).get("indexes", []))

        match = SELECT_PATTERN.match(sql)
        if match:
            rows = [dict(row) for row in self._table(match.group("table")).get("rows", [])]
            if params is None:
                return rows[:1]
            limit, offset = params
            return rows[offset:offset + limit]

        raise AssertionError(f"Unexpected query: {sql}")

    def execute(self, sql, params=None):
        self.executed.append(sql)
        return 1

    def ping(self):
        return not self.closed

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


@pytest.fixture
def fake_database():
    """Factory for FakeDatabase instances."""
    return FakeDatabase


@pytest.fixture
def users_dump(tmp_path: Path) -> Path:
    """Dump file with a two-column users table and two rows."""
    path = tmp_path / "users.sql"
    path.write_text(USERS_DUMP, encoding="utf-8")
    return path


@pytest.fixture
def write_dump(tmp_path: Path):
    """Write dump text to a file under tmp_path and return its path."""
    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture(autouse=True)
def clear_inspector_env(monkeypatch) -> None:
    """Keep a developer's environment from leaking into settings and CLI defaults."""
    for name in (
        "SOURCE_DB_URL", "TARGET_DB_URL", "DEFAULT_SCHEMA", "OUTPUT_DIR",
        "BATCH_SIZE", "MAX_RETRIES", "WORKERS", "OTLP_ENDPOINT", "TRACE_CONSOLE",
        "LOG_LEVEL", "LOG_FILE", "LOG_JSON", "LOG_CONSOLE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(name="column_row")
def column_row_fixture():
    """Builder for information_schema.columns rows."""
    return column_row


@pytest.fixture
def restore_logging():
    """Undo root logger changes made by setup_logging."""
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)
