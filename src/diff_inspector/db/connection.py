"""PostgreSQL connection provider."""

import logging
from typing import Any

import psycopg2
import psycopg2.extensions
import psycopg2.extras
from opentelemetry import trace

from diff_inspector.errors import DatabaseConnectionError
from diff_inspector.utils.tracing import trace_operation

logger = logging.getLogger(__name__)

SSL_REFUSED_MESSAGE = "server does not support SSL"


class PostgresConnection:
    """
    Thin wrapper around a psycopg2 connection.

    Runs in autocommit mode so every statement stands alone. Rows come back
    as dicts keyed by column name, in the order the server returned them.
    """

    def __init__(self, raw_connection: psycopg2.extensions.connection, url: str = ""):
        self.raw = raw_connection
        self.url = url

    @property
    def closed(self) -> bool:
        return self.raw is None or bool(self.raw.closed)

    def query(self, sql: str, params: tuple | list | None = None) -> list[dict[str, Any]]:
        """Run a parameterized query and return all rows."""
        self._ensure_open()
        try:
            with self.raw.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                cursor.execute(sql, params)
                return [dict(row) for row in cursor.fetchall()]
        except (psycopg2.InterfaceError, psycopg2.OperationalError) as e:
            self._raise_if_lost(e)
            raise

    def execute(self, sql: str, params: tuple | list | None = None) -> int:
        """Run a DDL/DML statement and return the affected row count."""
        self._ensure_open()
        try:
            with self.raw.cursor() as cursor:
                cursor.execute(sql, params)
                return cursor.rowcount
        except (psycopg2.InterfaceError, psycopg2.OperationalError) as e:
            self._raise_if_lost(e)
            raise

    def ping(self) -> bool:
        """Return True if the server answers ``SELECT 1``."""
        if self.closed:
            return False
        try:
            with self.raw.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            return True
        except (psycopg2.Error, psycopg2.Warning):
            return False

    def close(self) -> None:
        if not self.closed:
            self.raw.close()

    def _ensure_open(self) -> None:
        if self.closed:
            raise DatabaseConnectionError("Connection is closed")

    def _raise_if_lost(self, error: Exception) -> None:
        if isinstance(error, psycopg2.InterfaceError) or self.closed:
            raise DatabaseConnectionError(f"Connection lost: {error}") from error

    def __enter__(self) -> "PostgresConnection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _open(url: str, connect_timeout: int, statement_timeout_ms: int):
    raw = psycopg2.connect(
        url,
        connect_timeout=connect_timeout,
        options=f"-c statement_timeout={statement_timeout_ms}",
    )
    raw.set_session(autocommit=True)
    return raw


def connect(
    url: str,
    connect_timeout: int = 30,
    statement_timeout_ms: int = 30000,
) -> PostgresConnection:
    """
    Open a connection to ``url`` (a libpq URI or key/value DSN).

    When the URL asks for ``sslmode=require`` and the server refuses SSL,
    one more attempt is made with ``sslmode=prefer``.

    Raises:
        DatabaseConnectionError: If the server cannot be reached
    """
    with trace_operation("postgres_connect", kind=trace.SpanKind.CLIENT):
        try:
            return PostgresConnection(_open(url, connect_timeout, statement_timeout_ms), url)
        except psycopg2.OperationalError as e:
            if "sslmode=require" not in url or SSL_REFUSED_MESSAGE not in str(e):
                raise DatabaseConnectionError(f"Could not connect: {e}") from e
            logger.warning("Server refused SSL, retrying with sslmode=prefer")

        fallback_url = url.replace("sslmode=require", "sslmode=prefer")
        try:
            return PostgresConnection(
                _open(fallback_url, connect_timeout, statement_timeout_ms), fallback_url
            )
        except psycopg2.OperationalError as e:
            raise DatabaseConnectionError(f"Could not connect: {e}") from e


def test_connection(url: str, connection_provider=connect) -> bool:
    """Open, ping and close a connection. Used by the ``health`` command."""
    try:
        with connection_provider(url) as connection:
            return connection.ping()
    except DatabaseConnectionError as e:
        logger.error(f"Connection error: {e}")
        return False


# Keep pytest from collecting the helper above as a test
test_connection.__test__ = False
