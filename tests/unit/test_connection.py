"""
Unit tests for the PostgreSQL connection provider.
"""

from unittest.mock import MagicMock, call, patch

import psycopg2
import pytest

from diff_inspector.db import quote_identifier, qualified_name
from diff_inspector.db.connection import PostgresConnection, connect, test_connection
from diff_inspector.errors import DatabaseConnectionError


def raw_connection(rows=None):
    raw = MagicMock()
    raw.closed = 0
    cursor = raw.cursor.return_value.__enter__.return_value
    cursor.fetchall.return_value = rows or []
    cursor.rowcount = 1
    return raw


class TestConnect:
    """Test connection opening"""

    @patch("diff_inspector.db.connection.psycopg2.connect")
    def test_opens_with_timeouts_and_autocommit(self, mock_connect):
        raw = raw_connection()
        mock_connect.return_value = raw

        connection = connect("postgresql://localhost/app", connect_timeout=5,
                             statement_timeout_ms=1000)

        assert isinstance(connection, PostgresConnection)
        mock_connect.assert_called_once_with(
            "postgresql://localhost/app",
            connect_timeout=5,
            options="-c statement_timeout=1000",
        )
        raw.set_session.assert_called_once_with(autocommit=True)

    @patch("diff_inspector.db.connection.psycopg2.connect")
    def test_ssl_refused_falls_back_to_prefer(self, mock_connect):
        mock_connect.side_effect = [
            psycopg2.OperationalError("server does not support SSL, but SSL was required"),
            raw_connection(),
        ]

        connection = connect("postgresql://db/app?sslmode=require")

        assert connection.url == "postgresql://db/app?sslmode=prefer"
        assert mock_connect.call_args_list[1] == call(
            "postgresql://db/app?sslmode=prefer",
            connect_timeout=30,
            options="-c statement_timeout=30000",
        )

    @patch("diff_inspector.db.connection.psycopg2.connect")
    def test_other_failures_are_connection_errors(self, mock_connect):
        mock_connect.side_effect = psycopg2.OperationalError("could not connect to server")

        with pytest.raises(DatabaseConnectionError, match="could not connect"):
            connect("postgresql://db/app?sslmode=require")

        assert mock_connect.call_count == 1


class TestPostgresConnection:
    """Test query and execute wrappers"""

    def test_query_returns_dicts(self):
        raw = raw_connection(rows=[{"id": 1}])
        connection = PostgresConnection(raw)

        assert connection.query("SELECT 1 WHERE %s", (True,)) == [{"id": 1}]
        cursor = raw.cursor.return_value.__enter__.return_value
        cursor.execute.assert_called_once_with("SELECT 1 WHERE %s", (True,))

    def test_execute_returns_rowcount(self):
        assert PostgresConnection(raw_connection()).execute("DELETE FROM t") == 1

    def test_interface_error_is_connection_loss(self):
        raw = raw_connection()
        raw.cursor.return_value.__enter__.return_value.execute.side_effect = \
            psycopg2.InterfaceError("connection already closed")

        with pytest.raises(DatabaseConnectionError):
            PostgresConnection(raw).query("SELECT 1")

    def test_statement_timeout_is_not_connection_loss(self):
        raw = raw_connection()
        raw.cursor.return_value.__enter__.return_value.execute.side_effect = \
            psycopg2.OperationalError("canceling statement due to statement timeout")

        with pytest.raises(psycopg2.OperationalError):
            PostgresConnection(raw).query("SELECT 1")

    def test_closed_connection_raises(self):
        raw = raw_connection()
        raw.closed = 1

        with pytest.raises(DatabaseConnectionError, match="closed"):
            PostgresConnection(raw).query("SELECT 1")

    def test_context_manager_closes(self):
        raw = raw_connection()

        with PostgresConnection(raw):
            pass

        raw.close.assert_called_once()


class TestHealthCheck:
    """Test test_connection"""

    def test_ok(self):
        connection = PostgresConnection(raw_connection())

        assert test_connection("postgresql://x", connection_provider=lambda url: connection)

    def test_unreachable(self):
        def provider(url):
            raise DatabaseConnectionError("refused")

        assert test_connection("postgresql://x", connection_provider=provider) is False


class TestQuoting:
    """Test identifier quoting"""

    def test_quote_identifier(self):
        assert quote_identifier('Robert"); DROP TABLE users;--') == \
            '"Robert""); DROP TABLE users;--"'

    def test_empty_identifier_rejected(self):
        with pytest.raises(ValueError):
            quote_identifier("")

    def test_qualified_name(self):
        assert qualified_name("public", "users") == '"public"."users"'
        assert qualified_name(None, "users") == '"users"'
