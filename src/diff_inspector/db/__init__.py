"""Database access: connection provider and identifier quoting."""

from .connection import PostgresConnection, connect, test_connection
from .quoting import qualified_name, quote_identifier, quote_identifier_list

__all__ = [
    "PostgresConnection",
    "connect",
    "test_connection",
    "quote_identifier",
    "quote_identifier_list",
    "qualified_name",
]
