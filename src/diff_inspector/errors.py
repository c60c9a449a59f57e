"""
Error taxonomy for schema and data reconciliation.

Fatal errors (connection loss, unreadable dump) unwind out of the engine.
Per-table errors are caught at the table boundary and reported on the
table result without affecting sibling tables.
"""


class DiffInspectorError(Exception):
    """Base exception for all reconciliation errors."""

    pass


class DatabaseConnectionError(DiffInspectorError):
    """Raised when a live side cannot be reached or the connection is lost."""

    pass


class ExtractionError(DiffInspectorError):
    """Raised when a table's rows cannot be extracted after retries and bisection."""

    def __init__(self, table: str, message: str):
        self.table = table
        super().__init__(f"Extraction failed for table {table}: {message}")


class ParseRecoverableError(DiffInspectorError):
    """Raised for a single malformed dump statement; parsing continues."""

    pass


class ParseFatalError(DiffInspectorError):
    """Raised when a dump file cannot be read at all."""

    pass
