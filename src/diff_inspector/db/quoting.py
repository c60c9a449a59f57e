"""
PostgreSQL identifier quoting.

Identifiers are always double-quoted with embedded double quotes doubled,
so mixed-case and reserved names survive and nothing can break out of the
quotes.
"""


def quote_identifier(name: str) -> str:
    """
    Quote a single identifier.

    >>> quote_identifier("users")
    '"users"'
    >>> quote_identifier('we"ird')
    '"we""ird"'
    """
    if not name:
        raise ValueError("Identifier must not be empty")
    return '"' + name.replace('"', '""') + '"'


def qualified_name(schema: str | None, table: str) -> str:
    """Quote ``schema.table``, or just the table when no schema is given."""
    if schema:
        return f"{quote_identifier(schema)}.{quote_identifier(table)}"
    return quote_identifier(table)


def quote_identifier_list(names) -> str:
    """Comma-join quoted identifiers: ``"a", "b"``."""
    return ", ".join(quote_identifier(name) for name in names)
