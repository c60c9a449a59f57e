"""CREATE TABLE generation for tables present on one side only."""

from diff_inspector.db.quoting import quote_identifier, quote_identifier_list

from .models import (
    DEFAULT_MARKER,
    ColumnDescriptor,
    CreateDirection,
    IndexDescriptor,
    TableDescriptor,
)


def _column_definition(column: ColumnDescriptor) -> str:
    definition = f"    {quote_identifier(column.name)} {column.data_type}"
    if not column.nullable:
        definition += " NOT NULL"
    if column.default_value and column.default_value not in ("NULL", DEFAULT_MARKER):
        definition += f" DEFAULT {column.default_value}"
    return definition


def _backs_primary_key(table: TableDescriptor, index: IndexDescriptor) -> bool:
    """True for the index the primary key constraint creates on its own."""
    if index.name == f"{table.name}_pkey":
        return True
    return (
        index.unique
        and bool(table.primary_keys)
        and index.columns is not None
        and tuple(index.columns) == tuple(table.primary_keys)
    )


def generate_create_table_sql(table: TableDescriptor, query_type: CreateDirection) -> str:
    """
    Build the DDL that recreates ``table`` on the other side.

    Layout: a header comment, ``CREATE TABLE``, then a primary key
    ``ALTER TABLE``, one ``ALTER TABLE`` per foreign key and one
    ``CREATE [UNIQUE] INDEX`` per index with a known column list. Indexes
    without a column list (only a definition was introspected) are left out.
    """
    table_name = quote_identifier(table.name)

    sql = f"-- {query_type.value} - Create {table.name} table\n"
    sql += f"CREATE TABLE {table_name} (\n"
    sql += ",\n".join(_column_definition(column) for column in table.columns)
    sql += "\n);\n\n"

    if table.primary_keys:
        constraint = quote_identifier(f"{table.name}_pkey")
        sql += "-- Primary key constraint\n"
        sql += (
            f"ALTER TABLE {table_name} ADD CONSTRAINT {constraint} "
            f"PRIMARY KEY ({quote_identifier_list(table.primary_keys)});\n\n"
        )

    if table.foreign_keys:
        sql += "-- Foreign key constraints\n"
        for fk in table.foreign_keys:
            sql += (
                f"ALTER TABLE {table_name} ADD CONSTRAINT {quote_identifier(fk.name)} "
                f"FOREIGN KEY ({quote_identifier_list(fk.columns)}) "
                f"REFERENCES {quote_identifier(fk.referenced_table)}"
                f"({quote_identifier_list(fk.referenced_columns)});\n"
            )
        sql += "\n"

    indexes = [
        index for index in table.indexes
        if index.columns and not _backs_primary_key(table, index)
    ]
    if indexes:
        sql += "-- Indexes\n"
        for index in indexes:
            unique = "UNIQUE " if index.unique else ""
            sql += (
                f"CREATE {unique}INDEX {quote_identifier(index.name)} ON {table_name} "
                f"({quote_identifier_list(index.columns)});\n"
            )
        sql += "\n"

    return sql
