"""
Unit tests for the pg_dump SQL parser

Tests verify:
- CREATE TABLE column recovery (types, nullability, default marker)
- ALTER TABLE constraints and CREATE INDEX
- Single-line and multi-line INSERT parsing
- Best-effort skipping of malformed statements
- Schema filtering and fatal read errors
"""

from decimal import Decimal

import pytest

from diff_inspector.dump import DEFAULT_MARKER, DumpParser
from diff_inspector.errors import ParseFatalError
from diff_inspector.schema import CreateDirection, generate_create_table_sql


def parse(content, schema="public"):
    return DumpParser(schema=schema).parse_content(content)


class TestUsersScenario:
    """The canonical two-column users dump"""

    def test_table_structure(self, users_dump):
        result = DumpParser().parse_file(users_dump)

        users = result.schema_snapshot.table("users")
        assert users is not None
        assert users.column_names() == ["id", "name"]
        assert users.column("id").nullable is False
        assert users.column("id").data_type == "integer"
        assert users.column("name").nullable is True
        assert users.column("name").data_type == "character varying"

    def test_records(self, users_dump):
        result = DumpParser().parse_file(users_dump)

        assert result.data_snapshot.records("users") == [
            {"id": 1, "name": "Ann"},
            {"id": 2, "name": None},
        ]
        assert result.data_snapshot["users"].total_records == 2
        assert result.statements_skipped == 0


class TestCreateTable:
    """Test column recovery from CREATE TABLE"""

    def test_default_is_recorded_as_marker(self):
        result = parse(
            "CREATE TABLE public.items (\n"
            "    id bigint DEFAULT nextval('items_id_seq'::regclass) NOT NULL,\n"
            "    price numeric(10,2),\n"
            "    created_at timestamp without time zone DEFAULT now()\n"
            ");\n"
        )

        items = result.schema_snapshot.table("items")
        assert items.column("id").default_value == DEFAULT_MARKER
        assert items.column("id").nullable is False
        assert items.column("id").data_type == "bigint"
        assert items.column("price").data_type == "numeric(10,2)"
        assert items.column("price").default_value is None
        assert items.column("created_at").data_type == "timestamp without time zone"

    def test_varchar_is_normalized(self):
        result = parse("CREATE TABLE t (\n    code varchar(20)\n);\n")

        assert result.schema_snapshot.table("t").column("code").data_type == \
            "character varying(20)"

    def test_unknown_types_and_constraints_are_ignored(self):
        result = parse(
            "CREATE TABLE public.t (\n"
            "    id integer NOT NULL,\n"
            "    location geography,\n"
            "    CONSTRAINT positive CHECK (id > 0)\n"
            ");\n"
        )

        assert result.schema_snapshot.table("t").column_names() == ["id"]

    def test_single_line_create_table(self):
        result = parse("CREATE TABLE public.tags (id integer NOT NULL, label text);\n")

        tags = result.schema_snapshot.table("tags")
        assert tags.column_names() == ["id", "label"]
        assert tags.column("id").nullable is False

    def test_quoted_identifiers(self):
        result = parse('CREATE TABLE public."Order Lines" (\n    "Line No" integer\n);\n')

        table = result.schema_snapshot.table("Order Lines")
        assert table is not None
        assert table.column_names() == ["Line No"]

    def test_other_schema_is_not_captured(self):
        result = parse(
            "CREATE TABLE audit.log (\n    id integer\n);\n"
            "INSERT INTO audit.log (id) VALUES (1);\n"
            "CREATE TABLE public.users (\n    id integer\n);\n"
        )

        assert result.schema_snapshot.table_names() == ["users"]
        assert "log" not in result.data_snapshot

    def test_configured_schema(self):
        result = parse("CREATE TABLE audit.log (\n    id integer\n);\n", schema="audit")

        assert result.schema_snapshot.schema == "audit"
        assert result.schema_snapshot.table_names() == ["log"]


class TestConstraints:
    """Test ALTER TABLE ... ADD CONSTRAINT and CREATE INDEX"""

    DUMP = (
        "CREATE TABLE public.users (\n    id integer NOT NULL,\n    email text\n);\n"
        "CREATE TABLE public.orders (\n    id integer NOT NULL,\n    user_id integer\n);\n"
        "ALTER TABLE ONLY public.users\n"
        "    ADD CONSTRAINT users_pkey PRIMARY KEY (id);\n"
        "ALTER TABLE ONLY public.users\n"
        "    ADD CONSTRAINT users_email_key UNIQUE (email);\n"
        "ALTER TABLE ONLY public.orders\n"
        "    ADD CONSTRAINT orders_user_id_fkey FOREIGN KEY (user_id) "
        "REFERENCES public.users(id);\n"
        "CREATE INDEX orders_user_idx ON public.orders USING btree (user_id);\n"
        "CREATE UNIQUE INDEX users_lower_email ON public.users (email);\n"
    )

    def test_primary_key(self):
        users = parse(self.DUMP).schema_snapshot.table("users")

        assert users.primary_keys == ("id",)

    def test_key_constraints_register_their_index(self):
        users = parse(self.DUMP).schema_snapshot.table("users")
        indexes = {index.name: index for index in users.indexes}

        assert indexes["users_pkey"].unique is True
        assert indexes["users_pkey"].columns == ("id",)
        assert indexes["users_email_key"].columns == ("email",)
        assert indexes["users_lower_email"].unique is True

    def test_foreign_key(self):
        orders = parse(self.DUMP).schema_snapshot.table("orders")

        assert len(orders.foreign_keys) == 1
        fk = orders.foreign_keys[0]
        assert fk.name == "orders_user_id_fkey"
        assert fk.columns == ("user_id",)
        assert fk.referenced_table == "users"
        assert fk.referenced_columns == ("id",)

    def test_create_index(self):
        orders = parse(self.DUMP).schema_snapshot.table("orders")

        assert len(orders.indexes) == 1
        index = orders.indexes[0]
        assert index.name == "orders_user_idx"
        assert index.columns == ("user_id",)
        assert index.unique is False
        assert index.definition.startswith("CREATE INDEX orders_user_idx")

    def test_expression_index_has_no_column_list(self):
        dump = (
            "CREATE TABLE public.users (\n    id integer NOT NULL,\n    email text\n);\n"
            "CREATE INDEX users_lower_email ON public.users USING btree (lower(email));\n"
            "CREATE INDEX users_email_desc ON public.users USING btree (email DESC);\n"
        )

        users = parse(dump).schema_snapshot.table("users")
        ddl = generate_create_table_sql(users, CreateDirection.CREATE_IN_TARGET)

        assert [index.columns for index in users.indexes] == [None, None]
        assert users.indexes[0].definition.endswith("(lower(email))")
        assert "lower(email)" not in ddl
        assert "CREATE INDEX" not in ddl

    def test_constraint_on_uncaptured_table_is_a_no_op(self):
        result = parse(
            "ALTER TABLE ONLY public.ghost ADD CONSTRAINT ghost_pkey PRIMARY KEY (id);\n"
        )

        assert result.schema_snapshot.total_tables == 0
        assert result.statements_skipped == 0


class TestInsert:
    """Test INSERT statement parsing"""

    TABLE = "CREATE TABLE public.notes (\n    id integer,\n    body text,\n    score numeric\n);\n"

    def test_multi_line_insert(self):
        result = parse(
            self.TABLE
            + "INSERT INTO public.notes (id, body, score) VALUES\n"
            + "    (1, 'first, with comma', 1.5),\n"
            + "    (2, 'it''s', NULL);\n"
        )

        assert result.data_snapshot.records("notes") == [
            {"id": 1, "body": "first, with comma", "score": Decimal("1.5")},
            {"id": 2, "body": "it's", "score": None},
        ]

    def test_mismatched_tuple_is_dropped(self):
        result = parse(
            self.TABLE + "INSERT INTO notes (id, body, score) VALUES (1, 'a', 2), (2, 'b');\n"
        )

        assert result.data_snapshot.records("notes") == [{"id": 1, "body": "a", "score": 2}]
        assert result.statements_skipped == 0

    def test_insert_without_column_list_uses_declared_order(self):
        result = parse(self.TABLE + "INSERT INTO notes VALUES (3, 'x', 0);\n")

        assert result.data_snapshot.records("notes") == [{"id": 3, "body": "x", "score": 0}]

    def test_unterminated_insert_is_skipped(self):
        result = parse(
            self.TABLE
            + "INSERT INTO notes (id, body, score) VALUES\n"
            + "    (1, 'a', 1),\n"
            + "INSERT INTO notes (id, body, score) VALUES (2, 'b', 2);\n"
        )

        assert result.statements_skipped == 1
        assert result.data_snapshot.records("notes") == [{"id": 2, "body": "b", "score": 2}]

    def test_unterminated_insert_at_end_of_file_is_skipped(self):
        result = parse(self.TABLE + "INSERT INTO notes (id, body, score) VALUES (1, 'a', 1)\n")

        assert result.statements_skipped == 1
        assert result.data_snapshot.records("notes") == []

    def test_malformed_values_is_skipped(self):
        result = parse(self.TABLE + "INSERT INTO notes (id, body, score) VALUES (1, 'a';\n")

        assert result.statements_skipped == 1
        assert result.schema_snapshot.table("notes") is not None

    def test_copy_block_is_ignored(self):
        result = parse(
            self.TABLE
            + "COPY public.notes (id, body, score) FROM stdin;\n"
            + "1\tINSERT INTO notes VALUES (9, 'fake', 9);\n"
            + "\\.\n"
            + "INSERT INTO notes (id, body, score) VALUES (1, 'real', 1);\n"
        )

        assert result.data_snapshot.records("notes") == [{"id": 1, "body": "real", "score": 1}]


class TestParseFile:
    """Test file-level behaviour"""

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(ParseFatalError, match="Cannot read dump file"):
            DumpParser().parse_file(tmp_path / "missing.sql")

    def test_undecodable_file_is_fatal(self, tmp_path):
        path = tmp_path / "binary.sql"
        path.write_bytes(b"\xff\xfe\x00CREATE")

        with pytest.raises(ParseFatalError):
            DumpParser().parse_file(path)

    def test_parser_holds_no_state_between_calls(self, users_dump):
        parser = DumpParser()

        first = parser.parse_file(users_dump)
        second = parser.parse_file(users_dump)

        assert first.data_snapshot.records("users") == second.data_snapshot.records("users")
