"""
Unit tests for console reports and organized SQL output.
"""

import json

from diff_inspector.data.models import (
    ComparisonStatus,
    DataComparisonResult,
    InsertDirection,
    InsertQuery,
    TableDataDifference,
)
from diff_inspector.report import (
    build_schema_report,
    export_report_json,
    format_data_report_console,
    format_schema_report_console,
    write_data_output,
    write_schema_output,
)
from diff_inspector.schema.models import (
    ColumnDifference,
    CreateDirection,
    CreateTableQuery,
    SchemaComparisonResult,
    TableDifference,
)


def schema_result():
    return SchemaComparisonResult(
        source_total_tables=2,
        target_total_tables=2,
        common_tables=["users"],
        only_in_source=["audit"],
        only_in_target=["payments"],
        table_differences=[TableDifference(
            "users",
            column_differences=[
                ColumnDifference("created_at", "Column exists in target but not in source")
            ],
        )],
        create_table_queries=[
            CreateTableQuery(CreateDirection.CREATE_IN_TARGET, "audit",
                             'CREATE TABLE "audit" (\n);\n', "Create audit table from source in target"),
            CreateTableQuery(CreateDirection.CREATE_IN_SOURCE, "payments",
                             'CREATE TABLE "payments" (\n);\n', "Create payments table from target in source"),
        ],
    )


def insert_queries():
    return [
        InsertQuery(InsertDirection.INSERT_TO_TARGET, "users", 2,
                    'INSERT INTO "users" ("id") VALUES (1), (2);',
                    "Records from source missing in target"),
        InsertQuery(InsertDirection.INSERT_TO_SOURCE, "orders", 1,
                    'INSERT INTO "orders" ("id") VALUES (9);',
                    "Records from target missing in source"),
    ]


class TestConsoleReports:
    """Test console formatting"""

    def test_schema_report(self):
        text = format_schema_report_console(schema_result())

        assert "SCHEMA COMPARISON" in text
        assert "Only in source: 1" in text
        assert "  audit" in text
        assert "  Column created_at: Column exists in target but not in source" in text
        assert "COMMON TABLES" not in text

    def test_schema_report_verbose_lists_common_tables(self):
        text = format_schema_report_console(schema_result(), verbose=True)

        assert "COMMON TABLES" in text

    def test_identical_schemas(self):
        result = SchemaComparisonResult(1, 1, ["users"], [], [])

        assert "Schemas are identical." in format_schema_report_console(result)

    def test_data_report_marks_unexamined_tables(self):
        result = DataComparisonResult(table_results=[
            TableDataDifference("users", missing_in_target=[{"id": 1}], total_source_records=1),
            TableDataDifference("empty", status=ComparisonStatus.SKIPPED, reason="no key"),
            TableDataDifference("big", status=ComparisonStatus.FAILED, reason="timeout"),
        ])

        text = format_data_report_console(result)

        assert "users: DIFFERENT" in text
        assert "empty: SKIPPED (no key)" in text
        assert "big: FAILED (timeout)" in text
        assert "Tables skipped: 1" in text


class TestJsonReports:
    """Test JSON export"""

    def test_schema_report_round_trips(self, tmp_path):
        path = tmp_path / "nested" / "schema.json"

        export_report_json(build_schema_report(schema_result()), path)

        report = json.loads(path.read_text())
        assert report["summary"]["only_in_source"] == ["audit"]
        assert report["counts"]["total_create_queries"] == 2
        assert "timestamp" in report


class TestWriteSchemaOutput:
    """Test CREATE TABLE output layout"""

    def test_layout(self, tmp_path):
        counts = write_schema_output(schema_result().create_table_queries, tmp_path)

        assert counts == {"source_to_target": 1, "target_to_source": 1, "total": 2}
        to_target = (tmp_path / "source-to-target" / "missing-tables.sql").read_text()
        assert to_target.startswith("-- Auto-generated CREATE TABLE statements\n")
        assert 'CREATE TABLE "audit"' in to_target
        assert "payments" not in to_target
        assert (tmp_path / "target-to-source" / "missing-tables.sql").exists()

        report = json.loads((tmp_path / "source-to-target" / "report.json").read_text())
        assert report["tables"][0]["table_name"] == "audit"
        summary = json.loads((tmp_path / "schema-summary-report.json").read_text())
        assert summary["summary"]["total_missing_tables"] == 2

    def test_one_direction_only(self, tmp_path):
        queries = schema_result().create_table_queries[:1]

        write_schema_output(queries, tmp_path)

        assert not (tmp_path / "target-to-source" / "missing-tables.sql").exists()


class TestWriteDataOutput:
    """Test INSERT output layout"""

    def test_layout(self, tmp_path):
        counts = write_data_output(insert_queries(), tmp_path)

        assert counts == {
            "source_to_target": 1,
            "target_to_source": 1,
            "total": 2,
            "total_records": 3,
        }
        script = (tmp_path / "source-to-target" / "missing-records.sql").read_text()
        assert "-- INSERT_TO_TARGET - 2 records for users" in script
        assert "-- Records from source missing in target" in script
        assert 'INSERT INTO "users" ("id") VALUES (1), (2);' in script

        summary = json.loads((tmp_path / "summary-report.json").read_text())
        assert summary["summary"]["total_records"] == 3
