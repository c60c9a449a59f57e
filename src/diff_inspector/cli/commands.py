"""
CLI command implementations.

This module contains the implementation of the three CLI commands:
- schema: Structural comparison and CREATE TABLE generation
- records: Record comparison and INSERT generation
- health: Connectivity check

Each command returns the process exit code.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from diff_inspector.apply import execute_create_table_queries, execute_insert_queries
from diff_inspector.db.connection import connect, test_connection
from diff_inspector.engine import DiffInspector
from diff_inspector.report import (
    build_insert_script,
    build_schema_report,
    export_report_json,
    format_data_report_console,
    format_schema_report_console,
    write_data_output,
    write_schema_output,
)
from diff_inspector.sources import SourceSpec

logger = logging.getLogger(__name__)


class MissingSideError(ValueError):
    """A comparison side has neither a URL nor a dump file."""


def resolve_side(label: str, url: Optional[str], dump_path: Optional[str]) -> SourceSpec:
    """
    Describe one side. A dump file wins over a URL.

    Raises:
        MissingSideError: Neither was given
    """
    if dump_path:
        if url:
            logger.info(f"Using {label} dump {dump_path}; ignoring {label} URL")
        return SourceSpec(label, dump_path=dump_path)
    if url:
        return SourceSpec(label, url=url)
    raise MissingSideError(
        f"No {label} given: use --{label} URL, --{label}-dump FILE "
        f"or set {label.upper()}_DB_URL"
    )


def _parse_tables(tables: Optional[str]) -> Optional[list[str]]:
    if not tables:
        return None
    return [name.strip() for name in tables.split(',') if name.strip()]


def _print_execution(result: dict[str, Any]) -> None:
    print("=" * 80)
    print("EXECUTION RESULTS")
    print("=" * 80)
    for side in ("source", "target"):
        side_result = result[side]
        print(f"{side.capitalize()}: {side_result['success']} succeeded, {side_result['failed']} failed")
        for error in side_result["errors"]:
            print(f"  {error['table']}: {error['error']}")
    print("=" * 80)


def cmd_schema(args: argparse.Namespace, connection_provider: Callable = connect) -> int:
    """
    Compare schemas and write CREATE TABLE scripts for missing tables

    Args:
        args: Parsed command-line arguments
        connection_provider: Callable ``url -> connection``
    """
    source = resolve_side("source", args.source, args.source_dump)
    target = resolve_side("target", args.target, args.target_dump)

    inspector = DiffInspector(
        schema=args.schema,
        tables=_parse_tables(args.tables),
        connection_provider=connection_provider,
    )
    result = inspector.compare_schemas(source, target, verbose=args.verbose)

    print(format_schema_report_console(result, verbose=args.verbose))

    if args.output:
        export_report_json(build_schema_report(result), args.output)
        logger.info(f"Schema report written to {args.output}")

    queries = result.create_table_queries
    if queries:
        counts = write_schema_output(queries, args.output_dir)
        print(
            f"Generated {counts['total']} CREATE TABLE statements "
            f"({counts['source_to_target']} for target, {counts['target_to_source']} for source) "
            f"in {args.output_dir}"
        )

        if args.execute:
            execution = execute_create_table_queries(
                queries,
                source_url=source.url,
                target_url=target.url,
                dry_run=args.dry_run,
                connection_provider=connection_provider,
            )
            _print_execution(execution)

    return 0


def cmd_records(args: argparse.Namespace, connection_provider: Callable = connect) -> int:
    """
    Compare records and write INSERT scripts for missing records

    Args:
        args: Parsed command-line arguments
        connection_provider: Callable ``url -> connection``
    """
    source = resolve_side("source", args.source, args.source_dump)
    target = resolve_side("target", args.target, args.target_dump)

    inspector = DiffInspector(
        schema=args.schema,
        tables=_parse_tables(args.tables),
        batch_size=args.batch_size,
        max_retries=args.max_retries,
        workers=args.workers,
        connection_provider=connection_provider,
    )
    result = inspector.compare_data(source, target)

    print(format_data_report_console(result))

    queries = result.insert_queries
    if queries:
        if args.output:
            output = Path(args.output)
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(build_insert_script(queries), encoding="utf-8")
            logger.info(f"INSERT statements written to {args.output}")

        counts = write_data_output(queries, args.output_dir)
        print(
            f"Generated {counts['total']} INSERT statements covering "
            f"{counts['total_records']:,} records in {args.output_dir}"
        )

        if args.execute:
            execution = execute_insert_queries(
                queries,
                source_url=source.url,
                target_url=target.url,
                dry_run=args.dry_run,
                connection_provider=connection_provider,
            )
            _print_execution(execution)

    return 0


def cmd_health(args: argparse.Namespace, connection_provider: Callable = connect) -> int:
    """Check that the database at ``--url`` answers a query."""
    if not args.url:
        raise MissingSideError("No database given: use --url URL or set SOURCE_DB_URL")

    if test_connection(args.url, connection_provider=connection_provider):
        print("Database connection: OK")
        return 0
    print("Database connection: FAILED")
    return 1
