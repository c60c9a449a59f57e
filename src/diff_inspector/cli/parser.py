"""
Command-line argument parser configuration.

This module sets up the argument parser for the pdi CLI tool,
defining all commands and their options.
"""

import argparse

from diff_inspector.config import InspectorSettings


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {number}")
    return number


def _add_side_arguments(parser: argparse.ArgumentParser, settings: InspectorSettings) -> None:
    parser.add_argument(
        '--source',
        default=settings.source_url,
        help='Source database URL (env: SOURCE_DB_URL)'
    )
    parser.add_argument(
        '--target',
        default=settings.target_url,
        help='Target database URL (env: TARGET_DB_URL)'
    )
    parser.add_argument(
        '--source-dump',
        help='Source SQL dump file (takes precedence over --source)'
    )
    parser.add_argument(
        '--target-dump',
        help='Target SQL dump file (takes precedence over --target)'
    )
    parser.add_argument(
        '-s', '--schema',
        default=settings.schema,
        help=f'Schema to compare (default: {settings.schema})'
    )
    parser.add_argument(
        '--tables',
        help='Comma-separated list of tables to compare (default: all)'
    )


def _add_apply_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--execute',
        action='store_true',
        help='Apply the generated statements to the live sides'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='With --execute, report what would run without changing anything'
    )


def create_parser(settings: InspectorSettings | None = None) -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Args:
        settings: Defaults for database URLs, schema and tuning options

    Returns:
        Configured ArgumentParser instance
    """
    if settings is None:
        settings = InspectorSettings()

    parser = argparse.ArgumentParser(
        prog='pdi',
        description='Schema and data reconciliation between two PostgreSQL sides',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compare the schemas of two live databases
  pdi schema --source postgresql://localhost/app --target postgresql://replica/app

  # Compare a live database against a dump, writing a JSON report
  pdi schema --source postgresql://localhost/app --target-dump backup.sql -o schema.json

  # Create missing tables on the live sides
  pdi schema --source-dump backup.sql --target postgresql://localhost/app --execute

  # Compare records, 4 tables at a time, and write the INSERT script
  pdi records --workers 4 --batch-size 5000 -o missing.sql

  # Check that a database is reachable
  pdi health --url postgresql://localhost/app
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: LOG_LEVEL or INFO)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Emit logs as JSON (env: LOG_JSON)'
    )
    parser.add_argument(
        '--log-file',
        help='Also write logs to this file, rotated (env: LOG_FILE)'
    )
    parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Schema command ==========
    schema_parser = subparsers.add_parser('schema', help='Compare table structures')
    _add_side_arguments(schema_parser, settings)
    schema_parser.add_argument(
        '-o', '--output',
        help='Write the JSON schema report to this file'
    )
    schema_parser.add_argument(
        '--output-dir',
        default=settings.output_dir,
        help=f'Directory for generated CREATE TABLE scripts (default: {settings.output_dir})'
    )
    schema_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Include common tables in the report'
    )
    _add_apply_arguments(schema_parser)

    # ========== Records command ==========
    records_parser = subparsers.add_parser('records', help='Compare table records')
    _add_side_arguments(records_parser, settings)
    records_parser.add_argument(
        '--batch-size',
        type=positive_int,
        default=settings.batch_size,
        help=f'Rows per extraction batch (default: {settings.batch_size})'
    )
    records_parser.add_argument(
        '--max-retries',
        type=non_negative_int,
        default=settings.max_retries,
        help=f'Retries per failed batch (default: {settings.max_retries})'
    )
    records_parser.add_argument(
        '--workers',
        type=positive_int,
        default=settings.workers,
        help=f'Tables compared concurrently (default: {settings.workers})'
    )
    records_parser.add_argument(
        '-o', '--output',
        help='Write all INSERT statements to this SQL file'
    )
    records_parser.add_argument(
        '--output-dir',
        default=settings.output_dir,
        help=f'Directory for generated INSERT scripts (default: {settings.output_dir})'
    )
    _add_apply_arguments(records_parser)

    # ========== Health command ==========
    health_parser = subparsers.add_parser('health', help='Check database connectivity')
    health_parser.add_argument(
        '-u', '--url',
        default=settings.source_url,
        help='Database URL (env: SOURCE_DB_URL)'
    )

    return parser
