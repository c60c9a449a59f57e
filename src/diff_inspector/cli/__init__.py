"""
Command-line interface for schema and data reconciliation.

Available commands:
- schema: Compare table structures, generate CREATE TABLE statements
- records: Compare table records, generate INSERT statements
- health: Check database connectivity
"""

import sys

from dotenv import load_dotenv

from diff_inspector.config import InspectorSettings
from diff_inspector.errors import DiffInspectorError
from diff_inspector.utils.logging import configure_from_env
from diff_inspector.utils.metrics import start_metrics_server
from diff_inspector.utils.tracing import initialize_tracing, shutdown_tracing

from .commands import MissingSideError, cmd_health, cmd_records, cmd_schema
from .parser import create_parser

COMMANDS = {
    'schema': cmd_schema,
    'records': cmd_records,
    'health': cmd_health,
}


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the pdi CLI"""
    load_dotenv()

    try:
        settings = InspectorSettings.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    parser = create_parser(settings)
    args = parser.parse_args(argv)

    configure_from_env(level=args.log_level, log_file=args.log_file, json_format=args.log_json)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    if args.metrics_port:
        start_metrics_server(args.metrics_port)
    initialize_tracing()

    try:
        exit_code = command(args)
    except MissingSideError as e:
        parser.error(str(e))
    except DiffInspectorError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        shutdown_tracing()

    sys.exit(exit_code)


__all__ = [
    'main',
    'cmd_schema',
    'cmd_records',
    'cmd_health',
    'create_parser',
]


if __name__ == '__main__':
    main()
