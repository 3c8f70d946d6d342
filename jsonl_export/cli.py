"""
Command Line Interface for the JSON Lines table exporter.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .backends import default_backends
from .config import DEFAULT_CONNECTION_NAME, ConfigManager
from .core import ExportCoordinator
from .errors import UsageError
from .health import HealthChecker, HealthStatus
from .logging_config import setup_logging
from .models import BackendKind, ExportRequest

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="jsonl-export",
        description="Export given database tables to JSON Lines files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export two MySQL tables, the second one into customers_v2.jsonl
  jsonl-export --type mysql --connection-string mysql://app:secret@db:3306/shop \\
               --table orders customers:customers_v2

  # Oracle export with a timestamp suffix, skipping tables that do not exist
  jsonl-export --type oracle --config config.yml --connection-name warehouse \\
               --table HR.EMPLOYEES HR.DEPARTMENTS --with-timestamp --soft-fail

  # Check connectivity and the output directory only
  jsonl-export --type mysql --config config.yml --health-check

  # Generate a sample configuration file
  jsonl-export --generate-config config.yml
        """,
    )

    parser.add_argument(
        "--table",
        nargs="+",
        action="extend",
        metavar="TABLE[:FILE]",
        help="Table name(s) with optional file name after a colon (space separated)",
    )
    parser.add_argument(
        "--type",
        dest="backend",
        choices=[kind.value for kind in BackendKind],
        help="Database type",
    )
    parser.add_argument(
        "--path", dest="output_path", help="Directory for exported files (default: ./exports)"
    )
    parser.add_argument("--file-name-prefix", help="File name prefix")
    parser.add_argument(
        "--with-timestamp",
        action="store_true",
        default=None,
        help="Add a UTC time stamp suffix to exported file names",
    )
    parser.add_argument(
        "--soft-fail",
        action="store_true",
        default=None,
        help="Only warn and skip when a given table does not exist",
    )

    parser.add_argument(
        "--connection-string", help="Database connection string (overrides the config file)"
    )
    parser.add_argument(
        "--connection-name",
        default=DEFAULT_CONNECTION_NAME,
        help="Entry of connection_strings in the config file (default: database)",
    )
    parser.add_argument(
        "--tns-admin-path", help="Directory containing tnsnames.ora (Oracle only)"
    )

    parser.add_argument(
        "--max-workers",
        type=int,
        help="Maximum number of tables exported at once (default: number of CPU cores)",
    )
    parser.add_argument(
        "--fetch-size", type=int, help="Rows fetched per round trip (default: 1000)"
    )

    parser.add_argument("--config", "-c", help="Path to configuration file (YAML format)")
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    parser.add_argument("--log-file", help="Write logs to this file as well")
    parser.add_argument(
        "--structured-logging",
        action="store_true",
        default=None,
        help="Emit logs as JSON lines",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    parser.add_argument(
        "--health-check",
        action="store_true",
        help="Check database connectivity and the output directory, then exit",
    )
    parser.add_argument(
        "--generate-config", help="Generate sample configuration file at specified path"
    )

    return parser


def parse_requests(tokens: List[str]) -> List[ExportRequest]:
    """Turn ``table[:fileName]`` tokens into export requests."""
    requests = []
    for token in tokens:
        try:
            requests.append(ExportRequest.parse(token))
        except ValueError as exc:
            raise UsageError(str(exc)) from exc
    return requests


def _overrides(args: argparse.Namespace) -> dict:
    overrides = {
        "backend": args.backend,
        "output_path": args.output_path,
        "file_name_prefix": args.file_name_prefix,
        "with_timestamp": args.with_timestamp,
        "soft_fail": args.soft_fail,
        "tns_admin_path": args.tns_admin_path,
        "max_workers": args.max_workers,
        "fetch_size": args.fetch_size,
        "log_level": "DEBUG" if args.verbose else args.log_level,
        "log_file": args.log_file,
        "structured_logging": args.structured_logging,
    }
    return {key: value for key, value in overrides.items() if value is not None}


def run_health_check(config_manager: ConfigManager, args: argparse.Namespace) -> int:
    options = config_manager.build_export_options(
        _overrides(args), args.connection_string, args.connection_name
    )
    backend = default_backends()[options.backend_kind]
    _, overall = HealthChecker().run_all_checks(options, backend)
    print(f"Health check: {overall.value}")
    return EXIT_FAILED if overall == HealthStatus.UNHEALTHY else EXIT_OK


def run_export(config_manager: ConfigManager, args: argparse.Namespace) -> int:
    """Export the requested tables and return the process exit code."""
    requests = parse_requests(args.table)
    options = config_manager.build_export_options(
        _overrides(args), args.connection_string, args.connection_name
    )
    coordinator = ExportCoordinator(
        options, policy=config_manager.get_soft_fail_policy()
    )
    result = coordinator.run(requests)

    print(
        f"Export completed: {len(result.succeeded)}/{len(result.outcomes)} tables "
        f"successful, {len(result.skipped)} skipped"
    )
    if result.failed:
        print("Failed tables:")
        for outcome in result.failed:
            print(f"  - {outcome.table_name}: {outcome.error_detail}")
    return result.exit_code


def run(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, run the requested action and return the exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.generate_config:
        ConfigManager().create_sample_config_file(args.generate_config)
        print(f"Sample configuration file created: {args.generate_config}")
        return EXIT_OK

    # UsageError is a ValueError, as is an unknown log level
    try:
        config_manager = ConfigManager(args.config)
        settings = config_manager.get_app_settings(_overrides(args))
        setup_logging(
            log_level=settings.log_level,
            log_file=settings.log_file,
            structured_logging=settings.structured_logging,
        )
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    try:
        if args.health_check:
            return run_health_check(config_manager, args)
        if not args.table:
            parser.print_usage(sys.stderr)
            print("Error: --table is required", file=sys.stderr)
            return EXIT_USAGE
        return run_export(config_manager, args)
    except UsageError as exc:
        logging.getLogger(__name__).error("Usage error: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE


def main() -> None:
    """Main entry point for the CLI."""
    sys.exit(run())


if __name__ == "__main__":
    main()
