"""
Command-line interface for jobimporter.

Imports one exported job bundle into the job registry:

    jobimporter BUNDLE --import-metadata=(true|false) [--key=value ...]

Extra ``--key=value`` arguments are advanced options applied on top of the
configuration file (e.g. ``--server-datafolder=/srv/backups``).

Uses Python's argparse module (no external CLI libraries).
"""

from __future__ import annotations

import argparse
import logging
import sqlite3
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import NoReturn

from jobimporter import __version__
from jobimporter.bundle.loader import BundleLoader
from jobimporter.config.settings import (
    ConfigurationError,
    Settings,
    load_config,
    parse_bool,
)
from jobimporter.errors import ArgumentError
from jobimporter.importer.orchestrator import ConfigurationImporter
from jobimporter.prompt import read_password
from jobimporter.registry.job_registry import JobRegistry
from jobimporter.storage.provisioner import StorageProvisioner

# Set up logging
logger = logging.getLogger(__name__)

USAGE = "Usage: jobimporter <configuration-file> --import-metadata=(true | false) [<advanced-option>]..."

# Exit codes
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_ORPHANED = 3
EXIT_INTERRUPTED = 130

# Global verbosity settings (set during run() based on args)
_quiet_mode = False
_verbose_level = 0


def set_output_mode(quiet: bool = False, verbose: int = 0) -> None:
    """
    Set the output mode for the CLI.

    Args:
        quiet: If True, suppress non-essential output.
        verbose: Verbosity level (0=normal, 1+=verbose).
    """
    global _quiet_mode, _verbose_level
    _quiet_mode = quiet
    _verbose_level = verbose


def output(message: str = "", force: bool = False) -> None:
    """
    Print a message to stdout, respecting quiet mode.

    Args:
        message: The message to print.
        force: If True, print even in quiet mode.
    """
    if force or not _quiet_mode:
        print(message)


def output_error(message: str) -> None:
    """Print an error message (always shown, even in quiet mode)."""
    print(message, file=sys.stderr)


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises ArgumentError instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise ArgumentError(f"{message}. {USAGE}")


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the jobimporter CLI."""
    parser = _ArgumentParser(
        prog="jobimporter",
        description="Import an exported backup job configuration into the job registry",
        epilog="Additional --key=value arguments are passed on as advanced options.",
        allow_abbrev=False,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"jobimporter {__version__}",
    )

    parser.add_argument(
        "bundle",
        metavar="BUNDLE",
        help="Exported configuration file to import",
    )

    parser.add_argument(
        "--import-metadata",
        metavar="BOOL",
        required=True,
        help="Keep metadata recorded on the exporting machine (true or false)",
    )

    parser.add_argument(
        "--rollback-on-failure",
        action="store_true",
        help="Remove the registered job again if its local database cannot be created",
    )

    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Override config file location (default: ~/.jobimporter/config.yaml)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (can be repeated)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )

    return parser


def extract_options(arguments: Sequence[str]) -> dict[str, str]:
    """
    Parse ``--key=value`` advanced options.

    A bare ``--key`` means ``true``. Later occurrences of a key win.

    Raises:
        ArgumentError: If an argument is not an option.
    """
    options: dict[str, str] = {}
    for argument in arguments:
        if not argument.startswith("--") or len(argument) == 2:
            raise ArgumentError(f"Unexpected argument: {argument}. {USAGE}")
        key, sep, value = argument[2:].partition("=")
        if not key:
            raise ArgumentError(f"Unexpected argument: {argument}. {USAGE}")
        options[key] = value if sep else "true"
    return options


def parse_arguments(
    parser: argparse.ArgumentParser,
    argv: Sequence[str] | None = None,
) -> tuple[argparse.Namespace, dict[str, str]]:
    """
    Parse the command line.

    Returns:
        Tuple of (parsed arguments, advanced options).

    Raises:
        ArgumentError: If the command line is malformed.
    """
    args, remaining = parser.parse_known_args(argv)

    try:
        args.import_metadata = parse_bool(args.import_metadata)
    except ValueError as e:
        raise ArgumentError(f"Invalid import-metadata argument. {USAGE}") from e

    return args, extract_options(remaining)


def setup_logging(verbose: int, quiet: bool, level_name: str = "WARNING") -> None:
    """Configure logging based on verbosity level."""
    if quiet:
        level = logging.ERROR
    elif verbose == 0:
        level = getattr(logging, level_name, logging.WARNING)
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def cmd_import(args: argparse.Namespace, settings: Settings) -> int:
    """Import a bundle into the registry."""
    bundle_path = Path(args.bundle)

    try:
        registry = JobRegistry(settings.registry_path, settings.jobs_dir)
    except (OSError, sqlite3.Error) as e:
        output_error(f"Error: Cannot open job registry {settings.registry_path}: {e}")
        return EXIT_FAILURE

    importer = ConfigurationImporter(
        BundleLoader(),
        registry,
        StorageProvisioner(),
        rollback_on_provision_failure=args.rollback_on_failure,
    )

    result = importer.import_configuration(
        bundle_path,
        secret_provider=lambda: read_password(f"Password for {bundle_path}: "),
        import_metadata=args.import_metadata,
    )

    if result.success:
        output(
            f'Imported "{result.name}" with ID {result.identity} '
            f"and local database at {result.local_state_path}.",
            force=True,
        )
        return EXIT_OK

    if result.registry_orphaned:
        output_error(
            f"Error: {result.error} Job {result.identity} is registered without "
            f"a local database; remove it or create {result.local_state_path} manually."
        )
        return EXIT_ORPHANED

    if result.rolled_back:
        output_error(f"Error: {result.error} The registry entry was removed.")
        return EXIT_FAILURE

    output_error(f"Error: {result.error}")
    return EXIT_FAILURE


def run(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return its exit code."""
    parser = create_parser()

    try:
        args, options = parse_arguments(parser, argv)
    except ArgumentError as e:
        output_error(f"Error: {e}")
        return EXIT_USAGE

    try:
        config_path = Path(args.config) if args.config else None
        settings = load_config(config_path, options)
    except ConfigurationError as e:
        output_error(f"Configuration error: {e}")
        return EXIT_USAGE

    # Set up logging and output mode
    setup_logging(args.verbose, args.quiet, settings.log_level)
    set_output_mode(args.quiet, args.verbose)

    try:
        return cmd_import(args, settings)
    except KeyboardInterrupt:
        output_error("Operation cancelled.")
        return EXIT_INTERRUPTED
    except Exception as e:
        if args.verbose > 0:
            raise
        output_error(f"Error: {e}")
        return EXIT_FAILURE


def main() -> NoReturn:
    """Main entry point for the jobimporter CLI."""
    sys.exit(run())


if __name__ == "__main__":
    main()
