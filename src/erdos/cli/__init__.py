"""CLI for dumping SQL Server databases to replayable T-SQL scripts.

Usage:
    erdos dump --profile local
    erdos dump --conn "mssql://sa:pw@localhost/Shop?driver=ODBC+Driver+18+for+SQL+Server"
    erdos dump --profile local --include schema --output schema.sql
    erdos dump --profile local --skip AuditTrail --skip-data ApiLogs,Sessions
    ERDOS_PROFILE=local erdos dump --max-concurrency 4 --verbose
    erdos profiles

Commands:
    dump      - Dump schema, data and constraints to a script
    profiles  - List available profiles
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from erdos.config.loader import CONFIG_FILENAME, load_config
from erdos.config.models import DumpConfig, DumpSettings
from erdos.dump.script import INCLUDE_OPTIONS, build_dump_script, write_dump_script
from erdos.errors import ConfigNotFoundError, DataDumpError, ErdosError, FileWriteError
from erdos.factory import PROFILE_ENV_VAR, get_driver, resolve_connection

console = Console()

LOGGER_NAME = "erdos"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# ============================================================================
# Logging
# ============================================================================


class WarningCollector(logging.Handler):
    """Keeps WARNING records so they can be repeated in the summary."""

    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


def configure_logging(verbose: bool = False, log_file: str | None = None) -> logging.Logger:
    """Attach a rich console handler and an optional file handler.

    Args:
        verbose: Log at DEBUG instead of INFO.
        log_file: Also write plain-text log lines to this path.

    Returns:
        The ``erdos`` package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    release_logging(logger)
    logger.propagate = False

    logger.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    )
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            raise FileWriteError(f"failed to open log file {log_file}", e) from e
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    return logger


def release_logging(logger: logging.Logger) -> None:
    """Detach and close every handler on ``logger``."""
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


# ============================================================================
# Helpers
# ============================================================================


def _split_list(value: str | None) -> list[str] | None:
    """Split a comma-separated option; ``None`` when the option was not given."""
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def _load_config_for_dump(args: argparse.Namespace) -> DumpConfig | None:
    """Load erdos.toml; a missing default file is fine when --conn is given."""
    try:
        return load_config(args.config)
    except ConfigNotFoundError:
        if args.config is None and args.conn:
            return None
        raise


def _merge_settings(config: DumpConfig | None, args: argparse.Namespace) -> DumpSettings:
    """Command-line values override the [dump] table of erdos.toml."""
    settings = config.dump if config is not None else DumpSettings()
    overrides = {
        "output": args.output,
        "include": args.include,
        "skip": _split_list(args.skip),
        "skip_data": _split_list(args.skip_data),
        "batch_size": args.batch_size,
        "table_timeout": args.table_timeout,
        "max_concurrency": args.max_concurrency,
    }
    updates = {key: value for key, value in overrides.items() if value is not None}
    return DumpSettings.model_validate({**settings.model_dump(), **updates})


def _print_parameters(source: str, engine: str, settings: DumpSettings) -> None:
    table = Table(title="Dump Parameters", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")

    table.add_row("Source", source)
    table.add_row("Database type", engine)
    table.add_row("Include", settings.include)
    table.add_row("Skip tables", ", ".join(settings.skip) or "-")
    table.add_row("Skip data from", ", ".join(settings.skip_data) or "-")
    table.add_row("Output file", settings.output)
    table.add_row("Batch size", str(settings.batch_size))
    table.add_row("Table timeout", f"{settings.table_timeout:g}s")
    table.add_row("Max concurrency", str(settings.max_concurrency))

    console.print(table)


def _print_error(error: ErdosError) -> None:
    console.print()
    console.print(f"[bold red]x[/bold red] {error}")
    if isinstance(error, DataDumpError):
        for failure in error.failures:
            console.print(f"  - {failure}")
    console.print("[dim]No output file was written.[/dim]")


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_dump(args: argparse.Namespace) -> int:
    """Async implementation for dump command.

    Returns:
        0 on success, 1 on failure.
    """
    logger = logging.getLogger(LOGGER_NAME)
    warnings = WarningCollector()

    try:
        configure_logging(args.verbose, args.log_file)
        logger.addHandler(warnings)
        config = _load_config_for_dump(args)
        settings = _merge_settings(config, args)
        engine, connection_string = resolve_connection(
            config,
            profile_name=args.profile,
            connection_string=args.conn,
            engine=args.db,
        )
        source = "--conn" if args.conn else f"profile {args.profile or '$' + PROFILE_ENV_VAR}"
        _print_parameters(source, engine, settings)

        driver = get_driver(
            engine,
            batch_size=settings.batch_size,
            table_timeout=settings.table_timeout,
            max_concurrency=settings.max_concurrency,
            logger=logger,
        )
        script = await build_dump_script(
            driver,
            connection_string,
            include=settings.include,
            skip=settings.skip,
            skip_data=settings.skip_data,
            logger=logger,
        )
        output_path = write_dump_script(settings.output, script)
    except ErdosError as e:
        logger.debug("Dump failed", exc_info=e)
        _print_error(e)
        return 1
    finally:
        release_logging(logger)

    console.print()
    console.print(f"[bold green]v[/bold green] Dump written to [cyan]{output_path}[/cyan]")
    if warnings.messages:
        console.print(f"\n[yellow]Warnings ({len(warnings.messages)}):[/yellow]")
        for message in warnings.messages:
            console.print(f"  - {message}")
    return 0


# ============================================================================
# Command wrappers
# ============================================================================


def cmd_dump(args: argparse.Namespace) -> int:
    """Dump the selected database to a script file.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    return asyncio.run(_async_dump(args))


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from erdos.toml.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if erdos.toml is missing or invalid.
    """
    try:
        config = load_config(args.config)
    except ErdosError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Engine")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(name, profile.engine, profile.description or "")

    console.print(table)
    return 0


# ============================================================================
# Entry point
# ============================================================================


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the ``erdos`` argument parser."""
    parser = argparse.ArgumentParser(
        prog="erdos",
        description="Dump SQL Server databases to dependency-ordered T-SQL scripts",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # dump command
    p_dump = subparsers.add_parser(
        "dump",
        help="Dump schema, data and constraints to a script",
    )
    source = p_dump.add_mutually_exclusive_group()
    source.add_argument(
        "--profile",
        "-p",
        help=f"Profile from {CONFIG_FILENAME} (default: ${PROFILE_ENV_VAR})",
    )
    source.add_argument(
        "--conn",
        help="Connection string; bypasses profiles",
    )
    p_dump.add_argument(
        "--db",
        help="Database engine (mssql; postgres, sqlite and mysql are not supported yet)",
    )
    p_dump.add_argument(
        "--include",
        choices=INCLUDE_OPTIONS,
        help="Sections to dump (default: all)",
    )
    p_dump.add_argument(
        "--skip",
        help="Comma-separated tables to leave out entirely",
    )
    p_dump.add_argument(
        "--skip-data",
        help="Comma-separated tables whose rows are not dumped",
    )
    p_dump.add_argument("--output", "-o", help="Output file (default: dump.sql)")
    p_dump.add_argument("--batch-size", type=_positive_int, help="Rows per INSERT")
    p_dump.add_argument(
        "--table-timeout",
        type=_positive_float,
        help="Seconds allowed to dump one table's rows",
    )
    p_dump.add_argument(
        "--max-concurrency",
        type=_positive_int,
        help="Tables dumped at once",
    )
    p_dump.add_argument("--config", type=Path, help=f"Path to {CONFIG_FILENAME}")
    p_dump.add_argument("--log-file", help="Also write log lines to this file")
    p_dump.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    p_dump.set_defaults(func=cmd_dump)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.add_argument("--config", type=Path, help=f"Path to {CONFIG_FILENAME}")
    p_profiles.set_defaults(func=cmd_profiles)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
