"""erdos: dependency-ordered T-SQL dumps of SQL Server databases.

Reads a live SQL Server catalog and writes one replayable script: schema
(CREATE SCHEMA / CREATE TABLE, parents before children), data (batched
INSERT statements, dumped concurrently) and constraints (primary and
foreign keys, applied last).

Usage:
    from erdos import get_driver, build_dump_script, write_dump_script

    driver = get_driver("mssql", max_concurrency=4)
    script = await build_dump_script(driver, url, skip_data=["ApiLogs"])
    write_dump_script("dump.sql", script)
"""

__version__ = "0.1.0"

# Drivers
from erdos.adapters.base import DatabaseDriver
from erdos.adapters.mssql import MSSQLDriver
from erdos.adapters.unsupported import UnsupportedDriver

# Config
from erdos.config.loader import load_config
from erdos.config.models import DumpConfig, DumpProfile, DumpSettings

# Factory
from erdos.factory import get_driver, resolve_connection, resolve_url

# Dump
from erdos.dump.data import DataDumper
from erdos.dump.script import build_dump_script, write_dump_script

# Naming and errors
from erdos.naming import TableName
from erdos.errors import (
    DataDumpError,
    DependencyCycleError,
    ErdosError,
    ErrorCode,
    ProfileNotFoundError,
    UnsupportedDatabaseError,
)

__all__ = [
    # Drivers
    "DatabaseDriver",
    "MSSQLDriver",
    "UnsupportedDriver",
    # Config
    "load_config",
    "DumpConfig",
    "DumpProfile",
    "DumpSettings",
    # Factory
    "get_driver",
    "resolve_connection",
    "resolve_url",
    # Dump
    "DataDumper",
    "build_dump_script",
    "write_dump_script",
    # Naming and errors
    "TableName",
    "ErdosError",
    "ErrorCode",
    "DataDumpError",
    "DependencyCycleError",
    "ProfileNotFoundError",
    "UnsupportedDatabaseError",
]
