"""Database drivers package.

Provides the ``DatabaseDriver`` Protocol, the SQL Server implementation
and the typed-error stub used for engines without an implementation.

Usage:
    from erdos.adapters import DatabaseDriver, MSSQLDriver, UnsupportedDriver
"""

from erdos.adapters.base import DatabaseDriver
from erdos.adapters.mssql import MSSQLDriver
from erdos.adapters.unsupported import UnsupportedDriver

__all__ = [
    "DatabaseDriver",
    "MSSQLDriver",
    "UnsupportedDriver",
]
