"""Error types raised by erdos.

Every error carries an ``ErrorCode`` and an optional underlying cause, and
renders as ``"<code> | <message> - <cause>"`` so a failed dump can be
diagnosed from the message alone.

Usage:
    from erdos.errors import DBQueryError

    try:
        rows = await conn.execute(query)
    except SQLAlchemyError as e:
        raise DBQueryError("failed to query table list", e) from e
"""

from enum import IntEnum


class ErrorCode(IntEnum):
    """Numeric error codes shared by all erdos errors."""

    # General errors
    UNKNOWN = 0
    INVALID_INPUT = 1
    CONFIG_NOT_FOUND = 2
    UNSUPPORTED_OPTION = 3
    OPERATION_TIMEOUT = 4

    # Database errors
    DB_CONNECTION = 5
    DB_QUERY = 6
    SCHEMA_DUMP = 7
    DATA_DUMP = 8
    CONSTRAINT_DUMP = 9
    TRANSACTION = 10
    UNSUPPORTED_DATABASE = 11

    # Output and process errors
    FILE_WRITE = 12
    CONCURRENCY = 13
    MIGRATE_PROCESS = 14


class ErdosError(Exception):
    """Base class for all erdos errors.

    Args:
        message: Human-readable description including the table,
            constraint or query stage involved.
        cause: Optional underlying exception.
    """

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.code.value} | {self.message} - {self.cause}"
        return f"{self.code.value} | {self.message}"


class InvalidInputError(ErdosError):
    """Raised when a required input (e.g. connection string) is missing or malformed."""

    code = ErrorCode.INVALID_INPUT


class ConfigNotFoundError(ErdosError):
    """Raised when the configuration file does not exist."""

    code = ErrorCode.CONFIG_NOT_FOUND


class ProfileNotFoundError(ErdosError):
    """Raised when no database profile is configured or the name is unknown."""

    code = ErrorCode.CONFIG_NOT_FOUND


class DBConnectionError(ErdosError):
    """Raised when the database cannot be opened or fails the liveness check."""

    code = ErrorCode.DB_CONNECTION


class DBQueryError(ErdosError):
    """Raised when a catalog or data query fails."""

    code = ErrorCode.DB_QUERY


class SchemaDumpError(ErdosError):
    """Raised when CREATE statements cannot be assembled."""

    code = ErrorCode.SCHEMA_DUMP


class DataDumpError(ErdosError):
    """Raised when one or more tables fail to dump their rows.

    Attributes:
        failures: Per-table errors collected during a concurrent dump.
            Empty when the error describes a single table.
    """

    code = ErrorCode.DATA_DUMP

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        failures: list["DataDumpError"] | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.failures = failures or []


class ConstraintDumpError(ErdosError):
    """Raised when ALTER TABLE constraint statements cannot be assembled."""

    code = ErrorCode.CONSTRAINT_DUMP


class UnsupportedDatabaseError(ErdosError):
    """Raised by drivers for database engines without a working implementation."""

    code = ErrorCode.UNSUPPORTED_DATABASE


class FileWriteError(ErdosError):
    """Raised when the dump script cannot be written."""

    code = ErrorCode.FILE_WRITE


class MigrateProcessError(ErdosError):
    """Raised when the dump cannot proceed as requested (e.g. invalid skip list)."""

    code = ErrorCode.MIGRATE_PROCESS


class DependencyCycleError(MigrateProcessError):
    """Raised when the FK dependency graph has a cycle or is incomplete.

    Attributes:
        unresolved: Tables that could not be placed in the sorted order.
    """

    def __init__(self, message: str, unresolved: list[str] | None = None) -> None:
        super().__init__(message)
        self.unresolved = unresolved or []
