"""Concurrent table data dump to batched INSERT statements.

Each table is dumped by its own asyncio task (bounded by a semaphore)
under a per-table timeout.  Rows are streamed from a caller-provided row
source, formatted per value type, and grouped into multi-row INSERT
statements.  The row source is the only I/O; everything else is pure.

Usage:
    from erdos.dump.data import DataDumper

    async def stream_rows(table, columns):
        async with engine.connect() as conn:
            result = await conn.stream(text(f"SELECT * FROM {table}"))
            async for row in result:
                yield tuple(row)

    dumper = DataDumper(stream_rows, batch_size=50, skip_data=["ApiLogs"])
    sql = await dumper.dump(tables, mappings)
"""

import asyncio
import logging
from collections.abc import AsyncGenerator, AsyncIterator, Callable, Iterable, Sequence
from contextlib import aclosing
from datetime import date, datetime, time
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from erdos.errors import DataDumpError, InvalidInputError
from erdos.naming import TableName, format_object_name, matches_table
from erdos.schema.assembler import BATCH_SEPARATOR
from erdos.schema.models import ColumnDef, TableMapping

DEFAULT_BATCH_SIZE = 50
DEFAULT_TABLE_TIMEOUT = 60.0
DEFAULT_MAX_CONCURRENCY = 8

# Spatial types are not round-tripped; their values are dumped as NULL
PLACEHOLDER_TYPES = frozenset({"geography", "geometry"})

# Text of these types is written as N'...' so it survives replay
UNICODE_TEXT_TYPES = frozenset({"nchar", "nvarchar", "ntext"})

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
TIME_FORMAT = "%H:%M:%S"

RowSource = Callable[[TableName, Sequence[ColumnDef]], AsyncGenerator[Sequence[Any], None]]
ProgressCallback = Callable[[int, int], None]


# ------------------------------------------------------------------
# Value formatting
# ------------------------------------------------------------------


def quote_literal(value: str) -> str:
    """Wrap text in single quotes, doubling embedded quotes."""
    return "'" + value.replace("'", "''") + "'"


def format_value(value: Any, data_type: str | None = None) -> str:
    """Render one value as a T-SQL literal.

    Examples:
        >>> format_value("O'Brien")
        "'O''Brien'"
        >>> format_value("Zoë", "nvarchar")
        "N'Zoë'"
        >>> format_value(None)
        'NULL'
        >>> format_value(True)
        '1'
    """
    if value is None:
        return "NULL"
    if data_type is not None and data_type.lower() in PLACEHOLDER_TYPES:
        return "NULL"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return quote_literal(bytes(value).decode("utf-8", errors="replace"))
    if isinstance(value, str):
        if data_type is not None and data_type.lower() in UNICODE_TEXT_TYPES:
            return "N" + quote_literal(value)
        return quote_literal(value)
    if isinstance(value, datetime):
        return f"'{value.strftime(DATETIME_FORMAT)}'"
    if isinstance(value, date):
        return f"'{value.strftime(DATETIME_FORMAT)}'"
    if isinstance(value, time):
        return f"'{value.strftime(TIME_FORMAT)}'"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, UUID):
        return quote_literal(str(value))
    return str(value)


def format_row(row: Sequence[Any], columns: Sequence[ColumnDef]) -> str:
    """Render a row as ``(v1, v2, ...)`` using the declared column types."""
    values = []
    for i, value in enumerate(row):
        data_type = columns[i].data_type if i < len(columns) else None
        values.append(format_value(value, data_type))
    return f"({', '.join(values)})"


class InsertBuffer:
    """Accumulates formatted rows for one multi-row INSERT statement."""

    def __init__(self, head: str, batch_size: int) -> None:
        self.head = head
        self.batch_size = batch_size
        self._rows: list[str] = []

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def is_full(self) -> bool:
        return len(self._rows) >= self.batch_size

    def append(self, row: str) -> None:
        self._rows.append(row)

    def flush(self) -> str:
        """Return the INSERT statement for the buffered rows and reset."""
        if not self._rows:
            return ""
        statement = self.head + ",\n".join(self._rows) + ";\n"
        self._rows = []
        return statement


# ------------------------------------------------------------------
# Single table
# ------------------------------------------------------------------


def has_identity(columns: Iterable[ColumnDef]) -> bool:
    """True if any column is an identity column."""
    return any(col.is_identity for col in columns)


async def dump_table_data(
    table: TableName,
    columns: Sequence[ColumnDef],
    rows: AsyncIterator[Sequence[Any]],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> str:
    """Render all rows of one table as batched INSERT statements.

    Args:
        table: Table being dumped.
        columns: Its columns in ordinal order (same order as row values).
        rows: Async iterator of row tuples.
        batch_size: Rows per INSERT statement.

    Returns:
        The table's data block: comment header, optional
        ``SET IDENTITY_INSERT`` toggles, INSERT statements and a batch
        separator.
    """
    column_list = ", ".join(format_object_name(col.name) for col in columns)
    buffer = InsertBuffer(f"INSERT INTO {table} ({column_list}) VALUES\n", batch_size)

    statements: list[str] = []
    async for row in rows:
        buffer.append(format_row(row, columns))
        if buffer.is_full:
            statements.append(buffer.flush())
    if len(buffer):
        statements.append(buffer.flush())

    block = [f"-- Data dump for table: {table}\n"]
    if statements and has_identity(columns):
        block.append(f"SET IDENTITY_INSERT {table} ON;\n")
        block.extend(statements)
        block.append(f"SET IDENTITY_INSERT {table} OFF;\n")
    else:
        block.extend(statements)
    block.append(f"\n{BATCH_SEPARATOR}\n\n")
    return "".join(block)


# ------------------------------------------------------------------
# All tables
# ------------------------------------------------------------------


class DataDumper:
    """Dumps the data of many tables concurrently.

    Args:
        row_source: Async generator function ``(table, columns) -> rows``.
        batch_size: Rows per INSERT statement.
        table_timeout: Seconds allowed for streaming one table.
        max_concurrency: Maximum number of tables dumped at once.
        skip_data: Table names whose data is not dumped.
        logger: Logger for warnings and progress.
        on_progress: Called with ``(done, total)`` after each table.
            Defaults to a DEBUG log line.

    Raises:
        InvalidInputError: If a numeric limit is not positive.
    """

    def __init__(
        self,
        row_source: RowSource,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        table_timeout: float = DEFAULT_TABLE_TIMEOUT,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        skip_data: Iterable[str] = (),
        logger: logging.Logger | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        if batch_size < 1:
            raise InvalidInputError(f"batch size must be positive, got {batch_size}")
        if table_timeout <= 0:
            raise InvalidInputError(f"table timeout must be positive, got {table_timeout}")
        if max_concurrency < 1:
            raise InvalidInputError(
                f"max concurrency must be positive, got {max_concurrency}"
            )

        self._row_source = row_source
        self.batch_size = batch_size
        self.table_timeout = table_timeout
        self.max_concurrency = max_concurrency
        self.skip_data = [name for name in skip_data if name.strip()]
        self._logger = logger or logging.getLogger(__name__)
        self._on_progress = on_progress or self._log_progress

    def _log_progress(self, done: int, total: int) -> None:
        self._logger.debug("Dumping data (%d/%d)", done, total)

    async def dump(self, tables: Sequence[TableName], mappings: TableMapping) -> str:
        """Dump every table and return the concatenated data section.

        Blocks appear in completion order.  All tables are awaited even
        when some fail.

        Raises:
            DataDumpError: Aggregating every per-table failure; no partial
                output is returned.
        """
        total = len(tables)
        blocks: list[str] = []
        failures: dict[TableName, DataDumpError] = {}
        lock = asyncio.Lock()
        semaphore = asyncio.Semaphore(self.max_concurrency)
        progress: asyncio.Queue[int | None] = asyncio.Queue()

        async def dump_one(table: TableName) -> None:
            try:
                if matches_table(table, self.skip_data):
                    self._logger.debug("Skipping data for table %s", table)
                    return
                async with semaphore:
                    block = await self._dump_table(table, mappings.get(table, []))
                async with lock:
                    blocks.append(block)
            except DataDumpError as e:
                self._logger.error("%s", e)
                async with lock:
                    failures[table] = e
            finally:
                progress.put_nowait(1)

        reporter = asyncio.create_task(self._report_progress(progress, total))
        try:
            async with asyncio.TaskGroup() as group:
                for table in tables:
                    group.create_task(dump_one(table))
        finally:
            progress.put_nowait(None)
            await reporter

        if failures:
            ordered = [failures[t] for t in tables if t in failures]
            names = ", ".join(str(t) for t in tables if t in failures)
            raise DataDumpError(
                f"{len(ordered)} table(s) failed to dump data: {names}",
                cause=ordered[0],
                failures=ordered,
            ) from ordered[0]

        return "".join(blocks)

    async def _dump_table(self, table: TableName, columns: Sequence[ColumnDef]) -> str:
        """Dump one table under its timeout, converting failures to DataDumpError."""
        if not columns:
            raise DataDumpError(f"no column metadata found for table {table}")

        placeholders = [c.name for c in columns if c.data_type.lower() in PLACEHOLDER_TYPES]
        if placeholders:
            self._logger.warning(
                "Table %s: spatial column(s) %s are not exported; values are dumped as NULL",
                table,
                ", ".join(placeholders),
            )

        try:
            async with asyncio.timeout(self.table_timeout):
                async with aclosing(self._row_source(table, columns)) as rows:
                    return await dump_table_data(table, columns, rows, self.batch_size)
        except TimeoutError as e:
            raise DataDumpError(
                f"timed out after {self.table_timeout:g}s dumping data for table {table}", e
            ) from e
        except SQLAlchemyError as e:
            raise DataDumpError(f"failed to read rows for table {table}", e) from e
        except Exception as e:
            raise DataDumpError(f"failed to dump data for table {table}", e) from e

    async def _report_progress(self, queue: "asyncio.Queue[int | None]", total: int) -> None:
        """Drain completion signals and report cumulative progress."""
        done = 0
        while True:
            item = await queue.get()
            if item is None:
                return
            done += item
            self._on_progress(done, total)
