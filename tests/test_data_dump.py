"""Tests for the concurrent data dump engine.

Verifies that:
- Values are rendered as T-SQL literals (quotes doubled, NULL, dates)
- Rows are batched into multi-row INSERTs (120 rows -> 50/50/20)
- IDENTITY_INSERT wraps inserts only for identity tables with rows
- Skip-data tables produce no block
- Concurrent tables never interleave and the concurrency cap holds
- A timeout aborts only its table; failures are aggregated
"""

import asyncio
import logging
from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

import pytest
from sqlalchemy.exc import OperationalError

from erdos.errors import DataDumpError, InvalidInputError
from erdos.naming import TableName
from erdos.dump.data import DataDumper, dump_table_data, format_row, format_value
from erdos.schema.models import ColumnDef


def col(name: str, data_type: str = "int", position: int = 1, **kwargs) -> ColumnDef:
    kwargs.setdefault("table", "T")
    return ColumnDef(name=name, data_type=data_type, position=position, **kwargs)


async def rows_of(values):
    for row in values:
        yield row


def run_table(table, columns, rows, batch_size=50):
    return asyncio.run(dump_table_data(table, columns, rows_of(rows), batch_size))


# ------------------------------------------------------------------
# Value formatting
# ------------------------------------------------------------------


class TestFormatValue:
    """Verify literal rendering per value type."""

    def test_none(self):
        """None renders NULL."""
        assert format_value(None) == "NULL"

    def test_string_quotes_doubled(self):
        """Embedded single quotes are doubled."""
        assert format_value("O'Brien") == "'O''Brien'"

    def test_unicode_text_prefixed(self):
        """nchar, nvarchar and ntext text gets an N prefix."""
        assert format_value("Zoë", "nvarchar") == "N'Zoë'"
        assert format_value("O'Brien", "NCHAR") == "N'O''Brien'"
        assert format_value("note", "ntext") == "N'note'"

    def test_non_unicode_text_unprefixed(self):
        """varchar text stays a plain quoted literal."""
        assert format_value("abc", "varchar") == "'abc'"

    def test_bytes_decoded(self):
        """Binary values are decoded as text."""
        assert format_value(b"abc") == "'abc'"

    def test_invalid_bytes_replaced(self):
        """Undecodable bytes do not raise."""
        assert format_value(b"\xff").startswith("'")

    def test_datetime(self):
        """Datetimes use YYYY-MM-DD HH:MM:SS."""
        assert format_value(datetime(2024, 3, 5, 14, 7, 9)) == "'2024-03-05 14:07:09'"

    def test_date(self):
        """Dates render at midnight in the same format."""
        assert format_value(date(2024, 3, 5)) == "'2024-03-05 00:00:00'"

    def test_time(self):
        """Times render HH:MM:SS."""
        assert format_value(time(8, 30, 0)) == "'08:30:00'"

    def test_bool(self):
        """Booleans render as bit literals."""
        assert format_value(True) == "1"
        assert format_value(False) == "0"

    def test_numbers(self):
        """Numbers render bare."""
        assert format_value(42) == "42"
        assert format_value(Decimal("10.50")) == "10.50"

    def test_uuid(self):
        """uniqueidentifier values are quoted."""
        value = UUID("12345678-1234-5678-1234-567812345678")
        assert format_value(value) == "'12345678-1234-5678-1234-567812345678'"

    def test_spatial_placeholder(self):
        """Spatial columns render NULL whatever the value."""
        assert format_value(b"\x00\x01", "geography") == "NULL"
        assert format_value("POINT(1 2)", "geometry") == "NULL"

    def test_format_row(self):
        """A row renders as a parenthesized value list."""
        columns = [col("Id"), col("Name", "nvarchar", 2), col("Shape", "geometry", 3)]
        assert format_row((1, "O'Brien", b"x"), columns) == "(1, N'O''Brien', NULL)"


# ------------------------------------------------------------------
# Single table
# ------------------------------------------------------------------


class TestDumpTableData:
    """Verify one table's data block."""

    table = TableName.new("dbo", "People")

    def test_batches_of_fifty(self):
        """120 rows split into INSERTs of 50, 50 and 20 rows."""
        columns = [col("Id")]
        sql = run_table(self.table, columns, [(i,) for i in range(120)])

        statements = sql.split("INSERT INTO")[1:]
        assert len(statements) == 3
        assert [s.count("(") - 1 for s in statements] == [50, 50, 20]

    def test_row_order_preserved(self):
        """Rows appear in the order the source yields them."""
        sql = run_table(self.table, [col("Id")], [(3,), (1,), (2,)])
        assert "(3),\n(1),\n(2);" in sql

    def test_insert_shape(self):
        """Column list is bracketed; statement ends with ';'."""
        columns = [col("Id"), col("Name", "nvarchar", 2)]
        sql = run_table(self.table, columns, [(1, "O'Brien")])
        assert sql == (
            "-- Data dump for table: [dbo].[People]\n"
            "INSERT INTO [dbo].[People] ([Id], [Name]) VALUES\n"
            "(1, N'O''Brien');\n"
            "\nGO\n\n"
        )

    def test_identity_insert_wraps(self):
        """Identity tables toggle IDENTITY_INSERT around their inserts."""
        columns = [col("Id", is_identity=True)]
        sql = run_table(self.table, columns, [(1,), (2,)])
        on = sql.index("SET IDENTITY_INSERT [dbo].[People] ON;")
        insert = sql.index("INSERT INTO")
        off = sql.index("SET IDENTITY_INSERT [dbo].[People] OFF;")
        assert on < insert < off

    def test_empty_table(self):
        """No rows: header and separator only, no IDENTITY toggles."""
        sql = run_table(self.table, [col("Id", is_identity=True)], [])
        assert sql == "-- Data dump for table: [dbo].[People]\n\nGO\n\n"

    def test_custom_batch_size(self):
        """Batch size controls rows per statement."""
        sql = run_table(self.table, [col("Id")], [(i,) for i in range(5)], batch_size=2)
        assert sql.count("INSERT INTO") == 3


# ------------------------------------------------------------------
# Many tables
# ------------------------------------------------------------------


def make_source(data, delay=0.0, failing=(), slow=(), undecodable=(), tracker=None):
    """Build a row source over ``{table: rows}``."""

    async def source(table, columns):
        if tracker is not None:
            tracker["active"] += 1
            tracker["peak"] = max(tracker["peak"], tracker["active"])
        try:
            if table in slow:
                await asyncio.sleep(5)
            if table in failing:
                raise OperationalError("SELECT", {}, Exception("connection reset"))
            if table in undecodable:
                raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
            for row in data.get(table, []):
                await asyncio.sleep(delay)
                yield row
        finally:
            if tracker is not None:
                tracker["active"] -= 1

    return source


class TestDataDumper:
    """Verify the concurrent dump of many tables."""

    def _tables(self, count):
        tables = [TableName.new("dbo", f"T{i}") for i in range(count)]
        mappings = {t: [col("Id", table=t.get_parts()[1])] for t in tables}
        data = {t: [(n,) for n in range(i * 100, i * 100 + 3)] for i, t in enumerate(tables)}
        return tables, mappings, data

    def test_every_table_dumped(self):
        """Each table contributes exactly one block."""
        tables, mappings, data = self._tables(4)
        dumper = DataDumper(make_source(data))
        sql = asyncio.run(dumper.dump(tables, mappings))
        for table in tables:
            assert sql.count(f"-- Data dump for table: {table}\n") == 1

    def test_blocks_not_interleaved(self):
        """A table's block contains only that table's rows."""
        tables, mappings, data = self._tables(5)
        dumper = DataDumper(make_source(data, delay=0.001), max_concurrency=5)
        sql = asyncio.run(dumper.dump(tables, mappings))

        blocks = [b for b in sql.split("-- Data dump for table: ") if b]
        assert len(blocks) == 5
        for block in blocks:
            name = block.split("\n", 1)[0]
            index = int(name.split("[T")[1].rstrip("]"))
            expected = f"({index * 100}),\n({index * 100 + 1}),\n({index * 100 + 2});"
            assert expected in block
            assert block.count("INSERT INTO") == 1

    def test_concurrency_cap(self):
        """No more than max_concurrency tables stream at once."""
        tables, mappings, data = self._tables(6)
        tracker = {"active": 0, "peak": 0}
        dumper = DataDumper(make_source(data, delay=0.01, tracker=tracker), max_concurrency=2)
        asyncio.run(dumper.dump(tables, mappings))
        assert tracker["peak"] <= 2

    def test_skip_data(self):
        """Skip-data tables are not read and have no block."""
        tables, mappings, data = self._tables(3)
        dumper = DataDumper(make_source(data), skip_data=["T1"])
        sql = asyncio.run(dumper.dump(tables, mappings))
        assert "[dbo].[T1]" not in sql
        assert "[dbo].[T0]" in sql
        assert "[dbo].[T2]" in sql

    def test_progress_reported_per_table(self):
        """Progress counts every table, skipped ones included."""
        tables, mappings, data = self._tables(3)
        calls = []
        dumper = DataDumper(
            make_source(data),
            skip_data=["T0"],
            on_progress=lambda done, total: calls.append((done, total)),
        )
        asyncio.run(dumper.dump(tables, mappings))
        assert calls == [(1, 3), (2, 3), (3, 3)]

    def test_timeout_aborts_table(self):
        """A slow table fails with a timeout naming it."""
        tables, mappings, data = self._tables(3)
        dumper = DataDumper(make_source(data, slow={tables[1]}), table_timeout=0.05)
        with pytest.raises(DataDumpError) as exc_info:
            asyncio.run(dumper.dump(tables, mappings))

        error = exc_info.value
        assert len(error.failures) == 1
        assert "timed out" in str(error.failures[0])
        assert "[dbo].[T1]" in str(error.failures[0])

    def test_failures_aggregated(self):
        """All failing tables are reported, in table order."""
        tables, mappings, data = self._tables(4)
        dumper = DataDumper(make_source(data, failing={tables[3], tables[1]}))
        with pytest.raises(DataDumpError) as exc_info:
            asyncio.run(dumper.dump(tables, mappings))

        error = exc_info.value
        assert len(error.failures) == 2
        assert "[dbo].[T1]" in str(error.failures[0])
        assert "[dbo].[T3]" in str(error.failures[1])
        assert error.__cause__ is error.failures[0]
        assert "2 table(s) failed" in error.message

    def test_unexpected_row_error_is_table_failure(self):
        """A non-driver error from one table does not cancel the others."""
        tables, mappings, data = self._tables(4)
        done = []

        def on_progress(finished, total):
            done.append(finished)

        dumper = DataDumper(
            make_source(data, delay=0.01, undecodable={tables[0]}),
            on_progress=on_progress,
        )
        with pytest.raises(DataDumpError) as exc_info:
            asyncio.run(dumper.dump(tables, mappings))

        error = exc_info.value
        assert len(error.failures) == 1
        assert "[dbo].[T0]" in str(error.failures[0])
        assert isinstance(error.failures[0].__cause__, UnicodeDecodeError)
        assert max(done) == 4

    def test_missing_columns_fail_table(self):
        """A table without column metadata is a per-table failure."""
        tables, mappings, data = self._tables(2)
        del mappings[tables[0]]
        dumper = DataDumper(make_source(data))
        with pytest.raises(DataDumpError) as exc_info:
            asyncio.run(dumper.dump(tables, mappings))
        assert "no column metadata" in str(exc_info.value.failures[0])

    def test_spatial_columns_warned(self, caplog):
        """Spatial columns are announced once at WARNING level."""
        table = TableName.new("dbo", "Places")
        columns = [col("Id"), col("Location", "geography", 2)]
        logger = logging.getLogger("tests.spatial")
        dumper = DataDumper(make_source({table: [(1, None)]}), logger=logger)
        with caplog.at_level("WARNING", logger="tests.spatial"):
            sql = asyncio.run(dumper.dump([table], {table: columns}))
        assert "(1, NULL)" in sql
        warnings = [r for r in caplog.records if "Location" in r.getMessage()]
        assert len(warnings) == 1

    def test_no_tables(self):
        """An empty table list dumps nothing."""
        dumper = DataDumper(make_source({}))
        assert asyncio.run(dumper.dump([], {})) == ""

    @pytest.mark.parametrize(
        "kwargs",
        [{"batch_size": 0}, {"table_timeout": 0}, {"max_concurrency": 0}],
    )
    def test_invalid_limits(self, kwargs):
        """Non-positive limits are rejected."""
        with pytest.raises(InvalidInputError):
            DataDumper(make_source({}), **kwargs)
