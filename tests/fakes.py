"""In-memory stand-ins for SQLAlchemy async engines and connections."""

import re
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.exc import OperationalError

from erdos.schema.introspector import (
    DEPENDENCIES_QUERY,
    FOREIGN_KEYS_QUERY,
    PRIMARY_KEYS_QUERY,
    TABLE_LIST_QUERY,
    TABLE_MAPPINGS_QUERY,
)

_FROM = re.compile(r"FROM (\[.*\]\.\[.*\])$")


class FakeCatalog:
    """Catalog rows keyed by query, plus table rows for streaming."""

    def __init__(
        self,
        tables=(),
        columns=(),
        dependencies=(),
        primary_keys=(),
        foreign_keys=(),
        data=None,
    ):
        self.results = {
            TABLE_LIST_QUERY: list(tables),
            TABLE_MAPPINGS_QUERY: list(columns),
            DEPENDENCIES_QUERY: list(dependencies),
            PRIMARY_KEYS_QUERY: list(primary_keys),
            FOREIGN_KEYS_QUERY: list(foreign_keys),
            "SELECT 1": [(1,)],
        }
        self.data = data or {}
        self.fail_queries: set[str] = set()
        self.selects: list[str] = []


def make_connection(catalog: FakeCatalog) -> MagicMock:
    """A connection whose execute/stream answer from ``catalog``."""

    async def execute(clause):
        if clause.text in catalog.fail_queries:
            raise OperationalError(clause.text, {}, Exception("query failed"))
        rows = catalog.results[clause.text]
        result = MagicMock()
        result.fetchall.return_value = rows
        result.scalar.return_value = rows[0][0] if rows else None
        return result

    async def stream(clause):
        catalog.selects.append(clause.text)
        table = _FROM.search(clause.text).group(1)

        async def rows():
            for row in catalog.data.get(table, []):
                yield row

        return rows()

    conn = MagicMock()
    conn.execute = AsyncMock(side_effect=execute)
    conn.stream = AsyncMock(side_effect=stream)
    return conn


def make_engine(catalog: FakeCatalog) -> MagicMock:
    """An engine whose ``connect()`` yields a fake connection."""
    conn = make_connection(catalog)
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=conn)
    context.__aexit__ = AsyncMock(return_value=False)

    engine = MagicMock()
    engine.connect.return_value = context
    engine.dispose = AsyncMock()
    engine.conn = conn
    return engine
