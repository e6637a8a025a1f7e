"""Database driver protocol definition.

Defines the ``DatabaseDriver`` Protocol that every engine implements.
All dump methods are ``async def``; the connection (an SQLAlchemy
``AsyncEngine``) is returned by ``connect()`` and passed back into each
operation, so the caller owns its lifetime.

Usage:
    from erdos.adapters.base import DatabaseDriver

    async def dump(driver: DatabaseDriver, url: str) -> str:
        engine = await driver.connect(url)
        try:
            schema = await driver.dump_schema(engine)
            data = await driver.dump_data(engine)
            constraints = await driver.dump_constraints(engine)
        finally:
            await driver.close(engine)
        return schema + data + constraints
"""

from collections.abc import Iterable
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncEngine


class DatabaseDriver(Protocol):
    """Dump capability that all engine drivers must implement.

    ``dump_schema``, ``dump_data`` and ``dump_constraints`` are independent
    of each other.  The conventional script order is schema, data, then
    constraints, so constraints are only enforced after the bulk insert.
    """

    engine_name: str

    async def connect(self, connection_string: str) -> AsyncEngine:
        """Open the database and verify it is alive.

        Args:
            connection_string: Engine-specific connection target.

        Returns:
            Engine to pass into the dump methods.

        Raises:
            InvalidInputError: If the connection string is empty.
            DBConnectionError: If the database cannot be reached.
        """
        ...

    async def dump_schema(self, engine: AsyncEngine, skip: Iterable[str] = ()) -> str:
        """Return CREATE SCHEMA / CREATE TABLE statements in dependency order.

        Args:
            engine: Engine returned by ``connect()``.
            skip: Tables left out of the dump entirely.

        Raises:
            DBQueryError: If a catalog query fails.
            DependencyCycleError: If tables cannot be ordered.
        """
        ...

    async def dump_data(
        self,
        engine: AsyncEngine,
        skip: Iterable[str] = (),
        skip_data: Iterable[str] = (),
    ) -> str:
        """Return batched INSERT statements for every table.

        Args:
            engine: Engine returned by ``connect()``.
            skip: Tables left out of the dump entirely.
            skip_data: Tables whose schema is dumped but whose rows are not.

        Raises:
            DBQueryError: If a catalog query fails.
            DataDumpError: If any table fails to dump.
        """
        ...

    async def dump_constraints(self, engine: AsyncEngine, skip: Iterable[str] = ()) -> str:
        """Return ALTER TABLE statements for primary and foreign keys.

        Raises:
            DBQueryError: If a catalog query fails.
        """
        ...

    async def close(self, engine: AsyncEngine) -> None:
        """Dispose of the engine and its connection pool."""
        ...
