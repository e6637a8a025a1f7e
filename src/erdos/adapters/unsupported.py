"""Placeholder drivers for engines without a dump implementation.

``UnsupportedDriver`` satisfies the ``DatabaseDriver`` protocol so the
factory can resolve every known engine name, but each operation raises
``UnsupportedDatabaseError`` naming the engine.
"""

from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncEngine

from erdos.errors import UnsupportedDatabaseError


class UnsupportedDriver:
    """Driver stub for a recognized but unimplemented engine.

    Example:
        driver = UnsupportedDriver("postgres")
        await driver.connect("postgresql://...")  # raises UnsupportedDatabaseError
    """

    def __init__(self, engine_name: str, **_options: object) -> None:
        self.engine_name = engine_name

    def _unsupported(self, operation: str) -> UnsupportedDatabaseError:
        return UnsupportedDatabaseError(
            f"{operation} is not supported for database engine '{self.engine_name}'"
        )

    async def connect(self, connection_string: str) -> AsyncEngine:
        raise self._unsupported("connect")

    async def dump_schema(self, engine: AsyncEngine, skip: Iterable[str] = ()) -> str:
        raise self._unsupported("schema dump")

    async def dump_data(
        self,
        engine: AsyncEngine,
        skip: Iterable[str] = (),
        skip_data: Iterable[str] = (),
    ) -> str:
        raise self._unsupported("data dump")

    async def dump_constraints(self, engine: AsyncEngine, skip: Iterable[str] = ()) -> str:
        raise self._unsupported("constraint dump")

    async def close(self, engine: AsyncEngine) -> None:
        raise self._unsupported("close")
