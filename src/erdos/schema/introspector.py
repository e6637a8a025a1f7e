"""SQL Server catalog introspection.

This module queries the live database to extract:
- Base tables (schema + name)
- Column metadata (type, length, precision, nullability, identity, computed)
- Referential constraints (child table -> parent table)
- Primary-key and foreign-key columns

Queries run on an SQLAlchemy ``AsyncConnection``; any driver error is
re-raised as ``DBQueryError`` naming the query stage.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from erdos.errors import DBQueryError
from erdos.naming import TableName
from erdos.schema.models import ColumnDef, DependencyRow, TableMapping

TABLE_LIST_QUERY = """
    SELECT s.name AS [schema], t.name AS [table]
    FROM sys.tables t
    JOIN sys.schemas s ON t.schema_id = s.schema_id
    WHERE t.type = 'U'
      AND t.is_ms_shipped = 0
    ORDER BY s.name, t.name
"""

TABLE_MAPPINGS_QUERY = """
    SELECT
        s.name AS [schema],
        t.name AS [table],
        c.name AS [column],
        c.column_id AS [column_position],
        tp.name AS [data_type],
        c.max_length AS [max_length],
        c.precision,
        c.scale,
        c.is_nullable AS [is_nullable],
        c.is_identity AS [is_identity],
        c.is_computed AS [is_computed]
    FROM sys.tables t
    JOIN sys.schemas s ON t.schema_id = s.schema_id
    JOIN sys.columns c ON t.object_id = c.object_id
    JOIN sys.types tp ON c.user_type_id = tp.user_type_id
    WHERE t.type = 'U'
      AND t.is_ms_shipped = 0
    ORDER BY s.name, t.name, c.column_id
"""

DEPENDENCIES_QUERY = """
    SELECT
        fk.TABLE_SCHEMA AS ChildSchema,
        fk.TABLE_NAME AS ChildTable,
        pk.TABLE_SCHEMA AS ParentSchema,
        pk.TABLE_NAME AS ParentTable
    FROM INFORMATION_SCHEMA.REFERENTIAL_CONSTRAINTS rc
    INNER JOIN INFORMATION_SCHEMA.TABLE_CONSTRAINTS fk
        ON rc.CONSTRAINT_NAME = fk.CONSTRAINT_NAME
        AND rc.CONSTRAINT_SCHEMA = fk.CONSTRAINT_SCHEMA
    INNER JOIN INFORMATION_SCHEMA.TABLE_CONSTRAINTS pk
        ON rc.UNIQUE_CONSTRAINT_NAME = pk.CONSTRAINT_NAME
        AND rc.UNIQUE_CONSTRAINT_SCHEMA = pk.CONSTRAINT_SCHEMA
"""

PRIMARY_KEYS_QUERY = """
    SELECT
        tc.TABLE_SCHEMA,
        tc.TABLE_NAME,
        tc.CONSTRAINT_NAME,
        kcu.COLUMN_NAME,
        kcu.ORDINAL_POSITION
    FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS AS tc
    JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE AS kcu
        ON tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
        AND tc.CONSTRAINT_SCHEMA = kcu.CONSTRAINT_SCHEMA
    WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
    ORDER BY tc.TABLE_SCHEMA, tc.TABLE_NAME, tc.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
"""

FOREIGN_KEYS_QUERY = """
    SELECT
        fk.TABLE_SCHEMA AS ChildSchema,
        fk.TABLE_NAME AS ChildTable,
        fk.CONSTRAINT_NAME AS ForeignKey,
        pk.TABLE_SCHEMA AS ParentSchema,
        pk.TABLE_NAME AS ParentTable,
        fkc.COLUMN_NAME AS ChildColumn,
        pkc.COLUMN_NAME AS ParentColumn,
        rc.UPDATE_RULE,
        rc.DELETE_RULE,
        fkc.ORDINAL_POSITION
    FROM INFORMATION_SCHEMA.REFERENTIAL_CONSTRAINTS rc
    JOIN INFORMATION_SCHEMA.TABLE_CONSTRAINTS fk
        ON rc.CONSTRAINT_NAME = fk.CONSTRAINT_NAME
        AND rc.CONSTRAINT_SCHEMA = fk.CONSTRAINT_SCHEMA
    JOIN INFORMATION_SCHEMA.TABLE_CONSTRAINTS pk
        ON rc.UNIQUE_CONSTRAINT_NAME = pk.CONSTRAINT_NAME
        AND rc.UNIQUE_CONSTRAINT_SCHEMA = pk.CONSTRAINT_SCHEMA
    JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE fkc
        ON fk.CONSTRAINT_NAME = fkc.CONSTRAINT_NAME
        AND fk.CONSTRAINT_SCHEMA = fkc.CONSTRAINT_SCHEMA
    JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE pkc
        ON pk.CONSTRAINT_NAME = pkc.CONSTRAINT_NAME
        AND pk.CONSTRAINT_SCHEMA = pkc.CONSTRAINT_SCHEMA
        AND fkc.ORDINAL_POSITION = pkc.ORDINAL_POSITION
    ORDER BY fk.TABLE_SCHEMA, fk.TABLE_NAME, fk.CONSTRAINT_NAME, fkc.ORDINAL_POSITION
"""


class SchemaIntrospector:
    """Introspects SQL Server catalog views.

    Works on an already-open async connection; the caller owns its
    lifetime.

    Usage:
        async with engine.connect() as conn:
            introspector = SchemaIntrospector(conn)
            tables = await introspector.get_tables()
            mappings = await introspector.get_table_mappings()
    """

    def __init__(self, conn: AsyncConnection):
        """Initialize with an open connection.

        Args:
            conn: SQLAlchemy async connection to the source database
        """
        self._conn = conn

    async def _fetch(self, query: str, stage: str) -> list[Any]:
        """Run a catalog query and return all rows."""
        try:
            result = await self._conn.execute(text(query))
            return list(result.fetchall())
        except SQLAlchemyError as e:
            raise DBQueryError(f"failed to {stage}", e) from e

    async def get_tables(self) -> list[TableName]:
        """Get all user base tables."""
        rows = await self._fetch(TABLE_LIST_QUERY, "query table list")
        return [TableName.new(schema, table) for schema, table in rows]

    async def get_table_mappings(self) -> TableMapping:
        """Get column metadata for every table, ordered by ordinal position."""
        rows = await self._fetch(TABLE_MAPPINGS_QUERY, "fetch table structures")

        mappings: TableMapping = {}
        for row in rows:
            (
                schema,
                table,
                column,
                position,
                data_type,
                max_length,
                precision,
                scale,
                is_nullable,
                is_identity,
                is_computed,
            ) = row
            col = ColumnDef(
                schema=schema,
                table=table,
                name=column,
                position=position,
                data_type=data_type,
                max_length=max_length,
                precision=precision,
                scale=scale,
                is_nullable=bool(is_nullable),
                is_identity=bool(is_identity),
                is_computed=bool(is_computed),
            )
            mappings.setdefault(col.table_name, []).append(col)

        for columns in mappings.values():
            columns.sort(key=lambda c: c.position)

        return mappings

    async def get_dependency_rows(self) -> list[DependencyRow]:
        """Get one row per FK relationship (child table -> parent table)."""
        rows = await self._fetch(DEPENDENCIES_QUERY, "fetch database dependencies")
        return [DependencyRow(*row) for row in rows]

    async def get_primary_key_rows(self) -> list[tuple]:
        """Get one row per primary-key column."""
        rows = await self._fetch(PRIMARY_KEYS_QUERY, "fetch primary key constraints")
        return [tuple(row) for row in rows]

    async def get_foreign_key_rows(self) -> list[tuple]:
        """Get one row per foreign-key column pair."""
        rows = await self._fetch(FOREIGN_KEYS_QUERY, "fetch foreign key constraints")
        return [tuple(row) for row in rows]
