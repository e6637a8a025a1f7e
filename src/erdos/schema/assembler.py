"""CREATE SCHEMA / CREATE TABLE statement assembly.

Renders tables (already in dependency order) into T-SQL, adding a
conditional ``CREATE SCHEMA`` guard the first time a non-built-in schema
is seen.
"""

import logging
from collections.abc import Sequence

from erdos.errors import SchemaDumpError
from erdos.naming import TableName, quote_identifier
from erdos.schema.models import ColumnDef, TableMapping

BATCH_SEPARATOR = "GO"
INDENT = "    "

BUILTIN_SCHEMAS = ("dbo", "sys", "INFORMATION_SCHEMA", "guest")

CHARACTER_TYPES = {"char", "varchar", "nchar", "nvarchar"}
UNICODE_CHARACTER_TYPES = {"nchar", "nvarchar"}
DECIMAL_TYPES = {"decimal", "numeric"}


def format_column_type(column: ColumnDef) -> str:
    """Render the data type with its length or precision suffix.

    ``nchar``/``nvarchar`` lengths are stored in bytes by the catalog and
    are halved to characters.

    Examples:
        >>> format_column_type(ColumnDef(table="t", name="c", position=1,
        ...                              data_type="varchar", max_length=-1))
        'varchar(max)'
        >>> format_column_type(ColumnDef(table="t", name="c", position=1,
        ...                              data_type="decimal", precision=10, scale=2))
        'decimal(10,2)'
    """
    data_type = column.data_type.lower()

    if data_type in CHARACTER_TYPES:
        if column.max_length > 0:
            length = column.max_length
            if data_type in UNICODE_CHARACTER_TYPES:
                length //= 2
            return f"{column.data_type}({length})"
        return f"{column.data_type}(max)"

    if data_type in DECIMAL_TYPES:
        return f"{column.data_type}({column.precision},{column.scale})"

    return column.data_type


def build_column_definition(column: ColumnDef) -> str:
    """Render one column of a CREATE TABLE body."""
    definition = f"{quote_identifier(column.name)} {format_column_type(column)}"
    if not column.is_nullable:
        definition += " NOT NULL"
    if column.is_identity:
        definition += " IDENTITY(1,1)"
    return definition


def build_create_table(table: TableName, columns: Sequence[ColumnDef]) -> str:
    """Render a full CREATE TABLE statement.

    Raises:
        SchemaDumpError: If the table has no column metadata.
    """
    if not columns:
        raise SchemaDumpError(f"no column metadata found for table {table}")

    lines = [f"{INDENT}{build_column_definition(col)}" for col in columns]
    body = ",\n".join(lines)
    return f"CREATE TABLE {table} (\n{body}\n);\n\n"


def build_create_schema(schema: str) -> str:
    """Render a guarded CREATE SCHEMA batch.

    CREATE SCHEMA must be alone in its batch, so it runs through EXEC.
    """
    literal = schema.replace("'", "''")
    statement = f"CREATE SCHEMA {quote_identifier(schema)}".replace("'", "''")
    return (
        f"IF NOT EXISTS (SELECT 1 FROM sys.schemas WHERE name = N'{literal}')\n"
        f"{INDENT}EXEC('{statement}');\n"
        f"{BATCH_SEPARATOR}\n\n"
    )


def assemble_schema(
    tables: Sequence[TableName],
    mappings: TableMapping,
    logger: logging.Logger | None = None,
) -> str:
    """Render the schema section for tables in dependency order.

    Args:
        tables: Tables sorted parents-first.
        mappings: Column metadata for every table.
        logger: Receives per-table progress at DEBUG level.

    Returns:
        The schema section, terminated by a batch separator.
    """
    logger = logger or logging.getLogger(__name__)

    parts = ["-- Schema Dump\n\n"]
    created_schemas = set(BUILTIN_SCHEMAS)

    for i, table in enumerate(tables, start=1):
        logger.debug("Dumping schemas (%d/%d) %s", i, len(tables), table)

        schema, _ = table.get_parts()
        if schema not in created_schemas:
            parts.append(build_create_schema(schema))
            created_schemas.add(schema)

        parts.append(build_create_table(table, mappings.get(table, [])))

    parts.append(f"{BATCH_SEPARATOR}\n\n")
    return "".join(parts)
