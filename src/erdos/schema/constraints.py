"""Primary/foreign key aggregation and ALTER TABLE rendering.

Catalog rows arrive one per key column, ordered by schema, table,
constraint name and ordinal position.  Rows of the same constraint are
folded into one composite definition; insertion-ordered dicts keep the
output in query order.

Usage:
    from erdos.schema.constraints import assemble_constraints

    sql = assemble_constraints(pk_rows, fk_rows)
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from erdos.errors import ConstraintDumpError
from erdos.naming import TableName, format_object_name, matches_table
from erdos.schema.assembler import BATCH_SEPARATOR


@dataclass
class PrimaryKeyInfo:
    """A primary key with its columns in ordinal order.

    Example:
        pk = PrimaryKeyInfo("dbo", "Orders", "PK_Orders", ["Id"])
        pk.to_sql()
        # 'ALTER TABLE [dbo].[Orders] ADD CONSTRAINT [PK_Orders] PRIMARY KEY ([Id]);'
    """

    schema: str
    table: str
    constraint_name: str
    columns: list[str] = field(default_factory=list)

    @property
    def table_name(self) -> TableName:
        return TableName.new(self.schema, self.table)

    def to_sql(self) -> str:
        """Generate the ALTER TABLE ... PRIMARY KEY statement."""
        columns = ", ".join(format_object_name(c) for c in self.columns)
        return (
            f"ALTER TABLE {format_object_name(self.schema, self.table)} "
            f"ADD CONSTRAINT {format_object_name(self.constraint_name)} "
            f"PRIMARY KEY ({columns});"
        )


@dataclass
class ForeignKeyInfo:
    """A foreign key with positionally aligned child/parent columns.

    ``child_columns[i]`` references ``parent_columns[i]``.
    """

    child_schema: str
    child_table: str
    constraint_name: str
    parent_schema: str
    parent_table: str
    update_rule: str
    delete_rule: str
    child_columns: list[str] = field(default_factory=list)
    parent_columns: list[str] = field(default_factory=list)

    @property
    def table_name(self) -> TableName:
        return TableName.new(self.child_schema, self.child_table)

    def to_sql(self) -> str:
        """Generate the ALTER TABLE ... FOREIGN KEY statement."""
        child_cols = ", ".join(format_object_name(c) for c in self.child_columns)
        parent_cols = ", ".join(format_object_name(c) for c in self.parent_columns)
        return (
            f"ALTER TABLE {format_object_name(self.child_schema, self.child_table)} "
            f"ADD CONSTRAINT {format_object_name(self.constraint_name)} "
            f"FOREIGN KEY ({child_cols}) "
            f"REFERENCES {format_object_name(self.parent_schema, self.parent_table)} "
            f"({parent_cols}) "
            f"ON UPDATE {self.update_rule} ON DELETE {self.delete_rule};"
        )


# ------------------------------------------------------------------
# Aggregation
# ------------------------------------------------------------------


def aggregate_primary_keys(rows: Iterable[Sequence]) -> list[PrimaryKeyInfo]:
    """Fold PK rows into one ``PrimaryKeyInfo`` per constraint.

    Args:
        rows: ``(schema, table, constraint_name, column, ordinal)`` tuples.
    """
    keys: dict[tuple[str, str, str], PrimaryKeyInfo] = {}
    for schema, table, constraint_name, column, _ordinal in rows:
        key = (schema, table, constraint_name)
        if key not in keys:
            keys[key] = PrimaryKeyInfo(schema, table, constraint_name)
        keys[key].columns.append(column)
    return list(keys.values())


def aggregate_foreign_keys(rows: Iterable[Sequence]) -> list[ForeignKeyInfo]:
    """Fold FK rows into one ``ForeignKeyInfo`` per constraint.

    Args:
        rows: ``(child_schema, child_table, constraint_name, parent_schema,
            parent_table, child_column, parent_column, update_rule,
            delete_rule, ordinal)`` tuples.

    Raises:
        ConstraintDumpError: If rows of one constraint disagree on the
            referenced table.
    """
    keys: dict[tuple[str, str, str], ForeignKeyInfo] = {}
    for (
        child_schema,
        child_table,
        constraint_name,
        parent_schema,
        parent_table,
        child_column,
        parent_column,
        update_rule,
        delete_rule,
        _ordinal,
    ) in rows:
        key = (child_schema, child_table, constraint_name)
        fk = keys.get(key)
        if fk is None:
            fk = keys[key] = ForeignKeyInfo(
                child_schema=child_schema,
                child_table=child_table,
                constraint_name=constraint_name,
                parent_schema=parent_schema,
                parent_table=parent_table,
                update_rule=update_rule,
                delete_rule=delete_rule,
            )
        elif (fk.parent_schema, fk.parent_table) != (parent_schema, parent_table):
            raise ConstraintDumpError(
                f"foreign key {constraint_name} on "
                f"{format_object_name(child_schema, child_table)} "
                f"references more than one table"
            )
        fk.child_columns.append(child_column)
        fk.parent_columns.append(parent_column)
    return list(keys.values())


# ------------------------------------------------------------------
# Rendering
# ------------------------------------------------------------------


def assemble_constraints(
    pk_rows: Iterable[Sequence],
    fk_rows: Iterable[Sequence],
    skip: Iterable[str] = (),
    logger: logging.Logger | None = None,
) -> str:
    """Render the constraints section: primary keys, then foreign keys.

    Args:
        pk_rows: Primary-key catalog rows.
        fk_rows: Foreign-key catalog rows.
        skip: Whole-table skip list; constraints on these tables are omitted.
        logger: Receives progress at DEBUG level.

    Returns:
        The constraints section, terminated by a batch separator.
    """
    logger = logger or logging.getLogger(__name__)
    skip = list(skip)

    primary_keys = [
        pk for pk in aggregate_primary_keys(pk_rows)
        if not matches_table(pk.table_name, skip)
    ]
    foreign_keys = [
        fk for fk in aggregate_foreign_keys(fk_rows)
        if not matches_table(fk.table_name, skip)
    ]

    lines = ["-- Constraints Dump", ""]

    for i, pk in enumerate(primary_keys, start=1):
        logger.debug("Dumping PKs (%d/%d) %s", i, len(primary_keys), pk.constraint_name)
        lines.append(pk.to_sql())
    lines.append("")

    for i, fk in enumerate(foreign_keys, start=1):
        logger.debug("Dumping FKs (%d/%d) %s", i, len(foreign_keys), fk.constraint_name)
        lines.append(fk.to_sql())
    lines.append("")

    lines.append(BATCH_SEPARATOR)
    return "\n".join(lines) + "\n\n"
