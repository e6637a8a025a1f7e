"""Metadata models for schema extraction.

This module contains the per-run metadata structures:
- ColumnDef: one row of column metadata (immutable)
- TableMapping: table -> ordered column definitions
- DependencyTree: child table -> parent tables it references
- DependencyRow: raw referential-constraint row from the catalog
"""

from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from erdos.naming import TableName


# ============================================================================
# Column Metadata
# ============================================================================


class ColumnDef(BaseModel):
    """Schema for a table column as read from the catalog.

    ``max_length`` is in storage units (bytes); ``-1`` means MAX.

    Example:
        >>> col = ColumnDef(schema="dbo", table="Orders", name="Id",
        ...                 position=1, data_type="int", is_nullable=False)
        >>> col.table_name
        TableName(value='[dbo].[Orders]')
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # "schema" shadows BaseModel.schema(), so the field is aliased
    schema_name: str = Field(default="", alias="schema")
    table: str
    name: str
    position: int
    data_type: str
    max_length: int = 0
    precision: int = 0
    scale: int = 0
    is_nullable: bool = True
    is_identity: bool = False
    is_computed: bool = False

    @property
    def table_name(self) -> TableName:
        """Canonical key of the owning table."""
        return TableName.new(self.schema_name, self.table)


TableMapping = dict[TableName, list[ColumnDef]]
"""Table -> its columns ordered by ordinal position."""

DependencyTree = dict[TableName, list[TableName]]
"""Child table -> parent tables it references through foreign keys."""


class DependencyRow(NamedTuple):
    """One referential constraint; the child side may be NULL in the catalog."""

    child_schema: str | None
    child_table: str | None
    parent_schema: str
    parent_table: str
