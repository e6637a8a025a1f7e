"""SQL Server object naming.

``TableName`` is the universal table key: schema and table combined into
one canonical ``[schema].[table]`` string.  Equality, hashing and ordering
all use that string.

Usage:
    from erdos.naming import TableName, format_object_name

    table = TableName.new("", "Orders")
    str(table)              # '[dbo].[Orders]'
    table.get_parts()       # ('dbo', 'Orders')
    format_object_name("sales", "Orders", "Id")  # '[sales].[Orders].[Id]'
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

DEFAULT_SCHEMA = "dbo"

_PART = r"((?:[^\]]|\]\])*)"
_CANONICAL = re.compile(rf"^\[{_PART}\]\.\[{_PART}\]$")


def quote_identifier(name: str) -> str:
    """Wrap a single identifier in brackets, escaping ``]`` as ``]]``."""
    return "[" + name.replace("]", "]]") + "]"


def format_object_name(*parts: str) -> str:
    """Bracket every part and join them with ``.``.

    Used for tables, columns and constraint names so quoting is uniform.

    Example:
        >>> format_object_name("dbo", "Orders")
        '[dbo].[Orders]'
    """
    return ".".join(quote_identifier(part) for part in parts)


@dataclass(frozen=True, order=True)
class TableName:
    """Canonical ``[schema].[table]`` identifier."""

    value: str

    @classmethod
    def new(cls, schema: str | None, table: str | None) -> "TableName":
        """Build a table name, substituting ``dbo`` for an empty schema."""
        if not schema:
            schema = DEFAULT_SCHEMA
        return cls(format_object_name(schema, table or ""))

    def get_parts(self) -> tuple[str, str]:
        """Return ``(schema, table)``, or ``("", "")`` if the value is not canonical."""
        match = _CANONICAL.match(self.value)
        if not match:
            return "", ""
        return match.group(1).replace("]]", "]"), match.group(2).replace("]]", "]")

    def is_empty(self) -> bool:
        """True when the table part is blank."""
        _, table = self.get_parts()
        return table.strip() == ""

    def __str__(self) -> str:
        return self.value


def matches_table(table: TableName, names: Iterable[str]) -> bool:
    """Check whether a caller-supplied name list refers to ``table``.

    Names may be bare (``Orders``), dotted (``sales.Orders``) or canonical
    (``[sales].[Orders]``).
    """
    schema, bare = table.get_parts()
    candidates = {bare, f"{schema}.{bare}", table.value}
    return any(name.strip() in candidates for name in names)
