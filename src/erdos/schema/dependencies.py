"""FK dependency analysis and topological ordering of tables.

Pure logic -- no I/O.  Builds a ``DependencyTree`` (child -> parents)
from referential-constraint rows and orders tables so that every parent
precedes the tables that reference it.

Usage:
    from erdos.schema.dependencies import (
        analyze_dependencies,
        sort_tables_by_dependencies,
    )

    deps = analyze_dependencies(dependency_rows, all_tables)
    ordered = sort_tables_by_dependencies(deps)
"""

import heapq
from collections.abc import Iterable

from erdos.errors import DependencyCycleError, MigrateProcessError
from erdos.naming import TableName, matches_table
from erdos.schema.models import DependencyRow, DependencyTree


def analyze_dependencies(
    rows: Iterable[DependencyRow | tuple],
    tables: Iterable[TableName],
) -> DependencyTree:
    """Build the dependency graph from referential-constraint rows.

    Args:
        rows: ``(child_schema, child_table, parent_schema, parent_table)``
            tuples, one per FK relationship.  A ``None`` child side is
            treated as an empty name and contributes no edge.
        tables: Every base table in the database.  Tables without any FK
            are added with an empty dependency list.

    Returns:
        Mapping of every table to the distinct parents it references.
        Self-references are not recorded.

    Example:
        >>> deps = analyze_dependencies(
        ...     [("dbo", "Orders", "dbo", "Customers")],
        ...     [TableName.new("dbo", "Audit")],
        ... )
        >>> [str(t) for t in deps[TableName.new("dbo", "Orders")]]
        ['[dbo].[Customers]']
    """
    dependencies: DependencyTree = {}

    for child_schema, child_table, parent_schema, parent_table in rows:
        child = TableName.new(child_schema or "", child_table or "")
        parent = TableName.new(parent_schema, parent_table)

        if not child.is_empty() and child != parent:
            parents = dependencies.setdefault(child, [])
            if parent not in parents:
                parents.append(parent)

        # Referenced tables must be visible to the sorter even without FKs
        dependencies.setdefault(parent, [])

    for table in tables:
        dependencies.setdefault(table, [])

    return dependencies


def sort_tables_by_dependencies(dependencies: DependencyTree) -> list[TableName]:
    """Topological sort of tables (Kahn's algorithm).

    Returns tables in forward order: parent tables first.  Among tables
    that are ready at the same time, the lexicographically smallest
    canonical name is taken first so the order is reproducible.

    Args:
        dependencies: Child -> parents graph from ``analyze_dependencies``.
            Not modified.

    Returns:
        Every table exactly once, parents before children.

    Raises:
        DependencyCycleError: If some tables can never become ready (a
            cycle, or a parent that is not a key of the graph).
    """
    degree: dict[TableName, int] = {}
    dependents: dict[TableName, list[TableName]] = {}

    for table, parents in dependencies.items():
        distinct = set(parents)
        degree[table] = len(distinct)
        for parent in distinct:
            dependents.setdefault(parent, []).append(table)

    ready = [table for table, deg in degree.items() if deg == 0]
    heapq.heapify(ready)

    ordered: list[TableName] = []
    while ready:
        table = heapq.heappop(ready)
        ordered.append(table)

        for child in dependents.get(table, []):
            degree[child] -= 1
            if degree[child] == 0:
                heapq.heappush(ready, child)

    if len(ordered) != len(dependencies):
        unresolved = sorted(str(t) for t, deg in degree.items() if deg > 0)
        raise DependencyCycleError(
            "cyclic dependency or incomplete dependency graph detected: "
            + ", ".join(unresolved),
            unresolved=unresolved,
        )

    return ordered


def validate_skip_list(dependencies: DependencyTree, skip: Iterable[str]) -> None:
    """Refuse to skip a table that a kept table still references.

    Raises:
        MigrateProcessError: If a skipped table is the parent of a table
            that is not skipped.
    """
    skip = list(skip)
    for table, parents in dependencies.items():
        if matches_table(table, skip):
            continue
        for parent in parents:
            if matches_table(parent, skip):
                raise MigrateProcessError(
                    f"cannot skip table {parent} because it is referenced by table {table}"
                )


def remove_tables(dependencies: DependencyTree, skip: Iterable[str]) -> DependencyTree:
    """Return a copy of the graph without the skipped tables."""
    skip = list(skip)
    return {
        table: [p for p in parents if not matches_table(p, skip)]
        for table, parents in dependencies.items()
        if not matches_table(table, skip)
    }
