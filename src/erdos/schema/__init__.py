"""Catalog introspection, dependency ordering and DDL assembly.

Usage:
    >>> from erdos.schema import analyze_dependencies, sort_tables_by_dependencies
    >>> from erdos.schema import assemble_schema, assemble_constraints
"""

from erdos.schema.assembler import assemble_schema, build_create_table
from erdos.schema.constraints import ForeignKeyInfo, PrimaryKeyInfo, assemble_constraints
from erdos.schema.dependencies import (
    analyze_dependencies,
    remove_tables,
    sort_tables_by_dependencies,
    validate_skip_list,
)
from erdos.schema.introspector import SchemaIntrospector
from erdos.schema.models import ColumnDef, DependencyRow, DependencyTree, TableMapping

__all__ = [
    "ColumnDef",
    "DependencyRow",
    "DependencyTree",
    "TableMapping",
    "SchemaIntrospector",
    "analyze_dependencies",
    "sort_tables_by_dependencies",
    "validate_skip_list",
    "remove_tables",
    "assemble_schema",
    "build_create_table",
    "assemble_constraints",
    "PrimaryKeyInfo",
    "ForeignKeyInfo",
]
