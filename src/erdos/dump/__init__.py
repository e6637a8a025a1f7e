"""Data dump engine and script assembly.

Usage:
    >>> from erdos.dump import DataDumper, build_dump_script, write_dump_script
"""

from erdos.dump.data import DataDumper, dump_table_data, format_value
from erdos.dump.script import build_dump_script, write_dump_script

__all__ = [
    "DataDumper",
    "dump_table_data",
    "format_value",
    "build_dump_script",
    "write_dump_script",
]
