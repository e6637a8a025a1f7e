"""Dump script assembly and output.

Runs a driver through connect, the requested sections and close, and
joins the sections into one replayable T-SQL script.  The output file is
written only once every section has succeeded.

Usage:
    from erdos.dump.script import build_dump_script, write_dump_script

    driver = get_driver("mssql")
    script = await build_dump_script(driver, url, include="all", skip_data=["ApiLogs"])
    write_dump_script("dump.sql", script)
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from erdos import __version__
from erdos.adapters.base import DatabaseDriver
from erdos.errors import FileWriteError, InvalidInputError

SECTIONS = ("schema", "data", "constraints")
INCLUDE_OPTIONS = ("all", *SECTIONS)


def sections_for(include: str) -> tuple[str, ...]:
    """Expand an ``--include`` value to the sections it selects.

    Raises:
        InvalidInputError: If the value is not one of ``INCLUDE_OPTIONS``.
    """
    if include == "all":
        return SECTIONS
    if include in SECTIONS:
        return (include,)
    raise InvalidInputError(
        f"invalid include option '{include}' (options: {', '.join(INCLUDE_OPTIONS)})"
    )


def script_header(engine_name: str, created_at: datetime | None = None) -> str:
    """Comment block placed at the top of every dump script."""
    created_at = created_at or datetime.now()
    return (
        f"-- erdos {__version__} dump ({engine_name})\n"
        f"-- Created at {created_at.strftime('%Y-%m-%d %H:%M:%S')}\n\n"
    )


async def build_dump_script(
    driver: DatabaseDriver,
    connection_string: str,
    include: str = "all",
    skip: Iterable[str] = (),
    skip_data: Iterable[str] = (),
    logger: logging.Logger | None = None,
) -> str:
    """Connect, dump the selected sections in script order, and close.

    Args:
        driver: Driver for the source engine.
        connection_string: Passed to ``driver.connect``.
        include: ``all``, ``schema``, ``data`` or ``constraints``.
        skip: Tables left out of every section.
        skip_data: Tables whose rows are not dumped.
        logger: Receives section progress at INFO level.

    Returns:
        Header followed by the schema, data and constraints sections.

    Raises:
        ErdosError: Any driver failure; the engine is always closed.
    """
    logger = logger or logging.getLogger(__name__)
    selected = sections_for(include)
    skip = [name.strip() for name in skip if name.strip()]
    skip_data = [name.strip() for name in skip_data if name.strip()]

    engine = await driver.connect(connection_string)
    try:
        parts = [script_header(driver.engine_name)]
        if "schema" in selected:
            logger.info("Dumping schema")
            parts.append(await driver.dump_schema(engine, skip=skip))
        if "data" in selected:
            logger.info("Dumping data")
            parts.append(await driver.dump_data(engine, skip=skip, skip_data=skip_data))
        if "constraints" in selected:
            logger.info("Dumping constraints")
            parts.append(await driver.dump_constraints(engine, skip=skip))
    finally:
        await driver.close(engine)

    return "".join(parts)


def write_dump_script(path: str | Path, script: str) -> Path:
    """Write the script to ``path``, creating parent directories.

    Raises:
        FileWriteError: If the file cannot be written.
    """
    output_path = Path(path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(script)
    except OSError as e:
        raise FileWriteError(f"failed to write dump script to {output_path}", e) from e
    return output_path
