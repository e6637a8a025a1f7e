"""Pydantic models for erdos.toml configuration."""

from typing import Literal

from pydantic import BaseModel, Field

from erdos.dump.data import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_TABLE_TIMEOUT,
)

IncludeOption = Literal["all", "schema", "data", "constraints"]


class DumpProfile(BaseModel):
    """Database connection profile from erdos.toml."""

    url: str
    engine: str = "mssql"
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class DumpSettings(BaseModel):
    """Defaults for ``erdos dump``, overridable from the command line."""

    output: str = "dump.sql"
    include: IncludeOption = "all"
    skip: list[str] = Field(default_factory=list)
    skip_data: list[str] = Field(default_factory=list)
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0)
    table_timeout: float = Field(default=DEFAULT_TABLE_TIMEOUT, gt=0)
    max_concurrency: int = Field(default=DEFAULT_MAX_CONCURRENCY, gt=0)


class DumpConfig(BaseModel):
    """Complete configuration from erdos.toml."""

    profiles: dict[str, DumpProfile] = Field(default_factory=dict)
    dump: DumpSettings = Field(default_factory=DumpSettings)
