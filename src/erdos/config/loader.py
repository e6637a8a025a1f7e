"""TOML configuration loading."""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from erdos.config.models import DumpConfig, DumpProfile, DumpSettings
from erdos.errors import ConfigNotFoundError, InvalidInputError

CONFIG_FILENAME = "erdos.toml"


def load_config(config_path: Path | str | None = None) -> DumpConfig:
    """Load profiles and dump settings from a TOML file.

    Args:
        config_path: Path to erdos.toml (default: ./erdos.toml)

    Returns:
        DumpConfig with all profiles and dump settings

    Raises:
        ConfigNotFoundError: If config file doesn't exist
        InvalidInputError: If the file is not valid TOML or a value is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigNotFoundError(
            f"config not found: {config_path}\n"
            f"Copy erdos.toml.example to {CONFIG_FILENAME} and configure your profiles."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise InvalidInputError(f"invalid TOML in {config_path}", e) from e

    try:
        profiles = {
            name: DumpProfile(**profile_data)
            for name, profile_data in data.get("profiles", {}).items()
        }
        settings = DumpSettings(**data.get("dump", {}))
    except ValidationError as e:
        raise InvalidInputError(f"invalid configuration in {config_path}", e) from e

    return DumpConfig(profiles=profiles, dump=settings)
