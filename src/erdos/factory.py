"""Driver factory and profile resolution.

Maps an engine identifier to its ``DatabaseDriver`` and resolves the
connection string for a dump from either an explicit ``--conn`` value or
a named profile in erdos.toml.

Usage:
    from erdos.factory import get_driver, resolve_connection

    config = load_config()
    engine, url = resolve_connection(config, profile_name="local")
    driver = get_driver(engine, batch_size=100)
"""

import os
from urllib.parse import quote

from erdos.adapters.base import DatabaseDriver
from erdos.adapters.mssql import MSSQLDriver
from erdos.adapters.unsupported import UnsupportedDriver
from erdos.config.models import DumpConfig, DumpProfile
from erdos.errors import InvalidInputError, ProfileNotFoundError, UnsupportedDatabaseError

PROFILE_ENV_VAR = "ERDOS_PROFILE"
PASSWORD_PLACEHOLDER = "[YOUR-PASSWORD]"
DEFAULT_ENGINE = "mssql"

_DRIVERS = {
    "mssql": MSSQLDriver,
}

# Recognized engines that have no dump implementation
UNSUPPORTED_ENGINES = ("postgres", "sqlite", "mysql")

_ALIASES = {
    "sqlserver": "mssql",
    "postgresql": "postgres",
}


# ============================================================================
# Drivers
# ============================================================================


def get_driver(engine: str = DEFAULT_ENGINE, **options) -> DatabaseDriver:
    """Create the driver for an engine identifier.

    Args:
        engine: Engine name, e.g. ``"mssql"``.
        **options: Forwarded to the driver constructor (batch size,
            timeouts, logger, progress callback).

    Returns:
        A ``DatabaseDriver``. Recognized but unimplemented engines return
        an ``UnsupportedDriver`` whose operations raise.

    Raises:
        UnsupportedDatabaseError: If the engine name is unknown.
    """
    name = engine.strip().lower()
    name = _ALIASES.get(name, name)

    if name in _DRIVERS:
        return _DRIVERS[name](**options)
    if name in UNSUPPORTED_ENGINES:
        return UnsupportedDriver(name)

    known = ", ".join([*_DRIVERS, *UNSUPPORTED_ENGINES])
    raise UnsupportedDatabaseError(f"unknown database engine '{engine}' (known: {known})")


# ============================================================================
# Profiles
# ============================================================================


def get_active_profile_name(explicit: str | None = None) -> str:
    """Get the profile name from an explicit value or the environment.

    Priority:
    1. ``explicit`` (the ``--profile`` option)
    2. ERDOS_PROFILE env var
    3. Raise ProfileNotFoundError

    Raises:
        ProfileNotFoundError: If no profile is selected.
    """
    if explicit:
        return explicit

    env_profile = os.environ.get(PROFILE_ENV_VAR)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "no database profile selected\n"
        f"Use --profile <name>, set {PROFILE_ENV_VAR}=<name>, or pass --conn <url>"
    )


def get_profile(config: DumpConfig, profile_name: str) -> DumpProfile:
    """Look up a profile by name.

    Raises:
        ProfileNotFoundError: If the profile is not in the config.
    """
    if profile_name not in config.profiles:
        available = ", ".join(config.profiles) or "(none)"
        raise ProfileNotFoundError(
            f"profile '{profile_name}' not found. Available: {available}"
        )
    return config.profiles[profile_name]


def resolve_url(profile: DumpProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and PASSWORD_PLACEHOLDER in url:
        url = url.replace(PASSWORD_PLACEHOLDER, quote(profile.db_password, safe=""))
    return url


def resolve_connection(
    config: DumpConfig | None,
    profile_name: str | None = None,
    connection_string: str | None = None,
    engine: str | None = None,
) -> tuple[str, str]:
    """Resolve the engine name and connection string for a dump.

    ``connection_string`` bypasses profiles entirely. ``engine`` overrides
    the profile's engine.

    Returns:
        ``(engine, connection_string)``

    Raises:
        ProfileNotFoundError: If no profile is selected or it is unknown.
        InvalidInputError: If a profile is needed but no config was loaded.
    """
    if connection_string:
        return engine or DEFAULT_ENGINE, connection_string

    name = get_active_profile_name(profile_name)
    if config is None:
        raise InvalidInputError(f"profile '{name}' requested but no config file was loaded")

    profile = get_profile(config, name)
    return engine or profile.engine, resolve_url(profile)
