"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from erdos.config import load_config, DumpProfile, DumpConfig
"""

from erdos.config.loader import load_config
from erdos.config.models import DumpConfig, DumpProfile, DumpSettings

__all__ = ["load_config", "DumpConfig", "DumpProfile", "DumpSettings"]
