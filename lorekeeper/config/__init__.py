"""Configuration module: exports Settings and load_config."""

from lorekeeper.config.loader import load_config
from lorekeeper.config.settings import Settings

__all__ = ["Settings", "load_config"]
