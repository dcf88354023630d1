"""Utility modules for Lorekeeper.

- **errors** -- Domain-specific exception hierarchy rooted at LorekeeperError;
  every class carries the HTTP status the API answers with.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text** -- Title truncation, timestamp formatting and filename titles.
- **youtube** -- Video/playlist id extraction and watch/thumbnail links.
"""

from lorekeeper.utils.errors import LorekeeperError
from lorekeeper.utils.logging import configure_logging, get_logger
from lorekeeper.utils.text import format_timestamp, truncate_title

__all__ = [
    "LorekeeperError",
    "configure_logging",
    "format_timestamp",
    "get_logger",
    "truncate_title",
]
