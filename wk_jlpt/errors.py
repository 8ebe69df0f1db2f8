"""Error types raised before any request is sent."""

from __future__ import annotations


class ConfigError(ValueError):
    """Missing credential or an invalid command-line value."""
