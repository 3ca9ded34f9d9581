"""Shared utilities."""

from .timestamps import (
    add_milliseconds,
    ensure_utc,
    format_for_storage,
    parse_from_storage,
    utc_now,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "add_milliseconds",
    "format_for_storage",
    "parse_from_storage",
]
