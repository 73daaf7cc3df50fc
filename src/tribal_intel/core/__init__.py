"""
Tribal Intel Core Module

Shared infrastructure used by every service.
"""

from .async_client import FeedClient, FeedError
from .config import TribalSettings, get_settings, reset_settings
from .formatters import format_time_span, get_utc_timestamp
from .logging import get_logger
from .persistence import atomic_write_json, atomic_write_text, read_json

__all__ = [
    "FeedClient",
    "FeedError",
    "TribalSettings",
    "atomic_write_json",
    "atomic_write_text",
    "format_time_span",
    "get_logger",
    "get_settings",
    "get_utc_timestamp",
    "read_json",
    "reset_settings",
]
