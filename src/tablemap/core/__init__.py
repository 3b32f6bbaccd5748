# src/tablemap/core/__init__.py
"""Core infrastructure: Coercion, Temporal encodings, Text helpers, Configuration, Logging."""

from tablemap.core.coercion import BOOL_WORDS, coerce, enum_text, resolve_target, zero_member, zero_value
from tablemap.core.config import (
    SPREADSHEET_MAX_ROWS,
    CodecSettings,
    CoercionSettings,
    LoggingSettings,
    TablemapSettings,
    load_settings,
)
from tablemap.core.logging import configure_logging, get_logger
from tablemap.core.text import ZERO_WIDTH_SPACE, append_marker, is_numeric_text, strip_marker

__all__ = [
    "BOOL_WORDS",
    "SPREADSHEET_MAX_ROWS",
    "ZERO_WIDTH_SPACE",
    "CodecSettings",
    "CoercionSettings",
    "LoggingSettings",
    "TablemapSettings",
    "append_marker",
    "coerce",
    "configure_logging",
    "enum_text",
    "get_logger",
    "is_numeric_text",
    "load_settings",
    "resolve_target",
    "strip_marker",
    "zero_member",
    "zero_value",
]
