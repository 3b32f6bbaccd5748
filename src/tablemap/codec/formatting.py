# src/tablemap/codec/formatting.py
"""Canonical, locale-invariant field text for the CSV writer.

Every typed value has exactly one text form, independent of the process
locale, so files written anywhere read back identically anywhere.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from tablemap.contracts.context import DEFAULT_CONTEXT, CoercionContext
from tablemap.core.coercion import enum_text
from tablemap.core.temporal import flatten, format_datetime, format_duration
from tablemap.core.text import format_decimal, format_float, strip_control

_NEEDS_QUOTES = frozenset(',"\n')


def quote_text(text: str) -> str:
    """Trim free text and quote it if it holds a delimiter, quote, or newline.

    C0 control characters other than newline are dropped (the reader would
    discard them anyway). Embedded quotes are doubled.

    >>> quote_text(' say "hi", then leave ')
    '"say ""hi"", then leave"'
    """
    text = strip_control(text).strip()
    if not _NEEDS_QUOTES.isdisjoint(text):
        return '"' + text.replace('"', '""') + '"'
    return text


def format_field(item: Any, context: CoercionContext = DEFAULT_CONTEXT) -> str:
    """Render one field value. None and blank text render as ""."""
    if item is None:
        return ""
    if isinstance(item, str) and not isinstance(item, Enum):
        return quote_text(item)
    if isinstance(item, bool):
        return "True" if item else "False"
    if isinstance(item, Enum):
        return quote_text(enum_text(item))
    if isinstance(item, int):
        return str(int(item))
    if isinstance(item, float):
        return format_float(item)
    if isinstance(item, Decimal):
        return format_decimal(item)
    if isinstance(item, datetime):
        # Spreadsheets have no offset-aware type: flatten per the date mode
        return format_datetime(flatten(item, context.date_mode, context.local_tz))
    if isinstance(item, date):
        return format_datetime(item)
    if isinstance(item, timedelta):
        return format_duration(item)
    return quote_text(str(item))
