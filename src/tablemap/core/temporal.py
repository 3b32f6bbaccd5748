# src/tablemap/core/temporal.py
"""Date, time and duration encodings used by coercion and the CSV codec.

Spreadsheet engines have no native date type, so dates travel in several
numeric disguises. All of them are supported in both directions:

- Serial day: float days since 1899-12-30 (the spreadsheet epoch). Negative
  serials keep a positive time-of-day fraction, as spreadsheets do.
- Epoch seconds: whole seconds since 1970-01-01.
- Ticks: 100-nanosecond intervals since 0001-01-01.
- Numeric date text: ``yyyyMMdd[hh[mm[ss[fff]]]]``, trailing parts optional.

Every function here works on naive datetimes. Offset handling (flattening
aware values, attaching offsets to naive ones) goes through flatten() and
attach_offset(), which take the DateInterpretation explicitly.

Functions raise ValueError or OverflowError on out-of-range input; the
coercion engine turns those into zero values.
"""

import calendar
import math
import re
from datetime import date, datetime, timedelta, timezone, tzinfo

from tablemap.contracts.enums import DateInterpretation

SERIAL_EPOCH = datetime(1899, 12, 30)
UNIX_EPOCH = datetime(1970, 1, 1)
TICKS_EPOCH = datetime(1, 1, 1)

TICKS_PER_MICROSECOND = 10
TICKS_PER_SECOND = 10_000_000
MS_PER_DAY = 86_400_000

# Valid serial range of the spreadsheet date system (0100-01-01 .. 9999-12-31)
_SERIAL_MIN = -657435.0
_SERIAL_MAX = 2958466.0

_NUMERIC_DATE_YEARS = range(1900, 3001)

_DURATION_PATTERN = re.compile(
    r"^(?P<sign>-)?(?:(?P<days>\d+)\.)?(?P<hours>\d{1,2}):(?P<minutes>\d{1,2})"
    r"(?::(?P<seconds>\d{1,2})(?:\.(?P<fraction>\d{1,7}))?)?$"
)
_DURATION_DAYS_PATTERN = re.compile(r"^(?P<sign>-)?(?P<days>\d+)$")

# Tried in order after ISO-8601; en-US month-first forms win over day-first.
_TEXT_DATE_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y %I:%M:%S.%f %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %H:%M:%S.%f",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%d %b %Y %H:%M:%S",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y %I:%M:%S %p",
    "%b %d, %Y",
    "%B %d, %Y",
    "%A, %B %d, %Y",
)


# =============================================================================
# Serial day numbers
# =============================================================================


def serial_to_datetime(serial: float) -> datetime:
    """Convert a spreadsheet serial day number to a naive datetime (ms precision)."""
    if math.isnan(serial) or not (_SERIAL_MIN < serial < _SERIAL_MAX):
        raise ValueError(f"serial day {serial!r} is outside the spreadsheet date range")
    millis = int(serial * MS_PER_DAY + (0.5 if serial >= 0 else -0.5))
    if millis < 0:
        # Negative serials: the integer part counts back, the fraction counts forward
        millis -= _c_remainder(millis, MS_PER_DAY) * 2
    return SERIAL_EPOCH + timedelta(milliseconds=millis)


def datetime_to_serial(value: datetime) -> float:
    """Convert a naive datetime to a spreadsheet serial day number."""
    millis = (value - SERIAL_EPOCH) // timedelta(milliseconds=1)
    if millis < 0:
        fraction = _c_remainder(millis, MS_PER_DAY)
        if fraction != 0:
            millis -= (MS_PER_DAY + fraction) * 2
    return millis / MS_PER_DAY


def _c_remainder(value: int, divisor: int) -> int:
    """Remainder with the sign of the dividend (truncating division)."""
    remainder = abs(value) % divisor
    return -remainder if value < 0 else remainder


# =============================================================================
# Epoch seconds and ticks
# =============================================================================


def epoch_seconds_to_datetime(seconds: int) -> datetime:
    return UNIX_EPOCH + timedelta(seconds=seconds)


def datetime_to_epoch_seconds(value: datetime) -> int:
    """Whole seconds since 1970-01-01, truncated toward zero."""
    delta = value - UNIX_EPOCH
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    return -(-micros // 1_000_000) if micros < 0 else micros // 1_000_000


def ticks_to_datetime(ticks: int) -> datetime:
    if ticks < 0:
        raise ValueError(f"tick count {ticks} is negative")
    return TICKS_EPOCH + timedelta(microseconds=ticks // TICKS_PER_MICROSECOND)


def datetime_to_ticks(value: datetime) -> int:
    return timedelta_to_ticks(value - TICKS_EPOCH)


def ticks_to_timedelta(ticks: int) -> timedelta:
    micros = abs(ticks) // TICKS_PER_MICROSECOND
    return timedelta(microseconds=-micros if ticks < 0 else micros)


def timedelta_to_ticks(value: timedelta) -> int:
    return ((value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds) * TICKS_PER_MICROSECOND


def timedelta_to_days(value: timedelta) -> float:
    return value / timedelta(days=1)


def days_to_timedelta(days: float) -> timedelta:
    """Fractional days to a duration, rounded to the millisecond."""
    if not math.isfinite(days):
        raise ValueError(f"day count {days!r} is not finite")
    return timedelta(milliseconds=round(days * MS_PER_DAY))


# =============================================================================
# Text parsing
# =============================================================================


def parse_numeric_date(text: str) -> datetime | None:
    """Parse ``yyyyMMdd[hh[mm[ss[fff...]]]]`` digit strings.

    Trailing components may be omitted. The fraction is padded or truncated
    to milliseconds. Years outside 1900-3000 and impossible month/day
    combinations are rejected.

    >>> parse_numeric_date("2020072513253055")
    datetime.datetime(2020, 7, 25, 13, 25, 30, 550000)
    """
    if len(text) < 8 or not text.isascii() or not text.isdigit():
        return None
    year, month, day = int(text[0:4]), int(text[4:6]), int(text[6:8])
    hour = int(text[8:10]) if len(text) >= 10 else 0
    minute = int(text[10:12]) if len(text) >= 12 else 0
    second = int(text[12:14]) if len(text) >= 14 else 0
    millisecond = int(text[14:].ljust(3, "0")[:3]) if len(text) >= 15 else 0
    if year not in _NUMERIC_DATE_YEARS or not 1 <= month <= 12:
        return None
    if not 1 <= day <= calendar.monthrange(year, month)[1]:
        return None
    try:
        return datetime(year, month, day, hour, minute, second, millisecond * 1000)
    except ValueError:
        return None


def parse_datetime_text(text: str) -> datetime | None:
    """Parse date text: numeric form, then ISO-8601, then invariant/en-US patterns.

    Returns an aware datetime only when the text carries an offset.
    """
    s = text.strip()
    if not s:
        return None
    numeric = parse_numeric_date(s)
    if numeric is not None:
        return numeric
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        pass
    for fmt in _TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


def parse_duration_text(text: str) -> timedelta | None:
    """Parse ``[-][d.]hh:mm[:ss[.fffffff]]`` or a bare day count.

    Whitespace, commas and the parentheses the CSV writer wraps durations in
    are ignored at both ends.
    """
    s = text.strip(" \t\r\n,()")
    match = _DURATION_DAYS_PATTERN.match(s)
    if match is not None:
        delta = timedelta(days=int(match["days"]))
        return -delta if match["sign"] else delta
    match = _DURATION_PATTERN.match(s)
    if match is None:
        return None
    hours, minutes = int(match["hours"]), int(match["minutes"])
    seconds = int(match["seconds"] or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        return None
    fraction = match["fraction"] or ""
    ticks = int(fraction.ljust(7, "0")) if fraction else 0
    delta = timedelta(
        days=int(match["days"] or 0),
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        microseconds=ticks // TICKS_PER_MICROSECOND,
    )
    return -delta if match["sign"] else delta


# =============================================================================
# Canonical text
# =============================================================================


def format_datetime(value: datetime | date) -> str:
    """Coarsest exact ``yyyy-MM-dd[ HH:mm[:ss[.f|.ff|.fff]]]`` form.

    No 'T' separator and at most millisecond precision, which spreadsheet
    engines parse as a date in any culture.
    """
    if not isinstance(value, datetime):
        return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
    ms = value.microsecond // 1000
    day = f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
    if value.hour == 0 and value.minute == 0 and value.second == 0 and ms == 0:
        return day
    clock = f"{day} {value.hour:02d}:{value.minute:02d}"
    if value.second == 0 and ms == 0:
        return clock
    clock = f"{clock}:{value.second:02d}"
    if ms == 0:
        return clock
    if ms % 100 == 0:
        return f"{clock}.{ms // 100}"
    if ms % 10 == 0:
        return f"{clock}.{ms // 10:02d}"
    return f"{clock}.{ms:03d}"


def format_duration(value: timedelta) -> str:
    """``(-)dd.hh:mm[:ss[.fff]]`` wrapped in parentheses.

    The parentheses keep spreadsheet engines from re-typing the text as a
    time-of-day expression.
    """
    sign = ""
    if value < timedelta(0):
        sign = "-"
        value = -value
    hours, remainder = divmod(value.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    ms = value.microseconds // 1000
    text = f"{sign}{value.days:02d}.{hours:02d}:{minutes:02d}"
    if seconds or ms:
        text = f"{text}:{seconds:02d}"
        if ms:
            text = f"{text}.{ms:03d}"
    return f"({text})"


# =============================================================================
# Offset handling
# =============================================================================


def flatten(value: datetime, mode: DateInterpretation, local_tz: tzinfo | None = None) -> datetime:
    """Reduce an aware datetime to a naive one.

    UNSPECIFIED keeps the wall clock, LOCAL converts to local time, UTC
    converts to UTC. Naive values pass through unchanged.
    Conversions that would leave the supported range clamp to
    datetime.min or datetime.max.
    """
    if value.tzinfo is None:
        return value
    if mode is DateInterpretation.UNSPECIFIED:
        return value.replace(tzinfo=None)
    try:
        if mode is DateInterpretation.LOCAL:
            return value.astimezone(local_tz).replace(tzinfo=None)
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    except OverflowError:
        return datetime.min if value.year == datetime.min.year else datetime.max


def attach_offset(value: datetime, mode: DateInterpretation, local_tz: tzinfo | None = None) -> datetime:
    """Give a naive datetime an offset: local time under LOCAL, UTC otherwise.

    Aware values pass through unchanged.
    """
    if value.tzinfo is not None:
        return value
    if mode is DateInterpretation.LOCAL:
        if local_tz is None:
            return value.astimezone()
        return value.replace(tzinfo=local_tz)
    return value.replace(tzinfo=timezone.utc)
