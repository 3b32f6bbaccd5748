# src/tablemap/core/coercion.py
"""Total value coercion between runtime values and declared target types.

coerce() never raises. Input that cannot be converted yields the target's
zero value, or None when the target is nullable. One bad cell therefore
degrades one field, never a whole import; callers that care must check
for zero/None themselves.

Targets:
    A Python type (str, bool, int, float, Decimal, datetime, date,
    timedelta, UUID, Version, Ticks, any Enum), an ``X | None`` hint
    (implies nullable), or a ValueType. ValueType.DATE_OFFSET is the only
    way to ask for an offset-aware datetime.

Date Interpretation:
    Ambiguous instants are resolved by CoercionContext.date_mode, passed
    explicitly per call. See tablemap.core.temporal.flatten/attach_offset.
"""

from __future__ import annotations

import math
import types
import typing
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum, Flag
from typing import Any, Final
from uuid import UUID

import structlog

from tablemap.contracts.context import DEFAULT_CONTEXT, CoercionContext
from tablemap.contracts.enums import ValueType
from tablemap.contracts.types import Ticks, Version
from tablemap.core import temporal
from tablemap.core.text import format_decimal, format_float, parse_number

logger = structlog.get_logger(__name__)

# Recognised boolean words. Even positions are true, odd positions false.
# en, en, en, en, zh, nl, fr, de, it, es, es, ja, ko, pt, sv, tr, pseudo-locale
BOOL_WORDS: Final[tuple[str, ...]] = (
    "true", "false",
    "1", "0",
    "t", "f",
    "yes", "no",
    "是", "否",
    "ja", "nee",
    "oui", "non",
    "ja", "nein",
    "sì", "no",
    "sí", "no",
    "si", "no",
    "はい", "いいえ",
    "예", "아니요",
    "sim", "não",
    "ja", "nej",
    "evet", "hayır",
    "ÿèš", "ñò",
)  # fmt: skip


def _bool_table(words: tuple[str, ...]) -> dict[str, bool]:
    table: dict[str, bool] = {}
    for i, word in enumerate(words):
        table.setdefault(word, i % 2 == 0)
    return table


_BOOL_TABLE: Final = _bool_table(BOOL_WORDS)

_VALUE_TYPE_TARGETS: Final[dict[ValueType, Any]] = {
    ValueType.STRING: str,
    ValueType.BOOLEAN: bool,
    ValueType.INTEGER: int,
    ValueType.FLOAT: float,
    ValueType.DECIMAL: Decimal,
    ValueType.DATE: datetime,
    ValueType.DATE_OFFSET: ValueType.DATE_OFFSET,
    ValueType.DURATION: timedelta,
    ValueType.GUID: UUID,
    ValueType.VERSION: Version,
    ValueType.ENUM: str,
}

# Errors a conversion may raise on bad input; all map to the zero value
_CONVERSION_ERRORS: Final = (ValueError, TypeError, OverflowError, ArithmeticError, KeyError, AttributeError)

# Wider numbers are rejected before rounding to int: "1e999999999" must not
# materialize a billion-digit integer. Decimal exponents share the bound in
# both directions so their fixed-point text stays short.
_MAX_INTEGER_DIGITS: Final = 4300


class _Failed:
    """Marker for a conversion that did not produce a value."""


_FAILED: Final = _Failed()


def resolve_target(target: Any, nullable: bool = False) -> tuple[Any, bool]:
    """Strip ``Annotated`` and ``| None`` from a target, reporting nullability.

    ValueType members are mapped to their Python type, except DATE_OFFSET
    which stays a ValueType (naive and aware datetimes share a class).
    """
    if isinstance(target, ValueType):
        return _VALUE_TYPE_TARGETS[target], nullable
    origin = typing.get_origin(target)
    if origin is typing.Annotated:
        return resolve_target(typing.get_args(target)[0], nullable)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(target) if a is not type(None)]
        has_none = len(args) != len(typing.get_args(target))
        if len(args) == 1:
            return resolve_target(args[0], nullable or has_none)
        return target, nullable or has_none
    return target, nullable


def zero_value(target: Any) -> Any:
    """The value a failed coercion to a non-nullable target yields."""
    target, _ = resolve_target(target)
    if target is ValueType.DATE_OFFSET:
        return datetime.min.replace(tzinfo=timezone.utc)
    if not isinstance(target, type):
        return None
    if issubclass(target, Enum):
        return zero_member(target)
    if issubclass(target, bool):
        return False
    if issubclass(target, Ticks):
        return Ticks(0)
    if issubclass(target, int):
        return 0
    if issubclass(target, float):
        return 0.0
    if issubclass(target, Decimal):
        return Decimal(0)
    if issubclass(target, datetime):
        return datetime.min
    if issubclass(target, date):
        return date.min
    if issubclass(target, timedelta):
        return timedelta(0)
    if issubclass(target, UUID):
        return UUID(int=0)
    return None


def zero_member(enum_type: type[Enum]) -> Enum | None:
    """The member whose value is 0, else the first member (None if empty)."""
    try:
        return enum_type(0)
    except (ValueError, TypeError):
        return next(iter(enum_type), None)


def coerce(
    target: Any,
    value: Any,
    *,
    nullable: bool = False,
    context: CoercionContext | None = None,
) -> Any:
    """Convert a value to the target type without ever raising.

    Args:
        target: Python type, ``X | None`` hint, or ValueType
        value: Anything; typically raw CSV text or a spreadsheet cell value
        nullable: Return None instead of the zero value on failure
        context: Date interpretation; defaults to UNSPECIFIED

    Returns:
        The converted value, the target's zero value, or None.

    Example:
        >>> coerce(int, " 42 ")
        42
        >>> coerce(bool | None, "maybe") is None
        True
    """
    target, nullable = resolve_target(target, nullable)
    ctx = context if context is not None else DEFAULT_CONTEXT

    if value is None:
        return None if nullable else zero_value(target)

    try:
        result = _convert(target, value, ctx)
    except _CONVERSION_ERRORS as exc:
        logger.debug(
            "Coercion fell back to default",
            target=_target_name(target),
            value_type=type(value).__name__,
            error=str(exc),
        )
        result = _FAILED

    if result is _FAILED:
        return None if nullable else zero_value(target)
    return result


def _target_name(target: Any) -> str:
    return getattr(target, "__name__", str(target))


def _convert(target: Any, value: Any, ctx: CoercionContext) -> Any:
    if target is ValueType.DATE_OFFSET:
        return _to_datetime_offset(value, ctx)
    if not isinstance(target, type):
        # Generic or Any hint: nothing to convert to
        return value
    if issubclass(target, Enum):
        return _to_enum(target, value)
    if issubclass(target, bool):
        return _to_bool(value)
    if issubclass(target, Ticks):
        return _to_ticks(value, ctx)
    if issubclass(target, int):
        return _to_int(value, ctx)
    if issubclass(target, float):
        return _to_float(value, ctx)
    if issubclass(target, Decimal):
        return _to_decimal(value, ctx)
    if issubclass(target, str):
        return _to_str(value, ctx)
    if issubclass(target, datetime):
        return _to_datetime(value, ctx)
    if issubclass(target, date):
        return _to_date(value, ctx)
    if issubclass(target, timedelta):
        return _to_timedelta(value)
    if issubclass(target, UUID):
        return value if isinstance(value, UUID) else UUID(str(value).strip())
    if issubclass(target, Version):
        if isinstance(value, Version):
            return value
        parsed = Version.parse(str(value))
        return _FAILED if parsed is None else parsed
    if isinstance(value, target):
        return value
    return target(value)


# =============================================================================
# Scalars
# =============================================================================


def _to_bool(value: Any) -> bool | _Failed:
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float | Decimal):
        if value == 1:
            return True
        if value == 0:
            return False
        return _FAILED
    found = _BOOL_TABLE.get(str(value).strip().lower())
    return _FAILED if found is None else found


def _to_int(value: Any, ctx: CoercionContext) -> int | _Failed:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float | Decimal):
        # Non-finite values raise and fall back to zero
        if isinstance(value, Decimal) and value.is_finite() and value.adjusted() >= _MAX_INTEGER_DIGITS:
            return _FAILED
        return round(value)
    if isinstance(value, datetime):
        return temporal.datetime_to_epoch_seconds(temporal.flatten(value, ctx.date_mode, ctx.local_tz))
    if isinstance(value, date):
        return temporal.datetime_to_epoch_seconds(datetime.combine(value, time()))
    if isinstance(value, timedelta):
        micros = temporal.timedelta_to_ticks(value) // temporal.TICKS_PER_MICROSECOND
        return -(-micros // 1_000_000) if micros < 0 else micros // 1_000_000
    if isinstance(value, Enum):
        return value.value if isinstance(value.value, int) else _FAILED
    number = parse_number(str(value))
    if number is None or (number.is_finite() and number.adjusted() >= _MAX_INTEGER_DIGITS):
        return _FAILED
    return round(number)


def _to_ticks(value: Any, ctx: CoercionContext) -> Ticks | _Failed:
    if isinstance(value, datetime):
        return Ticks(temporal.datetime_to_ticks(temporal.flatten(value, ctx.date_mode, ctx.local_tz)))
    if isinstance(value, timedelta):
        return Ticks(temporal.timedelta_to_ticks(value))
    result = _to_int(value, ctx)
    return result if isinstance(result, _Failed) else Ticks(result)


def _to_float(value: Any, ctx: CoercionContext) -> float | _Failed:
    if isinstance(value, int | float | Decimal):
        return float(value)
    if isinstance(value, datetime):
        return temporal.datetime_to_serial(temporal.flatten(value, ctx.date_mode, ctx.local_tz))
    if isinstance(value, date):
        return temporal.datetime_to_serial(datetime.combine(value, time()))
    if isinstance(value, timedelta):
        return temporal.timedelta_to_days(value)
    if isinstance(value, Enum):
        return float(value.value)
    number = parse_number(str(value))
    return _FAILED if number is None else float(number)


def _to_decimal(value: Any, ctx: CoercionContext) -> Decimal | _Failed:
    number = _decimal_of(value, ctx)
    if isinstance(number, Decimal) and number.is_finite() and abs(number.adjusted()) >= _MAX_INTEGER_DIGITS:
        return _FAILED
    return number


def _decimal_of(value: Any, ctx: CoercionContext) -> Decimal | _Failed:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # repr keeps the shortest digits: Decimal(0.1) would expand the binary value
        return Decimal(repr(value))
    if isinstance(value, datetime | date | timedelta):
        serial = _to_float(value, ctx)
        return serial if isinstance(serial, _Failed) else Decimal(repr(serial))
    number = parse_number(str(value))
    return _FAILED if number is None else number


def _to_str(value: Any, ctx: CoercionContext) -> str:
    if isinstance(value, Enum):
        return enum_text(value)
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, float):
        return format_float(value)
    if isinstance(value, Decimal):
        return format_decimal(value)
    if isinstance(value, datetime):
        return temporal.format_datetime(temporal.flatten(value, ctx.date_mode, ctx.local_tz))
    if isinstance(value, date):
        return temporal.format_datetime(value)
    if isinstance(value, timedelta):
        return temporal.format_duration(value)
    return str(value).strip()


# =============================================================================
# Dates and durations
# =============================================================================


def _to_datetime(value: Any, ctx: CoercionContext) -> datetime | _Failed:
    """Naive datetime, resolving aware inputs per the date mode."""
    if isinstance(value, datetime):
        return temporal.flatten(value, ctx.date_mode, ctx.local_tz)
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, bool):
        return _FAILED
    if isinstance(value, float | Decimal):
        return temporal.serial_to_datetime(float(value))
    if isinstance(value, Ticks):
        return temporal.ticks_to_datetime(value)
    if isinstance(value, int):
        return temporal.epoch_seconds_to_datetime(value)
    if isinstance(value, timedelta | Enum):
        return _FAILED
    parsed = temporal.parse_datetime_text(str(value))
    if parsed is None:
        return _FAILED
    return temporal.flatten(parsed, ctx.date_mode, ctx.local_tz)


def _to_datetime_offset(value: Any, ctx: CoercionContext) -> datetime | _Failed:
    """Aware datetime; naive inputs get an offset per the date mode."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value
    if isinstance(value, str):
        parsed = temporal.parse_datetime_text(value)
        if parsed is None:
            return _FAILED
        return temporal.attach_offset(parsed, ctx.date_mode, ctx.local_tz)
    naive = _to_datetime(value, ctx)
    if isinstance(naive, _Failed):
        return naive
    return temporal.attach_offset(naive, ctx.date_mode, ctx.local_tz)


def _to_date(value: Any, ctx: CoercionContext) -> date | _Failed:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    result = _to_datetime(value, ctx)
    return result if isinstance(result, _Failed) else result.date()


def _to_timedelta(value: Any) -> timedelta | _Failed:
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        return _FAILED
    if isinstance(value, float | Decimal):
        return temporal.days_to_timedelta(float(value))
    if isinstance(value, Ticks):
        return temporal.ticks_to_timedelta(value)
    if isinstance(value, int):
        return timedelta(seconds=value)
    if isinstance(value, datetime | date | Enum):
        return _FAILED
    parsed = temporal.parse_duration_text(str(value))
    return _FAILED if parsed is None else parsed


# =============================================================================
# Enums
# =============================================================================


def enum_text(member: Enum) -> str:
    """Member name; Flag combinations join their parts with ", "."""
    if isinstance(member, Flag) and (member.name is None or "|" in member.name):
        return ", ".join(m.name for m in type(member) if m in member and m.name)
    return member.name or str(member.value)


def _to_enum(enum_type: type[Enum], value: Any) -> Enum | _Failed:
    if isinstance(value, enum_type):
        return value
    if isinstance(value, bool):
        return _FAILED
    if isinstance(value, int):
        return enum_type(value)
    if isinstance(value, Decimal) and value.is_finite() and value.adjusted() >= _MAX_INTEGER_DIGITS:
        return _FAILED
    if isinstance(value, float | Decimal):
        if not math.isfinite(value) or value != int(value):
            return _FAILED
        return enum_type(int(value))
    text = value.name if isinstance(value, Enum) else str(value).strip()
    if not text:
        return _FAILED
    if text.lstrip("-").isdigit() and text.isascii():
        return enum_type(int(text))
    members = {name.casefold(): member for name, member in enum_type.__members__.items()}
    names = [part.strip().casefold() for part in text.split(",")] if "," in text else [text.casefold()]
    if len(names) > 1 and not issubclass(enum_type, Flag):
        return _FAILED
    by_value = {str(m.value).casefold(): m for m in enum_type.__members__.values()}
    found = [members[name] if name in members else by_value[name] for name in names]
    result = found[0]
    for member in found[1:]:
        result = result | member  # type: ignore[operator]
    return result
