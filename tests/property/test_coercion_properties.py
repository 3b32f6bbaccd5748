# tests/property/test_coercion_properties.py
"""Property-based tests for the coercion engine.

Totality:
- coerce() never raises, for any target and any input
- The result is None only when the target is nullable or has no zero value
- Any other result is an instance of the target

Round-trip Properties:
- Canonical text of an int, instant or duration converts back exactly
  (instants and durations at millisecond precision)
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from hypothesis import given
from hypothesis import strategies as st

from tablemap.contracts.enums import ValueType
from tablemap.contracts.types import Ticks, Version
from tablemap.core.coercion import coerce, zero_value
from tests.fixtures.records import Color, Permission, Size
from tests.property.settings import STANDARD_SETTINGS, TOTALITY_SETTINGS

TARGETS: tuple[Any, ...] = (
    bool,
    int,
    Ticks,
    float,
    Decimal,
    str,
    datetime,
    date,
    timedelta,
    UUID,
    Version,
    Color,
    Size,
    Permission,
    ValueType.DATE_OFFSET,
)

# =============================================================================
# Strategies
# =============================================================================

any_value = st.one_of(
    st.none(),
    st.text(),
    st.booleans(),
    st.integers(),
    st.floats(),
    st.decimals(min_value=-(10**15), max_value=10**15),
    st.sampled_from([Decimal("NaN"), Decimal("sNaN"), Decimal("Infinity"), Decimal("-Infinity")]),
    st.datetimes(),
    st.dates(),
    st.timedeltas(),
    st.uuids(),
    st.sampled_from(list(Color) + list(Size)),
    st.integers().map(Ticks),
)

instants = st.datetimes(min_value=datetime(1900, 1, 1), max_value=datetime(2999, 12, 31, 23, 59, 59))
durations = st.timedeltas(min_value=timedelta(days=-(10**5)), max_value=timedelta(days=10**5))


def to_millisecond(value: datetime) -> datetime:
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def duration_to_millisecond(value: timedelta) -> timedelta:
    magnitude = abs(value)
    truncated = magnitude - timedelta(microseconds=magnitude.microseconds % 1000)
    return -truncated if value < timedelta(0) else truncated


def expected_class(target: Any) -> type:
    if target is ValueType.DATE_OFFSET:
        return datetime
    return target


# =============================================================================
# Totality
# =============================================================================


class TestTotality:
    """coerce() is total over targets and inputs."""

    @given(target=st.sampled_from(TARGETS), value=any_value, nullable=st.booleans())
    @TOTALITY_SETTINGS
    def test_never_raises_and_respects_target(self, target: Any, value: Any, nullable: bool) -> None:
        result = coerce(target, value, nullable=nullable)
        if result is None:
            assert nullable or zero_value(target) is None
            return
        assert isinstance(result, expected_class(target))
        if target is ValueType.DATE_OFFSET:
            assert result.tzinfo is not None

    @given(target=st.sampled_from(TARGETS))
    @STANDARD_SETTINGS
    def test_none_is_zero_or_none(self, target: Any) -> None:
        assert coerce(target, None) == zero_value(target)
        assert coerce(target, None, nullable=True) is None


# =============================================================================
# Round trips through canonical text
# =============================================================================


class TestTextRoundTrips:
    """Canonical text converts back to the value it came from."""

    @given(value=st.integers(min_value=-(10**30), max_value=10**30))
    @STANDARD_SETTINGS
    def test_int(self, value: int) -> None:
        assert coerce(int, coerce(str, value)) == value

    @given(value=st.floats(allow_nan=False))
    @STANDARD_SETTINGS
    def test_float(self, value: float) -> None:
        assert coerce(float, coerce(str, value)) == value

    @given(value=instants)
    @STANDARD_SETTINGS
    def test_datetime(self, value: datetime) -> None:
        assert coerce(datetime, coerce(str, value)) == to_millisecond(value)

    @given(value=durations)
    @STANDARD_SETTINGS
    def test_timedelta(self, value: timedelta) -> None:
        assert coerce(timedelta, coerce(str, value)) == duration_to_millisecond(value)

    @given(member=st.sampled_from(list(Permission)), other=st.sampled_from(list(Permission)))
    @STANDARD_SETTINGS
    def test_flag_combinations(self, member: Permission, other: Permission) -> None:
        combined = member | other
        assert coerce(Permission, coerce(str, combined)) == combined
