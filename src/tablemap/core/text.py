# src/tablemap/core/text.py
"""Locale-invariant text helpers shared by coercion and the CSV codec.

Numeric Marker:
    Spreadsheet engines re-type digit-only text as numbers on import, which
    loses leading zeros and precision ("007" -> 7). String columns append a
    zero-width space to numeric-looking text on the way out and strip it on
    the way in. The marker is invisible when displayed.
"""

import math
from decimal import Decimal

ZERO_WIDTH_SPACE = "\u200b"


def is_numeric_text(text: str) -> bool:
    """True for an optional leading '-', ASCII digits, and at most one '.' or ','.

    At least one digit is required, so "-" and "." are not numeric.
    """
    has_separator = False
    has_digit = False
    for i, c in enumerate(text):
        if i == 0 and c == "-":
            continue
        if c in ".," and not has_separator:
            has_separator = True
            continue
        if not ("0" <= c <= "9"):
            return False
        has_digit = True
    return has_digit


def append_marker(text: str) -> str:
    """Append the zero-width marker if the text would read as a number."""
    return text + ZERO_WIDTH_SPACE if is_numeric_text(text) else text


def strip_marker(text: str) -> str:
    """Remove one trailing zero-width marker, if present."""
    return text[:-1] if text.endswith(ZERO_WIDTH_SPACE) else text


def strip_control(text: str) -> str:
    """Drop C0 control characters except newline, as the reader does.

    DEL and the C1 range are content and pass through.
    """
    if text.isprintable() and "\n" not in text:
        return text
    return "".join(c for c in text if c >= " " or c == "\n")


def format_decimal(value: Decimal) -> str:
    """Fixed-point text with insignificant trailing zeros removed.

    Never uses exponent notation: Decimal("1.2E+3") -> "1200".
    """
    if value.is_nan():
        return "NaN"
    if value.is_infinite():
        return "Infinity" if value > 0 else "-Infinity"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def format_float(value: float) -> str:
    """Shortest round-trip text with a trailing ".0" removed."""
    if not math.isfinite(value):
        return _non_finite_text(value)
    text = repr(value)
    if text.endswith(".0"):
        text = text[:-2]
    return "0" if text == "-0" else text


def _non_finite_text(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    return "Infinity" if value > 0 else "-Infinity"


def parse_number(text: str) -> Decimal | None:
    """Parse invariant numeric text, accepting well-formed thousands groups.

    Returns None for anything that is not a finite or named non-finite number.
    "1,234.5" and "NaN" parse; "1,23.4" and "12abc" do not.
    """
    s = text.strip()
    if not s:
        return None
    if "," in s:
        s = _drop_group_separators(s)
        if s is None:
            return None
    lowered = s.lower()
    if lowered in ("infinity", "+infinity", "inf", "+inf"):
        return Decimal("Infinity")
    if lowered in ("-infinity", "-inf"):
        return Decimal("-Infinity")
    if lowered == "nan":
        return Decimal("NaN")
    if not any(c.isdigit() for c in s) or any(c in s for c in "_ "):
        return None
    try:
        return Decimal(s)
    except ArithmeticError:
        return None


def _drop_group_separators(text: str) -> str | None:
    mantissa, dot, fraction = text.partition(".")
    sign = ""
    if mantissa and mantissa[0] in "+-":
        sign, mantissa = mantissa[0], mantissa[1:]
    groups = mantissa.split(",")
    if not groups[0] or len(groups[0]) > 3 or any(len(g) != 3 for g in groups[1:]):
        return None
    if "," in fraction:
        return None
    return sign + "".join(groups) + dot + fraction
