"""Value kinds, date interpretation modes, and presentation enums.

These cross every subsystem boundary: the builder classifies fields into a
ValueType, the coercion engine consults the DateInterpretation, and the
spreadsheet collaborator reads Justification from presentation hints.
"""

from enum import StrEnum


class ValueType(StrEnum):
    """Scalar kind of a mapped column.

    DATE_OFFSET has no Python type of its own (an aware datetime and a naive
    one share a class), so columns must declare it explicitly.
    """

    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    DATE = "date"
    DATE_OFFSET = "date_offset"
    DURATION = "duration"
    GUID = "guid"
    VERSION = "version"
    ENUM = "enum"


class DateInterpretation(StrEnum):
    """How ambiguous instants are resolved during coercion.

    UNSPECIFIED: keep the wall clock, drop or assume no offset.
    LOCAL: treat naive values as local time, convert aware values to local.
    UTC: treat naive values as UTC, convert aware values to UTC.
    """

    UNSPECIFIED = "unspecified"
    LOCAL = "local"
    UTC = "utc"


class Justification(StrEnum):
    """Horizontal alignment hint for spreadsheet columns."""

    AUTO = "auto"
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
