"""Error types raised by the mapping core.

Only structural failures raise. Value-level conversion problems never do:
the coercion engine degrades them to zero or None (see tablemap.core.coercion).
"""

from collections.abc import Sequence
from typing import Any


class TablemapError(Exception):
    """Base class for all tablemap errors."""


class MappingError(TablemapError):
    """A record type cannot be mapped onto a table.

    Fatal for the current table or page.
    """


class NoMappableFieldsError(MappingError):
    """Raised when a record type exposes no usable scalar fields.

    Attributes:
        record_type: The type that was inspected
    """

    def __init__(self, record_type: type) -> None:
        self.record_type = record_type
        super().__init__(f"{record_type.__qualname__} has no mappable fields")


class NoMatchingColumnsError(MappingError):
    """Raised when none of the observed headers match a field of the record type.

    Attributes:
        headers: The observed header row
        record_type: The type the headers were matched against, if known
    """

    def __init__(self, headers: Sequence[str], record_type: type | None = None) -> None:
        self.headers = tuple(headers)
        self.record_type = record_type
        target = record_type.__qualname__ if record_type is not None else "record type"
        super().__init__(f"No column in {list(self.headers)!r} matches a field of {target}")


class FieldShapeError(TablemapError):
    """Raised when a row's field count does not match the expected column count.

    Only raised in fixed-shape imports (no header row). Header-driven imports
    pad or ignore instead.

    Attributes:
        row_index: Zero-based index of the offending row
        expected: Number of columns the record type maps
        actual: Number of fields the row carried
    """

    def __init__(self, *, row_index: int, expected: int, actual: int, row: Any = None) -> None:
        self.row_index = row_index
        self.expected = expected
        self.actual = actual
        self.row = row
        super().__init__(f"Row {row_index} has {actual} fields, expected {expected}")
