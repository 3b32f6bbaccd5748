# src/tablemap/mapping/columns.py
"""Declaring column metadata on record types.

Example:
    @table("people")
    @dataclass
    class Person:
        id: Annotated[int, column(order=0, frozen=True)]
        name: str = field(default="", metadata={COLUMN_METADATA_KEY: column(key="PersonName")})
        notes: Annotated[str, column(ignore=True)] = ""
"""

from collections.abc import Callable
from typing import Any, TypeVar

from tablemap.contracts.descriptor import ColumnOptions
from tablemap.contracts.enums import Justification, ValueType

COLUMN_METADATA_KEY = "tablemap"
TABLE_KEY_ATTRIBUTE = "__tablemap_table__"

_T = TypeVar("_T", bound=type)


def column(
    *,
    key: str | None = None,
    header: str | None = None,
    order: int | None = None,
    format: str | None = None,
    frozen: bool = False,
    has_filter: bool = False,
    justification: Justification = Justification.AUTO,
    hidden: bool = False,
    translate_data: bool = False,
    max_width: int | None = None,
    value_type: ValueType | None = None,
    ignore: bool = False,
) -> ColumnOptions:
    """Create column metadata for ``Annotated[...]`` or dataclass field metadata."""
    if max_width is not None and max_width <= 0:
        raise ValueError(f"max_width must be positive, got {max_width}")
    return ColumnOptions(
        key=key,
        header=header,
        order=order,
        format=format,
        frozen=frozen,
        has_filter=has_filter,
        justification=justification,
        hidden=hidden,
        translate_data=translate_data,
        max_width=max_width,
        value_type=value_type,
        ignore=ignore,
    )


def table(key: str) -> Callable[[_T], _T]:
    """Class decorator naming the localization key of the record type's table."""

    def decorate(cls: _T) -> _T:
        setattr(cls, TABLE_KEY_ATTRIBUTE, key)
        return cls

    return decorate


def table_key(record_type: type) -> str | None:
    """The key set by @table, if any."""
    key: Any = getattr(record_type, TABLE_KEY_ATTRIBUTE, None)
    return key if isinstance(key, str) and key else None


def find_options(metadata: Any) -> ColumnOptions | None:
    """First ColumnOptions in an ``Annotated`` metadata tuple or a field metadata mapping."""
    if metadata is None:
        return None
    if isinstance(metadata, ColumnOptions):
        return metadata
    if hasattr(metadata, "get"):
        found = metadata.get(COLUMN_METADATA_KEY)
        return found if isinstance(found, ColumnOptions) else None
    for item in metadata:
        if isinstance(item, ColumnOptions):
            return item
    return None
