# src/tablemap/contracts/descriptor.py
"""Column descriptors: the bridge between record fields and table columns.

A DescriptorSet is built once per record type by the builder and cached.
It is never mutated; header resynchronization produces a new set whose
descriptors are drawn from the original (plus Dummy descriptors for
unmatched headers).

Descriptor Layout:
    Explicitly ordered descriptors come first, ascending by ``order``.
    Unordered descriptors follow, sorted case-insensitively by header.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, overload

from tablemap.contracts.context import DEFAULT_CONTEXT, CoercionContext
from tablemap.contracts.enums import Justification, ValueType

Getter = Callable[[Any], Any]
Setter = Callable[[Any, Any, CoercionContext], None]


@dataclass(frozen=True, slots=True)
class ColumnOptions:
    """Per-field column metadata declared on a record type.

    Attach with ``Annotated[int, column(...)]`` or
    ``dataclasses.field(metadata={"tablemap": column(...)})``.

    Attributes:
        key: Localization key for the header; defaults to the field name
        header: Literal header text used when the lookup has no translation
        order: Explicit column position; unordered columns sort by header
        format: Display format for the spreadsheet writer. A trailing
            ``,N`` names the column holding the unit-of-measure text.
        frozen: Freeze panes up to and including this column
        has_filter: Show an autofilter dropdown on this column
        justification: Horizontal alignment hint
        hidden: Hide the column in the spreadsheet
        translate_data: Translate string, boolean and enum values through
            the localized-string lookup
        max_width: Maximum display width in characters
        value_type: Override the inferred value type (needed for DATE_OFFSET)
        ignore: Exclude the field from the mapping entirely
    """

    key: str | None = None
    header: str | None = None
    order: int | None = None
    format: str | None = None
    frozen: bool = False
    has_filter: bool = False
    justification: Justification = Justification.AUTO
    hidden: bool = False
    translate_data: bool = False
    max_width: int | None = None
    value_type: ValueType | None = None
    ignore: bool = False


@dataclass(frozen=True, slots=True)
class PresentationHints:
    """Display hints carried for the spreadsheet writer, never interpreted here.

    ``rel_units_index`` is the offset from this column to the column holding
    its unit-of-measure text; 0 means none.
    """

    format: str | None = None
    rel_units_index: int = 0
    frozen: bool = False
    has_filter: bool = False
    justification: Justification = Justification.AUTO
    hidden: bool = False
    translate_data: bool = False
    max_width: int | None = None


@dataclass(frozen=True, slots=True)
class FieldInfo:
    """One field as reported by a RecordIntrospector.

    Attributes:
        name: Attribute name on the record
        annotation: Declared type with ``Annotated`` and ``| None`` removed
        nullable: True if the declared type admits None
        index: Declaration position, used to keep sorting stable
        options: Column metadata, if any was declared
    """

    name: str
    annotation: Any
    nullable: bool
    index: int
    options: ColumnOptions | None = None


def _ignore_value(record: Any, value: Any, context: CoercionContext) -> None:
    return None


def _no_value(record: Any) -> Any:
    return None


@dataclass(frozen=True, slots=True)
class ColumnDescriptor:
    """Accessor pair and metadata for one mapped column.

    The setter always funnels through the coercion engine, so ``set_value``
    accepts any scalar (usually raw text) and never raises for bad values.
    """

    name: str
    header: str
    value_type: ValueType
    python_type: Any
    nullable: bool
    getter: Getter = field(repr=False, compare=False)
    setter: Setter = field(repr=False, compare=False)
    order: int | None = None
    hints: PresentationHints = field(default_factory=PresentationHints)
    is_dummy: bool = False

    @classmethod
    def dummy(cls, header: str) -> ColumnDescriptor:
        """Placeholder for an observed header with no matching field."""
        return cls(
            name=header,
            header=header,
            value_type=ValueType.STRING,
            python_type=str,
            nullable=True,
            getter=_no_value,
            setter=_ignore_value,
            is_dummy=True,
        )

    def get_value(self, record: Any) -> Any:
        return self.getter(record)

    def set_value(self, record: Any, value: Any, context: CoercionContext = DEFAULT_CONTEXT) -> None:
        self.setter(record, value, context)


@dataclass(frozen=True, slots=True)
class DescriptorSet:
    """Ordered, immutable descriptor list for one record type."""

    record_type: type
    table_name: str
    descriptors: tuple[ColumnDescriptor, ...]
    factory: Callable[[], Any] | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for descriptor in self.descriptors:
            if descriptor.is_dummy:
                continue
            if descriptor.name in seen:
                raise ValueError(f"Duplicate column name {descriptor.name!r} in {self.record_type.__qualname__}")
            seen.add(descriptor.name)

    def __iter__(self) -> Iterator[ColumnDescriptor]:
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)

    @overload
    def __getitem__(self, index: int) -> ColumnDescriptor: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[ColumnDescriptor, ...]: ...

    def __getitem__(self, index: int | slice) -> ColumnDescriptor | tuple[ColumnDescriptor, ...]:
        return self.descriptors[index]

    @property
    def headers(self) -> tuple[str, ...]:
        return tuple(d.header for d in self.descriptors)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(d.name for d in self.descriptors)

    @property
    def dummy_count(self) -> int:
        return sum(1 for d in self.descriptors if d.is_dummy)

    @property
    def is_all_dummy(self) -> bool:
        """True for an empty set or one holding only Dummy descriptors."""
        return self.dummy_count == len(self.descriptors)

    def get(self, name: str) -> ColumnDescriptor | None:
        """Find a mapped (non-dummy) descriptor by field name, case-insensitively."""
        folded = name.casefold()
        for descriptor in self.descriptors:
            if not descriptor.is_dummy and descriptor.name.casefold() == folded:
                return descriptor
        return None

    def new_record(self) -> Any:
        """Create a blank record to be filled column by column."""
        if self.factory is None:
            raise TypeError(f"No record factory for {self.record_type.__qualname__}")
        return self.factory()

    def with_descriptors(self, descriptors: tuple[ColumnDescriptor, ...]) -> DescriptorSet:
        """Same type, table and factory with a different column list."""
        return DescriptorSet(self.record_type, self.table_name, descriptors, self.factory)

    def values(self, record: Any) -> list[Any]:
        """Read every column of a record, in column order."""
        return [d.get_value(record) for d in self.descriptors]
