# src/tablemap/mapping/builder.py
"""Descriptor builder: reflects a record type once into ordered column descriptors.

Build flow:
    1. The RecordIntrospector lists fields in declaration order.
    2. Private, ignored and non-scalar fields are dropped.
    3. Each remaining field gets a header (through the StringLookup),
       presentation hints, and a getter/setter pair whose setter always
       routes through coerce().
    4. Descriptors are laid out (ordered first, then by header) and
       units-column references are validated against that layout.

Read flow:
    resynchronize() re-orders a set to match an observed header row,
    putting Dummy descriptors where a header matches no field.
"""

from __future__ import annotations

import dataclasses
import functools
import threading
import typing
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Literal
from uuid import UUID

import structlog

from tablemap.contracts.context import CoercionContext
from tablemap.contracts.descriptor import (
    ColumnDescriptor,
    ColumnOptions,
    DescriptorSet,
    FieldInfo,
    Getter,
    PresentationHints,
    Setter,
)
from tablemap.contracts.enums import ValueType
from tablemap.contracts.errors import NoMappableFieldsError, NoMatchingColumnsError
from tablemap.contracts.localization import NullLookup, StringLookup
from tablemap.contracts.protocols import RecordIntrospector
from tablemap.contracts.types import Version
from tablemap.core.coercion import coerce, enum_text
from tablemap.core.text import append_marker, strip_marker
from tablemap.mapping.columns import table_key
from tablemap.mapping.introspection import DEFAULT_INTROSPECTORS, introspector_for

logger = structlog.get_logger(__name__)

MatchOn = Literal["header", "name"]

# Checked in order: bool before int, datetime before date
_SCALAR_TYPES: tuple[tuple[type, ValueType], ...] = (
    (Enum, ValueType.ENUM),
    (bool, ValueType.BOOLEAN),
    (int, ValueType.INTEGER),
    (float, ValueType.FLOAT),
    (Decimal, ValueType.DECIMAL),
    (str, ValueType.STRING),
    (datetime, ValueType.DATE),
    (date, ValueType.DATE),
    (timedelta, ValueType.DURATION),
    (UUID, ValueType.GUID),
    (Version, ValueType.VERSION),
)

# Format codes that may carry a ",N" units-column offset
_UNITS_FORMAT_CODES = frozenset("fFnNcC")


def classify(annotation: Any) -> ValueType | None:
    """Value type of a (non-optional) field annotation; None if it is not a supported scalar."""
    # Parameterized generics such as list[int] are not scalars
    if not isinstance(annotation, type) or typing.get_origin(annotation) is not None:
        return None
    for python_type, value_type in _SCALAR_TYPES:
        if issubclass(annotation, python_type):
            return value_type
    return None


def split_format(fmt: str | None) -> tuple[str | None, int]:
    """Separate a trailing units-column offset from a numeric display format.

    Example:
        >>> split_format("F3,2")
        ('F3', 2)
        >>> split_format("N2, kg")
        ('N2, kg', 0)
    """
    if not fmt or not fmt.strip() or fmt[0] not in _UNITS_FORMAT_CODES:
        return fmt, 0
    parts = [p for p in fmt.split(",") if p]
    if len(parts) > 1:
        try:
            return parts[0], int(parts[1].strip())
        except ValueError:
            pass
    return fmt, 0


def layout(descriptors: Iterable[ColumnDescriptor]) -> list[ColumnDescriptor]:
    """Explicitly ordered descriptors first (by order), then the rest by header, case-insensitively."""
    ordered = sorted((d for d in descriptors if d.order is not None), key=lambda d: d.order)  # type: ignore[arg-type, return-value]
    unordered = sorted((d for d in descriptors if d.order is None), key=lambda d: d.header.casefold())
    return ordered + unordered


def _validate_units(descriptors: list[ColumnDescriptor]) -> list[ColumnDescriptor]:
    """Reset units offsets that leave the table or point at a non-string column."""
    checked: list[ColumnDescriptor] = []
    for position, descriptor in enumerate(descriptors):
        offset = descriptor.hints.rel_units_index
        if offset:
            target = position + offset
            if not 0 <= target < len(descriptors) or descriptors[target].value_type is not ValueType.STRING:
                descriptor = dataclasses.replace(descriptor, hints=dataclasses.replace(descriptor.hints, rel_units_index=0))
        checked.append(descriptor)
    return checked


class DescriptorBuilder:
    """Builds and caches DescriptorSets, one per record type.

    The cache is keyed by type identity and guarded by a lock, so a single
    builder can be shared across threads. Building is pure, so two threads
    racing on the same type both produce equal sets and the first one wins.

    Args:
        lookup: Localized-string lookup for headers, table names and
            translated values. Defaults to NullLookup (no translation).
        introspectors: Tried in order; the first that supports a type is
            used. Defaults to dataclasses then pydantic models.
    """

    def __init__(
        self,
        lookup: StringLookup | None = None,
        introspectors: Sequence[RecordIntrospector] | None = None,
    ) -> None:
        self._lookup: StringLookup = lookup if lookup is not None else NullLookup()
        self._introspectors: tuple[RecordIntrospector, ...] = (
            tuple(introspectors) if introspectors is not None else DEFAULT_INTROSPECTORS
        )
        self._cache: dict[type, DescriptorSet] = {}
        self._lock = threading.Lock()

    @property
    def lookup(self) -> StringLookup:
        return self._lookup

    def introspector(self, record_type: type) -> RecordIntrospector:
        return introspector_for(record_type, self._introspectors)

    def build(self, record_type: type) -> DescriptorSet:
        """Descriptor set for a record type, built on first use.

        Raises:
            TypeError: If no introspector supports the type, or it is frozen
            NoMappableFieldsError: If the type has no usable scalar fields
        """
        with self._lock:
            cached = self._cache.get(record_type)
        if cached is not None:
            return cached
        descriptor_set = self._build(record_type)
        with self._lock:
            return self._cache.setdefault(record_type, descriptor_set)

    def resynchronize(
        self,
        descriptor_set: DescriptorSet,
        observed_headers: Sequence[str | None],
        *,
        match_on: MatchOn = "header",
    ) -> DescriptorSet:
        return resynchronize(descriptor_set, observed_headers, match_on=match_on)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    # -- construction ---------------------------------------------------------

    def _build(self, record_type: type) -> DescriptorSet:
        introspector = self.introspector(record_type)
        descriptors: list[ColumnDescriptor] = []
        for info in introspector.list_fields(record_type):
            options = info.options or ColumnOptions()
            if info.name.startswith("_") or options.ignore:
                continue
            value_type = classify(info.annotation)
            if value_type is None:
                logger.debug(
                    "Skipping field with unsupported type",
                    record_type=record_type.__qualname__,
                    field=info.name,
                    annotation=repr(info.annotation),
                )
                continue
            if options.value_type is ValueType.DATE_OFFSET and value_type is ValueType.DATE:
                value_type = ValueType.DATE_OFFSET
            descriptors.append(self._describe(introspector, info, options, value_type))

        if not descriptors:
            raise NoMappableFieldsError(record_type)

        name = record_type.__name__
        descriptor_set = DescriptorSet(
            record_type=record_type,
            table_name=self._lookup.lookup(table_key(record_type) or name, name),
            descriptors=tuple(_validate_units(layout(descriptors))),
            factory=functools.partial(introspector.new_record, record_type),
        )
        logger.debug(
            "Built column descriptors",
            record_type=record_type.__qualname__,
            table_name=descriptor_set.table_name,
            columns=len(descriptor_set),
        )
        return descriptor_set

    def _describe(
        self,
        introspector: RecordIntrospector,
        info: FieldInfo,
        options: ColumnOptions,
        value_type: ValueType,
    ) -> ColumnDescriptor:
        fmt, rel_units_index = split_format(options.format)
        getter, setter = self._accessors(introspector, info, value_type, options.translate_data)
        return ColumnDescriptor(
            name=info.name,
            header=self._lookup.lookup(options.key or info.name, options.header or info.name),
            value_type=value_type,
            python_type=info.annotation,
            nullable=info.nullable,
            getter=getter,
            setter=setter,
            order=options.order,
            hints=PresentationHints(
                format=fmt,
                rel_units_index=rel_units_index,
                frozen=options.frozen,
                has_filter=options.has_filter,
                justification=options.justification,
                hidden=options.hidden,
                translate_data=options.translate_data,
                max_width=options.max_width,
            ),
        )

    def _accessors(
        self,
        introspector: RecordIntrospector,
        info: FieldInfo,
        value_type: ValueType,
        translate: bool,
    ) -> tuple[Getter, Setter]:
        lookup = self._lookup
        target: Any = ValueType.DATE_OFFSET if value_type is ValueType.DATE_OFFSET else info.annotation
        nullable = info.nullable

        def read(record: Any) -> Any:
            return introspector.get_value(record, info)

        def write(record: Any, value: Any) -> None:
            introspector.set_value(record, info, value)

        if value_type is ValueType.STRING:
            return _string_accessors(read, write, lookup if translate else None, nullable)

        if translate and value_type is ValueType.BOOLEAN:

            def get_translated(record: Any) -> Any:
                value = read(record)
                if value is None:
                    return None
                text = "True" if value else "False"
                return lookup.lookup(text, text)

            def set_translated(record: Any, value: Any, context: CoercionContext) -> None:
                if isinstance(value, str) and value.strip():
                    value = lookup.reverse_lookup(value.strip())
                write(record, coerce(target, value, nullable=nullable, context=context))

            return get_translated, set_translated

        if translate and value_type is ValueType.ENUM:
            return _enum_accessors(read, write, lookup, target, nullable)

        def get(record: Any) -> Any:
            return read(record)

        def set_(record: Any, value: Any, context: CoercionContext) -> None:
            write(record, coerce(target, value, nullable=nullable, context=context))

        return get, set_


def _string_accessors(
    read: Getter,
    write: Callable[[Any, Any], None],
    lookup: StringLookup | None,
    nullable: bool,
) -> tuple[Getter, Setter]:
    """String columns: marker on the way out, trimmed and unmarked on the way in."""

    def get(record: Any) -> Any:
        value = read(record)
        if value is None:
            return None
        text = str(value)
        if lookup is not None:
            return lookup.lookup(text, text)
        return append_marker(text)

    def set_(record: Any, value: Any, context: CoercionContext) -> None:
        text = coerce(str, value, nullable=True, context=context)
        if text:
            text = strip_marker(text).strip()
            if lookup is not None and text:
                text = lookup.reverse_lookup(text)
        if not text:
            text = None if nullable else ""
        write(record, text)

    return get, set_


def _enum_accessors(
    read: Getter,
    write: Callable[[Any, Any], None],
    lookup: StringLookup,
    enum_type: type[Enum],
    nullable: bool,
) -> tuple[Getter, Setter]:
    """Translated enum columns: each member maps to lookup(name, name) and back."""
    localized = {member: lookup.lookup(enum_text(member), enum_text(member)) for member in enum_type}
    reverse = {text.casefold(): member for member, text in localized.items()}

    def get(record: Any) -> Any:
        value = read(record)
        if value is None:
            return None
        return localized.get(value) or enum_text(value)

    def set_(record: Any, value: Any, context: CoercionContext) -> None:
        if isinstance(value, str):
            member = reverse.get(value.strip().casefold())
            if member is not None:
                write(record, member)
                return
        write(record, coerce(enum_type, value, nullable=nullable, context=context))

    return get, set_


# =============================================================================
# Module-level helpers
# =============================================================================

_default_builder = DescriptorBuilder()


def default_builder() -> DescriptorBuilder:
    """The shared builder used when callers do not supply one."""
    return _default_builder


def build_descriptors(
    record_type: type,
    *,
    lookup: StringLookup | None = None,
    introspector: RecordIntrospector | None = None,
) -> DescriptorSet:
    """Build the descriptor set for a record type.

    Without a lookup or introspector the shared default builder (and its
    cache) is used; otherwise a one-off builder is created.
    """
    if lookup is None and introspector is None:
        return _default_builder.build(record_type)
    introspectors = (introspector,) if introspector is not None else None
    return DescriptorBuilder(lookup=lookup, introspectors=introspectors).build(record_type)


def resynchronize(
    descriptor_set: DescriptorSet,
    observed_headers: Sequence[str | None],
    *,
    match_on: MatchOn = "header",
) -> DescriptorSet:
    """Re-order a descriptor set to follow an observed header row.

    Headers are trimmed and stripped of the numeric marker, then matched
    case-insensitively against descriptor headers (or names, for array
    import). A header that matches nothing, or matches a column already
    claimed by an earlier header, gets a Dummy descriptor at its position.

    Raises:
        NoMatchingColumnsError: If no header matches any column
    """
    available: dict[str, ColumnDescriptor] = {}
    for descriptor in descriptor_set:
        if not descriptor.is_dummy:
            key = descriptor.header if match_on == "header" else descriptor.name
            available.setdefault(key.casefold(), descriptor)

    claimed: set[str] = set()
    synced: list[ColumnDescriptor] = []
    for raw in observed_headers:
        header = strip_marker((raw or "").strip()).strip()
        descriptor = available.get(header.casefold())
        if descriptor is None or descriptor.name in claimed:
            logger.info(
                "Header has no matching field",
                header=header,
                record_type=descriptor_set.record_type.__qualname__,
            )
            synced.append(ColumnDescriptor.dummy(header))
            continue
        claimed.add(descriptor.name)
        synced.append(descriptor)

    if not synced or all(d.is_dummy for d in synced):
        raise NoMatchingColumnsError([h or "" for h in observed_headers], descriptor_set.record_type)
    return descriptor_set.with_descriptors(tuple(synced))
