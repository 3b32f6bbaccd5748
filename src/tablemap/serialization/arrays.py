# src/tablemap/serialization/arrays.py
"""Conversions between record sequences and 2-D string tables.

A 2-D table is any sequence of rows, each a sequence of cells. Column
headers here are field names, not localized headers, so tables survive
a change of culture. Empty cells leave the record's default in place.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Hashable, Iterable, Iterator, Sequence
from typing import Any, TextIO, TypeVar

import structlog

from tablemap.contracts.context import DEFAULT_CONTEXT, CoercionContext
from tablemap.contracts.descriptor import DescriptorSet
from tablemap.contracts.errors import FieldShapeError
from tablemap.core.coercion import coerce
from tablemap.core.text import strip_marker
from tablemap.mapping.builder import DescriptorBuilder, default_builder
from tablemap.serialization.tables import peek_record_type

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_JSON_DECODER = json.JSONDecoder()


def to_models(
    rows: Iterable[Sequence[Any]],
    record_type: type[T],
    *,
    has_header: bool = True,
    builder: DescriptorBuilder | None = None,
    context: CoercionContext = DEFAULT_CONTEXT,
) -> Iterator[T]:
    """Lazily convert a 2-D table into records.

    With a header row, columns are matched to fields by name and extra or
    missing cells are tolerated. Without one, every row must have exactly
    one cell per mapped column, in column order.

    Raises:
        NoMatchingColumnsError: If no header cell names a field
        FieldShapeError: If a headerless row has the wrong number of cells
    """
    builder = builder if builder is not None else default_builder()
    base = builder.build(record_type)
    iterator = iter(rows)
    if not has_header:
        return _rows_to_models(base, iterator, context, fixed_shape=True)
    header = next(iterator, None)
    if header is None:
        return iter(())
    columns = builder.resynchronize(base, [_header_text(h) for h in header], match_on="name")
    return _rows_to_models(columns, iterator, context, fixed_shape=False)


def _rows_to_models(
    columns: DescriptorSet,
    rows: Iterator[Sequence[Any]],
    context: CoercionContext,
    *,
    fixed_shape: bool,
) -> Iterator[Any]:
    width = len(columns)
    for row_index, row in enumerate(rows):
        if len(row) != width:
            if fixed_shape:
                raise FieldShapeError(row_index=row_index, expected=width, actual=len(row), row=row)
            logger.warning(
                "Row field count differs from header",
                record_type=columns.record_type.__qualname__,
                row_index=row_index,
                expected=width,
                actual=len(row),
            )
        record = columns.new_record()
        for descriptor, cell in zip(columns, row):
            if cell is None or cell == "":
                continue
            descriptor.set_value(record, cell, context)
        yield record


def to_table(
    items: Iterable[Any],
    *,
    has_header: bool = True,
    record_type: type | None = None,
    builder: DescriptorBuilder | None = None,
    context: CoercionContext = DEFAULT_CONTEXT,
) -> list[list[str | None]]:
    """Convert records into a 2-D string table.

    Cells are canonical invariant text (see coerce to str); None stays
    None. A None item (group divider) becomes a row of None cells.

    Raises:
        ValueError: If items is empty and record_type is not given
    """
    element_type, records = peek_record_type(items, record_type)
    if element_type is None:
        raise ValueError("Cannot determine the record type of an empty sequence; pass record_type")
    builder = builder if builder is not None else default_builder()
    columns = builder.build(element_type)
    table: list[list[str | None]] = [list(columns.names)] if has_header else []
    for item in records:
        if item is None:
            table.append([None] * len(columns))
            continue
        table.append([_cell_text(d.get_value(item), context) for d in columns])
    return table


def json_to_models(
    source: str | TextIO,
    record_type: type[T],
    *,
    builder: DescriptorBuilder | None = None,
    context: CoercionContext = DEFAULT_CONTEXT,
) -> Iterator[T]:
    """Read a JSON 2-D array (first row = field names) into records.

    Null cells leave the field default in place. Only the first array of
    the source is read; see json_to_model_pages() for several in a row.

    Raises:
        ValueError: If the source does not start with a list of lists
    """
    document = next(_json_tables(source), None)
    if document is None:
        raise ValueError("Expected a JSON array of arrays")
    return to_models(document, record_type, has_header=True, builder=builder, context=context)


def json_to_model_pages(
    source: str | TextIO,
    record_types: type | Sequence[type],
    *,
    builder: DescriptorBuilder | None = None,
    context: CoercionContext = DEFAULT_CONTEXT,
) -> Iterator[Iterator[Any]]:
    """Read consecutive JSON 2-D arrays, one record iterator per array.

    The arrays follow each other in the source separated by whitespace,
    e.g. ``[["code"], ["A"]] [["Int"], [1]]``. A single type applies to
    every array; a sequence gives one type per array and reading stops
    after the last one. The whole source is read into memory first.

    Raises:
        ValueError: If a value in the source is not a list of lists
    """
    per_table = isinstance(record_types, Sequence)
    for index, document in enumerate(_json_tables(source)):
        if per_table:
            if index >= len(record_types):  # type: ignore[arg-type]
                return
            record_type = record_types[index]  # type: ignore[index]
        else:
            record_type = record_types
        yield to_models(document, record_type, has_header=True, builder=builder, context=context)


def _json_tables(source: str | TextIO) -> Iterator[list[list[Any]]]:
    text = source if isinstance(source, str) else source.read()
    position = 0
    while True:
        while position < len(text) and text[position].isspace():
            position += 1
        if position >= len(text):
            return
        document, position = _JSON_DECODER.raw_decode(text, position)
        if not isinstance(document, list) or not all(isinstance(row, list) for row in document):
            raise ValueError("Expected a JSON array of arrays")
        yield document


def split_by(items: Iterable[T], key: Callable[[T], Hashable]) -> Iterator[T | None]:
    """Insert a None divider wherever the key changes between neighbours.

    Intended for pre-sorted input, to visually group rows when exported.
    Existing None items pass through, so applying it twice adds nothing.

    Example:
        >>> list(split_by([1, 1, 2, 3, 3], key=lambda n: n))
        [1, 1, None, 2, None, 3, 3]
    """
    has_previous = False
    previous: Any = None
    last_was_divider = False
    for item in items:
        if item is None:
            last_was_divider = True
            yield None
            continue
        current = key(item)
        if has_previous and current != previous and not last_was_divider:
            yield None
        has_previous = True
        previous = current
        last_was_divider = False
        yield item


def _header_text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _cell_text(value: Any, context: CoercionContext) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return strip_marker(value)
    text: str | None = coerce(str, value, nullable=True, context=context)
    return text
