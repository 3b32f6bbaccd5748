# src/tablemap/serialization/tables.py
"""Table-level orchestration shared by the CSV serializer and external table writers.

Export:
    export_tables() pulls descriptors from the builder and pushes one table
    per page into any TableWriterProtocol implementation (a spreadsheet
    document model, or CsvTableWriter). Records are pulled lazily, so an
    unbounded sequence is written in bounded memory.

Import:
    import_table() resynchronizes the descriptors against a raw header row
    and routes each raw cell through the matching setter.

Both sides treat a None item as a group divider (see split_by): it is
exported as an empty row and empty rows are skipped on import.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterable, Iterator, Sequence
from typing import Any, TypeVar

import structlog

from tablemap.codec.writer import CsvWriter
from tablemap.contracts.context import DEFAULT_CONTEXT, CoercionContext
from tablemap.contracts.descriptor import DescriptorSet
from tablemap.contracts.protocols import TableWriterProtocol
from tablemap.core.config import SPREADSHEET_MAX_ROWS
from tablemap.mapping.builder import DescriptorBuilder, default_builder

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = SPREADSHEET_MAX_ROWS - 1


def paginate(items: Iterable[T], page_size: int) -> Iterator[Iterator[T]]:
    """Split one iterable into lazy consecutive pages of at most page_size items.

    Pages share the underlying iterator: consume each page before asking
    for the next one.

    Example:
        >>> [list(page) for page in paginate(range(5), 2)]
        [[0, 1], [2, 3], [4]]
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    iterator = iter(items)
    for first in iterator:
        yield itertools.chain((first,), itertools.islice(iterator, page_size - 1))


def peek_record_type(items: Iterable[Any], record_type: type | None = None) -> tuple[type | None, Iterator[Any]]:
    """Determine the element type of a record sequence without losing any items.

    Leading None dividers are skipped when peeking. Returns (None, iterator)
    for a sequence that holds no records and no explicit type.
    """
    iterator = iter(items)
    if record_type is not None:
        return record_type, iterator
    skipped: list[Any] = []
    for item in iterator:
        if item is not None:
            return type(item), itertools.chain(skipped, (item,), iterator)
        skipped.append(item)
    return None, iter(skipped)


def fill_record(
    columns: DescriptorSet,
    values: Sequence[Any],
    context: CoercionContext = DEFAULT_CONTEXT,
    *,
    row_index: int = 0,
) -> Any:
    """Create a record and set every column from a raw row.

    Missing trailing values are treated as empty and surplus values are
    ignored; either mismatch is logged as a warning. Empty strings are
    passed to setters as None.
    """
    width = len(columns)
    count = len(values)
    if count != width:
        logger.warning(
            "Row field count differs from header",
            record_type=columns.record_type.__qualname__,
            row_index=row_index,
            expected=width,
            actual=count,
        )
    record = columns.new_record()
    for position, descriptor in enumerate(columns):
        value = values[position] if position < count else None
        if isinstance(value, str) and not value:
            value = None
        descriptor.set_value(record, value, context)
    return record


def _is_blank_row(values: Sequence[Any]) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in values)


def _cell_text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


# =============================================================================
# Export
# =============================================================================


def export_tables(
    writer: TableWriterProtocol,
    tables: Iterable[Iterable[Any]],
    *,
    builder: DescriptorBuilder | None = None,
    page_size: int | None = DEFAULT_PAGE_SIZE,
    record_type: type | None = None,
) -> int:
    """Write each record sequence as one or more tables.

    Args:
        writer: Receives begin_table/write_row/end_table calls
        tables: One record sequence per table; element types may differ
            between sequences
        builder: Descriptor source; defaults to the shared builder
        page_size: Records per table before continuing on a new one
            (None for no limit)
        record_type: Element type for every sequence. Needed to write a
            header-only table for an empty sequence.

    Returns:
        Number of records written (dividers excluded).

    Raises:
        NoMappableFieldsError: If a record type has no usable fields
    """
    builder = builder if builder is not None else default_builder()
    total = 0
    for items in tables:
        element_type, records = peek_record_type(items, record_type)
        if element_type is None:
            logger.debug("Skipping empty table of unknown record type")
            continue
        descriptors = builder.build(element_type)
        if page_size is None:
            pages: Iterator[Iterator[Any]] = iter((records,))
        else:
            pages = paginate(records, page_size)
        written_any_page = False
        for page in pages:
            total += _write_table(writer, descriptors, page)
            written_any_page = True
        if not written_any_page:
            # Header-only table for an empty, explicitly typed sequence
            _write_table(writer, descriptors, iter(()))
    return total


def _write_table(writer: TableWriterProtocol, descriptors: DescriptorSet, records: Iterator[Any]) -> int:
    count = 0
    writer.begin_table(descriptors)
    for record in records:
        if record is None:
            writer.write_row(())
            continue
        writer.write_row(descriptors.values(record))
        count += 1
    writer.end_table()
    logger.info("Wrote table", table_name=descriptors.table_name, records=count)
    return count


class CsvTableWriter:
    """TableWriterProtocol adapter over a CsvWriter.

    Each table after the first starts on a new page. Empty rows (group
    dividers) are not written, since the reader would skip them anyway.
    """

    def __init__(self, writer: CsvWriter) -> None:
        self._writer = writer
        self._tables = 0

    @property
    def tables_written(self) -> int:
        return self._tables

    def begin_table(self, descriptors: DescriptorSet) -> None:
        if self._tables:
            self._writer.page_break()
        self._writer.write_fields(descriptors.headers)
        self._writer.end_record()
        self._tables += 1

    def write_row(self, values: Sequence[Any]) -> None:
        if not values:
            return
        self._writer.write_fields(values)
        self._writer.end_record()

    def end_table(self) -> None:
        self._writer.flush()


# =============================================================================
# Import
# =============================================================================


def import_table(
    record_type: type[T],
    header_row: Sequence[Any],
    rows: Iterable[Sequence[Any]],
    *,
    builder: DescriptorBuilder | None = None,
    context: CoercionContext = DEFAULT_CONTEXT,
) -> Iterator[T]:
    """Lazily convert raw table rows into records.

    The header row is matched against the record type's headers; columns
    with no matching field are ignored. Cells may be text or typed values
    as read by a spreadsheet library: every cell goes through coercion.

    Raises:
        NoMatchingColumnsError: If no header matches a field
    """
    builder = builder if builder is not None else default_builder()
    columns = builder.resynchronize(builder.build(record_type), [_cell_text(h) for h in header_row])
    return _import_rows(columns, rows, context)


def _import_rows(columns: DescriptorSet, rows: Iterable[Sequence[Any]], context: CoercionContext) -> Iterator[Any]:
    for row_index, row in enumerate(rows):
        values = list(row)
        if _is_blank_row(values):
            continue
        yield fill_record(columns, values, context, row_index=row_index)
