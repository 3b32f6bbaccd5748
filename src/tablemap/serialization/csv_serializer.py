# src/tablemap/serialization/csv_serializer.py
"""CSV serialization orchestrator: record sequences to and from CSV streams.

Write:
    Descriptors come from the builder; every record is read through the
    descriptor getters and streamed straight into a CsvWriter. Each record
    sequence becomes one page (header row + data rows), pages are separated
    by a form feed line.

Read:
    The first record of a page is its header row. Descriptors are
    resynchronized against it, so columns may appear in any order and
    unknown columns are ignored. Records are yielded one at a time.

Sinks and sources may be text streams, paths, or an existing CsvWriter/
CsvReader. Streams passed in are never closed here.
"""

from __future__ import annotations

import contextlib
import io
import os
from collections.abc import Callable, Iterable, Iterator, Sequence
from pathlib import Path
from typing import Any, TextIO, TypeVar

import structlog

from tablemap.codec.reader import CsvReader
from tablemap.codec.writer import CsvWriter
from tablemap.contracts.context import DEFAULT_CONTEXT, CoercionContext
from tablemap.contracts.localization import StringLookup
from tablemap.core.config import TablemapSettings
from tablemap.mapping.builder import DescriptorBuilder
from tablemap.serialization.tables import CsvTableWriter, export_tables, fill_record

logger = structlog.get_logger(__name__)

T = TypeVar("T")

CsvSink = TextIO | CsvWriter | str | os.PathLike[str]
CsvSource = TextIO | CsvReader | str | os.PathLike[str]


class CsvSerializer:
    """Serializes record sequences to CSV and back.

    Example:
        serializer = CsvSerializer()
        with open("people.csv", "w", newline="") as f:
            serializer.serialize(f, people)
        with open("people.csv", newline="") as f:
            for person in serializer.deserialize(f, Person):
                ...

    Args:
        builder: Descriptor source. Defaults to a new builder over lookup.
        lookup: Localized-string lookup for a default builder. Not allowed
            together with builder.
        context: Date interpretation applied when writing and reading
        newline: Record separator; None uses the platform newline
        encoding: Used when a path is given
        chunk_size: Reader buffer size in characters
        page_size: Records per page before continuing on a new page (None
            for no limit)
    """

    def __init__(
        self,
        builder: DescriptorBuilder | None = None,
        *,
        lookup: StringLookup | None = None,
        context: CoercionContext = DEFAULT_CONTEXT,
        newline: str | None = None,
        encoding: str = "utf-8",
        chunk_size: int = 4096,
        page_size: int | None = None,
    ) -> None:
        if builder is not None and lookup is not None:
            raise ValueError("Pass either a builder or a lookup, not both")
        if page_size is not None and page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self._builder = builder if builder is not None else DescriptorBuilder(lookup=lookup)
        self._context = context
        self._newline = newline
        self._encoding = encoding
        self._chunk_size = chunk_size
        self._page_size = page_size

    @classmethod
    def from_settings(
        cls,
        settings: TablemapSettings,
        *,
        lookup: StringLookup | None = None,
        builder: DescriptorBuilder | None = None,
    ) -> CsvSerializer:
        """Create a serializer configured from loaded settings."""
        return cls(
            builder,
            lookup=lookup,
            context=settings.coercion.context(),
            newline=settings.codec.newline,
            encoding=settings.codec.encoding,
            chunk_size=settings.codec.chunk_size,
            page_size=settings.max_records_per_page,
        )

    @property
    def builder(self) -> DescriptorBuilder:
        return self._builder

    @property
    def context(self) -> CoercionContext:
        return self._context

    # -- writing --------------------------------------------------------------

    def serialize(self, sink: CsvSink, items: Iterable[Any], *, record_type: type | None = None) -> int:
        """Write one record sequence as a single page.

        Args:
            sink: Text stream, path, or CsvWriter
            items: Records of one type; None items are skipped
            record_type: Element type. Required when items may be empty.

        Returns:
            Number of records written.

        Raises:
            ValueError: If items is empty and record_type is not given
            NoMappableFieldsError: If the record type has no usable fields
        """
        items = iter(items)
        if record_type is None:
            first = next((item for item in items if item is not None), None)
            if first is None:
                raise ValueError("Cannot determine the record type of an empty sequence; pass record_type")
            record_type = type(first)
            items = _prepend(first, items)
        return self.serialize_pages(sink, [items], record_type=record_type)

    def serialize_pages(
        self,
        sink: CsvSink,
        pages: Iterable[Iterable[Any]],
        *,
        record_type: type | None = None,
    ) -> int:
        """Write several record sequences, one page each; the types may differ."""
        with self._open_writer(sink) as writer:
            return export_tables(
                CsvTableWriter(writer),
                pages,
                builder=self._builder,
                page_size=self._page_size,
                record_type=record_type,
            )

    def dumps(self, items: Iterable[Any], *, record_type: type | None = None) -> str:
        """Serialize to a string."""
        buffer = io.StringIO()
        self.serialize(buffer, items, record_type=record_type)
        return buffer.getvalue()

    # -- reading --------------------------------------------------------------

    def deserialize(self, source: CsvSource, record_type: type[T]) -> Iterator[T]:
        """Lazily read the records of the first page.

        The header row is read and matched on first iteration.

        Raises:
            NoMatchingColumnsError: If no header matches a field
        """
        with self._open_reader(source) as reader:
            yield from self._read_page(reader, record_type, lambda: True)

    def deserialize_pages(
        self,
        source: CsvSource,
        record_types: type | Sequence[type],
    ) -> Iterator[Iterator[Any]]:
        """Yield a lazy record iterator per page.

        A single type applies to every page; a sequence gives one type per
        page and reading stops after the last one. Each page must be read
        before the next is requested; unread records of a page are skipped.
        """
        per_page = isinstance(record_types, Sequence)
        with self._open_reader(source) as reader:
            page = 0
            while True:
                if per_page:
                    if page >= len(record_types):  # type: ignore[arg-type]
                        return
                    record_type = record_types[page]  # type: ignore[index]
                else:
                    record_type = record_types
                yield self._read_page(reader, record_type, _still_on(lambda: page, page))
                if not reader.next_page():
                    return
                page += 1

    def loads(self, text: str, record_type: type[T]) -> list[T]:
        """Deserialize the first page of a CSV string."""
        return list(self.deserialize(io.StringIO(text), record_type))

    def _read_page(self, reader: CsvReader, record_type: type[T], is_current: Callable[[], bool]) -> Iterator[T]:
        if not is_current():
            return
        headers = reader.read_record()
        if not headers:
            return
        columns = self._builder.resynchronize(self._builder.build(record_type), headers)
        rows = iter(reader)
        row_index = 0
        # Checked before every pull: a later page may already own the reader
        while is_current():
            fields = next(rows, None)
            if fields is None:
                return
            yield fill_record(columns, fields, self._context, row_index=row_index)
            row_index += 1

    # -- streams --------------------------------------------------------------

    @contextlib.contextmanager
    def _open_writer(self, sink: CsvSink) -> Iterator[CsvWriter]:
        if isinstance(sink, CsvWriter):
            yield sink
            sink.flush()
            return
        if isinstance(sink, str | os.PathLike):
            with CsvWriter.from_path(Path(sink), encoding=self._encoding, newline=self._newline, context=self._context) as writer:
                yield writer
            return
        writer = CsvWriter(sink, newline=self._newline, context=self._context)
        try:
            yield writer
        finally:
            writer.close()

    @contextlib.contextmanager
    def _open_reader(self, source: CsvSource) -> Iterator[CsvReader]:
        if isinstance(source, CsvReader):
            yield source
            return
        if isinstance(source, str | os.PathLike):
            with CsvReader.from_path(Path(source), encoding=self._encoding, chunk_size=self._chunk_size) as reader:
                yield reader
            return
        with CsvReader(source, chunk_size=self._chunk_size) as reader:
            yield reader


def _prepend(first: Any, rest: Iterator[Any]) -> Iterator[Any]:
    yield first
    yield from rest


def _still_on(current: Callable[[], int], page: int) -> Callable[[], bool]:
    return lambda: current() == page
