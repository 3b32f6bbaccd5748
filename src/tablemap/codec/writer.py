# src/tablemap/codec/writer.py
"""Streaming CSV writer.

Each field is written to the sink as soon as it is given, so the writer
holds nothing beyond the current row's position and can emit unbounded
streams. Separators: ',' between fields, the platform newline between
records, and a form feed plus newline between pages.

Trailing Empty Fields:
    A record whose last field is empty would end in ',', which the reader
    takes as "record continues on the next line". The writer therefore
    emits a final empty field as "".
"""

from __future__ import annotations

import io
import os
from collections.abc import Iterable
from pathlib import Path
from typing import IO, Any, BinaryIO, Self, TextIO

from tablemap.codec.formatting import format_field
from tablemap.codec.reader import PAGE_BREAK
from tablemap.contracts.context import DEFAULT_CONTEXT, CoercionContext

FIELD_SEPARATOR = ","
_EMPTY_QUOTED = '""'


class CsvWriter:
    """Push-based CSV cursor over a text sink.

    Example:
        with CsvWriter.from_path(path) as writer:
            writer.write_fields(["Int", "Str", "Bool"])
            writer.end_record()
            writer.write_fields([8, "hello, world", None])
            writer.end_record()

    Writes after close() are ignored.
    """

    def __init__(
        self,
        sink: TextIO,
        *,
        newline: str | None = None,
        context: CoercionContext = DEFAULT_CONTEXT,
        close_sink: bool = False,
    ) -> None:
        self._sink: IO[str] | None = sink
        self._newline = newline if newline is not None else os.linesep
        self._context = context
        self._close_sink = close_sink
        self._detach_sink = False
        self._pending_empty = False
        self._field_index = 0
        self._field_count = 0
        self._record_count = 0

    @classmethod
    def from_path(
        cls,
        path: str | Path,
        *,
        encoding: str = "utf-8",
        newline: str | None = None,
        context: CoercionContext = DEFAULT_CONTEXT,
    ) -> Self:
        """Create (or truncate) a file. No byte order mark is written."""
        sink = open(path, "w", encoding=encoding, newline="")  # noqa: SIM115 - closed by close()
        return cls(sink, newline=newline, context=context, close_sink=True)

    @classmethod
    def from_bytes(
        cls,
        stream: BinaryIO,
        *,
        encoding: str = "utf-8",
        newline: str | None = None,
        context: CoercionContext = DEFAULT_CONTEXT,
    ) -> Self:
        """Encode onto a binary stream. The caller keeps ownership of the stream."""
        wrapper = io.TextIOWrapper(stream, encoding=encoding, newline="", write_through=True)
        writer = cls(wrapper, newline=newline, context=context)
        writer._detach_sink = True
        return writer

    @staticmethod
    def join(items: Iterable[Any], context: CoercionContext = DEFAULT_CONTEXT) -> str:
        """Render one record as CSV text, without a record separator."""
        buffer = io.StringIO()
        writer = CsvWriter(buffer, context=context)
        writer.write_fields(items)
        writer.close()
        return buffer.getvalue()

    @property
    def field_index(self) -> int:
        """Fields written so far in the current record."""
        return self._field_index

    @property
    def field_count(self) -> int:
        """Widest record written so far."""
        return self._field_count

    @property
    def record_count(self) -> int:
        return self._record_count

    @property
    def closed(self) -> bool:
        return self._sink is None

    @property
    def context(self) -> CoercionContext:
        return self._context

    def write_field(self, item: Any) -> None:
        sink = self._sink
        if sink is None:
            return
        if self._field_index > 0:
            sink.write(FIELD_SEPARATOR)
        self._field_index += 1
        text = format_field(item, self._context)
        self._pending_empty = not text
        if text:
            sink.write(text)

    def write_fields(self, items: Iterable[Any]) -> None:
        for item in items:
            self.write_field(item)

    def end_record(self) -> None:
        sink = self._sink
        if sink is None:
            return
        self._finish_record(sink)
        sink.write(self._newline)

    def page_break(self) -> None:
        """End the current page; the next record starts a new header+data table."""
        sink = self._sink
        if sink is None:
            return
        if self._field_index > 0:
            self.end_record()
        sink.write(PAGE_BREAK + self._newline)

    def flush(self) -> None:
        if self._sink is not None:
            self._sink.flush()

    def close(self) -> None:
        """Finish a partial record and release the sink. Idempotent."""
        sink = self._sink
        if sink is None:
            return
        if self._field_index > 0:
            self._finish_record(sink)
        self._sink = None
        if self._detach_sink and isinstance(sink, io.TextIOWrapper):
            sink.flush()
            sink.detach()
        elif self._close_sink:
            sink.close()
        else:
            sink.flush()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _finish_record(self, sink: IO[str]) -> None:
        if self._pending_empty:
            sink.write(_EMPTY_QUOTED)
            self._pending_empty = False
        self._record_count += 1
        self._field_count = max(self._field_count, self._field_index)
        self._field_index = 0
