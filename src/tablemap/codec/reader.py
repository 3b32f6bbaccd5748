# src/tablemap/codec/reader.py
"""Streaming CSV reader.

Produces a lazy, forward-only sequence of records, each a lazy sequence of
fields. Nothing is materialized beyond the field being accumulated, so
arbitrarily large streams read in constant memory.

Grammar:
    - Fields are separated by ',' and records by '\\n'.
    - A '"' opens a quoted run; inside it '""' is a literal quote and every
      other character (newlines included) is literal.
    - Leading and trailing spaces are trimmed (quoted or not); escaped quotes
      are content and never trimmed.
    - A newline only ends a record once the line has produced a field and
      the last token was not a ','. Otherwise the record continues on the
      next line: blank lines are skipped and a trailing ',' joins lines.
    - A form feed ends the current page. next_page() resumes after it.
    - Every other control character (including '\\r' and tab) is dropped.

The reader never raises on malformed input; everything is consumed as
literal content. After close(), reads report end of stream immediately.
"""

from __future__ import annotations

import io
from collections.abc import Iterator
from pathlib import Path
from typing import IO, BinaryIO, Self, TextIO

import structlog

logger = structlog.get_logger(__name__)

PAGE_BREAK = "\f"
_BYTE_ORDER_MARK = "\ufeff"


class _CharSource:
    """Buffered character supply that filters control characters.

    next_char() returns None at end of input or at a form feed; the
    ``page_break`` flag tells the two apart.
    """

    __slots__ = ("_stream", "_chunk_size", "_buffer", "_pos", "_started", "exhausted", "page_break")

    def __init__(self, stream: TextIO, chunk_size: int) -> None:
        self._stream = stream
        self._chunk_size = chunk_size
        self._buffer = ""
        self._pos = 0
        self._started = False
        self.exhausted = False
        self.page_break = False

    def _fill(self) -> bool:
        while not self.exhausted:
            chunk = self._stream.read(self._chunk_size)
            if not chunk:
                self.exhausted = True
                break
            if not self._started:
                self._started = True
                chunk = chunk.removeprefix(_BYTE_ORDER_MARK)
            if chunk:
                self._buffer = chunk
                self._pos = 0
                return True
        return False

    def next_char(self) -> str | None:
        while True:
            if self._pos >= len(self._buffer) and not self._fill():
                return None
            c = self._buffer[self._pos]
            self._pos += 1
            if c >= " " or c == "\n":
                return c
            if c == PAGE_BREAK:
                self.page_break = True
                return None

    def peek(self) -> str | None:
        if self._pos >= len(self._buffer) and not self._fill():
            return None
        return self._buffer[self._pos]

    def resume_after_page_break(self) -> bool:
        if not self.page_break:
            return False
        self.page_break = False
        return True


class CsvReader:
    """Pull-based CSV cursor.

    Example:
        with CsvReader.from_path(path) as reader:
            header = reader.read_record()
            for record in reader:
                ...

    Multi-page streams:
        for page in reader.pages():
            for record in page:
                ...
    """

    def __init__(
        self,
        source: TextIO,
        *,
        chunk_size: int = 4096,
        close_source: bool = False,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._stream: IO[str] | None = source
        self._close_source = close_source
        self._detach_source = False
        self._source = _CharSource(source, chunk_size)

        self._eof = False
        self._eol = False
        self._buffer: list[str] = []
        self._trailing_whitespace_index = -1
        self._has_trailing_delimiter = False
        self._line_has_fields = False
        self._field_count = 0
        self._record_count = 0

    # -- construction ---------------------------------------------------------

    @classmethod
    def from_text(cls, text: str, *, chunk_size: int = 4096) -> Self:
        return cls(io.StringIO(text), chunk_size=chunk_size, close_source=True)

    @classmethod
    def from_path(cls, path: str | Path, *, encoding: str = "utf-8", chunk_size: int = 4096) -> Self:
        """Open a file; a UTF-8 byte order mark is skipped."""
        stream = open(path, encoding=_bom_tolerant(encoding), newline="")  # noqa: SIM115 - closed by close()
        return cls(stream, chunk_size=chunk_size, close_source=True)

    @classmethod
    def from_bytes(cls, stream: BinaryIO, *, encoding: str = "utf-8", chunk_size: int = 4096) -> Self:
        """Decode a binary stream. The caller keeps ownership of the stream."""
        wrapper = io.TextIOWrapper(stream, encoding=_bom_tolerant(encoding), newline="")
        reader = cls(wrapper, chunk_size=chunk_size)
        reader._detach_source = True
        return reader

    # -- state ----------------------------------------------------------------

    @property
    def end_of_stream(self) -> bool:
        """True once the current page (or the whole stream) is exhausted.

        Trailing blank lines are only consumed by the next read, so this can
        still be False when no records remain.
        """
        return self._eof

    @property
    def end_of_line(self) -> bool:
        """True when the last fields() call stopped at a record terminator."""
        return self._eol

    @property
    def field_count(self) -> int:
        """Fields yielded so far in the current record."""
        return self._field_count

    @property
    def record_count(self) -> int:
        """Records completed so far across all pages."""
        return self._record_count

    @property
    def closed(self) -> bool:
        return self._stream is None

    # -- reading --------------------------------------------------------------

    def fields(self) -> Iterator[str]:
        """Lazily yield the fields of the next logical record.

        If a previous fields() iterator was abandoned mid-record, this
        continues from where it stopped.
        """
        if self._eof:
            return

        source = self._source
        quoted = False
        self._eol = False
        self._buffer.clear()
        self._has_trailing_delimiter = False
        self._line_has_fields = False
        self._trailing_whitespace_index = -1
        self._field_count = 0

        while (c := source.next_char()) is not None:
            if quoted:
                if c == '"':
                    if source.peek() == '"':
                        source.next_char()
                        self._append(c)
                        continue
                    quoted = False
                    continue
                self._append(c)
                continue

            if c == '"':
                quoted = True
                self._has_trailing_delimiter = False
                continue
            if c == ",":
                self._has_trailing_delimiter = True
                yield self._take_field()
                continue
            if c == "\n":
                if (not self._line_has_fields or self._has_trailing_delimiter) and not self._buffer:
                    # Blank line or trailing delimiter: the record continues
                    self._line_has_fields = False
                    self._has_trailing_delimiter = False
                    continue
                self._eol = True
                yield self._take_field()
                self._record_count += 1
                return
            self._append(c)

        self._eof = True
        if self._has_trailing_delimiter and not self._buffer:
            # A delimiter preceded the end of input: one final empty field
            self._field_count += 1
            self._record_count += 1
            yield ""
            return
        if not self._buffer:
            return
        self._record_count += 1
        yield self._take_field()

    def read_record(self) -> list[str]:
        """Read the next record; an empty list means the page is exhausted."""
        return list(self.fields())

    def __iter__(self) -> Iterator[list[str]]:
        """Yield the remaining records of the current page."""
        while not self._eof:
            record = self.read_record()
            if record:
                yield record

    def next_page(self) -> bool:
        """Skip the rest of the current page and position at the next one.

        Returns False when no page follows (end of input, or closed).
        """
        for _ in self:
            pass
        if self.closed or not self._source.resume_after_page_break():
            return False
        self._eof = False
        self._eol = False
        logger.debug("CSV page break", records_so_far=self._record_count)
        return True

    def pages(self) -> Iterator[Iterator[list[str]]]:
        """Yield a record iterator per page of a multi-page stream."""
        if self._eof and not self._source.page_break:
            return
        while True:
            yield iter(self)
            if not self.next_page():
                return

    # -- lifecycle ------------------------------------------------------------

    def close(self) -> None:
        """Release the source; later reads report end of stream."""
        self._eof = True
        stream, self._stream = self._stream, None
        if stream is None:
            return
        if self._detach_source and isinstance(stream, io.TextIOWrapper):
            stream.detach()
        elif self._close_source:
            stream.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- accumulator ----------------------------------------------------------

    def _append(self, c: str) -> None:
        if c == " ":
            if not self._buffer:
                return
            if self._trailing_whitespace_index < 0:
                self._trailing_whitespace_index = len(self._buffer)
        else:
            self._trailing_whitespace_index = -1
        self._has_trailing_delimiter = False
        self._buffer.append(c)

    def _take_field(self) -> str:
        self._field_count += 1
        self._line_has_fields = True
        if self._trailing_whitespace_index >= 0:
            del self._buffer[self._trailing_whitespace_index :]
            self._trailing_whitespace_index = -1
        field = "".join(self._buffer)
        self._buffer.clear()
        return field


def _bom_tolerant(encoding: str) -> str:
    return "utf-8-sig" if encoding.replace("_", "-").lower() in ("utf-8", "utf8") else encoding
