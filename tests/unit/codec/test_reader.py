"""Tests for the streaming CSV reader."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from tablemap.codec.reader import CsvReader


def read_all(text: str, *, chunk_size: int = 4096) -> list[list[str]]:
    return list(CsvReader.from_text(text, chunk_size=chunk_size))


class TestRecords:
    """Tests for splitting text into records and fields."""

    def test_simple_records(self) -> None:
        assert read_all("a,b\nc,d\n") == [["a", "b"], ["c", "d"]]

    def test_missing_final_newline(self) -> None:
        assert read_all("a,b") == [["a", "b"]]

    def test_fields_are_trimmed(self) -> None:
        assert read_all("  a b  ,  c \n") == [["a b", "c"]]

    def test_quoted_delimiter_and_newline(self) -> None:
        assert read_all('x,"hello, world","line1\nline2"\n') == [["x", "hello, world", "line1\nline2"]]

    def test_escaped_quotes_are_content(self) -> None:
        assert read_all('"say ""hi"""\n') == [['say "hi"']]

    def test_quoted_text_is_trimmed_too(self) -> None:
        assert read_all('" padded "\n') == [["padded"]]

    def test_trailing_quoted_empty_field(self) -> None:
        assert read_all('8,"hello, world",""\n') == [["8", "hello, world", ""]]

    def test_empty_middle_field(self) -> None:
        assert read_all("a,,c\n") == [["a", "", "c"]]

    def test_trailing_delimiter_at_end_of_input(self) -> None:
        assert read_all("a,") == [["a", ""]]

    @pytest.mark.parametrize("chunk_size", [1, 2, 3, 4096])
    def test_chunk_size_does_not_change_result(self, chunk_size: int) -> None:
        text = 'a,"b\n""c""",d\n1,2,3\n'
        assert read_all(text, chunk_size=chunk_size) == [["a", 'b\n"c"', "d"], ["1", "2", "3"]]

    def test_invalid_chunk_size(self) -> None:
        with pytest.raises(ValueError):
            CsvReader(io.StringIO(""), chunk_size=0)


class TestContinuation:
    """Tests for records that span physical lines."""

    def test_blank_lines_skipped(self) -> None:
        assert read_all("\n\na\n\n\nb\n\n") == [["a"], ["b"]]

    def test_trailing_delimiter_joins_lines(self) -> None:
        assert read_all("a,b,\nc\n") == [["a", "b", "c"]]

    def test_empty_quoted_line_is_absorbed(self) -> None:
        assert read_all('a,b\n""\nc\n') == [["a", "b"], ["c"]]

    def test_quoted_whitespace_line_is_absorbed(self) -> None:
        # Trimming leaves the line without a field, so it reads as blank
        assert read_all('a\n"   "\nb\n') == [["a"], ["b"]]

    def test_leading_quoted_empty_joins_next_line(self) -> None:
        assert read_all('"",x\n') == [["", "x"]]


class TestControlCharacters:
    """Tests for control character handling."""

    def test_carriage_returns_dropped(self) -> None:
        assert read_all("a,b\r\nc\r\n") == [["a", "b"], ["c"]]

    def test_other_controls_dropped(self) -> None:
        assert read_all("a\tb,c\x00d\n") == [["ab", "cd"]]

    def test_byte_order_mark_skipped(self) -> None:
        assert read_all("\ufeffa,b\n") == [["a", "b"]]

    def test_byte_order_mark_in_binary_stream(self) -> None:
        stream = io.BytesIO("\ufeffä,b\n".encode())
        with CsvReader.from_bytes(stream) as reader:
            assert reader.read_record() == ["ä", "b"]


class TestPages:
    """Tests for form-feed separated pages."""

    def test_two_pages(self) -> None:
        reader = CsvReader.from_text("A\n1,2\f\nB\n3,4\n")
        pages = [list(page) for page in reader.pages()]
        assert pages == [[["A"], ["1", "2"]], [["B"], ["3", "4"]]]

    def test_next_page_skips_unread_records(self) -> None:
        reader = CsvReader.from_text("A\n1\n2\f\nB\n3\n")
        assert reader.read_record() == ["A"]
        assert reader.next_page() is True
        assert reader.read_record() == ["B"]
        assert reader.next_page() is False

    def test_page_break_ends_page(self) -> None:
        reader = CsvReader.from_text("A\f\nB\n")
        assert list(reader) == [["A"]]
        assert reader.end_of_stream is True


class TestCursorState:
    """Tests for the counters and flags a caller can inspect."""

    def test_lazy_fields(self) -> None:
        reader = CsvReader.from_text("a,b,c\nd\n")
        fields = reader.fields()
        assert next(fields) == "a"
        assert reader.field_count == 1
        assert list(fields) == ["b", "c"]
        assert reader.end_of_line is True
        assert reader.read_record() == ["d"]
        assert reader.record_count == 2

    def test_end_of_stream(self) -> None:
        reader = CsvReader.from_text("a\n")
        assert reader.read_record() == ["a"]
        assert reader.read_record() == []
        assert reader.end_of_stream is True


class TestLifecycle:
    """Tests for opening and closing sources."""

    def test_read_after_close(self) -> None:
        reader = CsvReader.from_text("a\nb\n")
        reader.close()
        assert reader.closed
        assert reader.read_record() == []
        assert reader.next_page() is False

    def test_close_is_idempotent(self) -> None:
        reader = CsvReader.from_text("a\n")
        reader.close()
        reader.close()
        assert reader.closed

    def test_binary_stream_left_open(self) -> None:
        stream = io.BytesIO(b"a\n")
        with CsvReader.from_bytes(stream) as reader:
            assert reader.read_record() == ["a"]
        assert not stream.closed

    def test_caller_text_stream_left_open(self) -> None:
        stream = io.StringIO("a\n")
        with CsvReader(stream) as reader:
            reader.read_record()
        assert not stream.closed

    def test_from_path(self, tmp_path: Path) -> None:
        path = tmp_path / "data.csv"
        path.write_bytes("\ufeffName,Qty\r\nWidget,3\r\n".encode())
        with CsvReader.from_path(path) as reader:
            assert list(reader) == [["Name", "Qty"], ["Widget", "3"]]
        assert reader.closed
