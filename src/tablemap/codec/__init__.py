"""CSV text codec: streaming reader and writer."""

from tablemap.codec.formatting import format_field, quote_text
from tablemap.codec.reader import PAGE_BREAK, CsvReader
from tablemap.codec.writer import CsvWriter

__all__ = ["PAGE_BREAK", "CsvReader", "CsvWriter", "format_field", "quote_text"]
