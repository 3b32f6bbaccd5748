"""Serialization orchestrators: CSV streams, external table writers, 2-D tables."""

from tablemap.serialization.arrays import json_to_model_pages, json_to_models, split_by, to_models, to_table
from tablemap.serialization.csv_serializer import CsvSerializer
from tablemap.serialization.tables import (
    DEFAULT_PAGE_SIZE,
    CsvTableWriter,
    export_tables,
    fill_record,
    import_table,
    paginate,
    peek_record_type,
)

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "CsvSerializer",
    "CsvTableWriter",
    "export_tables",
    "fill_record",
    "import_table",
    "json_to_model_pages",
    "json_to_models",
    "paginate",
    "peek_record_type",
    "split_by",
    "to_models",
    "to_table",
]
