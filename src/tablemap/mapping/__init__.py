"""Property descriptor builder: record types to ordered column descriptors."""

from tablemap.mapping.builder import (
    DescriptorBuilder,
    build_descriptors,
    classify,
    default_builder,
    layout,
    resynchronize,
    split_format,
)
from tablemap.mapping.columns import COLUMN_METADATA_KEY, column, table
from tablemap.mapping.introspection import (
    DataclassIntrospector,
    PydanticIntrospector,
    introspector_for,
    unwrap_annotation,
)

__all__ = [
    "COLUMN_METADATA_KEY",
    "DataclassIntrospector",
    "DescriptorBuilder",
    "PydanticIntrospector",
    "build_descriptors",
    "classify",
    "column",
    "default_builder",
    "introspector_for",
    "layout",
    "resynchronize",
    "split_format",
    "table",
    "unwrap_annotation",
]
