"""Shared contracts for the mapping core.

This package is a leaf: it depends on nothing else in tablemap. Settings
classes live in tablemap.core.config and are not re-exported here.
"""

from tablemap.contracts.context import DEFAULT_CONTEXT, CoercionContext
from tablemap.contracts.descriptor import (
    ColumnDescriptor,
    ColumnOptions,
    DescriptorSet,
    FieldInfo,
    PresentationHints,
)
from tablemap.contracts.enums import DateInterpretation, Justification, ValueType
from tablemap.contracts.errors import (
    FieldShapeError,
    MappingError,
    NoMappableFieldsError,
    NoMatchingColumnsError,
    TablemapError,
)
from tablemap.contracts.localization import DictLookup, NullLookup, StringLookup
from tablemap.contracts.protocols import RecordIntrospector, TableWriterProtocol
from tablemap.contracts.types import Ticks, Version

__all__ = [
    "DEFAULT_CONTEXT",
    "CoercionContext",
    "ColumnDescriptor",
    "ColumnOptions",
    "DateInterpretation",
    "DescriptorSet",
    "DictLookup",
    "FieldInfo",
    "FieldShapeError",
    "Justification",
    "MappingError",
    "NoMappableFieldsError",
    "NoMatchingColumnsError",
    "NullLookup",
    "PresentationHints",
    "RecordIntrospector",
    "StringLookup",
    "TableWriterProtocol",
    "TablemapError",
    "Ticks",
    "ValueType",
    "Version",
]
