# src/tablemap/mapping/introspection.py
"""RecordIntrospector implementations for dataclasses and pydantic models.

The builder only talks to the RecordIntrospector protocol, so other record
flavours plug in by passing a custom introspector to DescriptorBuilder.

Records are filled one column at a time, so they must be mutable. Frozen
dataclasses and frozen pydantic models are rejected when their fields are
listed. Required fields are zero-filled by new_record() and then
overwritten by the importer.
"""

import dataclasses
import functools
import types
import typing
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel

from tablemap.contracts.descriptor import FieldInfo
from tablemap.contracts.protocols import RecordIntrospector
from tablemap.core.coercion import zero_value
from tablemap.mapping.columns import find_options


def unwrap_annotation(annotation: Any) -> tuple[Any, bool, tuple[Any, ...]]:
    """Strip ``Annotated`` layers and ``| None`` from a field annotation.

    Returns:
        (base type, nullable, collected Annotated metadata)

    Example:
        >>> unwrap_annotation(Annotated[int, "meta"] | None)
        (<class 'int'>, True, ('meta',))
    """
    metadata: list[Any] = []
    nullable = False
    while True:
        origin = typing.get_origin(annotation)
        if origin is typing.Annotated:
            metadata.extend(annotation.__metadata__)
            annotation = typing.get_args(annotation)[0]
            continue
        if origin is typing.Union or origin is types.UnionType:
            args = typing.get_args(annotation)
            members = [a for a in args if a is not type(None)]
            nullable = nullable or len(members) != len(args)
            if len(members) == 1:
                annotation = members[0]
                continue
        return annotation, nullable, tuple(metadata)


def _blank_value(info: FieldInfo) -> Any:
    if info.nullable:
        return None
    if info.annotation is str:
        return ""
    return zero_value(info.annotation)


class DataclassIntrospector:
    """Introspects mutable ``@dataclass`` types.

    Column metadata comes from ``Annotated`` metadata or from
    ``field(metadata={"tablemap": column(...)})``; the former wins.
    """

    def supports(self, record_type: type) -> bool:
        return isinstance(record_type, type) and dataclasses.is_dataclass(record_type)

    def list_fields(self, record_type: type) -> Sequence[FieldInfo]:
        if record_type.__dataclass_params__.frozen:  # type: ignore[attr-defined]
            raise TypeError(f"{record_type.__qualname__} is a frozen dataclass; records must be mutable")
        hints = typing.get_type_hints(record_type, include_extras=True)
        infos: list[FieldInfo] = []
        for index, f in enumerate(dataclasses.fields(record_type)):
            annotation, nullable, metadata = unwrap_annotation(hints.get(f.name, f.type))
            options = find_options(metadata) or find_options(f.metadata)
            infos.append(FieldInfo(name=f.name, annotation=annotation, nullable=nullable, index=index, options=options))
        return infos

    def get_value(self, record: Any, field: FieldInfo) -> Any:
        return getattr(record, field.name)

    def set_value(self, record: Any, field: FieldInfo, value: Any) -> None:
        setattr(record, field.name, value)

    def new_record(self, record_type: type) -> Any:
        return record_type(**_dataclass_blanks(record_type))


class PydanticIntrospector:
    """Introspects ``pydantic.BaseModel`` subclasses.

    Blank records are made with ``model_construct`` so no validators run on
    the zero-filled placeholders. Assignment goes through ``setattr``; models
    with ``validate_assignment`` enabled validate every coerced value.
    """

    def supports(self, record_type: type) -> bool:
        return isinstance(record_type, type) and issubclass(record_type, BaseModel)

    def list_fields(self, record_type: type) -> Sequence[FieldInfo]:
        model: type[BaseModel] = record_type
        if model.model_config.get("frozen"):
            raise TypeError(f"{record_type.__qualname__} is a frozen model; records must be mutable")
        infos: list[FieldInfo] = []
        for index, (name, model_field) in enumerate(model.model_fields.items()):
            annotation, nullable, metadata = unwrap_annotation(model_field.annotation)
            options = find_options(tuple(model_field.metadata) + metadata)
            if options is None and isinstance(model_field.json_schema_extra, dict):
                options = find_options(model_field.json_schema_extra)
            infos.append(FieldInfo(name=name, annotation=annotation, nullable=nullable, index=index, options=options))
        return infos

    def get_value(self, record: Any, field: FieldInfo) -> Any:
        return getattr(record, field.name)

    def set_value(self, record: Any, field: FieldInfo, value: Any) -> None:
        setattr(record, field.name, value)

    def new_record(self, record_type: type) -> Any:
        model: type[BaseModel] = record_type
        return model.model_construct(**_model_blanks(record_type))


@functools.cache
def _dataclass_blanks(record_type: type) -> dict[str, Any]:
    """Placeholder arguments for the required init fields of a dataclass."""
    infos = {info.name: info for info in DataclassIntrospector().list_fields(record_type)}
    return {
        f.name: _blank_value(infos[f.name])
        for f in dataclasses.fields(record_type)
        if f.init and f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
    }


@functools.cache
def _model_blanks(record_type: type) -> dict[str, Any]:
    """Placeholder values for the required fields of a pydantic model."""
    model: type[BaseModel] = record_type
    infos = {info.name: info for info in PydanticIntrospector().list_fields(record_type)}
    return {name: _blank_value(infos[name]) for name, f in model.model_fields.items() if f.is_required()}


DEFAULT_INTROSPECTORS: tuple[RecordIntrospector, ...] = (DataclassIntrospector(), PydanticIntrospector())


def introspector_for(
    record_type: type,
    introspectors: Sequence[RecordIntrospector] = DEFAULT_INTROSPECTORS,
) -> RecordIntrospector:
    """First introspector that supports the record type.

    Raises:
        TypeError: If none does
    """
    for introspector in introspectors:
        if introspector.supports(record_type):
            return introspector
    raise TypeError(
        f"{getattr(record_type, '__qualname__', record_type)!s} is not a dataclass or pydantic model; "
        "pass a RecordIntrospector that supports it"
    )
