"""Tests for descriptor building and header resynchronization."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated

import pytest
from structlog.testing import capture_logs

from tablemap.contracts.enums import ValueType
from tablemap.contracts.errors import NoMappableFieldsError, NoMatchingColumnsError
from tablemap.contracts.localization import DictLookup
from tablemap.core.text import ZERO_WIDTH_SPACE
from tablemap.mapping.builder import (
    DescriptorBuilder,
    build_descriptors,
    classify,
    default_builder,
    resynchronize,
    split_format,
)
from tablemap.mapping.columns import column
from tests.fixtures.records import (
    Color,
    FrozenModel,
    FrozenRecord,
    Labeled,
    Measurement,
    Person,
    RequiredFields,
    ScenarioRecord,
    Unmappable,
)

MEASUREMENT_HEADERS = (
    "id",
    "active",
    "amount",
    "code",
    "color",
    "day",
    "flag",
    "name",
    "ratio",
    "span",
    "stamp",
    "taken",
    "uid",
    "version",
)

FRENCH = DictLookup(
    {
        "fr": {
            "ValueKey": "Valeur (kg)",
            "Labeled": "Étiquettes",
            "Hello": "Bonjour",
            "True": "Vrai",
            "False": "Faux",
            "GREEN": "Vert",
        }
    },
    culture="fr",
)


class TestClassify:
    """Tests for mapping annotations to value types."""

    @pytest.mark.parametrize(
        ("annotation", "expected"),
        [
            (bool, ValueType.BOOLEAN),
            (int, ValueType.INTEGER),
            (datetime, ValueType.DATE),
            (Color, ValueType.ENUM),
            (str, ValueType.STRING),
            (list[int], None),
            (dict, None),
            ("int", None),
        ],
    )
    def test_classify(self, annotation: object, expected: ValueType | None) -> None:
        assert classify(annotation) is expected


class TestSplitFormat:
    @pytest.mark.parametrize(
        ("fmt", "expected"),
        [
            ("F3,2", ("F3", 2)),
            ("n0,-1", ("n0", -1)),
            ("N2, kg", ("N2, kg", 0)),
            ("yyyy-MM-dd", ("yyyy-MM-dd", 0)),
            ("F2", ("F2", 0)),
            (None, (None, 0)),
        ],
    )
    def test_split_format(self, fmt: str | None, expected: tuple[str | None, int]) -> None:
        assert split_format(fmt) == expected


class TestBuild:
    """Tests for building descriptor sets."""

    def test_layout_and_skipped_fields(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(Measurement)
        assert columns.headers == MEASUREMENT_HEADERS
        assert columns.table_name == "MeasurementTable"

    def test_value_types(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(Measurement)
        types = {d.name: d.value_type for d in columns}
        assert types["taken"] is ValueType.DATE
        assert types["day"] is ValueType.DATE
        assert types["stamp"] is ValueType.DATE_OFFSET
        assert types["span"] is ValueType.DURATION
        assert types["uid"] is ValueType.GUID
        assert types["version"] is ValueType.VERSION
        assert types["color"] is ValueType.ENUM
        assert types["amount"] is ValueType.DECIMAL

    def test_nullability(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(Measurement)
        assert columns.get("code").nullable  # type: ignore[union-attr]
        assert not columns.get("name").nullable  # type: ignore[union-attr]

    def test_hints(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(Measurement)
        assert columns[0].hints.frozen is True
        assert columns[1].hints.frozen is False

    def test_explicit_headers_and_units(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(Labeled)
        assert columns.headers == ("Value (kg)", "Units", "Colour", "Label", "OK", "Weight")
        value, weight = columns.get("value"), columns.get("weight")
        assert value is not None and weight is not None
        assert (value.hints.format, value.hints.rel_units_index) == ("F2", 1)
        # Points at the boolean "OK" column, so the reference is dropped
        assert (weight.hints.format, weight.hints.rel_units_index) == ("N1", 0)

    def test_units_offset_outside_table_dropped(self, builder: DescriptorBuilder) -> None:
        @dataclass
        class Reading:
            value: Annotated[float, column(order=0, format="F1,5")] = 0.0
            unit: Annotated[str, column(order=1)] = ""

        assert builder.build(Reading)[0].hints.rel_units_index == 0

    def test_pydantic_model(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(Person)
        assert columns.headers == ("Nick", "age", "email", "name")
        assert columns.table_name == "Person"

    def test_date_offset_override_ignored_on_non_dates(self, builder: DescriptorBuilder) -> None:
        @dataclass
        class Odd:
            count: Annotated[int, column(value_type=ValueType.DATE_OFFSET)] = 0

        assert builder.build(Odd)[0].value_type is ValueType.INTEGER

    def test_frozen_types_rejected(self, builder: DescriptorBuilder) -> None:
        with pytest.raises(TypeError):
            builder.build(FrozenRecord)
        with pytest.raises(TypeError):
            builder.build(FrozenModel)

    def test_unsupported_type_rejected(self, builder: DescriptorBuilder) -> None:
        with pytest.raises(TypeError):
            builder.build(int)

    def test_no_mappable_fields(self, builder: DescriptorBuilder) -> None:
        with pytest.raises(NoMappableFieldsError) as exc_info:
            builder.build(Unmappable)
        assert exc_info.value.record_type is Unmappable

    def test_cached_per_type(self, builder: DescriptorBuilder) -> None:
        first = builder.build(Measurement)
        assert builder.build(Measurement) is first
        builder.clear_cache()
        rebuilt = builder.build(Measurement)
        assert rebuilt is not first
        assert rebuilt == first

    def test_shared_default_builder(self) -> None:
        assert build_descriptors(ScenarioRecord) is default_builder().build(ScenarioRecord)

    def test_one_off_builder_with_lookup(self) -> None:
        columns = build_descriptors(Labeled, lookup=FRENCH)
        assert columns.headers[0] == "Valeur (kg)"
        assert columns.table_name == "Étiquettes"

    def test_new_record_fills_required_fields(self, builder: DescriptorBuilder) -> None:
        record = builder.build(RequiredFields).new_record()
        assert record == RequiredFields(name="", count=0, when=None)


class TestAccessors:
    """Tests for descriptor getters and setters."""

    def test_setter_coerces(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(Measurement)
        record = Measurement()
        columns.get("id").set_value(record, " 42 ")  # type: ignore[union-attr]
        columns.get("active").set_value(record, "yes")  # type: ignore[union-attr]
        columns.get("color").set_value(record, "blue")  # type: ignore[union-attr]
        columns.get("ratio").set_value(record, "garbage")  # type: ignore[union-attr]
        assert (record.id, record.active, record.color, record.ratio) == (42, True, Color.BLUE, 0.0)

    def test_numeric_strings_are_marked(self, builder: DescriptorBuilder) -> None:
        name = builder.build(Measurement).get("name")
        assert name is not None
        record = Measurement(name="007")
        assert name.get_value(record) == "007" + ZERO_WIDTH_SPACE
        name.set_value(record, " 008" + ZERO_WIDTH_SPACE)
        assert record.name == "008"

    def test_empty_string_by_nullability(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(Measurement)
        record = Measurement(name="x", code="y")
        columns.get("name").set_value(record, "")  # type: ignore[union-attr]
        columns.get("code").set_value(record, "  ")  # type: ignore[union-attr]
        assert record.name == ""
        assert record.code is None

    def test_translated_values(self) -> None:
        columns = DescriptorBuilder(lookup=FRENCH).build(Labeled)
        label, ok, colour = columns.get("label"), columns.get("ok"), columns.get("color")
        assert label is not None and ok is not None and colour is not None
        record = Labeled(value=1.0, label="Hello", ok=True, color=Color.GREEN)

        assert label.get_value(record) == "Bonjour"
        assert ok.get_value(record) == "Vrai"
        assert colour.get_value(record) == "Vert"

        label.set_value(record, "bonjour")
        ok.set_value(record, "FAUX")
        colour.set_value(record, "BLUE")
        assert (record.label, record.ok, record.color) == ("Hello", False, Color.BLUE)
        colour.set_value(record, "vert")
        assert record.color is Color.GREEN

    def test_untranslated_values_pass_through(self, builder: DescriptorBuilder) -> None:
        label = builder.build(Labeled).get("label")
        assert label is not None
        record = Labeled(value=1.0, label="Hello")
        assert label.get_value(record) == "Hello"


class TestResynchronize:
    """Tests for matching an observed header row."""

    def test_permuted_headers(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(ScenarioRecord)
        synced = resynchronize(columns, ["bool", " STR ", "Int" + ZERO_WIDTH_SPACE])
        assert synced.names == ("Bool", "Str", "Int")
        assert synced.dummy_count == 0
        assert synced.factory is columns.factory

    def test_unknown_and_repeated_headers_become_dummies(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(ScenarioRecord)
        with capture_logs() as logs:
            synced = resynchronize(columns, ["Int", "Extra", "int", None])
        assert [d.is_dummy for d in synced] == [False, True, True, True]
        assert synced.headers == ("Int", "Extra", "int", "")
        assert [e["header"] for e in logs if e["event"] == "Header has no matching field"] == ["Extra", "int", ""]

    def test_no_match_raises(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(ScenarioRecord)
        with pytest.raises(NoMatchingColumnsError) as exc_info:
            resynchronize(columns, ["A", "B"])
        assert exc_info.value.headers == ("A", "B")
        with pytest.raises(NoMatchingColumnsError):
            resynchronize(columns, [])

    def test_match_on_name(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(Person)
        synced = resynchronize(columns, ["nickname", "Nick"], match_on="name")
        assert [d.is_dummy for d in synced] == [False, True]

    def test_builder_method_delegates(self, builder: DescriptorBuilder) -> None:
        columns = builder.build(Person)
        assert builder.resynchronize(columns, ["name"]).names == ("name",)
