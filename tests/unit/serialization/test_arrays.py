"""Tests for 2-D table and JSON array conversions."""

from __future__ import annotations

import io

import pytest

from tablemap.contracts.errors import FieldShapeError, NoMatchingColumnsError
from tablemap.mapping.builder import DescriptorBuilder
from tablemap.serialization.arrays import json_to_model_pages, json_to_models, split_by, to_models, to_table
from tests.fixtures.records import Measurement, Other, ScenarioRecord


class TestToModels:
    """Tests for 2-D table import."""

    def test_with_header(self, builder: DescriptorBuilder) -> None:
        rows = [["Bool", "Int", "Nope"], ["yes", "5", "x"], [None, "", "y"]]
        assert list(to_models(rows, ScenarioRecord, builder=builder)) == [
            ScenarioRecord(Int=5, Bool=True),
            ScenarioRecord(),
        ]

    def test_header_matches_names_not_headers(self, builder: DescriptorBuilder) -> None:
        with pytest.raises(NoMatchingColumnsError):
            list(to_models([["Nick"], ["x"]], Other, builder=builder))

    def test_empty_cells_keep_defaults(self, builder: DescriptorBuilder) -> None:
        (record,) = to_models([["id", "name"], ["3", ""]], Measurement, builder=builder)
        assert record == Measurement(id=3)

    def test_ragged_rows_tolerated_with_header(self, builder: DescriptorBuilder) -> None:
        rows = [["code", "total"], ["A"], ["B", "2", "extra"]]
        assert list(to_models(rows, Other, builder=builder)) == [Other("A", 0), Other("B", 2)]

    def test_without_header(self, builder: DescriptorBuilder) -> None:
        rows = [["5", "a", "true"], ["6", "", "false"]]
        assert list(to_models(rows, ScenarioRecord, has_header=False, builder=builder)) == [
            ScenarioRecord(5, "a", True),
            ScenarioRecord(6, None, False),
        ]

    def test_without_header_shape_enforced(self, builder: DescriptorBuilder) -> None:
        records = to_models([["5", "a", "true"], ["6"]], ScenarioRecord, has_header=False, builder=builder)
        assert next(records) == ScenarioRecord(5, "a", True)
        with pytest.raises(FieldShapeError) as exc_info:
            next(records)
        assert (exc_info.value.row_index, exc_info.value.expected, exc_info.value.actual) == (1, 3, 1)

    def test_no_rows(self, builder: DescriptorBuilder) -> None:
        assert list(to_models([], Other, builder=builder)) == []


class TestToTable:
    """Tests for 2-D table export."""

    def test_with_header(self, builder: DescriptorBuilder) -> None:
        table = to_table([ScenarioRecord(8, "007", None), None, ScenarioRecord(1, "x", True)], builder=builder)
        assert table == [
            ["Int", "Str", "Bool"],
            ["8", "007", None],
            [None, None, None],
            ["1", "x", "True"],
        ]

    def test_without_header(self, builder: DescriptorBuilder) -> None:
        assert to_table([Other("A", 1)], has_header=False, builder=builder) == [["A", "1"]]

    def test_empty(self, builder: DescriptorBuilder) -> None:
        with pytest.raises(ValueError):
            to_table([], builder=builder)
        assert to_table([], record_type=Other, builder=builder) == [["code", "total"]]

    def test_round_trip(self, builder: DescriptorBuilder) -> None:
        records = [Other("0042", 7), Other("B", -1)]
        assert list(to_models(to_table(records, builder=builder), Other, builder=builder)) == records


class TestJsonToModels:
    def test_from_text(self, builder: DescriptorBuilder) -> None:
        text = '[["Int", "Str"], [1, "x"], [null, "y"]]'
        assert list(json_to_models(text, ScenarioRecord, builder=builder)) == [
            ScenarioRecord(1, "x"),
            ScenarioRecord(0, "y"),
        ]

    def test_from_stream(self, builder: DescriptorBuilder) -> None:
        stream = io.StringIO('[["code", "total"], ["A", "2"]]')
        assert list(json_to_models(stream, Other, builder=builder)) == [Other("A", 2)]

    @pytest.mark.parametrize("text", ['{"code": "A"}', "[1, 2]", '"text"'])
    def test_rejects_non_tables(self, text: str, builder: DescriptorBuilder) -> None:
        with pytest.raises(ValueError):
            json_to_models(text, Other, builder=builder)

    def test_reads_first_array_only(self, builder: DescriptorBuilder) -> None:
        text = '[["code", "total"], ["A", "2"]]\n[["Int"], [7]]'
        assert list(json_to_models(text, Other, builder=builder)) == [Other("A", 2)]

    def test_empty_source_rejected(self, builder: DescriptorBuilder) -> None:
        with pytest.raises(ValueError):
            json_to_models("  ", Other, builder=builder)


class TestJsonToModelPages:
    """Tests for reading consecutive JSON tables."""

    TEXT = '[["code", "total"], ["A", "2"]]\n[["Int", "Str"], [7, "x"]]\n[["code"], ["B"]]'

    def test_one_type_per_array(self, builder: DescriptorBuilder) -> None:
        pages = json_to_model_pages(self.TEXT, [Other, ScenarioRecord], builder=builder)
        assert [list(page) for page in pages] == [[Other("A", 2)], [ScenarioRecord(7, "x")]]

    def test_single_type_for_every_array(self, builder: DescriptorBuilder) -> None:
        stream = io.StringIO('[["code"], ["A"]] [["total"], [3]]')
        pages = json_to_model_pages(stream, Other, builder=builder)
        assert [list(page) for page in pages] == [[Other("A")], [Other(total=3)]]

    def test_non_table_value_rejected(self, builder: DescriptorBuilder) -> None:
        pages = json_to_model_pages('[["code"], ["A"]] {"code": "B"}', Other, builder=builder)
        assert list(next(pages)) == [Other("A")]
        with pytest.raises(ValueError):
            next(pages)


class TestSplitBy:
    def test_dividers_between_groups(self) -> None:
        assert list(split_by([1, 1, 2, 3, 3], key=lambda n: n)) == [1, 1, None, 2, None, 3, 3]

    def test_existing_dividers_not_doubled(self) -> None:
        assert list(split_by([1, None, 2], key=lambda n: n)) == [1, None, 2]

    def test_idempotent(self) -> None:
        once = list(split_by(["a", "ab", "b"], key=lambda s: s[0]))
        assert list(split_by(once, key=lambda s: s[0])) == once

    def test_empty(self) -> None:
        assert list(split_by([], key=lambda n: n)) == []
