"""Tests for the streaming row parser."""

import json
from collections.abc import Sequence
from typing import Any

import pytest
from entities import Album
from pydantic import BaseModel

from settee import Row, RowShape, Serializer, select_row_shape
from settee._rows import iter_rows
from settee._tokens import PROPERTY_NAME, JsonTokenReader


def reader_at_rows(body: bytes | str) -> JsonTokenReader:
    """Position a reader on the value of the top-level "rows" property."""
    reader = JsonTokenReader(body)
    while reader.read():
        if reader.token == PROPERTY_NAME and reader.depth == 1 and reader.value == "rows":
            reader.read()
            return reader
    raise AssertionError("no rows property")


def parse(body, value_type: Any = str, serializer: Serializer | None = None) -> list[Row]:
    shape = select_row_shape(value_type)
    return list(
        iter_rows(reader_at_rows(body), shape, value_type, serializer or Serializer())
    )


SCALAR_BODY = json.dumps(
    {
        "total_rows": 4,
        "offset": 0,
        "rows": [
            {"id": "a", "key": "Fray", "value": "How to Save a Life"},
            {"id": "b", "key": 2012, "value": 42},
            {"id": "c", "key": ["x", 1], "value": {"n": [1, 2]}},
            {"id": "d", "key": None, "value": None},
        ],
    }
)


class TestSelectRowShape:
    """Tests for select_row_shape."""

    @pytest.mark.parametrize(
        ("value_type", "shape"),
        [
            (str, RowShape.SCALAR),
            (list[str], RowShape.SCALAR_ARRAY),
            (tuple[str, ...], RowShape.SCALAR_ARRAY),
            (Sequence[str], RowShape.SCALAR_ARRAY),
            (list[int], RowShape.OBJECT),
            (tuple[str, str], RowShape.OBJECT),
            (dict[str, Any], RowShape.OBJECT),
            (Album, RowShape.OBJECT),
            (int, RowShape.OBJECT),
        ],
    )
    def test_shapes(self, value_type: Any, shape: RowShape) -> None:
        assert select_row_shape(value_type) is shape


class TestScalarRows:
    """Tests for the scalar strategy."""

    def test_values_as_text(self) -> None:
        rows = parse(SCALAR_BODY)
        assert rows == [
            Row(id="a", key="Fray", value="How to Save a Life"),
            Row(id="b", key="2012", value="42"),
            Row(id="c", key='["x",1]', value='{"n":[1,2]}'),
            Row(id="d", key=None, value="null"),
        ]

    def test_null_value_is_json_text(self) -> None:
        body = '{"rows":[{"id":"a","key":null,"value":null}]}'
        assert parse(body) == [Row(id="a", key=None, value="null")]

    def test_order_and_count_match_full_parse(self) -> None:
        expected = json.loads(SCALAR_BODY)["rows"]
        rows = parse(SCALAR_BODY)
        assert len(rows) == len(expected)
        assert [r.id for r in rows] == [r["id"] for r in expected]

    def test_property_names_are_case_insensitive(self) -> None:
        body = '{"rows":[{"ID":"a","Key":"k","VALUE":"v"}]}'
        assert parse(body) == [Row(id="a", key="k", value="v")]

    def test_property_order_within_row_does_not_matter(self) -> None:
        body = '{"rows":[{"value":"v","key":"k","id":"a"}]}'
        assert parse(body) == [Row(id="a", key="k", value="v")]

    def test_empty_rows(self) -> None:
        assert parse('{"rows":[]}') == []

    def test_rows_not_an_array(self) -> None:
        assert parse('{"rows":null}') == []
        assert parse('{"rows":{"id":"a","key":"k","value":"v"}}') == []

    def test_reduce_rows_without_id_are_not_yielded(self) -> None:
        body = '{"rows":[{"key":null,"value":12}]}'
        assert parse(body) == []

    def test_include_docs_is_passed_over(self) -> None:
        body = json.dumps(
            {
                "rows": [
                    {
                        "id": "a",
                        "key": "k",
                        "value": "v",
                        "doc": {"_id": "a", "id": "nested", "key": "x", "value": [1]},
                    },
                    {
                        "doc": {"id": "z", "key": "z", "value": "z"},
                        "id": "b",
                        "key": "k2",
                        "value": "v2",
                    },
                ]
            }
        )
        assert parse(body) == [
            Row(id="a", key="k", value="v"),
            Row(id="b", key="k2", value="v2"),
        ]

    def test_stops_at_end_of_rows(self) -> None:
        reader = reader_at_rows('{"rows":[{"id":"a","key":"k","value":"v"}],"after":1}')
        rows = list(iter_rows(reader, RowShape.SCALAR))
        assert len(rows) == 1
        assert reader.read()
        assert (reader.token, reader.value) == (PROPERTY_NAME, "after")


class TestScalarArrayRows:
    """Tests for the array-of-scalars strategy."""

    def test_single_row(self) -> None:
        body = '{"total_rows":3,"offset":0,"rows":[{"id":"a","key":"k1","value":["x","y"]}]}'
        assert parse(body, list[str]) == [Row(id="a", key="k1", value=("x", "y"))]

    def test_mixed_elements_as_text(self) -> None:
        body = '{"rows":[{"id":"a","key":"k","value":["x",1,true,null,{"b":[2]}]}]}'
        (row,) = parse(body, list[str])
        assert row.value == ("x", "1", "true", "null", '{"b":[2]}')

    def test_nested_arrays_keep_length_and_order(self) -> None:
        value = [["a", ["b", ["c"]]], "d", [[["e"]]]]
        body = json.dumps({"rows": [{"id": "a", "key": "k", "value": value}]})
        (row,) = parse(body, tuple[str, ...])
        assert len(row.value) == 3
        assert row.value == ('["a",["b",["c"]]]', "d", '[[["e"]]]')

    def test_each_row_gets_its_own_tuple(self) -> None:
        body = json.dumps(
            {
                "rows": [
                    {"id": str(i), "key": str(i), "value": [str(i), str(i + 1)]}
                    for i in range(50)
                ]
            }
        )
        rows = parse(body, Sequence[str])
        assert len(rows) == 50
        assert rows[0].value == ("0", "1")
        assert rows[49].value == ("49", "50")
        assert rows[0].value is not rows[1].value

    def test_non_array_value(self) -> None:
        body = '{"rows":[{"id":"a","key":"k","value":"solo"},{"id":"b","key":"k","value":null}]}'
        assert [r.value for r in parse(body, list[str])] == [("solo",), None]

    def test_exponent_numbers(self) -> None:
        body = '{"rows":[{"id":"a","key":1e2,"value":[1.50,2E3]}]}'
        assert parse(body, list[str]) == [Row(id="a", key="1e2", value=("1.50", "2e3"))]

    def test_empty_array(self) -> None:
        body = '{"rows":[{"id":"a","key":"k","value":[]}]}'
        assert parse(body, list[str])[0].value == ()


class TestObjectRows:
    """Tests for the object strategy."""

    def test_values_deserialized(self) -> None:
        body = json.dumps(
            {
                "rows": [
                    {"id": "a", "key": "k", "value": {"name": "Reason", "releaseYear": 2005}},
                    {"id": "b", "key": "k", "value": {"name": "Helios"}},
                ]
            }
        )
        assert [r.value for r in parse(body, Album)] == [
            Album(name="Reason", release_year=2005),
            Album(name="Helios"),
        ]

    def test_generic_values(self) -> None:
        body = '{"rows":[{"id":"a","key":"k","value":[1,2,3]},{"id":"b","key":"k","value":[]}]}'
        assert [r.value for r in parse(body, list[int])] == [[1, 2, 3], []]

    def test_null_value(self) -> None:
        class Stats(BaseModel):
            count: int = 0

        body = '{"rows":[{"id":"a","key":"k","value":null}]}'
        assert parse(body, Stats | None) == [Row(id="a", key="k", value=None)]

    def test_large_result_order(self) -> None:
        rows_in = [
            {"id": f"doc:{i}", "key": i, "value": {"name": f"album {i}"}}
            for i in range(500)
        ]
        body = json.dumps({"total_rows": 500, "rows": rows_in})
        rows = parse(body, Album)
        assert len(rows) == len(json.loads(body)["rows"])
        assert [r.id for r in rows] == [r["id"] for r in rows_in]
        assert rows[-1].value.name == "album 499"

    def test_object_shape_needs_serializer(self) -> None:
        with pytest.raises(ValueError):
            list(iter_rows(reader_at_rows('{"rows":[]}'), RowShape.OBJECT, Album))
