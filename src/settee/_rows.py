"""
Streaming parser for the ``rows`` array of a view query result.

Rows are produced one at a time straight off the token stream; no tree is
built for the array as a whole. How a row's ``value`` is read depends on the
requested value type, picked once per call:

- ``str``                        -> RowShape.SCALAR
- ``list[str]``, ``tuple[str, ...]``, ``Sequence[str]``
                                 -> RowShape.SCALAR_ARRAY
- anything else                  -> RowShape.OBJECT
"""

from __future__ import annotations

import collections.abc
import enum
import typing
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

from settee._response import Row
from settee._scan import read_text
from settee._tokens import (
    END_ARRAY,
    NULL,
    PROPERTY_NAME,
    START_ARRAY,
    JsonTokenReader,
)

if TYPE_CHECKING:
    from settee._codec import Serializer

ValueReader = Callable[[JsonTokenReader], Any]

_ROW_PROPERTIES = ("id", "key", "value")


class RowShape(enum.Enum):
    """How a row's value is read."""

    SCALAR = "scalar"
    SCALAR_ARRAY = "scalar_array"
    OBJECT = "object"


_SEQUENCE_ORIGINS = (list, collections.abc.Sequence)


def select_row_shape(value_type: Any) -> RowShape:
    """Pick the row shape for a requested value type."""
    if value_type is str:
        return RowShape.SCALAR

    origin = typing.get_origin(value_type)
    args = typing.get_args(value_type)
    if origin in _SEQUENCE_ORIGINS and args == (str,):
        return RowShape.SCALAR_ARRAY
    if origin is tuple and args == (str, Ellipsis):
        return RowShape.SCALAR_ARRAY
    return RowShape.OBJECT


def _read_scalar(reader: JsonTokenReader) -> str:
    return reader.text_of_current()


def _read_scalar_array(reader: JsonTokenReader) -> tuple[str, ...] | None:
    if reader.token == NULL:
        return None
    if reader.token != START_ARRAY:
        return (reader.text_of_current(),)

    value_depth = reader.depth
    items: list[str] = []
    while reader.read():
        if reader.token == END_ARRAY and reader.depth == value_depth:
            break
        items.append(reader.text_of_current())
    # A fresh tuple per row: yielded rows never share a buffer
    return tuple(items)


def value_reader(
    shape: RowShape,
    value_type: Any = Any,
    serializer: Serializer | None = None,
) -> ValueReader:
    """Build the value reader for ``shape``."""
    if shape is RowShape.SCALAR:
        return _read_scalar
    if shape is RowShape.SCALAR_ARRAY:
        return _read_scalar_array

    if serializer is None:
        raise ValueError("RowShape.OBJECT needs a serializer")

    def _read_object(reader: JsonTokenReader) -> Any:
        return serializer.from_python(value_type, reader.build_current())

    return _read_object


def iter_rows(
    reader: JsonTokenReader,
    shape: RowShape,
    value_type: Any = Any,
    serializer: Serializer | None = None,
) -> Iterator[Row[Any]]:
    """
    Yield rows from the array the reader is positioned on.

    The iterator consumes the reader: it is single-pass and cannot be
    restarted. If the reader is not on a start-of-array token, nothing is
    yielded.

    A row is yielded once its ``id``, ``key`` and ``value`` have all been
    seen. Any other row property (such as ``doc`` from include_docs) is
    passed over without being built.

    Args:
        reader: Token reader positioned on the ``rows`` value
        shape: How to read each row's value
        value_type: Target type for RowShape.OBJECT
        serializer: Codec for RowShape.OBJECT

    Yields:
        Rows in source order
    """
    if reader.token != START_ARRAY:
        return

    read_value = value_reader(shape, value_type, serializer)
    start_depth = reader.depth
    # array -> row object -> row property names
    row_depth = start_depth + 2

    row_id: str | None = None
    row_key: str | None = None
    row_value: Any = None
    seen: set[str] = set()

    while reader.read():
        if reader.token == END_ARRAY and reader.depth == start_depth:
            return
        if reader.token != PROPERTY_NAME or reader.depth != row_depth:
            continue

        name = reader.value.lower()
        if name not in _ROW_PROPERTIES:
            continue
        if not reader.read():
            return

        if name == "id":
            row_id = read_text(reader)
        elif name == "key":
            row_key = read_text(reader)
        else:
            row_value = read_value(reader)
        seen.add(name)

        if len(seen) == len(_ROW_PROPERTIES):
            yield Row(id=row_id, key=row_key, value=row_value)
            row_id = row_key = row_value = None
            seen.clear()
