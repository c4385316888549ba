"""
Wire codec: objects to and from document JSON.

Naming policy, per structured type (pydantic model or dataclass):

- the resolved id member is written as ``_id``
- the resolved revision member is written as ``_rev``
- every other member is lower camel-cased (``album_name`` -> ``albumName``)

Mappings keep their keys verbatim. Members set to None are left out.
Validation on the way back in is done by pydantic.

The ``populate_*`` methods read only what a response needs from a body,
using the property-keyed scan, so the codec never has to build a full tree
for a response shape it does not own.
"""

from __future__ import annotations

import dataclasses
import json
import threading
import types
import typing
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, TypeVar, Union

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from settee._errors import MalformedResponseError, SerializationError
from settee._identity import EntityReflector, is_structured_type
from settee._response import (
    BulkRow,
    DocumentResponse,
    Response,
    ViewQueryResponse,
)
from settee._rows import RowShape, iter_rows
from settee._scan import read_int, read_seq, read_text, scan_properties
from settee._tokens import JsonSource, JsonTokenReader
from settee._types import SerializerOptions

if TYPE_CHECKING:
    from settee._scan import PropertyHandler


T = TypeVar("T")

_UNION_ORIGINS = (Union, types.UnionType)
_LIST_ORIGINS = (list, set, frozenset, tuple)


def _strip_annotated(tp: Any) -> Any:
    while typing.get_origin(tp) is typing.Annotated:
        tp = typing.get_args(tp)[0]
    return tp


def _input_key(tp: Any, name: str) -> str:
    """Key pydantic validates member ``name`` under: its alias when it has one."""
    if isinstance(tp, type) and issubclass(tp, BaseModel):
        info = tp.model_fields.get(name)
        if info is not None:
            if isinstance(info.validation_alias, str):
                return info.validation_alias
            if info.alias:
                return info.alias
    return name


class Serializer:
    """
    Serializes values to document JSON and back.

    One instance can be shared across threads and calls: its only state is
    the options, the identity cache and a cache of pydantic adapters, all
    read-only once built.

    Example:
        >>> serializer = Serializer()
        >>> serializer.serialize(Artist(artist_id="artist:1", name="Fray"))
        '{"_id":"artist:1","name":"Fray"}'
    """

    def __init__(
        self,
        options: SerializerOptions | None = None,
        *,
        reflector: EntityReflector | None = None,
    ) -> None:
        self._options = options or SerializerOptions()
        self._reflector = reflector or EntityReflector()
        self._adapters: dict[Any, TypeAdapter[Any]] = {}
        self._adapters_lock = threading.Lock()

    @property
    def options(self) -> SerializerOptions:
        return self._options

    @property
    def reflector(self) -> EntityReflector:
        return self._reflector

    def reader(self, source: JsonSource) -> JsonTokenReader:
        """Open a token reader over ``source`` with the configured backend."""
        return JsonTokenReader(source, backend=self._options.json_backend)

    # === Writing ===

    def to_wire(self, value: Any) -> Any:
        """
        Convert ``value`` to plain JSON-compatible data under the naming policy.

        Raises:
            SerializationError: On a reference cycle or an unsupported value
        """
        return self._to_wire(value, set())

    def _to_wire(self, value: Any, path: set[int]) -> Any:
        if value is None or isinstance(value, str | bool | int | float):
            return value

        structured = isinstance(value, BaseModel) or (
            dataclasses.is_dataclass(value) and not isinstance(value, type)
        )
        if not structured and not isinstance(
            value, Mapping | list | tuple | set | frozenset
        ):
            try:
                return to_jsonable_python(value)
            except PydanticSerializationError as e:
                raise SerializationError(
                    f"Cannot serialize value of type {type(value).__name__}: {e}"
                ) from e

        marker = id(value)
        if marker in path:
            raise SerializationError(
                f"Reference cycle detected at {type(value).__name__}"
            )
        path.add(marker)
        try:
            if structured:
                identity = self._reflector.identity(type(value))
                out: dict[str, Any] = {}
                for member in identity.members:
                    member_value = getattr(value, member.name, None)
                    if member_value is None:
                        continue
                    out[identity.wire_names[member.name]] = self._to_wire(
                        member_value, path
                    )
                return out
            if isinstance(value, Mapping):
                return {
                    k if isinstance(k, str) else str(k): self._to_wire(v, path)
                    for k, v in value.items()
                }
            return [self._to_wire(v, path) for v in value]
        finally:
            path.discard(marker)

    def _dumps(self, data: Any) -> str:
        try:
            return json.dumps(data, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        except ValueError as e:
            raise SerializationError(f"Cannot serialize value: {e}") from e

    def serialize(self, value: Any) -> str:
        """
        Serialize ``value`` to compact JSON text.

        Raises:
            SerializationError: On a reference cycle or an unsupported value
        """
        return self._dumps(self.to_wire(value))

    def doc_type_of(self, entity: Any) -> str:
        """Document-type tag for ``entity``: ``__doctype__`` or the class name."""
        cls = type(entity)
        return getattr(cls, "__doctype__", None) or cls.__name__.lower()

    def serialize_entity(self, entity: Any) -> str:
        """
        Serialize ``entity`` as a document, led by the document-type field.

        Raises:
            SerializationError: On a reference cycle or an unsupported value
        """
        wire = self.to_wire(entity)
        if not isinstance(wire, dict):
            raise SerializationError(
                f"Entity of type {type(entity).__name__} does not serialize to an object"
            )
        if not self._options.include_doc_type:
            return self._dumps(wire)
        document = {self._options.doc_type_field: self.doc_type_of(entity)}
        document.update(wire)
        return self._dumps(document)

    # === Reading ===

    def _adapter(self, tp: Any) -> TypeAdapter[Any]:
        adapter = self._adapters.get(tp)
        if adapter is None:
            with self._adapters_lock:
                adapter = self._adapters.get(tp)
                if adapter is None:
                    adapter = TypeAdapter(tp)
                    self._adapters[tp] = adapter
        return adapter

    def _validate(self, tp: Any, data: Any) -> Any:
        try:
            return self._adapter(tp).validate_python(data)
        except ValidationError as e:
            name = getattr(tp, "__name__", repr(tp))
            raise MalformedResponseError(
                f"Response body does not match {name}: {e.error_count()} error(s)",
                details=e.errors(include_url=False),
            ) from e

    def _from_wire(self, tp: Any, data: Any) -> Any:
        """Rename wire properties back to member names, guided by ``tp``."""
        if data is None:
            return None
        tp = _strip_annotated(tp)
        origin = typing.get_origin(tp)
        args = typing.get_args(tp)

        if origin in _UNION_ORIGINS:
            options = [a for a in args if a is not type(None)]
            if len(options) == 1:
                return self._from_wire(options[0], data)
            if isinstance(data, dict):
                for option in options:
                    if is_structured_type(_strip_annotated(option)):
                        return self._from_wire(option, data)
            return data

        if is_structured_type(tp) and isinstance(data, dict):
            identity = self._reflector.identity(tp)
            hints = {m.name: m.bare_hint for m in identity.members}
            names = identity.member_names
            out: dict[str, Any] = {}
            for key, value in data.items():
                name = names.get(key)
                if name is not None:
                    out[_input_key(tp, name)] = self._from_wire(hints[name], value)
            return out

        if isinstance(data, list):
            if origin is tuple and args and args[-1] is not Ellipsis:
                return [self._from_wire(t, v) for t, v in zip(args, data)] + data[len(args):]
            if origin in _LIST_ORIGINS or origin is typing.get_origin(
                typing.Sequence[Any]
            ):
                item = args[0] if args else Any
                return [self._from_wire(item, v) for v in data]
            return data

        if isinstance(data, dict) and args and origin in (dict, typing.get_origin(Mapping[str, Any])):
            return {k: self._from_wire(args[1], v) for k, v in data.items()}

        return data

    def from_python(self, tp: type[T] | Any, data: Any) -> T:
        """
        Build a ``tp`` from already-parsed JSON data.

        Raises:
            MalformedResponseError: If the data does not validate as ``tp``
        """
        return self._validate(tp, self._from_wire(tp, data))

    def deserialize(self, tp: type[T] | Any, data: JsonSource | None) -> T | None:
        """
        Deserialize JSON text, bytes, or a byte stream into a ``tp``.

        Empty or whitespace-only input gives None.

        Raises:
            MalformedResponseError: On invalid JSON, or data that does not
                validate as ``tp``
        """
        if data is None:
            return None

        if isinstance(data, bytes | str):
            if not data.strip():
                return None
            try:
                parsed = json.loads(data)
            except json.JSONDecodeError as e:
                raise MalformedResponseError(f"Invalid JSON in response body: {e}") from e
            return self.from_python(tp, parsed)

        reader = self.reader(data)
        if not reader.read():
            return None
        return self.from_python(tp, reader.build_current())

    # === Partial population of responses ===

    def _scan(self, source: JsonSource, handlers: Mapping[str, PropertyHandler]) -> None:
        scan_properties(self.reader(source), handlers)

    def populate_failed_response(self, response: Response, source: JsonSource) -> None:
        """Read ``error`` and ``reason`` into a failed response."""

        def _error(reader: JsonTokenReader) -> None:
            response.error = read_text(reader)

        def _reason(reader: JsonTokenReader) -> None:
            response.reason = read_text(reader)

        self._scan(source, {"error": _error, "reason": _reason})

    def populate_document_response(
        self, response: DocumentResponse, source: JsonSource
    ) -> None:
        """Read ``id`` and ``rev`` into a document response."""

        def _id(reader: JsonTokenReader) -> None:
            response.id = read_text(reader)

        def _rev(reader: JsonTokenReader) -> None:
            response.rev = read_text(reader)

        self._scan(source, {"id": _id, "rev": _rev})

    # Copy and replace bodies have the same shape as any write result
    populate_copy_document_response = populate_document_response
    populate_replace_document_response = populate_document_response

    def populate_bulk_response(self, response: Any, source: JsonSource) -> None:
        """Deserialize the full bulk result array, preserving order."""
        reader = self.reader(source)
        if not reader.read():
            response.rows = ()
            return
        # Row types are response shapes, not entities: no naming policy
        response.rows = self._validate(tuple[BulkRow, ...], reader.build_current())

    def populate_view_query_response(
        self,
        response: ViewQueryResponse[Any],
        source: JsonSource,
        shape: RowShape,
        value_type: Any = Any,
    ) -> None:
        """
        Read view metadata and stream the rows into a view query response.

        ``total_rows``, ``offset`` and ``update_seq`` stay None when absent.
        """

        def _total_rows(reader: JsonTokenReader) -> None:
            response.total_rows = read_int(reader)

        def _offset(reader: JsonTokenReader) -> None:
            response.offset = read_int(reader)

        def _update_seq(reader: JsonTokenReader) -> None:
            response.update_seq = read_seq(reader)

        def _rows(reader: JsonTokenReader) -> None:
            response.rows = tuple(iter_rows(reader, shape, value_type, self))

        self._scan(
            source,
            {
                "total_rows": _total_rows,
                "update_seq": _update_seq,
                "offset": _offset,
                "rows": _rows,
            },
        )
