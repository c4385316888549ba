"""
Forward-only JSON token reader and writer.

The reader wraps an ijson event stream and adds the one thing ijson does not
track for us: nesting depth. Row and array boundaries in query results are
found by comparing depths, so the bookkeeping here must stay exact:

- a start token and its matching end token report the same depth
- property names of the top-level object are at depth 1

Example:
    >>> reader = JsonTokenReader(b'{"a": [1, 2]}')
    >>> while reader.read():
    ...     print(reader.token, reader.depth)
    start_map 0
    map_key 1
    start_array 1
    number 2
    number 2
    end_array 1
    end_map 0
"""

from __future__ import annotations

import io
import json
from collections.abc import Iterable, Iterator
from decimal import Decimal
from typing import Any, BinaryIO, TextIO

import ijson

from settee._errors import MalformedResponseError
from settee._types import DEFAULT_JSON_BACKEND

START_OBJECT = "start_map"
END_OBJECT = "end_map"
START_ARRAY = "start_array"
END_ARRAY = "end_array"
PROPERTY_NAME = "map_key"
STRING = "string"
NUMBER = "number"
BOOLEAN = "boolean"
NULL = "null"

_START_TOKENS = (START_OBJECT, START_ARRAY)
_END_TOKENS = (END_OBJECT, END_ARRAY)

# ijson backends disagree on how they label numbers
_NUMBER_EVENTS = frozenset({"number", "integer", "double"})

JsonSource = bytes | str | BinaryIO | Iterable[bytes]

_READ_SIZE = 64 * 1024


class _ChunkReader:
    """
    File-like adapter over an iterator of byte chunks, so every source is
    read the same way: ``read(n)`` on demand.
    """

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks: Iterator[bytes] = iter(chunks)
        self._buffer = b""
        self._exhausted = False

    def _fill(self) -> bool:
        while not self._exhausted:
            try:
                chunk = next(self._chunks)
            except StopIteration:
                self._exhausted = True
                return False
            if chunk:
                self._buffer += chunk
                return True
        return False

    def is_blank(self) -> bool:
        """Pull chunks until a non-whitespace byte shows up or input ends."""
        while not self._buffer.strip():
            if not self._fill():
                return True
        return False

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            while self._fill():
                pass
            data, self._buffer = self._buffer, b""
            return data
        while len(self._buffer) < size and self._fill():
            pass
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data


def _as_chunk_reader(source: JsonSource) -> _ChunkReader:
    if isinstance(source, bytes):
        return _ChunkReader([source])
    if isinstance(source, str):
        return _ChunkReader([source.encode("utf-8")])
    if hasattr(source, "read"):
        stream = source

        def _iter_file() -> Iterator[bytes]:
            while True:
                data = stream.read(_READ_SIZE)  # type: ignore[union-attr]
                if not data:
                    return
                yield data.encode("utf-8") if isinstance(data, str) else data

        return _ChunkReader(_iter_file())
    return _ChunkReader(source)  # type: ignore[arg-type]


class _EventSink(list):
    """Coroutine target collecting ijson events."""

    send = list.append


def _iter_events(reader: _ChunkReader, backend: str) -> Iterator[tuple[str, Any]]:
    """
    Feed ``reader`` to an ijson parsing coroutine one chunk at a time.

    Events parsed ahead of an error are still yielded before the error is
    raised, so a consumer that stops early never sees problems further on.
    """
    events = _EventSink()
    parser = ijson.get_backend(backend).basic_parse_coro(events)
    while True:
        chunk = reader.read(_READ_SIZE)
        error: ijson.JSONError | None = None
        try:
            if chunk:
                parser.send(chunk)
            else:
                parser.close()
        except ijson.JSONError as e:
            error = e
        yield from events
        del events[:]
        if error is not None:
            raise error
        if not chunk:
            return


def _plain_numbers(value: Any) -> Any:
    """Replace the Decimals ijson produces with floats."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, list):
        return [_plain_numbers(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain_numbers(v) for k, v in value.items()}
    return value


class JsonTokenReader:
    """
    Forward-only cursor over the JSON tokens of a body.

    Not restartable: every ``read()`` consumes input.

    Attributes:
        token: Current token type (one of the module token constants)
        value: Current token value (property name or scalar)
        depth: Nesting depth of the current token
    """

    def __init__(
        self,
        source: JsonSource,
        *,
        backend: str = DEFAULT_JSON_BACKEND,
    ) -> None:
        self._reader = _as_chunk_reader(source)
        self._blank = self._reader.is_blank()
        self._events: Iterator[tuple[str, Any]] | None = None
        if not self._blank:
            self._events = _iter_events(self._reader, backend)
        self._open = 0
        self.token: str | None = None
        self.value: Any = None
        self.depth = 0

    @property
    def is_blank(self) -> bool:
        """Whether the body was empty or whitespace only."""
        return self._blank

    def read(self) -> bool:
        """
        Advance to the next token.

        Returns:
            False once the input is exhausted

        Raises:
            MalformedResponseError: If the input is not valid JSON
        """
        if self._events is None:
            return False
        try:
            event, value = next(self._events)
        except StopIteration:
            self._events = None
            self.token = None
            self.value = None
            return False
        except ijson.JSONError as e:
            self._events = None
            raise MalformedResponseError(f"Invalid JSON in response body: {e}") from e

        if event in _END_TOKENS:
            self._open -= 1
            self.depth = self._open
        elif event in _START_TOKENS:
            self.depth = self._open
            self._open += 1
        else:
            self.depth = self._open

        self.token = NUMBER if event in _NUMBER_EVENTS else event
        self.value = value
        return True

    def is_start(self) -> bool:
        return self.token in _START_TOKENS

    def _read_required(self) -> None:
        if not self.read():
            raise MalformedResponseError("Unexpected end of JSON in response body")

    def skip(self) -> None:
        """Consume the current value, children included."""
        if not self.is_start():
            return
        start_depth = self.depth
        while True:
            self._read_required()
            if self.token in _END_TOKENS and self.depth == start_depth:
                return

    def iter_current(self) -> Iterator[tuple[str, Any]]:
        """
        Yield the current token and, for a start token, every token up to and
        including its matching end token.
        """
        yield self.token, self.value  # type: ignore[misc]
        if not self.is_start():
            return
        start_depth = self.depth
        while True:
            self._read_required()
            yield self.token, self.value  # type: ignore[misc]
            if self.token in _END_TOKENS and self.depth == start_depth:
                return

    def write_current(self, writer: TokenWriter) -> None:
        """Re-emit the current value, children included, into ``writer``."""
        for token, value in self.iter_current():
            writer.write(token, value)

    def text_of_current(self) -> str:
        """
        Text of the current value.

        Strings give their content; every other value gives its compact
        JSON text.
        """
        if self.token == STRING:
            return self.value
        buffer = io.StringIO()
        with TokenWriter(buffer) as writer:
            self.write_current(writer)
        return buffer.getvalue()

    def build_current(self) -> Any:
        """Build the current value, children included, as plain Python data."""
        builder = ijson.ObjectBuilder()
        for token, value in self.iter_current():
            builder.event(token, value)
        return _plain_numbers(builder.value)


def _number_text(value: Any) -> str:
    """Decimal digits as written, exponent in the usual JSON spelling (``1e2``)."""
    text = str(value)
    if isinstance(value, Decimal):
        return text.replace("E+", "e").replace("E", "e")
    return text


def _scalar_text(token: str, value: Any) -> str:
    if token == NULL:
        return "null"
    if token == BOOLEAN:
        return "true" if value else "false"
    if token == NUMBER:
        return _number_text(value)
    return json.dumps(value, ensure_ascii=False)


class TokenWriter:
    """
    Writes a token sequence back out as compact JSON text.

    Used as a scoped sub-writer: open one per value, write the value's
    tokens, close it.
    """

    def __init__(self, out: TextIO) -> None:
        self._out = out
        self._first: list[bool] = [True]
        self._after_name = False

    def __enter__(self) -> TokenWriter:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        self._first = [True]
        self._after_name = False

    def _separate(self) -> None:
        if self._after_name:
            self._after_name = False
            return
        if self._first[-1]:
            self._first[-1] = False
        else:
            self._out.write(",")

    def write(self, token: str, value: Any = None) -> None:
        if token in _END_TOKENS:
            self._first.pop()
            self._out.write("}" if token == END_OBJECT else "]")
            return

        self._separate()
        if token == PROPERTY_NAME:
            self._out.write(json.dumps(value, ensure_ascii=False))
            self._out.write(":")
            self._after_name = True
        elif token == START_OBJECT:
            self._out.write("{")
            self._first.append(True)
        elif token == START_ARRAY:
            self._out.write("[")
            self._first.append(True)
        else:
            self._out.write(_scalar_text(token, value))
