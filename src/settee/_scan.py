"""
Property-keyed scan over the top level of a JSON object.

Given the names of a few top-level properties, walk the token stream once and
stop as soon as every one of them has been seen. Everything after that point
is never tokenized, so cost is bounded by the prefix that holds the fields.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterator, Mapping
from decimal import Decimal

from settee._tokens import NULL, NUMBER, PROPERTY_NAME, JsonTokenReader

# Property names of the top-level object sit at this depth
TOP_LEVEL = 1

PropertyHandler = Callable[[JsonTokenReader], None]


def iter_properties(
    reader: JsonTokenReader,
    names: Collection[str],
) -> Iterator[str]:
    """
    Yield each pending top-level property name with the reader positioned on
    its value.

    The caller reads the value (or leaves it; nested tokens are passed over
    by depth). Each name is yielded at most once and iteration ends as soon
    as all names have been yielded.

    Args:
        reader: Token reader positioned before the document
        names: Top-level property names to look for

    Yields:
        Property names, in document order
    """
    pending = set(names)
    while pending and reader.read():
        if reader.token != PROPERTY_NAME or reader.depth != TOP_LEVEL:
            continue
        name = reader.value
        if name not in pending:
            continue
        if not reader.read():
            return
        pending.discard(name)
        yield name


def scan_properties(
    reader: JsonTokenReader,
    handlers: Mapping[str, PropertyHandler],
) -> int:
    """
    Run ``handlers[name]`` on the value of each matching top-level property.

    Returns:
        Number of handlers that ran
    """
    processed = 0
    for name in iter_properties(reader, handlers.keys()):
        handlers[name](reader)
        processed += 1
    return processed


def read_text(reader: JsonTokenReader) -> str | None:
    """Text of the current value, or None for JSON null."""
    if reader.token == NULL:
        return None
    return reader.text_of_current()


def read_int(reader: JsonTokenReader) -> int | None:
    """Current numeric value as an int; None for null or non-numbers."""
    if reader.token != NUMBER:
        reader.skip()
        return None
    value = reader.value
    if isinstance(value, Decimal | float):
        return int(value)
    return value


def read_seq(reader: JsonTokenReader) -> int | str | None:
    """
    Current value as an update sequence.

    Older servers send an integer, newer ones an opaque string.
    """
    if reader.token == NUMBER:
        return read_int(reader)
    return read_text(reader)
