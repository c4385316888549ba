"""
Shared utility functions for the settee client.

This module provides common utilities used by both sync and async clients.
"""

from __future__ import annotations

from urllib.parse import quote, unquote

import httpx

from settee._types import HeadersLike

# Id prefixes whose slash is part of the path, not part of the id
_RESERVED_PREFIXES = ("_design/", "_local/")


def resolve_headers_sync(headers: HeadersLike | None) -> dict[str, str]:
    """
    Resolve headers from HeadersLike to a plain dict.

    Supports static string values or callable functions that return strings.

    Args:
        headers: Headers dict with static or callable values

    Returns:
        Resolved headers dict with all string values
    """
    if headers is None:
        return {}

    resolved: dict[str, str] = {}
    for key, value in headers.items():
        if callable(value):
            resolved[key] = value()
        else:
            resolved[key] = value
    return resolved


async def resolve_headers_async(headers: HeadersLike | None) -> dict[str, str]:
    """
    Async version of resolve_headers_sync.

    Supports static string values, sync callables, or async callables.
    """
    if headers is None:
        return {}

    resolved: dict[str, str] = {}
    for key, value in headers.items():
        if callable(value):
            result = value()
            if hasattr(result, "__await__"):
                resolved[key] = await result  # type: ignore[misc]
            else:
                resolved[key] = result  # type: ignore[assignment]
        else:
            resolved[key] = value
    return resolved


def quote_doc_id(doc_id: str) -> str:
    """
    Percent-encode a document id for use as a path segment.

    ``_design/`` and ``_local/`` ids keep their prefix slash:

        >>> quote_doc_id("_design/artists")
        '_design/artists'
        >>> quote_doc_id("a/b c")
        'a%2Fb%20c'
    """
    for prefix in _RESERVED_PREFIXES:
        if doc_id.startswith(prefix):
            return prefix + quote(doc_id[len(prefix):], safe="")
    return quote(doc_id, safe="")


def join_url(base_url: str, *segments: str) -> str:
    """Append already-encoded path segments to ``base_url``."""
    url = base_url.rstrip("/")
    for segment in segments:
        url = f"{url}/{segment.strip('/')}"
    return url


def last_path_segment(url: httpx.URL | str) -> str | None:
    """
    Document id named by a request URL: its last path segment, decoded.

    A ``_design`` or ``_local`` segment in front of it is kept as part of
    the id. Returns None for a URL without a path.
    """
    if isinstance(url, str):
        url = httpx.URL(url)
    raw_path = url.raw_path.split(b"?", 1)[0].decode("ascii")
    segments = [s for s in raw_path.split("/") if s]
    if not segments:
        return None

    last = unquote(segments[-1])
    if len(segments) >= 2 and f"{segments[-2]}/" in _RESERVED_PREFIXES:
        return f"{segments[-2]}/{last}"
    return last


def strip_etag(etag: str | None) -> str | None:
    """
    Revision carried by an ETag header value.

    Exactly one leading and one trailing double quote are removed; any
    other value is returned as-is.
    """
    if etag is None:
        return None
    if len(etag) >= 2 and etag.startswith('"') and etag.endswith('"'):
        return etag[1:-1]
    return etag


def encode_body(body: str | bytes) -> bytes:
    """
    Encode a body value to bytes.

    - Bytes are returned as-is
    - Strings are encoded as UTF-8
    """
    if isinstance(body, bytes):
        return body
    return body.encode("utf-8")
