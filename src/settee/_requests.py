"""
Request builders shared by the sync and async clients.

Each builder returns a RequestSpec: everything needed to send one request
except the transport, base headers and timeout.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from settee._codec import Serializer
from settee._identity import is_structured_type
from settee._query import ViewQuery
from settee._types import (
    DESTINATION_HEADER,
    IF_MATCH_HEADER,
    JSON_CONTENT_TYPE,
    HttpMethod,
)
from settee._util import encode_body, quote_doc_id

BULK_DOCS_PATH = "_bulk_docs"


@dataclass(frozen=True, slots=True)
class RequestSpec:
    """
    A request relative to the database URL.

    Attributes:
        method: HTTP method
        path: Already-encoded path below the database URL ("" for the database)
        params: Query parameters
        headers: Request-specific headers
        body: Request body
    """

    method: HttpMethod
    path: str = ""
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None


def _rev_params(rev: str | None) -> dict[str, str]:
    return {"rev": rev} if rev else {}


def _json_headers(extra: dict[str, str] | None = None) -> dict[str, str]:
    headers = {"content-type": JSON_CONTENT_TYPE}
    if extra:
        headers.update(extra)
    return headers


def document_body(serializer: Serializer, doc: Any) -> bytes:
    """
    Encode a document for a write.

    JSON text and bytes are sent verbatim, entities (pydantic models and
    dataclasses) carry the document-type field, other values are serialized
    as they are.
    """
    if isinstance(doc, str | bytes):
        return encode_body(doc)
    if is_structured_type(type(doc)):
        return encode_body(serializer.serialize_entity(doc))
    return encode_body(serializer.serialize(doc))


# === Database ===


def head_database() -> RequestSpec:
    return RequestSpec("HEAD")


def put_database() -> RequestSpec:
    return RequestSpec("PUT")


def delete_database() -> RequestSpec:
    return RequestSpec("DELETE")


# === Documents ===


def get_document(doc_id: str, rev: str | None = None) -> RequestSpec:
    return RequestSpec("GET", quote_doc_id(doc_id), params=_rev_params(rev))


def post_document(body: bytes) -> RequestSpec:
    return RequestSpec("POST", headers=_json_headers(), body=body)


def put_document(doc_id: str, body: bytes, rev: str | None = None) -> RequestSpec:
    headers = _json_headers({IF_MATCH_HEADER: rev} if rev else None)
    return RequestSpec("PUT", quote_doc_id(doc_id), headers=headers, body=body)


def delete_document(doc_id: str, rev: str) -> RequestSpec:
    return RequestSpec("DELETE", quote_doc_id(doc_id), params=_rev_params(rev))


def copy_document(
    src_id: str, new_id: str, src_rev: str | None = None
) -> RequestSpec:
    return RequestSpec(
        "COPY",
        quote_doc_id(src_id),
        params=_rev_params(src_rev),
        headers={DESTINATION_HEADER: new_id},
    )


def replace_document(
    src_id: str,
    trg_id: str,
    trg_rev: str,
    src_rev: str | None = None,
) -> RequestSpec:
    return RequestSpec(
        "COPY",
        quote_doc_id(src_id),
        params=_rev_params(src_rev),
        headers={DESTINATION_HEADER: f"{trg_id}?rev={trg_rev}"},
    )


def bulk_documents(
    serializer: Serializer,
    docs: Iterable[Any],
    *,
    all_or_nothing: bool = False,
    new_edits: bool = True,
) -> RequestSpec:
    """
    Build a ``_bulk_docs`` request.

    Each document is encoded as in ``document_body``; JSON text is spliced
    in without being re-parsed.
    """
    parts: list[bytes] = []
    if all_or_nothing:
        parts.append(b'"all_or_nothing":true,')
    if not new_edits:
        parts.append(b'"new_edits":false,')
    parts.append(b'"docs":[')
    parts.append(b",".join(document_body(serializer, doc) for doc in docs))
    parts.append(b"]")
    body = b"{" + b"".join(parts) + b"}"
    return RequestSpec("POST", BULK_DOCS_PATH, headers=_json_headers(), body=body)


# === Views ===


def query_view(query: ViewQuery) -> RequestSpec:
    """
    Build a view request: GET, or POST when the query carries ``keys``.
    """
    params = query.to_params()
    if query.has_keys:
        return RequestSpec(
            "POST",
            query.path,
            params=params,
            headers=_json_headers(),
            body=encode_body(query.keys_body()),
        )
    return RequestSpec("GET", query.path, params=params)
