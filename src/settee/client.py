"""
SetteeClient - Synchronous client for one database.

Requests are built by ``settee._requests``, sent with httpx and handed to the
ResponseFactory, which reads only what each response needs and closes it.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

import httpx

from settee import _requests
from settee._codec import Serializer
from settee._materialize import ResponseFactory
from settee._query import ViewQuery
from settee._requests import RequestSpec
from settee._response import (
    BulkResponse,
    CopyDocumentResponse,
    DatabaseResponse,
    EntityResponse,
    JsonDocumentResponse,
    JsonViewQueryResponse,
    ReplaceDocumentResponse,
    ViewQueryResponse,
)
from settee._stream import ViewRowStream
from settee._types import DEFAULT_TIMEOUT, HeadersLike
from settee._util import join_url, resolve_headers_sync

T = TypeVar("T")


class Database:
    """Database-level operations."""

    def __init__(self, client: SetteeClient) -> None:
        self._client = client

    def head(self) -> DatabaseResponse:
        """Check that the database exists."""
        res = self._client._send(_requests.head_database())
        return self._client.factory.create_database_response(res)

    def put(self) -> DatabaseResponse:
        """Create the database. 412 if it already exists."""
        res = self._client._send(_requests.put_database())
        return self._client.factory.create_database_response(res)

    def delete(self) -> DatabaseResponse:
        """Delete the database."""
        res = self._client._send(_requests.delete_database())
        return self._client.factory.create_database_response(res)


class Documents:
    """
    Raw JSON document operations.

    Documents are JSON text (sent verbatim) or any value the serializer
    accepts.
    """

    def __init__(self, client: SetteeClient) -> None:
        self._client = client

    def _document(self, spec: RequestSpec) -> JsonDocumentResponse:
        return self._client.factory.create_document_response(self._client._send(spec))

    def get(self, doc_id: str, rev: str | None = None) -> JsonDocumentResponse:
        """Fetch a document; ``content`` holds its JSON verbatim."""
        return self._document(_requests.get_document(doc_id, rev))

    def post(self, doc: Any) -> JsonDocumentResponse:
        """Create a document with a server-assigned id (unless ``_id`` is set)."""
        body = _requests.document_body(self._client.serializer, doc)
        return self._document(_requests.post_document(body))

    def put(self, doc_id: str, doc: Any, rev: str | None = None) -> JsonDocumentResponse:
        """Create or update a document. ``rev`` is sent as If-Match."""
        body = _requests.document_body(self._client.serializer, doc)
        return self._document(_requests.put_document(doc_id, body, rev))

    def delete(self, doc_id: str, rev: str) -> JsonDocumentResponse:
        return self._document(_requests.delete_document(doc_id, rev))

    def copy(
        self, src_id: str, new_id: str, src_rev: str | None = None
    ) -> CopyDocumentResponse:
        """Copy a document to a new id."""
        res = self._client._send(_requests.copy_document(src_id, new_id, src_rev))
        return self._client.factory.create_copy_document_response(res)

    def replace(
        self,
        src_id: str,
        trg_id: str,
        trg_rev: str,
        src_rev: str | None = None,
    ) -> ReplaceDocumentResponse:
        """Copy a document over an existing one at revision ``trg_rev``."""
        res = self._client._send(
            _requests.replace_document(src_id, trg_id, trg_rev, src_rev)
        )
        return self._client.factory.create_replace_document_response(res)

    def bulk(
        self,
        docs: Iterable[Any],
        *,
        all_or_nothing: bool = False,
        new_edits: bool = True,
    ) -> BulkResponse:
        """Write many documents in one request."""
        spec = _requests.bulk_documents(
            self._client.serializer,
            docs,
            all_or_nothing=all_or_nothing,
            new_edits=new_edits,
        )
        return self._client.factory.create_bulk_response(self._client._send(spec))


class Entities:
    """
    Typed entity operations.

    Entities are pydantic models or dataclasses. Their id and revision
    members are found by the serializer's EntityReflector.
    """

    def __init__(self, client: SetteeClient) -> None:
        self._client = client

    def get(
        self, entity_type: type[T], doc_id: str, rev: str | None = None
    ) -> EntityResponse[T]:
        res = self._client._send(_requests.get_document(doc_id, rev))
        return self._client.factory.create_entity_response(res, entity_type)

    def post(self, entity: T) -> EntityResponse[T]:
        """Create ``entity``; its id and revision are set from the response."""
        body = _requests.document_body(self._client.serializer, entity)
        res = self._client._send(_requests.post_document(body))
        return self._client.factory.create_entity_response(res, type(entity), entity)

    def put(self, entity: T) -> EntityResponse[T]:
        """
        Create or update ``entity`` under its id.

        Raises:
            ValueError: If the entity has no id
        """
        identity = self._client.serializer.reflector.identity(type(entity))
        doc_id = identity.get_id(entity)
        if not doc_id:
            raise ValueError(f"{type(entity).__name__} entity has no id to PUT")
        body = _requests.document_body(self._client.serializer, entity)
        res = self._client._send(_requests.put_document(doc_id, body))
        return self._client.factory.create_entity_response(res, type(entity), entity)

    def delete(self, entity: T) -> EntityResponse[T]:
        """
        Delete ``entity`` at its current revision.

        Raises:
            ValueError: If the entity has no id or no revision
        """
        identity = self._client.serializer.reflector.identity(type(entity))
        doc_id, rev = identity.get_id(entity), identity.get_rev(entity)
        if not doc_id or not rev:
            raise ValueError(
                f"{type(entity).__name__} entity needs an id and a rev to DELETE"
            )
        res = self._client._send(_requests.delete_document(doc_id, rev))
        return self._client.factory.create_entity_response(res, type(entity), entity)


class Views:
    """View queries."""

    def __init__(self, client: SetteeClient) -> None:
        self._client = client

    def query(
        self, query: ViewQuery, value_type: type[T] | Any = str
    ) -> ViewQueryResponse[T]:
        """Run ``query`` and read every row, values as ``value_type``."""
        res = self._client._send(_requests.query_view(query))
        return self._client.factory.create_view_query_response(res, value_type)

    def query_json(self, query: ViewQuery) -> JsonViewQueryResponse:
        """Run ``query`` keeping every row value as JSON text."""
        res = self._client._send(_requests.query_view(query))
        return self._client.factory.create_json_view_query_response(res)

    def stream(
        self, query: ViewQuery, value_type: type[T] | Any = str
    ) -> ViewRowStream[T]:
        """Run ``query`` and return its rows as a one-shot stream."""
        res = self._client._send(_requests.query_view(query))
        return ViewRowStream(
            res, serializer=self._client.serializer, value_type=value_type
        )


class SetteeClient:
    """
    A synchronous client for one database.

    This is a lightweight handle - not a persistent connection. Pass your own
    ``httpx.Client`` for authentication, retries or pooling; it is then not
    closed by ``close()``.

    Example:
        >>> with SetteeClient("http://localhost:5984/music") as db:
        ...     res = db.entities.post(Artist(name="Fray"))
        ...     res.ensure_success()
        ...     print(res.id, res.rev)
    """

    def __init__(
        self,
        url: str,
        *,
        client: httpx.Client | None = None,
        headers: HeadersLike | None = None,
        timeout: float | httpx.Timeout | None = None,
        serializer: Serializer | None = None,
    ) -> None:
        """
        Create a client for the database at ``url``.

        No network IO is performed by the constructor.

        Args:
            url: Database URL
            client: Optional httpx.Client to use
            headers: HTTP headers (static strings or callables)
            timeout: Request timeout
            serializer: Wire codec (a default one is created if omitted)
        """
        self._url = url.rstrip("/")
        self._headers = headers
        self._timeout = timeout or DEFAULT_TIMEOUT

        self._own_client = client is None
        self._client = client or httpx.Client(timeout=self._timeout)

        self._factory = ResponseFactory(serializer)

        self.database = Database(self)
        self.documents = Documents(self)
        self.entities = Entities(self)
        self.views = Views(self)

    @property
    def url(self) -> str:
        """The database URL."""
        return self._url

    @property
    def serializer(self) -> Serializer:
        return self._factory.serializer

    @property
    def factory(self) -> ResponseFactory:
        return self._factory

    def close(self) -> None:
        """Close the client and release resources."""
        if self._own_client:
            self._client.close()

    def __enter__(self) -> SetteeClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _send(self, spec: RequestSpec) -> httpx.Response:
        headers = resolve_headers_sync(self._headers)
        headers.update(spec.headers)
        request = self._client.build_request(
            spec.method,
            join_url(self._url, spec.path) if spec.path else self._url,
            params=spec.params or None,
            headers=headers,
            content=spec.body,
            timeout=self._timeout,
        )
        # Bodies are read lazily so scans can stop early
        return self._client.send(request, stream=True)
