"""
AsyncSetteeClient - Asynchronous client for one database.

Transport I/O is awaited; the body is read in full and then handed to the
same ResponseFactory the sync client uses.
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
from settee._types import DEFAULT_TIMEOUT, HeadersLike
from settee._util import join_url, resolve_headers_async

T = TypeVar("T")


class AsyncDatabase:
    """Database-level operations."""

    def __init__(self, client: AsyncSetteeClient) -> None:
        self._client = client

    async def head(self) -> DatabaseResponse:
        res = await self._client._send(_requests.head_database())
        return self._client.factory.create_database_response(res)

    async def put(self) -> DatabaseResponse:
        res = await self._client._send(_requests.put_database())
        return self._client.factory.create_database_response(res)

    async def delete(self) -> DatabaseResponse:
        res = await self._client._send(_requests.delete_database())
        return self._client.factory.create_database_response(res)


class AsyncDocuments:
    """Raw JSON document operations."""

    def __init__(self, client: AsyncSetteeClient) -> None:
        self._client = client

    async def _document(self, spec: RequestSpec) -> JsonDocumentResponse:
        res = await self._client._send(spec)
        return self._client.factory.create_document_response(res)

    async def get(self, doc_id: str, rev: str | None = None) -> JsonDocumentResponse:
        return await self._document(_requests.get_document(doc_id, rev))

    async def post(self, doc: Any) -> JsonDocumentResponse:
        body = _requests.document_body(self._client.serializer, doc)
        return await self._document(_requests.post_document(body))

    async def put(
        self, doc_id: str, doc: Any, rev: str | None = None
    ) -> JsonDocumentResponse:
        body = _requests.document_body(self._client.serializer, doc)
        return await self._document(_requests.put_document(doc_id, body, rev))

    async def delete(self, doc_id: str, rev: str) -> JsonDocumentResponse:
        return await self._document(_requests.delete_document(doc_id, rev))

    async def copy(
        self, src_id: str, new_id: str, src_rev: str | None = None
    ) -> CopyDocumentResponse:
        res = await self._client._send(_requests.copy_document(src_id, new_id, src_rev))
        return self._client.factory.create_copy_document_response(res)

    async def replace(
        self,
        src_id: str,
        trg_id: str,
        trg_rev: str,
        src_rev: str | None = None,
    ) -> ReplaceDocumentResponse:
        res = await self._client._send(
            _requests.replace_document(src_id, trg_id, trg_rev, src_rev)
        )
        return self._client.factory.create_replace_document_response(res)

    async def bulk(
        self,
        docs: Iterable[Any],
        *,
        all_or_nothing: bool = False,
        new_edits: bool = True,
    ) -> BulkResponse:
        spec = _requests.bulk_documents(
            self._client.serializer,
            docs,
            all_or_nothing=all_or_nothing,
            new_edits=new_edits,
        )
        res = await self._client._send(spec)
        return self._client.factory.create_bulk_response(res)


class AsyncEntities:
    """Typed entity operations."""

    def __init__(self, client: AsyncSetteeClient) -> None:
        self._client = client

    async def get(
        self, entity_type: type[T], doc_id: str, rev: str | None = None
    ) -> EntityResponse[T]:
        res = await self._client._send(_requests.get_document(doc_id, rev))
        return self._client.factory.create_entity_response(res, entity_type)

    async def post(self, entity: T) -> EntityResponse[T]:
        body = _requests.document_body(self._client.serializer, entity)
        res = await self._client._send(_requests.post_document(body))
        return self._client.factory.create_entity_response(res, type(entity), entity)

    async def put(self, entity: T) -> EntityResponse[T]:
        """
        Raises:
            ValueError: If the entity has no id
        """
        identity = self._client.serializer.reflector.identity(type(entity))
        doc_id = identity.get_id(entity)
        if not doc_id:
            raise ValueError(f"{type(entity).__name__} entity has no id to PUT")
        body = _requests.document_body(self._client.serializer, entity)
        res = await self._client._send(_requests.put_document(doc_id, body))
        return self._client.factory.create_entity_response(res, type(entity), entity)

    async def delete(self, entity: T) -> EntityResponse[T]:
        """
        Raises:
            ValueError: If the entity has no id or no revision
        """
        identity = self._client.serializer.reflector.identity(type(entity))
        doc_id, rev = identity.get_id(entity), identity.get_rev(entity)
        if not doc_id or not rev:
            raise ValueError(
                f"{type(entity).__name__} entity needs an id and a rev to DELETE"
            )
        res = await self._client._send(_requests.delete_document(doc_id, rev))
        return self._client.factory.create_entity_response(res, type(entity), entity)


class AsyncViews:
    """View queries. Rows are always read in full."""

    def __init__(self, client: AsyncSetteeClient) -> None:
        self._client = client

    async def query(
        self, query: ViewQuery, value_type: type[T] | Any = str
    ) -> ViewQueryResponse[T]:
        res = await self._client._send(_requests.query_view(query))
        return self._client.factory.create_view_query_response(res, value_type)

    async def query_json(self, query: ViewQuery) -> JsonViewQueryResponse:
        res = await self._client._send(_requests.query_view(query))
        return self._client.factory.create_json_view_query_response(res)


class AsyncSetteeClient:
    """
    An asynchronous client for one database.

    Example:
        >>> async with AsyncSetteeClient("http://localhost:5984/music") as db:
        ...     res = await db.views.query(ViewQuery("artists", "albums"), list[str])
        ...     for row in res.rows:
        ...         print(row.key, row.value)
    """

    def __init__(
        self,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        headers: HeadersLike | None = None,
        timeout: float | httpx.Timeout | None = None,
        serializer: Serializer | None = None,
    ) -> None:
        """
        Create a client for the database at ``url``.

        No network IO is performed by the constructor.

        Args:
            url: Database URL
            client: Optional httpx.AsyncClient to use
            headers: HTTP headers (static strings, callables, or async callables)
            timeout: Request timeout
            serializer: Wire codec (a default one is created if omitted)
        """
        self._url = url.rstrip("/")
        self._headers = headers
        self._timeout = timeout or DEFAULT_TIMEOUT

        self._own_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._timeout)

        self._factory = ResponseFactory(serializer)

        self.database = AsyncDatabase(self)
        self.documents = AsyncDocuments(self)
        self.entities = AsyncEntities(self)
        self.views = AsyncViews(self)

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

    async def aclose(self) -> None:
        """Close the client and release resources."""
        if self._own_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncSetteeClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def _send(self, spec: RequestSpec) -> httpx.Response:
        headers = await resolve_headers_async(self._headers)
        headers.update(spec.headers)
        request = self._client.build_request(
            spec.method,
            join_url(self._url, spec.path) if spec.path else self._url,
            params=spec.params or None,
            headers=headers,
            content=spec.body,
            timeout=self._timeout,
        )
        # Read in full: the factory reads bodies synchronously
        return await self._client.send(request)
