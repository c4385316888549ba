"""
Response materializer: turns an ``httpx.Response`` into a typed response.

Each ``create_*`` call goes through the same two terminal states, chosen by
status range:

- failure: read ``error`` / ``reason`` from the body and nothing else
- success: read what the response category needs (see each method)

The HTTP response is always closed before the result is returned.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from settee._codec import Serializer
from settee._errors import MalformedResponseError
from settee._response import (
    BulkResponse,
    CopyDocumentResponse,
    DatabaseResponse,
    DocumentResponse,
    EntityResponse,
    JsonDocumentResponse,
    JsonViewQueryResponse,
    ReplaceDocumentResponse,
    Response,
    ViewQueryResponse,
)
from settee._rows import RowShape, select_row_shape
from settee._types import ETAG_HEADER
from settee._util import last_path_segment, strip_etag

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Response)
T = TypeVar("T")

# Methods whose success body carries the written id and rev
_WRITE_METHODS = frozenset({"POST", "PUT", "DELETE", "COPY"})

# Methods whose URL names the document itself
_URL_ID_METHODS = frozenset({"GET", "HEAD", "PUT", "DELETE"})


def _read_body(response: httpx.Response) -> bytes:
    return b"".join(response.iter_bytes())


def _decode_body(response: httpx.Response) -> str:
    try:
        return _read_body(response).decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedResponseError(f"Response body is not UTF-8: {e.reason}") from e


class ResponseFactory:
    """
    Builds response objects from HTTP responses.

    Stateless apart from the serializer, so one factory can be shared by
    every request of a client.
    """

    def __init__(self, serializer: Serializer | None = None) -> None:
        self._serializer = serializer or Serializer()

    @property
    def serializer(self) -> Serializer:
        return self._serializer

    def _create(
        self,
        result: R,
        response: httpx.Response,
        on_success: Callable[[R, httpx.Response], None] | None = None,
    ) -> R:
        request = response.request
        result.status = response.status_code
        result.method = request.method
        result.url = str(request.url)

        try:
            if not result.is_success:
                self._on_failure(result, response)
            elif on_success is not None:
                on_success(result, response)
        finally:
            if not response.is_closed:
                response.close()

        logger.debug(
            "Materialized %s: %s %s -> %d",
            type(result).__name__,
            result.method,
            result.url,
            result.status,
        )
        return result

    def _on_failure(self, result: Response, response: httpx.Response) -> None:
        try:
            self._serializer.populate_failed_response(result, response.iter_bytes())
        except MalformedResponseError:
            # Proxies and load balancers answer with HTML; error/reason stay None
            logger.debug(
                "Unreadable failure body: %s %s -> %d",
                result.method,
                result.url,
                result.status,
                exc_info=True,
            )

    def _on_write(self, result: DocumentResponse, response: httpx.Response) -> None:
        if result.method in _WRITE_METHODS:
            self._serializer.populate_document_response(result, response.iter_bytes())
        self._fill_identity(result, response)

    def _fill_identity(self, result: DocumentResponse, response: httpx.Response) -> None:
        if result.id is None and result.method in _URL_ID_METHODS:
            result.id = last_path_segment(response.request.url)
        if result.rev is None:
            result.rev = strip_etag(response.headers.get(ETAG_HEADER))

    # === Database ===

    def create_database_response(self, response: httpx.Response) -> DatabaseResponse:
        """Database-level result. No body is read on success."""
        return self._create(DatabaseResponse(), response)

    # === Documents ===

    def create_bulk_response(self, response: httpx.Response) -> BulkResponse:
        """Bulk result: one row per submitted document, in submission order."""

        def _on_success(result: BulkResponse, res: httpx.Response) -> None:
            self._serializer.populate_bulk_response(result, res.iter_bytes())

        return self._create(BulkResponse(), response, _on_success)

    def create_copy_document_response(
        self, response: httpx.Response
    ) -> CopyDocumentResponse:
        """Copy result: ``id`` / ``rev`` of the new document."""

        def _on_success(result: CopyDocumentResponse, res: httpx.Response) -> None:
            self._serializer.populate_copy_document_response(result, res.iter_bytes())

        return self._create(CopyDocumentResponse(), response, _on_success)

    def create_replace_document_response(
        self, response: httpx.Response
    ) -> ReplaceDocumentResponse:
        """Replace result: ``id`` / ``rev`` of the overwritten document."""

        def _on_success(result: ReplaceDocumentResponse, res: httpx.Response) -> None:
            self._serializer.populate_replace_document_response(
                result, res.iter_bytes()
            )

        return self._create(ReplaceDocumentResponse(), response, _on_success)

    def create_document_response(
        self, response: httpx.Response
    ) -> JsonDocumentResponse:
        """
        Raw document result.

        Writes read ``id`` / ``rev`` from the body. Reads keep the body as
        ``content`` and take the id from the URL and the revision from the
        ETag header.
        """

        def _on_success(result: JsonDocumentResponse, res: httpx.Response) -> None:
            if result.method == "GET":
                result.content = _decode_body(res)
                self._fill_identity(result, res)
            else:
                self._on_write(result, res)

        return self._create(JsonDocumentResponse(), response, _on_success)

    # === Entities ===

    def create_entity_response(
        self,
        response: httpx.Response,
        entity_type: type[T],
        entity: T | None = None,
    ) -> EntityResponse[T]:
        """
        Entity result.

        Reads deserialize the body into ``entity_type``. Writes attach the
        sent ``entity``. Either way the entity's identity members are set
        from the response ``id`` / ``rev``.
        """
        identity = self._serializer.reflector.identity(entity_type)

        def _on_success(result: EntityResponse[T], res: httpx.Response) -> None:
            if result.method == "GET":
                result.entity = self._serializer.deserialize(
                    entity_type, res.iter_bytes()
                )
                self._fill_identity(result, res)
            else:
                self._on_write(result, res)
                result.entity = entity

            if result.entity is not None:
                result.entity = identity.with_identity(
                    result.entity, id=result.id, rev=result.rev
                )

        return self._create(EntityResponse(), response, _on_success)

    # === Views ===

    def _create_view(
        self,
        result: ViewQueryResponse[Any],
        response: httpx.Response,
        shape: RowShape,
        value_type: Any,
    ) -> ViewQueryResponse[Any]:
        def _on_success(res_obj: ViewQueryResponse[Any], res: httpx.Response) -> None:
            self._serializer.populate_view_query_response(
                res_obj, res.iter_bytes(), shape, value_type
            )

        return self._create(result, response, _on_success)

    def create_json_view_query_response(
        self, response: httpx.Response
    ) -> JsonViewQueryResponse:
        """View result with every row value kept as JSON text."""
        return self._create_view(  # type: ignore[return-value]
            JsonViewQueryResponse(), response, RowShape.SCALAR, str
        )

    def create_view_query_response(
        self,
        response: httpx.Response,
        value_type: type[T] | Any = str,
    ) -> ViewQueryResponse[T]:
        """
        View result with row values read as ``value_type``.

        ``str`` keeps each value as text, ``list[str]`` / ``tuple[str, ...]``
        gives a tuple of element texts, anything else is deserialized.
        """
        return self._create_view(
            ViewQueryResponse(),
            response,
            select_row_shape(value_type),
            value_type,
        )
