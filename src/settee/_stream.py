"""
ViewRowStream: view query rows read straight off the HTTP response.

This is a one-shot object for callers that want to walk a large result
without holding every row in memory.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from settee._errors import MalformedResponseError, RowsConsumedError
from settee._response import Row, ViewQueryResponse
from settee._rows import iter_rows, select_row_shape
from settee._scan import iter_properties, read_int, read_seq

if TYPE_CHECKING:
    import httpx

    from settee._codec import Serializer

logger = logging.getLogger(__name__)

T = TypeVar("T")

_VIEW_PROPERTIES = ("total_rows", "offset", "update_seq", "rows")


class ViewRowStream(Generic[T]):
    """
    Streaming view query result.

    Rows can be iterated exactly once. Iterating again raises
    RowsConsumedError. ``total_rows``, ``offset`` and ``update_seq`` reflect
    what has been read so far: the server sends the first two ahead of the
    rows, ``update_seq`` may follow them.

    Usage as a context manager is recommended:

        with client.views.stream(query, list[str]) as rows:
            for row in rows:
                process(row.key, row.value)
    """

    def __init__(
        self,
        response: httpx.Response,
        *,
        serializer: Serializer,
        value_type: type[T] | Any = str,
    ) -> None:
        self._response = response
        self._serializer = serializer
        self._value_type = value_type
        self._shape = select_row_shape(value_type)
        self._consumed = False
        self._closed = False

        request = response.request
        self._meta: ViewQueryResponse[T] = ViewQueryResponse(
            status=response.status_code,
            method=request.method,
            url=str(request.url),
        )
        if not self._meta.is_success:
            try:
                serializer.populate_failed_response(self._meta, response.iter_bytes())
            except MalformedResponseError:
                logger.debug("Unreadable failure body: %s", self._meta.url, exc_info=True)
            finally:
                self.close()

    # === Metadata ===

    @property
    def status(self) -> int:
        return self._meta.status

    @property
    def is_success(self) -> bool:
        return self._meta.is_success

    @property
    def url(self) -> str:
        return self._meta.url

    @property
    def error(self) -> str | None:
        return self._meta.error

    @property
    def reason(self) -> str | None:
        return self._meta.reason

    @property
    def total_rows(self) -> int | None:
        return self._meta.total_rows

    @property
    def offset(self) -> int | None:
        return self._meta.offset

    @property
    def update_seq(self) -> int | str | None:
        return self._meta.update_seq

    @property
    def closed(self) -> bool:
        return self._closed

    def ensure_success(self) -> ViewRowStream[T]:
        """
        Return self if successful, otherwise raise the matching error.

        Raises:
            SetteeError: A subclass chosen by status code
        """
        self._meta.ensure_success()
        return self

    # === Lifecycle ===

    def close(self) -> None:
        """Close the underlying HTTP response."""
        if self._closed:
            return
        self._closed = True
        if not self._response.is_closed:
            self._response.close()

    def __enter__(self) -> ViewRowStream[T]:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # === Rows ===

    def __iter__(self) -> Iterator[Row[T]]:
        """
        Iterate over rows in server order.

        Raises:
            RowsConsumedError: If the rows were already iterated
        """
        if self._consumed:
            raise RowsConsumedError()
        self._consumed = True
        return self._iter_rows()

    def _iter_rows(self) -> Iterator[Row[T]]:
        if self._closed:
            return
        try:
            reader = self._serializer.reader(self._response.iter_bytes())
            meta = self._meta
            for name in iter_properties(reader, _VIEW_PROPERTIES):
                if name == "rows":
                    yield from iter_rows(
                        reader, self._shape, self._value_type, self._serializer
                    )
                elif name == "total_rows":
                    meta.total_rows = read_int(reader)
                elif name == "offset":
                    meta.offset = read_int(reader)
                else:
                    meta.update_seq = read_seq(reader)
        finally:
            logger.debug("Closed view row stream: %s", self._meta.url)
            self.close()
