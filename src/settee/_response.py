"""
Response objects returned by the settee client.

Every response is created fresh per call, fully populated by the
materializer, and holds no reference to the HTTP stream it was built from.
A non-success status is not an exception: check ``is_success`` (or call
``ensure_success()``) before trusting id, rev, entity or rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from settee._errors import error_from_status

T = TypeVar("T")

R = TypeVar("R", bound="Response")


@dataclass(slots=True)
class Response:
    """
    Base response.

    Attributes:
        status: HTTP status code
        method: HTTP method of the originating request
        url: URL of the originating request
        error: Server error kind (failures only)
        reason: Server explanation (failures only)
    """

    status: int = 0
    method: str = "GET"
    url: str = ""
    error: str | None = None
    reason: str | None = None

    @property
    def is_success(self) -> bool:
        """Whether the status is in the 2xx range."""
        return 200 <= self.status < 300

    def ensure_success(self: R) -> R:
        """
        Return self if successful, otherwise raise the matching error.

        Raises:
            SetteeError: A subclass chosen by status code
        """
        if not self.is_success:
            raise error_from_status(
                self.status,
                self.url,
                error=self.error,
                reason=self.reason,
            )
        return self


@dataclass(slots=True)
class DatabaseResponse(Response):
    """Response to a database-level request. No body is read."""


@dataclass(slots=True)
class DocumentResponse(Response):
    """
    Response carrying a document identity.

    Attributes:
        id: Document id (None when not resolvable)
        rev: Document revision (None when not resolvable)
    """

    id: str | None = None
    rev: str | None = None


@dataclass(slots=True)
class JsonDocumentResponse(DocumentResponse):
    """
    Raw document response.

    Attributes:
        content: The document JSON, verbatim (reads only)
    """

    content: str | None = None


@dataclass(slots=True)
class EntityResponse(DocumentResponse, Generic[T]):
    """
    Typed document response.

    The entity's identity members are kept in step with ``id`` / ``rev``.

    Attributes:
        entity: The entity (deserialized on reads, the sent one on writes)
    """

    entity: T | None = None


@dataclass(slots=True)
class CopyDocumentResponse(DocumentResponse):
    """Response to a COPY into a new document."""


@dataclass(slots=True)
class ReplaceDocumentResponse(DocumentResponse):
    """Response to a COPY over an existing document."""


@dataclass(frozen=True, slots=True)
class BulkRow:
    """
    Outcome for one document of a bulk request.

    Attributes:
        id: Document id
        rev: New revision (on success)
        error: Error kind (on failure)
        reason: Error explanation (on failure)
    """

    id: str | None = None
    rev: str | None = None
    error: str | None = None
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class BulkResponse(Response):
    """
    Response to a bulk request.

    Attributes:
        rows: One outcome per submitted document, in submission order
    """

    rows: tuple[BulkRow, ...] = ()


@dataclass(frozen=True, slots=True)
class Row(Generic[T]):
    """
    A view query result row.

    Attributes:
        id: Id of the document that emitted the row
        key: Raw text of the emitted key, whatever its JSON type
        value: The emitted value, shaped by the requested value type
    """

    id: str | None
    key: str | None
    value: T


@dataclass(slots=True)
class ViewQueryResponse(Response, Generic[T]):
    """
    Response to a view query.

    ``total_rows``, ``offset`` and ``update_seq`` are None unless the server
    sent them.

    Attributes:
        total_rows: Total rows in the view
        offset: Offset of the first returned row
        update_seq: Database sequence the view reflects
        rows: Result rows in server order
    """

    total_rows: int | None = None
    offset: int | None = None
    update_seq: int | str | None = None
    rows: tuple[Row[T], ...] = ()

    @property
    def values(self) -> list[T]:
        """The row values, in order."""
        return [row.value for row in self.rows]


@dataclass(slots=True)
class JsonViewQueryResponse(ViewQueryResponse[str]):
    """View query response whose row values are kept as JSON text (null is ``"null"``)."""
