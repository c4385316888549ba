"""
settee Python Client

A Python client library for CouchDB-style document databases.

Responses are read with a streaming JSON tokenizer: a write result only
tokenizes the body up to its ``id`` and ``rev``, and view rows are produced
one at a time without building a tree for the whole result.

Example usage:
    >>> from settee import SetteeClient, ViewQuery
    >>>
    >>> with SetteeClient("http://localhost:5984/music") as db:
    ...     res = db.entities.post(Artist(name="Fray"))
    ...     print(res.id, res.rev)
    ...
    ...     query = ViewQuery("artists", "albums", include_docs=True)
    ...     for row in db.views.query(query, list[str]).rows:
    ...         print(row.key, row.value)
"""

from importlib.metadata import PackageNotFoundError, version

from settee._codec import Serializer
from settee._errors import (
    DocumentConflictError,
    DocumentNotFoundError,
    MalformedResponseError,
    PreconditionFailedError,
    RowsConsumedError,
    SerializationError,
    SetteeError,
)
from settee._identity import DocumentId, DocumentRev, EntityReflector, IdentityMembers
from settee._materialize import ResponseFactory
from settee._query import ViewQuery
from settee._response import (
    BulkResponse,
    BulkRow,
    CopyDocumentResponse,
    DatabaseResponse,
    DocumentResponse,
    EntityResponse,
    JsonDocumentResponse,
    JsonViewQueryResponse,
    ReplaceDocumentResponse,
    Response,
    Row,
    ViewQueryResponse,
)
from settee._rows import RowShape, select_row_shape
from settee._stream import ViewRowStream
from settee._types import HeadersLike, SerializerOptions
from settee.aclient import AsyncSetteeClient
from settee.client import SetteeClient

__all__ = [
    # Types
    "HeadersLike",
    "SerializerOptions",
    "RowShape",
    # Identity
    "DocumentId",
    "DocumentRev",
    "EntityReflector",
    "IdentityMembers",
    # Errors
    "SetteeError",
    "SerializationError",
    "MalformedResponseError",
    "RowsConsumedError",
    "DocumentNotFoundError",
    "DocumentConflictError",
    "PreconditionFailedError",
    # Responses
    "Response",
    "DatabaseResponse",
    "DocumentResponse",
    "JsonDocumentResponse",
    "EntityResponse",
    "CopyDocumentResponse",
    "ReplaceDocumentResponse",
    "BulkRow",
    "BulkResponse",
    "Row",
    "ViewQueryResponse",
    "JsonViewQueryResponse",
    "ViewRowStream",
    # Engine
    "Serializer",
    "ResponseFactory",
    "select_row_shape",
    # Queries
    "ViewQuery",
    # Clients
    "SetteeClient",
    "AsyncSetteeClient",
]

# Use importlib.metadata for version (works with installed package)
# Fall back to hard-coded version for editable installs
try:
    __version__ = version("settee")
except PackageNotFoundError:
    __version__ = "0.1.0"
