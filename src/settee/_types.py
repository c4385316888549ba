"""
Core types and protocol constants for the settee client.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

# Reserved wire names for document identity
ID_FIELD = "_id"
REV_FIELD = "_rev"

# Document-type discriminator written in front of entity documents
DOC_TYPE_FIELD = "$doctype"

# ijson backend used for tokenization. The pure-python backend reads lazily,
# so a scan that stops early never tokenizes trailing bytes.
DEFAULT_JSON_BACKEND = "python"

DEFAULT_TIMEOUT = 30.0

ETAG_HEADER = "ETag"
IF_MATCH_HEADER = "If-Match"
DESTINATION_HEADER = "Destination"

JSON_CONTENT_TYPE = "application/json"

HttpMethod = Literal["GET", "HEAD", "POST", "PUT", "DELETE", "COPY"]

# Type for headers - can be static strings or callables
HeadersLike = dict[str, str | Callable[[], str]]


@dataclass(frozen=True, slots=True)
class SerializerOptions:
    """
    Options for the wire codec.

    Attributes:
        doc_type_field: Name of the document-type discriminator field
        include_doc_type: Whether serialize_entity() writes the discriminator
        json_backend: ijson backend name used for tokenizing bodies
    """

    doc_type_field: str = DOC_TYPE_FIELD
    include_doc_type: bool = True
    json_backend: str = DEFAULT_JSON_BACKEND
