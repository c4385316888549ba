"""
Exception hierarchy for the settee client.

Non-success HTTP statuses are not raised by the materializer; they are
recorded on the response object. The exceptions here cover contract
violations (malformed payloads, unserializable values, double consumption)
and the opt-in ``Response.ensure_success()`` path.
"""

from __future__ import annotations

from typing import Any


class SetteeError(Exception):
    """
    Base exception for all settee errors.

    Attributes:
        message: Human-readable error message
        status: HTTP status code (if applicable)
        code: Error code for programmatic handling
        details: Additional error details
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details

    def __str__(self) -> str:
        parts = [self.message]
        if self.status is not None:
            parts.append(f"(status={self.status})")
        if self.code is not None:
            parts.append(f"[{self.code}]")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"status={self.status!r}, "
            f"code={self.code!r})"
        )


class SerializationError(SetteeError):
    """
    Raised when a value cannot be written as JSON.

    This happens for reference cycles in the value graph and for primitives
    that have no JSON representation.
    """

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message, code="SERIALIZATION", details=details)


class MalformedResponseError(SetteeError):
    """
    Raised when a response body is not valid JSON, or does not have the
    shape required to build the requested type.

    The underlying parser or validation error is chained as ``__cause__``.
    """

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message, code="PARSE_ERROR", details=details)


class RowsConsumedError(SetteeError):
    """
    Raised when iterating a ViewRowStream a second time.

    Row streams read the HTTP body once and cannot be restarted.
    """

    def __init__(self, message: str = "View rows have already been consumed") -> None:
        super().__init__(message, code="ALREADY_CONSUMED")


class DocumentNotFoundError(SetteeError):
    """
    Raised by ``ensure_success()`` for HTTP 404 Not Found.
    """

    def __init__(
        self,
        message: str = "Document not found",
        url: str | None = None,
        reason: str | None = None,
    ) -> None:
        if url:
            message = f"Document not found: {url}"
        super().__init__(message, status=404, code="NOT_FOUND", details=reason)
        self.url = url


class DocumentConflictError(SetteeError):
    """
    Raised by ``ensure_success()`` for HTTP 409 Conflict.

    The revision sent with a write did not match the current revision.
    """

    def __init__(
        self,
        message: str = "Document update conflict",
        url: str | None = None,
        reason: str | None = None,
    ) -> None:
        if url:
            message = f"Document update conflict: {url}"
        super().__init__(message, status=409, code="CONFLICT", details=reason)
        self.url = url


class PreconditionFailedError(SetteeError):
    """
    Raised by ``ensure_success()`` for HTTP 412 Precondition Failed.

    Returned e.g. when creating a database that already exists.
    """

    def __init__(
        self,
        message: str = "Precondition failed",
        url: str | None = None,
        reason: str | None = None,
    ) -> None:
        if url:
            message = f"Precondition failed: {url}"
        super().__init__(
            message, status=412, code="PRECONDITION_FAILED", details=reason
        )
        self.url = url


def error_from_status(
    status: int,
    url: str,
    error: str | None = None,
    reason: str | None = None,
) -> SetteeError:
    """
    Create an appropriate error from an HTTP status code.

    Args:
        status: The HTTP status code
        url: The URL that was requested
        error: The server's error kind (the ``error`` body field)
        reason: The server's explanation (the ``reason`` body field)

    Returns:
        An appropriate exception instance
    """
    if status == 404:
        return DocumentNotFoundError(url=url, reason=reason)

    if status == 409:
        return DocumentConflictError(url=url, reason=reason)

    if status == 412:
        return PreconditionFailedError(url=url, reason=reason)

    if status == 400:
        return SetteeError(
            f"Bad request: {url}",
            status=400,
            code="BAD_REQUEST",
            details=reason,
        )

    if status == 401:
        return SetteeError(
            f"Unauthorized: {url}",
            status=401,
            code="UNAUTHORIZED",
            details=reason,
        )

    if status == 403:
        return SetteeError(
            f"Forbidden: {url}",
            status=403,
            code="FORBIDDEN",
            details=reason,
        )

    # Server-supplied error kind wins over the generic code when present
    return SetteeError(
        f"HTTP error {status} at {url}",
        status=status,
        code=error.upper() if error else "HTTP_ERROR",
        details=reason,
    )
