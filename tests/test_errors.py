"""Tests for error handling."""

from settee._errors import (
    DocumentConflictError,
    DocumentNotFoundError,
    MalformedResponseError,
    PreconditionFailedError,
    RowsConsumedError,
    SerializationError,
    SetteeError,
    error_from_status,
)


class TestSetteeError:
    """Tests for SetteeError."""

    def test_basic_error(self) -> None:
        error = SetteeError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.status is None
        assert error.code is None

    def test_error_with_status_and_code(self) -> None:
        error = SetteeError("Not found", status=404, code="NOT_FOUND")
        assert "Not found" in str(error)
        assert "(status=404)" in str(error)
        assert "[NOT_FOUND]" in str(error)

    def test_repr(self) -> None:
        error = SetteeError("Oops", status=500, code="X")
        assert repr(error) == "SetteeError(message='Oops', status=500, code='X')"


class TestSpecificErrors:
    """Tests for specific error types."""

    def test_serialization_error(self) -> None:
        error = SerializationError("cycle")
        assert error.code == "SERIALIZATION"
        assert isinstance(error, SetteeError)

    def test_malformed_response_error(self) -> None:
        error = MalformedResponseError("bad json", details=[{"loc": ("a",)}])
        assert error.code == "PARSE_ERROR"
        assert error.details == [{"loc": ("a",)}]

    def test_rows_consumed_error(self) -> None:
        error = RowsConsumedError()
        assert error.code == "ALREADY_CONSUMED"
        assert "already been consumed" in str(error)

    def test_not_found_error_names_url(self) -> None:
        error = DocumentNotFoundError(url="http://db/music/artist:1", reason="missing")
        assert error.status == 404
        assert error.url == "http://db/music/artist:1"
        assert error.details == "missing"
        assert "artist:1" in str(error)


class TestErrorFromStatus:
    """Tests for error_from_status."""

    def test_404(self) -> None:
        error = error_from_status(404, "http://db/x", error="not_found", reason="missing")
        assert isinstance(error, DocumentNotFoundError)
        assert error.details == "missing"

    def test_409(self) -> None:
        assert isinstance(error_from_status(409, "http://db/x"), DocumentConflictError)

    def test_412(self) -> None:
        assert isinstance(error_from_status(412, "http://db"), PreconditionFailedError)

    def test_401(self) -> None:
        error = error_from_status(401, "http://db")
        assert error.code == "UNAUTHORIZED"
        assert error.status == 401

    def test_unmapped_status_uses_server_error_kind(self) -> None:
        error = error_from_status(500, "http://db", error="os_process_error")
        assert type(error) is SetteeError
        assert error.code == "OS_PROCESS_ERROR"

    def test_unmapped_status_without_error_kind(self) -> None:
        error = error_from_status(502, "http://db")
        assert error.code == "HTTP_ERROR"
        assert error.status == 502
