"""Tests for quail.errors: exception hierarchy and error messages."""

import pytest

from quail.errors import (
    ConfigurationError,
    ConversionError,
    DecodeError,
    ExtractionError,
    HTTPError,
    QuailError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls", [ConfigurationError, ConversionError, DecodeError, HTTPError], ids=lambda c: c.__name__
    )
    def test_is_quail_error(self, cls: type) -> None:
        assert issubclass(cls, QuailError)

    def test_extraction_error_is_http_error(self) -> None:
        assert issubclass(ExtractionError, HTTPError)


class TestHTTPError:
    def test_str_with_detail(self) -> None:
        err = HTTPError(status=400, detail="Bad query")
        assert str(err) == "400: Bad query"

    def test_str_without_detail(self) -> None:
        assert str(HTTPError(status=500)) == "500"

    def test_frozen(self) -> None:
        err = HTTPError(status=400)
        with pytest.raises(AttributeError):
            err.status = 500  # type: ignore[misc]

    def test_default_empty_headers(self) -> None:
        assert HTTPError(status=400).headers == ()


class TestExtractionError:
    def test_status_and_detail(self) -> None:
        err = ExtractionError("page", ConversionError("invalid digit found in string"))
        assert err.status == 400
        assert err.detail == "Invalid query parameter 'page': invalid digit found in string"
        assert str(err) == "400: Invalid query parameter 'page': invalid digit found in string"


class TestDecodeError:
    def test_keeps_raw(self) -> None:
        err = DecodeError("%FF")
        assert err.raw == "%FF"
        assert "%FF" in str(err)


class TestConversionError:
    def test_description_and_str(self) -> None:
        err = ConversionError("Invalid number of values")
        assert err.description == "Invalid number of values"
        assert str(err) == "Error decoding query string: Invalid number of values"
