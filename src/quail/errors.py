"""Quail exception hierarchy.

Shared across the splitter, the conversion protocol, extractors and the
ASGI middleware so every module raises and catches the same types.
"""

from dataclasses import dataclass


class QuailError(Exception):
    """Base for all quail-specific errors."""


class ConfigurationError(QuailError):
    """Raised when configuration or a field annotation is unusable.

    Typically raised at import time by ``@query_string_extractor``.
    """


class DecodeError(QuailError):
    """Raised when percent-decoded bytes are not valid UTF-8."""

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(f"Unable to form-url-decode {raw!r}")


class ConversionError(QuailError):
    """A query string value could not be converted to a typed value.

    Deliberately generic: converters cannot be known in advance, so the
    only payload is a human-readable description copied from whichever
    parser failed.
    """

    def __init__(self, description: str) -> None:
        self.description = description
        super().__init__(description)

    def __str__(self) -> str:
        return f"Error decoding query string: {self.description}"


@dataclass(frozen=True, slots=True)
class HTTPError(QuailError):
    """An error that maps directly to an HTTP status code.

    The middleware catches these and renders a plain-text response.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class ExtractionError(HTTPError):
    """400: a declared query parameter has the wrong shape or type."""

    def __init__(self, key: str, error: ConversionError) -> None:
        super().__init__(
            status=400,
            detail=f"Invalid query parameter {key!r}: {error.description}",
        )
