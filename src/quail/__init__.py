"""Quail: query string decoding and typed extraction.

Splits raw ``key=value&...`` query strings into a multi-valued mapping
of decoded keys and values, and converts those values into typed
scalars, optionals and lists.

Basic usage::

    from quail import split

    mapping = split("tag=python&tag=rust&page=2")
    mapping.get_list("tag")  # ["python", "rust"]

Typed extraction::

    from dataclasses import dataclass
    from quail import State, query_string_extractor

    @query_string_extractor
    @dataclass(frozen=True, slots=True)
    class SearchParams:
        q: str
        page: int | None = None

    state = State()
    SearchParams.extract(state, "q=hello")
    state.borrow(SearchParams).q  # "hello"
"""

__version__ = "0.1.0-dev"
__all__ = [
    "ConfigurationError",
    "ConversionError",
    "DecodeError",
    "ExtractionError",
    "FormUrlDecoded",
    "HTTPError",
    "NoopQueryStringExtractor",
    "OptionalValues",
    "QuailError",
    "QueryConfig",
    "QueryStringExtractor",
    "QueryStringMapping",
    "QueryStringMiddleware",
    "RepeatedValues",
    "State",
    "TryFromValues",
    "converter_for",
    "extract_dataclass",
    "form_url_decode",
    "get_state",
    "query_string_extractor",
    "split",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import quail`` fast while providing a clean top-level API.
    """
    if name in ("split", "QueryStringMapping"):
        from quail.http import query as _query

        return getattr(_query, name)

    if name in ("form_url_decode", "FormUrlDecoded"):
        from quail.http import encoding as _encoding

        return getattr(_encoding, name)

    if name in ("TryFromValues", "OptionalValues", "RepeatedValues", "converter_for"):
        from quail import conversion as _conversion

        return getattr(_conversion, name)

    if name in (
        "NoopQueryStringExtractor",
        "QueryStringExtractor",
        "extract_dataclass",
        "query_string_extractor",
    ):
        from quail import extraction as _extraction

        return getattr(_extraction, name)

    if name in ("State", "get_state"):
        from quail import state as _state

        return getattr(_state, name)

    if name == "QueryConfig":
        from quail.config import QueryConfig

        return QueryConfig

    if name == "QueryStringMiddleware":
        from quail.middleware import QueryStringMiddleware

        return QueryStringMiddleware

    if name in (
        "ConfigurationError",
        "ConversionError",
        "DecodeError",
        "ExtractionError",
        "HTTPError",
        "QuailError",
    ):
        from quail import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
