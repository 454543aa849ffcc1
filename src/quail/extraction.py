"""Typed extraction of query parameters into per-request state.

An extractor is any class with an ``extract`` classmethod::

    @classmethod
    def extract(cls, state: State, query: str | None, *, config: QueryConfig = ...) -> None

It parses the raw query string, builds a typed value and ``put``s it into
the request's ``State``. Failures raise ``ExtractionError`` (400).

Frozen dataclasses become extractors with ``@query_string_extractor``.
Field annotations choose the converter (see ``quail.conversion``):

- a key missing from the query string uses the field default if any;
- otherwise the key is added as an unmapped segment, so ``T | None``
  fields become ``None``, ``list[T]`` fields ``[]`` and scalar fields
  fail with "Invalid number of values".

Routes without typed query parameters use ``NoopQueryStringExtractor``.
"""

from __future__ import annotations

import dataclasses
import functools
import logging
import typing
from typing import TYPE_CHECKING, Any, Protocol

from quail.config import DEFAULT_CONFIG, QueryConfig
from quail.conversion import TryFromValues, converter_for
from quail.errors import ConfigurationError, ConversionError, ExtractionError
from quail.http.query import QueryStringMapping, split

if TYPE_CHECKING:
    from quail.state import State

logger = logging.getLogger("quail.extraction")


class QueryStringExtractor(Protocol):
    """Protocol for classes that populate ``State`` from a query string."""

    @classmethod
    def extract(
        cls, state: State, query: str | None, *, config: QueryConfig = DEFAULT_CONFIG
    ) -> None: ...


class NoopQueryStringExtractor:
    """A ``QueryStringExtractor`` that does not extract or store anything.

    Useful for purely static routes.
    """

    @classmethod
    def extract(
        cls, state: State, query: str | None, *, config: QueryConfig = DEFAULT_CONFIG
    ) -> None:
        return None


def is_extractable_dataclass(annotation: Any) -> bool:
    """Return True if *annotation* is a user-defined dataclass type.

    Excludes quail's own dataclass types (``QueryConfig``, ``HTTPError``,
    etc.) which are never built from query data.
    """
    if not isinstance(annotation, type) or not dataclasses.is_dataclass(annotation):
        return False

    module = getattr(annotation, "__module__", "") or ""
    return not module.startswith("quail.")


@functools.cache
def _field_converters(cls: type) -> tuple[tuple[dataclasses.Field[Any], TryFromValues[Any]], ...]:
    """Resolve the converter for every init field of *cls*, once."""
    try:
        hints = typing.get_type_hints(cls, include_extras=True)
    except NameError as exc:
        msg = f"Cannot resolve field annotations of {cls.__qualname__}: {exc}"
        raise ConfigurationError(msg) from exc

    resolved = []
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        try:
            converter = converter_for(hints[f.name])
        except ConfigurationError as exc:
            msg = f"{cls.__qualname__}.{f.name}: {exc}"
            raise ConfigurationError(msg) from exc
        resolved.append((f, converter))
    return tuple(resolved)


def _has_default(f: dataclasses.Field[Any]) -> bool:
    return f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING


def extract_dataclass[T](cls: type[T], mapping: QueryStringMapping) -> T:
    """Create a dataclass instance from a split query string.

    Args:
        cls: A dataclass type to instantiate.
        mapping: The result of ``split()``. Keys for required fields that
            were not supplied are added to it as unmapped segments.

    Returns:
        A new instance of *cls* populated from *mapping*.

    Raises:
        ExtractionError: A field's values could not be converted.
        ConfigurationError: A field annotation has no converter.
    """
    kwargs: dict[str, Any] = {}

    for f, converter in _field_converters(cls):
        if f.name not in mapping:
            if _has_default(f):
                continue
            mapping.add_unmapped_segment(f.name)

        values = mapping.get(f.name, [])
        try:
            kwargs[f.name] = converter.from_query_string(f.name, values)
        except ConversionError as exc:
            logger.debug("query parameter %r rejected: %s", f.name, exc.description)
            raise ExtractionError(f.name, exc) from exc

    return cls(**kwargs)


def query_string_extractor[T](cls: type[T]) -> type[T]:
    """Class decorator making a dataclass a ``QueryStringExtractor``.

    Converters are resolved immediately, so an unsupported annotation
    fails at import time rather than on the first request::

        @query_string_extractor
        @dataclass(frozen=True, slots=True)
        class SearchParams:
            q: str
            page: Annotated[int, U32] = 1
            tags: list[str] = field(default_factory=list)
    """
    if not is_extractable_dataclass(cls):
        msg = f"@query_string_extractor requires a dataclass, got {cls!r}"
        raise ConfigurationError(msg)

    _field_converters(cls)

    def extract(
        klass: type[T],
        state: State,
        query: str | None,
        *,
        config: QueryConfig = DEFAULT_CONFIG,
    ) -> None:
        mapping = split(query, separator=config.separator)
        state.put(extract_dataclass(klass, mapping))

    cls.extract = classmethod(extract)  # type: ignore[attr-defined]
    return cls
