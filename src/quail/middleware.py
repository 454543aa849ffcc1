"""ASGI middleware running a query string extractor per request.

Wraps any ASGI 3 application::

    app = QueryStringMiddleware(app, SearchParams)

For every HTTP request the raw ``query_string`` is handed to the
extractor, and the resulting ``State`` is available downstream both as
``scope[config.state_key]`` and through ``quail.state.get_state()``.
An ``ExtractionError`` short-circuits with a plain-text error response.
"""

import logging

from quail._internal.asgi import ASGIApp, Receive, Scope, Send
from quail.config import DEFAULT_CONFIG, QueryConfig
from quail.errors import HTTPError
from quail.extraction import NoopQueryStringExtractor, QueryStringExtractor
from quail.state import State, state_var

logger = logging.getLogger("quail.middleware")


def _decode_query(raw: bytes) -> str | None:
    """ASGI query bytes as text; ``None`` when no query string was sent."""
    if not raw:
        return None
    # Undecodable bytes survive as lone surrogates and fail form decoding later
    return raw.decode("utf-8", "surrogateescape")


async def send_error(exc: HTTPError, send: Send) -> None:
    """Translate an HTTPError into a plain-text ASGI response."""
    body = (exc.detail or str(exc.status)).encode("utf-8")
    raw_headers: list[tuple[bytes, bytes]] = [
        (b"content-type", b"text/plain; charset=utf-8"),
        (b"content-length", str(len(body)).encode("latin-1")),
    ]
    for name, value in exc.headers:
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": exc.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )


class QueryStringMiddleware:
    """Run *extractor* on each HTTP request before calling *app*."""

    __slots__ = ("app", "config", "extractor")

    def __init__(
        self,
        app: ASGIApp,
        extractor: type[QueryStringExtractor] = NoopQueryStringExtractor,
        *,
        config: QueryConfig | None = None,
    ) -> None:
        self.app = app
        self.extractor = extractor
        self.config = config or DEFAULT_CONFIG

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = State()
        query = _decode_query(scope.get("query_string", b""))
        try:
            self.extractor.extract(state, query, config=self.config)
        except HTTPError as exc:
            logger.debug(
                "%d %s %s: %s", exc.status, scope.get("method", ""), scope.get("path", ""), exc.detail
            )
            await send_error(exc, send)
            return

        scope[self.config.state_key] = state
        token = state_var.set(state)
        try:
            await self.app(scope, receive, send)
        finally:
            state_var.reset(token)
