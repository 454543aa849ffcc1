"""Tests for quail.middleware: ASGI query string extraction."""

import logging
from dataclasses import dataclass
from typing import Annotated, Any

import pytest

from quail.config import QueryConfig
from quail.conversion import U32
from quail.extraction import query_string_extractor
from quail.middleware import QueryStringMiddleware
from quail.state import State, get_state


@query_string_extractor
@dataclass(frozen=True, slots=True)
class PageParams:
    page: int
    tag: list[str]
    size: Annotated[int, U32] | None = None


class Recorder:
    """Downstream ASGI app recording what it saw."""

    def __init__(self) -> None:
        self.scope: dict[str, Any] | None = None
        self.state: State | None = None

    async def __call__(self, scope, receive, send) -> None:
        self.scope = scope
        if scope["type"] == "http":
            self.state = get_state()
            await send({"type": "http.response.start", "status": 200, "headers": []})
            await send({"type": "http.response.body", "body": b"ok"})


def http_scope(query_string: bytes = b"") -> dict[str, Any]:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "method": "GET",
        "path": "/items",
        "query_string": query_string,
        "headers": [],
    }


async def call(app, scope: dict[str, Any]) -> list[dict[str, Any]]:
    sent: list[dict[str, Any]] = []

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message: dict[str, Any]) -> None:
        sent.append(message)

    await app(scope, receive, send)
    return sent


@pytest.mark.anyio
class TestQueryStringMiddleware:
    async def test_extracts_into_state(self) -> None:
        downstream = Recorder()
        app = QueryStringMiddleware(downstream, PageParams)

        sent = await call(app, http_scope(b"page=2&tag=a&tag=b"))

        assert sent[0]["status"] == 200
        assert downstream.state is not None
        assert downstream.state.borrow(PageParams) == PageParams(page=2, tag=["a", "b"])
        assert downstream.scope is not None
        assert downstream.scope["quail.state"] is downstream.state

    async def test_state_var_reset_after_request(self) -> None:
        app = QueryStringMiddleware(Recorder(), PageParams)
        await call(app, http_scope(b"page=1"))
        with pytest.raises(LookupError):
            get_state()

    async def test_extraction_error_returns_400(self, caplog) -> None:
        downstream = Recorder()
        app = QueryStringMiddleware(downstream, PageParams)

        with caplog.at_level(logging.DEBUG, logger="quail.middleware"):
            sent = await call(app, http_scope(b"page=abc"))

        assert downstream.scope is None
        start, body = sent
        assert start["status"] == 400
        assert (b"content-type", b"text/plain; charset=utf-8") in start["headers"]
        assert body["body"] == b"Invalid query parameter 'page': invalid digit found in string"
        assert any("400 GET /items" in r.getMessage() for r in caplog.records)

    async def test_oversized_number_returns_400(self) -> None:
        downstream = Recorder()
        app = QueryStringMiddleware(downstream, PageParams)

        sent = await call(app, http_scope(b"page=1&size=" + b"9" * 5000))

        assert downstream.scope is None
        assert sent[0]["status"] == 400
        assert sent[1]["body"] == (
            b"Invalid query parameter 'size': number too large to fit in target type"
        )

    async def test_missing_query_string(self) -> None:
        app = QueryStringMiddleware(Recorder(), PageParams)
        sent = await call(app, http_scope())
        assert sent[0]["status"] == 400
        assert sent[1]["body"].endswith(b"Invalid number of values")

    async def test_non_utf8_bytes_are_dropped(self) -> None:
        downstream = Recorder()
        app = QueryStringMiddleware(downstream, PageParams)

        await call(app, http_scope(b"page=3&tag=\xff&tag=ok"))

        assert downstream.state is not None
        assert downstream.state.borrow(PageParams).tag == ["ok"]

    async def test_raw_utf8_bytes_decoded(self) -> None:
        downstream = Recorder()
        app = QueryStringMiddleware(downstream, PageParams)

        await call(app, http_scope("page=1&tag=café".encode()))

        assert downstream.state is not None
        assert downstream.state.borrow(PageParams).tag == ["café"]

    async def test_config(self) -> None:
        downstream = Recorder()
        config = QueryConfig(separator=";", state_key="params")
        app = QueryStringMiddleware(downstream, PageParams, config=config)

        await call(app, http_scope(b"page=7;tag=x"))

        assert downstream.scope is not None
        assert downstream.scope["params"].borrow(PageParams) == PageParams(page=7, tag=["x"])

    async def test_default_extractor_is_noop(self) -> None:
        downstream = Recorder()
        app = QueryStringMiddleware(downstream)

        sent = await call(app, http_scope(b"anything=goes&flag"))

        assert sent[0]["status"] == 200
        assert downstream.state is not None
        assert repr(downstream.state) == "<State []>"

    async def test_non_http_scope_passes_through(self) -> None:
        downstream = Recorder()
        app = QueryStringMiddleware(downstream, PageParams)
        scope = {"type": "lifespan"}

        await call(app, scope)

        assert downstream.scope is scope
        assert "quail.state" not in scope
