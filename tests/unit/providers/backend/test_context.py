"""Tests for the backend test context."""

from collections.abc import AsyncGenerator

import aiohttp
import pytest
from aioresponses import aioresponses
from yarl import URL

from workspace_testing.providers.backend import BackendTestContext, ContextClosedError

BASE_URL = "http://127.0.0.1:4100"


@pytest.fixture
async def context() -> AsyncGenerator[BackendTestContext, None]:
    """Context with a live session, closed after the test."""
    ctx = BackendTestContext(
        base_url=BASE_URL,
        port=4100,
        session=aiohttp.ClientSession(),
    )
    yield ctx
    await ctx.close()


async def test_resolve(context: BackendTestContext) -> None:
    """Relative paths join the base URL and absolute URLs pass through."""
    assert context.resolve("/health") == URL(f"{BASE_URL}/health")
    assert context.resolve("items?page=2") == URL(f"{BASE_URL}/items?page=2")
    assert context.resolve("http://example.com/x") == URL("http://example.com/x")


async def test_request_reads_response(
    context: BackendTestContext, aioresponses: aioresponses
) -> None:
    """Responses are read fully into a BackendResponse."""
    aioresponses.get(f"{BASE_URL}/health", status=200, payload={"status": "ok"})

    response = await context.request("/health")

    assert response.status == 200
    assert response.json() == {"status": "ok"}
    assert "ok" in response.text()


async def test_request_with_method_and_body(
    context: BackendTestContext, aioresponses: aioresponses
) -> None:
    """Method and request options are forwarded to the session."""
    aioresponses.post(f"{BASE_URL}/items", status=201, body="created")

    response = await context.request("/items", method="POST", json={"name": "a"})

    assert response.status == 201
    assert response.text() == "created"


async def test_request_after_close_raises(context: BackendTestContext) -> None:
    """A closed context refuses further requests."""
    await context.close()

    assert context.closed
    with pytest.raises(ContextClosedError):
        await context.request("/health")


async def test_close_is_idempotent(context: BackendTestContext) -> None:
    """Closing twice closes the session once."""
    await context.close()
    await context.close()

    assert context.session.closed
