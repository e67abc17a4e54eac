"""Connection context handed to backend tests."""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from yarl import URL


class ContextClosedError(RuntimeError):
    """Raised when a context is used after the harness was torn down."""


@dataclass(frozen=True, kw_only=True)
class BackendResponse:
    """Fully read response from the backend under test."""

    status: int
    headers: Mapping[str, str]
    body: bytes

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding)

    def json(self) -> Any:
        return json.loads(self.body)


@dataclass(kw_only=True)
class BackendTestContext:
    """Where the harness-managed server listens, shared by all tests of a run.

    Tests receive the context as their first argument. It is closed when the
    harness shuts down, after which :meth:`request` raises
    :class:`ContextClosedError`.
    """

    base_url: str
    port: int
    manifest: Any = None
    env: Mapping[str, str] = field(default_factory=dict)
    session: aiohttp.ClientSession = field(repr=False)
    _closed: bool = field(default=False, repr=False)

    @property
    def url(self) -> URL:
        return URL(self.base_url)

    @property
    def closed(self) -> bool:
        return self._closed

    def resolve(self, path: str | URL = "/") -> URL:
        """Resolve a path against the base URL; absolute URLs pass through."""
        target = URL(str(path))
        if target.is_absolute():
            return target
        return self.url.join(target)

    async def request(
        self, path: str | URL = "/", *, method: str = "GET", **kwargs: Any
    ) -> BackendResponse:
        """Send a request to the backend and read the whole response."""
        if self._closed:
            raise ContextClosedError("Backend test context is no longer available")

        async with self.session.request(
            method, self.resolve(path), **kwargs
        ) as response:
            body = await response.read()
            return BackendResponse(
                status=response.status,
                headers=dict(response.headers),
                body=body,
            )

    async def close(self) -> None:
        """Release the HTTP session; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self.session.close()
