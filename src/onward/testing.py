"""
Test utilities for onward applications.

``create_test_client`` wraps an app in an httpx ``AsyncClient`` so requests can
be made without running a server. ``make_request`` builds a Starlette request
from a bare scope for exercising a ``Dispatch`` directly.
"""

import asyncio
import contextlib
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from urllib.parse import urlencode

from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from onward.app import App


class LifespanManager:
    """Drives the ASGI lifespan protocol of an app for the duration of a test."""

    def __init__(self, app: App):
        self.app = app
        self.receive_queue = asyncio.Queue()
        self.send_queue = asyncio.Queue()
        self.lifespan_task = None

    async def receive(self):
        return await self.receive_queue.get()

    async def send(self, message):
        await self.send_queue.put(message)

    async def startup(self):
        self.lifespan_task = asyncio.create_task(
            self.app({"type": "lifespan", "asgi": {"version": "3.0"}}, self.receive, self.send)
        )
        await self.receive_queue.put({"type": "lifespan.startup"})
        startup_complete = await self.send_queue.get()
        if startup_complete["type"] != "lifespan.startup.complete":
            raise RuntimeError(f"Unexpected response to lifespan.startup: {startup_complete}")

    async def shutdown(self):
        if not self.lifespan_task:
            raise RuntimeError("Cannot shutdown: lifespan task not started.")

        await self.receive_queue.put({"type": "lifespan.shutdown"})
        shutdown_complete = await self.send_queue.get()
        if shutdown_complete["type"] != "lifespan.shutdown.complete":
            raise RuntimeError(f"Unexpected response to lifespan.shutdown: {shutdown_complete}")

        with contextlib.suppress(asyncio.CancelledError):
            await self.lifespan_task

    @asynccontextmanager
    async def lifespan(self):
        await self.startup()
        try:
            yield
        finally:
            await self.shutdown()


@asynccontextmanager
async def create_test_client(
    app: App,
    *,
    base_url: str = "http://testserver",
    use_lifespan: bool = False,
    timeout: float = 5.0,
) -> AsyncGenerator[AsyncClient]:
    """Wraps ``app`` in an httpx ``AsyncClient``.

    Examples:
        async with create_test_client(app) as client:
            response = await client.get("/users/1")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    if use_lifespan:
        async with LifespanManager(app).lifespan():
            async with AsyncClient(transport=transport, base_url=base_url, timeout=timeout) as client:
                yield client
    else:
        async with AsyncClient(transport=transport, base_url=base_url, timeout=timeout) as client:
            yield client


def make_request(
    path: str = "/",
    method: str = "GET",
    *,
    headers: Mapping[str, str] | None = None,
    query: Mapping[str, str] | None = None,
    host: str = "testserver",
    root_path: str = "",
) -> Request:
    """Builds a body-less Starlette request for the given path."""
    raw_headers = [(b"host", host.encode("latin-1"))]
    raw_headers.extend(
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or {}).items()
    )
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": root_path + path,
        "raw_path": (root_path + path).encode(),
        "root_path": root_path,
        "query_string": urlencode(query or {}).encode(),
        "headers": raw_headers,
        "server": (host, 80),
        "client": ("127.0.0.1", 50000),
    }
    return Request(scope)
