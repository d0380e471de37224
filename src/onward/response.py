"""Mutable response handle exposed to clause bodies.

Handler code sets the status, headers and body piecemeal; ``finish`` freezes
whatever state the handle holds into a Starlette response.
"""

from collections.abc import Mapping
from typing import Any

import starlette.responses
from starlette.datastructures import MutableHeaders

DEFAULT_HEADERS = {"Content-Type": "text/html; charset=utf-8"}


class Response:
    def __init__(
        self,
        headers: Mapping[str, str] | None = None,
        status: int = 200,
        charset: str = "utf-8",
    ):
        self.status = status
        self.charset = charset
        self.headers = MutableHeaders(headers=dict(DEFAULT_HEADERS if headers is None else headers))
        self._chunks: list[bytes] = []
        self._cookies: list[tuple[tuple[Any, ...], dict[str, Any]]] = []

    def __getitem__(self, key: str) -> str | None:
        return self.headers.get(key)

    def __setitem__(self, key: str, value: str):
        self.headers[key] = value

    def __delitem__(self, key: str):
        del self.headers[key]

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    def write(self, content: str | bytes) -> int:
        """Appends ``content`` to the body and returns the number of bytes written."""
        if isinstance(content, str):
            content = content.encode(self.charset)

        self._chunks.append(content)
        return len(content)

    def redirect(self, url: str, status: int = 302):
        self.status = status
        self.headers["Location"] = url

    def set_cookie(self, key: str, value: str = "", **options: Any):
        """Records a cookie; accepts the keyword options of Starlette's ``Response.set_cookie``."""
        self._cookies.append(((key, value), options))

    def delete_cookie(self, key: str, **options: Any):
        self._cookies.append(((key, ""), {**options, "max_age": 0, "expires": 0}))

    def finish(self) -> starlette.responses.Response:
        response = starlette.responses.Response(content=self.body, status_code=self.status)
        response.raw_headers.extend(self.headers.raw)
        for args, options in self._cookies:
            response.set_cookie(*args, **options)

        return response

    def __repr__(self):
        return f"<Response {self.status} {len(self.body)} bytes>"
