"""The ``on(...)`` clause DSL and the per-request dispatch controller.

Handlers are plain functions receiving a fresh ``Dispatch`` for every request:

    def site(c: Dispatch):
        @c.on(c.get, "users/:id")
        def _(user_id):
            c.res.write(f"User {user_id}")

        @c.on("styles", c.extension("css"))
        def _(name):
            c.res.write(f"Stylesheet {name}")

A clause whose matchers all succeed runs its body and then commits the
response, abandoning every other clause in the handler. A handler that runs to
completion without committing answers 404.
"""

import copy
import logging
import re
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, ClassVar

import starlette.responses
from starlette.requests import Request

from onward.captures import CaptureStack
from onward.cursor import PathCursor
from onward.exceptions import Halt, MissingSessionError, RedefinitionError
from onward.matchers import AnySegment, Matcher, consume, evaluate, segment
from onward.response import DEFAULT_HEADERS, Response

if TYPE_CHECKING:
    from onward.app import App

logger = logging.getLogger(__name__)

type Handler = Callable[["Dispatch"], Any]

RESERVED_NAMES = frozenset({
    "call", "on", "halt", "run", "session", "captures", "segment",
    "default", "get", "post", "put", "delete",
    "param", "header", "host", "accept", "extension",
})


class Dispatch:
    """State of one request travelling through a handler."""
    settings: ClassVar[dict[str, Any]] = {"default_headers": dict(DEFAULT_HEADERS)}

    segment: ClassVar[AnySegment] = segment

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for name in RESERVED_NAMES:
            if getattr(cls, name, None) is not getattr(Dispatch, name):
                raise RedefinitionError(name, cls)

        cls.settings = copy.deepcopy(cls.settings)

    def __init__(
        self,
        request: Request,
        params: Mapping[str, Any] | None = None,
        cursor: PathCursor | None = None,
        app: "App | None" = None,
    ):
        self.app = app
        self.req = request
        self.env = request.scope
        self.params = dict(params) if params is not None else dict(request.query_params)
        self.cursor = cursor if cursor is not None else PathCursor.from_scope(request.scope)
        self.res = Response(self.settings.get("default_headers"))
        self._captures = CaptureStack()

    @property
    def captures(self) -> CaptureStack:
        return self._captures

    @property
    def container(self):
        if self.app is None:
            raise RuntimeError("This dispatch is not attached to an App and has no container")

        return self.app.container

    @property
    def session(self) -> dict[str, Any]:
        if "session" not in self.env:
            raise MissingSessionError(
                "You're missing a session handler. You can get started by adding "
                "app.use(starlette.middleware.sessions.SessionMiddleware, secret_key=...)"
            )

        return self.env["session"]

    def call(self, handler: Handler) -> starlette.responses.Response:
        """Runs ``handler`` and returns the committed response, or a 404."""
        try:
            handler(self)
        except Halt as halt:
            return halt.response

        logger.debug(f"No clause matched {self.req.method} {self.cursor.path}")
        self.res.status = 404
        return self.res.finish()

    def on(self, *matchers: Matcher) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Builds a clause; decorating a function runs the clause with it as the body.

        The body receives the captures positionally. If every matcher succeeds
        the body runs and the response is committed, so control never returns
        to the handler. Otherwise the cursor is restored and the decorated
        function is returned unchanged.
        """
        def clause(body: Callable[..., Any]) -> Callable[..., Any]:
            with self.cursor.attempt():
                self._captures.reset()
                if not all(evaluate(matcher, self.cursor, self._captures) for matcher in matchers):
                    return body

                body(*self._captures.snapshot())
                logger.debug(f"Clause {matchers!r} committed at {self.cursor.consumed!r}")
                self.halt(self.res.finish())

        return clause

    def halt(self, response: starlette.responses.Response):
        raise Halt(response)

    def run(self, app: "App"):
        """Hands the request, as consumed so far, to another app and commits its response."""
        logger.debug(f"Delegating {self.cursor.remaining!r} to {app!r}")
        self.halt(app.delegate(self.req, self.params, self.cursor.copy()))

    @property
    def default(self) -> bool:
        return True

    @property
    def get(self) -> bool:
        return self.req.method == "GET"

    @property
    def post(self) -> bool:
        return self.req.method == "POST"

    @property
    def put(self) -> bool:
        return self.req.method == "PUT"

    @property
    def delete(self) -> bool:
        return self.req.method == "DELETE"

    def extension(self, ext: str = r"\w+") -> Callable[[], bool]:
        """Matches a final ``<stem>.<ext>`` segment, capturing the stem.

        Examples:
            # path /style/app.css
            @c.on("style", c.extension("css"))
            def _(name):
                c.res.write(name)  # writes "app"
        """
        return lambda: consume(self.cursor, self._captures, rf"([^/]+?)\.{ext}\Z")

    def param(self, key: str) -> Callable[[], bool]:
        """Captures the request parameter ``key`` when it is present and non-empty.

        This never fails the clause; a missing parameter just captures nothing.
        """
        def matcher() -> bool:
            value = self.params.get(key)
            if value is not None and str(value) != "":
                self._captures.push(value)

            return True

        return matcher

    def header(self, key: str) -> Callable[[], str | bool]:
        """Matches when the request carries ``key``, even with an empty value."""
        return lambda: self.req.headers.get(key) or key in self.req.headers

    def host(self, hostname: str | re.Pattern) -> bool:
        match hostname:
            case re.Pattern():
                return hostname.search(self.req.url.hostname or "") is not None

            case _:
                return hostname == self.req.url.hostname

    def accept(self, mimetype: str) -> Callable[[], bool]:
        """Matches when the Accept header lists ``mimetype``, which becomes the response content type."""
        def matcher() -> bool:
            accepted = self.req.headers.get("accept", "").split(",")
            if not any(entry.strip() == mimetype for entry in accepted):
                return False

            self.res["Content-Type"] = mimetype
            return True

        return matcher

    def __repr__(self):
        return f"<{type(self).__name__} {self.req.method} {self.cursor.consumed!r} | {self.cursor.remaining!r}>"
