import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import anyio.from_thread
import starlette.responses
from asgiref.typing import (
    ASGIReceiveCallable as Receive,
    ASGISendCallable as Send,
    LifespanShutdownCompleteEvent,
    LifespanStartupCompleteEvent,
    Scope,
)
from bevy.containers import Container
from bevy.registries import Registry
from starlette.concurrency import run_in_threadpool
from starlette.middleware import Middleware
from starlette.requests import Request

from onward.config import (
    AppConfig,
    Config,
    MiddlewareConfig,
    get_config_path,
    get_environment,
    import_from_string,
)
from onward.cursor import PathCursor
from onward.dispatch import Dispatch, Handler

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

# Scope key carrying the params of a request handed over by another app
PARAMS_SCOPE_KEY = "onward.params"


class App:
    """ASGI application dispatching every request through one handler function.

    Each app owns a private ``Dispatch`` subclass, so settings and plugins never
    leak between apps. Passing another app's ``dispatch_class`` starts from its
    plugins and a copy of its settings.
    """

    def __init__(
        self,
        handler: Handler | None = None,
        *,
        dispatch_class: type[Dispatch] = Dispatch,
        settings: Mapping[str, Any] | None = None,
        config: Config | None = None,
    ):
        self.handler = handler
        self.dispatch_class: type[Dispatch] = type(dispatch_class.__name__, (dispatch_class,), {})
        if settings:
            self.dispatch_class.settings.update(settings)

        self.middleware: list[Middleware] = []
        self._prototype = None

        self.registry = Registry()
        self.container: Container = self.registry.create_container()
        self.config = config if config is not None else Config({})
        self.container.add(Config, self.config)
        self.container.add(App, self)

    @property
    def settings(self) -> dict[str, Any]:
        return self.dispatch_class.settings

    def define(self, handler: Handler) -> Handler:
        self.handler = handler
        self._prototype = None
        return handler

    def use(self, middleware_class: type, *args, **kwargs):
        self.middleware.append(Middleware(middleware_class, *args, **kwargs))
        self._prototype = None

    def reset(self):
        self.middleware.clear()
        self._prototype = None

    def plugin(self, mixin: type):
        """Mixes the helpers of ``mixin`` into this app's dispatch class.

        When the mixin defines ``setup(dispatch_class)`` it is called once with
        the new class, typically to seed settings.
        """
        self.dispatch_class = type(self.dispatch_class.__name__, (mixin, self.dispatch_class), {})
        if setup := getattr(mixin, "setup", None):
            setup(self.dispatch_class)

        logger.debug(f"Loaded plugin {mixin.__name__}")

    @property
    def prototype(self):
        if self._prototype is None:
            app = self._asgi
            for middleware_class, args, kwargs in reversed(self.middleware):
                app = middleware_class(app, *args, **kwargs)

            logger.debug(f"Built middleware stack with {len(self.middleware)} middleware")
            self._prototype = app

        return self._prototype

    def respond(
        self,
        request: Request,
        params: Mapping[str, Any] | None = None,
        cursor: PathCursor | None = None,
    ) -> starlette.responses.Response:
        """Dispatches ``request`` through the handler synchronously."""
        if self.handler is None:
            raise RuntimeError("No handler defined, use App.define() to set one")

        dispatch = self.dispatch_class(request, params, cursor, app=self)
        return dispatch.call(self.handler)

    def delegate(
        self,
        request: Request,
        params: Mapping[str, Any],
        cursor: PathCursor,
    ) -> starlette.responses.Response:
        """Answers a request handed over by another app, at the point ``cursor`` has reached.

        Without middleware the handler is called directly. Otherwise the request
        goes through this app's middleware stack as a mounted sub-request, which
        must happen on a threadpool worker of a running event loop.
        """
        if not self.middleware:
            return self.respond(request, params, cursor)

        scope = {
            **request.scope,
            "root_path": cursor.consumed,
            "path": cursor.path,
            PARAMS_SCOPE_KEY: dict(params),
        }
        return anyio.from_thread.run(self._respond_through_middleware, scope)

    async def _respond_through_middleware(self, scope: Scope) -> starlette.responses.Response:
        # The body was read by the delegating app, its params travel in the scope
        async def receive():
            return {"type": "http.request", "body": b"", "more_body": False}

        messages = []

        async def send(message):
            messages.append(message)

        await self.prototype(scope, receive, send)

        match messages:
            case [{"type": "http.response.start", "status": status, "headers": headers}, *body]:
                response = starlette.responses.Response(
                    b"".join(message.get("body", b"") for message in body),
                    status_code=status,
                )
                response.raw_headers = [(bytes(name), bytes(value)) for name, value in headers]
                return response

            case _:
                raise RuntimeError(f"{self!r} did not start a response")

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        await self.prototype(scope, receive, send)

    async def _asgi(self, scope: Scope, receive: Receive, send: Send):
        match scope["type"]:
            case "http":
                await self.handle_request(scope, receive, send)

            case "lifespan":
                await self.handle_lifespan(scope, receive, send)

            case _:
                raise RuntimeError(f"Unsupported scope type: {scope['type']}")

    async def handle_request(self, scope: Scope, receive: Receive, send: Send):
        request = Request(scope, receive)
        params: dict[str, Any] | None = scope.get(PARAMS_SCOPE_KEY)
        form = None
        if params is None:
            params = dict(request.query_params)
            if request.headers.get("content-type", "").startswith(FORM_CONTENT_TYPES):
                form = await request.form()
                params.update(form)

        try:
            response = await run_in_threadpool(self.respond, request, params)
        except Exception:
            logger.exception(f"Unhandled exception while dispatching {request.method} {request.url.path}")
            raise
        finally:
            if form is not None:
                await form.close()

        await response(scope, receive, send)

    async def handle_lifespan(self, scope: Scope, receive: Receive, send: Send):
        while True:
            match await receive():
                case {"type": "lifespan.startup"}:
                    logger.debug("Lifespan startup event")
                    await send(LifespanStartupCompleteEvent(type="lifespan.startup.complete"))

                case {"type": "lifespan.shutdown"}:
                    logger.debug("Lifespan shutdown event")
                    await send(LifespanShutdownCompleteEvent(type="lifespan.shutdown.complete"))
                    return

    @classmethod
    def from_config(
        cls,
        working_directory: str | Path | None = None,
        environment: str | None = None,
        config_path: str | Path | None = None,
    ) -> "App":
        """Builds an app from ``onward.<environment>.yaml`` or an explicit config file.

        The ``app`` section names the handler (``module:function``) and seeds the
        settings, the ``middleware`` section lists middleware to install in order.

        Raises:
            ConfigurationError: When the config file cannot be found, loaded or imported
        """
        if config_path is None:
            config_path = get_config_path(working_directory, environment)

        config_path = Path(config_path)
        config = Config.load_config(config_path.name, config_path.parent)
        logger.debug(f"Loaded configuration for environment '{get_environment(environment)}' from {config_path}")

        app = cls(config=config)
        app_config = _load_model(config, AppConfig)
        app.container.add(AppConfig, app_config)
        app.settings.update(app_config.settings)
        if app_config.handler:
            app.define(import_from_string(app_config.handler))

        for middleware in _load_model(config, MiddlewareConfig):
            app.use(import_from_string(middleware.entry), **middleware.config)

        return app

    def __repr__(self):
        name = getattr(self.handler, "__qualname__", None)
        return f"<App handler={name}>"


def _load_model[T](config: Config, model: type[T]) -> T:
    try:
        return config.get(model.__model_key__, model)
    except KeyError:
        # Missing sections fall back to an empty collection or the model defaults
        if model.__is_collection__:
            return []

        return model()
