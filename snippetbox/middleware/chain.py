# snippetbox/middleware/chain.py
"""
Middleware chain composition.

A handler is `async (request, ctx) -> response`; a middleware takes a handler
and returns a wrapped one. `Chain` collects middleware in outer-to-inner
order and folds them right-to-left around a final handler, so the first
middleware appended is the first to see the request.

Pipeline layers carry a `Stage`. A chain only accepts layers in strictly
increasing stage order, which makes the layer order a startup-time property:
a misordered chain fails when the app is built, not on some request.
"""
from enum import IntEnum
from typing import Awaitable, Callable, Optional, Tuple

from starlette.requests import Request
from starlette.responses import Response

from snippetbox.core.exceptions import ConfigurationError
from snippetbox.models.request_context import RequestContext

Handler = Callable[[Request, RequestContext], Awaitable[Response]]
Middleware = Callable[[Handler], Handler]

# Scope key under which the outer chain hands its context to route endpoints
CONTEXT_SCOPE_KEY = "snippetbox.context"


class Stage(IntEnum):
    """Outer-to-inner position of a pipeline layer"""
    RECOVER = 10
    LOG = 20
    SECURE_HEADERS = 30
    SESSION = 40
    CSRF = 50
    AUTHENTICATE = 60
    REQUIRE_AUTHENTICATION = 70


def stage(position: Stage) -> Callable[[Middleware], Middleware]:
    """Tag a middleware with its pipeline stage"""
    def decorate(mw: Middleware) -> Middleware:
        mw.stage = position
        return mw
    return decorate


def stage_of(mw: Middleware) -> Optional[Stage]:
    return getattr(mw, "stage", None)


class Chain:
    """Immutable, append-only list of middleware"""

    def __init__(self, *middlewares: Middleware):
        self._middlewares: Tuple[Middleware, ...] = ()
        for mw in middlewares:
            self._middlewares = self._checked(self._middlewares, mw)

    @property
    def middlewares(self) -> Tuple[Middleware, ...]:
        return self._middlewares

    @property
    def last_stage(self) -> Optional[Stage]:
        stages = [s for s in map(stage_of, self._middlewares) if s is not None]
        return stages[-1] if stages else None

    def append(self, *middlewares: Middleware) -> "Chain":
        """Return a new chain with the middlewares added innermost"""
        return Chain(*self._middlewares, *middlewares)

    def then(self, handler: Handler) -> Handler:
        """Wrap the handler in every middleware of the chain"""
        for mw in reversed(self._middlewares):
            handler = mw(handler)
        return handler

    def __len__(self) -> int:
        return len(self._middlewares)

    @staticmethod
    def _checked(existing: Tuple[Middleware, ...], mw: Middleware) -> Tuple[Middleware, ...]:
        position = stage_of(mw)
        if position is not None:
            for other in existing:
                previous = stage_of(other)
                if previous is not None and previous >= position:
                    raise ConfigurationError(
                        f"{getattr(mw, '__name__', mw)!s} ({position.name}) cannot be placed "
                        f"inside {previous.name}",
                        component="middleware"
                    )
        return existing + (mw,)


def as_endpoint(handler: Handler) -> Callable[[Request], Awaitable[Response]]:
    """
    Turn a chained handler into a Starlette endpoint.

    The endpoint picks up the context built by the outer chain from the ASGI
    scope. Routes mounted outside the pipeline get a fresh context.
    """
    async def endpoint(request: Request) -> Response:
        ctx = request.scope.get(CONTEXT_SCOPE_KEY) or RequestContext()
        return await handler(request, ctx)

    endpoint.__name__ = getattr(handler, "__name__", "endpoint")
    return endpoint
