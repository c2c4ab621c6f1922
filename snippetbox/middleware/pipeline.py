"""
Outer pipeline layers that run for every request, and the Starlette
middleware that hosts them in front of the router.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from snippetbox.middleware.chain import CONTEXT_SCOPE_KEY, Chain, Handler, Stage, stage
from snippetbox.models.request_context import RequestContext, apply_staged_headers
from snippetbox.web.helpers import server_error

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'; style-src 'self' fonts.googleapis.com; font-src fonts.gstatic.com",
    "Referrer-Policy": "origin-when-cross-origin",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "deny",
    "X-XSS-Protection": "0",
}

SLOW_REQUEST_SECONDS = 1.0


@stage(Stage.RECOVER)
def recover_panic(next_handler: Handler) -> Handler:
    """Turn any exception from inner layers into a 500 and close the connection"""
    async def handler(request: Request, ctx: RequestContext) -> Response:
        try:
            return await next_handler(request, ctx)
        except Exception as e:
            response = server_error(e)
            response.headers["Connection"] = "close"
            return apply_staged_headers(response, ctx)
    return handler


@stage(Stage.LOG)
def log_request(next_handler: Handler) -> Handler:
    async def handler(request: Request, ctx: RequestContext) -> Response:
        client = f"{request.client.host}:{request.client.port}" if request.client else "-"
        proto = f"HTTP/{request.scope.get('http_version', '1.1')}"
        uri = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        logger.info(f"{client} - {proto} {request.method} {uri}")

        start_time = time.perf_counter()
        response = await next_handler(request, ctx)
        process_time = time.perf_counter() - start_time

        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(f"⏱️ Slow request [{ctx.request_id}]: {uri} took {process_time:.2f}s")
        else:
            logger.debug(f"[{ctx.request_id}] {response.status_code} in {process_time * 1000:.1f}ms")
        return response
    return handler


@stage(Stage.SECURE_HEADERS)
def secure_headers(next_handler: Handler) -> Handler:
    """Put the fixed security header set on every response"""
    async def handler(request: Request, ctx: RequestContext) -> Response:
        for name, value in SECURITY_HEADERS.items():
            ctx.stage_header(name, value)
        response = await next_handler(request, ctx)
        return apply_staged_headers(response, ctx)
    return handler


def standard_chain() -> Chain:
    return Chain(recover_panic, log_request, secure_headers)


class PipelineMiddleware(BaseHTTPMiddleware):
    """
    Runs a chain in front of the router.

    The chain's innermost step hands the request context to the route
    endpoints through the ASGI scope and continues into the app. Exceptions
    raised by endpoints come back out of `call_next` and reach the chain's
    recovery layer.
    """

    def __init__(self, app: ASGIApp, chain: Chain):
        super().__init__(app)
        self.chain = chain

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        async def forward(req: Request, ctx: RequestContext) -> Response:
            req.scope[CONTEXT_SCOPE_KEY] = ctx
            return await call_next(req)

        ctx = RequestContext(request_id=request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8])
        return await self.chain.then(forward)(request, ctx)
