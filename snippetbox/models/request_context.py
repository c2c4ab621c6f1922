# snippetbox/models/request_context.py
"""
Per-request context passed explicitly to every pipeline layer and handler.

The context fields are frozen: layers derive a new context with the `with_*`
helpers instead of changing the one they received.

`staged_headers` is the one mutable channel. It is a single response-scoped
dict shared by every context derived from the same request, so a header
staged by any layer is visible to all of them. Layers that produce or pass
back a response copy it on with `apply_staged_headers`.
"""
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, TYPE_CHECKING

from starlette.responses import Response

if TYPE_CHECKING:
    from snippetbox.core.security.session import Session


@dataclass(frozen=True)
class RequestContext:
    request_id: str = ""
    session: Optional["Session"] = None
    csrf_token: str = ""
    is_authenticated: bool = False
    # Shared, mutable: see module docstring
    staged_headers: Dict[str, str] = field(default_factory=dict)

    def with_session(self, session: "Session") -> "RequestContext":
        return replace(self, session=session)

    def with_csrf_token(self, token: str) -> "RequestContext":
        return replace(self, csrf_token=token)

    def with_authenticated(self, is_authenticated: bool) -> "RequestContext":
        return replace(self, is_authenticated=is_authenticated)

    def stage_header(self, name: str, value: str) -> None:
        """Queue a header for the response unless the handler sets its own"""
        self.staged_headers.setdefault(name, value)


def apply_staged_headers(response: Response, ctx: RequestContext) -> Response:
    """Copy staged headers onto the response without overriding existing ones"""
    for name, value in ctx.staged_headers.items():
        response.headers.setdefault(name, value)
    return response
