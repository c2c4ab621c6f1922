"""
Authentication state for a request.

A request is AUTHENTICATED when its session holds a user id that the user
store still knows. A missing id costs no lookup; an id whose user is gone
degrades to ANONYMOUS; a failing lookup fails the request.
"""

import logging
from enum import Enum
from http import HTTPStatus
from typing import Protocol

from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from snippetbox.core.exceptions import ConfigurationError, UserLookupError
from snippetbox.core.security.session import Session
from snippetbox.middleware.chain import Handler, Middleware, Stage, stage
from snippetbox.models.request_context import RequestContext, apply_staged_headers
from snippetbox.web.helpers import server_error

logger = logging.getLogger(__name__)

USER_ID_KEY = "authenticated_user_id"
NO_STORE = "no-store"


class UserExistenceChecker(Protocol):
    async def exists(self, user_id: int) -> bool:
        ...


class AuthState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


async def resolve(session: Session, users: UserExistenceChecker) -> AuthState:
    """
    Work out who is calling from the session record.

    Raises:
        UserLookupError: The user store failed; callers must not fall back
            to anonymous
    """
    user_id = session.get_int(USER_ID_KEY)
    if user_id == 0:
        return AuthState.ANONYMOUS

    try:
        exists = await users.exists(user_id)
    except Exception as e:
        raise UserLookupError(user_id, details={'original_error': str(e)}) from e

    if not exists:
        logger.info(f"Session refers to unknown user {user_id}, treating as anonymous")
        return AuthState.ANONYMOUS

    return AuthState.AUTHENTICATED


def authenticate(users: UserExistenceChecker) -> Middleware:
    """Middleware: resolve the auth state once and put it on the context"""

    @stage(Stage.AUTHENTICATE)
    def middleware(next_handler: Handler) -> Handler:
        async def handler(request: Request, ctx: RequestContext) -> Response:
            if ctx.session is None:
                raise ConfigurationError("authentication needs the session layer in front of it",
                                         component="auth")

            try:
                state = await resolve(ctx.session, users)
            except UserLookupError as e:
                return server_error(e)

            return await next_handler(
                request, ctx.with_authenticated(state is AuthState.AUTHENTICATED)
            )
        return handler

    middleware.__name__ = "authenticate"
    return middleware


def require_authentication(login_path: str = "/user/login") -> Middleware:
    """Middleware: send anonymous callers to the login page"""

    @stage(Stage.REQUIRE_AUTHENTICATION)
    def middleware(next_handler: Handler) -> Handler:
        async def handler(request: Request, ctx: RequestContext) -> Response:
            if not ctx.is_authenticated:
                response = RedirectResponse(login_path, status_code=HTTPStatus.SEE_OTHER)
                response.headers["Cache-Control"] = NO_STORE
                return response

            # Pages behind login must not be kept in shared caches
            ctx.stage_header("Cache-Control", NO_STORE)
            return apply_staged_headers(await next_handler(request, ctx), ctx)
        return handler

    middleware.__name__ = "require_authentication"
    return middleware


def login(session: Session, user_id: int) -> None:
    """Mark the session as belonging to user_id under a fresh token"""
    session.renew_token()
    session.put(USER_ID_KEY, user_id)


def logout(session: Session) -> None:
    """Forget the user and move the session to a fresh token"""
    session.renew_token()
    session.remove(USER_ID_KEY)
