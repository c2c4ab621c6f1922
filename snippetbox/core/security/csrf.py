"""
CSRF protection with the double-submit cookie pattern.

A random secret is kept in the session and mirrored into an HTTP-only
cookie. Pages get a masked copy of the secret (XOR with a fresh one-time
key) for their forms, so the embedded value changes on every render. An
unsafe request passes only if the submitted token unmasks to the session
secret, the cookie carries the same secret, and any Origin/Referer header
points at this site.
"""

import base64
import binascii
import hmac
import logging
import secrets
from dataclasses import dataclass
from http import HTTPStatus
from typing import Callable, Optional
from urllib.parse import urlsplit

from starlette.requests import Request
from starlette.responses import Response

from snippetbox.core.exceptions import CSRFError, ConfigurationError
from snippetbox.middleware.chain import Handler, Stage, stage
from snippetbox.models.request_context import RequestContext
from snippetbox.web.helpers import client_error

logger = logging.getLogger(__name__)

SECRET_KEY = "csrf_secret"
TOKEN_LENGTH = 32
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def _encode(raw: bytes) -> str:
    # Unpadded, so the value is a valid cookie value without quoting
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _decode(value: str) -> Optional[bytes]:
    try:
        return base64.urlsafe_b64decode(value.encode("ascii") + b"=" * (-len(value) % 4))
    except (binascii.Error, ValueError, UnicodeEncodeError):
        return None


def generate_secret() -> str:
    return _encode(secrets.token_bytes(TOKEN_LENGTH))


def mask_token(secret: str) -> str:
    """One-time-pad the secret so each rendered token differs"""
    raw = _decode(secret)
    if raw is None or len(raw) != TOKEN_LENGTH:
        raise ValueError("malformed CSRF secret")
    key = secrets.token_bytes(TOKEN_LENGTH)
    return _encode(key + bytes(a ^ b for a, b in zip(key, raw)))


def verify_token(secret: str, submitted: str) -> bool:
    """
    Constant-time check of a submitted token against the secret.

    Accepts both masked tokens (key + masked secret) and the bare secret.
    """
    real = _decode(secret)
    sent = _decode(submitted)
    if real is None or sent is None or len(real) != TOKEN_LENGTH:
        return False

    if len(sent) == 2 * TOKEN_LENGTH:
        key, masked = sent[:TOKEN_LENGTH], sent[TOKEN_LENGTH:]
        sent = bytes(a ^ b for a, b in zip(key, masked))
    elif len(sent) != TOKEN_LENGTH:
        return False

    return hmac.compare_digest(real, sent)


def _origin(url: str) -> Optional[str]:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


def is_same_origin(request: Request) -> bool:
    """
    True unless Origin (or, failing that, Referer) names another site.

    Requests that carry neither header are left to the token check.
    """
    expected = f"{request.url.scheme}://{request.url.netloc}".lower()

    origin = request.headers.get("origin")
    if origin:
        return _origin(origin) == expected

    referer = request.headers.get("referer")
    if referer:
        return _origin(referer) == expected

    return True


@dataclass
class CSRFConfig:
    cookie_name: str = "csrf_token"
    field_name: str = "csrf_token"
    header_name: str = "X-CSRF-Token"
    cookie_path: str = "/"
    cookie_secure: bool = True
    cookie_max_age: int = 365 * 24 * 60 * 60


class CSRFGuard:
    """Issues tokens on every request and verifies them on unsafe ones"""

    def __init__(
        self,
        config: Optional[CSRFConfig] = None,
        failure_handler: Optional[Callable[[Request, CSRFError], Response]] = None
    ):
        self.config = config or CSRFConfig()
        self.failure_handler = failure_handler or self._default_failure

    @staticmethod
    def _default_failure(request: Request, error: CSRFError) -> Response:
        return client_error(HTTPStatus.BAD_REQUEST)

    async def submitted_token(self, request: Request) -> str:
        """Token from the header, else from the form body"""
        token = request.headers.get(self.config.header_name)
        if token:
            return token

        content_type = request.headers.get("content-type", "")
        if content_type.startswith(FORM_CONTENT_TYPES):
            form = await request.form()
            value = form.get(self.config.field_name)
            if isinstance(value, str):
                return value

        return ""

    async def verify(self, request: Request, secret: str) -> None:
        """
        Raises:
            CSRFError: with the reason the request was rejected
        """
        if not is_same_origin(request):
            raise CSRFError("cross-origin request")

        if not secret:
            raise CSRFError("no CSRF secret in session")

        cookie = request.cookies.get(self.config.cookie_name, "")
        if not hmac.compare_digest(cookie.encode(), secret.encode()):
            raise CSRFError("CSRF cookie missing or mismatched")

        submitted = await self.submitted_token(request)
        if not submitted:
            raise CSRFError("CSRF token missing")
        if not verify_token(secret, submitted):
            raise CSRFError("CSRF token mismatched")

    def set_cookie(self, response: Response, secret: str) -> None:
        response.set_cookie(
            self.config.cookie_name,
            secret,
            max_age=self.config.cookie_max_age,
            path=self.config.cookie_path,
            secure=self.config.cookie_secure,
            httponly=True,
            samesite="lax"
        )

    @stage(Stage.CSRF)
    def protect(self, next_handler: Handler) -> Handler:
        """Middleware: verify unsafe requests, expose a fresh token to the rest"""
        async def handler(request: Request, ctx: RequestContext) -> Response:
            session = ctx.session
            if session is None:
                raise ConfigurationError("CSRF guard needs the session layer in front of it",
                                         component="csrf")

            secret = session.get_string(SECRET_KEY)

            if request.method not in SAFE_METHODS:
                try:
                    await self.verify(request, secret)
                except CSRFError as e:
                    logger.warning(f"🔒 {e.message} ({request.method} {request.url.path})")
                    return self.failure_handler(request, e)

            if not secret:
                secret = generate_secret()
                session.put(SECRET_KEY, secret)

            response = await next_handler(request, ctx.with_csrf_token(mask_token(secret)))
            if request.cookies.get(self.config.cookie_name) != secret:
                self.set_cookie(response, secret)
            return response

        return handler
