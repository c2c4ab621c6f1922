"""
Server-side sessions keyed by an opaque cookie token.

The SessionManager loads the record for the request's cookie into a
per-request `Session`, hands it down the chain, and after the handler
returns commits it back to the store if anything changed. Records live for a
fixed lifetime from creation; activity does not extend them.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol
import logging
import secrets

from starlette.requests import Request
from starlette.responses import Response

from snippetbox.middleware.chain import Handler, Stage, stage
from snippetbox.models.request_context import RequestContext

logger = logging.getLogger(__name__)

DEFAULT_LIFETIME = timedelta(hours=12)


def new_token() -> str:
    return secrets.token_urlsafe(32)


@dataclass
class SessionRecord:
    """What the store keeps per token"""
    values: Dict[str, Any]
    deadline: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.deadline


class SessionStore(Protocol):
    """Backing store contract. Implementations must be safe for concurrent use."""

    async def find(self, token: str) -> Optional[SessionRecord]:
        """Return the unexpired record for token, or None"""

    async def commit(self, token: str, record: SessionRecord) -> None:
        """Insert or replace the record for token"""

    async def delete(self, token: str) -> None:
        """Remove the record for token if it exists"""


class SessionStatus(str, Enum):
    UNMODIFIED = "unmodified"
    MODIFIED = "modified"
    DESTROYED = "destroyed"


class Session:
    """
    Mutable view of one session record for the duration of one request.

    A brand new session has an empty token; the token is generated when the
    session is first committed.
    """

    def __init__(self, token: str, values: Dict[str, Any], deadline: datetime):
        self.token = token
        self.deadline = deadline
        self.status = SessionStatus.UNMODIFIED
        self._values = dict(values)
        self._stale_tokens: List[str] = []

    @property
    def values(self) -> Dict[str, Any]:
        return dict(self._values)

    def drain_stale_tokens(self) -> List[str]:
        """Return and forget the tokens replaced during this request"""
        stale, self._stale_tokens = self._stale_tokens, []
        return stale

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def get_int(self, key: str) -> int:
        """The int stored under key, 0 if absent or not an int"""
        value = self._values.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            return 0
        return value

    def get_string(self, key: str) -> str:
        """The str stored under key, "" if absent or not a str"""
        value = self._values.get(key)
        return value if isinstance(value, str) else ""

    def exists(self, key: str) -> bool:
        return key in self._values

    def put(self, key: str, value: Any) -> None:
        self._values[key] = value
        self.status = SessionStatus.MODIFIED

    def remove(self, key: str) -> None:
        if key in self._values:
            del self._values[key]
            self.status = SessionStatus.MODIFIED

    def pop_string(self, key: str) -> str:
        """Read a one-shot string and delete it, "" if absent"""
        value = self.get_string(key)
        if key in self._values:
            del self._values[key]
            self.status = SessionStatus.MODIFIED
        return value

    def renew_token(self) -> None:
        """Move the data to a new token. The old token is deleted on commit."""
        if self.token:
            self._stale_tokens.append(self.token)
        self.token = new_token()
        self.status = SessionStatus.MODIFIED

    def destroy(self) -> None:
        """Drop all data and the token. The cookie is expired on commit."""
        if self.token:
            self._stale_tokens.append(self.token)
        self.token = ""
        self._values.clear()
        self.status = SessionStatus.DESTROYED


@dataclass
class CookieConfig:
    name: str = "session"
    path: str = "/"
    secure: bool = True
    http_only: bool = True
    same_site: str = "lax"


class SessionManager:
    """Loads sessions for requests and commits them on response"""

    def __init__(
        self,
        store: SessionStore,
        lifetime: timedelta = DEFAULT_LIFETIME,
        cookie: Optional[CookieConfig] = None
    ):
        self.store = store
        self.lifetime = lifetime
        self.cookie = cookie or CookieConfig()

    async def load(self, token: Optional[str]) -> Session:
        """Return the session for token, or a new empty one"""
        if token:
            record = await self.store.find(token)
            if record is not None and not record.is_expired():
                return Session(token, record.values, record.deadline)
            logger.debug(f"Session {token[:8]}... unknown or expired, starting a new one")

        return Session("", {}, datetime.now(timezone.utc) + self.lifetime)

    async def commit(self, session: Session) -> None:
        """Write a modified session to the store and delete replaced tokens"""
        for stale in session.drain_stale_tokens():
            await self.store.delete(stale)

        if session.status is SessionStatus.MODIFIED:
            if not session.token:
                session.token = new_token()
            await self.store.commit(session.token, SessionRecord(session.values, session.deadline))

    def write_cookie(self, response: Response, session: Session) -> None:
        if session.status is SessionStatus.DESTROYED:
            response.delete_cookie(
                self.cookie.name,
                path=self.cookie.path,
                secure=self.cookie.secure,
                httponly=self.cookie.http_only,
                samesite=self.cookie.same_site
            )
            return

        max_age = int((session.deadline - datetime.now(timezone.utc)).total_seconds())
        response.set_cookie(
            self.cookie.name,
            session.token,
            max_age=max(max_age, 0),
            expires=session.deadline,
            path=self.cookie.path,
            secure=self.cookie.secure,
            httponly=self.cookie.http_only,
            samesite=self.cookie.same_site
        )

    @stage(Stage.SESSION)
    def load_and_save(self, next_handler: Handler) -> Handler:
        """Middleware: attach the session to the context, commit it afterwards"""
        async def handler(request: Request, ctx: RequestContext) -> Response:
            session = await self.load(request.cookies.get(self.cookie.name))

            response = await next_handler(request, ctx.with_session(session))

            response.headers.append("Vary", "Cookie")
            if session.status is not SessionStatus.UNMODIFIED:
                await self.commit(session)
                self.write_cookie(response, session)
            return response

        return handler
