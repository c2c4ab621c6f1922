"""
Security layer of the request pipeline.

- Server-side sessions with fixed lifetime and token renewal
- CSRF double-submit protection
- Per-request authentication state and the login gate

These run as chain layers around the page handlers; handlers only touch
them through `login`/`logout` and the request context.
"""

from .session import (
    Session,
    SessionManager,
    SessionRecord,
    SessionStore,
    CookieConfig,
)
from .csrf import CSRFGuard, CSRFConfig
from .auth import (
    AuthState,
    authenticate,
    require_authentication,
    resolve,
    login,
    logout,
)

__all__ = [
    'Session',
    'SessionManager',
    'SessionRecord',
    'SessionStore',
    'CookieConfig',
    'CSRFGuard',
    'CSRFConfig',
    'AuthState',
    'authenticate',
    'require_authentication',
    'resolve',
    'login',
    'logout',
]
