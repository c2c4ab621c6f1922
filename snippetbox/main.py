# snippetbox/main.py
"""
Snippetbox application factory and server entry point.

Every request passes the outer chain (recovery, request log, security
headers). Pages then pass the dynamic chain (session, CSRF, authentication)
and, behind login, the authentication gate.

Run with `python -m snippetbox.main`, or under uvicorn as
`uvicorn snippetbox.main:create_app --factory`.
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Mapping, Optional

from fastapi import FastAPI, Request
from jinja2 import Template
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from snippetbox.core.config import Settings, settings, validate_required_settings
from snippetbox.core.logging_config import setup_logging
from snippetbox.core.security.auth import authenticate, require_authentication
from snippetbox.core.security.csrf import CSRFConfig, CSRFGuard
from snippetbox.core.security.session import CookieConfig, SessionManager, SessionStore
from snippetbox.middleware.chain import Chain
from snippetbox.middleware.pipeline import PipelineMiddleware, standard_chain
from snippetbox.models.snippets import MemorySnippetModel, SnippetModel
from snippetbox.models.users import MemoryUserModel, UserModel
from snippetbox.services.redis_service import RedisConfig, RedisService
from snippetbox.services.session_store import MemorySessionStore, RedisSessionStore
from snippetbox.web.handlers import Handlers
from snippetbox.web.helpers import client_error
from snippetbox.web.routes import register_routes
from snippetbox.web.templates import new_template_cache

logger = logging.getLogger(__name__)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Router errors (404, 405) as plain status text, like every other client error"""
    response = client_error(exc.status_code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def create_app(
    app_settings: Optional[Settings] = None,
    *,
    users: Optional[UserModel] = None,
    snippets: Optional[SnippetModel] = None,
    session_store: Optional[SessionStore] = None,
    templates: Optional[Mapping[str, Template]] = None,
) -> FastAPI:
    """
    Wire the application.

    Collaborators not passed in are built from settings: in-memory models,
    and the session backend named by SESSION_BACKEND.

    Raises:
        ConfigurationError: Settings are inconsistent or the pipeline is misordered
    """
    app_settings = app_settings or settings
    setup_logging(app_settings)
    validate_required_settings(app_settings)

    redis_service: Optional[RedisService] = None
    if session_store is None:
        if app_settings.SESSION_BACKEND == "redis":
            redis_service = RedisService(RedisConfig(url=app_settings.REDIS_URL))
            session_store = RedisSessionStore(redis_service)
        else:
            session_store = MemorySessionStore()
    if users is None:
        users = MemoryUserModel(bcrypt_rounds=app_settings.BCRYPT_ROUNDS)
    if snippets is None:
        snippets = MemorySnippetModel()
    if templates is None:
        templates = new_template_cache()

    sessions = SessionManager(
        session_store,
        lifetime=timedelta(hours=app_settings.SESSION_LIFETIME_HOURS),
        cookie=CookieConfig(name=app_settings.SESSION_COOKIE_NAME, secure=app_settings.COOKIE_SECURE)
    )
    csrf = CSRFGuard(CSRFConfig(
        cookie_name=app_settings.CSRF_COOKIE_NAME,
        header_name=app_settings.CSRF_HEADER_NAME,
        cookie_secure=app_settings.COOKIE_SECURE
    ))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Connect and release backing services"""
        logger.info("=" * 60)
        logger.info(f"🚀 {app_settings.APP_NAME} starting ({app_settings.ENVIRONMENT})")
        logger.info(f"  - Session backend: {app_settings.SESSION_BACKEND}")
        logger.info(f"  - Session lifetime: {app_settings.SESSION_LIFETIME_HOURS}h")
        logger.info(f"  - Templates: {', '.join(sorted(templates))}")

        if redis_service is not None:
            try:
                await redis_service.initialize()
            except Exception as e:
                logger.error(f"❌ Session backend unavailable: {e}")
                raise

        logger.info("✅ Ready")
        logger.info("=" * 60)

        yield

        logger.info(f"🛑 {app_settings.APP_NAME} shutting down...")
        if redis_service is not None:
            await redis_service.shutdown()

    app = FastAPI(
        title=app_settings.APP_NAME,
        debug=app_settings.DEBUG,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None
    )

    app.add_middleware(PipelineMiddleware, chain=standard_chain())
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    dynamic = Chain(sessions.load_and_save, csrf.protect, authenticate(users))
    protected = dynamic.append(require_authentication(app_settings.LOGIN_PATH))

    register_routes(app, Handlers(snippets, users, templates), dynamic, protected)

    app.state.sessions = sessions
    app.state.settings = app_settings
    return app


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    logger.info(f"🌐 Starting server on {settings.HOST}:{settings.PORT}...")

    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        ssl_certfile=settings.TLS_CERT_FILE,
        ssl_keyfile=settings.TLS_KEY_FILE,
        timeout_keep_alive=settings.KEEP_ALIVE_TIMEOUT,
        log_level=settings.LOG_LEVEL.lower()
    )
