# snippetbox/core/config.py
import logging
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings

from snippetbox.core.exceptions import config_error

logger = logging.getLogger(__name__)

SESSION_BACKENDS = ("memory", "redis")


class Settings(BaseSettings):
    """Application settings, read from the environment and .env"""
    APP_NAME: str = "Snippetbox"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Listener
    HOST: str = "0.0.0.0"
    PORT: int = 4000
    TLS_CERT_FILE: Optional[str] = None
    TLS_KEY_FILE: Optional[str] = None
    KEEP_ALIVE_TIMEOUT: int = 60

    # Sessions
    SESSION_BACKEND: str = "memory"
    SESSION_LIFETIME_HOURS: int = 12
    SESSION_COOKIE_NAME: str = "session"
    COOKIE_SECURE: bool = True
    REDIS_URL: Optional[str] = None

    # CSRF
    CSRF_COOKIE_NAME: str = "csrf_token"
    CSRF_HEADER_NAME: str = "X-CSRF-Token"

    # Authentication
    LOGIN_PATH: str = "/user/login"
    BCRYPT_ROUNDS: int = 12

    # Logging, applied by setup_logging()
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    @field_validator("SESSION_BACKEND")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in SESSION_BACKENDS:
            raise ValueError(f"SESSION_BACKEND must be one of {', '.join(SESSION_BACKENDS)}")
        return value


settings = Settings()


def validate_required_settings(current: Optional[Settings] = None) -> bool:
    """
    Check settings that only make sense together.

    Raises:
        ConfigurationError: If the redis backend has no URL, or only one TLS file is set
    """
    current = current or settings

    if current.SESSION_BACKEND == "redis" and not current.REDIS_URL:
        raise config_error("SESSION_BACKEND=redis requires REDIS_URL", component="sessions")

    if not current.COOKIE_SECURE:
        logger.warning("⚠️ COOKIE_SECURE is off - session cookies will travel over plain HTTP")

    if bool(current.TLS_CERT_FILE) != bool(current.TLS_KEY_FILE):
        raise config_error("TLS_CERT_FILE and TLS_KEY_FILE must be set together", component="tls")

    return True
