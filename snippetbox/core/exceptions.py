# snippetbox/core/exceptions.py
"""
Snippetbox Core Exceptions - standardized error handling for the request pipeline.

Errors fall into three groups:
- client errors (bad forms, failed CSRF checks) that end up as 4xx responses
- internal errors (store or collaborator failures, missing templates) that
  end up as a generic 500 with full detail in the log
- domain errors raised by the models and translated by the handlers
"""

from typing import Optional, Dict, Any


class SnippetboxError(Exception):
    """Base exception for all snippetbox errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(SnippetboxError):
    """Errors in system configuration and startup wiring"""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize configuration error.

        Args:
            message: Error description
            component: Component with configuration issue
            details: Additional configuration context
        """
        super().__init__(message, details)
        self.component = component

        if component:
            self.details['component'] = component


class TemplateNotFoundError(ConfigurationError):
    """A page was requested that is not in the template cache"""

    def __init__(self, page: str):
        super().__init__(f"the template {page} does not exist", component="templates")
        self.page = page


class InvalidDecoderError(SnippetboxError):
    """
    A form was decoded into a destination that cannot hold it.

    This is a programming defect, not a user error. It is never caught by
    handlers and surfaces as a 500 through the recovery layer.
    """

    def __init__(self, destination: Any):
        super().__init__(
            "form destination must be a pydantic model class",
            details={'destination': repr(destination)}
        )
        self.destination = destination


class ServiceError(SnippetboxError):
    """Errors in external service interactions"""

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize service error.

        Args:
            message: Error description
            service_name: Name of the failing service
            operation: Operation that failed
            details: Additional service context
        """
        super().__init__(message, details)
        self.service_name = service_name
        self.operation = operation

        if service_name:
            self.details['service'] = service_name
        if operation:
            self.details['operation'] = operation


class RedisServiceError(ServiceError):
    """Specific errors for Redis service interactions"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize Redis service error.

        Args:
            message: Error description
            key: Redis key that failed
            operation: Redis operation that failed
            details: Additional Redis context
        """
        super().__init__(message, service_name="Redis", operation=operation, details=details)
        self.key = key

        if key:
            # Keys carry session tokens, only keep a prefix
            self.details['key'] = key[:24]


class UserLookupError(ServiceError):
    """The user-existence collaborator failed while resolving authentication"""

    def __init__(self, user_id: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"could not check whether user {user_id} exists",
            service_name="users",
            operation="exists",
            details=details
        )
        self.user_id = user_id


class SecurityError(SnippetboxError):
    """Errors in security validation"""

    def __init__(
        self,
        message: str,
        error_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize security error.

        Args:
            message: Error description
            error_type: Type of security error (csrf, origin, token)
            details: Additional security context
        """
        super().__init__(message, details)
        self.error_type = error_type

        if error_type:
            self.details['error_type'] = error_type


class CSRFError(SecurityError):
    """The anti-forgery check rejected an unsafe request"""

    def __init__(self, reason: str):
        super().__init__(f"CSRF verification failed: {reason}", error_type="csrf")
        self.reason = reason


class FormDecodeError(SnippetboxError):
    """The posted form could not be parsed or bound to its model"""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message, details={'errors': errors} if errors else None)
        self.errors = errors or []


class NoRecordError(SnippetboxError):
    """No matching record found"""

    def __init__(self, model: str, record_id: Any):
        super().__init__(f"no matching {model} record", details={'id': record_id})


class InvalidCredentialsError(SnippetboxError):
    """Email or password did not match a stored user"""

    def __init__(self):
        super().__init__("invalid credentials")


class DuplicateEmailError(SnippetboxError):
    """A user with the same email address already exists"""

    def __init__(self, email: str):
        super().__init__("duplicate email", details={'email': email})
        self.email = email


# Convenience functions for creating common errors

def config_error(message: str, component: str) -> ConfigurationError:
    """Create a configuration error with component context."""
    return ConfigurationError(message, component=component)

