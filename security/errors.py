"""Error taxonomy of the access-control core.

Each class carries the HTTP status and reason phrase the global handler uses.
Messages are generic on purpose; details stay in the logs.
"""

from typing import Dict, List, Optional, Union


class AuthError(Exception):
    """Base class for errors mapped to HTTP responses."""

    status_code: int = 400
    error: str = "Bad Request"
    default_message: str = "Request could not be processed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidToken(AuthError):
    """Missing, malformed, badly signed or expired token."""
    status_code = 401
    error = "Unauthorized"
    default_message = "Invalid or expired token"


class TokenRevoked(AuthError):
    status_code = 401
    error = "Unauthorized"
    default_message = "Token has been revoked"


class UserMissingOrInactive(AuthError):
    status_code = 401
    error = "Unauthorized"
    default_message = "User not found or inactive"


class Unauthenticated(AuthError):
    """Route requires a principal and none is attached."""
    status_code = 401
    error = "Unauthorized"
    default_message = "Authentication required"


class Forbidden(AuthError):
    status_code = 403
    error = "Forbidden"
    default_message = "You don't have permission to access this resource"


class RateLimited(AuthError):
    status_code = 429
    error = "Too Many Requests"
    default_message = "Too many requests. Please try again later."

    def __init__(self, retry_after: int, message: Optional[str] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class InvalidCredentials(AuthError):
    status_code = 401
    error = "Unauthorized"
    default_message = "Invalid credentials"


class EmailTaken(AuthError):
    status_code = 409
    error = "Conflict"
    default_message = "Email already registered"


class ValidationFailed(AuthError):
    """Field-level validation failure, reported with a `validationErrors` map."""
    status_code = 400
    error = "Validation Error"
    default_message = "Validation failed for request parameters"

    def __init__(
        self,
        validation_errors: Dict[str, Union[str, List[str]]],
        message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.validation_errors = validation_errors


class WeakPassword(ValidationFailed):
    default_message = "Password does not meet the password policy"

    def __init__(self, violations: List[str], field: str = "password") -> None:
        super().__init__({field: violations})
        self.violations = violations


class ResourceNotFound(AuthError):
    status_code = 404
    error = "Not Found"
    default_message = "Resource not found"


class RevocationUnavailable(AuthError):
    """The denylist could not record a revocation. Never shown to clients."""
    status_code = 503
    error = "Service Unavailable"
    default_message = "Token revocation is temporarily unavailable"


class DenylistUnavailable(AuthError):
    """The denylist could not be read. Verification fails open."""
    status_code = 503
    error = "Service Unavailable"
    default_message = "Token denylist is temporarily unavailable"


class DirectoryUnavailable(AuthError):
    """The user directory could not be read. Verification fails closed."""
    status_code = 503
    error = "Service Unavailable"
    default_message = "User directory is temporarily unavailable"


class ReviewExists(AuthError):
    status_code = 409
    error = "Conflict"
    default_message = "You have already reviewed this artwork"
