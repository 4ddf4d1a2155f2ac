"""Error taxonomy.

Every error carries the HTTP status it maps to and a stable ``message``
that is safe to return to the caller.
"""


class SovaError(Exception):
    """Base class for all service errors."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(SovaError):
    """Missing or malformed input."""

    status_code = 400
    message = "Invalid request"


class AuthenticationError(SovaError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    message = "Authentication required"


class AuthorizationError(SovaError):
    """Valid identity without the required right."""

    status_code = 403
    message = "Access denied"


class ConflictError(SovaError):
    """Request conflicts with current state."""

    status_code = 400
    message = "Conflict"


class NotFoundError(SovaError):
    status_code = 404
    message = "Not found"


class InternalError(SovaError):
    status_code = 500
    message = "Internal server error"


# Credential store

class DuplicateUser(ConflictError):
    message = "User already exists"


class InvalidCredentials(AuthenticationError):
    # Same body for unknown email and wrong password
    status_code = 400
    message = "Invalid email or password"


# Session manager

class DeviceLimitExceeded(ConflictError):
    status_code = 403
    message = "Device limit exceeded"


class MissingToken(AuthenticationError):
    message = "Access token required"


class InvalidToken(AuthenticationError):
    status_code = 403
    message = "Invalid or expired token"


class SessionNotFound(AuthenticationError):
    message = "Session not found"


# Access gateway

class SubscriptionRequired(AuthorizationError):
    message = "Active subscription required"


class SubscriptionExpired(AuthorizationError):
    message = "Subscription expired"


class InvalidSharedSecret(AuthenticationError):
    message = "Invalid API key"


class AdminAccessDenied(AuthorizationError):
    message = "Admin access denied"
