"""
Error kinds raised by the identity core.

Every kind carries a stable ``code`` and the HTTP ``status`` the API maps it to
(see api/errors.py). Messages are human readable and never include hashes,
secrets or token values.
"""
from __future__ import annotations


class AuthError(Exception):
    code = "AUTH_ERROR"
    status = 400
    default_message = "Authentication error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentials(AuthError):
    code = "INVALID_CREDENTIALS"
    status = 401
    default_message = "Invalid credentials"


class InvalidToken(AuthError):
    """Expired, malformed, revoked or superseded token. Deliberately one kind."""
    code = "INVALID_TOKEN"
    status = 401
    default_message = "Invalid or expired token"


class Unauthorized(AuthError):
    code = "UNAUTHORIZED"
    status = 401
    default_message = "Authentication required"


class Forbidden(AuthError):
    code = "FORBIDDEN"
    status = 403
    default_message = "You are not allowed to modify this resource"


class NotFound(AuthError):
    code = "NOT_FOUND"
    status = 404
    default_message = "User not found"


class Conflict(AuthError):
    code = "CONFLICT"
    status = 409
    default_message = "User already exists"


class IntegrityFailure(AuthError):
    """Internal corruption (e.g. unreadable stored hash). Fatal, never retried."""
    code = "INTEGRITY_ERROR"
    status = 500
    default_message = "Internal integrity error"
