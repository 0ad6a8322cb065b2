"""
Error taxonomy shared by services, repositories and routers.

Services raise these; the application translates them into a single JSON
error body (see linklounge.app).
"""

from __future__ import annotations


class LoungeError(Exception):
    """Base class for every error that maps to an HTTP response."""

    status_code = 500
    default_message = "An unexpected error occurred. Please try again later."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def payload(self) -> dict:
        return {"message": self.message}


class ValidationError(LoungeError):
    status_code = 400
    default_message = "Invalid request data."


class InvalidCredentialsError(LoungeError):
    status_code = 401
    default_message = "Invalid credentials. Please check your username and password and try again."


class UnauthorizedError(LoungeError):
    status_code = 401
    default_message = "Unauthorized. Please log in again."


class ForbiddenError(LoungeError):
    status_code = 403
    default_message = "Forbidden."


class NotFoundError(LoungeError):
    status_code = 404
    default_message = "The requested resource was not found."


class ConflictError(LoungeError):
    status_code = 409
    default_message = "The resource conflicts with an existing record."


class DuplicateError(ConflictError):
    """Raised when a unique field (username, email, lounge url) is already taken."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"This {field} is already in use.")


class HasDependentsError(ConflictError):
    default_message = "This user has lounges associated with their account. Please delete the lounges first."


class InvalidOrExpiredTokenError(LoungeError):
    status_code = 400
    default_message = "Invalid or expired reset token. Please request a new password reset."


class UpstreamFailure(LoungeError):
    status_code = 500
    default_message = "An external provider failed. Please try again later."


class InternalError(LoungeError):
    status_code = 500


class RateLimitedError(LoungeError):
    status_code = 429
    default_message = "Too many login attempts from this IP, please try again later."

    def __init__(self, *, attempts_left: int, retry_after: int, reason: str = "Too many login attempts"):
        super().__init__()
        self.attempts_left = attempts_left
        self.retry_after = retry_after
        self.reason = reason

    def payload(self) -> dict:
        return {
            "message": self.message,
            "reason": self.reason,
            "attemptsLeft": self.attempts_left,
            "retryAfter": self.retry_after,
        }
