"""
Domain exceptions - Semantic error types for registration and authentication.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""

from .validation import EMAIL_TAKEN

INVALID_CREDENTIALS = "Invalid email or password."


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class ValidationFailed(RegistrationError):
    """One or more fields failed the shared ruleset."""

    def __init__(self, errors: dict[str, str], message: str = "Please fix the errors below.") -> None:
        super().__init__(message)
        self.message = message
        self.errors = dict(errors)


class EmailAlreadyClaimed(ValidationFailed):
    """Email is already used by another account."""

    def __init__(self, email: str) -> None:
        super().__init__({"email": EMAIL_TAKEN})
        self.email = email

    def __str__(self) -> str:
        return f"Email already claimed: {self.email}"


class AuthError(Exception):
    """Base class for authentication errors."""

    pass


class AuthenticationFailed(AuthError):
    """Unknown identifier or wrong password (deliberately indistinguishable)."""

    def __init__(self) -> None:
        super().__init__(INVALID_CREDENTIALS)
        self.message = INVALID_CREDENTIALS
        self.errors = {"identifier": INVALID_CREDENTIALS}


class Unauthenticated(AuthError):
    """Session missing, unknown or expired."""

    pass


class ProfileAccessDenied(AuthError):
    """Authenticated session does not own the targeted account."""

    pass
