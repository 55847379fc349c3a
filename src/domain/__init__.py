"""
Domain layer - Pure business logic with zero framework imports.

This package contains the shared validation ruleset, the registration,
session and profile services, and the port interfaces they require from
infrastructure, keeping the domain decoupled from FastAPI and psycopg.
"""

from .exceptions import (
    AuthenticationFailed,
    AuthError,
    EmailAlreadyClaimed,
    ProfileAccessDenied,
    RegistrationError,
    Unauthenticated,
    ValidationFailed,
)
from .models import Account, AccountSummary, RegistrationOutcome, Session
from .ports import AccountRepository, PhotoStorage, SessionRepository
from .profile import ProfileService
from .registration import RegistrationService
from .sessions import SessionAuthService

__all__ = [
    "Account",
    "AccountRepository",
    "AccountSummary",
    "AuthError",
    "AuthenticationFailed",
    "EmailAlreadyClaimed",
    "PhotoStorage",
    "ProfileAccessDenied",
    "ProfileService",
    "RegistrationError",
    "RegistrationOutcome",
    "RegistrationService",
    "Session",
    "SessionAuthService",
    "SessionRepository",
    "Unauthenticated",
    "ValidationFailed",
]
