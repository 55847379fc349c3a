"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

import logging
from datetime import timedelta

from fastapi import Depends, Header, HTTPException, Request, status

from src.adapters.security.action_tokens import ActionFamily, ActionTokens
from src.config.settings import Settings, get_settings
from src.domain.ports import AccountRepository, PhotoStorage, SessionRepository
from src.domain.profile import ProfileService
from src.domain.registration import RegistrationService
from src.domain.sessions import SessionAuthService

logger = logging.getLogger(__name__)

SECURITY_CHECK_FAILED = "Security check failed."


def get_account_repository(request: Request) -> AccountRepository:
    """
    Get the account store from app state.

    The store is created during app lifespan startup (or by tests) and
    stored in app.state.
    """
    return request.app.state.accounts


def get_session_repository(request: Request) -> SessionRepository:
    return request.app.state.sessions


def get_photo_storage(request: Request) -> PhotoStorage:
    return request.app.state.photo_storage


def get_registration_service(
    accounts: AccountRepository = Depends(get_account_repository),
    settings: Settings = Depends(get_settings),
) -> RegistrationService:
    """Create registration service with injected dependencies."""
    return RegistrationService(
        repository=accounts,
        redirect_url=settings.profile_url,
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_session_service(
    accounts: AccountRepository = Depends(get_account_repository),
    sessions: SessionRepository = Depends(get_session_repository),
    settings: Settings = Depends(get_settings),
) -> SessionAuthService:
    """Create session service with configured lifetimes."""
    return SessionAuthService(
        accounts=accounts,
        sessions=sessions,
        session_ttl=timedelta(seconds=settings.session_ttl_seconds),
        remember_ttl=timedelta(seconds=settings.remember_ttl_seconds),
    )


def get_profile_service(
    accounts: AccountRepository = Depends(get_account_repository),
    auth: SessionAuthService = Depends(get_session_service),
    settings: Settings = Depends(get_settings),
) -> ProfileService:
    return ProfileService(accounts=accounts, auth=auth, bcrypt_cost=settings.bcrypt_cost)


def get_action_tokens(settings: Settings = Depends(get_settings)) -> ActionTokens:
    return ActionTokens(settings.secret_key, ttl_seconds=settings.action_token_ttl_seconds)


def get_session_token(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> str | None:
    """
    Extract the session handle from the request.

    Accepts `Authorization: Bearer <token>` or the session cookie.
    """
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get(settings.session_cookie_name)


def require_action_token(family: ActionFamily):
    """Build a dependency that checks the X-Action-Token header for a family."""

    def check_action_token(
        x_action_token: str | None = Header(default=None),
        tokens: ActionTokens = Depends(get_action_tokens),
    ) -> None:
        if not tokens.verify(family, x_action_token):
            logger.warning("Rejected %s action: missing or invalid action token", family.value)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=SECURITY_CHECK_FAILED,
            )

    return check_action_token


require_registration_token = require_action_token(ActionFamily.REGISTRATION)
require_login_token = require_action_token(ActionFamily.LOGIN)
