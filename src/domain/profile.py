"""
Profile service - Authenticated account updates.

Consumes the same ruleset as registration. The password rules only apply
when the user asks to change the password.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .exceptions import EmailAlreadyClaimed, ProfileAccessDenied, ValidationFailed
from .models import AccountChanges, AccountSummary, unique_interests
from .ports import AccountRepository
from .registration import clean_fields, hash_password, optional_date, optional_text
from .sessions import SessionAuthService
from .validation import (
    EMAIL_TAKEN,
    INTERESTS_FIELD,
    ValidationContext,
    normalize_email,
    validate_submission,
)

logger = logging.getLogger(__name__)


@dataclass
class ProfileService:
    accounts: AccountRepository
    auth: SessionAuthService
    bcrypt_cost: int = 10

    def update_profile(
        self, session_id: str | None, account_id: int, fields: Mapping[str, Any]
    ) -> AccountSummary:
        """
        Update the account owned by the session.

        Raises:
            Unauthenticated: Session missing or expired
            ProfileAccessDenied: Session belongs to another account
            ValidationFailed: Ruleset errors (email uniqueness included)
        """
        current = self.auth.verify(session_id)
        if current.id != account_id:
            logger.warning("Profile update for account id=%s denied", account_id)
            raise ProfileAccessDenied("Session does not own this account")

        values = clean_fields(fields)
        change_password = bool(values.pop("change_password", False))
        context = ValidationContext(password_change=change_password)
        errors = validate_submission(values, context)

        email = normalize_email(values.get("email", ""))
        if "email" not in errors and email != current.email:
            existing = self.accounts.get_by_email(email)
            if existing is not None and existing.id != account_id:
                errors["email"] = EMAIL_TAKEN
        if errors:
            raise ValidationFailed(errors)

        password_hash = None
        if change_password:
            password_hash = hash_password(values.pop("password"), self.bcrypt_cost)

        updated = self.accounts.update_account(
            account_id,
            AccountChanges(
                full_name=values["full_name"],
                email=email,
                phone_number=values["phone_number"],
                country=values["country"],
                city=optional_text(values.get("city")),
                gender=optional_text(values.get("gender")),
                date_of_birth=optional_date(values.get("date_of_birth")),
                interests=unique_interests(values.get(INTERESTS_FIELD)),
                profile_photo=optional_text(values.get("profile_photo")),
                password_hash=password_hash,
            ),
        )
        if updated is None:
            raise EmailAlreadyClaimed(email)

        logger.info("Updated profile for account id=%s", account_id)
        return updated.summary()
