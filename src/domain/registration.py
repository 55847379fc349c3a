"""
Registration domain service - Authoritative account creation.

The client validates every step before it lets the user move on, but the
server never trusts that: register() re-runs the complete shared ruleset,
then claims the email atomically in the account store.

Uniqueness
==========

    1. email_exists() pre-check   - optimization, gives a friendly error early
    2. create_account()           - correctness guarantee; the store's UNIQUE
                                    constraint decides between concurrent
                                    attempts for the same email

Exactly one of N concurrent registrations for an email succeeds; all others
raise EmailAlreadyClaimed.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

import bcrypt

from .exceptions import EmailAlreadyClaimed, ValidationFailed
from .models import NewAccount, RegistrationOutcome, unique_interests
from .ports import AccountRepository
from .validation import (
    EMAIL_TAKEN,
    INTERESTS_FIELD,
    PASSWORD_FIELDS,
    REGISTRATION,
    ValidationContext,
    normalize_email,
    validate_submission,
)

logger = logging.getLogger(__name__)


def clean_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """
    Normalize raw submitted values before validation.

    Text is stripped (passwords are kept verbatim), interests become a list.
    """
    cleaned: dict[str, Any] = {}
    for name, value in fields.items():
        if name == INTERESTS_FIELD:
            cleaned[name] = [str(item) for item in value or ()]
        elif name in PASSWORD_FIELDS:
            cleaned[name] = "" if value is None else str(value)
        elif isinstance(value, str):
            cleaned[name] = value.strip()
        else:
            cleaned[name] = value
    return cleaned


def optional_text(value: Any) -> str | None:
    return value or None


def optional_date(value: Any) -> date | None:
    return date.fromisoformat(value) if value else None


def hash_password(password: str, cost: int) -> str:
    """Hash password using bcrypt with the configured cost factor."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=cost)).decode()


@dataclass
class RegistrationService:
    """
    Domain service for user registration.

    Orchestrates the registration flow: validation against the shared
    ruleset, email normalization, password hashing and atomic insert.
    """

    repository: AccountRepository
    redirect_url: str = "/profile"
    bcrypt_cost: int = 10

    def register(self, fields: Mapping[str, Any]) -> RegistrationOutcome:
        """
        Register a new account.

        Args:
            fields: Submitted values keyed by snake_case field identifiers

        Returns:
            Hash-free account summary and the redirect target

        Raises:
            ValidationFailed: Field -> message map for every failing rule
            EmailAlreadyClaimed: Email used by another account
        """
        values = clean_fields(fields)
        errors = self.validate(values, REGISTRATION)

        email = self._normalize_email(values.get("email", ""))
        if "email" not in errors and self.repository.email_exists(email):
            if not errors:
                raise EmailAlreadyClaimed(email)
            errors["email"] = EMAIL_TAKEN
        if errors:
            raise ValidationFailed(errors)

        password_hash = self._hash_password(values.pop("password"))
        values.pop("confirm_password", None)

        account = self.repository.create_account(
            NewAccount(
                full_name=values["full_name"],
                email=email,
                password_hash=password_hash,
                phone_number=values["phone_number"],
                country=values["country"],
                city=optional_text(values.get("city")),
                gender=optional_text(values.get("gender")),
                date_of_birth=optional_date(values.get("date_of_birth")),
                interests=unique_interests(values.get(INTERESTS_FIELD)),
                profile_photo=optional_text(values.get("profile_photo")),
            )
        )
        if account is None:
            # Lost the race against a concurrent registration
            raise EmailAlreadyClaimed(email)

        logger.info("Registered account id=%s", account.id)
        return RegistrationOutcome(account=account.summary(), redirect_url=self.redirect_url)

    def validate(self, values: Mapping[str, Any], context: ValidationContext) -> dict[str, str]:
        """Run the shared ruleset over every step."""
        return validate_submission(values, context)

    def email_exists(self, email: str) -> bool:
        """Uniqueness query behind the client's asynchronous pre-check."""
        return self.repository.email_exists(self._normalize_email(email))

    def _normalize_email(self, email: str) -> str:
        return normalize_email(email)

    def _hash_password(self, password: str) -> str:
        return hash_password(password, self.bcrypt_cost)
