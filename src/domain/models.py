"""
Domain records - Accounts and sessions.

Plain frozen dataclasses; adapters build them from rows, services hand out
only the hash-free AccountSummary.
"""

from dataclasses import dataclass, field
from datetime import date, datetime


def unique_interests(interests: object) -> tuple[str, ...]:
    """De-duplicate interests while keeping selection order."""
    seen: dict[str, None] = {}
    for item in interests or ():
        value = str(item).strip()
        if value:
            seen.setdefault(value, None)
    return tuple(seen)


@dataclass(frozen=True)
class AccountSummary:
    """Outward view of an account (never carries the password hash)."""

    id: int
    full_name: str
    email: str
    phone_number: str
    country: str
    city: str | None
    gender: str | None
    date_of_birth: date | None
    interests: tuple[str, ...]
    profile_photo: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Account:
    """Durable account record as stored."""

    id: int
    full_name: str
    email: str
    password_hash: str = field(repr=False)
    phone_number: str = ""
    country: str = ""
    city: str | None = None
    gender: str | None = None
    date_of_birth: date | None = None
    interests: tuple[str, ...] = ()
    profile_photo: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def summary(self) -> AccountSummary:
        return AccountSummary(
            id=self.id,
            full_name=self.full_name,
            email=self.email,
            phone_number=self.phone_number,
            country=self.country,
            city=self.city,
            gender=self.gender,
            date_of_birth=self.date_of_birth,
            interests=self.interests,
            profile_photo=self.profile_photo,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class NewAccount:
    """Validated, hashed data for an account that does not exist yet."""

    full_name: str
    email: str
    password_hash: str = field(repr=False)
    phone_number: str
    country: str
    city: str | None
    gender: str | None
    date_of_birth: date | None
    interests: tuple[str, ...]
    profile_photo: str | None


@dataclass(frozen=True)
class AccountChanges:
    """Profile update; password_hash is None when the password is kept."""

    full_name: str
    email: str
    phone_number: str
    country: str
    city: str | None
    gender: str | None
    date_of_birth: date | None
    interests: tuple[str, ...]
    profile_photo: str | None
    password_hash: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class SessionRecord:
    """Stored session, keyed by the digest of its token."""

    token_hash: str
    account_id: int
    expires_at: datetime
    remember: bool


@dataclass(frozen=True)
class Session:
    """Issued session; session_id is the raw token, shown to the caller once."""

    session_id: str = field(repr=False)
    account_id: int
    expires_at: datetime
    remember: bool


@dataclass(frozen=True)
class RegistrationOutcome:
    account: AccountSummary
    redirect_url: str
