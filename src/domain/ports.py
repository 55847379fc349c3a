"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from datetime import datetime
from typing import Protocol

from .models import Account, AccountChanges, NewAccount, SessionRecord


class AccountRepository(Protocol):
    """Port interface for account persistence."""

    def create_account(self, account: NewAccount) -> Account | None:
        """
        Atomically insert an account if its email is still free.

        The uniqueness guarantee must come from the store itself (UNIQUE
        constraint or an equivalent atomic check-and-insert), so that two
        concurrent calls for the same email can never both succeed.

        Args:
            account: Validated account data with normalized email

        Returns:
            The stored Account, or None if the email is already taken
        """
        ...

    def email_exists(self, email: str) -> bool:
        """Return True if an account already uses this normalized email."""
        ...

    def get_by_email(self, email: str) -> Account | None:
        """Fetch an account by normalized email."""
        ...

    def get_by_id(self, account_id: int) -> Account | None:
        """Fetch an account by primary key."""
        ...

    def update_account(self, account_id: int, changes: AccountChanges) -> Account | None:
        """
        Apply a profile update.

        Returns:
            The updated Account, or None if the new email belongs to
            another account (uniqueness enforced by the store)
        """
        ...


class SessionRepository(Protocol):
    """Port interface for session persistence."""

    def create(self, record: SessionRecord) -> None:
        """Store a new session."""
        ...

    def get(self, token_hash: str, now: datetime) -> SessionRecord | None:
        """Fetch a session that has not expired at `now`."""
        ...

    def delete(self, token_hash: str) -> None:
        """Remove a session; absent sessions are not an error."""
        ...

    def purge_expired(self, now: datetime) -> int:
        """Delete sessions expired at `now`, returning how many were removed."""
        ...


class PhotoStorage(Protocol):
    """Port interface for uploaded profile photos."""

    def save(self, filename: str, content_type: str, data: bytes) -> str:
        """
        Persist image bytes.

        Returns:
            Asset reference (URL) for the stored file
        """
        ...
