"""
In-memory repository adapters - Process-local AccountRepository and SessionRepository.

Used for development (storage_backend=memory) and tests. A single lock
guards every read-modify-write, which gives the same at-most-one-account-
per-email guarantee as the PostgreSQL UNIQUE constraint.
"""

import itertools
import threading
from dataclasses import replace
from datetime import datetime, timezone

from src.domain.models import Account, AccountChanges, NewAccount, SessionRecord


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryAccountRepository:
    """Implements AccountRepository protocol with dictionaries."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._by_id: dict[int, Account] = {}
        self._id_by_email: dict[str, int] = {}

    def create_account(self, account: NewAccount) -> Account | None:
        with self._lock:
            if account.email in self._id_by_email:
                return None
            now = _now()
            stored = Account(
                id=next(self._ids),
                full_name=account.full_name,
                email=account.email,
                password_hash=account.password_hash,
                phone_number=account.phone_number,
                country=account.country,
                city=account.city,
                gender=account.gender,
                date_of_birth=account.date_of_birth,
                interests=account.interests,
                profile_photo=account.profile_photo,
                created_at=now,
                updated_at=now,
            )
            self._by_id[stored.id] = stored
            self._id_by_email[stored.email] = stored.id
            return stored

    def email_exists(self, email: str) -> bool:
        with self._lock:
            return email in self._id_by_email

    def get_by_email(self, email: str) -> Account | None:
        with self._lock:
            account_id = self._id_by_email.get(email)
            return self._by_id.get(account_id) if account_id is not None else None

    def get_by_id(self, account_id: int) -> Account | None:
        with self._lock:
            return self._by_id.get(account_id)

    def update_account(self, account_id: int, changes: AccountChanges) -> Account | None:
        with self._lock:
            current = self._by_id.get(account_id)
            if current is None:
                return None
            owner = self._id_by_email.get(changes.email)
            if owner is not None and owner != account_id:
                return None
            updated = replace(
                current,
                full_name=changes.full_name,
                email=changes.email,
                phone_number=changes.phone_number,
                country=changes.country,
                city=changes.city,
                gender=changes.gender,
                date_of_birth=changes.date_of_birth,
                interests=changes.interests,
                profile_photo=changes.profile_photo,
                password_hash=changes.password_hash or current.password_hash,
                updated_at=_now(),
            )
            del self._id_by_email[current.email]
            self._id_by_email[updated.email] = account_id
            self._by_id[account_id] = updated
            return updated

    def count(self) -> int:
        with self._lock:
            return len(self._by_id)


class InMemorySessionRepository:
    """Implements SessionRepository protocol with a dictionary."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, SessionRecord] = {}

    def create(self, record: SessionRecord) -> None:
        with self._lock:
            self._sessions[record.token_hash] = record

    def get(self, token_hash: str, now: datetime) -> SessionRecord | None:
        with self._lock:
            record = self._sessions.get(token_hash)
        if record is None or record.expires_at <= now:
            return None
        return record

    def delete(self, token_hash: str) -> None:
        with self._lock:
            self._sessions.pop(token_hash, None)

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [key for key, record in self._sessions.items() if record.expires_at <= now]
            for key in expired:
                del self._sessions[key]
        return len(expired)
