"""
Integration tests for the PostgreSQL account and session repositories.

Tests repository operations against a real PostgreSQL database.
Requires PostgreSQL to be running (via docker-compose).
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository import PostgresAccountRepository, PostgresSessionRepository
from src.domain.models import AccountChanges, NewAccount, SessionRecord

pytestmark = pytest.mark.integration


def new_account(email: str = "jane@example.com", **overrides) -> NewAccount:
    values = dict(
        full_name="Jane Doe",
        email=email,
        password_hash="$2b$04$somehash",
        phone_number="+14155550123",
        country="United States",
        city="San Francisco",
        gender="female",
        date_of_birth=date(1990, 5, 17),
        interests=("Music", "Travel"),
        profile_photo="/media/jane.png",
    )
    values.update(overrides)
    return NewAccount(**values)


@pytest.fixture
def accounts(pool: ConnectionPool) -> PostgresAccountRepository:
    return PostgresAccountRepository(pool)


@pytest.fixture
def sessions(pool: ConnectionPool) -> PostgresSessionRepository:
    return PostgresSessionRepository(pool)


class TestCreateAccount:
    """Tests for create_account method."""

    def test_create_account_returns_stored_row(self, accounts: PostgresAccountRepository) -> None:
        account = accounts.create_account(new_account())

        assert account is not None
        assert account.id > 0
        assert account.email == "jane@example.com"
        assert account.interests == ("Music", "Travel")
        assert account.date_of_birth == date(1990, 5, 17)
        assert account.created_at is not None

    def test_duplicate_email_returns_none(self, accounts: PostgresAccountRepository) -> None:
        accounts.create_account(new_account())

        assert accounts.create_account(new_account(full_name="Someone Else")) is None

    def test_optional_columns_nullable(self, accounts: PostgresAccountRepository) -> None:
        account = accounts.create_account(
            new_account(city=None, gender=None, date_of_birth=None, profile_photo=None)
        )

        assert account.city is None
        assert account.date_of_birth is None

    def test_lookups(self, accounts: PostgresAccountRepository) -> None:
        account = accounts.create_account(new_account())

        assert accounts.email_exists("jane@example.com") is True
        assert accounts.email_exists("nobody@example.com") is False
        assert accounts.get_by_email("jane@example.com").id == account.id
        assert accounts.get_by_id(account.id).password_hash == "$2b$04$somehash"
        assert accounts.get_by_id(account.id + 1000) is None

    def test_concurrent_creates_exactly_one_succeeds(
        self, accounts: PostgresAccountRepository
    ) -> None:
        num_workers = 10
        with ThreadPoolExecutor(max_workers=num_workers) as executor:
            results = list(
                executor.map(lambda _: accounts.create_account(new_account()), range(num_workers))
            )

        assert sum(result is not None for result in results) == 1


class TestUpdateAccount:
    """Tests for update_account method."""

    def changes(self, **overrides) -> AccountChanges:
        values = dict(
            full_name="Jane Smith",
            email="jane@example.com",
            phone_number="+14155550123",
            country="United States",
            city="Oakland",
            gender="female",
            date_of_birth=date(1990, 5, 17),
            interests=("Books",),
            profile_photo="/media/jane.png",
        )
        values.update(overrides)
        return AccountChanges(**values)

    def test_update_keeps_hash_when_not_changing(self, accounts: PostgresAccountRepository) -> None:
        account = accounts.create_account(new_account())

        updated = accounts.update_account(account.id, self.changes())

        assert updated.full_name == "Jane Smith"
        assert updated.interests == ("Books",)
        assert updated.password_hash == "$2b$04$somehash"
        assert updated.updated_at >= account.updated_at

    def test_update_replaces_hash(self, accounts: PostgresAccountRepository) -> None:
        account = accounts.create_account(new_account())

        updated = accounts.update_account(account.id, self.changes(password_hash="$2b$04$new"))

        assert updated.password_hash == "$2b$04$new"

    def test_update_to_taken_email_returns_none(self, accounts: PostgresAccountRepository) -> None:
        accounts.create_account(new_account())
        other = accounts.create_account(new_account("john@example.com"))

        assert accounts.update_account(other.id, self.changes()) is None
        assert accounts.get_by_id(other.id).email == "john@example.com"


class TestSessions:
    """Tests for PostgresSessionRepository."""

    def test_session_lifecycle(
        self, accounts: PostgresAccountRepository, sessions: PostgresSessionRepository
    ) -> None:
        account = accounts.create_account(new_account())
        now = datetime.now(timezone.utc)
        record = SessionRecord(
            token_hash="a" * 64,
            account_id=account.id,
            expires_at=now + timedelta(hours=1),
            remember=False,
        )

        sessions.create(record)

        assert sessions.get("a" * 64, now).account_id == account.id
        assert sessions.get("a" * 64, now + timedelta(hours=2)) is None

        sessions.delete("a" * 64)
        sessions.delete("a" * 64)
        assert sessions.get("a" * 64, now) is None

    def test_purge_expired(
        self, accounts: PostgresAccountRepository, sessions: PostgresSessionRepository
    ) -> None:
        account = accounts.create_account(new_account())
        now = datetime.now(timezone.utc)
        sessions.create(SessionRecord("b" * 64, account.id, now - timedelta(minutes=1), False))
        sessions.create(SessionRecord("c" * 64, account.id, now + timedelta(days=14), True))

        assert sessions.purge_expired(now) == 1
        assert sessions.get("c" * 64, now).remember is True
