"""
PostgreSQL repository adapters - Implement AccountRepository and SessionRepository.

This module provides the PostgreSQL implementations of the domain's
repository ports using psycopg3 with raw SQL.

Uniqueness Design:
-----------------
create_account() relies on the UNIQUE (email) constraint through
INSERT ... ON CONFLICT (email) DO NOTHING RETURNING. Concurrent inserts for
the same email serialize on the constraint: exactly one returns a row, the
others return nothing. No application-level check is needed for
correctness; the domain's email_exists() pre-check only produces an earlier,
friendlier error.

update_account() hits the same constraint and reports a violation as None.
"""

import logging
from datetime import datetime
from pathlib import Path

import psycopg
from psycopg_pool import ConnectionPool

from src.domain.models import Account, AccountChanges, NewAccount, SessionRecord

logger = logging.getLogger(__name__)

_ACCOUNT_COLUMNS = """
    id, full_name, email, password_hash, phone_number, country, city, gender,
    date_of_birth, interests, profile_photo, created_at, updated_at
"""


def _row_to_account(row: tuple) -> Account:
    return Account(
        id=row[0],
        full_name=row[1],
        email=row[2],
        password_hash=row[3],
        phone_number=row[4],
        country=row[5],
        city=row[6],
        gender=row[7],
        date_of_birth=row[8],
        interests=tuple(row[9] or ()),
        profile_photo=row[10],
        created_at=row[11],
        updated_at=row[12],
    )


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def create_account(self, account: NewAccount) -> Account | None:
        """
        Atomically insert an account unless the email is taken.

        Returns:
            The stored Account, or None if the email already exists
        """
        sql = f"""
            INSERT INTO accounts (
                full_name, email, password_hash, phone_number, country, city,
                gender, date_of_birth, interests, profile_photo
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING {_ACCOUNT_COLUMNS}
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (
                    account.full_name,
                    account.email,
                    account.password_hash,
                    account.phone_number,
                    account.country,
                    account.city,
                    account.gender,
                    account.date_of_birth,
                    list(account.interests),
                    account.profile_photo,
                ),
            )
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            return None
        return _row_to_account(row)

    def email_exists(self, email: str) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT 1 FROM accounts WHERE email = %s", (email,))
            return cursor.fetchone() is not None

    def get_by_email(self, email: str) -> Account | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE email = %s", (email,))
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: int) -> Account | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE id = %s", (account_id,))
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None

    def update_account(self, account_id: int, changes: AccountChanges) -> Account | None:
        """
        Apply a profile update, keeping the password hash unless replaced.

        Returns:
            The updated Account, or None on email conflict (or unknown id)
        """
        sql = f"""
            UPDATE accounts
            SET full_name = %s,
                email = %s,
                phone_number = %s,
                country = %s,
                city = %s,
                gender = %s,
                date_of_birth = %s,
                interests = %s,
                profile_photo = %s,
                password_hash = COALESCE(%s, password_hash),
                updated_at = NOW()
            WHERE id = %s
            RETURNING {_ACCOUNT_COLUMNS}
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            try:
                cursor.execute(
                    sql,
                    (
                        changes.full_name,
                        changes.email,
                        changes.phone_number,
                        changes.country,
                        changes.city,
                        changes.gender,
                        changes.date_of_birth,
                        list(changes.interests),
                        changes.profile_photo,
                        changes.password_hash,
                        account_id,
                    ),
                )
            except psycopg.errors.UniqueViolation:
                conn.rollback()
                return None
            row = cursor.fetchone()
            conn.commit()

        return _row_to_account(row) if row is not None else None


class PostgresSessionRepository:
    """Implements SessionRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create(self, record: SessionRecord) -> None:
        sql = """
            INSERT INTO sessions (token_hash, account_id, expires_at, remember)
            VALUES (%s, %s, %s, %s)
        """
        with self._pool.connection() as conn:
            conn.execute(
                sql, (record.token_hash, record.account_id, record.expires_at, record.remember)
            )
            conn.commit()

    def get(self, token_hash: str, now: datetime) -> SessionRecord | None:
        sql = """
            SELECT token_hash, account_id, expires_at, remember
            FROM sessions
            WHERE token_hash = %s AND expires_at > %s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (token_hash, now))
            row = cursor.fetchone()
        if row is None:
            return None
        return SessionRecord(
            token_hash=row[0], account_id=row[1], expires_at=row[2], remember=row[3]
        )

    def delete(self, token_hash: str) -> None:
        with self._pool.connection() as conn:
            conn.execute("DELETE FROM sessions WHERE token_hash = %s", (token_hash,))
            conn.commit()

    def purge_expired(self, now: datetime) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM sessions WHERE expires_at <= %s", (now,))
            removed = cursor.rowcount
            conn.commit()
        if removed:
            logger.info("Purged %d expired session(s)", removed)
        return removed


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
