"""
Session authentication service - Login, logout and session verification.

Every protected operation receives the session handle explicitly and calls
verify(); there is no ambient "current user".

Security Design
---------------
- Unknown email and wrong password raise the same AuthenticationFailed.
  bcrypt.checkpw() runs in both cases (against a dummy hash when the account
  does not exist) so response time does not reveal account existence either.
- Only the SHA-256 digest of a session token is stored.
- verify() fails closed: missing, unknown, expired or orphaned sessions all
  raise Unauthenticated.
"""

import hashlib
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import bcrypt

from .exceptions import AuthenticationFailed, Unauthenticated, ValidationFailed
from .models import AccountSummary, Session, SessionRecord
from .ports import AccountRepository, SessionRepository
from .validation import REQUIRED, normalize_email

logger = logging.getLogger(__name__)

# Compared against when the identifier is unknown, so bcrypt always runs.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def hash_session_token(session_id: str) -> str:
    return hashlib.sha256(session_id.encode()).hexdigest()


@dataclass
class SessionAuthService:
    """Credential verification and session lifecycle."""

    accounts: AccountRepository
    sessions: SessionRepository
    session_ttl: timedelta = timedelta(days=1)
    remember_ttl: timedelta = timedelta(days=14)
    clock: Callable[[], datetime] = field(default=utcnow)

    def login(self, identifier: str, password: str, *, remember: bool) -> Session:
        """
        Verify credentials and issue a new session.

        Args:
            identifier: Account email (normalized before lookup)
            password: Plaintext password
            remember: Extend the session to the long-lived duration

        Raises:
            ValidationFailed: Identifier or password left empty
            AuthenticationFailed: Unknown identifier or wrong password
        """
        errors = {}
        if not identifier or not identifier.strip():
            errors["identifier"] = REQUIRED
        if not password:
            errors["password"] = REQUIRED
        if errors:
            raise ValidationFailed(errors, message="Please fill in all fields.")

        account = self.accounts.get_by_email(normalize_email(identifier))
        stored_hash = account.password_hash if account is not None else _DUMMY_BCRYPT_HASH

        # Always run bcrypt, even for unknown accounts
        password_valid = bcrypt.checkpw(password.encode(), stored_hash.encode())

        if account is None or not password_valid:
            logger.info("Login rejected")
            raise AuthenticationFailed()

        session = self.start_session(account.id, remember=remember)
        logger.info("Login succeeded for account id=%s remember=%s", account.id, remember)
        return session

    def start_session(self, account_id: int, *, remember: bool) -> Session:
        """Issue a session for an already-authenticated account."""
        session_id = secrets.token_urlsafe(32)
        ttl = self.remember_ttl if remember else self.session_ttl
        expires_at = self.clock() + ttl
        self.sessions.create(
            SessionRecord(
                token_hash=hash_session_token(session_id),
                account_id=account_id,
                expires_at=expires_at,
                remember=remember,
            )
        )
        return Session(
            session_id=session_id,
            account_id=account_id,
            expires_at=expires_at,
            remember=remember,
        )

    def logout(self, session_id: str | None) -> None:
        """Destroy a session. Destroying an absent session is not an error."""
        if not session_id:
            return
        self.sessions.delete(hash_session_token(session_id))
        logger.info("Session destroyed")

    def verify(self, session_id: str | None) -> AccountSummary:
        """
        Resolve a session handle to its account.

        Raises:
            Unauthenticated: Session absent, unknown, expired or orphaned
        """
        if not session_id:
            raise Unauthenticated("No session")

        now = self.clock()
        record = self.sessions.get(hash_session_token(session_id), now)
        if record is None or record.expires_at <= now:
            raise Unauthenticated("Session expired or unknown")

        account = self.accounts.get_by_id(record.account_id)
        if account is None:
            raise Unauthenticated("Session account no longer exists")
        return account.summary()
