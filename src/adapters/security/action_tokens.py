"""
Anti-forgery action tokens.

One token per action family, handed to the client in the configuration
bundle and echoed back in the X-Action-Token header:

- REGISTRATION: check_email, upload_photo, register, update_profile
- LOGIN: login, logout

A token for one family is never accepted for the other.

Tokens expire. Time is cut into ticks of half the token lifetime and a
token signs the tick it was issued in; the current and the previous tick
are accepted, so a token stays valid for between half and the whole
lifetime.
"""

import hashlib
import hmac
import time
from collections.abc import Callable
from enum import Enum

DEFAULT_TOKEN_TTL_SECONDS = 24 * 60 * 60


class ActionFamily(str, Enum):
    REGISTRATION = "registration"
    LOGIN = "login"


class ActionTokens:
    """HMAC-SHA256 tokens derived from the application secret."""

    def __init__(
        self,
        secret_key: str,
        ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds < 2:
            raise ValueError("Token lifetime must be at least 2 seconds")
        self._secret = secret_key.encode()
        self._tick_seconds = ttl_seconds // 2
        self._clock = clock

    def _tick(self) -> int:
        return int(self._clock() // self._tick_seconds)

    def _sign(self, family: ActionFamily, tick: int) -> str:
        message = f"action:{family.value}:{tick}".encode()
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def issue(self, family: ActionFamily) -> str:
        return self._sign(family, self._tick())

    def verify(self, family: ActionFamily, token: str | None) -> bool:
        """Constant-time comparison against the current and previous tick."""
        if not token:
            return False
        tick = self._tick()
        # Check both ticks so timing does not reveal which one matched
        matches = [
            hmac.compare_digest(self._sign(family, candidate).encode(), token.encode())
            for candidate in (tick, tick - 1)
        ]
        return any(matches)
