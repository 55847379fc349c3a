"""
Registration draft and its persistence.

The draft mirrors everything the user has typed so far plus the step they
are on. It is saved as a single JSON blob under one well-known key after
every mutation, and it never holds file bytes: only the asset reference
returned by a completed upload.
"""

import logging
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from src.domain.validation import TOTAL_STEPS

logger = logging.getLogger(__name__)

DRAFT_KEY = "registration_draft"

# Attributes that hold plain text input
TEXT_FIELDS = (
    "full_name",
    "email",
    "password",
    "confirm_password",
    "country",
    "city",
    "phone_number",
    "gender",
    "date_of_birth",
)


class RegistrationDraft(BaseModel):
    """In-progress registration data, one optional attribute per known field."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, validate_assignment=True
    )

    full_name: str | None = None
    email: str | None = None
    password: str | None = None
    confirm_password: str | None = None
    country: str | None = None
    city: str | None = None
    phone_number: str | None = None
    gender: str | None = None
    date_of_birth: str | None = None
    interests: list[str] = Field(default_factory=list)
    profile_photo: str | None = None
    current_step: int = Field(default=1, ge=1, le=TOTAL_STEPS)

    def values(self) -> dict:
        """Field values keyed by snake_case identifiers, as the ruleset reads them."""
        return self.model_dump(exclude={"current_step"})

    def submission(self) -> dict:
        """Wire payload for the register action."""
        return self.model_dump(by_alias=True, exclude={"current_step"}, exclude_none=True)


class KeyValueStorage(Protocol):
    """Client-side string storage (browser localStorage equivalent)."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Implements KeyValueStorage with a dict."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    """Implements KeyValueStorage with one file per key in a directory."""

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(value, encoding="utf-8")

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class DraftStore:
    """Saves and restores the draft under a single key."""

    def __init__(self, storage: KeyValueStorage, key: str = DRAFT_KEY) -> None:
        self._storage = storage
        self._key = key

    def save(self, draft: RegistrationDraft) -> None:
        self._storage.set(self._key, draft.model_dump_json(by_alias=True))

    def load(self) -> RegistrationDraft | None:
        """
        Restore the saved draft.

        Returns:
            The draft, or None when nothing is stored or the stored blob is
            corrupt (a corrupt blob means a fresh start, never a failure)
        """
        try:
            raw = self._storage.get(self._key)
        except UnicodeDecodeError as exc:
            logger.warning("Discarding unreadable registration draft: %s", exc)
            return None
        if raw is None:
            return None
        try:
            return RegistrationDraft.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable registration draft: %s", exc.errors()[:1])
            return None

    def clear(self) -> None:
        self._storage.remove(self._key)

