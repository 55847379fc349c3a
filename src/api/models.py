"""
API request and response models.

Pydantic models for the asynchronous action surface. Python attributes are
snake_case; on the wire every key is camelCase. Request models accept
missing or empty values on purpose: the shared ruleset, not the schema, is
what decides validity, so the client and server report identical errors.
"""

from datetime import date, datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


def wire_name(field: str) -> str:
    """snake_case field identifier -> camelCase wire identifier."""
    return to_camel(field)


def wire_errors(errors: dict[str, str]) -> dict[str, str]:
    return {wire_name(field): message for field, message in errors.items()}


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(WireModel, Generic[DataT]):
    """Every action responds with {success, data}."""

    success: bool = True
    data: DataT


class FailureData(WireModel):
    message: str
    errors: dict[str, str] | None = None


class CheckEmailRequest(WireModel):
    email: str = ""


class CheckEmailData(WireModel):
    exists: bool


class UploadPhotoData(WireModel):
    url: str


class RegisterRequest(WireModel):
    """Request model for the final registration submission."""

    full_name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    phone_number: str = ""
    country: str = ""
    city: str = ""
    gender: str = ""
    date_of_birth: str = ""
    interests: list[str] = Field(default_factory=list)
    profile_photo: str = ""


class UpdateProfileRequest(WireModel):
    """Registration fields minus the mandatory password, plus the change toggle."""

    account_id: int
    full_name: str = ""
    email: str = ""
    phone_number: str = ""
    country: str = ""
    city: str = ""
    gender: str = ""
    date_of_birth: str = ""
    interests: list[str] = Field(default_factory=list)
    profile_photo: str = ""
    change_password: bool = False
    password: str = ""
    confirm_password: str = ""


class LoginRequest(WireModel):
    """
    Request model for login.

    remember has no default: the session duration is always chosen
    explicitly by the caller.
    """

    identifier: str = ""
    password: str = ""
    remember: bool


class RedirectData(WireModel):
    message: str
    redirect_url: str


class AccountView(WireModel):
    """Account summary as exposed to clients (no password hash)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int
    full_name: str
    email: str
    phone_number: str
    country: str
    city: str | None = None
    gender: str | None = None
    date_of_birth: date | None = None
    interests: list[str]
    profile_photo: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TokenBundle(WireModel):
    registration: str
    login: str


class ClientConfig(WireModel):
    """Configuration bundle injected into the registration client."""

    endpoint_url: str
    tokens: TokenBundle
    countries: list[str]
    phone_codes: dict[str, str]
