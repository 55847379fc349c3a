"""
Action transport - httpx client for the registration action surface.

Fetches the configuration bundle once, then posts every action to
{endpointUrl}/{action} with the family's anti-forgery token. Server error
maps arrive keyed by camelCase wire names and are handed back keyed by the
snake_case field identifiers the ruleset uses.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from src.adapters.security.action_tokens import ActionFamily
from src.api.models import ClientConfig

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class TransportError(Exception):
    """Server unreachable or answered with something that is not an envelope."""

    pass


@dataclass(frozen=True)
class ActionResponse:
    """Decoded {success, data} envelope."""

    status_code: int
    success: bool
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> str | None:
        return self.data.get("message")

    @property
    def errors(self) -> dict[str, str]:
        raw = self.data.get("errors") or {}
        return {to_snake(name): message for name, message in raw.items()}


class ActionClient:
    """Calls actions on behalf of one client; cookies persist in the httpx client."""

    def __init__(self, http: httpx.AsyncClient, config: ClientConfig) -> None:
        self._http = http
        self.config = config

    @classmethod
    async def connect(
        cls,
        base_url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> "ActionClient":
        """Open an httpx client and load the configuration bundle from /v1/config."""
        http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        try:
            response = await http.get("/v1/config")
            response.raise_for_status()
            config = ClientConfig.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            await http.aclose()
            raise TransportError(f"Could not load client configuration: {exc}") from exc
        return cls(http, config)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ActionClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _token(self, family: ActionFamily) -> str:
        if family is ActionFamily.LOGIN:
            return self.config.tokens.login
        return self.config.tokens.registration

    async def call(
        self,
        action: str,
        family: ActionFamily,
        *,
        json: Mapping[str, Any] | None = None,
        files: Mapping[str, Any] | None = None,
    ) -> ActionResponse:
        """
        POST one action and decode its envelope.

        Raises:
            TransportError: Network failure or a response without an envelope
        """
        url = f"{self.config.endpoint_url}/{action}"
        headers = {"X-Action-Token": self._token(family)}
        try:
            response = await self._http.post(url, json=json, files=files, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Action %s failed: %s", action, exc)
            raise TransportError(f"{action}: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            logger.warning("Action %s returned a non-JSON response (%d)", action, response.status_code)
            raise TransportError(f"{action}: invalid response") from exc
        if not isinstance(body, dict) or "success" not in body:
            logger.warning("Action %s returned an unexpected body (%d)", action, response.status_code)
            raise TransportError(f"{action}: invalid response")

        return ActionResponse(
            status_code=response.status_code,
            success=bool(body["success"]),
            data=body.get("data") or {},
        )

    async def check_email(self, email: str) -> bool:
        """Ask whether an email is already registered."""
        response = await self.call(
            "check_email", ActionFamily.REGISTRATION, json={"email": email}
        )
        if not response.success:
            raise TransportError(f"check_email: {response.message}")
        return bool(response.data.get("exists"))

    async def upload_photo(self, filename: str, content_type: str, data: bytes) -> ActionResponse:
        return await self.call(
            "upload_photo",
            ActionFamily.REGISTRATION,
            files={"file": (filename, data, content_type)},
        )

    async def register(self, payload: Mapping[str, Any]) -> ActionResponse:
        """Submit the accumulated draft (camelCase keys)."""
        return await self.call("register", ActionFamily.REGISTRATION, json=payload)

    async def login(self, identifier: str, password: str, *, remember: bool) -> ActionResponse:
        return await self.call(
            "login",
            ActionFamily.LOGIN,
            json={"identifier": identifier, "password": password, "remember": remember},
        )

    async def logout(self) -> ActionResponse:
        return await self.call("logout", ActionFamily.LOGIN)

    async def update_profile(self, payload: Mapping[str, Any]) -> ActionResponse:
        return await self.call("update_profile", ActionFamily.REGISTRATION, json=payload)

    async def profile(self) -> ActionResponse:
        """Read the logged-in account."""
        try:
            response = await self._http.get(f"{self.config.endpoint_url}/profile")
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TransportError(f"profile: {exc}") from exc
        return ActionResponse(
            status_code=response.status_code,
            success=bool(body.get("success")),
            data=body.get("data") or {},
        )
