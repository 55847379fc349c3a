"""Fakes for the registration client tests."""

from collections.abc import Callable
from datetime import date

import httpx

from src.api.models import ClientConfig, TokenBundle
from src.client import ActionClient

TODAY = date(2024, 6, 1)


class RecordingPhotoStorage:
    """PhotoStorage that keeps the client's filename in the URL."""

    def __init__(self) -> None:
        self.saved: list[str] = []

    def save(self, filename: str, content_type: str, data: bytes) -> str:
        self.saved.append(filename)
        return f"/media/{filename}"


def offline_client(handler: Callable[[httpx.Request], httpx.Response]) -> ActionClient:
    """ActionClient whose requests are answered by a local handler."""
    config = ClientConfig(
        endpoint_url="http://testserver/v1",
        tokens=TokenBundle(registration="registration-token", login="login-token"),
        countries=["France"],
        phone_codes={"France": "+33"},
    )
    http = httpx.AsyncClient(base_url="http://testserver", transport=httpx.MockTransport(handler))
    return ActionClient(http, config)
