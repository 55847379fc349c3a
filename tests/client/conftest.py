"""
Fixtures for the registration client tests.

The client talks to the real application (in-memory stores) through
httpx's ASGITransport, so no server process is needed.
"""

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from src.client import ActionClient, DraftStore, MemoryStorage, StepController
from tests.client.fakes import TODAY, RecordingPhotoStorage


@pytest.fixture
def photo_storage(app: FastAPI) -> RecordingPhotoStorage:
    storage = RecordingPhotoStorage()
    app.state.photo_storage = storage
    return storage


@pytest_asyncio.fixture
async def action_client(app: FastAPI) -> AsyncGenerator[ActionClient, None]:
    client = await ActionClient.connect("http://testserver", transport=httpx.ASGITransport(app=app))
    yield client
    await client.aclose()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> DraftStore:
    return DraftStore(storage)


@pytest.fixture
def controller(action_client: ActionClient, store: DraftStore) -> StepController:
    return StepController(action_client, store, today=TODAY)
