"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- Settings tuned for fast tests (low bcrypt cost)
- The FastAPI application wired to in-memory stores
- Test client setup
"""

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.repository import InMemoryAccountRepository, InMemorySessionRepository
from src.adapters.security import ActionFamily, ActionTokens
from src.adapters.storage import LocalPhotoStorage
from src.api.main import create_app
from src.config.settings import Settings, get_settings
from tests.factories import TEST_SECRET


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        storage_backend="memory",
        bcrypt_cost=4,
        secret_key=TEST_SECRET,
        media_dir=str(tmp_path / "media"),
    )


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    """Application with in-memory stores already attached to app.state."""
    test_app = create_app()
    test_app.dependency_overrides[get_settings] = lambda: settings
    test_app.state.accounts = InMemoryAccountRepository()
    test_app.state.sessions = InMemorySessionRepository()
    test_app.state.photo_storage = LocalPhotoStorage(settings.media_dir, settings.media_url)
    return test_app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def tokens() -> ActionTokens:
    return ActionTokens(TEST_SECRET)


@pytest.fixture
def registration_headers(tokens: ActionTokens) -> dict:
    return {"X-Action-Token": tokens.issue(ActionFamily.REGISTRATION)}


@pytest.fixture
def login_headers(tokens: ActionTokens) -> dict:
    return {"X-Action-Token": tokens.issue(ActionFamily.LOGIN)}
