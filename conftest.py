"""
Pytest configuration and shared fixtures.

Environment defaults are set before any app imports so the cached
settings pick them up. Individual tests may override STORE_BACKEND and
clear the settings cache themselves.
"""

import os
import uuid

import pytest

os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("STORE_BACKEND", "memory")

# Clear settings cache before any app imports to ensure test env vars are used
from message_api.config import get_settings
get_settings.cache_clear()

from fastapi.testclient import TestClient

from message_api.main import app
from message_api.service import MessageService
from message_api.storage import InMemoryMessageStore


@pytest.fixture(scope="function")
def client():
    """Test client with a fresh store; the lifespan builds one per client."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def org_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_org_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def store() -> InMemoryMessageStore:
    return InMemoryMessageStore()


@pytest.fixture
def service(store) -> MessageService:
    return MessageService(store)
