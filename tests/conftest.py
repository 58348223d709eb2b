"""Shared fixtures: in-memory store, recording notifier and API client."""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from api import create_app
from auth import API_KEY_HEADER, AuthManager
from database import MemoryStore

JWT_SECRET = "test-secret"
API_KEY = "test-webhook-key"

USER_ID = "0xUserOne"
OTHER_USER_ID = "0xUserTwo"

TEST_SETTINGS = {
    'store': 'memory',
    'jwt_secret': JWT_SECRET,
    'jwt_algorithm': 'HS256',
    'api_key': API_KEY,
    'cors_origins': ['*'],
}

class RecordingNotifier:
    """Notifier that keeps dispatched events for assertions."""

    def __init__(self):
        self.events = []

    def dispatch(self, event):
        self.events.append(event)

@pytest.fixture
def store():
    return MemoryStore()

@pytest.fixture
def notifier():
    return RecordingNotifier()

@pytest_asyncio.fixture
async def memory_store():
    store = MemoryStore()
    yield store
    await store.close()

@pytest.fixture
def app(store, notifier):
    return create_app(store=store, notifier=notifier, settings=TEST_SETTINGS)

@pytest.fixture
def client(app):
    return TestClient(app)

@pytest.fixture
def auth_manager():
    return AuthManager(JWT_SECRET, 'HS256', API_KEY)

@pytest.fixture
def auth_headers(auth_manager):
    """Bearer headers for USER_ID."""
    return {"Authorization": f"Bearer {auth_manager.create_token(USER_ID)}"}

@pytest.fixture
def other_auth_headers(auth_manager):
    """Bearer headers for OTHER_USER_ID."""
    return {"Authorization": f"Bearer {auth_manager.create_token(OTHER_USER_ID)}"}

@pytest.fixture
def webhook_headers():
    return {API_KEY_HEADER: API_KEY}

@pytest.fixture
def user_id():
    return USER_ID

@pytest.fixture
def other_user_id():
    return OTHER_USER_ID
