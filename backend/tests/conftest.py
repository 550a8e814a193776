import pytest
import os
import sys
import json
from types import SimpleNamespace

from bson import ObjectId
from fastapi.testclient import TestClient

# Add the 'backend' directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from echo_server.main import app
from echo_server.auth import create_access_token
from echo_server.glm_client import EmotionClient, get_emotion_client
from echo_server.rate_limit import IntervalGate

GLM_ANALYSIS = {
    "primaryEmotion": "nostalgia",
    "confidence": 0.92,
    "emotions": [
        {"emotion": "nostalgia", "intensity": 0.9},
        {"emotion": "warmth", "intensity": 0.6},
    ],
    "summary": "A fond look back at simpler days.",
}


def glm_response(mocker, content, status_code=200):
    """Builds a fake `requests` response carrying a chat-completion body."""
    response = mocker.Mock()
    response.status_code = status_code
    response.json.return_value = {"choices": [{"message": {"content": content}}]}
    return response


def make_cursor(mocker, docs):
    cursor = mocker.MagicMock()
    cursor.sort.return_value = cursor
    cursor.to_list = mocker.AsyncMock(return_value=docs)
    return cursor


class FakeClock:
    """Manual clock; sleeping advances it instead of waiting."""

    def __init__(self, start=100.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def mock_glm_api(mocker):
    """
    Mocks the GLM chat-completion call (requests.post) for all tests
    so nothing leaves the process.
    """
    return mocker.patch('requests.post', return_value=glm_response(mocker, json.dumps(GLM_ANALYSIS)))


@pytest.fixture(autouse=True)
def fake_collections(mocker):
    """
    Swaps the motor collections for async mocks. Tests set return values
    on the fake methods they care about.
    """
    memories = mocker.MagicMock()
    memories.insert_one = mocker.AsyncMock(return_value=mocker.Mock(inserted_id=ObjectId()))
    memories.find_one = mocker.AsyncMock(return_value=None)
    memories.find_one_and_update = mocker.AsyncMock(return_value=None)
    memories.update_one = mocker.AsyncMock()
    memories.find.return_value = make_cursor(mocker, [])
    memories.aggregate.return_value = make_cursor(mocker, [])

    unlocks = mocker.MagicMock()
    unlocks.insert_one = mocker.AsyncMock(return_value=mocker.Mock(inserted_id=ObjectId()))
    unlocks.find.return_value = make_cursor(mocker, [])

    mocker.patch('echo_server.db.memories_collection', memories)
    mocker.patch('echo_server.db.unlocks_collection', unlocks)
    return SimpleNamespace(memories=memories, unlocks=unlocks)


@pytest.fixture
def emotion_client():
    """Client with a real key and no rate-limit delay."""
    return EmotionClient("test-key", api_url="https://glm.test/chat/completions", gate=IntervalGate(0))


@pytest.fixture
def client(emotion_client):
    """
    Provides a TestClient for the FastAPI application, with the emotion
    client swapped for one that never waits on the rate limiter.
    """
    app.dependency_overrides[get_emotion_client] = lambda: emotion_client
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def user_id():
    return "user-123"


@pytest.fixture
def auth_headers(user_id):
    token = create_access_token({"sub": user_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def memory_doc(user_id):
    """A stored memory document as motor would return it."""
    def _memory_doc(**overrides):
        doc = {
            "_id": ObjectId(),
            "user_id": user_id,
            "title": "Central Park",
            "description": None,
            "content": "Walking through the park reminds me of my childhood",
            "audio_data": None,
            "audio_url": None,
            "emotion": "nostalgia",
            "emotion_confidence": 0.9,
            "latitude": 40.7829,
            "longitude": -73.9654,
            "location_name": "New York",
            "duration": 42,
            "access_type": "public",
            "is_active": True,
            "unlock_count": 0,
            "created_at": None,
        }
        doc.update(overrides)
        return doc
    return _memory_doc
