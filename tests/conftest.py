import os
import tempfile

# Settings are read at import time
os.environ.setdefault("UPLOAD_ROOT", tempfile.mkdtemp(prefix="novanector-uploads-"))
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from novanector import database
from novanector.main import app
from novanector.services.account_service import AccountService
from novanector.utils.upload_utils import PendingUpload, ProfilePictureStore

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


def png_bytes(size: int = 1024) -> bytes:
    return PNG_HEADER + b"\0" * max(size - len(PNG_HEADER), 0)


@pytest.fixture(autouse=True)
def mongo_pings(monkeypatch):
    """Replace the server ping run at startup; returns the list of calls."""
    calls = []

    async def ping():
        calls.append("ping")

    monkeypatch.setattr(database, "ping", ping)
    return calls


@pytest.fixture
def mock_collection():
    return AsyncMongoMockClient()["novanector_test"]["users"]


@pytest.fixture
async def users(mock_collection):
    await database.ensure_indexes(mock_collection)
    return mock_collection


@pytest.fixture
def store(tmp_path):
    picture_store = ProfilePictureStore(tmp_path / "profile-pictures")
    picture_store.ensure_directory()
    return picture_store


@pytest.fixture
def service(users, store):
    return AccountService(users, uploads=store)


@pytest.fixture
def picture():
    return PendingUpload(filename="my photo.png", content_type="image/png", content=png_bytes())


@pytest.fixture
def client(monkeypatch, mock_collection):
    monkeypatch.setattr(database, "user_collection", mock_collection)
    with TestClient(app) as test_client:
        yield test_client


def register(client, username="annie", email="annie@example.com", password="supersecret1", **extra):
    data = {"username": username, "email": email, "password": password, **extra}
    return client.post("/api/auth/register", data=data)
