"""
Shared Test Fixtures for the Visage backend

Fixtures provide an in-memory MongoDB (mongomock), a fake media host, a
FastAPI TestClient wired to both through dependency overrides, and a
factory that registers users through the API.
"""

import os
import sys
from typing import Dict, List

import mongomock
import pytest
from fastapi.testclient import TestClient

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import ensure_indexes, get_db
from main import app
from media import UploadedMedia, UploadFileData, get_media_host


class FakeMediaHost:
    """Stands in for the Cloudinary adapter; records what it was asked to do."""

    def __init__(self):
        self.uploads: List[Dict] = []
        self.deleted: List[str] = []
        self.fail_deletes = False

    def upload(self, source, folder, resource_type="auto"):
        n = len(self.uploads) + 1
        is_video = isinstance(source, UploadFileData) and source.content_type.startswith("video/")
        media_type = "video" if is_video else "image"
        ext = "mp4" if is_video else "jpg"
        public_id = f"{folder}/file{n}"
        self.uploads.append({"source": source, "folder": folder})
        return UploadedMedia(
            url=f"https://res.cloudinary.com/demo/{media_type}/upload/v1/{public_id}.{ext}",
            media_type=media_type,
            public_id=public_id,
        )

    def delete_quietly(self, public_id, media_type=None):
        if self.fail_deletes:
            return False
        self.deleted.append(public_id)
        return True


# =============================================================================
# Database / App Fixtures
# =============================================================================

@pytest.fixture
def db():
    """A fresh in-memory database with the production indexes."""
    database = mongomock.MongoClient(tz_aware=True)["visage_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def media_host():
    return FakeMediaHost()


@pytest.fixture
def client(db, media_host):
    """TestClient whose requests hit the mongomock database and the fake media host."""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_media_host] = lambda: media_host
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# =============================================================================
# Data Factories
# =============================================================================

def auth_headers(user: Dict) -> Dict[str, str]:
    return {"Authorization": f"Bearer {user['token']}"}


@pytest.fixture
def make_user(client):
    """
    Register a user through the API and return the response with a ``headers`` key.

    Usage:
        def test_something(make_user):
            alice = make_user("alice")
            client.get("/api/users/profile", headers=alice["headers"])
    """
    def _make_user(username: str, full_name: str = None, password: str = "secret123") -> Dict:
        resp = client.post("/api/users/register", json={
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
            "full_name": full_name or username.title(),
        })
        assert resp.status_code == 201, resp.text
        user = resp.json()
        user["headers"] = auth_headers(user)
        return user

    return _make_user


@pytest.fixture
def make_post(client):
    """Create a post for ``user`` with a small fake JPEG upload."""
    def _make_post(user: Dict, caption: str = "hello", location: str = None) -> Dict:
        data = {"caption": caption}
        if location:
            data["location"] = location
        resp = client.post(
            "/api/posts",
            data=data,
            files={"media": ("photo.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")},
            headers=user["headers"],
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make_post


@pytest.fixture
def make_story(client):
    def _make_story(user: Dict, content: str = "a thought", story_type: str = "thought") -> Dict:
        resp = client.post(
            "/api/stories",
            data={"content": content, "story_type": story_type},
            headers=user["headers"],
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make_story
