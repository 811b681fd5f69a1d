import secrets
import string
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set
from unittest import mock

import pytest
from fastapi.testclient import TestClient

from dependencies import get_post_service
from main import app
from services.firestore import FirestoreDB, toggle_membership
from services.posts import PostService

ID_ALPHABET = string.ascii_letters + string.digits


class InMemoryPostStore:
    """Post store double keeping documents in a dict, newest first on reads"""

    def __init__(self):
        self.posts: Dict[str, Dict[str, Any]] = {}

    def _ordered(self, tags: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        posts = [{"id": post_id, **data} for post_id, data in self.posts.items()]
        if tags:
            posts = [post for post in posts if set(tags) & set(post.get("tags") or [])]
        return sorted(posts, key=lambda post: post["createdAt"], reverse=True)

    def create_post(self, post_data: Dict[str, Any]) -> Dict[str, Any]:
        post_id = "".join(secrets.choice(ID_ALPHABET) for _ in range(20))
        self.posts[post_id] = dict(post_data)
        return {"id": post_id, **post_data}

    def get_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        if post_id not in self.posts:
            return None
        return {"id": post_id, **self.posts[post_id]}

    def count_posts(self, tags: Optional[List[str]] = None) -> int:
        return len(self._ordered(tags))

    def query_posts(self, tags: Optional[List[str]], offset: int, limit: int) -> List[Dict[str, Any]]:
        return self._ordered(tags)[offset:offset + limit]

    def stream_posts(self, tags: Optional[List[str]] = None):
        yield from self._ordered(tags)

    def update_post(self, post_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if post_id not in self.posts:
            return None
        self.posts[post_id].update(changes)
        return self.get_post(post_id)

    def delete_post(self, post_id: str) -> bool:
        return self.posts.pop(post_id, None) is not None

    def toggle_like(self, post_id: str, user_identifier: str):
        if post_id not in self.posts:
            return None
        post = self.posts[post_id]
        liked_by, has_liked = toggle_membership(post.get("likedBy", []), user_identifier)
        post.update({
            "likedBy": liked_by,
            "likes": len(liked_by),
            "updatedAt": datetime.now(timezone.utc)
        })
        return len(liked_by), has_liked

    def distinct_tags(self) -> Set[str]:
        tags = set()
        for post in self.posts.values():
            tags.update(post.get("tags") or [])
        return tags


@pytest.fixture
def store() -> InMemoryPostStore:
    return InMemoryPostStore()


@pytest.fixture
def service(store) -> PostService:
    return PostService(store)


@pytest.fixture
def strict_store():
    """A store mock that fails the test if it is used unexpectedly"""
    return mock.MagicMock(spec=FirestoreDB)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_post_service] = lambda: service
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
