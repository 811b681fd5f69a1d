from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

import firebase_admin
from firebase_admin import firestore as fs
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter

POSTS_COLLECTION = "posts"

# Firestore rejects array_contains_any filters with more values than this
MAX_DISJUNCTION_VALUES = 30


def toggle_membership(liked_by: List[str], user_identifier: str) -> Tuple[List[str], bool]:
    """
    Add or remove a user identifier from a likedBy list

    Returns:
        The new list and whether the user now likes the post
    """
    if user_identifier in liked_by:
        return [user for user in liked_by if user != user_identifier], False
    return liked_by + [user_identifier], True


class FirestoreDB:
    def __init__(self, app: firebase_admin.App):
        self.db = fs.client(app)

    def collection(self, name: str):
        return self.db.collection(name)

    @staticmethod
    def _to_post(doc) -> Dict[str, Any]:
        post_data = doc.to_dict()
        post_data["id"] = doc.id
        return post_data

    def _posts_query(self, tags: Optional[List[str]] = None):
        """Posts ordered newest first, optionally restricted to posts sharing a tag"""
        query = self.collection(POSTS_COLLECTION)
        if tags:
            query = query.where(filter=FieldFilter("tags", "array_contains_any", tags))
        return query.order_by("createdAt", direction=firestore.Query.DESCENDING)

    def create_post(self, post_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new post and return it with its generated ID"""
        new_post_ref = self.collection(POSTS_COLLECTION).document()
        new_post_ref.set(post_data)
        return {"id": new_post_ref.id, **post_data}

    def get_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        """Get a post by ID"""
        snapshot = self.collection(POSTS_COLLECTION).document(post_id).get()
        if not snapshot.exists:
            return None
        return self._to_post(snapshot)

    def count_posts(self, tags: Optional[List[str]] = None) -> int:
        """Count the posts matching a tag filter using a server-side aggregation"""
        query = self.collection(POSTS_COLLECTION)
        if tags:
            query = query.where(filter=FieldFilter("tags", "array_contains_any", tags))
        results = query.count(alias="total").get()
        return int(results[0][0].value)

    def query_posts(self, tags: Optional[List[str]], offset: int, limit: int) -> List[Dict[str, Any]]:
        """Fetch one page of posts, newest first"""
        docs = self._posts_query(tags).offset(offset).limit(limit).stream()
        return [self._to_post(doc) for doc in docs]

    def stream_posts(self, tags: Optional[List[str]] = None) -> Iterator[Dict[str, Any]]:
        """
        Stream all posts matching a tag filter, newest first

        Tag filters too large for a single array_contains_any query are
        applied in process.
        """
        if tags and len(tags) > MAX_DISJUNCTION_VALUES:
            wanted = set(tags)
            for doc in self._posts_query().stream():
                post = self._to_post(doc)
                if wanted.intersection(post.get("tags") or []):
                    yield post
            return

        for doc in self._posts_query(tags).stream():
            yield self._to_post(doc)

    def update_post(self, post_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply a partial update to a post inside a transaction and return the result"""
        post_ref = self.collection(POSTS_COLLECTION).document(post_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def update_in_transaction(transaction, post_ref):
            snapshot = post_ref.get(transaction=transaction)
            if not snapshot.exists:
                return None

            transaction.update(post_ref, changes)
            return {**snapshot.to_dict(), **changes, "id": snapshot.id}

        return update_in_transaction(transaction, post_ref)

    def delete_post(self, post_id: str) -> bool:
        """Delete a post, returning False when it does not exist"""
        post_ref = self.collection(POSTS_COLLECTION).document(post_id)
        if not post_ref.get().exists:
            return False

        post_ref.delete()
        return True

    def toggle_like(self, post_id: str, user_identifier: str) -> Optional[Tuple[int, bool]]:
        """
        Like or unlike a post for a user in a single transaction

        The membership check and the write happen on the same snapshot, and
        Firestore retries the transaction if the post changes underneath it,
        so concurrent toggles from different users are not lost.

        Returns:
            (likes, has_liked) or None if the post does not exist
        """
        post_ref = self.collection(POSTS_COLLECTION).document(post_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def toggle_in_transaction(transaction, post_ref):
            snapshot = post_ref.get(transaction=transaction)
            if not snapshot.exists:
                return None

            post_data = snapshot.to_dict()
            liked_by, has_liked = toggle_membership(post_data.get("likedBy", []), user_identifier)

            transaction.update(post_ref, {
                "likedBy": liked_by,
                "likes": len(liked_by),
                "updatedAt": datetime.now(timezone.utc)
            })
            return len(liked_by), has_liked

        return toggle_in_transaction(transaction, post_ref)

    def distinct_tags(self) -> Set[str]:
        """Collect every tag used by any post"""
        tags = set()
        for doc in self.collection(POSTS_COLLECTION).select(["tags"]).stream():
            tags.update(doc.to_dict().get("tags") or [])
        return tags
