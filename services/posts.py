import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.api_core.exceptions import GoogleAPIError
from pydantic import ValidationError

from models.post import Pagination, Post, PostChanges, PostDocument, PostPage, LikeStatus
from models.result import ErrorKind, ServiceResult
from services.firestore import FirestoreDB, MAX_DISJUNCTION_VALUES
from utils.ids import is_valid_post_id
from utils.search import matches, parse_search

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
UPDATABLE_FIELDS = ("title", "content", "summary", "tags")


def _validation_detail(error: ValidationError) -> List[str]:
    return [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PostService:
    """Business rules for blog posts on top of a post store"""

    def __init__(self, db: FirestoreDB):
        self.db = db

    def _invalid_id(self) -> ServiceResult:
        return ServiceResult.fail(ErrorKind.INVALID_IDENTIFIER, "Invalid post ID")

    def _not_found(self) -> ServiceResult:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Post not found")

    def _storage_failure(self, message: str, error: Exception) -> ServiceResult:
        logger.error(f"{message}: {type(error).__name__}: {error}", exc_info=True)
        return ServiceResult.fail(ErrorKind.STORAGE_FAILURE, message)

    def create_post(
            self,
            title: str,
            content: str,
            tags: List[str],
            summary: Optional[str] = None
    ) -> ServiceResult:
        """
        Create a new post with no likes

        Args:
            title: Post title
            content: Post body
            tags: Tags, stored lowercase
            summary: Optional short summary (at most 300 characters)

        Returns:
            ServiceResult holding the stored post
        """
        now = _now()
        try:
            document = PostDocument(
                title=title,
                content=content,
                summary=summary or "",
                tags=tags,
                createdAt=now,
                updatedAt=now,
            )
        except ValidationError as e:
            return ServiceResult.fail(ErrorKind.VALIDATION_FAILURE, "Failed to create post", _validation_detail(e))

        try:
            stored = self.db.create_post(document.model_dump())
        except GoogleAPIError as e:
            return self._storage_failure("Failed to create post", e)

        logger.info(f"Created post {stored['id']}")
        return ServiceResult.ok(Post(**stored))

    def list_posts(
            self,
            tags: Optional[List[str]] = None,
            search: Optional[str] = None,
            page: int = DEFAULT_PAGE,
            limit: int = DEFAULT_LIMIT
    ) -> ServiceResult:
        """
        List posts newest first, filtered and paginated

        Args:
            tags: Posts sharing at least one of these tags are kept
            search: Text search over title, content and tags
            page: 1-based page number
            limit: Page size

        Returns:
            ServiceResult holding a PostPage
        """
        if not isinstance(page, int) or not isinstance(limit, int) or page < 1 or limit < 1:
            return ServiceResult.fail(ErrorKind.VALIDATION_FAILURE, "page and limit must be positive integers")

        tags = [tag.lower() for tag in tags] if tags else None
        skip = (page - 1) * limit

        try:
            if search or (tags and len(tags) > MAX_DISJUNCTION_VALUES):
                query = parse_search(search) if search else None
                found = [
                    post for post in self.db.stream_posts(tags)
                    if query is None or matches(post, query)
                ]
                total = len(found)
                posts = found[skip:skip + limit]
            else:
                total = self.db.count_posts(tags)
                posts = self.db.query_posts(tags, skip, limit)
        except GoogleAPIError as e:
            return self._storage_failure("Failed to fetch posts", e)

        return ServiceResult.ok(PostPage(
            posts=[Post(**post) for post in posts],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                totalPages=math.ceil(total / limit),
            ),
        ))

    def get_post_by_id(self, post_id: str) -> ServiceResult:
        """Get a single post"""
        if not is_valid_post_id(post_id):
            return self._invalid_id()

        try:
            post = self.db.get_post(post_id)
        except GoogleAPIError as e:
            return self._storage_failure("Failed to fetch post", e)

        if post is None:
            return self._not_found()
        return ServiceResult.ok(Post(**post))

    def update_post(self, post_id: str, fields: Dict[str, Any]) -> ServiceResult:
        """
        Apply a partial update to a post

        Only truthy values among title, content, summary and tags are applied,
        so an empty string leaves the stored value untouched.
        """
        if not is_valid_post_id(post_id):
            return self._invalid_id()

        supplied = {key: fields[key] for key in UPDATABLE_FIELDS if fields.get(key)}

        try:
            changes = PostChanges(**supplied).model_dump(exclude_none=True)
        except ValidationError as e:
            return ServiceResult.fail(ErrorKind.VALIDATION_FAILURE, "Failed to update post", _validation_detail(e))
        changes["updatedAt"] = _now()

        try:
            post = self.db.update_post(post_id, changes)
        except GoogleAPIError as e:
            return self._storage_failure("Failed to update post", e)

        if post is None:
            return self._not_found()
        return ServiceResult.ok(Post(**post))

    def delete_post(self, post_id: str) -> ServiceResult:
        """Permanently delete a post"""
        if not is_valid_post_id(post_id):
            return self._invalid_id()

        try:
            deleted = self.db.delete_post(post_id)
        except GoogleAPIError as e:
            return self._storage_failure("Failed to delete post", e)

        if not deleted:
            return self._not_found()

        logger.info(f"Deleted post {post_id}")
        return ServiceResult.ok({"message": "Post deleted successfully"})

    def like_post(self, post_id: str, user_identifier: str) -> ServiceResult:
        """
        Toggle a user's like on a post

        Args:
            post_id: The post to like or unlike
            user_identifier: Caller token or network address of the user

        Returns:
            ServiceResult holding the new like count and whether the user now likes the post
        """
        if not is_valid_post_id(post_id):
            return self._invalid_id()

        try:
            toggled = self.db.toggle_like(post_id, user_identifier)
        except GoogleAPIError as e:
            return self._storage_failure("Failed to update like status", e)

        if toggled is None:
            return self._not_found()

        likes, has_liked = toggled
        return ServiceResult.ok(LikeStatus(likes=likes, hasLiked=has_liked))

    def get_all_tags(self) -> ServiceResult:
        """Get every tag in use, sorted"""
        try:
            tags = self.db.distinct_tags()
        except GoogleAPIError as e:
            return self._storage_failure("Failed to fetch tags", e)

        return ServiceResult.ok(sorted(tags))
