from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

SUMMARY_MAX_LENGTH = 300


def normalize_tags(tags: List[str]) -> List[str]:
    """Lowercase and trim tags, dropping blank entries"""
    return [tag.strip().lower() for tag in tags if tag and tag.strip()]


class PostDocument(BaseModel):
    """Schema of a post as stored in the posts collection"""
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    summary: str = Field("", max_length=SUMMARY_MAX_LENGTH)
    tags: List[str] = []
    author: str = ""
    likes: int = Field(0, ge=0)
    likedBy: List[str] = []
    createdAt: datetime
    updatedAt: datetime

    @field_validator("title", "author", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("tags")
    @classmethod
    def lowercase_tags(cls, tags: List[str]) -> List[str]:
        return normalize_tags(tags)


class PostChanges(BaseModel):
    """Validated partial update of a post"""
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    summary: Optional[str] = Field(None, max_length=SUMMARY_MAX_LENGTH)
    tags: Optional[List[str]] = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("tags")
    @classmethod
    def lowercase_tags(cls, tags: Optional[List[str]]) -> Optional[List[str]]:
        return normalize_tags(tags) if tags is not None else None


class Post(PostDocument):
    id: str


class PostRequest(BaseModel):
    """Request body for creating or updating a post; presence is checked per endpoint"""
    title: Optional[str] = None
    content: Optional[str] = None
    summary: Optional[str] = None
    tags: Optional[List[str]] = None


class LikeRequest(BaseModel):
    userIdentifier: Optional[str] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class PostPage(BaseModel):
    posts: List[Post]
    pagination: Pagination


class LikeStatus(BaseModel):
    likes: int
    hasLiked: bool
