from typing import Any, Dict, List, Optional

from fastapi import APIRouter, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from config import settings
from dependencies import ClientAddress, Posts
from models.post import LikeRequest, PostRequest
from models.result import ErrorKind, ServiceResult

router = APIRouter()

ERROR_STATUS = {
    ErrorKind.INVALID_IDENTIFIER: status.HTTP_404_NOT_FOUND,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_FAILURE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.STORAGE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def envelope(status_code: int, message: Optional[str] = None, data: Any = None,
             headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    """Wrap a response body in the {statusCode, message?, data?} envelope"""
    body: Dict[str, Any] = {"statusCode": status_code}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


def failure(result: ServiceResult) -> JSONResponse:
    # Only validation details are safe to hand back to the client
    status_code = ERROR_STATUS[result.kind]
    detail = result.detail if result.kind == ErrorKind.VALIDATION_FAILURE else None
    return envelope(status_code, result.message, detail)


def respond(result: ServiceResult, success_status: int = status.HTTP_200_OK,
            message: Optional[str] = None) -> JSONResponse:
    if result.is_error:
        return failure(result)
    return envelope(success_status, message, result.data)


def _parse_tags(tags: Optional[str]) -> Optional[List[str]]:
    if not tags:
        return None
    parsed = [tag.strip().lower() for tag in tags.split(",") if tag.strip()]
    return parsed or None


def _parse_positive_int(value: Optional[str]) -> Optional[int]:
    """Parse a positive integer query value, raising ValueError otherwise"""
    if value is None or value == "":
        return None
    number = int(value)
    if number < 1:
        raise ValueError(value)
    return number


@router.post("")
def create_post(body: PostRequest, posts: Posts):
    """Create a new post"""
    if not body.title or not body.content or body.tags is None:
        return envelope(status.HTTP_400_BAD_REQUEST, "Missing required fields: title, content, tags")

    result = posts.create_post(body.title, body.content, body.tags, summary=body.summary)
    return respond(result, status.HTTP_201_CREATED, "Post created successfully")


@router.get("")
def get_posts(
        posts: Posts,
        tags: Optional[str] = None,
        search: Optional[str] = None,
        page: Optional[str] = None,
        limit: Optional[str] = None
):
    """
    List posts newest first

    Args:
        tags: Comma-separated tags, a post matches if it has any of them
        search: Text search over title, content and tags
        page: 1-based page number, defaults to 1
        limit: Page size, defaults to 10
    """
    try:
        page_number = _parse_positive_int(page)
        page_size = _parse_positive_int(limit)
    except ValueError:
        return envelope(status.HTTP_400_BAD_REQUEST, "page and limit must be positive integers")

    if settings.posts_max_limit and page_size and page_size > settings.posts_max_limit:
        return envelope(status.HTTP_400_BAD_REQUEST, f"limit must not exceed {settings.posts_max_limit}")

    filters: Dict[str, Any] = {"tags": _parse_tags(tags), "search": search or None}
    if page_number is not None:
        filters["page"] = page_number
    if page_size is not None:
        filters["limit"] = page_size

    return respond(posts.list_posts(**filters))


@router.get("/tags")
def get_all_tags(posts: Posts):
    """Get every tag in use, sorted"""
    return respond(posts.get_all_tags())


@router.get("/{post_id}")
def get_post(post_id: str, posts: Posts):
    return respond(posts.get_post_by_id(post_id))


@router.put("/{post_id}")
def update_post(post_id: str, body: PostRequest, posts: Posts):
    """Update the supplied fields of a post; empty values are ignored"""
    update_data = {key: value for key, value in body.model_dump().items() if value}
    if not update_data:
        return envelope(status.HTTP_400_BAD_REQUEST, "No valid fields to update")

    return respond(posts.update_post(post_id, update_data), message="Post updated successfully")


@router.delete("/{post_id}")
def delete_post(post_id: str, posts: Posts):
    return respond(posts.delete_post(post_id))


@router.post("/{post_id}/like")
def toggle_like(post_id: str, posts: Posts, client_address: ClientAddress,
                body: Optional[LikeRequest] = None):
    """
    Toggle like status for a post

    The user is identified by the userIdentifier in the body, falling back to
    the caller's address and finally to "anonymous".
    """
    user_identifier = (body and body.userIdentifier) or client_address or "anonymous"
    return respond(posts.like_post(post_id, user_identifier))
