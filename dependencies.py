from typing import Annotated, Optional

from fastapi import Request, Depends

from services.posts import PostService


async def get_post_service(request: Request) -> PostService:
    """Get post service from app state"""
    return request.app.state.post_service


async def get_client_address(request: Request) -> Optional[str]:
    """Network address of the caller, if the server knows it"""
    return request.client.host if request.client else None


# Type annotations for dependency injection
Posts = Annotated[PostService, Depends(get_post_service)]
ClientAddress = Annotated[Optional[str], Depends(get_client_address)]
