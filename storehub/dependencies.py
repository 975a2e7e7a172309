"""
StoreHub Backend: FastAPI Dependencies
=======================================

What:  Hands routes the objects built once in the app factory (repositories,
       upload steps, view collaborators) and resolves the current user.
How:   Everything lives on `app.state`; tests swap entries there or use
       `app.dependency_overrides`.

Identity:
    Authentication happens in front of this service. The authenticating
    proxy forwards the user id in `settings.identity_header` (X-User-ID by
    default); `get_current_user` loads that user or raises
    AuthorizationError.
"""

import uuid
from typing import Optional

from fastapi import Depends, Request

from storehub.config import settings
from storehub.exceptions import AuthorizationError
from storehub.models.user import User
from storehub.services.store_repository import StoreRepository
from storehub.services.upload_service import ImageResizer, UploadFilter
from storehub.services.user_repository import UserRepository
from storehub.views import FlashMessenger, ViewRenderer


def get_store_repository(request: Request) -> StoreRepository:
    return request.app.state.store_repository


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repository


def get_upload_filter(request: Request) -> UploadFilter:
    return request.app.state.upload_filter


def get_image_resizer(request: Request) -> ImageResizer:
    return request.app.state.image_resizer


def get_renderer(request: Request) -> ViewRenderer:
    return request.app.state.renderer


def get_flashes(request: Request) -> FlashMessenger:
    return request.app.state.flashes


async def get_optional_user(
    request: Request,
    users: UserRepository = Depends(get_user_repository),
) -> Optional[User]:
    """The signed-in user, or None for anonymous requests."""
    raw_id = request.headers.get(settings.identity_header)
    if not raw_id:
        return None
    try:
        user_id = uuid.UUID(raw_id)
    except ValueError:
        return None
    return await users.get(user_id)


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise AuthorizationError(message="You must be logged in to do that!")
    return user
