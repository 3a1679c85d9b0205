"""
Dependency injection for FastAPI routes.

Provides typed service dependencies that enable IDE navigation (Ctrl+Click).
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from chronoline.errors import NotFoundError
from chronoline.models import Timeline, TokenIdentity
from chronoline.services.auth import AuthService
from chronoline.services.images import ImageService
from chronoline.services.timeline import TimelineService
from chronoline.services.transfer import TimelineTransferService

bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_timeline_service(request: Request) -> TimelineService:
    return request.app.state.timeline_service


def get_image_service(request: Request) -> ImageService:
    return request.app.state.image_service


def get_transfer_service(request: Request) -> TimelineTransferService:
    return request.app.state.transfer_service


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
TimelineServiceDep = Annotated[TimelineService, Depends(get_timeline_service)]
ImageServiceDep = Annotated[ImageService, Depends(get_image_service)]
TransferServiceDep = Annotated[TimelineTransferService, Depends(get_transfer_service)]


def get_current_user(
    service: AuthServiceDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> TokenIdentity:
    """Bearer-token gate: 401 without a token, 403 when it does not verify."""
    token = credentials.credentials if credentials else None
    return service.verify_token(token)


CurrentUserDep = Annotated[TokenIdentity, Depends(get_current_user)]


async def get_owned_timeline(
    timeline_id: str,
    user: CurrentUserDep,
    service: TimelineServiceDep,
) -> Timeline:
    """Load the path's timeline scoped to the caller; foreign timelines look missing."""
    timeline = await service.get_timeline(timeline_id, user.id)
    if not timeline:
        raise NotFoundError("Timeline not found")
    return timeline


OwnedTimelineDep = Annotated[Timeline, Depends(get_owned_timeline)]
