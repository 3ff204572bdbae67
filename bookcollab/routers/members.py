"""Book membership API endpoints.

Removing co-authors and changing their permission flags.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from ..schemas.member import (
    RemoveCoAuthorRequest,
    RemoveCoAuthorResult,
    SetPermissionsRequest,
    SetPermissionsResult,
)
from ..schemas.user import CallerIdentity
from ..services.auth_service import get_current_caller
from ..services.membership_service import MembershipService, get_membership_service

router = APIRouter(prefix="/api/members", tags=["Members"])


@router.post(
    "/remove",
    response_model=RemoveCoAuthorResult,
    summary="Remove a co-author",
    description="Remove a co-author from a book and revoke all of their access.",
    responses={
        200: {"description": "Co-author removed"},
        400: {"description": "The owner cannot be removed"},
        401: {"description": "Not authenticated"},
        403: {"description": "Missing canRemoveCoAuthors"},
        404: {"description": "Book not found"},
    },
)
async def remove_co_author(
    body: RemoveCoAuthorRequest,
    caller: Annotated[CallerIdentity, Depends(get_current_caller)],
    service: MembershipService = Depends(get_membership_service),
) -> RemoveCoAuthorResult:
    return await service.remove_co_author(caller, body)


@router.post(
    "/permissions",
    response_model=SetPermissionsResult,
    summary="Set co-author permissions",
    description="Replace a co-author's permission flags (owner only).",
    responses={
        200: {"description": "Permissions stored"},
        400: {"description": "The owner's permissions cannot be edited"},
        401: {"description": "Not authenticated"},
        403: {"description": "Caller is not the owner"},
        404: {"description": "Book not found, or target is not a co-author"},
    },
)
async def set_co_author_permissions(
    body: SetPermissionsRequest,
    caller: Annotated[CallerIdentity, Depends(get_current_caller)],
    service: MembershipService = Depends(get_membership_service),
) -> SetPermissionsResult:
    return await service.set_co_author_permissions(caller, body)
