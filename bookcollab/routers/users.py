"""User profile API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.user import AuthFlagsResult, CallerIdentity
from ..services.auth_service import get_current_caller
from ..services.identity_service import IdentityService

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post(
    "/sync-auth-flags",
    response_model=AuthFlagsResult,
    summary="Sync auth flags",
    description="Copy the token's email, display name and verification flag onto the caller's profile.",
    responses={
        200: {"description": "Profile updated"},
        401: {"description": "Not authenticated"},
    },
)
async def sync_auth_flags(
    caller: Annotated[CallerIdentity, Depends(get_current_caller)],
    db: AsyncSession = Depends(get_db),
) -> AuthFlagsResult:
    return await IdentityService(db).sync_auth_flags(caller)
