"""Co-author invitation API endpoints.

RPC-style endpoints for the invitation lifecycle:
- invite: create a new invitation or resend a live one
- respond: accept or decline (invitee only)
- manage: resend or cancel (owner, or co-author with canManagePendingInvites)
- pending: list a book's pending invitations

All endpoints require a bearer token. Errors use the collaboration error
envelope (see ``bookcollab.errors``).
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from ..schemas.invitation import (
    InviteRequest,
    InviteResult,
    ManageRequest,
    ManageResult,
    PendingInvitesRequest,
    PendingInvitesResult,
    RespondRequest,
    RespondResult,
)
from ..schemas.user import CallerIdentity
from ..services.auth_service import get_current_caller
from ..services.invitation_service import InvitationService, get_invitation_service

router = APIRouter(prefix="/api/invitations", tags=["Invitations"])


# ============================================================================
# Lifecycle endpoints
# ============================================================================


@router.post(
    "/invite",
    response_model=InviteResult,
    summary="Invite a co-author",
    description="Invite a user to co-author a book. Re-inviting a pending invitee resends the invite.",
    responses={
        200: {"description": "Invitation created or resent"},
        400: {"description": "Invalid request, unverified email or resend cooldown"},
        401: {"description": "Not authenticated"},
        403: {"description": "No access to the book or missing canInviteCoAuthors"},
        404: {"description": "Book not found"},
        409: {"description": "User is already a member"},
        429: {"description": "Capacity limit reached"},
    },
)
async def invite_co_author(
    body: InviteRequest,
    caller: Annotated[CallerIdentity, Depends(get_current_caller)],
    service: InvitationService = Depends(get_invitation_service),
) -> InviteResult:
    return await service.invite(caller, body)


@router.post(
    "/respond",
    response_model=RespondResult,
    summary="Respond to an invitation",
    description="Accept or decline an invitation addressed to the caller.",
    responses={
        200: {"description": "Resulting or current invitation status"},
        401: {"description": "Not authenticated"},
        403: {"description": "Caller is not the invitee"},
        404: {"description": "Invitation not found"},
        429: {"description": "Book already has the maximum number of co-authors"},
    },
)
async def respond_to_invite(
    body: RespondRequest,
    caller: Annotated[CallerIdentity, Depends(get_current_caller)],
    service: InvitationService = Depends(get_invitation_service),
) -> RespondResult:
    return await service.respond(caller, body)


@router.post(
    "/manage",
    response_model=ManageResult,
    summary="Resend or cancel an invitation",
    description="Resend or cancel a pending invitation on behalf of the book.",
    responses={
        200: {"description": "Invitation resent or cancelled"},
        400: {"description": "Invitation not pending, or resend cooldown"},
        401: {"description": "Not authenticated"},
        403: {"description": "Missing canManagePendingInvites"},
        404: {"description": "Invitation or book not found"},
    },
)
async def manage_invite(
    body: ManageRequest,
    caller: Annotated[CallerIdentity, Depends(get_current_caller)],
    service: InvitationService = Depends(get_invitation_service),
) -> ManageResult:
    return await service.manage(caller, body)


# ============================================================================
# List endpoints
# ============================================================================


@router.post(
    "/pending",
    response_model=PendingInvitesResult,
    summary="List pending invitations",
    description="Page through a book's pending invitations, newest first.",
    responses={
        200: {"description": "Page of pending invitations"},
        401: {"description": "Not authenticated"},
        403: {"description": "Missing canManagePendingInvites"},
        404: {"description": "Book not found"},
    },
)
async def list_pending_invites(
    body: PendingInvitesRequest,
    caller: Annotated[CallerIdentity, Depends(get_current_caller)],
    service: InvitationService = Depends(get_invitation_service),
) -> PendingInvitesResult:
    return await service.list_pending_invites(caller, body)
