"""Pydantic schemas for co-author invitations."""

from enum import Enum
from typing import List, Optional, Union

from pydantic import Field

from .base import CamelModel


class InviteStatus(str, Enum):
    """Invitation status enumeration."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset(
    {InviteStatus.ACCEPTED, InviteStatus.DECLINED, InviteStatus.CANCELLED, InviteStatus.EXPIRED}
)


class RespondAction(str, Enum):
    """Invitee response to an invitation."""

    ACCEPT = "accept"
    DECLINE = "decline"


class ManageAction(str, Enum):
    """Inviter-side management of a pending invitation."""

    RESEND = "resend"
    CANCEL = "cancel"


class InviteRequest(CamelModel):
    """Schema for creating (or resending) a co-author invitation."""

    book_id: str = Field(..., min_length=1, description="Book to share")
    uid: str = Field(..., min_length=1, description="User being invited")
    can_manage_media: bool = Field(
        True,
        description="Grant media management on acceptance",
    )
    can_invite_co_authors: bool = Field(
        False,
        description="Grant invite permission on acceptance (owner callers only)",
    )


class InviteResult(CamelModel):
    success: bool = True
    invite_id: str = Field(..., description="Deterministic invitation id")
    status: str = Field(..., description="created or resent", examples=["created", "resent"])
    expires_at: int = Field(..., description="Expiry in epoch milliseconds")


class RespondRequest(CamelModel):
    """Schema for accepting or declining an invitation."""

    invite_id: str = Field(..., min_length=1, description="Invitation id")
    action: RespondAction = Field(..., description="accept or decline")


class RespondResult(CamelModel):
    success: bool = True
    status: str = Field(
        ...,
        description="Resulting (or current) invitation status",
        examples=["accepted", "declined", "expired"],
    )


class ManageRequest(CamelModel):
    """Schema for resending or cancelling a pending invitation."""

    invite_id: str = Field(..., min_length=1, description="Invitation id")
    action: ManageAction = Field(..., description="resend or cancel")


class ManageResult(CamelModel):
    success: bool = True
    status: str = Field(..., description="resent or cancelled")
    expires_at: Optional[int] = Field(
        None,
        description="New expiry in epoch milliseconds (resend only)",
    )


class PendingInvitesRequest(CamelModel):
    """Schema for listing a book's pending invitations."""

    book_id: str = Field(..., min_length=1, description="Book ID")
    # Non-numeric sizes fall back to the default rather than failing validation
    page_size: Optional[Union[int, float, str]] = Field(None, description="Page size (clamped to 1-50)")
    cursor_id: Optional[str] = Field(None, description="Last invitation id of the previous page")


class InviteSummary(CamelModel):
    """Invitation as returned to clients. Timestamps are epoch milliseconds."""

    invite_id: str
    book_id: str
    owner_id: str
    invitee_uid: str
    invitee_email: str = ""
    owner_name: str = ""
    book_title: str = "Untitled Book"
    can_manage_media: bool = False
    can_invite_co_authors: bool = False
    status: InviteStatus
    created_at: int = 0
    updated_at: int = 0
    expires_at: int = 0
    responded_at: int = 0
    resent_at: int = 0


class PendingInvitesResult(CamelModel):
    success: bool = True
    invites: List[InviteSummary] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(None, description="Cursor for the next page")
