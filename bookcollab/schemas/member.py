"""Pydantic schemas for book membership and co-author permissions."""

from enum import Enum
from typing import Any, Dict

from pydantic import Field

from .base import CamelModel


class MemberRole(str, Enum):
    """Book membership role."""

    OWNER = "Owner"
    CO_AUTHOR = "Co-author"


class MemberPermissions(CamelModel):
    """The four co-author permission flags, always fully populated."""

    can_manage_media: bool = Field(
        ...,
        description="May manage the book's shared media album",
    )
    can_invite_co_authors: bool = Field(
        ...,
        description="May invite new co-authors",
    )
    can_manage_pending_invites: bool = Field(
        ...,
        description="May resend or cancel pending invites",
    )
    can_remove_co_authors: bool = Field(
        ...,
        description="May remove co-authors",
    )


class RemoveCoAuthorRequest(CamelModel):
    """Schema for removing a co-author from a book."""

    book_id: str = Field(..., min_length=1, description="Book ID")
    co_author_uid: str = Field(..., min_length=1, description="Co-author to remove")


class RemoveCoAuthorResult(CamelModel):
    success: bool = True


class SetPermissionsRequest(CamelModel):
    """Schema for replacing a co-author's permission flags.

    ``permissions`` is accepted as a raw mapping: flags that are missing or
    not booleans fall back to the defaults during sanitization.
    """

    book_id: str = Field(..., min_length=1, description="Book ID")
    target_uid: str = Field(..., min_length=1, description="Co-author whose permissions change")
    permissions: Dict[str, Any] = Field(
        ...,
        description="Requested permission flags (camelCase keys)",
        examples=[{"canManageMedia": False, "canInviteCoAuthors": True}],
    )


class SetPermissionsResult(CamelModel):
    success: bool = True
    permissions: MemberPermissions = Field(
        ...,
        description="Stored permissions after sanitization",
    )
