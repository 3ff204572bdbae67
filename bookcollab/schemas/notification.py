"""Pydantic schemas for notification listing."""

from enum import Enum
from typing import List, Optional, Union

from pydantic import Field

from .base import CamelModel


class NotificationType(str, Enum):
    """Notification type enumeration."""

    COAUTHOR_INVITE = "coauthor_invite"


class ListNotificationsRequest(CamelModel):
    """Schema for listing the caller's notifications."""

    # Non-numeric sizes fall back to the default rather than failing validation
    page_size: Optional[Union[int, float, str]] = Field(None, description="Page size (clamped to 1-50)")
    cursor_id: Optional[str] = Field(None, description="Last notification id of the previous page")
    type: Optional[str] = Field(None, description="Filter by notification type")
    book_id: Optional[str] = Field(None, description="Filter by book")


class NotificationSummary(CamelModel):
    """Notification as returned to clients. Timestamps are epoch milliseconds."""

    id: str
    type: str
    invite_id: str
    book_id: str
    book_title: str = "Untitled Book"
    owner_id: str
    owner_name: str = "Book owner"
    can_manage_media: bool = False
    created_at: int = 0
    expires_at: int = 0


class NotificationListResult(CamelModel):
    success: bool = True
    notifications: List[NotificationSummary] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(None, description="Cursor for the next page")
    pending_count: int = Field(0, ge=0, description="Unread pending-invite counter")
