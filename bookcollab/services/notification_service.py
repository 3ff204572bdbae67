"""Notification inbox listing.

Provides the recipient-facing read path:
- Sweeping the recipient's expired invitations before reading
- Paginated, filterable listing, newest first
- The unread pending-invite counter, clamped and self-healed
"""

import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, settings as default_settings
from ..database import get_db, transaction
from ..schemas.notification import ListNotificationsRequest, NotificationListResult
from ..schemas.user import CallerIdentity
from ..utils.pagination import clamp_page_size
from ..utils.timeutils import Clock, get_clock, utcnow
from .expiry_service import ExpiryService
from .notification_store import NotificationStore, format_notification

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Service for reading a user's notifications.

    Attributes:
        db: SQLAlchemy async database session
        settings: Application settings (page sizes)
        clock: Source of the current time
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Optional[Settings] = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.settings = settings or default_settings
        self.clock = clock
        self.store = NotificationStore(db)
        self.expiry = ExpiryService(db, self.settings, clock)

    async def list_notifications(
        self,
        caller: CallerIdentity,
        request: ListNotificationsRequest,
    ) -> NotificationListResult:
        """
        List the caller's notifications with their unread counter.

        Args:
            caller: Authenticated recipient
            request: Page size, cursor and optional type/book filters

        Returns:
            NotificationListResult; ``nextCursor`` is set only when the page
            is full.
        """
        await self.expiry.sweep_recipient_safely(caller.uid)

        size = clamp_page_size(
            request.page_size,
            self.settings.notifications_page_size,
            self.settings.max_page_size,
        )
        rows = await self.store.list_for_recipient(
            caller.uid,
            size,
            cursor_id=request.cursor_id,
            notification_type=request.type,
            book_id=request.book_id,
        )
        notifications = [format_notification(row) for row in rows]
        next_cursor = rows[-1].id if len(rows) == size else None

        async with transaction(self.db):
            pending_count = await self.store.read_pending_counter(caller.uid)

        return NotificationListResult(
            success=True,
            notifications=notifications,
            next_cursor=next_cursor,
            pending_count=pending_count,
        )


def get_notification_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> NotificationService:
    """FastAPI dependency building a NotificationService for the request."""
    return NotificationService(db, clock=clock)
