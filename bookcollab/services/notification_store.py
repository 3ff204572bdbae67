"""Notification record store and the recipient's unread counter.

A notification row exists exactly while its invitation is pending, and
``Users.pending_invite_count`` is kept equal to the number of such rows:
creating a row applies +1 and deleting one applies -1, always in the same
transaction and always gated on the row observed under lock.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.invitation import Invitation
from ..models.notification import Notification
from ..models.user import User
from ..schemas.notification import NotificationSummary, NotificationType
from ..utils.timeutils import to_millis, utcnow
from .access_service import get_or_create_profile

logger = logging.getLogger(__name__)


def format_notification(notification: Notification) -> NotificationSummary:
    return NotificationSummary(
        id=notification.id,
        type=notification.type,
        invite_id=notification.invite_id,
        book_id=notification.book_id,
        book_title=notification.book_title or "Untitled Book",
        owner_id=notification.owner_id,
        owner_name=notification.owner_name or "Book owner",
        can_manage_media=bool(notification.can_manage_media),
        created_at=to_millis(notification.created_at),
        expires_at=to_millis(notification.expires_at),
    )


class NotificationStore:
    """
    Persistence operations over notification rows and unread counters.

    Callers own the transaction; nothing here commits.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_for_update(self, user_id: str, invite_id: str) -> Optional[Notification]:
        result = await self.db.execute(
            select(Notification)
            .where(Notification.id == invite_id, Notification.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def apply_counter_delta(self, user_id: str, delta: int) -> None:
        """
        Apply a signed increment to the recipient's unread counter.

        The counter is only ever changed relative to its stored value, never
        overwritten.
        """
        await self.db.flush()
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                pending_invite_count=User.pending_invite_count + delta,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await get_or_create_profile(self.db, user_id)
            await self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(pending_invite_count=User.pending_invite_count + delta)
                .execution_options(synchronize_session=False)
            )

    async def upsert_invite_notification(
        self,
        invite: Invitation,
        expires_at: datetime,
        now: datetime,
    ) -> bool:
        """
        Create or refresh the notification projecting a pending invitation.

        An existing row keeps its ``created_at``; only a newly created row
        credits the recipient's counter.

        Args:
            invite: The (pending) invitation
            expires_at: Expiry to show on the notification
            now: Current time

        Returns:
            True if a new notification row was created.
        """
        notification = await self.get_for_update(invite.invitee_uid, invite.id)
        created = notification is None

        if created:
            notification = Notification(
                id=invite.id,
                user_id=invite.invitee_uid,
                created_at=now,
            )
            self.db.add(notification)

        notification.type = NotificationType.COAUTHOR_INVITE.value
        notification.invite_id = invite.id
        notification.book_id = invite.book_id
        notification.book_title = invite.book_title or "Untitled Book"
        notification.owner_id = invite.owner_id
        notification.owner_name = invite.owner_name or "Book owner"
        notification.can_manage_media = bool(invite.can_manage_media)
        notification.expires_at = expires_at

        if created:
            await self.apply_counter_delta(invite.invitee_uid, 1)
        return created

    async def delete_invite_notification(self, user_id: str, invite_id: str) -> bool:
        """
        Delete the notification for an invitation, debiting the counter once.

        Returns:
            True if a row existed and was deleted.
        """
        notification = await self.get_for_update(user_id, invite_id)
        if notification is None:
            return False

        await self.db.delete(notification)
        await self.apply_counter_delta(user_id, -1)
        return True

    async def list_for_recipient(
        self,
        user_id: str,
        page_size: int,
        cursor_id: Optional[str] = None,
        notification_type: Optional[str] = None,
        book_id: Optional[str] = None,
    ) -> List[Notification]:
        """
        A page of the recipient's notifications, newest first.

        Args:
            user_id: Recipient
            page_size: Maximum rows to return
            cursor_id: Id of the last notification of the previous page
            notification_type: Only this type
            book_id: Only notifications for this book

        Returns:
            List of Notification rows.
        """
        query = select(Notification).where(Notification.user_id == user_id)
        if notification_type:
            query = query.where(Notification.type == str(notification_type))
        if book_id:
            query = query.where(Notification.book_id == str(book_id))

        if cursor_id:
            cursor = await self.db.get(Notification, str(cursor_id))
            if cursor is not None and cursor.user_id == user_id:
                query = query.where(
                    or_(
                        Notification.created_at < cursor.created_at,
                        and_(
                            Notification.created_at == cursor.created_at,
                            Notification.id < cursor.id,
                        ),
                    )
                )

        query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(page_size)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def read_pending_counter(self, user_id: str) -> int:
        """
        Read the unread counter, clamped to zero.

        A negative stored value is reset to zero as a side effect.
        """
        result = await self.db.execute(
            select(User.pending_invite_count).where(User.id == user_id)
        )
        raw = result.scalar()
        if raw is None:
            return 0

        raw = int(raw)
        if raw < 0:
            logger.warning(
                f"Pending invite counter drift corrected: user={user_id}, stored={raw}"
            )
            await self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(pending_invite_count=0, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            return 0
        return raw
