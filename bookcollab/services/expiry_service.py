"""Lazy expiry of pending invitations.

Read and write paths that touch a book or a recipient first sweep that
scope's expired pending invitations. Each invitation is expired in its own
small transaction, and a sweep that fails is logged and skipped: stale data
is preferable to failing the caller's request.

The arq worker reuses the same unit for its periodic system-wide sweep.
"""

import logging
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, settings as default_settings
from ..database import transaction
from ..schemas.invitation import InviteStatus
from ..utils.timeutils import Clock, utcnow
from .invitation_store import InvitationStore
from .notification_store import NotificationStore

logger = logging.getLogger(__name__)


class ExpiryService:
    """
    Drives expired pending invitations to ``expired``.

    Attributes:
        db: SQLAlchemy async database session
        settings: Application settings (batch size)
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
        self.invites = InvitationStore(db)
        self.notifications = NotificationStore(db)

    async def expire_invite(self, invite_id: str) -> bool:
        """
        Expire one invitation if it is still pending and past its expiry.

        Running this twice for the same invitation is a no-op the second
        time: the status check and the notification delete are both made
        against the locked rows.

        Args:
            invite_id: Invitation id

        Returns:
            True if the invitation was transitioned to ``expired``.
        """
        async with transaction(self.db):
            now = self.clock()
            invite = await self.invites.get_for_update(invite_id)
            if invite is None:
                return False
            if invite.status != InviteStatus.PENDING.value or not invite.is_expired(now):
                return False

            invite.status = InviteStatus.EXPIRED.value
            invite.updated_at = now
            invite.responded_at = now

            if invite.invitee_uid:
                await self.notifications.delete_invite_notification(invite.invitee_uid, invite.id)

        logger.info(f"Invitation expired: id={invite_id}")
        return True

    async def _expire_all(self, invite_ids) -> int:
        expired = 0
        for invite_id in invite_ids:
            if await self.expire_invite(invite_id):
                expired += 1
        return expired

    async def sweep_book(self, book_id: str) -> int:
        """Expire overdue pending invitations of one book."""
        invite_ids = await self.invites.list_expired_pending_ids(
            self.clock(), book_id=book_id, limit=self.settings.sweep_batch_size
        )
        return await self._expire_all(invite_ids)

    async def sweep_recipient(self, invitee_uid: str) -> int:
        """Expire overdue pending invitations addressed to one user."""
        invite_ids = await self.invites.list_expired_pending_ids(
            self.clock(), invitee_uid=invitee_uid, limit=self.settings.sweep_batch_size
        )
        return await self._expire_all(invite_ids)

    async def sweep_all(self, limit: Optional[int] = None) -> int:
        """Expire one batch of overdue pending invitations system-wide."""
        invite_ids = await self.invites.list_expired_pending_ids(
            self.clock(), limit=limit or self.settings.sweep_batch_size
        )
        return await self._expire_all(invite_ids)

    async def run_safely(self, label: str, job: Callable[[], Awaitable[int]]) -> int:
        """
        Run a sweep, logging and discarding any failure.

        Args:
            label: Scope description for the log line, e.g. ``book=b1``
            job: Zero-argument coroutine function performing the sweep

        Returns:
            Number of invitations expired, or 0 if the sweep failed.
        """
        try:
            return await job()
        except Exception as e:
            await self.db.rollback()
            logger.warning(f"Expiry sweep skipped ({label}): {e}")
            return 0

    async def sweep_book_safely(self, book_id: str) -> int:
        return await self.run_safely(f"book={book_id}", lambda: self.sweep_book(book_id))

    async def sweep_recipient_safely(self, invitee_uid: str) -> int:
        return await self.run_safely(
            f"recipient={invitee_uid}", lambda: self.sweep_recipient(invitee_uid)
        )
