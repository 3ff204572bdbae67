"""Invitation record store: keyed lookups, counts and listings."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import insert_ignoring_conflict
from ..models.invitation import Invitation
from ..schemas.invitation import InviteStatus, InviteSummary
from ..utils.timeutils import to_millis

INVITE_ID_SEPARATOR = "__"


def build_invite_id(book_id: str, invitee_uid: str) -> str:
    """Deterministic invitation key for a (book, invitee) pair."""
    return f"{book_id}{INVITE_ID_SEPARATOR}{invitee_uid}"


def format_invite(invite: Invitation) -> InviteSummary:
    return InviteSummary(
        invite_id=invite.id,
        book_id=invite.book_id,
        owner_id=invite.owner_id,
        invitee_uid=invite.invitee_uid,
        invitee_email=invite.invitee_email or "",
        owner_name=invite.owner_name or "",
        book_title=invite.book_title or "Untitled Book",
        can_manage_media=bool(invite.can_manage_media),
        can_invite_co_authors=bool(invite.can_invite_co_authors),
        status=InviteStatus(invite.status),
        created_at=to_millis(invite.created_at),
        updated_at=to_millis(invite.updated_at),
        expires_at=to_millis(invite.expires_at),
        responded_at=to_millis(invite.responded_at),
        resent_at=to_millis(invite.resent_at),
    )


class InvitationStore:
    """Persistence operations over invitation rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, invite_id: str) -> Optional[Invitation]:
        """Fetch an invitation, refreshing any copy already in the session."""
        result = await self.db.execute(
            select(Invitation)
            .where(Invitation.id == invite_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, invite_id: str) -> Optional[Invitation]:
        """Fetch and lock an invitation for the rest of the transaction."""
        result = await self.db.execute(
            select(Invitation)
            .where(Invitation.id == invite_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create_if_absent(
        self,
        invite_id: str,
        book_id: str,
        owner_id: str,
        invitee_uid: str,
        now: datetime,
    ) -> bool:
        """
        Insert a bare pending row for the key unless a row already exists.

        Returns:
            True if this call created the row, False if another
            transaction got there first.
        """
        return await insert_ignoring_conflict(
            self.db,
            Invitation,
            {
                "id": invite_id,
                "book_id": book_id,
                "owner_id": owner_id,
                "invitee_uid": invitee_uid,
                "status": InviteStatus.PENDING.value,
                "created_at": now,
                "updated_at": now,
            },
        )

    async def count_pending_for_recipient(self, invitee_uid: str) -> int:
        result = await self.db.execute(
            select(func.count(Invitation.id)).where(
                Invitation.invitee_uid == invitee_uid,
                Invitation.status == InviteStatus.PENDING.value,
            )
        )
        return result.scalar() or 0

    async def count_pending_for_book(self, book_id: str) -> int:
        result = await self.db.execute(
            select(func.count(Invitation.id)).where(
                Invitation.book_id == book_id,
                Invitation.status == InviteStatus.PENDING.value,
            )
        )
        return result.scalar() or 0

    async def list_expired_pending_ids(
        self,
        now: datetime,
        book_id: Optional[str] = None,
        invitee_uid: Optional[str] = None,
        limit: int = 100,
    ) -> List[str]:
        """
        Ids of pending invitations whose expiry is at or before ``now``.

        Args:
            now: Reference time
            book_id: Restrict to one book
            invitee_uid: Restrict to one recipient
            limit: Maximum number of ids returned

        Returns:
            List of invitation ids, oldest expiry first.
        """
        query = select(Invitation.id).where(
            Invitation.status == InviteStatus.PENDING.value,
            Invitation.expires_at.isnot(None),
            Invitation.expires_at <= now,
        )
        if book_id is not None:
            query = query.where(Invitation.book_id == book_id)
        if invitee_uid is not None:
            query = query.where(Invitation.invitee_uid == invitee_uid)

        result = await self.db.execute(query.order_by(Invitation.expires_at.asc()).limit(limit))
        return [row[0] for row in result.all()]

    async def list_pending_for_book(
        self,
        book_id: str,
        page_size: int,
        cursor_id: Optional[str] = None,
    ) -> List[Invitation]:
        """
        Pending invitations of a book, newest first.

        ``cursor_id`` is the id of the last invitation of the previous page;
        an unknown cursor is ignored and the first page is returned.
        """
        query = select(Invitation).where(
            Invitation.book_id == book_id,
            Invitation.status == InviteStatus.PENDING.value,
        )

        if cursor_id:
            cursor = await self.db.get(Invitation, cursor_id)
            if cursor is not None:
                query = query.where(
                    or_(
                        Invitation.created_at < cursor.created_at,
                        and_(
                            Invitation.created_at == cursor.created_at,
                            Invitation.id < cursor.id,
                        ),
                    )
                )

        query = query.order_by(Invitation.created_at.desc(), Invitation.id.desc()).limit(page_size)
        result = await self.db.execute(query)
        return list(result.scalars().all())
