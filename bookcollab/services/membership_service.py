"""Co-author removal and permission changes.

Both operations load the book outside the transaction for the role checks,
then re-read and lock every touched record inside one transaction.
"""

import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db, transaction
from ..errors import (
    AppErrorCode,
    FailedPreconditionError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
)
from ..schemas.invitation import InviteStatus
from ..schemas.member import (
    MemberRole,
    RemoveCoAuthorRequest,
    RemoveCoAuthorResult,
    SetPermissionsRequest,
    SetPermissionsResult,
)
from ..schemas.user import CallerIdentity
from ..utils.timeutils import Clock, get_clock, utcnow
from .access_service import AccessPropagation, get_album_for_update
from .invitation_store import InvitationStore, build_invite_id
from .notification_store import NotificationStore
from .permission_service import (
    MEMBER_PERMISSION_DEFAULTS,
    PermissionService,
    ensure_book_access,
    ensure_permission,
    is_owner_target,
    sanitize_member_permissions,
)

logger = logging.getLogger(__name__)


class MembershipService:
    """
    Service for removing co-authors and editing their permissions.

    Attributes:
        db: SQLAlchemy async database session
        clock: Source of the current time
    """

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.permissions = PermissionService(db)
        self.invites = InvitationStore(db)
        self.notifications = NotificationStore(db)
        self.access = AccessPropagation(db, clock)

    async def remove_co_author(
        self,
        caller: CallerIdentity,
        request: RemoveCoAuthorRequest,
    ) -> RemoveCoAuthorResult:
        """
        Remove a co-author and every trace of their access.

        Also cancels a still-pending invitation for the same (book, user)
        pair and drops its notification. Removing a non-member succeeds
        without changes to membership.

        Args:
            caller: Owner, or co-author with canRemoveCoAuthors
            request: Book and co-author to remove

        Returns:
            RemoveCoAuthorResult

        Raises:
            NotFoundError: Book does not exist
            PermissionDeniedError: Caller lacks access or permission
            FailedPreconditionError: Target is the owner
        """
        book_id = (request.book_id or "").strip()
        co_author_uid = (request.co_author_uid or "").strip()
        if not book_id or not co_author_uid:
            raise InvalidArgumentError("bookId and coAuthorUid are required.")

        book = await self.permissions.require_book(book_id)
        role = ensure_book_access(book, caller.uid)
        ensure_permission(role, "canRemoveCoAuthors")

        if is_owner_target(book, co_author_uid):
            raise FailedPreconditionError(
                "Owner cannot be removed as co-author.",
                AppErrorCode.OWNER_IMMUTABLE,
            )

        invite_id = build_invite_id(book_id, co_author_uid)

        async with transaction(self.db):
            book = await self.permissions.require_book(book_id, for_update=True)
            album = await get_album_for_update(self.db, book_id)

            await self.access.revoke_co_author(book, album, co_author_uid)

            invite = await self.invites.get_for_update(invite_id)
            if invite is not None and invite.status == InviteStatus.PENDING.value:
                now = self.clock()
                invite.status = InviteStatus.CANCELLED.value
                invite.updated_at = now
                invite.responded_at = now

            await self.notifications.delete_invite_notification(co_author_uid, invite_id)

        logger.info(f"Co-author removed: book={book_id}, user={co_author_uid}, actor={caller.uid}")
        return RemoveCoAuthorResult(success=True)

    async def set_co_author_permissions(
        self,
        caller: CallerIdentity,
        request: SetPermissionsRequest,
    ) -> SetPermissionsResult:
        """
        Replace a co-author's permission flags.

        The requested flags are sanitized against the member defaults. A
        change of canManageMedia grants or revokes album access to match.

        Args:
            caller: Book owner
            request: Book, target co-author and requested flags

        Returns:
            SetPermissionsResult with the stored (sanitized) flags

        Raises:
            NotFoundError: Book missing, or target is not a co-author
            PermissionDeniedError: Caller is not the owner
            FailedPreconditionError: Target is the owner
        """
        book_id = (request.book_id or "").strip()
        target_uid = (request.target_uid or "").strip()
        if not book_id or not target_uid or request.permissions is None:
            raise InvalidArgumentError("bookId, targetUid and permissions are required.")

        book = await self.permissions.require_book(book_id)
        role = ensure_book_access(book, caller.uid)
        if not role.is_owner:
            raise PermissionDeniedError(
                "Only owner can change collaborator permissions.",
                AppErrorCode.OWNER_ONLY,
            )
        if is_owner_target(book, target_uid):
            raise FailedPreconditionError(
                "Owner permissions cannot be edited here.",
                AppErrorCode.OWNER_IMMUTABLE,
            )
        self._require_co_author(book, target_uid)

        next_permissions = sanitize_member_permissions(request.permissions, MEMBER_PERMISSION_DEFAULTS)

        async with transaction(self.db):
            book = await self.permissions.require_book(book_id, for_update=True)
            member = self._require_co_author(book, target_uid)
            album = await get_album_for_update(self.db, book_id)

            current = sanitize_member_permissions(member.permission_flags, MEMBER_PERMISSION_DEFAULTS)

            now = self.clock()
            member.can_manage_media = next_permissions.can_manage_media
            member.can_invite_co_authors = next_permissions.can_invite_co_authors
            member.can_manage_pending_invites = next_permissions.can_manage_pending_invites
            member.can_remove_co_authors = next_permissions.can_remove_co_authors
            member.updated_at = now
            book.updated_at = now

            await self.access.apply_media_toggle(
                book,
                album,
                target_uid,
                before=current.can_manage_media,
                after=next_permissions.can_manage_media,
            )

        logger.info(
            f"Co-author permissions updated: book={book_id}, user={target_uid}, actor={caller.uid}"
        )
        return SetPermissionsResult(success=True, permissions=next_permissions)

    @staticmethod
    def _require_co_author(book, uid: str):
        member = book.get_member(uid)
        if member is None or member.role != MemberRole.CO_AUTHOR.value:
            raise NotFoundError(
                "Target user is not a co-author of this book.",
                AppErrorCode.COAUTHOR_NOT_FOUND,
            )
        return member


def get_membership_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> MembershipService:
    """FastAPI dependency building a MembershipService for the request."""
    return MembershipService(db, clock)
