"""Co-author invitation lifecycle.

States: pending, accepted, declined, cancelled, expired. Only ``pending`` can
be re-entered, either by a resend of a live invitation or by a new cycle on
the same keyed row once the previous cycle ended.

Every status change runs in one transaction together with its notification
and counter update (and, on acceptance, the access propagation), with the
invitation and notification rows locked. Lazy expiry sweeps run before the
transition and never fail the caller's request.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, settings as default_settings
from ..database import get_db, transaction
from ..errors import (
    AlreadyExistsError,
    AppErrorCode,
    CollabError,
    FailedPreconditionError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    ResourceExhaustedError,
)
from ..models.invitation import Invitation
from ..models.user import User
from ..schemas.invitation import (
    InviteRequest,
    InviteResult,
    InviteStatus,
    ManageAction,
    ManageRequest,
    ManageResult,
    PendingInvitesRequest,
    PendingInvitesResult,
    RespondAction,
    RespondRequest,
    RespondResult,
    TERMINAL_STATUSES,
)
from ..schemas.member import MemberRole
from ..schemas.user import CallerIdentity
from ..utils.pagination import clamp_page_size
from ..utils.timeutils import Clock, get_clock, minutes_ceil, to_millis, utcnow
from .access_service import AccessPropagation, get_album_for_update
from .expiry_service import ExpiryService
from .identity_service import IdentityProvider, IdentityService, get_identity_provider
from .invitation_store import InvitationStore, build_invite_id, format_invite
from .notification_store import NotificationStore
from .permission_service import (
    MEMBER_PERMISSION_DEFAULTS,
    PermissionService,
    ensure_book_access,
    ensure_permission,
    sanitize_member_permissions,
)

logger = logging.getLogger(__name__)


def count_co_authors(book) -> int:
    return sum(1 for member in book.members if member.role == MemberRole.CO_AUTHOR.value)


class InvitationService:
    """
    Invitation state machine: invite/resend, respond, manage and listing.

    Attributes:
        db: SQLAlchemy async database session
        identity: Email verification checks
        settings: Application settings (TTL, cooldown, caps, page sizes)
        clock: Source of the current time
    """

    def __init__(
        self,
        db: AsyncSession,
        identity: IdentityService,
        settings: Optional[Settings] = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.identity = identity
        self.settings = settings or default_settings
        self.clock = clock
        self.permissions = PermissionService(db)
        self.invites = InvitationStore(db)
        self.notifications = NotificationStore(db)
        self.expiry = ExpiryService(db, self.settings, clock)
        self.access = AccessPropagation(db, clock)

    @property
    def invite_ttl(self) -> timedelta:
        return timedelta(seconds=self.settings.invite_ttl_seconds)

    def _check_resend_cooldown(self, invite: Invitation, now: datetime, message: str) -> None:
        """
        Fail if the invitation was (re)sent or updated too recently.

        The cooldown runs from the latest of resent_at, updated_at and
        created_at; the remaining wait is reported in whole minutes, rounded up.
        """
        stamps = [value for value in (invite.resent_at, invite.updated_at, invite.created_at) if value]
        if not stamps:
            return
        elapsed = now - max(stamps)
        cooldown = timedelta(seconds=self.settings.resend_cooldown_seconds)
        if elapsed < cooldown:
            wait_minutes = minutes_ceil(cooldown - elapsed)
            raise FailedPreconditionError(
                message.format(minutes=wait_minutes),
                AppErrorCode.RESEND_COOLDOWN,
            )

    async def _check_capacity(self, book_id: str, invitee_uid: str, active_co_authors: int) -> None:
        """Admission checks for a new invitation cycle. Advisory: read outside the write."""
        pending_for_recipient = await self.invites.count_pending_for_recipient(invitee_uid)
        if pending_for_recipient >= self.settings.max_pending_per_recipient:
            raise ResourceExhaustedError(
                "This user has too many pending invites right now.",
                AppErrorCode.RECIPIENT_PENDING_LIMIT,
            )

        pending_for_book = await self.invites.count_pending_for_book(book_id)
        max_co_authors = self.settings.max_coauthors_per_book
        if active_co_authors + pending_for_book >= max_co_authors:
            raise ResourceExhaustedError(
                f"This book can have up to {max_co_authors} total co-author slots "
                f"(active + pending invites).",
                AppErrorCode.BOOK_SLOT_LIMIT,
            )
        if pending_for_book >= self.settings.max_pending_per_book:
            raise ResourceExhaustedError(
                "This book already has too many pending co-author invites.",
                AppErrorCode.BOOK_PENDING_LIMIT,
            )

    async def _resolve_owner_name(self, caller: CallerIdentity, owner_id: str, caller_is_owner: bool) -> str:
        if caller_is_owner:
            return caller.name or ""
        owner_profile = await self.db.get(User, owner_id)
        if owner_profile is not None and owner_profile.display_name:
            return owner_profile.display_name
        return caller.name or "Book owner"

    # ========================================================================
    # Invite / resend
    # ========================================================================

    async def invite(self, caller: CallerIdentity, request: InviteRequest) -> InviteResult:
        """
        Invite a user to co-author a book, or resend a live invitation.

        Args:
            caller: Authenticated caller (owner or co-author with
                canInviteCoAuthors)
            request: Book, invitee and the permissions offered

        Returns:
            InviteResult with status ``created`` or ``resent``.

        Raises:
            CollabError: Validation, permission, precondition, capacity or
                internal failures
        """
        book_id = (request.book_id or "").strip()
        uid = (request.uid or "").strip()
        if not book_id or not uid:
            raise InvalidArgumentError("bookId and uid are required.")
        if uid == caller.uid:
            raise InvalidArgumentError("You cannot invite yourself.", AppErrorCode.SELF_INVITE)

        await self.identity.require_verified_caller(caller.uid)

        try:
            return await self._invite(caller, book_id, uid, request)
        except CollabError:
            raise
        except Exception as e:
            logger.error(
                f"Invite failed: actor={caller.uid}, book={book_id}, invitee={uid}, error={e}",
                exc_info=True,
            )
            raise InternalError(error_code=AppErrorCode.INVITATION_CREATE_FAILED)

    async def _invite(
        self,
        caller: CallerIdentity,
        book_id: str,
        uid: str,
        request: InviteRequest,
    ) -> InviteResult:
        await self.expiry.sweep_book_safely(book_id)
        await self.expiry.sweep_recipient_safely(uid)

        book = await self.permissions.require_book(book_id)
        actor_role = ensure_book_access(book, caller.uid)
        ensure_permission(actor_role, "canInviteCoAuthors")

        owner_id = actor_role.owner_id
        if not owner_id:
            raise FailedPreconditionError(
                "Book owner metadata is missing. Please refresh and try again.",
                AppErrorCode.OWNER_METADATA_MISSING,
            )
        if not book.owner_id:
            async with transaction(self.db):
                book.owner_id = owner_id
                book.updated_at = self.clock()
            logger.info(f"Backfilled book owner: book={book_id}, owner={owner_id}")

        granted_can_invite = bool(request.can_invite_co_authors) if actor_role.is_owner else False
        can_manage_media = bool(request.can_manage_media)
        active_co_authors = count_co_authors(book)
        book_title = book.title or "Untitled Book"

        if book.get_member(uid) is not None:
            raise AlreadyExistsError(
                "User is already a member of this book.",
                AppErrorCode.ALREADY_MEMBER,
            )

        invitee = await self.identity.require_verified_invitee(uid)

        invite_id = build_invite_id(book_id, uid)
        existing = await self.invites.get(invite_id)
        now = self.clock()
        expires_at = now + self.invite_ttl

        if existing is not None and existing.status == InviteStatus.PENDING.value and not existing.is_expired(now):
            self._check_resend_cooldown(
                existing, now, "Please wait {minutes} minute(s) before resending this invite."
            )
        else:
            await self._check_capacity(book_id, uid, active_co_authors)

        owner_name = await self._resolve_owner_name(caller, owner_id, actor_role.is_owner)

        async with transaction(self.db):
            invite = await self.invites.get_for_update(invite_id)
            created = False
            if invite is None:
                # A concurrent first invite may win the insert; its row then
                # decides below like any other existing row.
                created = await self.invites.create_if_absent(invite_id, book_id, owner_id, uid, now)
                invite = await self.invites.get_for_update(invite_id)

            is_resend = (
                not created
                and invite.status == InviteStatus.PENDING.value
                and not invite.is_expired(now)
            )

            if is_resend:
                self._check_resend_cooldown(
                    invite, now, "Please wait {minutes} minute(s) before resending this invite."
                )
                invite.resent_at = now
            elif not created:
                # New cycle on the same keyed row
                invite.responded_at = None
                invite.resent_at = None

            invite.book_id = book_id
            invite.owner_id = owner_id
            invite.invitee_uid = uid
            invite.invitee_email = (invitee.email or "").lower()
            invite.owner_name = owner_name or "Book owner"
            invite.book_title = book_title
            invite.can_manage_media = can_manage_media
            invite.can_invite_co_authors = granted_can_invite
            invite.status = InviteStatus.PENDING.value
            invite.updated_at = now
            invite.expires_at = expires_at

            await self.notifications.upsert_invite_notification(invite, expires_at, now)

        logger.info(
            f"Invitation {'resent' if is_resend else 'created'}: id={invite_id}, "
            f"actor={caller.uid}"
        )

        return InviteResult(
            success=True,
            invite_id=invite_id,
            status="resent" if is_resend else "created",
            expires_at=to_millis(expires_at),
        )

    # ========================================================================
    # Respond
    # ========================================================================

    async def respond(self, caller: CallerIdentity, request: RespondRequest) -> RespondResult:
        """
        Accept or decline an invitation as its invitee.

        Expired invitations are driven to ``expired`` and reported as such;
        invitations already in a terminal state report that state.
        """
        invite_id = (request.invite_id or "").strip()
        if not invite_id:
            raise InvalidArgumentError("inviteId and a valid action are required.")

        invite = await self.invites.get(invite_id)
        if invite is None:
            raise NotFoundError("Invite not found.", AppErrorCode.INVITE_NOT_FOUND)
        if invite.invitee_uid != caller.uid:
            raise PermissionDeniedError(
                "You do not have permission to respond to this invite.",
                AppErrorCode.NOT_INVITEE,
            )
        book_id = invite.book_id

        await self.expiry.sweep_recipient_safely(caller.uid)

        invite = await self.invites.get(invite_id)
        if invite is None:
            raise NotFoundError("Invite not found.", AppErrorCode.INVITE_NOT_FOUND)

        now = self.clock()
        if invite.status == InviteStatus.EXPIRED.value or (
            invite.status == InviteStatus.PENDING.value and invite.is_expired(now)
        ):
            await self.expiry.expire_invite(invite_id)
            return RespondResult(success=True, status=InviteStatus.EXPIRED.value)

        if InviteStatus(invite.status) in TERMINAL_STATUSES:
            return RespondResult(success=True, status=invite.status)

        if request.action == RespondAction.DECLINE:
            status = await self._decline(caller.uid, invite_id)
        else:
            status = await self._accept(caller.uid, invite_id, book_id)

        logger.info(f"Invitation {status}: id={invite_id}, invitee={caller.uid}")
        return RespondResult(success=True, status=status)

    async def _decline(self, uid: str, invite_id: str) -> str:
        async with transaction(self.db):
            invite = await self.invites.get_for_update(invite_id)
            if invite is None:
                raise NotFoundError("Invite not found.", AppErrorCode.INVITE_NOT_FOUND)
            if invite.status != InviteStatus.PENDING.value:
                return invite.status

            now = self.clock()
            invite.status = InviteStatus.DECLINED.value
            invite.responded_at = now
            invite.updated_at = now

            await self.notifications.delete_invite_notification(uid, invite_id)
        return InviteStatus.DECLINED.value

    async def _accept(self, uid: str, invite_id: str, book_id: str) -> str:
        async with transaction(self.db):
            invite = await self.invites.get_for_update(invite_id)
            book = await self.permissions.get_book(book_id, for_update=True)
            if invite is None or book is None:
                raise NotFoundError(
                    "Invite or book no longer exists.",
                    AppErrorCode.BOOK_NOT_FOUND if invite is not None else AppErrorCode.INVITE_NOT_FOUND,
                )
            if invite.status != InviteStatus.PENDING.value:
                return invite.status

            now = self.clock()
            if invite.is_expired(now):
                invite.status = InviteStatus.EXPIRED.value
                invite.updated_at = now
                invite.responded_at = now
                await self.notifications.delete_invite_notification(uid, invite_id)
                return InviteStatus.EXPIRED.value

            member = book.get_member(uid)
            max_co_authors = self.settings.max_coauthors_per_book
            already_co_author = member is not None and member.role == MemberRole.CO_AUTHOR.value
            if not already_co_author and count_co_authors(book) >= max_co_authors:
                raise ResourceExhaustedError(
                    f"This book already has {max_co_authors} co-authors.",
                    AppErrorCode.BOOK_COAUTHOR_LIMIT,
                )

            granted = sanitize_member_permissions(
                {
                    **MEMBER_PERMISSION_DEFAULTS.model_dump(by_alias=True),
                    "canManageMedia": bool(invite.can_manage_media),
                    "canInviteCoAuthors": bool(invite.can_invite_co_authors),
                }
            )
            album = await get_album_for_update(self.db, book_id)
            await self.access.grant_co_author(book, album, uid, granted)

            invite.status = InviteStatus.ACCEPTED.value
            invite.responded_at = now
            invite.updated_at = now

            await self.notifications.delete_invite_notification(uid, invite_id)
        return InviteStatus.ACCEPTED.value

    # ========================================================================
    # Manage (resend / cancel)
    # ========================================================================

    async def manage(self, caller: CallerIdentity, request: ManageRequest) -> ManageResult:
        """
        Resend or cancel a pending invitation on behalf of the book.

        Requires a verified caller with access to the book and
        canManagePendingInvites.
        """
        await self.identity.require_verified_caller(caller.uid)

        invite_id = (request.invite_id or "").strip()
        if not invite_id:
            raise InvalidArgumentError("inviteId and valid action are required.")

        invite = await self.invites.get(invite_id)
        if invite is None:
            raise NotFoundError("Invite not found.", AppErrorCode.INVITE_NOT_FOUND)
        book_id = invite.book_id
        invitee_uid = invite.invitee_uid

        book = await self.permissions.require_book(book_id)
        role = ensure_book_access(book, caller.uid)
        ensure_permission(role, "canManagePendingInvites")

        await self.expiry.sweep_book_safely(book_id)
        await self.expiry.sweep_recipient_safely(invitee_uid)

        if request.action == ManageAction.CANCEL:
            result = await self._cancel(invite_id, invitee_uid)
        else:
            result = await self._resend(invite_id, invitee_uid)

        logger.info(f"Invitation {result.status}: id={invite_id}, actor={caller.uid}")
        return result

    async def _cancel(self, invite_id: str, invitee_uid: str) -> ManageResult:
        async with transaction(self.db):
            invite = await self.invites.get_for_update(invite_id)
            if invite is None:
                raise NotFoundError("Invite no longer exists.", AppErrorCode.INVITE_NOT_FOUND)
            if invite.status == InviteStatus.CANCELLED.value:
                return ManageResult(success=True, status=InviteStatus.CANCELLED.value)
            if invite.status != InviteStatus.PENDING.value:
                raise FailedPreconditionError(
                    "Only pending invites can be cancelled.",
                    AppErrorCode.INVITE_NOT_PENDING,
                )

            now = self.clock()
            invite.status = InviteStatus.CANCELLED.value
            invite.updated_at = now
            invite.responded_at = now

            await self.notifications.delete_invite_notification(invitee_uid, invite_id)
        return ManageResult(success=True, status=InviteStatus.CANCELLED.value)

    async def _resend(self, invite_id: str, invitee_uid: str) -> ManageResult:
        async with transaction(self.db):
            invite = await self.invites.get_for_update(invite_id)
            if invite is None:
                raise NotFoundError("Invite no longer exists.", AppErrorCode.INVITE_NOT_FOUND)

            now = self.clock()
            if invite.status != InviteStatus.PENDING.value or invite.is_expired(now):
                raise FailedPreconditionError(
                    "Only pending invites can be resent.",
                    AppErrorCode.INVITE_NOT_PENDING,
                )
            self._check_resend_cooldown(invite, now, "Please wait {minutes} minute(s) before resending.")

            next_expiry = now + self.invite_ttl
            invite.updated_at = now
            invite.resent_at = now
            invite.expires_at = next_expiry

            await self.notifications.upsert_invite_notification(invite, next_expiry, now)

        return ManageResult(
            success=True,
            status="resent",
            expires_at=to_millis(next_expiry),
        )

    # ========================================================================
    # Listing
    # ========================================================================

    async def list_pending_invites(
        self,
        caller: CallerIdentity,
        request: PendingInvitesRequest,
    ) -> PendingInvitesResult:
        """
        Page through a book's pending invitations, newest first.

        Requires access to the book and canManagePendingInvites. Expired
        invitations are swept first so they never appear as pending.
        """
        book_id = (request.book_id or "").strip()
        if not book_id:
            raise InvalidArgumentError("bookId is required.")

        book = await self.permissions.require_book(book_id)
        role = ensure_book_access(book, caller.uid)
        ensure_permission(role, "canManagePendingInvites")

        await self.expiry.sweep_book_safely(book_id)

        size = clamp_page_size(
            request.page_size,
            self.settings.pending_invites_page_size,
            self.settings.max_page_size,
        )
        rows = await self.invites.list_pending_for_book(book_id, size, request.cursor_id)
        next_cursor = rows[-1].id if len(rows) == size else None

        return PendingInvitesResult(
            success=True,
            invites=[format_invite(row) for row in rows],
            next_cursor=next_cursor,
        )


def get_invitation_service(
    db: AsyncSession = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
    clock: Clock = Depends(get_clock),
) -> InvitationService:
    """FastAPI dependency building an InvitationService for the request."""
    return InvitationService(db, IdentityService(db, provider), clock=clock)
