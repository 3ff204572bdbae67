"""Permission service for book roles and co-author permission checks.

Permission Model:
- Owner: full access, passes every flag check
- Co-author: access to the book, plus whatever of the four flags is set:
    canManageMedia, canInviteCoAuthors, canManagePendingInvites,
    canRemoveCoAuthors
- Anyone else: no access

Stored or requested flags are always sanitized: a flag that is missing or
not a real boolean takes its default.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..errors import AppErrorCode, NotFoundError, PermissionDeniedError
from ..models.book import Book
from ..schemas.member import MemberPermissions, MemberRole

PERMISSION_KEYS = (
    "canManageMedia",
    "canInviteCoAuthors",
    "canManagePendingInvites",
    "canRemoveCoAuthors",
)

# Defaults applied when a co-author's flags are granted or edited
MEMBER_PERMISSION_DEFAULTS = MemberPermissions(
    can_manage_media=True,
    can_invite_co_authors=False,
    can_manage_pending_invites=False,
    can_remove_co_authors=False,
)

# Defaults applied when reading a co-author's stored flags
NO_PERMISSIONS = MemberPermissions(
    can_manage_media=False,
    can_invite_co_authors=False,
    can_manage_pending_invites=False,
    can_remove_co_authors=False,
)

OWNER_PERMISSIONS = MemberPermissions(
    can_manage_media=True,
    can_invite_co_authors=True,
    can_manage_pending_invites=True,
    can_remove_co_authors=True,
)


def _to_bool(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    return fallback


def sanitize_member_permissions(
    raw: Optional[Mapping[str, Any]],
    defaults: MemberPermissions = MEMBER_PERMISSION_DEFAULTS,
) -> MemberPermissions:
    """
    Build a fully populated permission set from a raw camelCase mapping.

    Args:
        raw: Requested or stored flags; may be partial or contain junk
        defaults: Value used for each flag that is missing or not a bool

    Returns:
        MemberPermissions with all four flags defined.
    """
    raw = raw or {}
    fallback = defaults.model_dump(by_alias=True)
    return MemberPermissions.model_validate(
        {key: _to_bool(raw.get(key), fallback[key]) for key in PERMISSION_KEYS}
    )


@dataclass(frozen=True)
class BookRole:
    """A caller's effective role and capabilities on one book."""

    owner_id: Optional[str]
    is_owner: bool
    is_co_author: bool
    permissions: MemberPermissions

    def has(self, permission_key: str) -> bool:
        return bool(self.permissions.model_dump(by_alias=True).get(permission_key))


def resolve_owner_id(book: Book) -> Optional[str]:
    """Owner from the book row, falling back to the member holding the Owner role."""
    if book.owner_id:
        return book.owner_id
    for member in book.members:
        if member.role == MemberRole.OWNER.value:
            return member.user_id
    return None


def resolve_book_role(book: Book, uid: str) -> BookRole:
    """Compute ``uid``'s role and permission set on ``book``."""
    owner_id = resolve_owner_id(book)
    member = book.get_member(uid)
    role = member.role if member else None

    is_owner = owner_id == uid or role == MemberRole.OWNER.value
    is_co_author = role == MemberRole.CO_AUTHOR.value

    if is_owner:
        permissions = OWNER_PERMISSIONS
    elif member is not None:
        permissions = sanitize_member_permissions(member.permission_flags, NO_PERMISSIONS)
    else:
        permissions = NO_PERMISSIONS

    return BookRole(
        owner_id=owner_id,
        is_owner=is_owner,
        is_co_author=is_co_author,
        permissions=permissions,
    )


def ensure_book_access(book: Book, uid: str) -> BookRole:
    """Resolve the caller's role, failing unless they are owner or co-author."""
    role = resolve_book_role(book, uid)
    if not role.is_owner and not role.is_co_author:
        raise PermissionDeniedError(
            "You do not have access to this book.",
            AppErrorCode.BOOK_ACCESS_DENIED,
        )
    return role


def ensure_permission(role: BookRole, permission_key: str) -> None:
    """Fail unless the role is owner or holds ``permission_key``."""
    if role.is_owner:
        return
    if not role.has(permission_key):
        raise PermissionDeniedError(
            "You do not have permission to perform this action.",
            AppErrorCode.PERMISSION_REQUIRED,
        )


def is_owner_target(book: Book, uid: str) -> bool:
    """True when ``uid`` is the book owner (by owner_id or Owner role)."""
    member = book.get_member(uid)
    return book.owner_id == uid or (member is not None and member.role == MemberRole.OWNER.value)


class PermissionService:
    """
    Loads books with their membership for role checks.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the PermissionService.

        Args:
            db: SQLAlchemy async database session
        """
        self.db = db

    async def get_book(self, book_id: str, for_update: bool = False) -> Optional[Book]:
        """
        Fetch a book with its members loaded.

        Args:
            book_id: The book's ID
            for_update: Lock the book row for the rest of the transaction

        Returns:
            Book with members loaded, or None if not found.
        """
        query = (
            select(Book)
            .where(Book.id == book_id)
            .options(selectinload(Book.members))
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=Book)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def require_book(self, book_id: str, for_update: bool = False) -> Book:
        book = await self.get_book(book_id, for_update=for_update)
        if book is None:
            raise NotFoundError("Book not found.", AppErrorCode.BOOK_NOT_FOUND)
        return book
