"""Access propagation for co-author grants, revocations and media toggles.

Keeps four records in step: the book's membership rows, the user's
accessible book and album lists, and the shared album's ``shared_with``
list. Every method runs inside the caller's transaction and never commits.

Access lists are JSON columns, so they are always replaced with a new list
rather than mutated in place.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import insert_ignoring_conflict
from ..models.album import Album
from ..models.book import Book
from ..models.book_member import BookMember
from ..models.user import User
from ..schemas.member import MemberPermissions, MemberRole
from ..utils.timeutils import Clock, to_millis, utcnow

logger = logging.getLogger(__name__)

UNTITLED_BOOK = "Untitled Book"
UNTITLED_ALBUM = "Untitled album"


# ============================================================================
# Access list helpers
# ============================================================================


def upsert_accessible_book(entries: Any, summary: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Insert or merge a book summary into an accessible-books list.

    Older profiles stored plain book id strings; those are normalized to
    summary dicts first.
    """
    normalized: List[Any] = list(entries) if isinstance(entries, list) else []
    normalized = [
        {"bookId": entry, "title": UNTITLED_BOOK, "coverImage": None}
        if isinstance(entry, str)
        else dict(entry)
        for entry in normalized
    ]

    for index, entry in enumerate(normalized):
        if entry.get("bookId") == summary["bookId"]:
            normalized[index] = {**entry, **summary}
            return normalized

    normalized.append(dict(summary))
    return normalized


def remove_accessible_book(entries: Any, book_id: str) -> List[Any]:
    if not isinstance(entries, list):
        return []
    return [
        entry
        for entry in entries
        if (entry if isinstance(entry, str) else (entry or {}).get("bookId")) != book_id
    ]


def upsert_accessible_album(entries: Any, summary: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Insert or merge an album summary, de-duplicated by ``id``."""
    normalized = [dict(entry) for entry in entries if isinstance(entry, dict)] if isinstance(entries, list) else []

    for index, entry in enumerate(normalized):
        if entry.get("id") == summary["id"]:
            normalized[index] = {**entry, **summary}
            return normalized

    normalized.append(dict(summary))
    return normalized


def remove_accessible_album(entries: Any, album_id: str) -> List[Any]:
    if not isinstance(entries, list):
        return []
    return [entry for entry in entries if not (isinstance(entry, dict) and entry.get("id") == album_id)]


def build_book_summary(book: Book) -> Dict[str, Any]:
    return {
        "bookId": book.id,
        "title": book.title or UNTITLED_BOOK,
        "coverImage": book.cover_image_url or None,
    }


def build_album_summary(book: Book, album: Optional[Album], now) -> Dict[str, Any]:
    """
    Summary of a book's shared album for a user's accessible-albums list.

    Falls back to the book's title and cover when the album row is missing
    or incomplete.
    """
    return {
        "id": book.id,
        "coverImage": (album.cover_image if album else None) or book.cover_image_url or None,
        "type": "book",
        "name": (album.name if album else None) or book.title or UNTITLED_ALBUM,
        "mediaCount": int((album.media_count if album else 0) or 0),
        "updatedAt": to_millis(now),
    }


def _with_uid(shared_with: Any, uid: str) -> List[str]:
    current = list(shared_with) if isinstance(shared_with, list) else []
    if uid not in current:
        current.append(uid)
    return current


def _without_uid(shared_with: Any, uid: str) -> List[str]:
    current = list(shared_with) if isinstance(shared_with, list) else []
    return [value for value in current if value != uid]


# ============================================================================
# Profiles
# ============================================================================


async def get_or_create_profile(db: AsyncSession, user_id: str) -> User:
    """
    Fetch and lock a user profile, creating an empty one when missing.

    Creation is an insert that ignores a conflicting row, so two requests
    creating the same profile both end up locking the single surviving row.
    """
    profile = await get_profile_for_update(db, user_id)
    if profile is None:
        now = utcnow()
        await insert_ignoring_conflict(
            db,
            User,
            {
                "id": user_id,
                "pending_invite_count": 0,
                "accessible_books": [],
                "accessible_albums": [],
                "created_at": now,
                "updated_at": now,
            },
        )
        profile = await get_profile_for_update(db, user_id)
    return profile


async def get_profile_for_update(db: AsyncSession, user_id: str) -> Optional[User]:
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_album_for_update(db: AsyncSession, book_id: str) -> Optional[Album]:
    result = await db.execute(
        select(Album)
        .where(Album.id == book_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


# ============================================================================
# Propagation
# ============================================================================


class AccessPropagation:
    """
    Applies membership changes across book, profile and album records.

    Attributes:
        db: SQLAlchemy async database session
        clock: Source of the current time
    """

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    async def grant_co_author(
        self,
        book: Book,
        album: Optional[Album],
        uid: str,
        permissions: MemberPermissions,
    ) -> BookMember:
        """
        Make ``uid`` a co-author of ``book`` with the given permissions.

        Args:
            book: Locked book row with members loaded
            album: Locked album row for the book, or None if it has none
            uid: User being granted access
            permissions: Fully sanitized permission flags

        Returns:
            The co-author's membership row.
        """
        now = self.clock()
        member = book.get_member(uid)
        if member is None:
            member = BookMember(user_id=uid, created_at=now)
            book.members.append(member)

        member.role = MemberRole.CO_AUTHOR.value
        member.can_manage_media = permissions.can_manage_media
        member.can_invite_co_authors = permissions.can_invite_co_authors
        member.can_manage_pending_invites = permissions.can_manage_pending_invites
        member.can_remove_co_authors = permissions.can_remove_co_authors
        member.updated_at = now
        book.updated_at = now

        profile = await get_or_create_profile(self.db, uid)
        profile.accessible_books = upsert_accessible_book(
            profile.accessible_books, build_book_summary(book)
        )

        if permissions.can_manage_media:
            profile.accessible_albums = upsert_accessible_album(
                profile.accessible_albums, build_album_summary(book, album, now)
            )
            if album is not None:
                album.shared_with = _with_uid(album.shared_with, uid)
                album.updated_at = now

        profile.updated_at = now

        logger.info(
            f"Co-author access granted: book={book.id}, user={uid}, "
            f"media={permissions.can_manage_media}"
        )
        return member

    async def revoke_co_author(self, book: Book, album: Optional[Album], uid: str) -> bool:
        """
        Remove every trace of ``uid``'s access to ``book``.

        Returns:
            True if a membership row was removed.
        """
        now = self.clock()
        member = book.get_member(uid)
        removed = member is not None
        if removed:
            book.members.remove(member)
            book.updated_at = now

        profile = await get_profile_for_update(self.db, uid)
        if profile is not None:
            profile.accessible_books = remove_accessible_book(profile.accessible_books, book.id)
            profile.accessible_albums = remove_accessible_album(profile.accessible_albums, book.id)
            profile.updated_at = now

        if album is not None:
            album.shared_with = _without_uid(album.shared_with, uid)
            album.updated_at = now

        logger.info(f"Co-author access revoked: book={book.id}, user={uid}, member_removed={removed}")
        return removed

    async def apply_media_toggle(
        self,
        book: Book,
        album: Optional[Album],
        uid: str,
        before: bool,
        after: bool,
    ) -> None:
        """
        Mirror a change of ``canManageMedia`` onto album access.

        Turning the flag on shares the album and lists it on the user's
        profile; turning it off undoes both. No change means no writes.
        """
        turned_on = not before and after
        turned_off = before and not after
        if not turned_on and not turned_off:
            return

        now = self.clock()
        if album is not None:
            if turned_on:
                album.shared_with = _with_uid(album.shared_with, uid)
            else:
                album.shared_with = _without_uid(album.shared_with, uid)
            album.updated_at = now

        profile = await get_profile_for_update(self.db, uid)
        if profile is not None:
            if turned_on:
                profile.accessible_albums = upsert_accessible_album(
                    profile.accessible_albums, build_album_summary(book, album, now)
                )
            else:
                profile.accessible_albums = remove_accessible_album(profile.accessible_albums, book.id)
            profile.updated_at = now
