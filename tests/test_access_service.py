"""Tests for access list helpers and access propagation."""

from datetime import datetime

import pytest

from bookcollab.database import insert_ignoring_conflict, transaction
from bookcollab.models import Album, Book, User
from bookcollab.services import access_service
from bookcollab.services.access_service import (
    AccessPropagation,
    build_album_summary,
    build_book_summary,
    get_album_for_update,
    get_or_create_profile,
    remove_accessible_album,
    remove_accessible_book,
    upsert_accessible_album,
    upsert_accessible_book,
)
from bookcollab.services.permission_service import MEMBER_PERMISSION_DEFAULTS, PermissionService
from bookcollab.utils.timeutils import to_millis


class TestAccessibleBooks:
    """Tests for the accessible-books list helpers."""

    def test_upsert_appends_new_book(self):
        summary = {"bookId": "b1", "title": "Summer Trip", "coverImage": None}
        assert upsert_accessible_book([], summary) == [summary]

    def test_upsert_merges_existing_entry(self):
        entries = [{"bookId": "b1", "title": "Old", "coverImage": "a.jpg", "pinned": True}]
        result = upsert_accessible_book(entries, {"bookId": "b1", "title": "New", "coverImage": None})
        assert result == [{"bookId": "b1", "title": "New", "coverImage": None, "pinned": True}]

    def test_upsert_normalizes_legacy_string_entries(self):
        """Plain id strings from older profiles become summary dicts."""
        result = upsert_accessible_book(["b0"], {"bookId": "b1", "title": "T", "coverImage": None})
        assert result[0] == {"bookId": "b0", "title": "Untitled Book", "coverImage": None}
        assert result[1]["bookId"] == "b1"

    def test_upsert_does_not_mutate_input(self):
        entries = [{"bookId": "b1", "title": "Old", "coverImage": None}]
        upsert_accessible_book(entries, {"bookId": "b1", "title": "New", "coverImage": None})
        assert entries[0]["title"] == "Old"

    def test_upsert_on_non_list(self):
        summary = {"bookId": "b1", "title": "T", "coverImage": None}
        assert upsert_accessible_book(None, summary) == [summary]

    def test_remove_handles_strings_and_dicts(self):
        entries = ["b1", {"bookId": "b1"}, {"bookId": "b2"}, "b3"]
        assert remove_accessible_book(entries, "b1") == [{"bookId": "b2"}, "b3"]

    def test_remove_on_non_list(self):
        assert remove_accessible_book(None, "b1") == []


class TestAccessibleAlbums:
    """Tests for the accessible-albums list helpers."""

    def test_upsert_deduplicates_by_id(self):
        entries = [{"id": "b1", "name": "Old", "mediaCount": 1}, {"id": "b2"}]
        result = upsert_accessible_album(entries, {"id": "b1", "name": "New", "mediaCount": 4})
        assert result == [{"id": "b1", "name": "New", "mediaCount": 4}, {"id": "b2"}]

    def test_remove(self):
        entries = [{"id": "b1"}, {"id": "b2"}]
        assert remove_accessible_album(entries, "b1") == [{"id": "b2"}]


class TestSummaries:
    """Tests for book and album summaries."""

    def test_book_summary_defaults_title(self):
        book = Book(id="b1", title=None, cover_image_url=None)
        assert build_book_summary(book) == {"bookId": "b1", "title": "Untitled Book", "coverImage": None}

    def test_album_summary_from_album(self):
        now = datetime(2026, 3, 1, 9, 0, 0)
        book = Book(id="b1", title="Summer Trip", cover_image_url="book.jpg")
        album = Album(id="b1", name="Trip album", cover_image="album.jpg", media_count=7)
        assert build_album_summary(book, album, now) == {
            "id": "b1",
            "coverImage": "album.jpg",
            "type": "book",
            "name": "Trip album",
            "mediaCount": 7,
            "updatedAt": to_millis(now),
        }

    def test_album_summary_falls_back_to_book(self):
        """A missing album row borrows the book's title and cover."""
        book = Book(id="b1", title="Summer Trip", cover_image_url="book.jpg")
        summary = build_album_summary(book, None, datetime(2026, 3, 1))
        assert summary["name"] == "Summer Trip"
        assert summary["coverImage"] == "book.jpg"
        assert summary["mediaCount"] == 0

    def test_album_summary_untitled(self):
        book = Book(id="b1", title=None, cover_image_url=None)
        album = Album(id="b1", name=None, cover_image=None, media_count=None)
        summary = build_album_summary(book, album, datetime(2026, 3, 1))
        assert summary["name"] == "Untitled album"
        assert summary["mediaCount"] == 0


@pytest.mark.asyncio
class TestAccessPropagation:
    """Tests for grant, revoke and media toggle against the database."""

    async def _load(self, db_session):
        book = await PermissionService(db_session).require_book("b1", for_update=True)
        album = await get_album_for_update(db_session, "b1")
        return book, album

    async def test_grant_creates_profile_and_shares_album(self, db_session, world, state, clock):
        """Granting to a user without a profile creates one."""
        access = AccessPropagation(db_session, clock)
        async with transaction(db_session):
            book, album = await self._load(db_session)
            await access.grant_co_author(book, album, "u9", MEMBER_PERMISSION_DEFAULTS)

        profile = await state.profile("u9")
        assert profile is not None
        assert [entry["bookId"] for entry in profile.accessible_books] == ["b1"]
        assert [entry["id"] for entry in profile.accessible_albums] == ["b1"]
        assert (await state.album("b1")).shared_with == ["u9"]

        book = await state.book("b1")
        member = book.get_member("u9")
        assert member.role == "Co-author"
        assert member.permission_flags == MEMBER_PERMISSION_DEFAULTS.model_dump(by_alias=True)

    async def test_grant_without_media(self, db_session, world, state, clock):
        access = AccessPropagation(db_session, clock)
        permissions = MEMBER_PERMISSION_DEFAULTS.model_copy(update={"can_manage_media": False})
        async with transaction(db_session):
            book, album = await self._load(db_session)
            await access.grant_co_author(book, album, "u2", permissions)

        profile = await state.profile("u2")
        assert [entry["bookId"] for entry in profile.accessible_books] == ["b1"]
        assert profile.accessible_albums == []
        assert (await state.album("b1")).shared_with == []

    async def test_revoke_strips_everything(self, db_session, world, state, clock):
        access = AccessPropagation(db_session, clock)
        async with transaction(db_session):
            book, album = await self._load(db_session)
            await access.grant_co_author(book, album, "u2", MEMBER_PERMISSION_DEFAULTS)

        async with transaction(db_session):
            book, album = await self._load(db_session)
            removed = await access.revoke_co_author(book, album, "u2")

        assert removed is True
        assert (await state.book("b1")).get_member("u2") is None
        profile = await state.profile("u2")
        assert profile.accessible_books == []
        assert profile.accessible_albums == []
        assert (await state.album("b1")).shared_with == []

    async def test_revoke_non_member(self, db_session, world, state, clock):
        access = AccessPropagation(db_session, clock)
        async with transaction(db_session):
            book, album = await self._load(db_session)
            removed = await access.revoke_co_author(book, album, "u3")
        assert removed is False
        assert (await state.book("b1")).get_member("u1") is not None

    async def test_media_toggle_without_change_is_noop(self, db_session, world, state, clock):
        access = AccessPropagation(db_session, clock)
        async with transaction(db_session):
            book, album = await self._load(db_session)
            await access.apply_media_toggle(book, album, "u2", before=False, after=False)
        assert (await state.album("b1")).shared_with == []
        assert (await state.profile("u2")).accessible_albums == []


@pytest.mark.asyncio
class TestProfileCreation:
    """Tests for creating profiles on first use."""

    async def test_insert_ignoring_conflict_reports_creation(self, db_session):
        values = {"id": "u9", "accessible_books": [], "accessible_albums": []}
        async with transaction(db_session):
            assert await insert_ignoring_conflict(db_session, User, values) is True
            assert await insert_ignoring_conflict(db_session, User, values) is False

    async def test_creates_empty_profile(self, db_session, state):
        async with transaction(db_session):
            profile = await get_or_create_profile(db_session, "u9")
            assert profile.pending_invite_count == 0

        stored = await state.profile("u9")
        assert stored.accessible_books == []
        assert stored.accessible_albums == []
        assert stored.email_verified is False

    async def test_profile_created_concurrently_is_reused(self, monkeypatch, db_session, session_factory):
        """A profile committed between our lookup and insert is locked and returned."""
        real_insert = access_service.insert_ignoring_conflict

        async def insert_after_competitor(db, model, values):
            async with session_factory() as other:
                other.add(User(id=values["id"], pending_invite_count=2, accessible_books=[], accessible_albums=[]))
                await other.commit()
            return await real_insert(db, model, values)

        monkeypatch.setattr(access_service, "insert_ignoring_conflict", insert_after_competitor)

        async with transaction(db_session):
            profile = await get_or_create_profile(db_session, "u9")

        assert profile.id == "u9"
        assert profile.pending_invite_count == 2
