"""Shared pytest fixtures for bookcollab tests."""

import os
from datetime import datetime, timedelta
from typing import Optional

# Point the application engine at SQLite BEFORE importing bookcollab
os.environ.setdefault("DB_URL", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import selectinload
from sqlalchemy.pool import StaticPool

from bookcollab.config import Settings
from bookcollab.database import Base, get_db
from bookcollab.main import app
from bookcollab.models import Account, Album, Book, BookMember, Invitation, Notification, User
from bookcollab.schemas.user import CallerIdentity
from bookcollab.services.auth_service import create_access_token
from bookcollab.services.identity_service import DatabaseIdentityProvider, IdentityService
from bookcollab.services.invitation_service import InvitationService
from bookcollab.services.membership_service import MembershipService
from bookcollab.services.notification_service import NotificationService
from bookcollab.utils.timeutils import get_clock

# Use in-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite://"

START_TIME = datetime(2026, 3, 1, 9, 0, 0)


class FakeClock:
    """Controllable clock injected wherever the services read the time."""

    def __init__(self, now: datetime = START_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class StateReader:
    """Fresh reads of persisted state, bypassing anything cached in the session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def invite(self, invite_id: str) -> Optional[Invitation]:
        result = await self.db.execute(
            select(Invitation)
            .where(Invitation.id == invite_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def notification(self, invite_id: str) -> Optional[Notification]:
        result = await self.db.execute(
            select(Notification)
            .where(Notification.id == invite_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def notification_ids(self, user_id: str) -> list[str]:
        result = await self.db.execute(
            select(Notification.id).where(Notification.user_id == user_id).order_by(Notification.id)
        )
        return [row[0] for row in result.all()]

    async def pending_count(self, user_id: str) -> Optional[int]:
        result = await self.db.execute(
            select(User.pending_invite_count).where(User.id == user_id)
        )
        return result.scalar()

    async def profile(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def book(self, book_id: str) -> Optional[Book]:
        result = await self.db.execute(
            select(Book)
            .where(Book.id == book_id)
            .options(selectinload(Book.members))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def album(self, book_id: str) -> Optional[Album]:
        result = await self.db.execute(
            select(Album).where(Album.id == book_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture
async def engine():
    """Create a test database engine with in-memory SQLite."""
    engine = create_async_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    """Session factory configured like the application's."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a database session for a test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state(db_session) -> StateReader:
    return StateReader(db_session)


@pytest_asyncio.fixture
async def client(session_factory, clock):
    """
    Async HTTP client against the app, with database and clock overridden.

    Each request gets its own session, committed on success like get_db.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_account(db_session):
    """Factory creating an identity account (and, by default, an empty profile)."""

    async def _make_account(
        uid: str,
        verified: bool = True,
        display_name: Optional[str] = None,
        with_profile: bool = True,
    ) -> None:
        db_session.add(
            Account(
                id=uid,
                email=f"{uid.upper()}@Example.com",
                email_verified=verified,
                display_name=display_name,
            )
        )
        if with_profile:
            db_session.add(
                User(
                    id=uid,
                    email=f"{uid}@example.com",
                    display_name=display_name,
                    email_verified=False,
                    pending_invite_count=0,
                    accessible_books=[],
                    accessible_albums=[],
                )
            )
        await db_session.commit()

    return _make_account


@pytest.fixture
def make_book(db_session):
    """Factory creating a book with an Owner member row and optionally an album."""

    async def _make_book(
        book_id: str,
        owner_uid: Optional[str],
        title: Optional[str] = "Summer Trip",
        owner_on_row: bool = True,
        with_album: bool = True,
    ) -> None:
        book = Book(
            id=book_id,
            owner_id=owner_uid if owner_on_row else None,
            title=title,
            cover_image_url=f"https://cdn.example.com/{book_id}.jpg",
        )
        if owner_uid:
            book.members.append(_member(owner_uid, "Owner", True, True, True, True))
        db_session.add(book)
        if with_album:
            db_session.add(
                Album(
                    id=book_id,
                    name=f"{title} album" if title else None,
                    cover_image=f"https://cdn.example.com/{book_id}-album.jpg",
                    media_count=3,
                    shared_with=[],
                )
            )
        await db_session.commit()

    return _make_book


@pytest.fixture
def add_member(db_session):
    """Factory adding a membership row directly."""

    async def _add_member(
        book_id: str,
        uid: str,
        role: str = "Co-author",
        can_manage_media: bool = True,
        can_invite_co_authors: bool = False,
        can_manage_pending_invites: bool = False,
        can_remove_co_authors: bool = False,
    ) -> None:
        member = _member(
            uid,
            role,
            can_manage_media,
            can_invite_co_authors,
            can_manage_pending_invites,
            can_remove_co_authors,
        )
        member.book_id = book_id
        db_session.add(member)
        await db_session.commit()

    return _add_member


def _member(uid, role, media, invite, manage, remove) -> BookMember:
    return BookMember(
        user_id=uid,
        role=role,
        can_manage_media=media,
        can_invite_co_authors=invite,
        can_manage_pending_invites=manage,
        can_remove_co_authors=remove,
    )


@pytest_asyncio.fixture
async def world(make_account, make_book):
    """
    Standard collaboration setup:

    - u1: verified owner of book b1 ("Summer Trip", album with 3 items)
    - u2, u3, u5, u6, u7: verified users
    - u4: user with an unverified email
    """
    await make_account("u1", display_name="Olive Owner")
    for uid in ("u2", "u3", "u5", "u6", "u7"):
        await make_account(uid, display_name=f"User {uid}")
    await make_account("u4", verified=False)
    await make_book("b1", "u1")


# =============================================================================
# Callers and services
# =============================================================================


def make_caller(uid: str, name: Optional[str] = None, verified: bool = True) -> CallerIdentity:
    return CallerIdentity(uid=uid, email=f"{uid}@example.com", email_verified=verified, name=name)


@pytest.fixture
def owner() -> CallerIdentity:
    return make_caller("u1", name="Olive Owner")


@pytest.fixture
def invitee() -> CallerIdentity:
    return make_caller("u2", name="User u2")


@pytest.fixture
def caller_factory():
    return make_caller


@pytest.fixture
def make_invitation_service(db_session, clock):
    """Factory building an InvitationService, optionally with custom settings."""

    def _make(settings: Optional[Settings] = None) -> InvitationService:
        identity = IdentityService(db_session, DatabaseIdentityProvider(db_session))
        return InvitationService(db_session, identity, settings=settings, clock=clock)

    return _make


@pytest.fixture
def invitation_service(make_invitation_service) -> InvitationService:
    return make_invitation_service()


@pytest.fixture
def membership_service(db_session, clock) -> MembershipService:
    return MembershipService(db_session, clock)


@pytest.fixture
def notification_service(db_session, clock) -> NotificationService:
    return NotificationService(db_session, clock=clock)


# =============================================================================
# Authentication
# =============================================================================


@pytest.fixture
def auth_headers_for():
    """Factory producing bearer headers for a uid."""

    def _headers(uid: str, name: Optional[str] = None, verified: bool = True, email: Optional[str] = None) -> dict:
        token = create_access_token(
            data={
                "sub": uid,
                "email": email or f"{uid}@example.com",
                "email_verified": verified,
                "name": name,
            }
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def owner_headers(auth_headers_for) -> dict:
    return auth_headers_for("u1", name="Olive Owner")


@pytest.fixture
def invitee_headers(auth_headers_for) -> dict:
    return auth_headers_for("u2", name="User u2")
