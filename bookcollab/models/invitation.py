"""Invitation SQLAlchemy model for co-author invitations."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Index, String

from ..database import Base


class Invitation(Base):
    """
    Invitation model representing an offer to co-author a book.

    There is at most one invitation per (book, invitee) pair: the primary key
    is the deterministic composite ``"{book_id}__{invitee_uid}"``. A new
    invite cycle after a terminal status reuses the same row.

    Attributes:
        id: Composite key ``book_id__invitee_uid``
        book_id: Book being shared
        owner_id: Owner of the book at invite time
        invitee_uid: User being invited
        invitee_email: Invitee email (lower-cased) at invite time
        owner_name: Owner display name shown to the invitee
        book_title: Book title shown to the invitee
        can_manage_media: Granted media permission
        can_invite_co_authors: Granted invite permission
        status: pending, accepted, declined, cancelled or expired
        created_at: When the first invite cycle started
        updated_at: Last state change
        expires_at: When a pending invite lapses
        responded_at: When the invite left the pending state
        resent_at: Last resend
    """

    __tablename__ = "Invitations"

    __table_args__ = (
        # Lazy sweep and capacity checks by book
        Index("ix_invitations_book_status_expires", "book_id", "status", "expires_at"),
        # Lazy sweep and capacity checks by recipient
        Index("ix_invitations_invitee_status_expires", "invitee_uid", "status", "expires_at"),
        # Pending list ordering
        Index("ix_invitations_book_status_created", "book_id", "status", "created_at"),
    )

    id = Column(String(300), primary_key=True)

    book_id = Column(String(128), nullable=False, index=True)
    owner_id = Column(String(128), nullable=False)
    invitee_uid = Column(String(128), nullable=False, index=True)
    invitee_email = Column(String(255), nullable=False, default="")
    owner_name = Column(String(255), nullable=False, default="")
    book_title = Column(String(255), nullable=False, default="Untitled Book")

    # Granted permissions
    can_manage_media = Column(Boolean, nullable=False, default=True)
    can_invite_co_authors = Column(Boolean, nullable=False, default=False)

    status = Column(String(20), nullable=False, default="pending", index=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    responded_at = Column(DateTime, nullable=True)
    resent_at = Column(DateTime, nullable=True)

    def is_expired(self, now: datetime) -> bool:
        """True when the invite has an expiry at or before ``now``."""
        return self.expires_at is not None and self.expires_at <= now

    def __repr__(self) -> str:
        return f"<Invitation(id={self.id}, status={self.status})>"
