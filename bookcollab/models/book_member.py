"""BookMember SQLAlchemy model for book roles and co-author permissions."""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timeutils import utcnow

if TYPE_CHECKING:
    from .book import Book


class BookMember(Base):
    """
    BookMember model representing a user's role on a book.

    One row per (book, user). ``role`` is ``Owner`` or ``Co-author``; the four
    permission flags are always populated.

    Attributes:
        id: Surrogate key
        book_id: FK to the book
        user_id: Member uid
        role: Owner or Co-author
        can_manage_media: May manage the book's shared album
        can_invite_co_authors: May send co-author invites
        can_manage_pending_invites: May resend/cancel pending invites
        can_remove_co_authors: May remove co-authors
        created_at: Timestamp when membership was created
        updated_at: Timestamp when membership was last updated
    """

    __tablename__ = "BookMembers"

    __table_args__ = (
        UniqueConstraint("book_id", "user_id", name="uq_book_members_book_user"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    book_id = Column(
        String(128),
        ForeignKey("Books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(128), nullable=False, index=True)

    role = Column(String(20), nullable=False)

    can_manage_media = Column(Boolean, nullable=False, default=True)
    can_invite_co_authors = Column(Boolean, nullable=False, default=False)
    can_manage_pending_invites = Column(Boolean, nullable=False, default=False)
    can_remove_co_authors = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    book = relationship("Book", back_populates="members")

    @property
    def permission_flags(self) -> dict[str, bool]:
        return {
            "canManageMedia": self.can_manage_media,
            "canInviteCoAuthors": self.can_invite_co_authors,
            "canManagePendingInvites": self.can_manage_pending_invites,
            "canRemoveCoAuthors": self.can_remove_co_authors,
        }

    def __repr__(self) -> str:
        return f"<BookMember(book_id={self.book_id}, user_id={self.user_id}, role={self.role})>"
