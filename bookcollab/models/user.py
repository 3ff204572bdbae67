"""User profile SQLAlchemy model."""

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String

from ..database import Base
from ..utils.timeutils import utcnow


class User(Base):
    """
    User profile holding collaboration state for one user.

    The profile is not the authentication record (see ``Account``);
    ``email_verified`` here is a best-effort mirror.

    Attributes:
        id: User id (identity provider uid)
        email: Lower-cased email
        display_name: Display name
        email_verified: Mirror of the identity provider's verification flag
        pending_invite_count: Unread pending-invite counter; changed only by
            signed increments
        accessible_books: List of {bookId, title, coverImage}
        accessible_albums: List of {id, coverImage, type, name, mediaCount, updatedAt}
        created_at: Timestamp when the profile was created
        updated_at: Timestamp when the profile was last updated
    """

    __tablename__ = "Users"

    id = Column(String(128), primary_key=True)

    email = Column(String(255), nullable=True, index=True)
    display_name = Column(String(100), nullable=True)
    email_verified = Column(Boolean, nullable=False, default=False)

    pending_invite_count = Column(Integer, nullable=False, default=0)

    # Denormalized access lists; always reassigned, never mutated in place
    accessible_books = Column(JSON, nullable=False, default=list)
    accessible_albums = Column(JSON, nullable=False, default=list)

    # Timestamps
    created_at = Column(
        DateTime,
        default=utcnow,
        nullable=False,
    )
    updated_at = Column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
