"""Notification SQLAlchemy model for per-recipient pending-invite notices."""

from sqlalchemy import Boolean, Column, DateTime, Index, String

from ..database import Base


class Notification(Base):
    """
    Notification model: one unread pending-invite notice per invitation.

    The primary key is the invitation id, so a recipient holds at most one
    notification per invitation. Its existence is what the recipient's
    unread counter counts.

    Attributes:
        id: Invitation id this notification projects
        user_id: Recipient
        type: Notification type (``coauthor_invite``)
        invite_id: Invitation id
        book_id: Book the invitation is for
        book_title: Book title at invite time
        owner_id: Book owner
        owner_name: Owner display name
        can_manage_media: Media permission offered
        created_at: When the notification was first created
        expires_at: Invitation expiry at last (re)send
    """

    __tablename__ = "Notifications"

    __table_args__ = (
        # Inbox listing, newest first
        Index("ix_notifications_user_created", "user_id", "created_at"),
        Index("ix_notifications_user_type_created", "user_id", "type", "created_at"),
    )

    id = Column(String(300), primary_key=True)

    user_id = Column(String(128), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    invite_id = Column(String(300), nullable=False)
    book_id = Column(String(128), nullable=False, index=True)
    book_title = Column(String(255), nullable=False, default="Untitled Book")
    owner_id = Column(String(128), nullable=False)
    owner_name = Column(String(255), nullable=False, default="Book owner")
    can_manage_media = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, type={self.type})>"
