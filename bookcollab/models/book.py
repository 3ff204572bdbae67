"""Book SQLAlchemy model (collaboration view of a book record)."""

from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timeutils import utcnow

if TYPE_CHECKING:
    from .book_member import BookMember


class Book(Base):
    """
    Book model. Only the fields the collaboration core reads or writes.

    Attributes:
        id: Book id
        owner_id: Owner uid (older rows may only carry an Owner member row)
        title: Book title
        cover_image_url: Cover image URL
        created_at: Timestamp when the book was created
        updated_at: Timestamp when the book was last updated
    """

    __tablename__ = "Books"

    id = Column(String(128), primary_key=True)
    owner_id = Column(String(128), nullable=True, index=True)
    title = Column(String(255), nullable=True)
    cover_image_url = Column(String(1000), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    members = relationship(
        "BookMember",
        back_populates="book",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def member_roles(self) -> dict[str, str]:
        """Map of user id to role."""
        return {member.user_id: member.role for member in self.members}

    @property
    def member_permissions(self) -> dict[str, dict[str, bool]]:
        """Map of user id to the member's permission flags."""
        return {member.user_id: member.permission_flags for member in self.members}

    def get_member(self, user_id: str) -> "BookMember | None":
        for member in self.members:
            if member.user_id == user_id:
                return member
        return None

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, owner_id={self.owner_id})>"
