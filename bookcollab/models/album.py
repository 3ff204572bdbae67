"""Album SQLAlchemy model: the shared media album of a book."""

from sqlalchemy import JSON, Column, DateTime, Integer, String

from ..database import Base
from ..utils.timeutils import utcnow


class Album(Base):
    """
    Shared media album. Its id is the id of the book it belongs to.

    Attributes:
        id: Book id
        name: Album name
        cover_image: Cover image URL
        media_count: Number of media items (maintained by the media pipeline)
        shared_with: User ids with read access, besides the owner
        updated_at: Timestamp when the album was last updated
    """

    __tablename__ = "Albums"

    id = Column(String(128), primary_key=True)
    name = Column(String(255), nullable=True)
    cover_image = Column(String(1000), nullable=True)
    media_count = Column(Integer, nullable=False, default=0)

    # Always reassigned, never mutated in place
    shared_with = Column(JSON, nullable=False, default=list)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Album(id={self.id}, shared_with={self.shared_with})>"
