"""SQLAlchemy ORM models package."""

from .account import Account
from .album import Album
from .book import Book
from .book_member import BookMember
from .invitation import Invitation
from .notification import Notification
from .user import User

__all__ = [
    "Account",
    "Album",
    "Book",
    "BookMember",
    "Invitation",
    "Notification",
    "User",
]
