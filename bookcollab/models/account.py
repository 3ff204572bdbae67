"""Account SQLAlchemy model: the authentication store's view of a user."""

from sqlalchemy import Boolean, Column, DateTime, String

from ..database import Base
from ..utils.timeutils import utcnow


class Account(Base):
    """
    Authentication account, the source of truth for email verification.

    Read by ``DatabaseIdentityProvider``; profile rows in ``Users`` only
    mirror ``email_verified``.

    Attributes:
        id: User id (uid)
        email: Account email address
        email_verified: Whether the email address has been verified
        display_name: Display name registered with the account
        created_at: Timestamp when the account was created
    """

    __tablename__ = "Accounts"

    id = Column(String(128), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    display_name = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, email={self.email})>"
