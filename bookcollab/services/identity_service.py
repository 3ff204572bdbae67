"""Identity provider access and email-verification checks.

The identity provider is the source of truth for whether a user's email is
verified. The collaboration core only asks it that question (plus email and
display name); profile rows carry a best-effort mirror of the flag.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db, transaction
from ..errors import (
    AppErrorCode,
    FailedPreconditionError,
    InternalError,
    UnauthenticatedError,
)
from ..models.account import Account
from ..schemas.user import AuthFlagsResult, CallerIdentity
from ..utils.timeutils import utcnow
from .access_service import get_or_create_profile

logger = logging.getLogger(__name__)


class IdentityUserNotFoundError(Exception):
    """The identity provider has no account for the uid."""


class IdentityLookupError(Exception):
    """The identity provider could not be queried."""


@dataclass(frozen=True)
class IdentityRecord:
    uid: str
    email: Optional[str]
    email_verified: bool
    display_name: Optional[str] = None


class IdentityProvider:
    """Interface to the authentication system."""

    async def get_user(self, uid: str) -> IdentityRecord:
        """
        Look up an account.

        Raises:
            IdentityUserNotFoundError: No account exists for ``uid``
            IdentityLookupError: The provider failed to answer
        """
        raise NotImplementedError


class DatabaseIdentityProvider(IdentityProvider):
    """Identity provider backed by the ``Accounts`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, uid: str) -> IdentityRecord:
        try:
            result = await self.db.execute(select(Account).where(Account.id == uid))
            account = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise IdentityLookupError(str(e)) from e

        if account is None:
            raise IdentityUserNotFoundError(uid)

        return IdentityRecord(
            uid=account.id,
            email=account.email,
            email_verified=bool(account.email_verified),
            display_name=account.display_name,
        )


def get_identity_provider(db: AsyncSession = Depends(get_db)) -> IdentityProvider:
    """FastAPI dependency for the identity provider."""
    return DatabaseIdentityProvider(db)


class IdentityService:
    """
    Verification checks used by the invitation endpoints.

    Attributes:
        db: SQLAlchemy async database session
        provider: Identity provider answering verification lookups; defaults
            to the account table
    """

    def __init__(self, db: AsyncSession, provider: Optional[IdentityProvider] = None):
        self.db = db
        self.provider = provider or DatabaseIdentityProvider(db)

    async def require_verified_caller(self, uid: str) -> IdentityRecord:
        """
        Require the caller's account to exist with a verified email.

        Raises:
            FailedPreconditionError: Email not verified
            UnauthenticatedError: No account for the caller
            InternalError: Provider lookup failed
        """
        try:
            record = await self.provider.get_user(uid)
        except IdentityUserNotFoundError:
            logger.error(f"Caller verification failed: uid={uid}, reason=user-not-found")
            raise UnauthenticatedError(
                "Authenticated user record not found.",
                AppErrorCode.CALLER_ACCOUNT_NOT_FOUND,
            )
        except IdentityLookupError as e:
            logger.error(f"Caller verification failed: uid={uid}, error={e}")
            raise InternalError(error_code=AppErrorCode.INVITATION_VERIFICATION_FAILED)

        if not record.email_verified:
            raise FailedPreconditionError(
                "Please verify your email before managing co-author invites.",
                AppErrorCode.EMAIL_NOT_VERIFIED,
            )

        await self.mirror_email_verified(uid, "caller")
        return record

    async def require_verified_invitee(self, uid: str) -> IdentityRecord:
        """
        Require the invitee's account to exist with a verified email.

        Raises:
            FailedPreconditionError: Email not verified, or no account yet
            InternalError: Provider lookup failed
        """
        try:
            record = await self.provider.get_user(uid)
        except IdentityUserNotFoundError:
            logger.error(f"Invitee verification failed: uid={uid}, reason=user-not-found")
            raise FailedPreconditionError(
                "Invitee account not found in authentication. Ask them to sign in first.",
                AppErrorCode.INVITEE_ACCOUNT_NOT_FOUND,
            )
        except IdentityLookupError as e:
            logger.error(f"Invitee verification failed: uid={uid}, error={e}")
            raise InternalError(error_code=AppErrorCode.INVITATION_VERIFICATION_FAILED)

        if not record.email_verified:
            raise FailedPreconditionError(
                "Invitee must have a verified email account.",
                AppErrorCode.INVITEE_NOT_VERIFIED,
            )

        await self.mirror_email_verified(uid, "invitee")
        return record

    async def mirror_email_verified(self, uid: str, role: str) -> None:
        """Copy a confirmed verification onto the profile; failures are only logged."""
        try:
            async with self.db.begin_nested():
                profile = await get_or_create_profile(self.db, uid)
                if not profile.email_verified:
                    profile.email_verified = True
        except Exception as e:
            logger.warning(f"emailVerified mirror update skipped ({role}): uid={uid}, error={e}")

    async def sync_auth_flags(self, caller: CallerIdentity) -> AuthFlagsResult:
        """
        Copy the token's email, display name and verification flag onto the
        caller's profile.
        """
        email_verified = caller.email_verified is True
        async with transaction(self.db):
            profile = await get_or_create_profile(self.db, caller.uid)
            profile.email = (caller.email or "").lower()
            profile.display_name = caller.name or ""
            profile.email_verified = email_verified
            profile.updated_at = utcnow()

        return AuthFlagsResult(success=True, email_verified=email_verified)
