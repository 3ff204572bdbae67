"""Pydantic schemas for caller identity and auth flag sync."""

from typing import Optional

from pydantic import BaseModel, Field

from .base import CamelModel


class CallerIdentity(BaseModel):
    """Authenticated caller, decoded from the bearer token."""

    uid: str
    email: Optional[str] = None
    email_verified: bool = False
    name: Optional[str] = None


class AuthFlagsResult(CamelModel):
    success: bool = True
    email_verified: bool = Field(..., description="Verification flag from the caller's token")
