"""API routers package."""

from .invitations import router as invitations_router
from .members import router as members_router
from .notifications import router as notifications_router
from .users import router as users_router

__all__ = [
    "invitations_router",
    "members_router",
    "notifications_router",
    "users_router",
]
