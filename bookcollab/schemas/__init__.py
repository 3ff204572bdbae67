"""Pydantic request/response schemas."""

from .invitation import (
    InviteRequest,
    InviteResult,
    InviteStatus,
    InviteSummary,
    ManageAction,
    ManageRequest,
    ManageResult,
    PendingInvitesRequest,
    PendingInvitesResult,
    RespondAction,
    RespondRequest,
    RespondResult,
    TERMINAL_STATUSES,
)
from .member import (
    MemberPermissions,
    MemberRole,
    RemoveCoAuthorRequest,
    RemoveCoAuthorResult,
    SetPermissionsRequest,
    SetPermissionsResult,
)
from .notification import (
    ListNotificationsRequest,
    NotificationListResult,
    NotificationSummary,
    NotificationType,
)
from .user import AuthFlagsResult, CallerIdentity

__all__ = [
    "AuthFlagsResult",
    "CallerIdentity",
    "InviteRequest",
    "InviteResult",
    "InviteStatus",
    "InviteSummary",
    "ListNotificationsRequest",
    "ManageAction",
    "ManageRequest",
    "ManageResult",
    "MemberPermissions",
    "MemberRole",
    "NotificationListResult",
    "NotificationSummary",
    "NotificationType",
    "PendingInvitesRequest",
    "PendingInvitesResult",
    "RemoveCoAuthorRequest",
    "RemoveCoAuthorResult",
    "RespondAction",
    "RespondRequest",
    "RespondResult",
    "SetPermissionsRequest",
    "SetPermissionsResult",
    "TERMINAL_STATUSES",
]
