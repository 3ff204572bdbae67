"""Business logic services."""

from .access_service import (
    AccessPropagation,
    build_album_summary,
    build_book_summary,
    remove_accessible_album,
    remove_accessible_book,
    upsert_accessible_album,
    upsert_accessible_book,
)
from .auth_service import create_access_token, decode_access_token, get_current_caller
from .expiry_service import ExpiryService
from .identity_service import (
    DatabaseIdentityProvider,
    IdentityLookupError,
    IdentityProvider,
    IdentityRecord,
    IdentityService,
    IdentityUserNotFoundError,
    get_identity_provider,
)
from .invitation_service import InvitationService, get_invitation_service
from .invitation_store import InvitationStore, build_invite_id
from .membership_service import MembershipService, get_membership_service
from .notification_service import NotificationService, get_notification_service
from .notification_store import NotificationStore
from .permission_service import (
    MEMBER_PERMISSION_DEFAULTS,
    BookRole,
    PermissionService,
    resolve_book_role,
    sanitize_member_permissions,
)
