"""API error definitions.

Every error the collaboration API returns carries two codes:

- a transport-level ``ErrorStatus`` (mirrors the RPC status taxonomy and maps
  onto an HTTP status code), and
- a stable ``AppErrorCode`` that clients branch on instead of matching
  message strings.
"""

from enum import Enum
from typing import Optional


class ErrorStatus(str, Enum):
    """Transport-level error status."""

    INVALID_ARGUMENT = "invalid-argument"
    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission-denied"
    FAILED_PRECONDITION = "failed-precondition"
    NOT_FOUND = "not-found"
    ALREADY_EXISTS = "already-exists"
    RESOURCE_EXHAUSTED = "resource-exhausted"
    INTERNAL = "internal"


class AppErrorCode(str, Enum):
    """Machine-readable application error codes."""

    # Validation (400)
    INVALID_REQUEST = "INVALID_REQUEST"
    SELF_INVITE = "SELF_INVITE"

    # Authentication (401)
    UNAUTHENTICATED = "UNAUTHENTICATED"
    CALLER_ACCOUNT_NOT_FOUND = "CALLER_ACCOUNT_NOT_FOUND"

    # Authorization (403)
    BOOK_ACCESS_DENIED = "BOOK_ACCESS_DENIED"
    PERMISSION_REQUIRED = "PERMISSION_REQUIRED"
    OWNER_ONLY = "OWNER_ONLY"
    NOT_INVITEE = "NOT_INVITEE"

    # Preconditions (400)
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"
    INVITEE_NOT_VERIFIED = "INVITEE_NOT_VERIFIED"
    INVITEE_ACCOUNT_NOT_FOUND = "INVITEE_ACCOUNT_NOT_FOUND"
    OWNER_METADATA_MISSING = "OWNER_METADATA_MISSING"
    OWNER_IMMUTABLE = "OWNER_IMMUTABLE"
    INVITE_NOT_PENDING = "INVITE_NOT_PENDING"
    RESEND_COOLDOWN = "RESEND_COOLDOWN"

    # Not found (404)
    BOOK_NOT_FOUND = "BOOK_NOT_FOUND"
    INVITE_NOT_FOUND = "INVITE_NOT_FOUND"
    COAUTHOR_NOT_FOUND = "COAUTHOR_NOT_FOUND"

    # Conflicts (409)
    ALREADY_MEMBER = "ALREADY_MEMBER"

    # Capacity (429)
    RECIPIENT_PENDING_LIMIT = "RECIPIENT_PENDING_LIMIT"
    BOOK_SLOT_LIMIT = "BOOK_SLOT_LIMIT"
    BOOK_PENDING_LIMIT = "BOOK_PENDING_LIMIT"
    BOOK_COAUTHOR_LIMIT = "BOOK_COAUTHOR_LIMIT"

    # Server errors (500)
    INVITATION_VERIFICATION_FAILED = "INVITATION_VERIFICATION_FAILED"
    INVITATION_CREATE_FAILED = "INVITATION_CREATE_FAILED"
    INTERNAL = "INTERNAL"


# Error status to HTTP status mapping
ERROR_STATUS_TO_HTTP: dict[ErrorStatus, int] = {
    ErrorStatus.INVALID_ARGUMENT: 400,
    ErrorStatus.UNAUTHENTICATED: 401,
    ErrorStatus.PERMISSION_DENIED: 403,
    ErrorStatus.FAILED_PRECONDITION: 400,
    ErrorStatus.NOT_FOUND: 404,
    ErrorStatus.ALREADY_EXISTS: 409,
    ErrorStatus.RESOURCE_EXHAUSTED: 429,
    ErrorStatus.INTERNAL: 500,
}

# Default messages for codes raised without an explicit message
DEFAULT_MESSAGES: dict[AppErrorCode, str] = {
    AppErrorCode.INVITATION_VERIFICATION_FAILED: "Invitation verification failed.",
    AppErrorCode.INVITATION_CREATE_FAILED: "Invitation request failed.",
    AppErrorCode.INTERNAL: "Internal server error.",
}


class CollabError(Exception):
    """Base exception for collaboration API errors.

    Attributes:
        status: Transport-level error status
        message: Human-readable error message
        error_code: Stable application error code
        http_status: HTTP status code (derived from status)
    """

    status: ErrorStatus = ErrorStatus.INTERNAL
    default_code: AppErrorCode = AppErrorCode.INTERNAL

    def __init__(self, message: Optional[str] = None, error_code: Optional[AppErrorCode] = None):
        self.error_code = error_code or self.default_code
        self.message = message or DEFAULT_MESSAGES.get(self.error_code, "Request failed.")
        self.http_status = ERROR_STATUS_TO_HTTP.get(self.status, 500)
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "code": self.status.value,
            "message": self.message,
            "applicationErrorCode": self.error_code.value,
        }


class InvalidArgumentError(CollabError):
    status = ErrorStatus.INVALID_ARGUMENT
    default_code = AppErrorCode.INVALID_REQUEST


class UnauthenticatedError(CollabError):
    status = ErrorStatus.UNAUTHENTICATED
    default_code = AppErrorCode.UNAUTHENTICATED


class PermissionDeniedError(CollabError):
    status = ErrorStatus.PERMISSION_DENIED
    default_code = AppErrorCode.PERMISSION_REQUIRED


class FailedPreconditionError(CollabError):
    status = ErrorStatus.FAILED_PRECONDITION
    default_code = AppErrorCode.INVITE_NOT_PENDING


class NotFoundError(CollabError):
    status = ErrorStatus.NOT_FOUND
    default_code = AppErrorCode.BOOK_NOT_FOUND


class AlreadyExistsError(CollabError):
    status = ErrorStatus.ALREADY_EXISTS
    default_code = AppErrorCode.ALREADY_MEMBER


class ResourceExhaustedError(CollabError):
    status = ErrorStatus.RESOURCE_EXHAUSTED
    default_code = AppErrorCode.BOOK_SLOT_LIMIT


class InternalError(CollabError):
    status = ErrorStatus.INTERNAL
    default_code = AppErrorCode.INTERNAL
