"""Tests for the HTTP surface: error envelope, authentication and endpoints."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from bookcollab.errors import AppErrorCode, InternalError
from bookcollab.main import app
from bookcollab.services.auth_service import create_access_token
from bookcollab.services.identity_service import (
    IdentityLookupError,
    IdentityProvider,
    get_identity_provider,
)


class UnavailableIdentityProvider(IdentityProvider):
    async def get_user(self, uid):
        raise IdentityLookupError("identity backend timed out")


@pytest.mark.asyncio
class TestAuthentication:
    """Tests for bearer token handling."""

    async def test_missing_token(self, client: AsyncClient):
        response = await client.post("/api/invitations/invite", json={"bookId": "b1", "uid": "u2"})
        assert response.status_code == 401
        assert response.json() == {
            "error": {
                "code": "unauthenticated",
                "message": "You must be signed in.",
                "applicationErrorCode": "UNAUTHENTICATED",
            }
        }

    async def test_invalid_token(self, client: AsyncClient):
        response = await client.post(
            "/api/invitations/invite",
            json={"bookId": "b1", "uid": "u2"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    async def test_expired_token(self, client: AsyncClient):
        token = create_access_token({"sub": "u1"}, expires_delta=timedelta(minutes=-5))
        response = await client.post(
            "/api/notifications/list",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 401


@pytest.mark.asyncio
class TestErrorEnvelope:
    """Tests for error rendering."""

    async def test_validation_error(self, world, client: AsyncClient, invitee_headers: dict):
        response = await client.post(
            "/api/invitations/respond",
            json={"inviteId": "b1__u2", "action": "maybe"},
            headers=invitee_headers,
        )
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid-argument"
        assert error["applicationErrorCode"] == "INVALID_REQUEST"
        assert "action" in error["message"]

    async def test_missing_field(self, world, client: AsyncClient, owner_headers: dict):
        response = await client.post("/api/invitations/invite", json={"bookId": "b1"}, headers=owner_headers)
        assert response.status_code == 400
        assert "uid" in response.json()["error"]["message"]

    async def test_not_found(self, world, client: AsyncClient, owner_headers: dict):
        response = await client.post(
            "/api/invitations/invite", json={"bookId": "missing", "uid": "u2"}, headers=owner_headers
        )
        assert response.status_code == 404
        assert response.json()["error"] == {
            "code": "not-found",
            "message": "Book not found.",
            "applicationErrorCode": "BOOK_NOT_FOUND",
        }

    async def test_conflict(self, world, add_member, client: AsyncClient, owner_headers: dict):
        await add_member("b1", "u2")
        response = await client.post(
            "/api/invitations/invite", json={"bookId": "b1", "uid": "u2"}, headers=owner_headers
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "already-exists"

    async def test_cooldown_is_failed_precondition(self, world, client: AsyncClient, owner_headers: dict):
        body = {"bookId": "b1", "uid": "u2"}
        await client.post("/api/invitations/invite", json=body, headers=owner_headers)
        response = await client.post("/api/invitations/invite", json=body, headers=owner_headers)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "failed-precondition"
        assert error["applicationErrorCode"] == "RESEND_COOLDOWN"
        assert error["message"] == "Please wait 15 minute(s) before resending this invite."

    async def test_identity_lookup_failure(self, world, client: AsyncClient, owner_headers: dict):
        app.dependency_overrides[get_identity_provider] = lambda: UnavailableIdentityProvider()

        response = await client.post(
            "/api/invitations/invite", json={"bookId": "b1", "uid": "u2"}, headers=owner_headers
        )

        assert response.status_code == 500
        assert response.json()["error"] == {
            "code": "internal",
            "message": "Invitation verification failed.",
            "applicationErrorCode": "INVITATION_VERIFICATION_FAILED",
        }


@pytest.mark.asyncio
class TestInvitationEndpoints:
    """Round trips through the invitation endpoints."""

    async def test_invite_respond_decline(
        self, world, client: AsyncClient, owner_headers: dict, invitee_headers: dict, state
    ):
        invite = await client.post(
            "/api/invitations/invite",
            json={"bookId": "b1", "uid": "u2", "canManageMedia": False},
            headers=owner_headers,
        )
        assert invite.status_code == 200
        data = invite.json()
        assert data["success"] is True
        assert data["inviteId"] == "b1__u2"
        assert data["status"] == "created"
        assert isinstance(data["expiresAt"], int)

        response = await client.post(
            "/api/invitations/respond",
            json={"inviteId": "b1__u2", "action": "decline"},
            headers=invitee_headers,
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "status": "declined"}
        assert await state.pending_count("u2") == 0

    async def test_manage_and_pending(
        self, world, client: AsyncClient, owner_headers: dict, clock
    ):
        await client.post("/api/invitations/invite", json={"bookId": "b1", "uid": "u2"}, headers=owner_headers)

        pending = await client.post(
            "/api/invitations/pending", json={"bookId": "b1", "pageSize": 10}, headers=owner_headers
        )
        assert pending.status_code == 200
        invites = pending.json()["invites"]
        assert len(invites) == 1
        assert invites[0]["inviteId"] == "b1__u2"
        assert invites[0]["inviteeUid"] == "u2"
        assert invites[0]["ownerName"] == "Olive Owner"
        assert invites[0]["status"] == "pending"
        assert invites[0]["respondedAt"] == 0

        clock.advance(minutes=16)
        resent = await client.post(
            "/api/invitations/manage", json={"inviteId": "b1__u2", "action": "resend"}, headers=owner_headers
        )
        assert resent.status_code == 200
        assert resent.json()["status"] == "resent"
        assert resent.json()["expiresAt"] > invites[0]["expiresAt"]

        cancelled = await client.post(
            "/api/invitations/manage", json={"inviteId": "b1__u2", "action": "cancel"}, headers=owner_headers
        )
        assert cancelled.json() == {"success": True, "status": "cancelled", "expiresAt": None}

    async def test_pending_forbidden_for_stranger(self, world, client: AsyncClient, auth_headers_for):
        response = await client.post(
            "/api/invitations/pending", json={"bookId": "b1"}, headers=auth_headers_for("u3")
        )
        assert response.status_code == 403
        assert response.json()["error"]["applicationErrorCode"] == "BOOK_ACCESS_DENIED"


@pytest.mark.asyncio
class TestSyncAuthFlags:
    """Tests for POST /api/users/sync-auth-flags."""

    async def test_sync_copies_token_claims(self, world, client: AsyncClient, auth_headers_for, state):
        headers = auth_headers_for("u2", name="Uma Writer", email="Uma.Writer@Example.com")
        response = await client.post("/api/users/sync-auth-flags", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "emailVerified": True}
        profile = await state.profile("u2")
        assert profile.email == "uma.writer@example.com"
        assert profile.display_name == "Uma Writer"
        assert profile.email_verified is True

    async def test_sync_creates_profile(self, world, client: AsyncClient, auth_headers_for, state):
        response = await client.post(
            "/api/users/sync-auth-flags", headers=auth_headers_for("newbie", verified=False)
        )
        assert response.json()["emailVerified"] is False
        profile = await state.profile("newbie")
        assert profile is not None
        assert profile.display_name == ""
        assert profile.pending_invite_count == 0

    async def test_sync_does_not_consult_identity_provider(self, world, client: AsyncClient, auth_headers_for):
        """The token claims are the only input; the provider is never resolved."""

        def failing_provider():
            raise InternalError(error_code=AppErrorCode.INVITATION_VERIFICATION_FAILED)

        app.dependency_overrides[get_identity_provider] = failing_provider

        response = await client.post("/api/users/sync-auth-flags", headers=auth_headers_for("u2"))

        assert response.status_code == 200
        assert response.json() == {"success": True, "emailVerified": True}


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["service"] == "bookcollab"
