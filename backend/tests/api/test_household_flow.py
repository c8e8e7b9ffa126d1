"""End-to-end household flow through the HTTP API."""

import pytest

from shelf.services.email_service import INVITE_ACCEPT_PATH, INVITE_DECLINE_PATH, VERIFY_EMAIL_PATH

PASSWORD = "correct-horse-battery"


async def _sign_up(client, email):
    response = await client.post("/api/v1/auth/sign-up", json={"email": email, "password": PASSWORD})
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


async def _verify(client, mailer, email):
    token = mailer.last_to(email).token(VERIFY_EMAIL_PATH)
    response = await client.post("/api/v1/auth/verify-email", json={"token": token})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.mark.api
@pytest.mark.asyncio
class TestHouseholdFlow:
    async def test_owner_invites_member_who_joins_and_shares_products(self, async_client, mailer):
        # Owner signs up, creates the household and confirms their email
        owner_headers = await _sign_up(async_client, "olive@example.com")
        response = await async_client.post(
            "/api/v1/household/owner", json={"display_name": "Olive"}, headers=owner_headers
        )
        assert response.status_code == 201
        assert response.json()["role"] == "owner"
        household_id = response.json()["household_id"]

        response = await async_client.get("/api/v1/products", headers=owner_headers)
        assert response.status_code == 403
        assert response.json()["code"] == "email_not_verified"

        await _verify(async_client, mailer, "olive@example.com")

        # Owner invites a member
        response = await async_client.post(
            "/api/v1/invites", json={"email": "Milo@Example.com"}, headers=owner_headers
        )
        assert response.status_code == 201
        assert response.json()["status"] == "reserved"
        assert response.json()["email"] == "milo@example.com"

        response = await async_client.get(
            "/api/v1/invites/status", params={"email": "milo@example.com"}
        )
        assert response.json()["invite_status"] == "reserved"
        assert response.json()["blocked_for_owner"] is True

        # Invitee accepts without signing in, then signs up and joins
        token = mailer.last_to("milo@example.com").token(INVITE_ACCEPT_PATH)
        response = await async_client.post("/api/v1/invites/accept", json={"token": token})
        assert response.status_code == 200
        assert response.json()["household_id"] == household_id

        member_headers = await _sign_up(async_client, "milo@example.com")
        response = await async_client.post(
            "/api/v1/household/join", json={"display_name": " Milo "}, headers=member_headers
        )
        assert response.status_code == 200
        assert response.json() == {"household_id": household_id, "role": "member"}
        await _verify(async_client, mailer, "milo@example.com")

        # Both see the same product list
        response = await async_client.post(
            "/api/v1/products",
            json={"name": "Rice", "tag": "grains", "amount_value": "2", "amount_unit": "kg"},
            headers=member_headers,
        )
        assert response.status_code == 201
        assert response.json()["amount_unit"] == "g"

        response = await async_client.get("/api/v1/products", headers=owner_headers)
        assert [p["name"] for p in response.json()] == ["Rice"]
        assert response.json()[0]["tag"] == "#grains"

        response = await async_client.get("/api/v1/household/members", headers=owner_headers)
        assert [(m["type"], m["display_name"]) for m in response.json()] == [("member", "Milo")]

    async def test_declined_invite_cannot_be_joined(self, async_client, mailer, owner, auth_headers):
        await async_client.post(
            "/api/v1/invites", json={"email": "guest@example.com"}, headers=auth_headers(owner)
        )
        token = mailer.last_to("guest@example.com").token(INVITE_DECLINE_PATH)

        response = await async_client.post("/api/v1/invites/decline", json={"token": token})
        assert response.status_code == 200

        response = await async_client.post("/api/v1/invites/accept", json={"token": token})
        assert response.status_code == 410
        assert response.json()["code"] == "token_used"

        guest_headers = await _sign_up(async_client, "guest@example.com")
        response = await async_client.post(
            "/api/v1/household/join", json={"display_name": "Guest"}, headers=guest_headers
        )
        assert response.status_code == 409
        assert response.json()["code"] == "invite_not_accepted"

    async def test_invited_email_cannot_create_household(self, async_client, owner, auth_headers):
        await async_client.post(
            "/api/v1/invites", json={"email": "guest@example.com"}, headers=auth_headers(owner)
        )
        guest_headers = await _sign_up(async_client, "guest@example.com")

        response = await async_client.post(
            "/api/v1/household/owner", json={"display_name": "Guest"}, headers=guest_headers
        )
        assert response.status_code == 409
        assert response.json()["code"] == "email_reserved_for_member"


@pytest.mark.api
@pytest.mark.asyncio
class TestInviteEndpoints:
    async def test_requires_authentication(self, async_client):
        response = await async_client.post("/api/v1/invites", json={"email": "a@example.com"})
        assert response.status_code == 401
        assert response.json()["code"] == "unauthenticated"

    async def test_member_cannot_invite(self, async_client, member, auth_headers):
        response = await async_client.post(
            "/api/v1/invites", json={"email": "a@example.com"}, headers=auth_headers(member)
        )
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    async def test_unverified_owner_cannot_invite(self, async_client, make_owner, auth_headers):
        owner = await make_owner("fresh@example.com", verified=False)
        response = await async_client.post(
            "/api/v1/invites", json={"email": "a@example.com"}, headers=auth_headers(owner)
        )
        assert response.status_code == 403
        assert response.json()["code"] == "email_not_verified"

    async def test_invalid_email_is_validation_error(self, async_client, owner, auth_headers):
        response = await async_client.post(
            "/api/v1/invites", json={"email": "not-an-email"}, headers=auth_headers(owner)
        )
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    async def test_duplicate_invite(self, async_client, owner, auth_headers):
        headers = auth_headers(owner)
        await async_client.post("/api/v1/invites", json={"email": "a@example.com"}, headers=headers)

        response = await async_client.post(
            "/api/v1/invites", json={"email": "A@example.com"}, headers=headers
        )
        assert response.status_code == 409
        assert response.json()["code"] == "invite_already_active"

    async def test_delivery_failure_is_reported(self, async_client, mailer, owner, auth_headers):
        from shelf.core.exceptions import DeliveryError

        mailer.fail_with = DeliveryError()
        response = await async_client.post(
            "/api/v1/invites", json={"email": "a@example.com"}, headers=auth_headers(owner)
        )
        assert response.status_code == 502
        assert response.json()["code"] == "delivery_error"

    async def test_list_and_revoke(self, async_client, owner, auth_headers):
        headers = auth_headers(owner)
        await async_client.post("/api/v1/invites", json={"email": "a@example.com"}, headers=headers)

        response = await async_client.get("/api/v1/invites", headers=headers)
        assert [i["email"] for i in response.json()] == ["a@example.com"]

        response = await async_client.post(
            "/api/v1/invites/revoke", json={"email": "a@example.com"}, headers=headers
        )
        assert response.json() == {"revoked": 1}

        response = await async_client.get("/api/v1/invites", headers=headers)
        assert response.json() == []

        response = await async_client.post(
            "/api/v1/invites/revoke", json={"email": "a@example.com"}, headers=headers
        )
        assert response.status_code == 404
        assert response.json()["code"] == "invite_not_found"

    async def test_unknown_token(self, async_client):
        response = await async_client.post("/api/v1/invites/accept", json={"token": "bogus"})
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_token"


@pytest.mark.api
@pytest.mark.asyncio
class TestHouseholdEndpoints:
    async def test_owner_removes_member(self, async_client, owner, member, auth_headers):
        response = await async_client.delete(
            f"/api/v1/household/members/{member.id}", headers=auth_headers(owner)
        )
        assert response.status_code == 204

        response = await async_client.get("/api/v1/household/members", headers=auth_headers(owner))
        assert response.json() == []

    async def test_member_leaves(self, async_client, member, auth_headers):
        headers = auth_headers(member)

        response = await async_client.post("/api/v1/household/leave", headers=headers)
        assert response.status_code == 204

        # The account is gone, so the token no longer resolves
        response = await async_client.get("/api/v1/auth/me", headers=headers)
        assert response.status_code == 401

    async def test_owner_cannot_leave(self, async_client, owner, auth_headers):
        response = await async_client.post("/api/v1/household/leave", headers=auth_headers(owner))
        assert response.status_code == 403

    async def test_delete_household(self, async_client, owner, member, auth_headers):
        owner_headers = auth_headers(owner)
        member_headers = auth_headers(member)

        response = await async_client.delete("/api/v1/household", headers=owner_headers)
        assert response.status_code == 204

        assert (await async_client.get("/api/v1/auth/me", headers=owner_headers)).status_code == 401
        assert (await async_client.get("/api/v1/auth/me", headers=member_headers)).status_code == 401

    async def test_unassigned_user_is_told_to_set_up(self, async_client, unassigned_user, auth_headers):
        response = await async_client.get("/api/v1/products", headers=auth_headers(unassigned_user))
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    async def test_display_name_too_long(self, async_client, unassigned_user, auth_headers):
        response = await async_client.post(
            "/api/v1/household/owner",
            json={"display_name": "x" * 33},
            headers=auth_headers(unassigned_user),
        )
        assert response.status_code == 422
        assert response.json()["code"] == "invalid_display_name"
