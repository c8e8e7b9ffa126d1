"""Tests for password sign-up, sign-in and refresh-token rotation."""

import pytest
from sqlalchemy import select

from shelf.core.exceptions import EmailInUse, InvalidCredentials, Unauthenticated
from shelf.core.security import create_access_token, decode_token
from shelf.models.user import AuthAccount, RefreshToken
from shelf.services.credential_service import PASSWORD_PROVIDER, credential_service


@pytest.mark.unit
@pytest.mark.asyncio
class TestSignUpAndSignIn:
    async def test_sign_up_creates_unassigned_account(self, db_session):
        user = await credential_service.sign_up(db_session, " New@Example.com ", "hunter22!")

        assert user.email == "new@example.com"
        assert user.role is None
        assert user.household_id is None
        account = (await db_session.execute(select(AuthAccount))).scalar_one()
        assert account.provider == PASSWORD_PROVIDER
        assert account.secret_hash != "hunter22!"

    async def test_duplicate_email(self, db_session):
        await credential_service.sign_up(db_session, "dup@example.com", "hunter22!")
        with pytest.raises(EmailInUse):
            await credential_service.sign_up(db_session, "DUP@example.com", "other-pass")

    async def test_authenticate(self, db_session):
        created = await credential_service.sign_up(db_session, "a@example.com", "hunter22!")

        user = await credential_service.authenticate(db_session, "A@example.com", "hunter22!")

        assert user.id == created.id
        assert user.last_login_at is not None

    async def test_wrong_password(self, db_session):
        await credential_service.sign_up(db_session, "a@example.com", "hunter22!")
        with pytest.raises(InvalidCredentials):
            await credential_service.authenticate(db_session, "a@example.com", "nope-nope")

    async def test_unknown_email(self, db_session):
        with pytest.raises(InvalidCredentials):
            await credential_service.authenticate(db_session, "ghost@example.com", "hunter22!")


@pytest.mark.unit
@pytest.mark.asyncio
class TestSessions:
    async def test_open_session_stores_refresh_hash(self, db_session, unassigned_user):
        access, refresh = await credential_service.open_session(db_session, unassigned_user.id)

        assert decode_token(access)["type"] == "access"
        stored = (await db_session.execute(select(RefreshToken))).scalar_one()
        assert stored.user_id == unassigned_user.id
        assert stored.token_hash != decode_token(refresh)["jti"]

    async def test_refresh_rotates(self, db_session, unassigned_user):
        _, refresh = await credential_service.open_session(db_session, unassigned_user.id)

        _, new_refresh = await credential_service.refresh_session(db_session, refresh)

        assert new_refresh != refresh
        with pytest.raises(Unauthenticated):
            await credential_service.refresh_session(db_session, refresh)

    async def test_access_token_is_not_a_refresh_token(self, db_session, unassigned_user):
        access = create_access_token(data={"sub": str(unassigned_user.id)})
        with pytest.raises(Unauthenticated):
            await credential_service.refresh_session(db_session, access)

    async def test_close_session_revokes(self, db_session, unassigned_user):
        _, refresh = await credential_service.open_session(db_session, unassigned_user.id)

        await credential_service.close_session(db_session, refresh)

        with pytest.raises(Unauthenticated):
            await credential_service.refresh_session(db_session, refresh)

    async def test_close_session_ignores_garbage(self, db_session):
        await credential_service.close_session(db_session, "not-a-jwt")
