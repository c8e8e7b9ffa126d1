"""Tests for the invite lifecycle service."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from shelf.core.exceptions import (
    DeliveryError,
    EmailInUse,
    Forbidden,
    InvalidToken,
    InviteAlreadyActive,
    InviteNotActive,
    InviteNotFound,
    MissingConfiguration,
    TokenExpired,
    TokenUsed,
)
from shelf.crud.invite import invite_crud
from shelf.models.invite import InviteStatus, InviteToken, MemberInvite
from shelf.models.user import UserRole
from shelf.services.email_service import INVITE_ACCEPT_PATH, INVITE_DECLINE_PATH
from shelf.services.invite_service import InviteService
from shelf.utils.datetime_utils import utc_now


async def _count(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.unit
@pytest.mark.asyncio
class TestReserve:
    async def test_reserve_stores_invite_and_emails_links(self, db_session, mailer, owner):
        service = InviteService(mailer)

        invite = await service.reserve(db_session, owner, "  Guest@Example.com ")

        assert invite.email == "guest@example.com"
        assert invite.status == InviteStatus.RESERVED
        assert invite.household_id == owner.household_id
        assert invite.invited_by == owner.id

        message = mailer.last_to("guest@example.com")
        assert "Olive Owner" in message.text
        assert message.token(INVITE_ACCEPT_PATH) == message.token(INVITE_DECLINE_PATH)

        token = (await db_session.execute(select(InviteToken))).scalar_one()
        assert token.invite_id == invite.id
        assert token.expires_at > utc_now() + timedelta(days=6)

    async def test_member_cannot_reserve(self, db_session, mailer, member):
        with pytest.raises(Forbidden):
            await InviteService(mailer).reserve(db_session, member, "guest@example.com")

    async def test_existing_account_email_rejected(self, db_session, mailer, owner, make_user):
        await make_user("taken@example.com")

        with pytest.raises(EmailInUse):
            await InviteService(mailer).reserve(db_session, owner, "TAKEN@example.com")
        assert mailer.sent == []

    async def test_second_active_invite_rejected(self, db_session, mailer, owner):
        service = InviteService(mailer)
        await service.reserve(db_session, owner, "guest@example.com")

        with pytest.raises(InviteAlreadyActive):
            await service.reserve(db_session, owner, "guest@example.com")
        assert len(mailer.sent) == 1

    async def test_active_invite_in_other_household_blocks(self, db_session, mailer, owner, make_owner):
        other_owner = await make_owner("other-owner@example.com")
        service = InviteService(mailer)
        await service.reserve(db_session, other_owner, "guest@example.com")

        with pytest.raises(InviteAlreadyActive):
            await service.reserve(db_session, owner, "guest@example.com")

    async def test_delivery_failure_rolls_back(self, db_session, mailer, owner):
        owner_id = owner.id
        mailer.fail_with = DeliveryError()

        with pytest.raises(DeliveryError):
            await InviteService(mailer).reserve(db_session, owner, "guest@example.com")

        assert await _count(db_session, MemberInvite) == 0
        assert await _count(db_session, InviteToken) == 0

        # The email can be reserved again once delivery works
        mailer.fail_with = None
        await db_session.refresh(owner)
        assert owner.id == owner_id
        invite = await InviteService(mailer).reserve(db_session, owner, "guest@example.com")
        assert invite.status == InviteStatus.RESERVED

    async def test_missing_base_url_writes_nothing(self, db_session, mailer_without_base_url, owner):
        mailer = mailer_without_base_url
        with pytest.raises(MissingConfiguration):
            await InviteService(mailer).reserve(db_session, owner, "guest@example.com")

        assert await _count(db_session, MemberInvite) == 0
        assert mailer.sent == []

    async def test_reserve_after_revoke_is_allowed(self, db_session, mailer, owner):
        service = InviteService(mailer)
        await service.reserve(db_session, owner, "guest@example.com")
        await service.revoke(db_session, owner, "guest@example.com")

        invite = await service.reserve(db_session, owner, "guest@example.com")
        assert invite.status == InviteStatus.RESERVED
        assert await _count(db_session, MemberInvite) == 2


@pytest.mark.unit
@pytest.mark.asyncio
class TestRedeem:
    async def _reserve(self, db_session, mailer, owner, email="guest@example.com"):
        invite = await InviteService(mailer).reserve(db_session, owner, email)
        return invite, mailer.last_to(email).token(INVITE_ACCEPT_PATH)

    async def test_accept(self, db_session, mailer, owner):
        invite, token = await self._reserve(db_session, mailer, owner)

        household_id = await InviteService(mailer).accept_with_token(db_session, token)

        assert household_id == owner.household_id
        await db_session.refresh(invite)
        assert invite.status == InviteStatus.ACCEPTED
        assert invite.accepted_at is not None

    async def test_decline_revokes(self, db_session, mailer, owner):
        invite, token = await self._reserve(db_session, mailer, owner)

        await InviteService(mailer).decline_with_token(db_session, token)

        await db_session.refresh(invite)
        assert invite.status == InviteStatus.REVOKED
        assert invite.accepted_at is None

    async def test_token_is_single_use(self, db_session, mailer, owner):
        _, token = await self._reserve(db_session, mailer, owner)
        service = InviteService(mailer)
        await service.accept_with_token(db_session, token)

        with pytest.raises(TokenUsed):
            await service.accept_with_token(db_session, token)
        with pytest.raises(TokenUsed):
            await service.decline_with_token(db_session, token)

    async def test_expired_token(self, db_session, mailer, owner):
        invite, token = await self._reserve(db_session, mailer, owner)
        await db_session.execute(
            update(InviteToken).values(expires_at=utc_now() - timedelta(minutes=1))
        )
        await db_session.commit()

        with pytest.raises(TokenExpired):
            await InviteService(mailer).accept_with_token(db_session, token)

        await db_session.refresh(invite)
        assert invite.status == InviteStatus.RESERVED

    async def test_unknown_token(self, db_session, mailer):
        with pytest.raises(InvalidToken):
            await InviteService(mailer).accept_with_token(db_session, "nope")

    async def test_revoked_invite_cannot_be_accepted(self, db_session, mailer, owner):
        _, token = await self._reserve(db_session, mailer, owner)
        service = InviteService(mailer)
        await service.revoke(db_session, owner, "guest@example.com")

        with pytest.raises(InviteNotActive):
            await service.accept_with_token(db_session, token)


@pytest.mark.unit
@pytest.mark.asyncio
class TestRevokeAndList:
    async def test_revoke_accepted_invite(self, db_session, mailer, owner):
        service = InviteService(mailer)
        invite = await service.reserve(db_session, owner, "guest@example.com")
        await service.accept_with_token(
            db_session, mailer.last_to("guest@example.com").token(INVITE_ACCEPT_PATH)
        )

        assert await service.revoke(db_session, owner, "Guest@example.com") == 1
        await db_session.refresh(invite)
        assert invite.status == InviteStatus.REVOKED

    async def test_revoke_without_active_invite(self, db_session, mailer, owner):
        with pytest.raises(InviteNotFound):
            await InviteService(mailer).revoke(db_session, owner, "nobody@example.com")

    async def test_revoke_only_touches_own_household(self, db_session, mailer, owner, make_owner):
        other_owner = await make_owner("other-owner@example.com")
        service = InviteService(mailer)
        await service.reserve(db_session, other_owner, "guest@example.com")

        with pytest.raises(InviteNotFound):
            await service.revoke(db_session, owner, "guest@example.com")

    async def test_list_returns_reserved_newest_first(self, db_session, mailer, owner):
        service = InviteService(mailer)
        first = await service.reserve(db_session, owner, "a@example.com")
        second = await service.reserve(db_session, owner, "b@example.com")
        accepted = await service.reserve(db_session, owner, "c@example.com")
        await service.accept_with_token(
            db_session, mailer.last_to("c@example.com").token(INVITE_ACCEPT_PATH)
        )
        first.invited_at = utc_now() - timedelta(hours=1)
        await db_session.commit()

        invites = await service.list_invites(db_session, owner)

        assert [i.id for i in invites] == [second.id, first.id]
        assert accepted.id not in {i.id for i in invites}

    async def test_list_requires_owner(self, db_session, mailer, member):
        with pytest.raises(Forbidden):
            await InviteService(mailer).list_invites(db_session, member)


@pytest.mark.unit
@pytest.mark.asyncio
class TestCheckStatus:
    async def test_unknown_email(self, db_session, mailer):
        check = await InviteService(mailer).check_status(db_session, "nobody@example.com")
        assert check.invite_status == "none"
        assert check.has_user is False
        assert check.user_role is None
        assert check.blocked_for_owner is False

    async def test_reserved_invite_blocks_owner_path(self, db_session, mailer, owner):
        service = InviteService(mailer)
        await service.reserve(db_session, owner, "guest@example.com")

        check = await service.check_status(db_session, "GUEST@example.com")
        assert check.invite_status == "reserved"
        assert check.blocked_for_owner is True

    async def test_accepted_invite(self, db_session, mailer, owner):
        service = InviteService(mailer)
        await service.reserve(db_session, owner, "guest@example.com")
        await service.accept_with_token(
            db_session, mailer.last_to("guest@example.com").token(INVITE_ACCEPT_PATH)
        )

        check = await service.check_status(db_session, "guest@example.com")
        assert check.invite_status == "accepted"
        assert check.blocked_for_owner is True

    async def test_existing_member(self, db_session, mailer, member):
        check = await InviteService(mailer).check_status(db_session, member.email)
        assert check.has_user is True
        assert check.user_role == UserRole.MEMBER
        assert check.blocked_for_owner is True

    async def test_existing_owner_is_not_blocked(self, db_session, mailer, owner):
        check = await InviteService(mailer).check_status(db_session, owner.email)
        assert check.user_role == UserRole.OWNER
        assert check.blocked_for_owner is False


@pytest.mark.unit
@pytest.mark.asyncio
class TestActiveInviteUniqueness:
    async def test_index_rejects_second_active_invite_in_other_household(
        self, db_session, owner, make_owner
    ):
        other_owner = await make_owner("other-owner@example.com")
        db_session.add(
            MemberInvite(household_id=owner.household_id, email="guest@example.com", invited_by=owner.id)
        )
        await db_session.commit()

        db_session.add(
            MemberInvite(
                household_id=other_owner.household_id,
                email="guest@example.com",
                invited_by=other_owner.id,
            )
        )
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    async def test_inactive_invites_do_not_count(self, db_session, owner, make_owner):
        other_owner = await make_owner("other-owner@example.com")
        db_session.add(
            MemberInvite(
                household_id=owner.household_id,
                email="guest@example.com",
                invited_by=owner.id,
                status=InviteStatus.REVOKED,
            )
        )
        db_session.add(
            MemberInvite(
                household_id=other_owner.household_id,
                email="guest@example.com",
                invited_by=other_owner.id,
            )
        )
        await db_session.commit()

        assert await _count(db_session, MemberInvite) == 2

    async def test_concurrent_reservation_loses_to_index(self, db_session, mailer, owner, make_owner):
        other_owner = await make_owner("other-owner@example.com")
        service = InviteService(mailer)
        await service.reserve(db_session, other_owner, "guest@example.com")

        # The duplicate read ran before the other household's insert committed
        with patch.object(invite_crud, "find_active_by_email", AsyncMock(return_value=None)):
            with pytest.raises(InviteAlreadyActive):
                await service.reserve(db_session, owner, "guest@example.com")

        assert await _count(db_session, MemberInvite) == 1
        assert len(mailer.sent) == 1
