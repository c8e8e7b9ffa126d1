"""Member invitation models and the invite state machine."""

import enum
import uuid

from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, Index, String, text

from shelf.core.database import Base
from shelf.core.db_types import UUID
from shelf.core.exceptions import InviteNotActive
from shelf.utils.datetime_utils import utc_now, utc_now_lambda


class InviteStatus(str, enum.Enum):
    """Lifecycle of a member invite."""

    RESERVED = "reserved"  # Sent, waiting for the invitee
    ACCEPTED = "accepted"  # Invitee clicked accept, may now join
    CONSUMED = "consumed"  # Invitee joined the household
    REVOKED = "revoked"  # Declined by the invitee or revoked by the owner


ACTIVE_INVITE_STATUSES = (InviteStatus.RESERVED, InviteStatus.ACCEPTED)


class InviteAction(str, enum.Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    REVOKE = "revoke"
    CONSUME = "consume"


# (current status, action) -> next status. Any other pair is illegal.
INVITE_TRANSITIONS = {
    (InviteStatus.RESERVED, InviteAction.ACCEPT): InviteStatus.ACCEPTED,
    (InviteStatus.RESERVED, InviteAction.DECLINE): InviteStatus.REVOKED,
    (InviteStatus.RESERVED, InviteAction.REVOKE): InviteStatus.REVOKED,
    (InviteStatus.ACCEPTED, InviteAction.REVOKE): InviteStatus.REVOKED,
    (InviteStatus.ACCEPTED, InviteAction.CONSUME): InviteStatus.CONSUMED,
}


def next_invite_status(current: InviteStatus, action: InviteAction) -> InviteStatus:
    """Return the status *action* leads to, or raise InviteNotActive."""
    try:
        return INVITE_TRANSITIONS[(InviteStatus(current), action)]
    except KeyError:
        raise InviteNotActive() from None


_ACTIVE_STATUS_SQL = "status IN ('reserved', 'accepted')"


class MemberInvite(Base):
    """An owner's reservation of an email address for their household."""

    __tablename__ = "member_invites"
    __table_args__ = (
        # One active invite per email across all households; backs the
        # read-then-insert duplicate check in InviteService.reserve
        Index(
            "uq_member_invites_active_email",
            "email",
            unique=True,
            postgresql_where=text(_ACTIVE_STATUS_SQL),
            sqlite_where=text(_ACTIVE_STATUS_SQL),
        ),
        Index("ix_member_invites_household_status", "household_id", "status", "invited_at"),
    )

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    household_id = Column(
        UUID(), ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email = Column(String(255), nullable=False, index=True)
    status = Column(
        SQLEnum(InviteStatus, name="invite_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=InviteStatus.RESERVED,
    )
    invited_by = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    invited_at = Column(DateTime, default=utc_now_lambda, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utc_now_lambda, onupdate=utc_now_lambda, nullable=False)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_INVITE_STATUSES

    def apply(self, action: InviteAction) -> InviteStatus:
        """Move the invite along INVITE_TRANSITIONS; raises InviteNotActive when illegal."""
        self.status = next_invite_status(self.status, action)
        if action == InviteAction.ACCEPT:
            self.accepted_at = utc_now()
        return self.status

    def __repr__(self):
        return f"<MemberInvite {self.id} {self.status}>"


class InviteToken(Base):
    """One-time token embedded in the accept/decline links of an invite email."""

    __tablename__ = "invite_tokens"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    household_id = Column(
        UUID(), ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invite_id = Column(
        UUID(), ForeignKey("member_invites.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email = Column(String(255), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)

    @property
    def is_expired(self) -> bool:
        return utc_now() > self.expires_at
