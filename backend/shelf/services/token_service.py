"""One-time token helpers shared by invites and email verification.

Raw tokens are generated here, handed to the caller once to be embedded in
an email link, and never stored: the database only sees their SHA-256 digest.
"""

import hashlib
import secrets
from datetime import datetime
from typing import Optional, TypeVar, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.core.exceptions import InvalidToken, TokenExpired, TokenUsed
from shelf.models.invite import InviteToken
from shelf.models.user import EmailVerificationToken
from shelf.utils.datetime_utils import utc_now

TokenModel = TypeVar("TokenModel", bound=Union[InviteToken, EmailVerificationToken])

# 32 random bytes = 256 bits of entropy
TOKEN_BYTES = 32


def hash_token(token: str) -> str:
    """Return the SHA-256 hex digest of a raw token string."""
    return hashlib.sha256(token.encode()).hexdigest()


def issue_token() -> tuple[str, str]:
    """Generate a new token. Returns ``(raw_token, token_hash)``."""
    raw_token = secrets.token_urlsafe(TOKEN_BYTES)
    return raw_token, hash_token(raw_token)


async def redeem_token(
    db: AsyncSession,
    model: type[TokenModel],
    raw_token: Optional[str],
    now: Optional[datetime] = None,
) -> TokenModel:
    """
    Look up a token row by the hash of *raw_token* and check it is redeemable.

    The row is selected FOR UPDATE so two concurrent redemptions serialize.
    The caller marks ``used_at`` in the same transaction once its own checks
    pass; a replay then fails here with TokenUsed.

    Raises:
        InvalidToken: no row matches (or the token is blank)
        TokenUsed: the token was already redeemed
        TokenExpired: ``expires_at`` is in the past
    """
    raw_token = (raw_token or "").strip()
    if not raw_token:
        raise InvalidToken()

    result = await db.execute(
        select(model).where(model.token_hash == hash_token(raw_token)).with_for_update()
    )
    record = result.scalar_one_or_none()

    if record is None:
        raise InvalidToken()
    if record.used_at is not None:
        raise TokenUsed()
    if record.expires_at < (now or utc_now()):
        raise TokenExpired()

    return record
