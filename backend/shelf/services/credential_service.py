"""Password credentials and login sessions."""

import logging
from uuid import UUID

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.core.exceptions import EmailInUse, InvalidCredentials, Unauthenticated
from shelf.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_jti,
    hash_password,
    verify_password,
)
from shelf.crud.user import refresh_token_crud, user_crud
from shelf.models.user import AuthAccount, User
from shelf.utils.email_utils import normalize_email
from shelf.utils.logging_utils import redact_email

logger = logging.getLogger(__name__)

PASSWORD_PROVIDER = "password"

# Verified against when the account does not exist so that response time
# does not reveal which emails are registered.
_DUMMY_HASH = hash_password("shelf-timing-equalizer")


class CredentialService:
    """Password provider: sign-up, sign-in and refresh-token sessions."""

    @staticmethod
    async def sign_up(db: AsyncSession, email: str, password: str) -> User:
        """Create an unassigned account with a password credential."""
        email = normalize_email(email)
        if await user_crud.get_by_email(db, email) is not None:
            raise EmailInUse()

        user = User(email=email)
        db.add(user)
        await db.flush()
        db.add(
            AuthAccount(
                user_id=user.id,
                provider=PASSWORD_PROVIDER,
                provider_account_id=email,
                secret_hash=hash_password(password),
            )
        )
        await db.commit()

        logger.info("Account created for %s", redact_email(email))
        return user

    @staticmethod
    async def authenticate(db: AsyncSession, email: str, password: str) -> User:
        """Return the user for a valid email/password pair."""
        email = normalize_email(email)
        result = await db.execute(
            select(AuthAccount).where(
                AuthAccount.provider == PASSWORD_PROVIDER,
                AuthAccount.provider_account_id == email,
            )
        )
        account = result.scalar_one_or_none()

        if account is None or not account.secret_hash:
            verify_password(password, _DUMMY_HASH)
            raise InvalidCredentials()
        if not verify_password(password, account.secret_hash):
            logger.warning("Failed sign-in for %s", redact_email(email))
            raise InvalidCredentials()

        user = await user_crud.get_by_id(db, account.user_id)
        if user is None:
            raise InvalidCredentials()

        await user_crud.update_last_login(db, user.id)
        return user

    @staticmethod
    async def open_session(db: AsyncSession, user_id: UUID) -> tuple[str, str]:
        """Issue an access/refresh token pair. Returns ``(access, refresh)``."""
        access_token = create_access_token(data={"sub": str(user_id)})
        refresh_token, jti, expires_at = create_refresh_token(str(user_id))
        await refresh_token_crud.create(db, user_id=user_id, token_hash=hash_jti(jti), expires_at=expires_at)
        return access_token, refresh_token

    @staticmethod
    def _decode_refresh(refresh_token: str) -> tuple[UUID, str]:
        try:
            payload = decode_token(refresh_token)
        except JWTError:
            raise Unauthenticated("Invalid refresh token.")

        jti = payload.get("jti")
        subject = payload.get("sub")
        if payload.get("type") != "refresh" or not jti or not subject:
            raise Unauthenticated("Invalid refresh token.")
        try:
            return UUID(subject), jti
        except ValueError:
            raise Unauthenticated("Invalid refresh token.")

    async def refresh_session(self, db: AsyncSession, refresh_token: str) -> tuple[str, str]:
        """Rotate a refresh token: revoke it and open a new session."""
        user_id, jti = self._decode_refresh(refresh_token)

        stored = await refresh_token_crud.get_by_token_hash(db, hash_jti(jti))
        if stored is None or stored.is_revoked or stored.is_expired or stored.user_id != user_id:
            raise Unauthenticated("Invalid refresh token.")
        if await user_crud.get_by_id(db, user_id) is None:
            raise Unauthenticated("Invalid refresh token.")

        await refresh_token_crud.revoke(db, stored.token_hash)
        return await self.open_session(db, user_id)

    async def close_session(self, db: AsyncSession, refresh_token: str) -> None:
        """Revoke a refresh token. Unknown or malformed tokens are ignored."""
        try:
            _, jti = self._decode_refresh(refresh_token)
        except Unauthenticated:
            return
        await refresh_token_crud.revoke(db, hash_jti(jti))


credential_service = CredentialService()
