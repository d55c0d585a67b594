"""
Refresh token ledger
Issuing, rotating and validating refresh tokens with reuse detection
"""
import logging
import uuid
from datetime import timedelta
from typing import List, Optional

from sqlmodel import Session

from app.core.audit import audit_service
from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    ErrorCode,
    TokenExpiredError,
    TokenRevokedError,
)
from app.core.security import Clock, generate_refresh_token, utc_now

from .models import RefreshToken
from .repository import RefreshTokenRepository

logger = logging.getLogger(__name__)


class RefreshTokenService:
    """
    Refresh token lifecycle

    A token moves Active -> Rotated (revoked, replaced_by set) or
    Active -> Expired (revoked). Presenting a rotated token again is
    answered with its successor while the successor is still usable and the
    rotation is recent (grace path); any other use of a revoked token is
    treated as theft and revokes the whole family.
    """

    def __init__(
        self,
        db_session: Session,
        clock: Clock = utc_now,
        expire_days: Optional[int] = None,
        grace_seconds: Optional[int] = None
    ):
        self.clock = clock
        self.repo = RefreshTokenRepository(db_session, clock)
        self.expire_days = (
            settings.REFRESH_TOKEN_EXPIRE_DAYS if expire_days is None else expire_days
        )
        self.grace_seconds = (
            settings.REFRESH_TOKEN_REUSE_GRACE_SECONDS if grace_seconds is None else grace_seconds
        )

    async def create_refresh_token(
        self,
        user_id: uuid.UUID,
        device_info: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> RefreshToken:
        """Issue a brand-new token row for a user"""
        return await self.repo.create(
            user_id=user_id,
            token=generate_refresh_token(),
            expires_at=self.clock() + timedelta(days=self.expire_days),
            device_info=device_info,
            ip_address=ip_address
        )

    def _within_grace(self, token: RefreshToken) -> bool:
        if token.revoked_at is None:
            return False
        return self.clock() - token.revoked_at <= timedelta(seconds=self.grace_seconds)

    async def _usable_successor(self, token: RefreshToken) -> Optional[RefreshToken]:
        if not token.replaced_by or not self._within_grace(token):
            return None

        successor = await self.repo.get_by_token(token.replaced_by)
        if successor is None or successor.is_revoked:
            return None
        if self.clock() > successor.expires_at:
            return None
        return successor

    async def validate_refresh_token(self, token: str) -> RefreshToken:
        """
        Validate a presented refresh token

        Args:
            token: Opaque token string

        Returns:
            The token record, or its successor on the grace path

        Raises:
            AuthenticationError: unknown token
            TokenExpiredError: token past expires_at (it is revoked first)
            TokenRevokedError: reuse detected (the family is revoked first)
        """
        record = await self.repo.get_by_token(token)

        if record is None:
            audit_service.log_invalid_token("unknown refresh token")
            raise AuthenticationError(
                user_message="Refresh token inválido",
                error_code=ErrorCode.INVALID_TOKEN
            )

        if self.clock() > record.expires_at:
            await self.repo.revoke(token)
            raise TokenExpiredError(
                internal_message=f"Refresh token {record.id} expired at {record.expires_at}"
            )

        if not record.is_revoked:
            return record

        successor = await self._usable_successor(record)
        if successor is not None:
            logger.info("Refresh token %s presented again, answering with successor %s",
                        record.id, successor.id)
            return successor

        revoked = await self.revoke_token_family(token)
        audit_service.log_token_reuse_detected(str(record.user_id), revoked)
        raise TokenRevokedError(
            internal_message=f"Reuse of revoked refresh token {record.id} "
                             f"(user {record.user_id}), {revoked} token(s) revoked"
        )

    async def revoke_refresh_token(self, token: str, replaced_by: Optional[str] = None) -> bool:
        """Revoke a token; replaced_by is None for a plain logout"""
        return await self.repo.revoke(token, replaced_by)

    async def rotate_refresh_token(self, token: str, replaced_by: str) -> bool:
        """Revoke an active token in favour of replaced_by; False if it lost a race"""
        return await self.repo.rotate(token, replaced_by)

    async def revoke_token_family(self, token: str) -> int:
        """
        Revoke a compromised token and everything issued after it

        The family is every token of the same user created at or after the
        compromised token, which covers all of its rotation descendants.

        Returns:
            Number of tokens revoked by the bulk update
        """
        current = await self.repo.get_by_token(token)
        if current is None:
            return 0

        if not current.is_revoked:
            await self.repo.revoke(token)
        return await self.repo.revoke_created_since(current.user_id, current.created_at)

    async def revoke_all_user_tokens(self, user_id: uuid.UUID) -> int:
        return await self.repo.revoke_all(user_id)

    async def get_user_active_tokens(self, user_id: uuid.UUID) -> List[RefreshToken]:
        return await self.repo.get_active(user_id)

    async def clean_expired_tokens(self) -> int:
        """Delete expired tokens (maintenance task, not on the request path)"""
        count = await self.repo.delete_expired()
        logger.info("Deleted %d expired refresh token(s)", count)
        return count
