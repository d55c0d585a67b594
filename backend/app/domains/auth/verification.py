"""
Email verification codes
Generation, delivery, validation and cleanup of one-time codes
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from app.core.audit import audit_service
from app.core.config import settings
from app.core.exceptions import (
    BadRequestError,
    ErrorCode,
    RecordNotFoundError,
    VerificationCodeError,
)
from app.core.security import Clock, generate_verification_code, utc_now

from .mailer import EmailSender, get_email_sender
from .models import User, VerificationCode
from .repository import UserRepository, VerificationCodeRepository

logger = logging.getLogger(__name__)


class VerificationService:
    """
    Verification code issuer

    At most one unused, unexpired code exists per user: issuing a new code
    marks the pending ones as used instead of deleting them.
    """

    def __init__(
        self,
        db_session: Session,
        email_sender: Optional[EmailSender] = None,
        clock: Clock = utc_now,
        expire_minutes: Optional[int] = None
    ):
        self.clock = clock
        self.email_sender = email_sender or get_email_sender()
        self.user_repo = UserRepository(db_session, clock)
        self.code_repo = VerificationCodeRepository(db_session, clock)
        self.expire_minutes = (
            settings.VERIFICATION_CODE_EXPIRE_MINUTES if expire_minutes is None else expire_minutes
        )

    async def create_verification(self, user: User) -> VerificationCode:
        """
        Supersede pending codes, issue a new one and email it

        Raises:
            EmailServiceError: delivery failed; the code is stored but the
                call is not considered successful
        """
        superseded = await self.code_repo.supersede_pending(user.id)
        if superseded:
            logger.debug("Superseded %d pending code(s) for user %s", superseded, user.id)

        verification = await self.code_repo.create(
            user_id=user.id,
            code=generate_verification_code(),
            expires_at=self.clock() + timedelta(minutes=self.expire_minutes)
        )

        # smtplib blocks; keep it off the event loop
        await run_in_threadpool(
            self.email_sender.send_verification_email, user.email, verification.code
        )
        audit_service.log_code_sent(str(user.id), user.email)
        return verification

    async def validate_code(self, user: User, code: str) -> bool:
        """
        Consume a code and mark its user verified

        Raises:
            VerificationCodeError: wrong, used or expired code (same message
                for all three)
        """
        verification = await self.code_repo.find_usable(user.id, code)
        if verification is None or not await self.code_repo.consume(verification, user):
            audit_service.log_code_failed(str(user.id))
            raise VerificationCodeError(
                internal_message=f"No usable verification code for user {user.id}"
            )

        audit_service.log_code_verified(str(user.id))
        return True

    async def resend_code(self, email: str) -> VerificationCode:
        """Issue a fresh code for an existing, unverified user"""
        user = await self.user_repo.get_by_email(email)
        if user is None:
            raise RecordNotFoundError(user_message="Usuario no encontrado", resource="user")

        if user.is_verified:
            raise BadRequestError(
                user_message="El usuario ya está verificado",
                error_code=ErrorCode.ALREADY_VERIFIED
            )

        return await self.create_verification(user)

    async def clean_expired_codes(self) -> int:
        """Delete expired codes (maintenance task); returns the count"""
        count = await self.code_repo.delete_expired()
        logger.info("Deleted %d expired verification code(s)", count)
        return count
