"""
Authentication domain service
Business logic layer for authentication operations
"""
import logging
import uuid
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from app.core.audit import audit_service
from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    BadRequestError,
    ConflictError,
    ErrorCode,
    PermissionDeniedError,
    RecordNotFoundError,
)
from app.core.security import (
    Clock,
    create_access_token,
    get_password_hash,
    utc_now,
    verify_password,
)

from .email_policy import check_email
from .mailer import EmailSender
from .models import RefreshToken, User
from .repository import UserRepository
from .schemas import (
    AuthResponse,
    MessageResponse,
    RegisterResponse,
    SessionPublic,
    UserPublic,
)
from .tokens import RefreshTokenService
from .verification import VerificationService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Credenciales inválidas"

# Hash compared against when the email is unknown, so both login failure
# paths pay for one bcrypt verification
_dummy_hash: Optional[str] = None


def _get_dummy_hash() -> str:
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = get_password_hash(uuid.uuid4().hex)
    return _dummy_hash


class AuthService:
    """
    Authentication service implementing business logic
    Coordinates between repositories to handle auth operations
    """

    def __init__(
        self,
        db_session: Session,
        email_sender: Optional[EmailSender] = None,
        clock: Clock = utc_now
    ):
        """
        Initialize auth service with dependencies

        Args:
            db_session: Database session
            email_sender: Verification email sender (optional, defaults to EMAIL_SERVICE)
            clock: Source of naive UTC "now" (optional)
        """
        self.db_session = db_session
        self.clock = clock

        self.user_repo = UserRepository(db_session, clock)
        self.tokens = RefreshTokenService(db_session, clock)
        self.verification = VerificationService(db_session, email_sender, clock)

        self.access_token_ttl = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    async def _issue_tokens(
        self,
        user: User,
        device_info: Optional[str],
        ip_address: Optional[str]
    ) -> AuthResponse:
        refresh_token = await self.tokens.create_refresh_token(user.id, device_info, ip_address)
        return self._auth_response(user, refresh_token)

    def _auth_response(self, user: User, refresh_token: RefreshToken) -> AuthResponse:
        return AuthResponse(
            user=UserPublic.model_validate(user),
            access_token=create_access_token(subject=str(user.id), now=self.clock()),
            refresh_token=refresh_token.token,
            token_type="bearer",
            expires_in=self.access_token_ttl
        )

    async def register(
        self,
        email: str,
        password: str,
        name: str,
        lastname: Optional[str] = None
    ) -> RegisterResponse:
        """
        Register a user and send a verification code

        Registration never authenticates. Registering again with the email
        of an unverified account replaces its password and names, then
        re-issues the code for that account.

        Raises:
            ValidationError: email rejected by format or domain policy
            ConflictError: a verified account already uses the email
            EmailServiceError: the code could not be delivered
        """
        email = check_email(email)

        existing = await self.user_repo.get_by_email(email)
        if existing is not None and existing.is_verified:
            raise ConflictError(
                user_message="El usuario ya existe",
                resource="user",
                internal_message=f"Registration for verified user {existing.id}"
            )

        hashed_password = await run_in_threadpool(get_password_hash, password)

        if existing is not None:
            user = await self.user_repo.update_pending(
                existing,
                hashed_password=hashed_password,
                name=name,
                lastname=lastname
            )
            await self.verification.create_verification(user)
            audit_service.log_user_registered(str(user.id), email, resumed=True)
            return RegisterResponse(user=UserPublic.model_validate(user))

        user = await self.user_repo.create(
            email=email,
            hashed_password=hashed_password,
            name=name,
            lastname=lastname
        )
        audit_service.log_user_registered(str(user.id), email)
        await self.verification.create_verification(user)
        return RegisterResponse(user=UserPublic.model_validate(user))

    async def verify_email(
        self,
        email: str,
        code: str,
        device_info: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> AuthResponse:
        """
        Validate the emailed code, mark the user verified and log them in

        Raises:
            RecordNotFoundError: no such user
            BadRequestError: already verified
            VerificationCodeError: wrong, used or expired code
        """
        user = await self.user_repo.get_by_email(email)
        if user is None:
            raise RecordNotFoundError(user_message="Usuario no encontrado", resource="user")

        if user.is_verified:
            raise BadRequestError(
                user_message="El usuario ya está verificado",
                error_code=ErrorCode.ALREADY_VERIFIED
            )

        await self.verification.validate_code(user, code)
        audit_service.log_login_success(str(user.id), user.email, ip_address)
        return await self._issue_tokens(user, device_info, ip_address)

    async def resend_verification(self, email: str) -> MessageResponse:
        await self.verification.resend_code(email)
        return MessageResponse(message="Código de verificación reenviado")

    async def login(
        self,
        email: str,
        password: str,
        device_info: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> AuthResponse:
        """
        Password login

        Unknown email and wrong password fail identically.

        Raises:
            AuthenticationError: invalid credentials
            PermissionDeniedError: credentials valid but email not verified
        """
        user = await self.user_repo.get_by_email(email)

        if user is None:
            dummy_hash = await run_in_threadpool(_get_dummy_hash)
            await run_in_threadpool(verify_password, password, dummy_hash)
            audit_service.log_login_failed(email, ip_address, "unknown email")
            raise AuthenticationError(user_message=INVALID_CREDENTIALS)

        if not await run_in_threadpool(verify_password, password, user.hashed_password):
            audit_service.log_login_failed(email, ip_address, "wrong password")
            raise AuthenticationError(user_message=INVALID_CREDENTIALS)

        if not user.is_verified:
            audit_service.log_login_failed(email, ip_address, "email not verified")
            raise PermissionDeniedError(
                user_message="Debes verificar tu email antes de iniciar sesión",
                error_code=ErrorCode.EMAIL_NOT_VERIFIED
            )

        audit_service.log_login_success(str(user.id), user.email, ip_address)
        return await self._issue_tokens(user, device_info, ip_address)

    async def refresh_access_token(
        self,
        refresh_token: str,
        device_info: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> AuthResponse:
        """
        Exchange a refresh token for a new access/refresh pair

        The presented token is rotated: a successor is created and the
        presented token is revoked pointing at it. On the grace path the
        already-issued successor is returned instead of creating another.

        Raises:
            AuthenticationError: invalid, expired or replayed token
        """
        record = await self.tokens.validate_refresh_token(refresh_token)
        user = record.user

        if record.token != refresh_token:
            audit_service.log_token_refreshed(str(user.id), ip_address, grace=True)
            return self._auth_response(user, record)

        successor = await self.tokens.create_refresh_token(user.id, device_info, ip_address)
        if not await self.tokens.rotate_refresh_token(refresh_token, successor.token):
            # A concurrent refresh rotated the token first; discard ours and
            # answer like a retry of that refresh
            logger.info("Concurrent rotation of refresh token %s, discarding %s",
                        record.id, successor.id)
            await self.tokens.revoke_refresh_token(successor.token)
            record = await self.tokens.validate_refresh_token(refresh_token)
            audit_service.log_token_refreshed(str(user.id), ip_address, grace=True)
            return self._auth_response(user, record)

        audit_service.log_token_refreshed(str(user.id), ip_address, grace=False)
        return self._auth_response(user, successor)

    async def logout(self, refresh_token: Optional[str]) -> MessageResponse:
        """Revoke one refresh token; unknown or missing tokens are a no-op"""
        if refresh_token:
            revoked = await self.tokens.revoke_refresh_token(refresh_token)
            audit_service.log_logout(count=int(revoked))
        return MessageResponse(message="Logout exitoso")

    async def logout_all(self, user_id: uuid.UUID) -> MessageResponse:
        count = await self.tokens.revoke_all_user_tokens(user_id)
        audit_service.log_logout(str(user_id), all_sessions=True, count=count)
        return MessageResponse(message="Se han cerrado todas las sesiones")

    async def get_me(self, user_id: uuid.UUID) -> UserPublic:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise RecordNotFoundError(user_message="Usuario no encontrado", resource="user")
        return UserPublic.model_validate(user)

    async def get_active_sessions(self, user_id: uuid.UUID) -> List[SessionPublic]:
        """Non-revoked, unexpired tokens without their raw value"""
        tokens = await self.tokens.get_user_active_tokens(user_id)
        return [SessionPublic.model_validate(t) for t in tokens]
