"""
Authentication domain repositories
Data access layer for users, refresh tokens and verification codes
"""
import uuid
from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, delete, select, update

from app.core.security import Clock, utc_now

from .models import RefreshToken, User, VerificationCode


class UserRepository:
    """Repository for User CRUD operations"""

    def __init__(self, session: Session, clock: Clock = utc_now):
        """Initialize user repository.

        Args:
            session: SQLModel database session
            clock: Source of naive UTC "now"
        """
        self.session = session
        self.clock = clock

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get user by ID"""
        return self.session.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by (normalised) email"""
        statement = select(User).where(User.email == email.strip().lower())
        result = self.session.exec(statement)
        return result.first()

    async def create(
        self,
        email: str,
        hashed_password: str,
        name: str,
        lastname: Optional[str] = None
    ) -> User:
        """
        Create a new, unverified user

        Args:
            email: Email (required, unique)
            hashed_password: Already hashed password
            name: First name
            lastname: Surname (optional)

        Returns:
            Created User instance
        """
        user = User(
            email=email.strip().lower(),
            hashed_password=hashed_password,
            name=name,
            lastname=lastname or "",
            is_verified=False,
            created_at=self.clock()
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    async def update_pending(
        self,
        user: User,
        hashed_password: str,
        name: str,
        lastname: Optional[str] = None
    ) -> User:
        """Overwrite the credentials of an unverified user registering again"""
        user.hashed_password = hashed_password
        user.name = name
        user.lastname = lastname or ""
        user.updated_at = self.clock()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user


class RefreshTokenRepository:
    """Repository for the refresh token ledger"""

    def __init__(self, session: Session, clock: Clock = utc_now):
        """Initialize refresh token repository.

        Args:
            session: SQLModel database session
            clock: Source of naive UTC "now"
        """
        self.session = session
        self.clock = clock

    async def create(
        self,
        user_id: uuid.UUID,
        token: str,
        expires_at: datetime,
        device_info: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> RefreshToken:
        """Persist a freshly issued token"""
        refresh_token = RefreshToken(
            token=token,
            user_id=user_id,
            device_info=device_info,
            ip_address=ip_address,
            created_at=self.clock(),
            expires_at=expires_at,
            is_revoked=False
        )
        self.session.add(refresh_token)
        self.session.commit()
        self.session.refresh(refresh_token)
        return refresh_token

    async def get_by_token(self, token: str) -> Optional[RefreshToken]:
        """Get token row by its opaque value, revoked or not"""
        statement = select(RefreshToken).where(RefreshToken.token == token)
        result = self.session.exec(statement)
        return result.first()

    async def revoke(self, token: str, replaced_by: Optional[str] = None) -> bool:
        """Mark a token revoked and record (or clear) its successor.

        Returns:
            True if the token exists
        """
        statement = (
            update(RefreshToken)
            .where(RefreshToken.token == token)
            .values(is_revoked=True, revoked_at=self.clock(), replaced_by=replaced_by)
        )
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount > 0

    async def rotate(self, token: str, replaced_by: str) -> bool:
        """Revoke a token in favour of its successor, only if still active.

        The update is conditional on is_revoked being false, so of two
        concurrent rotations of the same token exactly one wins.

        Returns:
            True if this call performed the rotation
        """
        statement = (
            update(RefreshToken)
            .where(
                RefreshToken.token == token,
                RefreshToken.is_revoked == False  # noqa: E712
            )
            .values(is_revoked=True, revoked_at=self.clock(), replaced_by=replaced_by)
        )
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount == 1

    async def revoke_created_since(self, user_id: uuid.UUID, cutoff: datetime) -> int:
        """Revoke every active token of a user created at or after cutoff"""
        statement = (
            update(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.created_at >= cutoff,
                RefreshToken.is_revoked == False  # noqa: E712
            )
            .values(is_revoked=True, revoked_at=self.clock())
        )
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount

    async def revoke_all(self, user_id: uuid.UUID) -> int:
        """Revoke all active tokens for a user using bulk update.

        Returns:
            Number of tokens revoked
        """
        statement = (
            update(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked == False  # noqa: E712
            )
            .values(is_revoked=True, revoked_at=self.clock())
        )
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount

    async def get_active(self, user_id: uuid.UUID) -> List[RefreshToken]:
        """Get all non-revoked, unexpired tokens for a user"""
        statement = (
            select(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked == False,  # noqa: E712
                RefreshToken.expires_at > self.clock()
            )
            .order_by(RefreshToken.created_at.desc())
        )
        result = self.session.exec(statement)
        return list(result.all())

    async def delete_expired(self) -> int:
        """Hard-delete expired tokens; the only deletion path"""
        statement = delete(RefreshToken).where(RefreshToken.expires_at < self.clock())
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount


class VerificationCodeRepository:
    """Repository for verification code storage and retrieval"""

    def __init__(self, session: Session, clock: Clock = utc_now):
        """Initialize verification code repository.

        Args:
            session: SQLModel database session
            clock: Source of naive UTC "now"
        """
        self.session = session
        self.clock = clock

    async def supersede_pending(self, user_id: uuid.UUID) -> int:
        """Mark every unused, unexpired code of a user as used.

        Returns:
            Number of codes superseded
        """
        statement = (
            update(VerificationCode)
            .where(
                VerificationCode.user_id == user_id,
                VerificationCode.is_used == False,  # noqa: E712
                VerificationCode.expires_at > self.clock()
            )
            .values(is_used=True)
        )
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount

    async def create(
        self,
        user_id: uuid.UUID,
        code: str,
        expires_at: datetime
    ) -> VerificationCode:
        """Store a new verification code"""
        verification = VerificationCode(
            code=code,
            user_id=user_id,
            created_at=self.clock(),
            expires_at=expires_at,
            is_used=False
        )
        self.session.add(verification)
        self.session.commit()
        self.session.refresh(verification)
        return verification

    async def find_usable(self, user_id: uuid.UUID, code: str) -> Optional[VerificationCode]:
        """Find an unused, unexpired code matching user and value"""
        statement = select(VerificationCode).where(
            VerificationCode.user_id == user_id,
            VerificationCode.code == code,
            VerificationCode.is_used == False,  # noqa: E712
            VerificationCode.expires_at > self.clock()
        )
        result = self.session.exec(statement)
        return result.first()

    async def consume(self, verification: VerificationCode, user: User) -> bool:
        """Mark the code used and the user verified in a single commit.

        Returns:
            False if the code was consumed concurrently; nothing is changed then
        """
        statement = (
            update(VerificationCode)
            .where(
                VerificationCode.id == verification.id,
                VerificationCode.is_used == False  # noqa: E712
            )
            .values(is_used=True)
        )
        result = self.session.exec(statement)
        if result.rowcount != 1:
            self.session.rollback()
            return False

        user.is_verified = True
        user.updated_at = self.clock()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return True

    async def delete_expired(self) -> int:
        """Delete expired codes.

        Returns:
            Number of codes deleted
        """
        statement = delete(VerificationCode).where(VerificationCode.expires_at < self.clock())
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount
