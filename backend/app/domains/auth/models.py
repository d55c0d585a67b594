"""
Authentication domain models (Database tables)
User, RefreshToken, VerificationCode
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Index
from sqlmodel import Field, Relationship, SQLModel

from app.core.security import utc_now

# =============================================================================
# User Models
# =============================================================================

class UserBase(SQLModel):
    """User base model"""
    email: str = Field(unique=True, index=True, max_length=255, description="Email")
    name: str = Field(max_length=100, description="Nombre")
    lastname: str = Field(default="", max_length=100, description="Apellido")
    is_verified: bool = Field(default=False, description="Email verificado")


class User(UserBase, table=True):
    """User database table"""
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    hashed_password: str = Field(max_length=255)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = Field(default=None)

    # Relationships
    refresh_tokens: list["RefreshToken"] = Relationship(
        back_populates="user",
        cascade_delete=True
    )
    verification_codes: list["VerificationCode"] = Relationship(
        back_populates="user",
        cascade_delete=True
    )


# =============================================================================
# RefreshToken Models (Login sessions)
# =============================================================================

class RefreshToken(SQLModel, table=True):
    """
    Issued refresh token

    Rows are only mutated to set is_revoked/revoked_at/replaced_by and are
    only deleted by the expiry sweep, so a revoked token stays inspectable.
    """
    __tablename__ = "refresh_tokens"
    __table_args__ = (
        Index(
            "ix_refresh_tokens_user_revoked_created",
            "user_id", "is_revoked", "created_at",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    token: str = Field(unique=True, index=True, max_length=128, description="Token opaco")
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    device_info: Optional[str] = Field(default=None, max_length=500, description="User agent")
    ip_address: Optional[str] = Field(default=None, max_length=45, description="Dirección IP")
    created_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime = Field(description="Fecha de expiración")
    is_revoked: bool = Field(default=False)
    revoked_at: Optional[datetime] = Field(default=None)
    replaced_by: Optional[str] = Field(default=None, max_length=128, description="Token sucesor")

    # Relationships
    user: User = Relationship(back_populates="refresh_tokens")


# =============================================================================
# VerificationCode Models
# =============================================================================

class VerificationCode(SQLModel, table=True):
    """One-time email verification code"""
    __tablename__ = "verification_codes"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    code: str = Field(max_length=6, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    created_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime
    is_used: bool = Field(default=False)

    # Relationships
    user: User = Relationship(back_populates="verification_codes")
