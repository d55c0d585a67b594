"""
Authentication domain schemas (Request/Response models)
Pydantic models for API requests and responses
"""
import uuid
from datetime import datetime
from typing import Optional

from pydantic import field_validator
from sqlmodel import Field, SQLModel

# =============================================================================
# User Schemas
# =============================================================================

class UserPublic(SQLModel):
    """Public user information, never carries the password hash"""
    id: uuid.UUID
    email: str
    name: str
    lastname: str = ""
    is_verified: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class RegisterRequest(SQLModel):
    """Registration request"""
    email: str = Field(max_length=255, description="Email")
    password: str = Field(min_length=6, max_length=128, description="Contraseña")
    name: str = Field(max_length=100, description="Nombre")
    lastname: Optional[str] = Field(default=None, max_length=100, description="Apellido")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError('El nombre debe tener al menos 2 caracteres')
        return v

    @field_validator('lastname')
    @classmethod
    def validate_lastname(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2:
            raise ValueError('El apellido debe tener al menos 2 caracteres')
        return v


class RegisterResponse(SQLModel):
    """Registration never authenticates: no tokens here"""
    user: UserPublic
    requires_verification: bool = True


class LoginRequest(SQLModel):
    """Password login request"""
    email: str = Field(max_length=255)
    password: str = Field(min_length=1, max_length=128)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class VerifyEmailRequest(SQLModel):
    """Email verification request"""
    email: str = Field(max_length=255)
    code: str = Field(description="Código de verificación")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator('code')
    @classmethod
    def validate_verification_code(cls, v: str) -> str:
        if not v.isdigit() or len(v) != 6:
            raise ValueError('El código debe tener 6 dígitos')
        return v


class ResendVerificationRequest(SQLModel):
    """Resend verification code request"""
    email: str = Field(max_length=255)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class MessageResponse(SQLModel):
    """Generic message response"""
    success: bool = True
    message: str


# =============================================================================
# Token Schemas
# =============================================================================

class AuthResponse(SQLModel):
    """Login / verify / refresh response"""
    user: UserPublic
    access_token: str = Field(description="Token de acceso")
    refresh_token: str = Field(description="Token de renovación")
    token_type: str = Field(default="bearer")
    expires_in: int = Field(description="Expiración del token de acceso (segundos)")


class RefreshRequest(SQLModel):
    """Refresh token request"""
    refresh_token: str = Field(min_length=1)


class LogoutRequest(SQLModel):
    """Logout request; a missing token is accepted"""
    refresh_token: Optional[str] = None


class TokenPayload(SQLModel):
    """JWT token payload"""
    sub: Optional[str] = None  # User ID
    exp: Optional[int] = None  # Expiration time


# =============================================================================
# Session Schemas
# =============================================================================

class SessionPublic(SQLModel):
    """Active refresh token projection, without the raw token"""
    id: uuid.UUID
    device_info: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime
    expires_at: datetime


class SessionsPublic(SQLModel):
    """List of sessions"""
    data: list[SessionPublic]
    count: int
