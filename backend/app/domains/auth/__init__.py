"""
Authentication domain
Handles registration, email verification, login and refresh token sessions
"""
from .mailer import EmailSender, MockEmailSender, SMTPEmailSender, get_email_sender
from .models import RefreshToken, User, VerificationCode
from .repository import (
    RefreshTokenRepository,
    UserRepository,
    VerificationCodeRepository,
)
from .schemas import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
    SessionPublic,
    SessionsPublic,
    TokenPayload,
    UserPublic,
    VerifyEmailRequest,
)
from .service import AuthService
from .tokens import RefreshTokenService
from .verification import VerificationService

__all__ = [
    # Models
    "User",
    "RefreshToken",
    "VerificationCode",
    # Schemas
    "RegisterRequest",
    "RegisterResponse",
    "LoginRequest",
    "VerifyEmailRequest",
    "ResendVerificationRequest",
    "RefreshRequest",
    "LogoutRequest",
    "AuthResponse",
    "MessageResponse",
    "TokenPayload",
    "UserPublic",
    "SessionPublic",
    "SessionsPublic",
    # Services
    "AuthService",
    "RefreshTokenService",
    "VerificationService",
    # Repositories
    "UserRepository",
    "RefreshTokenRepository",
    "VerificationCodeRepository",
    # Email
    "EmailSender",
    "MockEmailSender",
    "SMTPEmailSender",
    "get_email_sender",
]
