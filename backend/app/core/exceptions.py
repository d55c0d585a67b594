"""
Custom exceptions and error codes for the application
Separates user-facing messages from internal logging
"""
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    """Standard error codes for the application"""

    # Authentication & Authorization (1xxx)
    INVALID_CREDENTIALS = "AUTH_1001"
    TOKEN_EXPIRED = "AUTH_1002"
    INVALID_TOKEN = "AUTH_1003"
    INSUFFICIENT_PERMISSIONS = "AUTH_1004"
    EMAIL_NOT_VERIFIED = "AUTH_1005"
    TOKEN_REVOKED = "AUTH_1006"

    # Verification Code (2xxx)
    VERIFICATION_CODE_INVALID = "VCODE_2003"
    ALREADY_VERIFIED = "VCODE_2007"

    # Database (4xxx)
    RECORD_NOT_FOUND = "DB_4002"
    DUPLICATE_RECORD = "DB_4003"

    # External Services (5xxx)
    EMAIL_SERVICE_FAILED = "EXT_5003"

    # Validation (6xxx)
    INVALID_INPUT = "VAL_6001"
    BAD_REQUEST = "REQ_6003"

    # Internal Errors (9xxx)
    INTERNAL_SERVER_ERROR = "SYS_9001"
    SERVICE_UNAVAILABLE = "SYS_9002"


class AppException(Exception):
    """
    Base exception for application errors

    Separates user-facing message from internal details:
    - user_message: Safe message shown to users
    - internal_message: Detailed message for logs (may contain sensitive info)
    - error_code: Standard error code for tracking
    """

    def __init__(
        self,
        user_message: str,
        error_code: ErrorCode,
        internal_message: Optional[str] = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.user_message = user_message
        self.internal_message = internal_message or user_message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

        super().__init__(self.internal_message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response"""
        return {
            "error": {
                "code": self.error_code.value,
                "message": self.user_message,
                "details": self.details
            }
        }


# Specific exception classes for common scenarios

class AuthenticationError(AppException):
    """Authentication failed (401)"""
    def __init__(
        self,
        user_message: str = "Credenciales inválidas",
        internal_message: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INVALID_CREDENTIALS
    ):
        super().__init__(
            user_message=user_message,
            error_code=error_code,
            internal_message=internal_message,
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class TokenExpiredError(AuthenticationError):
    """Token has expired"""
    def __init__(
        self,
        user_message: str = "Refresh token expirado",
        internal_message: Optional[str] = None
    ):
        super().__init__(
            user_message=user_message,
            internal_message=internal_message,
            error_code=ErrorCode.TOKEN_EXPIRED
        )


class TokenRevokedError(AuthenticationError):
    """A revoked refresh token was presented again"""
    def __init__(
        self,
        user_message: str = (
            "Refresh token revocado. Por seguridad, se han revocado todos tus tokens."
        ),
        internal_message: Optional[str] = None
    ):
        super().__init__(
            user_message=user_message,
            internal_message=internal_message,
            error_code=ErrorCode.TOKEN_REVOKED
        )


class PermissionDeniedError(AppException):
    """Authenticated but not permitted (403)"""
    def __init__(
        self,
        user_message: str = "Permisos insuficientes",
        error_code: ErrorCode = ErrorCode.INSUFFICIENT_PERMISSIONS,
        internal_message: Optional[str] = None
    ):
        super().__init__(
            user_message=user_message,
            error_code=error_code,
            internal_message=internal_message,
            status_code=status.HTTP_403_FORBIDDEN
        )


class ValidationError(AppException):
    """Input validation failed"""
    def __init__(
        self,
        user_message: str,
        field: Optional[str] = None,
        internal_message: Optional[str] = None
    ):
        details = {"field": field} if field else {}
        super().__init__(
            user_message=user_message,
            error_code=ErrorCode.INVALID_INPUT,
            internal_message=internal_message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class BadRequestError(AppException):
    """Request is well formed but not applicable to the current state"""
    def __init__(
        self,
        user_message: str,
        error_code: ErrorCode = ErrorCode.BAD_REQUEST,
        internal_message: Optional[str] = None
    ):
        super().__init__(
            user_message=user_message,
            error_code=error_code,
            internal_message=internal_message,
            status_code=status.HTTP_400_BAD_REQUEST
        )


class VerificationCodeError(BadRequestError):
    """Verification code related errors"""
    def __init__(
        self,
        user_message: str = "Código inválido o expirado. Solicita uno nuevo.",
        error_code: ErrorCode = ErrorCode.VERIFICATION_CODE_INVALID,
        internal_message: Optional[str] = None
    ):
        super().__init__(
            user_message=user_message,
            error_code=error_code,
            internal_message=internal_message
        )


class RecordNotFoundError(AppException):
    """Database record not found"""
    def __init__(
        self,
        user_message: str = "Registro no encontrado",
        resource: Optional[str] = None
    ):
        details = {"resource": resource} if resource else {}
        super().__init__(
            user_message=user_message,
            error_code=ErrorCode.RECORD_NOT_FOUND,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details
        )


class ConflictError(AppException):
    """Record already exists (409)"""
    def __init__(
        self,
        user_message: str = "El registro ya existe",
        resource: Optional[str] = None,
        internal_message: Optional[str] = None
    ):
        details = {"resource": resource} if resource else {}
        super().__init__(
            user_message=user_message,
            error_code=ErrorCode.DUPLICATE_RECORD,
            internal_message=internal_message,
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class ExternalServiceError(AppException):
    """External service (SMTP, etc.) failed"""
    def __init__(
        self,
        user_message: str,
        error_code: ErrorCode,
        internal_message: Optional[str] = None
    ):
        super().__init__(
            user_message=user_message,
            error_code=error_code,
            internal_message=internal_message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


class EmailServiceError(ExternalServiceError):
    """Email delivery failed"""
    def __init__(
        self,
        user_message: str = "No se pudo enviar el correo, inténtalo más tarde",
        internal_message: Optional[str] = None
    ):
        super().__init__(
            user_message=user_message,
            error_code=ErrorCode.EMAIL_SERVICE_FAILED,
            internal_message=internal_message
        )


# Helper function to convert standard HTTPException to AppException
def http_exception_to_app_exception(exc: HTTPException) -> AppException:
    """Convert FastAPI HTTPException to AppException"""

    # Map status codes to error codes
    status_to_error_code = {
        400: ErrorCode.BAD_REQUEST,
        401: ErrorCode.INVALID_CREDENTIALS,
        403: ErrorCode.INSUFFICIENT_PERMISSIONS,
        404: ErrorCode.RECORD_NOT_FOUND,
        409: ErrorCode.DUPLICATE_RECORD,
        500: ErrorCode.INTERNAL_SERVER_ERROR,
        503: ErrorCode.SERVICE_UNAVAILABLE,
    }

    error_code = status_to_error_code.get(exc.status_code, ErrorCode.INTERNAL_SERVER_ERROR)

    return AppException(
        user_message=str(exc.detail),
        error_code=error_code,
        status_code=exc.status_code
    )
