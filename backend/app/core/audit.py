"""
Audit logging module
Logs security-relevant events for compliance and monitoring
"""
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from app.core.config import settings
from app.core.data_protection import DataProtection

# Configure audit logger
audit_logger = logging.getLogger("audit")
audit_logger.setLevel(logging.INFO)

# Write to a dedicated file only when one is configured; otherwise records
# propagate to the root handlers
if settings.AUDIT_LOG_FILE and not audit_logger.handlers:
    handler = logging.FileHandler(settings.AUDIT_LOG_FILE)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    handler.setFormatter(formatter)
    audit_logger.addHandler(handler)


class AuditEventType(str, Enum):
    """Audit event types"""
    # Authentication events
    USER_REGISTERED = "user_registered"
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    LOGOUT_ALL = "logout_all"

    # Verification code events
    CODE_SENT = "verification_code_sent"
    CODE_VERIFIED = "verification_code_verified"
    CODE_FAILED = "verification_code_failed"

    # Refresh token events
    TOKEN_REFRESHED = "token_refreshed"
    TOKEN_REUSE_DETECTED = "token_reuse_detected"
    INVALID_TOKEN = "invalid_token"


class AuditService:
    """Service for audit logging"""

    @staticmethod
    def log_event(
        event_type: AuditEventType,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        ip_address: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        success: bool = True
    ) -> None:
        """
        Log an audit event

        Args:
            event_type: Type of event
            user_id: User ID (if applicable)
            email: Email address (if applicable), masked before writing
            ip_address: Client IP address
            details: Additional event details, sanitized before writing
            success: Whether the event was successful
        """
        event_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type.value,
            "success": success,
        }

        if user_id:
            event_data["user_id"] = str(user_id)

        if email:
            event_data["email"] = DataProtection.mask_email(email)

        if ip_address:
            event_data["ip_address"] = ip_address

        if details:
            event_data["details"] = DataProtection.sanitize_dict(details)

        # Log as JSON for easy parsing
        audit_logger.info(json.dumps(event_data, default=str))

    @staticmethod
    def log_user_registered(user_id: str, email: str, resumed: bool = False) -> None:
        """Log registration (or re-registration of an unverified account)"""
        AuditService.log_event(
            event_type=AuditEventType.USER_REGISTERED,
            user_id=user_id,
            email=email,
            details={"resumed": resumed},
        )

    @staticmethod
    def log_login_success(
        user_id: str,
        email: str,
        ip_address: Optional[str] = None
    ) -> None:
        """Log successful login"""
        AuditService.log_event(
            event_type=AuditEventType.LOGIN_SUCCESS,
            user_id=user_id,
            email=email,
            ip_address=ip_address,
            success=True
        )

    @staticmethod
    def log_login_failed(
        email: str,
        ip_address: Optional[str],
        reason: str
    ) -> None:
        """Log failed login attempt"""
        AuditService.log_event(
            event_type=AuditEventType.LOGIN_FAILED,
            email=email,
            ip_address=ip_address,
            details={"reason": reason},
            success=False
        )

    @staticmethod
    def log_logout(user_id: Optional[str] = None, all_sessions: bool = False, count: int = 0) -> None:
        """Log logout event"""
        AuditService.log_event(
            event_type=AuditEventType.LOGOUT_ALL if all_sessions else AuditEventType.LOGOUT,
            user_id=user_id,
            details={"revoked": count},
            success=True
        )

    @staticmethod
    def log_code_sent(user_id: str, email: str) -> None:
        """Log verification code sent"""
        AuditService.log_event(
            event_type=AuditEventType.CODE_SENT,
            user_id=user_id,
            email=email,
            success=True
        )

    @staticmethod
    def log_code_verified(user_id: str) -> None:
        """Log verification code verified"""
        AuditService.log_event(
            event_type=AuditEventType.CODE_VERIFIED,
            user_id=user_id,
            success=True
        )

    @staticmethod
    def log_code_failed(user_id: str) -> None:
        """Log verification code rejected"""
        AuditService.log_event(
            event_type=AuditEventType.CODE_FAILED,
            user_id=user_id,
            success=False
        )

    @staticmethod
    def log_token_refreshed(user_id: str, ip_address: Optional[str], grace: bool) -> None:
        AuditService.log_event(
            event_type=AuditEventType.TOKEN_REFRESHED,
            user_id=user_id,
            ip_address=ip_address,
            details={"grace": grace},
        )

    @staticmethod
    def log_token_reuse_detected(user_id: str, revoked: int) -> None:
        """Log a replayed refresh token and the size of the revoked family"""
        AuditService.log_event(
            event_type=AuditEventType.TOKEN_REUSE_DETECTED,
            user_id=user_id,
            details={"revoked": revoked},
            success=False
        )

    @staticmethod
    def log_invalid_token(reason: str) -> None:
        AuditService.log_event(
            event_type=AuditEventType.INVALID_TOKEN,
            details={"reason": reason},
            success=False
        )


# Create audit service instance
audit_service = AuditService()
