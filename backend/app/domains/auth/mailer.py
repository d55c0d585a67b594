"""
Email delivery for verification codes
Mock sender for development and tests, SMTP sender for deployments
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, List, Optional, Protocol

from app.core.config import settings
from app.core.data_protection import DataProtection
from app.core.exceptions import EmailServiceError

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    """Anything able to deliver a verification code; raises on failure"""

    def send_verification_email(self, email: str, code: str) -> None:
        ...


def render_verification_email(code: str) -> tuple[str, str]:
    """Return (subject, html body) for a verification code"""
    minutes = settings.VERIFICATION_CODE_EXPIRE_MINUTES
    subject = f"{settings.PROJECT_NAME} - Código de verificación"
    body = f"""
    <h2>Verifica tu email</h2>
    <p>Tu código de verificación es:</p>
    <p style="font-size: 24px; letter-spacing: 4px;"><strong>{code}</strong></p>
    <p>El código expira en {minutes} minutos.</p>
    <p>Si no creaste una cuenta, ignora este mensaje.</p>
    """
    return subject, body


class MockEmailSender:
    """Keeps sent messages in memory instead of delivering them"""

    def __init__(self):
        self.sent_messages: List[Dict[str, str]] = []
        self.should_fail = False

    def send_verification_email(self, email: str, code: str) -> None:
        if self.should_fail:
            raise EmailServiceError(
                internal_message=f"Mock email failure for {DataProtection.mask_email(email)}"
            )

        self.sent_messages.append({"email": email, "code": code})
        logger.info("[Mock Email] verification code sent to %s", DataProtection.mask_email(email))

    def get_last_code(self, email: str) -> Optional[str]:
        """Get the last verification code sent to an address"""
        for msg in reversed(self.sent_messages):
            if msg["email"] == email:
                return msg["code"]
        return None

    def clear(self):
        self.sent_messages.clear()

    def set_fail(self, should_fail: bool = True):
        self.should_fail = should_fail


class SMTPEmailSender:
    """Delivers verification codes through an SMTP relay"""

    def __init__(
        self,
        host: str,
        port: int,
        from_email: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        from_name: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.from_email = from_email
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_name = from_name

    def send_verification_email(self, email: str, code: str) -> None:
        subject, body = render_verification_email(code)

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{self.from_name} <{self.from_email}>" if self.from_name else self.from_email
        msg['To'] = email
        msg.attach(MIMEText(body, 'html'))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailServiceError(
                internal_message=f"SMTP delivery to {DataProtection.mask_email(email)} failed: "
                                 f"{type(e).__name__}: {e}"
            ) from e

        logger.info("Verification email sent to %s", DataProtection.mask_email(email))


def get_email_sender() -> EmailSender:
    """Build the sender selected by EMAIL_SERVICE"""
    if settings.EMAIL_SERVICE == "smtp":
        return SMTPEmailSender(
            host=settings.SMTP_HOST or "",
            port=settings.SMTP_PORT,
            from_email=settings.EMAILS_FROM_EMAIL or "",
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_TLS,
            from_name=settings.EMAILS_FROM_NAME,
        )
    return MockEmailSender()
