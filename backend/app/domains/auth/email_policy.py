"""
Registration email policy
Rejects malformed addresses, disposable domains and unknown providers
"""
from typing import Iterable, Optional

from email_validator import EmailNotValidError, validate_email as _validate_format

from app.core.config import settings
from app.core.exceptions import ValidationError


def extract_domain(email: str) -> Optional[str]:
    parts = email.lower().strip().split("@")
    return parts[1] if len(parts) == 2 and parts[1] else None


def check_email(
    email: str,
    allowed_domains: Optional[Iterable[str]] = None,
    blocked_domains: Optional[Iterable[str]] = None,
) -> str:
    """
    Validate an email for registration

    Args:
        email: Address as submitted
        allowed_domains: Provider allowlist (defaults to EMAIL_ALLOWED_DOMAINS)
        blocked_domains: Disposable-domain blocklist (defaults to EMAIL_BLOCKED_DOMAINS)

    Returns:
        The normalised (trimmed, lower-cased) address

    Raises:
        ValidationError: with a field-specific message
    """
    allowed = set(allowed_domains if allowed_domains is not None else settings.EMAIL_ALLOWED_DOMAINS)
    blocked = set(blocked_domains if blocked_domains is not None else settings.EMAIL_BLOCKED_DOMAINS)

    if not email or not isinstance(email, str):
        raise ValidationError("Email inválido", field="email")

    normalized = email.strip().lower()
    try:
        _validate_format(normalized, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(
            "Formato de email inválido",
            field="email",
            internal_message=f"Email format rejected: {e}",
        )

    domain = extract_domain(normalized)
    if not domain:
        raise ValidationError("Formato de email inválido", field="email")

    if domain in blocked:
        raise ValidationError(
            "No se permiten correos temporales o desechables", field="email"
        )

    if domain not in allowed:
        raise ValidationError(
            f"El dominio {domain} no está en la lista de proveedores permitidos. "
            "Usa Gmail, Hotmail, Yahoo, iCloud u otro proveedor reconocido.",
            field="email",
        )

    return normalized
