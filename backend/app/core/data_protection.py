"""
Data protection utilities for masking sensitive information
Keeps emails, tokens and verification codes out of logs in clear text
"""
from typing import Any, Optional


class DataProtection:
    """Utility class for masking sensitive data"""

    @staticmethod
    def mask_email(email: Optional[str]) -> str:
        """
        Mask email address showing only first character and domain.

        Args:
            email: Email address to mask

        Returns:
            Masked email (e.g., "u***@example.com")

        Examples:
            >>> DataProtection.mask_email("user@example.com")
            'u***@example.com'
        """
        if not email or '@' not in email:
            return "***"

        local, domain = email.split('@', 1)
        if len(local) <= 1:
            return f"***@{domain}"

        return f"{local[0]}***@{domain}"

    @staticmethod
    def mask_token(token: Optional[str], show_first: int = 8) -> str:
        """
        Mask token showing only first N characters.

        Examples:
            >>> DataProtection.mask_token("a3f9c2d4e5b6a7c8d9e0")
            'a3f9c2d4...'
        """
        if not token:
            return "***"

        if len(token) <= show_first:
            return "***"

        return f"{token[:show_first]}..."

    @staticmethod
    def should_mask_field(field_name: str) -> bool:
        """
        Determine if a field should be masked based on its name.

        Examples:
            >>> DataProtection.should_mask_field("refresh_token")
            True
            >>> DataProtection.should_mask_field("device_info")
            False
        """
        sensitive_keywords = [
            'password', 'secret', 'token', 'code', 'credential', 'authorization'
        ]

        field_lower = field_name.lower()
        return any(keyword in field_lower for keyword in sensitive_keywords)

    @staticmethod
    def sanitize_dict(data: dict[str, Any]) -> dict[str, Any]:
        """
        Sanitize dictionary by masking sensitive fields.

        Examples:
            >>> DataProtection.sanitize_dict({"email": "user@gmail.com", "code": "123456"})
            {'email': 'u***@gmail.com', 'code': '***REDACTED***'}
        """
        sanitized: dict[str, Any] = {}
        for key, value in data.items():
            key_lower = key.lower()
            if 'email' in key_lower:
                sanitized[key] = DataProtection.mask_email(str(value)) if value else None
            elif 'token' in key_lower:
                sanitized[key] = DataProtection.mask_token(str(value)) if value else None
            elif DataProtection.should_mask_field(key):
                sanitized[key] = "***REDACTED***"
            else:
                sanitized[key] = value

        return sanitized
