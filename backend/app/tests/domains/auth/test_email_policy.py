"""
Tests for registration email policy
"""
import pytest

from app.core.exceptions import ValidationError
from app.domains.auth.email_policy import check_email, extract_domain


class TestExtractDomain:

    def test_extract_domain(self):
        assert extract_domain("User@Gmail.com ") == "gmail.com"
        assert extract_domain("no-at-sign") is None
        assert extract_domain("trailing@") is None


class TestCheckEmail:

    def test_accepts_and_normalises_known_provider(self):
        assert check_email("  Alice@GMAIL.com ") == "alice@gmail.com"

    @pytest.mark.parametrize("email", ["", "plainaddress", "a@", "@gmail.com", "a b@gmail.com"])
    def test_rejects_malformed(self, email):
        with pytest.raises(ValidationError) as exc_info:
            check_email(email)

        assert exc_info.value.details == {"field": "email"}

    def test_rejects_disposable_domain(self):
        with pytest.raises(ValidationError) as exc_info:
            check_email("someone@mailinator.com")

        assert "temporales" in exc_info.value.user_message

    def test_rejects_unknown_provider(self):
        with pytest.raises(ValidationError) as exc_info:
            check_email("someone@unknown-provider.net")

        assert "unknown-provider.net" in exc_info.value.user_message

    def test_blocklist_checked_before_allowlist(self):
        with pytest.raises(ValidationError) as exc_info:
            check_email(
                "someone@trash.io",
                allowed_domains=["trash.io"],
                blocked_domains=["trash.io"],
            )

        assert "temporales" in exc_info.value.user_message

    def test_custom_allowlist(self):
        assert check_email("dev@company.com", allowed_domains=["company.com"]) == "dev@company.com"
