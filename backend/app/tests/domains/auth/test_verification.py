"""
Tests for verification code issuing, superseding and consumption
"""
from datetime import timedelta

import pytest
from sqlmodel import Session, select

from app.core.exceptions import (
    BadRequestError,
    EmailServiceError,
    ErrorCode,
    RecordNotFoundError,
    VerificationCodeError,
)
from app.domains.auth import MockEmailSender, VerificationCode, VerificationService
from app.models import User
from app.tests.utils.auth import create_test_user
from app.tests.utils.clock import FakeClock


@pytest.fixture()
def user(session: Session):
    return create_test_user(session, email="bob@gmail.com", is_verified=False)


@pytest.fixture()
def service(session: Session, mailer: MockEmailSender, clock: FakeClock) -> VerificationService:
    return VerificationService(session, email_sender=mailer, clock=clock)


def _codes(session: Session, user_id) -> list[VerificationCode]:
    session.expire_all()
    return list(session.exec(
        select(VerificationCode).where(VerificationCode.user_id == user_id)
    ).all())


class TestCreateVerification:

    async def test_code_is_stored_and_emailed(self, service, user, mailer, clock):
        verification = await service.create_verification(user)

        assert len(verification.code) == 6
        assert verification.expires_at == clock.now + timedelta(minutes=5)
        assert verification.is_used is False
        assert mailer.get_last_code("bob@gmail.com") == verification.code

    async def test_new_code_supersedes_pending(self, service, user, session):
        first = await service.create_verification(user)
        second = await service.create_verification(user)

        codes = {c.id: c for c in _codes(session, user.id)}
        assert codes[first.id].is_used is True
        assert codes[second.id].is_used is False

    async def test_superseded_code_no_longer_verifies(self, service, user):
        first = await service.create_verification(user)
        second = await service.create_verification(user)
        if first.code == second.code:
            pytest.skip("identical random codes")

        with pytest.raises(VerificationCodeError):
            await service.validate_code(user, first.code)

    async def test_delivery_failure_propagates(self, service, user, mailer, session):
        mailer.set_fail()

        with pytest.raises(EmailServiceError):
            await service.create_verification(user)

        # Stored regardless; a resend supersedes it
        assert len(_codes(session, user.id)) == 1


class TestValidateCode:

    async def test_valid_code_verifies_user_once(self, service, user, session):
        verification = await service.create_verification(user)

        assert await service.validate_code(user, verification.code) is True

        session.expire_all()
        assert session.get(User, user.id).is_verified is True
        with pytest.raises(VerificationCodeError):
            await service.validate_code(user, verification.code)

    async def test_wrong_code_rejected(self, service, user, session):
        verification = await service.create_verification(user)
        wrong = "100000" if verification.code != "100000" else "100001"

        with pytest.raises(VerificationCodeError) as exc_info:
            await service.validate_code(user, wrong)

        assert exc_info.value.error_code == ErrorCode.VERIFICATION_CODE_INVALID
        session.expire_all()
        assert session.get(User, user.id).is_verified is False

    async def test_expired_code_rejected(self, service, user, clock):
        verification = await service.create_verification(user)
        clock.advance(minutes=5, seconds=1)

        with pytest.raises(VerificationCodeError):
            await service.validate_code(user, verification.code)

    async def test_code_of_other_user_rejected(self, service, user, session):
        other = create_test_user(session, email="carol@gmail.com", is_verified=False)
        verification = await service.create_verification(other)

        with pytest.raises(VerificationCodeError):
            await service.validate_code(user, verification.code)


class TestResendAndCleanup:

    async def test_resend_issues_new_code(self, service, user, mailer):
        first = await service.create_verification(user)
        second = await service.resend_code("Bob@Gmail.com")

        assert second.id != first.id
        assert len(mailer.sent_messages) == 2

    async def test_resend_unknown_email(self, service):
        with pytest.raises(RecordNotFoundError):
            await service.resend_code("nobody@gmail.com")

    async def test_resend_for_verified_user(self, service, session):
        create_test_user(session, email="dave@gmail.com", is_verified=True)

        with pytest.raises(BadRequestError) as exc_info:
            await service.resend_code("dave@gmail.com")

        assert exc_info.value.error_code == ErrorCode.ALREADY_VERIFIED

    async def test_clean_expired_codes(self, service, user, clock, session):
        await service.create_verification(user)
        clock.advance(minutes=10)
        await service.create_verification(user)

        assert await service.clean_expired_codes() == 1
        assert len(_codes(session, user.id)) == 1
