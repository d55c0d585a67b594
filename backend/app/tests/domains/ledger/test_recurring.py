"""
Tests for the recurring transaction processor
"""
import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlmodel import Session, func, select

from app.core.db import engine
from app.core.exceptions import PermissionDeniedError, RecordNotFoundError, ValidationError
from app.domains.ledger import (
    Frequency,
    RecurringProcessor,
    TransactionType,
    calculate_next_execution_date,
    should_execute_today,
)
from app.models import Account, Recurring, Transaction
from app.tests.utils.auth import create_test_user
from app.tests.utils.clock import FakeClock
from app.tests.utils.ledger import create_account, create_recurring

JAN_1 = datetime(2024, 1, 1)
JAN_15 = datetime(2024, 1, 15, 9, 30)


@pytest.fixture()
def user(session: Session):
    return create_test_user(session)


@pytest.fixture()
def account(session: Session, user) -> Account:
    return create_account(session, user.id, balance="1000")


@pytest.fixture()
def processor(session: Session, clock: FakeClock) -> RecurringProcessor:
    clock.set(JAN_15)
    return RecurringProcessor(session, clock)


def _transactions(session: Session) -> list[Transaction]:
    session.expire_all()
    return list(session.exec(select(Transaction).order_by(Transaction.date)).all())


def _reload(session: Session, recurring: Recurring) -> Recurring:
    session.expire_all()
    return session.get(Recurring, recurring.id)


class TestNextExecutionDate:

    @pytest.mark.parametrize("frequency, interval, expected", [
        (Frequency.DAILY, 1, date(2024, 1, 16)),
        (Frequency.DAILY, 3, date(2024, 1, 18)),
        (Frequency.WEEKLY, 2, date(2024, 1, 29)),
        (Frequency.MONTHLY, 1, date(2024, 2, 15)),
        (Frequency.YEARLY, 1, date(2025, 1, 15)),
    ])
    def test_steps(self, frequency, interval, expected):
        assert calculate_next_execution_date(date(2024, 1, 15), frequency, interval) == expected

    def test_month_end_clamps(self):
        assert calculate_next_execution_date(date(2024, 1, 31), Frequency.MONTHLY, 1) == date(2024, 2, 29)
        assert calculate_next_execution_date(date(2023, 1, 31), Frequency.MONTHLY, 1) == date(2023, 2, 28)
        assert calculate_next_execution_date(date(2024, 2, 29), Frequency.YEARLY, 1) == date(2025, 2, 28)


class TestShouldExecuteToday:

    def test_never_executed_due_from_start_day(self):
        recurring = Recurring(
            user_id=uuid.uuid4(), account_id=uuid.uuid4(), type=TransactionType.EXPENSE,
            amount=Decimal("1"), frequency=Frequency.DAILY, start_date=datetime(2024, 1, 15, 18, 0),
        )

        assert should_execute_today(recurring, datetime(2024, 1, 14, 23, 0)) is False
        assert should_execute_today(recurring, datetime(2024, 1, 15, 8, 0)) is True

    def test_day_granularity_after_execution(self):
        recurring = Recurring(
            user_id=uuid.uuid4(), account_id=uuid.uuid4(), type=TransactionType.EXPENSE,
            amount=Decimal("1"), frequency=Frequency.DAILY, start_date=JAN_1,
            last_executed_at=datetime(2024, 1, 15, 23, 59),
        )

        assert should_execute_today(recurring, datetime(2024, 1, 15, 23, 59, 59)) is False
        assert should_execute_today(recurring, datetime(2024, 1, 16, 0, 0)) is True


class TestProcessRecurring:

    async def test_monthly_catch_up_scenario(self, processor, account, session, clock):
        recurring = create_recurring(session, account, start_date=JAN_1)

        assert await processor.process_recurring(recurring) is True
        assert _reload(session, recurring).last_executed_at == JAN_15

        assert await processor.process_recurring(_reload(session, recurring)) is False

        clock.set(datetime(2024, 2, 14, 23, 0))
        assert await processor.process_recurring(_reload(session, recurring)) is False

        clock.set(datetime(2024, 2, 15, 0, 5))
        assert await processor.process_recurring(_reload(session, recurring)) is True

        transactions = _transactions(session)
        assert len(transactions) == 2
        assert transactions[0].description == "[Auto] Netflix"
        assert transactions[0].date == JAN_15
        assert session.get(Account, account.id).current_balance == Decimal("900")

    async def test_default_description(self, processor, account, session):
        recurring = create_recurring(session, account, start_date=JAN_1, description=None)

        await processor.process_recurring(recurring)

        assert _transactions(session)[0].description == "[Auto] Movimiento recurrente"

    async def test_not_started_yet(self, processor, account, session):
        recurring = create_recurring(session, account, start_date=datetime(2024, 2, 1))

        assert await processor.process_recurring(recurring) is False
        assert _transactions(session) == []

    async def test_ended_recurring_is_deactivated(self, processor, account, session):
        recurring = create_recurring(
            session, account, start_date=JAN_1, end_date=datetime(2024, 1, 10)
        )

        assert await processor.process_recurring(recurring) is False

        assert _reload(session, recurring).is_active is False
        assert _transactions(session) == []

    async def test_stale_copy_does_not_duplicate(self, processor, account, session, clock):
        recurring = create_recurring(session, account, start_date=JAN_1)

        with Session(engine) as other:
            assert await RecurringProcessor(other, clock).process_recurring_by_id(recurring.id)

        # recurring still holds last_executed_at=None from before the other run
        assert await processor.process_recurring(recurring) is False

        assert len(_transactions(session)) == 1
        assert session.get(Account, account.id).current_balance == Decimal("950")

    async def test_failed_transaction_leaves_cursor_untouched(self, processor, session, user):
        poor = create_account(session, user.id, balance="10")
        recurring = create_recurring(session, poor, start_date=JAN_1, amount="50")

        with pytest.raises(ValidationError):
            await processor.process_recurring(recurring)

        assert _reload(session, recurring).last_executed_at is None
        assert _transactions(session) == []


class TestProcessAll:

    async def test_one_failure_does_not_stop_the_batch(self, processor, account, session, user):
        poor = create_account(session, user.id, balance="10", name="Vacía")
        create_recurring(session, poor, start_date=JAN_1, amount="50")
        create_recurring(session, account, start_date=JAN_1, frequency=Frequency.DAILY)
        create_recurring(session, account, start_date=datetime(2024, 3, 1))
        inactive = create_recurring(session, account, start_date=JAN_1)
        inactive.is_active = False
        session.add(inactive)
        session.commit()

        result = await processor.process_all_recurrings()

        assert result.errors == 1
        assert result.processed == 2
        assert result.created == 1
        assert len(_transactions(session)) == 1

    async def test_second_pass_same_day_is_noop(self, processor, account, session):
        create_recurring(session, account, start_date=JAN_1)

        first = await processor.process_all_recurrings()
        second = await processor.process_all_recurrings()

        assert first.created == 1
        assert second.created == 0
        assert second.processed == 1
        assert len(_transactions(session)) == 1


class TestProcessById:

    async def test_unknown_recurring(self, processor):
        with pytest.raises(RecordNotFoundError):
            await processor.process_recurring_by_id(uuid.uuid4())

    async def test_other_users_recurring(self, processor, account, session):
        recurring = create_recurring(session, account, start_date=JAN_1)
        stranger = create_test_user(session, email="mallory@gmail.com")

        with pytest.raises(PermissionDeniedError):
            await processor.process_recurring_by_id(recurring.id, user_id=stranger.id)

        assert _transactions(session) == []

    async def test_owner_can_process(self, processor, account, session, user):
        recurring = create_recurring(session, account, start_date=JAN_1)

        assert await processor.process_recurring_by_id(recurring.id, user_id=user.id) is True
        assert session.exec(select(func.count()).select_from(Transaction)).one() == 1

    async def test_paused_recurring_is_not_executed(self, processor, account, session, user):
        recurring = create_recurring(session, account, start_date=JAN_1)
        recurring.is_active = False
        session.add(recurring)
        session.commit()

        assert await processor.process_recurring_by_id(recurring.id, user_id=user.id) is False
        assert _transactions(session) == []
        session.refresh(recurring)
        assert recurring.last_executed_at is None
