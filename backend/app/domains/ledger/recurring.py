"""
Recurring transaction processor
Turns due recurring templates into ledger transactions
"""
import logging
import uuid
from datetime import date, datetime
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlmodel import Session, select, update

from app.core.exceptions import PermissionDeniedError, RecordNotFoundError
from app.core.security import Clock, utc_now

from .models import Frequency, Recurring
from .schemas import ProcessResult, TransactionCreate
from .transactions import TransactionService

logger = logging.getLogger(__name__)


def calculate_next_execution_date(last: date, frequency: Frequency, interval: int) -> date:
    """
    Calendar-aware next due date

    Month and year steps clamp to the end of shorter months
    (Jan 31 + 1 month = Feb 28/29).
    """
    if frequency == Frequency.DAILY:
        return last + relativedelta(days=interval)
    if frequency == Frequency.WEEKLY:
        return last + relativedelta(days=interval * 7)
    if frequency == Frequency.MONTHLY:
        return last + relativedelta(months=interval)
    if frequency == Frequency.YEARLY:
        return last + relativedelta(years=interval)
    raise ValueError(f"Unknown frequency: {frequency}")


def should_execute_today(recurring: Recurring, now: datetime) -> bool:
    """
    Due-check at calendar-day granularity

    Never executed: due from start_date's day on. Otherwise due once today
    reaches last_executed_at's day plus one interval.
    """
    today = now.date()
    if recurring.last_executed_at is None:
        return today >= recurring.start_date.date()

    next_date = calculate_next_execution_date(
        recurring.last_executed_at.date(),
        recurring.frequency,
        recurring.interval,
    )
    return today >= next_date


def auto_description(recurring: Recurring) -> str:
    if recurring.description:
        return f"[Auto] {recurring.description}"
    return "[Auto] Movimiento recurrente"


class RecurringProcessor:
    """
    Poll-model scheduler over Recurring rows

    No queue: every pass recomputes the due-check from last_executed_at, so
    missed passes catch up on the next one and repeated passes on the same
    day are no-ops.
    """

    def __init__(self, db_session: Session, clock: Clock = utc_now):
        self.session = db_session
        self.clock = clock
        self.transactions = TransactionService(db_session)

    async def process_all_recurrings(self) -> ProcessResult:
        """Process every active recurring; one failure never stops the batch"""
        statement = select(Recurring).where(Recurring.is_active == True)  # noqa: E712
        recurrings = list(self.session.exec(statement).all())
        logger.info("Processing %d active recurring(s)", len(recurrings))

        processed = created = errors = 0
        for recurring in recurrings:
            recurring_id = recurring.id
            try:
                if await self.process_recurring(recurring):
                    created += 1
                processed += 1
            except Exception:
                errors += 1
                logger.exception("Error processing recurring %s", recurring_id)

        logger.info(
            "Recurring pass finished. Processed: %d, created: %d, errors: %d",
            processed, created, errors
        )
        return ProcessResult(processed=processed, created=created, errors=errors)

    async def process_recurring(self, recurring: Recurring) -> bool:
        """
        Create the transaction for one recurring if it is due

        Returns:
            True if a transaction was created
        """
        now = self.clock()

        if now < recurring.start_date:
            return False

        if recurring.end_date is not None and now > recurring.end_date:
            recurring.is_active = False
            self.session.add(recurring)
            self.session.commit()
            logger.info("Recurring %s deactivated (end date reached)", recurring.id)
            return False

        if not should_execute_today(recurring, now):
            return False

        previous = recurring.last_executed_at
        try:
            await self.transactions.create_transaction(
                recurring.user_id,
                TransactionCreate(
                    account_id=recurring.account_id,
                    type=recurring.type,
                    amount=recurring.amount,
                    category_id=recurring.category_id,
                    description=auto_description(recurring),
                    date=now,
                ),
                commit=False,
            )

            # Stamp the cursor only if nobody else did since we read it, in
            # the same commit as the transaction
            stamp = (
                update(Recurring)
                .where(
                    Recurring.id == recurring.id,
                    Recurring.last_executed_at.is_(None)
                    if previous is None
                    else Recurring.last_executed_at == previous,
                )
                .values(last_executed_at=now)
            )
            if self.session.exec(stamp).rowcount != 1:
                self.session.rollback()
                logger.info("Recurring %s already executed concurrently", recurring.id)
                return False

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(recurring)
        logger.info("Transaction created from recurring %s", recurring.id)
        return True

    async def process_recurring_by_id(
        self,
        recurring_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None
    ) -> bool:
        """
        Manually process one recurring

        Args:
            recurring_id: Recurring to process
            user_id: When given, the recurring must belong to this user

        Returns:
            Whether a transaction was created (False if paused or not yet due)
        """
        recurring = self.session.get(Recurring, recurring_id)
        if recurring is None:
            raise RecordNotFoundError(user_message="Recurrente no encontrado", resource="recurring")

        if user_id is not None and recurring.user_id != user_id:
            raise PermissionDeniedError(user_message="No autorizado")

        if not recurring.is_active:
            logger.info("Recurring %s is inactive, skipping manual run", recurring.id)
            return False

        return await self.process_recurring(recurring)
