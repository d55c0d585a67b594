"""
Recurring cron
Runs the recurring processor on a crontab schedule inside the API process,
next to the daily sweep of expired refresh tokens and verification codes
"""
import asyncio
import logging
from contextlib import AsyncExitStack
from typing import Optional

from apscheduler import AsyncScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlmodel import Session

from app.core.config import settings
from app.core.db import engine
from app.domains.auth.tokens import RefreshTokenService
from app.domains.auth.verification import VerificationService

from .recurring import RecurringProcessor
from .schemas import ProcessResult

logger = logging.getLogger(__name__)

SCHEDULE_ID = "process-recurrings"
CLEANUP_SCHEDULE_ID = "clean-expired-credentials"


async def run_recurring_pass() -> Optional[ProcessResult]:
    """Cron task: one processing pass in its own session; never raises"""
    try:
        with Session(engine) as session:
            return await RecurringProcessor(session).process_all_recurrings()
    except (asyncio.CancelledError, SystemExit, KeyboardInterrupt):
        raise
    except Exception as e:
        logger.error(f"Recurring cron pass failed: {e}")
        return None


async def run_cleanup_pass() -> Optional[tuple[int, int]]:
    """
    Cron task: delete expired refresh tokens and verification codes

    Returns:
        (tokens deleted, codes deleted), or None if the sweep failed
    """
    try:
        with Session(engine) as session:
            tokens = await RefreshTokenService(session).clean_expired_tokens()
            codes = await VerificationService(session).clean_expired_codes()
            return tokens, codes
    except (asyncio.CancelledError, SystemExit, KeyboardInterrupt):
        raise
    except Exception as e:
        logger.error(f"Expired credentials sweep failed: {e}")
        return None


class RecurringCron:
    """Owns the scheduler that fires run_recurring_pass and run_cleanup_pass"""

    def __init__(self, cron: Optional[str] = None, cleanup_cron: Optional[str] = None):
        self.cron = cron or settings.recurring_cron_expression
        self.cleanup_cron = cleanup_cron or settings.CLEANUP_CRON
        self._scheduler: Optional[AsyncScheduler] = None
        self._exit_stack: Optional[AsyncExitStack] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    async def start(self) -> None:
        if self._scheduler is not None:
            return

        self._exit_stack = AsyncExitStack()
        await self._exit_stack.__aenter__()

        self._scheduler = AsyncScheduler()
        await self._exit_stack.enter_async_context(self._scheduler)

        await self._scheduler.add_schedule(
            run_recurring_pass,
            CronTrigger.from_crontab(self.cron),
            id=SCHEDULE_ID,
        )
        await self._scheduler.add_schedule(
            run_cleanup_pass,
            CronTrigger.from_crontab(self.cleanup_cron),
            id=CLEANUP_SCHEDULE_ID,
        )
        await self._scheduler.start_in_background()
        logger.info(f"Recurring cron started (cron={self.cron}, cleanup={self.cleanup_cron})")

    async def stop(self) -> None:
        if self._exit_stack:
            await self._exit_stack.__aexit__(None, None, None)
            self._exit_stack = None
        self._scheduler = None
        logger.info("Recurring cron stopped")

    async def __aenter__(self) -> "RecurringCron":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.stop()
