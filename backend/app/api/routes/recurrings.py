"""
Recurring transaction processing API
"""
import uuid
from typing import Any

from fastapi import APIRouter

from app.api.deps import ClockDep, CurrentUser, SessionDep
from app.domains.ledger import ProcessOneResult, ProcessResult, RecurringProcessor

router = APIRouter(prefix="/recurrings", tags=["recurrings"])


@router.post("/process", response_model=ProcessResult)
async def process_recurrings(
    current_user: CurrentUser,
    session: SessionDep,
    clock: ClockDep,
) -> Any:
    """
    Run a processing pass over every active recurring now

    Same work as the scheduled pass; recurrings already executed for
    today are skipped.
    """
    return await RecurringProcessor(session, clock).process_all_recurrings()


@router.post("/{recurring_id}/process", response_model=ProcessOneResult)
async def process_recurring(
    recurring_id: uuid.UUID,
    current_user: CurrentUser,
    session: SessionDep,
    clock: ClockDep,
) -> Any:
    """
    Process one of the caller's recurrings

    - **created**: false when the recurring is not due yet
    """
    created = await RecurringProcessor(session, clock).process_recurring_by_id(
        recurring_id, user_id=current_user.id
    )
    return ProcessOneResult(recurring_id=recurring_id, created=created)
