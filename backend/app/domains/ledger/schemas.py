"""
Ledger domain schemas
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel

from .models import TransactionType


class TransactionCreate(SQLModel):
    """Input for the transaction ledger"""
    account_id: uuid.UUID
    type: TransactionType
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    category_id: Optional[uuid.UUID] = None
    description: Optional[str] = Field(default=None, max_length=255)
    date: datetime
    destination_account_id: Optional[uuid.UUID] = None


class ProcessResult(SQLModel):
    """Outcome of a batch pass over recurrings"""
    processed: int
    created: int
    errors: int


class ProcessOneResult(SQLModel):
    """Outcome of processing a single recurring"""
    recurring_id: uuid.UUID
    created: bool
