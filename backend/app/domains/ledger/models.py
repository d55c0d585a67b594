"""
Ledger domain models (Database tables)
Account, Transaction, Recurring
"""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from app.core.security import utc_now


class AccountType(str, Enum):
    CASH = "CASH"
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"
    SAVINGS = "SAVINGS"


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"
    ADJUSTMENT_POSITIVE = "ADJUSTMENT_POSITIVE"
    ADJUSTMENT_NEGATIVE = "ADJUSTMENT_NEGATIVE"


class Frequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class Account(SQLModel, table=True):
    """Account database table"""
    __tablename__ = "accounts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    name: str = Field(max_length=100)
    type: AccountType
    current_balance: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    currency: str = Field(default="USD", max_length=3)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)


class Transaction(SQLModel, table=True):
    """Transaction database table"""
    __tablename__ = "transactions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    account_id: uuid.UUID = Field(foreign_key="accounts.id", index=True, ondelete="CASCADE")
    type: TransactionType
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    category_id: Optional[uuid.UUID] = Field(default=None)
    description: Optional[str] = Field(default=None, max_length=255)
    date: datetime = Field(default_factory=utc_now, index=True)
    destination_account_id: Optional[uuid.UUID] = Field(default=None, foreign_key="accounts.id")
    created_at: datetime = Field(default_factory=utc_now)


class Recurring(SQLModel, table=True):
    """
    Recurring transaction template

    last_executed_at is the only execution cursor; the scheduler otherwise
    only flips is_active off once end_date has passed.
    """
    __tablename__ = "recurrings"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    account_id: uuid.UUID = Field(foreign_key="accounts.id", ondelete="CASCADE")
    type: TransactionType
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    category_id: Optional[uuid.UUID] = Field(default=None)
    description: Optional[str] = Field(default=None, max_length=255)
    frequency: Frequency
    interval: int = Field(default=1, ge=1)
    start_date: datetime
    end_date: Optional[datetime] = Field(default=None)
    last_executed_at: Optional[datetime] = Field(default=None)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utc_now)
