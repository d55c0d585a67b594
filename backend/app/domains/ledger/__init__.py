"""
Ledger domain
Accounts, transactions and the recurring transaction scheduler
"""
from .cron import RecurringCron, run_cleanup_pass, run_recurring_pass
from .models import Account, AccountType, Frequency, Recurring, Transaction, TransactionType
from .recurring import (
    RecurringProcessor,
    calculate_next_execution_date,
    should_execute_today,
)
from .schemas import ProcessOneResult, ProcessResult, TransactionCreate
from .transactions import TransactionService, calculate_balance_change

__all__ = [
    # Models
    "Account",
    "AccountType",
    "Frequency",
    "Recurring",
    "Transaction",
    "TransactionType",
    # Schemas
    "TransactionCreate",
    "ProcessResult",
    "ProcessOneResult",
    # Services
    "TransactionService",
    "RecurringProcessor",
    "RecurringCron",
    # Helpers
    "calculate_balance_change",
    "calculate_next_execution_date",
    "should_execute_today",
    "run_cleanup_pass",
    "run_recurring_pass",
]
