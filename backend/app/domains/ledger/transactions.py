"""
Transaction ledger
Records transactions and keeps account balances in step
"""
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlmodel import Session, select

from app.core.exceptions import RecordNotFoundError, ValidationError

from .models import Account, AccountType, Transaction, TransactionType
from .schemas import TransactionCreate

logger = logging.getLogger(__name__)

ADJUSTMENTS = (TransactionType.ADJUSTMENT_POSITIVE, TransactionType.ADJUSTMENT_NEGATIVE)


def calculate_balance_change(
    account_type: AccountType,
    transaction_type: TransactionType,
    amount: Decimal
) -> Decimal:
    """
    Signed change applied to the source account's balance

    CREDIT balances track debt, so expenses increase them and payments
    (income) decrease them. Transfers always leave the source account.
    """
    if transaction_type == TransactionType.TRANSFER:
        return -amount

    if account_type == AccountType.CREDIT:
        return {
            TransactionType.ADJUSTMENT_POSITIVE: -amount,
            TransactionType.ADJUSTMENT_NEGATIVE: amount,
            TransactionType.EXPENSE: amount,
            TransactionType.INCOME: -amount,
        }.get(transaction_type, Decimal("0"))

    return {
        TransactionType.ADJUSTMENT_POSITIVE: amount,
        TransactionType.ADJUSTMENT_NEGATIVE: -amount,
        TransactionType.INCOME: amount,
        TransactionType.EXPENSE: -amount,
    }.get(transaction_type, Decimal("0"))


class TransactionService:
    """Creates transactions against a user's active accounts"""

    def __init__(self, db_session: Session):
        self.session = db_session

    def _get_active_account(self, user_id: uuid.UUID, account_id: uuid.UUID) -> Optional[Account]:
        statement = select(Account).where(
            Account.id == account_id,
            Account.user_id == user_id,
            Account.is_active == True  # noqa: E712
        )
        return self.session.exec(statement).first()

    async def create_transaction(
        self,
        user_id: uuid.UUID,
        data: TransactionCreate,
        commit: bool = True
    ) -> Transaction:
        """
        Record a transaction and update the affected balances

        Args:
            user_id: Owner of the account(s)
            data: Transaction input
            commit: Commit immediately; pass False to let the caller commit
                this together with its own changes

        Raises:
            RecordNotFoundError: account or destination missing or inactive
            ValidationError: non-positive amount, bad transfer, overdraft
        """
        account = self._get_active_account(user_id, data.account_id)
        if account is None:
            raise RecordNotFoundError(
                user_message="Cuenta no encontrada o inactiva", resource="account"
            )

        if data.amount <= 0:
            raise ValidationError("El monto debe ser mayor a 0", field="amount")

        destination: Optional[Account] = None
        if data.type == TransactionType.TRANSFER:
            if data.destination_account_id is None:
                raise ValidationError(
                    "Cuenta destino requerida para transferencias",
                    field="destination_account_id"
                )
            if data.destination_account_id == data.account_id:
                raise ValidationError(
                    "No puedes transferir a la misma cuenta",
                    field="destination_account_id"
                )
            destination = self._get_active_account(user_id, data.destination_account_id)
            if destination is None:
                raise RecordNotFoundError(
                    user_message="Cuenta destino no encontrada o inactiva", resource="account"
                )

        new_balance = account.current_balance + calculate_balance_change(
            account.type, data.type, data.amount
        )
        if (
            account.type != AccountType.CREDIT
            and new_balance < 0
            and data.type not in ADJUSTMENTS
        ):
            raise ValidationError(
                "Saldo insuficiente para realizar esta operación", field="amount"
            )

        transaction = Transaction(
            account_id=data.account_id,
            type=data.type,
            amount=data.amount,
            category_id=data.category_id,
            description=data.description,
            date=data.date,
            destination_account_id=data.destination_account_id
        )
        account.current_balance = new_balance
        self.session.add(transaction)
        self.session.add(account)
        if destination is not None:
            destination.current_balance = destination.current_balance + data.amount
            self.session.add(destination)

        if commit:
            self.session.commit()
            self.session.refresh(transaction)
        else:
            self.session.flush()

        logger.debug("Transaction %s recorded on account %s", transaction.id, account.id)
        return transaction
