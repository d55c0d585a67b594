"""
Table registry

Every SQLModel table is imported here so that SQLModel.metadata knows the
full schema before create_all (and future migrations) run.
"""
from app.domains.auth.models import RefreshToken, User, VerificationCode
from app.domains.auth.schemas import TokenPayload
from app.domains.ledger.models import Account, Recurring, Transaction

__all__ = [
    "User",
    "RefreshToken",
    "VerificationCode",
    "Account",
    "Transaction",
    "Recurring",
    "TokenPayload",
]
