"""Credit Transaction Domain Entity

Append-only log of every balance mutation. The log is the source of truth:
for each account the sum of ``amount`` equals the account balance.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import ForeignKey, Numeric, String
from src.domain.base import BaseModel, BigIntegerId


class TransactionType(str, Enum):
    """Credit transaction types"""
    RESERVE = "reserve"  # Credits debited before a paid provider call
    REFUND = "refund"    # Reservation returned after a failed generation
    GRANT = "grant"      # Credits granted by a billing event


class GrantMode(str, Enum):
    """How a grant changes the balance"""
    ADD = "add"                  # One-time purchase, additive
    SET_MONTHLY = "set-monthly"  # Subscription renewal, sets the tier allotment


def reservation_key(reservation_id: str) -> str:
    return f"reserve:{reservation_id}"


def refund_key(reservation_id: str) -> str:
    return f"refund:{reservation_id}"


def grant_key(billing_event_id: str) -> str:
    return f"grant:{billing_event_id}"


class CreditTransaction(BaseModel, table=True):
    """
    Credit Transaction - immutable ledger entry

    Domain Rules:
    - Transactions are immutable (append-only)
    - amount is the signed delta applied to the balance
      (reserve < 0, refund > 0, grant = balance_after - balance_before)
    - idempotency_key is unique: reserve:{reservation}, refund:{reservation},
      grant:{billing_event}
    - related_generation_id holds the reservation token; the generation
      record links that token to the provider job id
    """

    __tablename__ = "credit_transactions"
    __table_args__ = (
        Index('ix_credit_transactions_created_at', 'created_at'),
        Index('ix_credit_transactions_related_generation', 'related_generation_id'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntegerId, primary_key=True, autoincrement=True),
    )

    user_id: str = Field(index=True)

    account_id: int = Field(
        sa_column=Column(BigIntegerId, ForeignKey("credit_accounts.id", ondelete="CASCADE"), nullable=False),
    )

    transaction_type: TransactionType

    amount: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="Signed delta applied to the balance"
    )

    balance_before: Decimal = Field(sa_column=Column(Numeric(18, 6), nullable=False))

    balance_after: Decimal = Field(sa_column=Column(Numeric(18, 6), nullable=False))

    related_generation_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Reservation token for reserve/refund entries"
    )

    related_billing_event_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Payment provider event id for grant entries"
    )

    grant_mode: Optional[GrantMode] = Field(default=None)

    event_created_at: Optional[datetime] = Field(
        default=None,
        description="Payment-provider timestamp of the billing event (grants only)"
    )

    idempotency_key: str = Field(unique=True, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
