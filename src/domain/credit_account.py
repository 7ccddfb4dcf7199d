"""Credit Account Domain Entity

Holds the spendable credit balance of one user. The balance is a cache of
the transaction log and is only mutated through ledger use cases.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import CheckConstraint, Numeric, String
from src.domain.base import BaseModel, BigIntegerId


class AccountTier(str, Enum):
    """Subscription tiers"""
    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    BUSINESS = "business"


class CreditAccount(BaseModel, table=True):
    """
    Credit Account - one per user

    Domain Rules:
    - user_id is unique
    - balance >= 0 at all times (enforced by a check constraint and by
      conditional updates)
    - Opened with a zero balance on signup
    - last_renewal_at orders subscription renewals so a stale renewal
      cannot overwrite a newer one
    """

    __tablename__ = "credit_accounts"
    __table_args__ = (
        CheckConstraint('balance >= 0', name='balance_non_negative'),
        CheckConstraint('credits_used >= 0', name='credits_used_non_negative'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntegerId, primary_key=True, autoincrement=True),
        description="Unique account identifier (auto-increment)"
    )

    user_id: str = Field(
        index=True,
        unique=True,
        description="User ID (unique - one account per user)"
    )

    balance: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Credits remaining (must be >= 0, precision: 18,6)"
    )

    tier: AccountTier = Field(
        default=AccountTier.FREE,
        description="Current subscription tier"
    )

    monthly_credits: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Monthly allotment of the current tier"
    )

    credits_used: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Credits spent in the current period (reset on renewal)"
    )

    current_period_start: Optional[datetime] = Field(default=None)

    current_period_end: Optional[datetime] = Field(default=None)

    last_renewal_at: Optional[datetime] = Field(
        default=None,
        description="Payment-provider timestamp of the latest applied renewal"
    )

    payment_customer_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True, unique=True),
        description="Customer reference at the payment provider"
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last balance update timestamp"
    )
