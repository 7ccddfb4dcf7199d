"""Data Transfer Objects for credit ledger use cases"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field
from src.domain.credit_account import AccountTier
from src.domain.credit_transaction import CreditTransaction, GrantMode


class LedgerOutcome(str, Enum):
    """What a ledger command did; every value except APPLIED is an idempotent no-op"""
    APPLIED = "applied"
    ALREADY_RESERVED = "already_reserved"
    ALREADY_REFUNDED = "already_refunded"
    ALREADY_APPLIED = "already_applied"
    STALE_RENEWAL = "stale_renewal"


class ReserveCommandDTO(BaseModel):
    """
    Command DTO for reserving credits ahead of a paid provider call
    """

    user_id: str = Field(..., min_length=1)

    reservation_id: str = Field(
        ...,
        min_length=1,
        description="Locally minted token the reservation is keyed on"
    )

    amount: Decimal = Field(..., gt=0, description="Credits to debit (must be > 0)")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user_123",
                "reservation_id": "rsv_5f0c1e2d3b4a49e8a7c6d5e4f3a2b1c0",
                "amount": "0.4",
            }
        }


class RefundCommandDTO(BaseModel):
    """
    Command DTO for returning a reservation

    amount defaults to the reserved amount and may not exceed it.
    """

    user_id: str = Field(..., min_length=1)

    reservation_id: str = Field(..., min_length=1)

    amount: Optional[Decimal] = Field(default=None, gt=0)

    reason: Optional[str] = Field(default=None, description="Why the reservation is returned")


class GrantCommandDTO(BaseModel):
    """
    Command DTO for granting credits from a billing event

    ADD uses amount; SET_MONTHLY uses tier and amount as the tier's monthly
    allotment.
    """

    user_id: str = Field(..., min_length=1)

    billing_event_id: str = Field(..., min_length=1)

    amount: Decimal = Field(..., ge=0)

    mode: GrantMode = Field(default=GrantMode.ADD)

    tier: Optional[AccountTier] = Field(default=None)

    event_created_at: datetime = Field(default_factory=datetime.utcnow)


class LedgerEntryResponseDTO(BaseModel):
    """
    Response DTO for ledger commands

    Returned by ReserveCredits, RefundCredits and GrantCredits.
    """

    outcome: LedgerOutcome

    user_id: str

    transaction_id: Optional[int] = None

    transaction_type: Optional[str] = None

    amount: Decimal = Decimal("0")

    balance_before: Optional[Decimal] = None

    balance_after: Optional[Decimal] = None

    related_generation_id: Optional[str] = None

    related_billing_event_id: Optional[str] = None

    idempotency_key: Optional[str] = None

    created_at: Optional[datetime] = None


def ledger_entry_from_transaction(
    transaction: CreditTransaction, outcome: LedgerOutcome
) -> LedgerEntryResponseDTO:
    """Build the response from a stored transaction; balance snapshots make replays exact"""
    return LedgerEntryResponseDTO(
        outcome=outcome,
        user_id=transaction.user_id,
        transaction_id=transaction.id,
        transaction_type=transaction.transaction_type.value,
        amount=transaction.amount,
        balance_before=transaction.balance_before,
        balance_after=transaction.balance_after,
        related_generation_id=transaction.related_generation_id,
        related_billing_event_id=transaction.related_billing_event_id,
        idempotency_key=transaction.idempotency_key,
        created_at=transaction.created_at,
    )


class OpenAccountCommandDTO(BaseModel):
    user_id: str = Field(..., min_length=1)


class BalanceResponseDTO(BaseModel):
    """
    Response DTO for get balance operation
    """

    user_id: str

    balance: Decimal

    tier: str

    monthly_credits: Decimal

    credits_used: Decimal

    current_period_start: Optional[datetime] = None

    current_period_end: Optional[datetime] = None

    last_updated: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user_123",
                "balance": "0.600000",
                "tier": "starter",
                "monthly_credits": "10.000000",
                "credits_used": "0.400000",
                "current_period_start": "2024-01-01T00:00:00Z",
                "current_period_end": "2024-01-31T00:00:00Z",
                "last_updated": "2024-01-02T00:00:00Z",
            }
        }


class TransactionDTO(BaseModel):
    """
    One ledger entry as shown to the user

    Reserve and refund entries carry the reservation token and, once the
    provider accepted the job, the generation it paid for.
    """

    id: int

    transaction_type: str

    amount: Decimal = Field(..., description="Signed delta applied to the balance")

    balance_before: Decimal

    balance_after: Decimal

    reservation_id: Optional[str] = None

    generation_id: Optional[str] = None

    generation_status: Optional[str] = None

    billing_event_id: Optional[str] = None

    grant_mode: Optional[str] = None

    created_at: datetime


class ListTransactionsResponseDTO(BaseModel):
    transactions: List[TransactionDTO]

    total: int

    transaction_type: Optional[str] = None

    limit: int

    offset: int


class LedgerDiscrepancyDTO(BaseModel):
    user_id: str

    account_id: int

    account_balance: Decimal

    calculated_balance: Decimal = Field(..., description="Sum of the account's transaction log")

    discrepancy: Decimal


class ReconciliationResultDTO(BaseModel):
    total_accounts_checked: int

    discrepancies_found: int

    discrepancies: List[LedgerDiscrepancyDTO]

    reconciliation_time: datetime

    execution_time_ms: int


class ReleasedReservationDTO(BaseModel):
    user_id: str

    reservation_id: str

    amount: Decimal

    outcome: LedgerOutcome


class ReleaseStaleReservationsResultDTO(BaseModel):
    reservations_found: int

    released: List[ReleasedReservationDTO]

    failed: int

    cutoff: datetime
