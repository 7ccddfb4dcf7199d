"""Credit ledger use cases"""
from .reserve_credits import ReserveCredits
from .refund_credits import RefundCredits
from .grant_credits import GrantCredits
from .get_balance import GetBalance
from .open_account import OpenAccount
from .list_transactions import ListTransactions
from .reconcile_ledger import ReconcileLedger
from .release_stale_reservations import ReleaseStaleReservations
from .dtos import (
    LedgerOutcome,
    ReserveCommandDTO,
    RefundCommandDTO,
    GrantCommandDTO,
    LedgerEntryResponseDTO,
    OpenAccountCommandDTO,
    BalanceResponseDTO,
    TransactionDTO,
    ListTransactionsResponseDTO,
    LedgerDiscrepancyDTO,
    ReconciliationResultDTO,
    ReleasedReservationDTO,
    ReleaseStaleReservationsResultDTO,
)

__all__ = [
    "ReserveCredits",
    "RefundCredits",
    "GrantCredits",
    "GetBalance",
    "OpenAccount",
    "ListTransactions",
    "ReconcileLedger",
    "ReleaseStaleReservations",
    "LedgerOutcome",
    "ReserveCommandDTO",
    "RefundCommandDTO",
    "GrantCommandDTO",
    "LedgerEntryResponseDTO",
    "OpenAccountCommandDTO",
    "BalanceResponseDTO",
    "TransactionDTO",
    "ListTransactionsResponseDTO",
    "LedgerDiscrepancyDTO",
    "ReconciliationResultDTO",
    "ReleasedReservationDTO",
    "ReleaseStaleReservationsResultDTO",
]
