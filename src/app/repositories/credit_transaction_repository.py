"""Credit Transaction Repository Interface

Defines the contract for the append-only transaction log.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from src.domain.credit_transaction import CreditTransaction, TransactionType


class CreditTransactionRepository(ABC):
    """
    Repository interface for CreditTransaction persistence

    Transactions are immutable and append-only for audit trail.
    Idempotency is enforced via unique idempotency_key.
    """

    @abstractmethod
    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Append a transaction

        Raises:
            IntegrityError: If idempotency_key already exists (duplicate transaction)
        """
        pass

    @abstractmethod
    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[CreditTransaction]:
        pass

    @abstractmethod
    async def get_by_user_id(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        transaction_type: Optional[TransactionType] = None,
    ) -> Tuple[List[CreditTransaction], int]:
        """
        Page through a user's transactions, newest first, optionally of one type

        Returns:
            (transactions, total count)
        """
        pass

    @abstractmethod
    async def get_transaction_sum_by_account(self, account_id: int) -> Decimal:
        """Sum of signed amounts for an account (expected balance)"""
        pass

    @abstractmethod
    async def sum_added_grants_since(self, user_id: str, since: datetime) -> Decimal:
        """Sum of additive grants whose billing event is newer than since"""
        pass

    @abstractmethod
    async def get_unresolved_reservations(
        self, created_before: datetime, limit: int = 100
    ) -> List[CreditTransaction]:
        """
        Reservations older than created_before with neither a generation
        record nor a refund
        """
        pass
