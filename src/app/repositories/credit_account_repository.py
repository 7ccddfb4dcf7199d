"""Credit Account Repository Interface

Defines the contract for credit account persistence. Balance mutations are
single atomic statements against the store, never read-modify-write in
application code.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from src.domain.credit_account import CreditAccount, AccountTier


class CreditAccountRepository(ABC):
    """
    Repository interface for CreditAccount persistence
    """

    @abstractmethod
    async def get_by_user_id(self, user_id: str, for_update: bool = False) -> Optional[CreditAccount]:
        """
        Retrieve account by user ID

        Args:
            user_id: User identifier
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            CreditAccount if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_payment_customer_id(self, customer_id: str) -> Optional[CreditAccount]:
        pass

    @abstractmethod
    async def get_all(self) -> List[CreditAccount]:
        pass

    @abstractmethod
    async def create(self, account: CreditAccount) -> CreditAccount:
        pass

    @abstractmethod
    async def debit_if_sufficient(self, user_id: str, amount: Decimal) -> Optional[Decimal]:
        """
        Atomically decrement the balance if it covers amount

        Implemented as one conditional update
        (``balance = balance - amount WHERE balance >= amount``).

        Returns:
            The new balance, or None when no row matched (insufficient
            credits or unknown user)
        """
        pass

    @abstractmethod
    async def credit(self, user_id: str, amount: Decimal, release_usage: bool = False) -> Optional[Decimal]:
        """
        Atomically increment the balance

        Args:
            user_id: User identifier
            amount: Credits to add (> 0)
            release_usage: Also decrement credits_used (refunds)

        Returns:
            The new balance, or None for an unknown user
        """
        pass

    @abstractmethod
    async def apply_renewal(
        self,
        account_id: int,
        tier: AccountTier,
        monthly_credits: Decimal,
        new_balance: Decimal,
        period_start: datetime,
        period_end: datetime,
    ) -> bool:
        """
        Set the balance to a renewal allotment and reset usage

        Only applies when period_start is newer than the account's
        last_renewal_at.

        Returns:
            True if the row was updated, False for a stale renewal
        """
        pass

    @abstractmethod
    async def set_payment_customer_id(self, account_id: int, customer_id: str) -> None:
        pass
