"""Get Balance Use Case

Retrieves a user's current credit balance.
"""

from libs.result import Result, Return, Error
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.domain.credit_account import CreditAccount
from .dtos import BalanceResponseDTO


def balance_from_account(account: CreditAccount) -> BalanceResponseDTO:
    return BalanceResponseDTO(
        user_id=account.user_id,
        balance=account.balance,
        tier=account.tier.value,
        monthly_credits=account.monthly_credits,
        credits_used=account.credits_used,
        current_period_start=account.current_period_start,
        current_period_end=account.current_period_end,
        last_updated=account.updated_at,
    )


class GetBalance:
    """
    Get Balance Use Case

    Read-only operation that returns the latest committed balance
    for a given user.
    """

    def __init__(self, account_repo: CreditAccountRepository):
        """
        Initialize GetBalance use case

        Args:
            account_repo: Repository for accessing credit accounts
        """
        self.account_repo = account_repo

    async def execute(self, user_id: str) -> Result[BalanceResponseDTO]:
        """
        Execute get balance operation

        Args:
            user_id: The user identifier

        Returns:
            Result[BalanceResponseDTO]: Success with balance data or error

        Errors:
            ACCOUNT_NOT_FOUND: User has no credit account
        """
        account = await self.account_repo.get_by_user_id(user_id)

        if not account:
            return Return.err(
                Error(
                    code="ACCOUNT_NOT_FOUND",
                    message=f"No credit account found for user {user_id}",
                )
            )

        return Return.ok(balance_from_account(account))
