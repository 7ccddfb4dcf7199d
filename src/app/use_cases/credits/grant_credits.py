"""GrantCredits Use Case

Applies credits purchased through the payment provider. One-time purchases
add to the balance; subscription renewals set it to the tier's monthly
allotment. Both are idempotent on the billing event id.
"""

import logging
from datetime import timedelta
from decimal import Decimal
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_account import CreditAccount
from src.domain.credit_transaction import CreditTransaction, GrantMode, TransactionType, grant_key
from .dtos import (
    GrantCommandDTO,
    LedgerEntryResponseDTO,
    LedgerOutcome,
    ledger_entry_from_transaction,
)

logger = logging.getLogger(__name__)


class GrantCredits:
    """
    Use Case: Grant credits from a billing event

    Business Rules:
    1. Idempotency: a billing event is applied at most once
    2. Account creation: a grant for an unknown user opens the account
    3. add: balance += amount (atomic increment)
    4. set-monthly: balance = monthly allotment plus purchases made after the
       renewal event; usage counter reset; tier and period updated
    5. Ordering: a set-monthly event not newer than the last applied renewal
       is acknowledged as stale and changes nothing

    Flow:
    1. Check idempotency (return existing if found)
    2. Get or create account (locked for set-monthly)
    3. Apply add or set-monthly
    4. Append grant transaction with balance snapshots
    5. Commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
        subscription_period_days: int = 30,
    ):
        self.uow = uow
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo
        self.subscription_period_days = subscription_period_days

    async def execute(self, command: GrantCommandDTO) -> Result[LedgerEntryResponseDTO]:
        """
        Execute credit grant

        Returns:
            Result[LedgerEntryResponseDTO]: outcome applied, already_applied or
            stale_renewal

        Errors:
            INVALID_REQUEST: zero add grant, or set-monthly without a tier
            STORE_UNAVAILABLE: the store could not be reached
        """
        if command.mode == GrantMode.ADD and command.amount <= 0:
            return Return.err(
                Error(code="INVALID_REQUEST", message="Grant amount must be greater than 0")
            )
        if command.mode == GrantMode.SET_MONTHLY and command.tier is None:
            return Return.err(
                Error(code="INVALID_REQUEST", message="Monthly grant requires a subscription tier")
            )

        key = grant_key(command.billing_event_id)

        try:
            # Step 1: Check idempotency
            existing = await self.transaction_repo.get_by_idempotency_key(key)
            if existing:
                response = ledger_entry_from_transaction(existing, LedgerOutcome.ALREADY_APPLIED)
                await self.uow.rollback()
                return Return.ok(response)

            # Step 2: Get or create account
            for_update = command.mode == GrantMode.SET_MONTHLY
            account = await self.account_repo.get_by_user_id(command.user_id, for_update=for_update)
            if not account:
                await self.account_repo.create(CreditAccount(user_id=command.user_id))
                account = await self.account_repo.get_by_user_id(command.user_id, for_update=for_update)
                logger.info(f"Opened credit account for user {command.user_id} on grant")

            # Step 3: Apply grant
            if command.mode == GrantMode.ADD:
                balance_after = await self.account_repo.credit(command.user_id, command.amount)
                balance_before = balance_after - command.amount
            else:
                renewal = await self._apply_renewal(account, command)
                if renewal is None:
                    response = LedgerEntryResponseDTO(
                        outcome=LedgerOutcome.STALE_RENEWAL,
                        user_id=command.user_id,
                        balance_before=account.balance,
                        balance_after=account.balance,
                        related_billing_event_id=command.billing_event_id,
                    )
                    await self.uow.rollback()
                    logger.warning(
                        f"Ignored stale renewal {command.billing_event_id} for user {command.user_id} "
                        f"(event at {command.event_created_at}, last renewal at {account.last_renewal_at})"
                    )
                    return Return.ok(response)
                balance_before, balance_after = renewal

            # Step 4: Append transaction (signed delta)
            transaction = CreditTransaction(
                user_id=command.user_id,
                account_id=account.id,
                transaction_type=TransactionType.GRANT,
                amount=balance_after - balance_before,
                balance_before=balance_before,
                balance_after=balance_after,
                related_billing_event_id=command.billing_event_id,
                grant_mode=command.mode,
                event_created_at=command.event_created_at,
                idempotency_key=key,
            )
            created = await self.transaction_repo.create(transaction)
            response = ledger_entry_from_transaction(created, LedgerOutcome.APPLIED)

            # Step 5: Commit
            await self.uow.commit()

            logger.info(
                f"Granted credits to user {command.user_id} "
                f"(event={command.billing_event_id}, mode={command.mode.value}, "
                f"balance {balance_before} -> {balance_after})"
            )
            return Return.ok(response)

        except IntegrityError:
            # Redelivered event processed concurrently
            await self.uow.rollback()
            existing = await self.transaction_repo.get_by_idempotency_key(key)
            if existing:
                return Return.ok(ledger_entry_from_transaction(existing, LedgerOutcome.ALREADY_APPLIED))
            return Return.err(
                Error(
                    code="STORE_UNAVAILABLE",
                    message="Failed to grant credits",
                    reason="integrity error without a matching grant",
                )
            )

        except SQLAlchemyError as e:
            await self.uow.rollback()
            logger.error(f"Grant failed for event {command.billing_event_id}: {e}")
            return Return.err(
                Error(
                    code="STORE_UNAVAILABLE",
                    message="Failed to grant credits",
                    reason=str(e),
                )
            )

    async def _apply_renewal(self, account: CreditAccount, command: GrantCommandDTO):
        """
        Set the balance to the monthly allotment

        Returns:
            (balance_before, balance_after), or None for a stale renewal
        """
        period_start = command.event_created_at
        if account.last_renewal_at is not None and period_start <= account.last_renewal_at:
            return None

        carried_over = await self.transaction_repo.sum_added_grants_since(
            command.user_id, period_start
        )
        balance_before = account.balance
        balance_after = Decimal(command.amount) + carried_over

        applied = await self.account_repo.apply_renewal(
            account_id=account.id,
            tier=command.tier,
            monthly_credits=command.amount,
            new_balance=balance_after,
            period_start=period_start,
            period_end=period_start + timedelta(days=self.subscription_period_days),
        )
        if not applied:
            return None
        return balance_before, balance_after
