"""ReserveCredits Use Case

Debits credits ahead of a paid provider call. The debit is a single
conditional update in the store, so concurrent reservations for one account
can never overdraw it.
"""

import logging
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import CreditTransaction, TransactionType, reservation_key
from .dtos import (
    LedgerEntryResponseDTO,
    LedgerOutcome,
    ReserveCommandDTO,
    ledger_entry_from_transaction,
)

logger = logging.getLogger(__name__)


class ReserveCredits:
    """
    Use Case: Reserve credits for a generation

    Business Rules:
    1. Idempotency: a reservation token is debited at most once
    2. Sufficient balance: the store only applies the debit when balance >= amount
    3. Atomic updates: debit and transaction row commit together
    4. No read-then-write: the balance is never computed in application code

    Flow:
    1. Check idempotency (return existing if found)
    2. Ensure the account exists
    3. Conditional debit (compare-and-decrement)
    4. Append reserve transaction with balance snapshots
    5. Commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo

    async def execute(self, command: ReserveCommandDTO) -> Result[LedgerEntryResponseDTO]:
        """
        Execute credit reservation

        Args:
            command: ReserveCommandDTO with user_id, reservation_id, amount

        Returns:
            Result[LedgerEntryResponseDTO]: outcome applied or already_reserved

        Errors:
            ACCOUNT_NOT_FOUND: user has no credit account
            INSUFFICIENT_CREDITS: balance does not cover amount (details carry
                required and available)
            RESERVATION_CONFLICT: token already used by another user
            STORE_UNAVAILABLE: the store could not be reached
        """
        key = reservation_key(command.reservation_id)

        try:
            # Step 1: Check idempotency
            existing = await self.transaction_repo.get_by_idempotency_key(key)
            if existing:
                result = self._replay(existing, command)
                await self.uow.rollback()
                return result

            # Step 2: Ensure account exists
            account = await self.account_repo.get_by_user_id(command.user_id)
            if not account:
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="ACCOUNT_NOT_FOUND",
                        message=f"Credit account not found for user {command.user_id}",
                    )
                )
            account_id = account.id

            # Step 3: Conditional debit
            balance_after = await self.account_repo.debit_if_sufficient(
                command.user_id, command.amount
            )
            if balance_after is None:
                current = await self.account_repo.get_by_user_id(command.user_id)
                available = current.balance if current else account.balance
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="INSUFFICIENT_CREDITS",
                        message=f"Insufficient credits. Required: {command.amount}, Available: {available}",
                        reason=f"balance={available}, required={command.amount}",
                        details={"required": str(command.amount), "available": str(available)},
                    )
                )

            # Step 4: Append transaction (signed delta)
            transaction = CreditTransaction(
                user_id=command.user_id,
                account_id=account_id,
                transaction_type=TransactionType.RESERVE,
                amount=-command.amount,
                balance_before=balance_after + command.amount,
                balance_after=balance_after,
                related_generation_id=command.reservation_id,
                idempotency_key=key,
            )
            created = await self.transaction_repo.create(transaction)
            response = ledger_entry_from_transaction(created, LedgerOutcome.APPLIED)

            # Step 5: Commit
            await self.uow.commit()

            logger.info(
                f"Reserved {command.amount} credits for user {command.user_id} "
                f"(reservation={command.reservation_id}, balance={balance_after})"
            )
            return Return.ok(response)

        except IntegrityError:
            # A concurrent caller committed the same reservation first
            await self.uow.rollback()
            existing = await self.transaction_repo.get_by_idempotency_key(key)
            if existing:
                return self._replay(existing, command)
            return Return.err(
                Error(
                    code="STORE_UNAVAILABLE",
                    message="Failed to reserve credits",
                    reason="integrity error without a matching reservation",
                )
            )

        except SQLAlchemyError as e:
            await self.uow.rollback()
            logger.error(f"Reserve failed for user {command.user_id}: {e}")
            return Return.err(
                Error(
                    code="STORE_UNAVAILABLE",
                    message="Failed to reserve credits",
                    reason=str(e),
                )
            )

    def _replay(self, existing: CreditTransaction, command: ReserveCommandDTO) -> Result[LedgerEntryResponseDTO]:
        if existing.user_id != command.user_id:
            return Return.err(
                Error(
                    code="RESERVATION_CONFLICT",
                    message=f"Reservation {command.reservation_id} belongs to another user",
                )
            )
        return Return.ok(ledger_entry_from_transaction(existing, LedgerOutcome.ALREADY_RESERVED))
