"""RefundCredits Use Case

Returns a reservation to the user's balance when a paid generation fails.
Guarded by the refund idempotency key so duplicate failure observations
credit the account exactly once.
"""

import logging
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import (
    CreditTransaction,
    TransactionType,
    refund_key,
    reservation_key,
)
from .dtos import (
    LedgerEntryResponseDTO,
    LedgerOutcome,
    RefundCommandDTO,
    ledger_entry_from_transaction,
)

logger = logging.getLogger(__name__)


class RefundCredits:
    """
    Use Case: Refund a reservation

    Business Rules:
    1. Idempotency: a reservation is refunded at most once
    2. The reservation must exist and belong to the user
    3. Refund amount defaults to the reserved amount and cannot exceed it
    4. Balance increment is a single atomic update; usage counter is released

    Flow:
    1. Check idempotency (return existing refund if found)
    2. Look up the original reservation
    3. Resolve refund amount
    4. Atomic increment
    5. Append refund transaction
    6. Commit
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

    async def execute(self, command: RefundCommandDTO) -> Result[LedgerEntryResponseDTO]:
        """
        Execute refund

        Returns:
            Result[LedgerEntryResponseDTO]: outcome applied or already_refunded

        Errors:
            NO_SUCH_RESERVATION: no reservation for this user and token
            INVALID_REQUEST: amount exceeds the reserved amount
            STORE_UNAVAILABLE: the store could not be reached
        """
        key = refund_key(command.reservation_id)

        try:
            # Step 1: Check idempotency
            existing = await self.transaction_repo.get_by_idempotency_key(key)
            if existing:
                response = ledger_entry_from_transaction(existing, LedgerOutcome.ALREADY_REFUNDED)
                await self.uow.rollback()
                return Return.ok(response)

            # Step 2: Find original reservation
            reservation = await self.transaction_repo.get_by_idempotency_key(
                reservation_key(command.reservation_id)
            )
            if not reservation or reservation.user_id != command.user_id:
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="NO_SUCH_RESERVATION",
                        message=f"No reservation {command.reservation_id} for user {command.user_id}",
                    )
                )

            # Step 3: Resolve amount (reserve rows store a negative delta)
            reserved = -reservation.amount
            amount = command.amount if command.amount is not None else reserved
            if amount > reserved:
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="INVALID_REQUEST",
                        message=f"Refund amount {amount} exceeds reserved amount {reserved}",
                        details={"requested": str(amount), "reserved": str(reserved)},
                    )
                )

            # Step 4: Atomic increment
            balance_after = await self.account_repo.credit(
                command.user_id, amount, release_usage=True
            )
            if balance_after is None:
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="ACCOUNT_NOT_FOUND",
                        message=f"Credit account not found for user {command.user_id}",
                    )
                )

            # Step 5: Append refund transaction
            transaction = CreditTransaction(
                user_id=command.user_id,
                account_id=reservation.account_id,
                transaction_type=TransactionType.REFUND,
                amount=amount,
                balance_before=balance_after - amount,
                balance_after=balance_after,
                related_generation_id=command.reservation_id,
                idempotency_key=key,
            )
            created = await self.transaction_repo.create(transaction)
            response = ledger_entry_from_transaction(created, LedgerOutcome.APPLIED)

            # Step 6: Commit
            await self.uow.commit()

            logger.info(
                f"Refunded {amount} credits to user {command.user_id} "
                f"(reservation={command.reservation_id}, reason={command.reason})"
            )
            return Return.ok(response)

        except IntegrityError:
            # Concurrent refund of the same reservation won the insert
            await self.uow.rollback()
            existing = await self.transaction_repo.get_by_idempotency_key(key)
            if existing:
                return Return.ok(ledger_entry_from_transaction(existing, LedgerOutcome.ALREADY_REFUNDED))
            return Return.err(
                Error(
                    code="STORE_UNAVAILABLE",
                    message="Failed to refund credits",
                    reason="integrity error without a matching refund",
                )
            )

        except SQLAlchemyError as e:
            await self.uow.rollback()
            logger.error(f"Refund failed for reservation {command.reservation_id}: {e}")
            return Return.err(
                Error(
                    code="STORE_UNAVAILABLE",
                    message="Failed to refund credits",
                    reason=str(e),
                )
            )
