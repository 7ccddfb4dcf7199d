"""
List Transactions Use Case

A user's ledger history, newest first. Reservation entries are joined to
the generation they paid for, so a reserve and its refund can be traced to
the provider job and its outcome.
"""
from typing import Dict, Optional
from sqlalchemy.exc import SQLAlchemyError
from libs.result import Result, Return, Error
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.repositories.generation_repository import GenerationRepository
from src.domain.credit_transaction import CreditTransaction, TransactionType
from src.domain.generation import GenerationRecord
from .dtos import ListTransactionsResponseDTO, TransactionDTO


class ListTransactions:
    """
    Use case: View ledger history

    Business Rules:
    1. Amounts are signed deltas (reserve < 0, refund > 0)
    2. Optional filter on one transaction type
    3. Reserve/refund entries resolve their reservation token to the
       generation record, when one was persisted; an orphaned reservation
       shows no generation
    """

    def __init__(
        self,
        transaction_repo: CreditTransactionRepository,
        generation_repo: GenerationRepository,
    ):
        self.transaction_repo = transaction_repo
        self.generation_repo = generation_repo

    async def execute(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        transaction_type: Optional[str] = None,
    ) -> Result[ListTransactionsResponseDTO]:
        kind = None
        if transaction_type:
            try:
                kind = TransactionType(transaction_type)
            except ValueError:
                return Return.err(
                    Error(
                        code="INVALID_REQUEST",
                        message=f"Unknown transaction type {transaction_type}",
                        details={"allowed": [t.value for t in TransactionType]},
                    )
                )

        try:
            transactions, total = await self.transaction_repo.get_by_user_id(
                user_id=user_id,
                limit=limit,
                offset=offset,
                transaction_type=kind,
            )
            reservation_ids = sorted(
                {txn.related_generation_id for txn in transactions if txn.related_generation_id}
            )
            records = await self.generation_repo.get_by_reservation_ids(reservation_ids)
        except SQLAlchemyError as e:
            return Return.err(
                Error(code="STORE_UNAVAILABLE", message="Failed to load transactions", reason=str(e))
            )

        by_reservation = {record.reservation_id: record for record in records}

        return Return.ok(
            ListTransactionsResponseDTO(
                transactions=[self._entry(txn, by_reservation) for txn in transactions],
                total=total,
                transaction_type=kind.value if kind else None,
                limit=limit,
                offset=offset,
            )
        )

    @staticmethod
    def _entry(txn: CreditTransaction, by_reservation: Dict[str, GenerationRecord]) -> TransactionDTO:
        record = by_reservation.get(txn.related_generation_id) if txn.related_generation_id else None
        return TransactionDTO(
            id=txn.id,
            transaction_type=txn.transaction_type.value,
            amount=txn.amount,
            balance_before=txn.balance_before,
            balance_after=txn.balance_after,
            reservation_id=txn.related_generation_id,
            generation_id=record.generation_id if record else None,
            generation_status=record.status.value if record else None,
            billing_event_id=txn.related_billing_event_id,
            grant_mode=txn.grant_mode.value if txn.grant_mode else None,
            created_at=txn.created_at,
        )
