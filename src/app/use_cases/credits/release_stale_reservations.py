"""ReleaseStaleReservations Use Case

Refunds reservations that were debited but never linked to a generation
record, e.g. when the process died between the provider call and persisting
the record, or the record write failed and the compensating refund did too.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from .dtos import (
    RefundCommandDTO,
    ReleasedReservationDTO,
    ReleaseStaleReservationsResultDTO,
)
from .refund_credits import RefundCredits

logger = logging.getLogger(__name__)


class ReleaseStaleReservations:
    """
    Use Case: Release orphaned reservations

    Business Rules:
    1. A reservation is orphaned when it is older than the grace period and
       has neither a generation record nor a refund
    2. Each orphan is refunded through RefundCredits (idempotent)
    3. A failed refund is logged and picked up on the next run
    """

    def __init__(
        self,
        uow: UnitOfWork,
        transaction_repo: CreditTransactionRepository,
        refund: RefundCredits,
        stale_after_minutes: int = 15,
        batch_size: int = 100,
    ):
        self.uow = uow
        self.transaction_repo = transaction_repo
        self.refund = refund
        self.stale_after_minutes = stale_after_minutes
        self.batch_size = batch_size

    async def execute(self, now: Optional[datetime] = None) -> Result[ReleaseStaleReservationsResultDTO]:
        cutoff = (now or datetime.utcnow()) - timedelta(minutes=self.stale_after_minutes)

        try:
            reservations = await self.transaction_repo.get_unresolved_reservations(
                created_before=cutoff, limit=self.batch_size
            )
            # Plain values; refunds below commit and expire loaded rows
            orphans = [
                (txn.user_id, txn.related_generation_id, -txn.amount) for txn in reservations
            ]
            await self.uow.rollback()
        except SQLAlchemyError as e:
            await self.uow.rollback()
            logger.error(f"Failed to load stale reservations: {e}")
            return Return.err(
                Error(
                    code="STORE_UNAVAILABLE",
                    message="Failed to load stale reservations",
                    reason=str(e),
                )
            )

        if orphans:
            logger.warning(f"Found {len(orphans)} orphaned reservations older than {cutoff}")

        released: list[ReleasedReservationDTO] = []
        failed = 0

        for user_id, reservation_id, amount in orphans:
            result = await self.refund.execute(
                RefundCommandDTO(
                    user_id=user_id,
                    reservation_id=reservation_id,
                    reason="orphaned reservation",
                )
            )
            if result.is_err():
                failed += 1
                logger.error(
                    f"Failed to release reservation {reservation_id} for user {user_id}: "
                    f"{result.error.code} {result.error.message}"
                )
                continue

            released.append(
                ReleasedReservationDTO(
                    user_id=user_id,
                    reservation_id=reservation_id,
                    amount=amount,
                    outcome=result.value.outcome,
                )
            )
            logger.info(f"Released orphaned reservation {reservation_id} ({amount} credits) for user {user_id}")

        return Return.ok(
            ReleaseStaleReservationsResultDTO(
                reservations_found=len(orphans),
                released=released,
                failed=failed,
                cutoff=cutoff,
            )
        )
