"""Ledger Reconciliation Background Worker

Releases orphaned reservations, then checks account balances against the
transaction log. Can be run as a standalone script or integrated with a
scheduler.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional, Tuple

from config import ApplicationConfig
from src.adapter.repositories import (
    SqlAlchemyCreditAccountRepository,
    SqlAlchemyCreditTransactionRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.use_cases.credits import (
    ReconcileLedger,
    ReconciliationResultDTO,
    RefundCredits,
    ReleaseStaleReservations,
    ReleaseStaleReservationsResultDTO,
)
from src.depends import build_engine, build_session_factory

logger = logging.getLogger(__name__)


class LedgerReconcilerWorker:
    """
    Background worker for credit ledger reconciliation

    Features:
    - Refunds reservations that never got a generation record
    - Compares account balances against transaction sums
    - Logs discrepancies for investigation
    - Can run once or continuously

    Usage:
        # Run once
        worker = LedgerReconcilerWorker()
        released, reconciliation = await worker.run_once()

        # Run continuously
        await worker.run_forever(interval_seconds=900)
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        stale_after_minutes: Optional[int] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            stale_after_minutes: Grace period before a reservation is orphaned
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.stale_after_minutes = stale_after_minutes or ApplicationConfig.STALE_RESERVATION_MINUTES

        self.engine = build_engine(self.db_uri)
        self.async_session_factory = build_session_factory(self.engine)

        logger.info("LedgerReconcilerWorker initialized")

    async def run_once(
        self, now: Optional[datetime] = None
    ) -> Tuple[Optional[ReleaseStaleReservationsResultDTO], Optional[ReconciliationResultDTO]]:
        """
        Release orphaned reservations, then reconcile

        Returns:
            (release result, reconciliation result); both None when disabled
        """
        if not ApplicationConfig.RECONCILIATION_ENABLED:
            logger.info("Ledger reconciliation is disabled, skipping")
            return None, None

        async with self.async_session_factory() as session:
            uow = SqlAlchemyUnitOfWork(session)
            account_repo = SqlAlchemyCreditAccountRepository(session)
            transaction_repo = SqlAlchemyCreditTransactionRepository(session)

            release = ReleaseStaleReservations(
                uow=uow,
                transaction_repo=transaction_repo,
                refund=RefundCredits(uow, account_repo, transaction_repo),
                stale_after_minutes=self.stale_after_minutes,
            )
            released = await release.execute(now=now)
            if released.is_err():
                raise RuntimeError(f"Releasing stale reservations failed: {released.error.message}")

            if released.value.released:
                logger.warning(
                    f"Released {len(released.value.released)} orphaned reservations "
                    f"({released.value.failed} failed)"
                )

            reconcile = ReconcileLedger(
                uow=uow,
                account_repo=account_repo,
                transaction_repo=transaction_repo,
            )
            result = await reconcile.execute()

            if result.is_err():
                logger.error(f"Reconciliation failed: {result.error.message}")
                raise RuntimeError(f"Reconciliation failed: {result.error.message}")

            response = result.value

            # Log discrepancies with severity
            if response.discrepancies_found > 0:
                logger.error(
                    f"ALERT: {response.discrepancies_found} ledger discrepancies found!"
                )
                for d in response.discrepancies:
                    logger.error(
                        f"  - User {d.user_id} (account_id={d.account_id}): "
                        f"expected={d.calculated_balance}, actual={d.account_balance}, "
                        f"diff={d.discrepancy}"
                    )

            return released.value, response

    async def run_forever(self, interval_seconds: int = 900):
        """
        Run reconciliation continuously at specified interval

        Args:
            interval_seconds: Seconds between reconciliation runs (default: 15 minutes)
        """
        logger.info(
            f"Starting continuous ledger reconciliation with {interval_seconds}s interval"
        )

        while True:
            try:
                _, result = await self.run_once()
                if result:
                    logger.info(
                        f"Reconciliation cycle complete. "
                        f"Checked {result.total_accounts_checked} accounts, "
                        f"found {result.discrepancies_found} discrepancies "
                        f"in {result.execution_time_ms}ms"
                    )
            except Exception as e:
                logger.error(f"Reconciliation cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("LedgerReconcilerWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once
        python -m src.worker.ledger_reconciler --once

        # Run continuously with custom interval (in seconds)
        python -m src.worker.ledger_reconciler --interval 3600
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Ledger Reconciliation Worker")
    parser.add_argument(
        "--once", action="store_true", help="Run once and exit"
    )
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: 900)"
    )
    args = parser.parse_args()

    worker = LedgerReconcilerWorker()

    try:
        if args.once:
            released, result = await worker.run_once()
            if result is None:
                print("Reconciliation is disabled")
                return
            print("Reconciliation complete:")
            print(f"  Orphaned reservations released: {len(released.released)}")
            print(f"  Total accounts checked: {result.total_accounts_checked}")
            print(f"  Discrepancies found: {result.discrepancies_found}")
            print(f"  Execution time: {result.execution_time_ms}ms")
            if result.discrepancies:
                print("\nDiscrepancies:")
                for d in result.discrepancies:
                    print(
                        f"  - User {d.user_id}: "
                        f"expected={d.calculated_balance}, "
                        f"actual={d.account_balance}, "
                        f"diff={d.discrepancy}"
                    )
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
