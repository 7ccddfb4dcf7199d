"""Generation Poller Background Worker

Polls providers for in-flight generations so records reach a terminal state
(and failed generations are refunded) even when no client keeps polling.
Can be run as a standalone script or integrated with a scheduler.
"""

import asyncio
import logging
from typing import Optional

from config import ApplicationConfig
from src.adapter.repositories import (
    SqlAlchemyCreditAccountRepository,
    SqlAlchemyCreditTransactionRepository,
    SqlAlchemyGenerationRepository,
)
from src.adapter.services.providers import create_provider_registry
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.video_provider import ProviderRegistry
from src.app.use_cases.credits import RefundCredits
from src.app.use_cases.generation import PollGeneration
from src.depends import build_engine, build_session_factory

logger = logging.getLogger(__name__)


class GenerationPollerWorker:
    """
    Background worker driving in-flight generations to completion

    Features:
    - Loads starting/processing records, oldest first
    - Polls each in its own session so one failure cannot affect the batch
    - Can run once or continuously

    Usage:
        worker = GenerationPollerWorker()
        polled = await worker.run_once()

        await worker.run_forever(interval_seconds=3)
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        providers: Optional[ProviderRegistry] = None,
        batch_size: Optional[int] = None,
    ):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.providers = providers if providers is not None else create_provider_registry(ApplicationConfig)
        self.batch_size = batch_size or ApplicationConfig.GENERATION_POLL_BATCH_SIZE

        self.engine = build_engine(self.db_uri)
        self.async_session_factory = build_session_factory(self.engine)

        logger.info("GenerationPollerWorker initialized")

    async def run_once(self) -> int:
        """
        Poll every in-flight generation once

        Returns:
            Number of generations polled successfully
        """
        if not ApplicationConfig.GENERATION_POLLER_ENABLED:
            logger.info("Generation poller is disabled, skipping")
            return 0

        async with self.async_session_factory() as session:
            records = await SqlAlchemyGenerationRepository(session).get_in_flight(limit=self.batch_size)
            generation_ids = [record.generation_id for record in records]

        if generation_ids:
            logger.info(f"Polling {len(generation_ids)} in-flight generations")

        polled = 0
        for generation_id in generation_ids:
            try:
                if await self._poll(generation_id):
                    polled += 1
            except Exception as e:
                logger.error(f"Polling generation {generation_id} failed: {e}")

        return polled

    async def _poll(self, generation_id: str) -> bool:
        async with self.async_session_factory() as session:
            uow = SqlAlchemyUnitOfWork(session)
            account_repo = SqlAlchemyCreditAccountRepository(session)
            transaction_repo = SqlAlchemyCreditTransactionRepository(session)

            use_case = PollGeneration(
                uow=uow,
                generation_repo=SqlAlchemyGenerationRepository(session),
                providers=self.providers,
                refund=RefundCredits(uow, account_repo, transaction_repo),
            )
            result = await use_case.execute(generation_id)

            if result.is_err():
                logger.warning(f"Poll of {generation_id} returned {result.error.code}: {result.error.message}")
                return False
            return True

    async def run_forever(self, interval_seconds: float = 3):
        logger.info(f"Starting generation poller with {interval_seconds}s interval")

        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Poll cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("GenerationPollerWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        python -m src.worker.generation_poller --once
        python -m src.worker.generation_poller --interval 5
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Generation Poller Worker")
    parser.add_argument("--once", action="store_true", help="Run once and exit")
    parser.add_argument(
        "--interval", type=float, default=ApplicationConfig.GENERATION_POLL_INTERVAL_SECONDS,
        help="Interval between polls in seconds (default: 3)"
    )
    args = parser.parse_args()

    worker = GenerationPollerWorker()

    try:
        if args.once:
            polled = await worker.run_once()
            print(f"Polled {polled} generations")
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
