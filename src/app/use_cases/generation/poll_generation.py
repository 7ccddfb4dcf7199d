"""PollGeneration Use Case

Advances a generation record from the provider's current status. Terminal
records are answered from the store; a failed generation refunds its
reservation exactly once.
"""

import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.video_provider import ProviderError, ProviderJobStatus, ProviderRegistry
from src.app.repositories.generation_repository import GenerationRepository
from src.app.use_cases.credits import RefundCommandDTO, RefundCredits
from src.domain.generation import TERMINAL_STATUSES, GenerationStatus, is_forward_transition
from .dtos import GenerationStatusDTO, status_from_record

logger = logging.getLogger(__name__)

_CANONICAL_TO_RECORD = {
    ProviderJobStatus.QUEUED: GenerationStatus.STARTING,
    ProviderJobStatus.PROCESSING: GenerationStatus.PROCESSING,
    ProviderJobStatus.SUCCEEDED: GenerationStatus.SUCCEEDED,
    ProviderJobStatus.FAILED: GenerationStatus.FAILED,
}


class PollGeneration:
    """
    Use Case: Poll a generation

    Business Rules:
    1. Terminal records never call the provider again
    2. Status only moves forward: starting -> processing -> succeeded | failed
    3. No store transaction is open while the provider is polled
    4. The write is conditional on the status that was loaded; if another
       poll advanced the record first, its state wins
    5. failed triggers the idempotent refund; it is re-invoked on later polls
       so a refund lost to a store failure is retried
    6. Provider errors are logged and the last known state is returned; the
       ledger is never touched speculatively
    7. Record write failures are logged, not surfaced

    Flow:
    1. Load record and release the transaction
    2. Answer terminal records from the store
    3. Poll provider and map status
    4. Persist forward transition
    5. Refund on failure
    """

    def __init__(
        self,
        uow: UnitOfWork,
        generation_repo: GenerationRepository,
        providers: ProviderRegistry,
        refund: RefundCredits,
    ):
        self.uow = uow
        self.generation_repo = generation_repo
        self.providers = providers
        self.refund = refund

    async def execute(self, generation_id: str) -> Result[GenerationStatusDTO]:
        # Step 1: Load record; plain copies survive the rollback
        try:
            record = await self.generation_repo.get_by_generation_id(generation_id)
            snapshot = status_from_record(record) if record else None
            loaded_status = record.status if record else None
            reservation_id = record.reservation_id if record else None
            await self.uow.rollback()
        except SQLAlchemyError as e:
            await self.uow.rollback()
            logger.error(f"Failed to load generation {generation_id}: {e}")
            return Return.err(
                Error(code="STORE_UNAVAILABLE", message="Failed to load generation", reason=str(e))
            )

        if not snapshot:
            return Return.err(
                Error(
                    code="GENERATION_NOT_FOUND",
                    message=f"Generation {generation_id} not found",
                )
            )

        # Step 2: Terminal records are answered from the store
        if loaded_status in TERMINAL_STATUSES:
            if loaded_status == GenerationStatus.FAILED:
                await self._refund(snapshot.user_id, reservation_id, generation_id)
            return Return.ok(snapshot)

        # Step 3: Poll provider
        provider = self.providers.get(snapshot.provider)
        if not provider:
            logger.warning(f"Provider {snapshot.provider} for generation {generation_id} is not configured")
            return Return.ok(snapshot)

        try:
            poll = await provider.poll(generation_id)
        except ProviderError as e:
            logger.warning(f"Poll failed for generation {generation_id}, keeping last known state: {e}")
            return Return.ok(snapshot)

        new_status = _CANONICAL_TO_RECORD[poll.status]
        if not is_forward_transition(loaded_status, new_status):
            return Return.ok(snapshot)

        # Step 4: Persist transition, guarded on the loaded status
        now = datetime.utcnow()
        changes = {"status": new_status.value, "updated_at": now}
        if new_status == GenerationStatus.SUCCEEDED:
            changes["video_url"] = poll.output_url or provider.extract_output(poll.raw)
            changes["completed_at"] = now
        elif new_status == GenerationStatus.FAILED:
            changes["error_message"] = poll.error_detail or "Generation failed"
            changes["completed_at"] = now
        response = snapshot.model_copy(update=changes)

        superseded = False
        try:
            advanced = await self.generation_repo.advance_status(
                generation_id,
                from_status=loaded_status,
                to_status=new_status,
                video_url=changes.get("video_url"),
                error_message=changes.get("error_message"),
                completed_at=changes.get("completed_at"),
            )
            if advanced:
                await self.uow.commit()
            else:
                superseded = True
                await self.uow.rollback()
        except SQLAlchemyError as e:
            await self.uow.rollback()
            logger.error(f"Failed to persist status {new_status.value} for generation {generation_id}: {e}")

        if superseded:
            logger.info(f"Generation {generation_id} was advanced past {loaded_status.value} by another poll")
            return Return.ok(await self._reload(generation_id, snapshot))

        logger.info(f"Generation {generation_id} moved to {new_status.value}")

        # Step 5: Refund failed generation
        if new_status == GenerationStatus.FAILED:
            await self._refund(snapshot.user_id, reservation_id, generation_id)

        return Return.ok(response)

    async def _reload(self, generation_id: str, fallback: GenerationStatusDTO) -> GenerationStatusDTO:
        current: Optional[GenerationStatusDTO] = None
        try:
            record = await self.generation_repo.get_by_generation_id(generation_id)
            if record:
                current = status_from_record(record)
            await self.uow.rollback()
        except SQLAlchemyError as e:
            await self.uow.rollback()
            logger.error(f"Failed to reload generation {generation_id}: {e}")
        return current or fallback

    async def _refund(self, user_id: str, reservation_id: str, generation_id: str) -> None:
        result = await self.refund.execute(
            RefundCommandDTO(
                user_id=user_id,
                reservation_id=reservation_id,
                reason=f"generation {generation_id} failed",
            )
        )
        if result.is_err():
            logger.error(
                f"Refund for failed generation {generation_id} did not apply: "
                f"{result.error.code} {result.error.message}"
            )
