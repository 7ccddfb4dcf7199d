"""SubmitGeneration Use Case

Reserves credits, submits the paid job to the model's provider and records
the generation. Credits are always reserved before the provider is called,
and every failure after the reservation refunds it.
"""

import logging
from typing import Dict, Optional
from sqlalchemy.exc import SQLAlchemyError
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.video_provider import ProviderError, ProviderRegistry
from src.app.repositories.generation_repository import GenerationRepository
from src.app.use_cases.credits import (
    RefundCommandDTO,
    RefundCredits,
    ReserveCommandDTO,
    ReserveCredits,
)
from src.domain.base import generate_reservation_id
from src.domain.generation import GenerationRecord, GenerationStatus
from src.domain.video_model import VideoModel, get_video_model
from .dtos import GenerationHandleDTO, SubmitGenerationCommandDTO

logger = logging.getLogger(__name__)


class SubmitGeneration:
    """
    Use Case: Submit a video generation

    Business Rules:
    1. Empty prompt or unknown model is rejected before any state change
    2. Credits come from the model catalog only
    3. Reserve strictly precedes the provider call; no reservation, no call
    4. Provider failure refunds the reservation and creates no record
    5. Record write failure refunds the reservation; orphaned reservations
       are released later by ReleaseStaleReservations

    Flow:
    1. Validate request and resolve model and provider
    2. Mint reservation token and reserve credits
    3. Submit to provider
    4. Persist generation record (status=starting)
    5. Return handle
    """

    def __init__(
        self,
        uow: UnitOfWork,
        generation_repo: GenerationRepository,
        providers: ProviderRegistry,
        reserve: ReserveCredits,
        refund: RefundCredits,
        catalog: Optional[Dict[str, VideoModel]] = None,
    ):
        self.uow = uow
        self.generation_repo = generation_repo
        self.providers = providers
        self.reserve = reserve
        self.refund = refund
        self.catalog = catalog

    async def execute(self, command: SubmitGenerationCommandDTO) -> Result[GenerationHandleDTO]:
        """
        Execute generation submit

        Errors:
            INVALID_REQUEST: empty prompt or unknown model
            ACCOUNT_NOT_FOUND / INSUFFICIENT_CREDITS: from the reservation
            PROVIDER_UNAVAILABLE: provider not configured or submission failed
            STORE_UNAVAILABLE: reservation or record could not be written
        """
        # Step 1: Validate
        prompt = command.prompt.strip()
        if not prompt:
            return Return.err(Error(code="INVALID_REQUEST", message="Prompt must not be empty"))

        model = get_video_model(command.model_id, self.catalog)
        if not model:
            return Return.err(
                Error(
                    code="INVALID_REQUEST",
                    message=f"Unknown model {command.model_id}",
                    reason="model is not in the catalog",
                )
            )

        provider = self.providers.get(model.provider)
        if not provider:
            return Return.err(
                Error(
                    code="PROVIDER_UNAVAILABLE",
                    message=f"Provider {model.provider.value} is not configured",
                )
            )

        # Step 2: Reserve
        reservation_id = generate_reservation_id()
        reserved = await self.reserve.execute(
            ReserveCommandDTO(
                user_id=command.user_id,
                reservation_id=reservation_id,
                amount=model.credits_cost,
            )
        )
        if reserved.is_err():
            return reserved

        # Step 3: Submit to provider
        try:
            job_id = await provider.submit(prompt, model)
        except ProviderError as e:
            logger.warning(
                f"Provider {model.provider.value} rejected generation for user {command.user_id}: {e}"
            )
            await self._compensate(command.user_id, reservation_id, f"provider submit failed: {e}")
            return Return.err(
                Error(
                    code="PROVIDER_UNAVAILABLE",
                    message="Video provider is unavailable, please retry",
                    reason=str(e),
                )
            )

        # Step 4: Persist record
        record = GenerationRecord(
            generation_id=job_id,
            reservation_id=reservation_id,
            user_id=command.user_id,
            provider=model.provider.value,
            model=model.model_id,
            prompt=prompt,
            status=GenerationStatus.STARTING,
            credits_reserved=model.credits_cost,
            cost_to_operator=model.operator_cost,
        )
        try:
            created = await self.generation_repo.create(record)
            response = GenerationHandleDTO(
                generation_id=created.generation_id,
                status=created.status.value,
                model_id=model.model_id,
                credits_reserved=model.credits_cost,
                balance_after=reserved.value.balance_after,
                estimated_duration_seconds=model.estimated_duration_seconds,
                created_at=created.created_at,
            )
            await self.uow.commit()
        except SQLAlchemyError as e:
            await self.uow.rollback()
            logger.error(
                f"Failed to record generation {job_id} (reservation={reservation_id}, "
                f"user={command.user_id}): {e}"
            )
            await self._compensate(command.user_id, reservation_id, f"record write failed: {e}")
            return Return.err(
                Error(
                    code="STORE_UNAVAILABLE",
                    message="Failed to record generation",
                    reason=str(e),
                    details={"provider_job_id": job_id, "reservation_id": reservation_id},
                )
            )

        logger.info(
            f"Submitted generation {job_id} for user {command.user_id} "
            f"(model={model.model_id}, credits={model.credits_cost})"
        )
        return Return.ok(response)

    async def _compensate(self, user_id: str, reservation_id: str, reason: str) -> None:
        result = await self.refund.execute(
            RefundCommandDTO(user_id=user_id, reservation_id=reservation_id, reason=reason)
        )
        if result.is_err():
            logger.error(
                f"Compensating refund failed for reservation {reservation_id} "
                f"(user={user_id}): {result.error.code} {result.error.message}"
            )
