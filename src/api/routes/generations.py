"""Generation API Routes

Submit a paid video generation, poll its status and list history.
"""

from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.error import ClientError
from src.api.schemas.generation_request import SubmitGenerationRequestSchema
from src.adapter.repositories import (
    SqlAlchemyCreditAccountRepository,
    SqlAlchemyCreditTransactionRepository,
    SqlAlchemyGenerationRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.video_provider import ProviderRegistry
from src.app.use_cases.credits import RefundCredits, ReserveCredits
from src.app.use_cases.generation import (
    GenerationHandleDTO,
    GenerationStatusDTO,
    ListGenerations,
    ListGenerationsResponseDTO,
    PollGeneration,
    SubmitGeneration,
    SubmitGenerationCommandDTO,
)
from src.depends import get_provider_registry, get_session
from src.domain.video_model import MODEL_CATALOG, VideoModel

router = APIRouter(prefix="/generations", tags=["Generations"])


@router.get("/models", response_model=List[VideoModel])
async def list_models():
    """
    Model catalog: credits charged, provider and estimated duration per model.
    """
    return list(MODEL_CATALOG.values())


@router.post(
    "",
    response_model=GenerationHandleDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"description": "Empty prompt or unknown model"},
        402: {
            "description": "Insufficient credits",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSUFFICIENT_CREDITS",
                            "message": "Insufficient credits. Required: 0.8, Available: 0.5",
                            "details": {"required": "0.8", "available": "0.5"},
                        }
                    }
                }
            },
        },
        404: {"description": "User has no credit account"},
        503: {"description": "Provider or store unavailable; reservation was refunded"},
    },
)
async def submit_generation(
    request: SubmitGenerationRequestSchema,
    session: AsyncSession = Depends(get_session),
    providers: ProviderRegistry = Depends(get_provider_registry),
):
    """
    Reserve the model's credits and submit the job to its provider.

    **Returns:**
    - 200: Job accepted; poll `GET /generations/{generation_id}`
    - 400: Empty prompt or unknown model
    - 402: Insufficient credits (no provider call was made)
    - 503: Provider unavailable (credits refunded)
    """
    uow = SqlAlchemyUnitOfWork(session)
    account_repo = SqlAlchemyCreditAccountRepository(session)
    transaction_repo = SqlAlchemyCreditTransactionRepository(session)

    use_case = SubmitGeneration(
        uow=uow,
        generation_repo=SqlAlchemyGenerationRepository(session),
        providers=providers,
        reserve=ReserveCredits(uow, account_repo, transaction_repo),
        refund=RefundCredits(uow, account_repo, transaction_repo),
    )
    result = await use_case.execute(
        SubmitGenerationCommandDTO(
            user_id=request.user_id,
            prompt=request.prompt,
            model_id=request.model_id,
        )
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get("", response_model=ListGenerationsResponseDTO)
async def list_generations(
    user_id: str = Query(..., min_length=1),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    """
    Generation history for a user, newest first, with spend stats.
    """
    use_case = ListGenerations(SqlAlchemyGenerationRepository(session))
    result = await use_case.execute(user_id, limit=limit, offset=offset)
    return result.value


@router.get(
    "/{generation_id}",
    response_model=GenerationStatusDTO,
    responses={404: {"description": "Generation not found"}},
)
async def get_generation_status(
    generation_id: str,
    session: AsyncSession = Depends(get_session),
    providers: ProviderRegistry = Depends(get_provider_registry),
):
    """
    Current status of a generation.

    Terminal generations are answered from the store without contacting the
    provider. A failed generation's credits are refunded exactly once.
    """
    uow = SqlAlchemyUnitOfWork(session)
    account_repo = SqlAlchemyCreditAccountRepository(session)
    transaction_repo = SqlAlchemyCreditTransactionRepository(session)

    use_case = PollGeneration(
        uow=uow,
        generation_repo=SqlAlchemyGenerationRepository(session),
        providers=providers,
        refund=RefundCredits(uow, account_repo, transaction_repo),
    )
    result = await use_case.execute(generation_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value
