"""Data Transfer Objects for generation use cases"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from src.domain.generation import GenerationRecord


class SubmitGenerationCommandDTO(BaseModel):
    """
    Command DTO for submitting a video generation

    Prompt emptiness and model validity are checked by the use case so they
    surface as INVALID_REQUEST.
    """

    model_config = ConfigDict(protected_namespaces=())

    user_id: str = Field(..., min_length=1)

    prompt: str = Field(..., max_length=2000)

    model_id: str = Field(..., description="Catalog model identifier, e.g. seedance-1-pro-fast")


class GenerationHandleDTO(BaseModel):
    """Returned once the provider accepted the job"""

    model_config = ConfigDict(protected_namespaces=())

    generation_id: str

    status: str

    model_id: str

    credits_reserved: Decimal

    balance_after: Optional[Decimal] = None

    estimated_duration_seconds: int

    created_at: datetime


class GenerationStatusDTO(BaseModel):
    generation_id: str

    user_id: str

    status: str

    provider: str

    model: str

    prompt: str

    video_url: Optional[str] = None

    error_message: Optional[str] = None

    credits_reserved: Decimal

    cost_to_operator: Decimal

    created_at: datetime

    updated_at: datetime

    completed_at: Optional[datetime] = None


def status_from_record(record: GenerationRecord) -> GenerationStatusDTO:
    return GenerationStatusDTO(
        generation_id=record.generation_id,
        user_id=record.user_id,
        status=record.status.value,
        provider=record.provider,
        model=record.model,
        prompt=record.prompt,
        video_url=record.video_url,
        error_message=record.error_message,
        credits_reserved=record.credits_reserved,
        cost_to_operator=record.cost_to_operator,
        created_at=record.created_at,
        updated_at=record.updated_at,
        completed_at=record.completed_at,
    )


class GenerationStatsDTO(BaseModel):
    total_videos: int

    completed_videos: int

    total_cost: Decimal

    average_cost: Decimal


class ListGenerationsResponseDTO(BaseModel):
    generations: List[GenerationStatusDTO]

    stats: GenerationStatsDTO

    limit: int

    offset: int
