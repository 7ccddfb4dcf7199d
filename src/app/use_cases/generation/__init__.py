"""Generation orchestration use cases"""
from .submit_generation import SubmitGeneration
from .poll_generation import PollGeneration
from .list_generations import ListGenerations
from .dtos import (
    SubmitGenerationCommandDTO,
    GenerationHandleDTO,
    GenerationStatusDTO,
    GenerationStatsDTO,
    ListGenerationsResponseDTO,
)

__all__ = [
    "SubmitGeneration",
    "PollGeneration",
    "ListGenerations",
    "SubmitGenerationCommandDTO",
    "GenerationHandleDTO",
    "GenerationStatusDTO",
    "GenerationStatsDTO",
    "ListGenerationsResponseDTO",
]
