"""
List Generations Use Case

A user's generation history, newest first, with spend stats over the page.
"""
from decimal import Decimal
from libs.result import Result, Return
from src.app.repositories.generation_repository import GenerationRepository
from src.domain.generation import GenerationStatus
from .dtos import GenerationStatsDTO, ListGenerationsResponseDTO, status_from_record


class ListGenerations:

    def __init__(self, generation_repo: GenerationRepository):
        self.generation_repo = generation_repo

    async def execute(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> Result[ListGenerationsResponseDTO]:
        records = await self.generation_repo.get_by_user_id(user_id, limit=limit, offset=offset)

        generations = [status_from_record(record) for record in records]
        total = len(generations)
        total_cost = sum((g.cost_to_operator for g in generations), Decimal("0"))
        completed = sum(1 for g in generations if g.status == GenerationStatus.SUCCEEDED.value)

        stats = GenerationStatsDTO(
            total_videos=total,
            completed_videos=completed,
            total_cost=total_cost,
            average_cost=total_cost / total if total else Decimal("0"),
        )

        return Return.ok(
            ListGenerationsResponseDTO(
                generations=generations,
                stats=stats,
                limit=limit,
                offset=offset,
            )
        )
