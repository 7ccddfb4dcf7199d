"""Unit tests for ListGenerations use case"""

import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.generation.list_generations import ListGenerations
from src.domain.generation import GenerationRecord, GenerationStatus


def _record(generation_id, status, cost):
    return GenerationRecord(
        generation_id=generation_id,
        reservation_id=f"rsv_{generation_id}",
        user_id="user_123",
        provider="replicate",
        model="seedance-1-pro-fast",
        prompt="p",
        status=status,
        credits_reserved=Decimal("0.4"),
        cost_to_operator=Decimal(cost),
        created_at=datetime(2024, 1, 1),
        updated_at=datetime(2024, 1, 1),
    )


@pytest.mark.asyncio
class TestListGenerations:

    async def test_history_with_stats(self):
        repo = MagicMock()
        repo.get_by_user_id = AsyncMock(
            return_value=[
                _record("g3", GenerationStatus.PROCESSING, "0.36"),
                _record("g2", GenerationStatus.SUCCEEDED, "0.36"),
                _record("g1", GenerationStatus.SUCCEEDED, "0.48"),
            ]
        )

        result = await ListGenerations(repo).execute("user_123", limit=10)

        assert result.is_ok()
        response = result.value
        assert [g.generation_id for g in response.generations] == ["g3", "g2", "g1"]
        assert response.stats.total_videos == 3
        assert response.stats.completed_videos == 2
        assert response.stats.total_cost == Decimal("1.20")
        assert response.stats.average_cost == Decimal("0.4")
        repo.get_by_user_id.assert_called_once_with("user_123", limit=10, offset=0)

    async def test_empty_history(self):
        repo = MagicMock()
        repo.get_by_user_id = AsyncMock(return_value=[])

        result = await ListGenerations(repo).execute("user_123")

        assert result.value.generations == []
        assert result.value.stats.total_videos == 0
        assert result.value.stats.average_cost == Decimal("0")
