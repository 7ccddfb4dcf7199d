"""Generation Record Repository Interface"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from src.domain.generation import GenerationRecord, GenerationStatus


class GenerationRepository(ABC):

    @abstractmethod
    async def create(self, record: GenerationRecord) -> GenerationRecord:
        pass

    @abstractmethod
    async def get_by_generation_id(self, generation_id: str) -> Optional[GenerationRecord]:
        pass

    @abstractmethod
    async def advance_status(
        self,
        generation_id: str,
        from_status: GenerationStatus,
        to_status: GenerationStatus,
        video_url: Optional[str] = None,
        error_message: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> bool:
        """
        Move a record from from_status to to_status in one conditional write

        Returns:
            False when the record is no longer in from_status
        """
        pass

    @abstractmethod
    async def get_by_user_id(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> List[GenerationRecord]:
        """User's generations, newest first"""
        pass

    @abstractmethod
    async def get_by_reservation_ids(self, reservation_ids: List[str]) -> List[GenerationRecord]:
        pass

    @abstractmethod
    async def get_in_flight(self, limit: int = 100) -> List[GenerationRecord]:
        """Non-terminal generations, oldest first"""
        pass
