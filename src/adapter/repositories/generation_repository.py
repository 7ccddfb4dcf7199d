"""SQLAlchemy Generation Repository Implementation"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.generation_repository import GenerationRepository
from src.domain.generation import GenerationRecord, GenerationStatus


class SqlAlchemyGenerationRepository(GenerationRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, record: GenerationRecord) -> GenerationRecord:
        self.session.add(record)
        await self.session.flush()
        await self.session.refresh(record)
        return record

    async def get_by_generation_id(self, generation_id: str) -> Optional[GenerationRecord]:
        statement = (
            select(GenerationRecord)
            .where(GenerationRecord.generation_id == generation_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def advance_status(
        self,
        generation_id: str,
        from_status: GenerationStatus,
        to_status: GenerationStatus,
        video_url: Optional[str] = None,
        error_message: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> bool:
        values = {"status": to_status, "updated_at": datetime.utcnow()}
        if video_url is not None:
            values["video_url"] = video_url
        if error_message is not None:
            values["error_message"] = error_message
        if completed_at is not None:
            values["completed_at"] = completed_at

        # Compare-and-set on status; a concurrent poll that got there first wins
        statement = (
            update(GenerationRecord)
            .where(GenerationRecord.generation_id == generation_id)
            .where(GenerationRecord.status == from_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.rowcount == 1

    async def get_by_user_id(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> List[GenerationRecord]:
        statement = (
            select(GenerationRecord)
            .where(GenerationRecord.user_id == user_id)
            .order_by(GenerationRecord.created_at.desc(), GenerationRecord.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def get_by_reservation_ids(self, reservation_ids: List[str]) -> List[GenerationRecord]:
        if not reservation_ids:
            return []
        statement = select(GenerationRecord).where(
            GenerationRecord.reservation_id.in_(reservation_ids)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def get_in_flight(self, limit: int = 100) -> List[GenerationRecord]:
        statement = (
            select(GenerationRecord)
            .where(
                GenerationRecord.status.in_(
                    [GenerationStatus.STARTING, GenerationStatus.PROCESSING]
                )
            )
            .order_by(GenerationRecord.created_at)
            .limit(limit)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())
