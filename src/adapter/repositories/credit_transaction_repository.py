"""SQLAlchemy implementation of CreditTransactionRepository

Provides persistence for CreditTransaction entities with idempotency enforcement
via unique constraint on idempotency_key.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy import exists, func
from sqlalchemy.orm import aliased
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import CreditTransaction, GrantMode, TransactionType
from src.domain.generation import GenerationRecord

CREDIT_QUANTUM = Decimal("0.000001")


def _to_credits(value) -> Decimal:
    # SQLite aggregates Numeric columns as floats
    return Decimal(str(value)).quantize(CREDIT_QUANTUM)


class SqlAlchemyCreditTransactionRepository(CreditTransactionRepository):
    """
    SQLAlchemy implementation of CreditTransactionRepository

    Features:
    - Idempotency enforcement via unique idempotency_key constraint
    - Immutable append-only transactions
    - Log queries used by reconciliation
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Raises:
            IntegrityError: If idempotency_key already exists (duplicate transaction attempt)
        """
        self.session.add(transaction)
        await self.session.flush()
        await self.session.refresh(transaction)
        return transaction

    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[CreditTransaction]:
        stmt = select(CreditTransaction).where(
            CreditTransaction.idempotency_key == idempotency_key
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_user_id(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        transaction_type: Optional[TransactionType] = None,
    ) -> Tuple[List[CreditTransaction], int]:
        conditions = [CreditTransaction.user_id == user_id]
        if transaction_type is not None:
            conditions.append(CreditTransaction.transaction_type == transaction_type)

        count_stmt = select(func.count()).select_from(CreditTransaction).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            select(CreditTransaction)
            .where(*conditions)
            .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def get_transaction_sum_by_account(self, account_id: int) -> Decimal:
        stmt = select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
            CreditTransaction.account_id == account_id
        )
        result = await self.session.execute(stmt)
        return _to_credits(result.scalar_one())

    async def sum_added_grants_since(self, user_id: str, since: datetime) -> Decimal:
        stmt = select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
            CreditTransaction.user_id == user_id,
            CreditTransaction.transaction_type == TransactionType.GRANT,
            CreditTransaction.grant_mode == GrantMode.ADD,
            CreditTransaction.event_created_at > since,
        )
        result = await self.session.execute(stmt)
        return _to_credits(result.scalar_one())

    async def get_unresolved_reservations(
        self, created_before: datetime, limit: int = 100
    ) -> List[CreditTransaction]:
        refund = aliased(CreditTransaction)
        has_record = exists().where(
            GenerationRecord.reservation_id == CreditTransaction.related_generation_id
        )
        has_refund = exists().where(
            refund.transaction_type == TransactionType.REFUND,
            refund.related_generation_id == CreditTransaction.related_generation_id,
        )
        stmt = (
            select(CreditTransaction)
            .where(
                CreditTransaction.transaction_type == TransactionType.RESERVE,
                CreditTransaction.created_at < created_before,
                ~has_record,
                ~has_refund,
            )
            .order_by(CreditTransaction.created_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
