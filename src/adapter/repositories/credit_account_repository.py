"""SQLAlchemy implementation of CreditAccountRepository

Balance changes are issued as single UPDATE statements so the database
serializes concurrent writers on the account row. The conditional debit is
the compare-and-decrement that keeps the balance from going negative.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import case, func, or_, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.domain.credit_account import CreditAccount, AccountTier

# Column scale of Numeric(18, 6); keeps SQLite REAL arithmetic on exact credit values
CREDIT_SCALE = 6


def _credits(expression):
    return func.round(expression, CREDIT_SCALE)


class SqlAlchemyCreditAccountRepository(CreditAccountRepository):
    """
    SQLAlchemy implementation of CreditAccountRepository

    Features:
    - Conditional debit (compare-and-decrement in one statement)
    - Atomic increments for refunds and grants
    - Pessimistic locking via SELECT FOR UPDATE for renewals
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user_id(self, user_id: str, for_update: bool = False) -> Optional[CreditAccount]:
        """
        Retrieve account by user ID with optional row-level locking

        Rows already in the session are refreshed, since balance updates
        bypass the identity map.
        """
        stmt = (
            select(CreditAccount)
            .where(CreditAccount.user_id == user_id)
            .execution_options(populate_existing=True)
        )

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_payment_customer_id(self, customer_id: str) -> Optional[CreditAccount]:
        stmt = select(CreditAccount).where(CreditAccount.payment_customer_id == customer_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all(self) -> List[CreditAccount]:
        stmt = select(CreditAccount).order_by(CreditAccount.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, account: CreditAccount) -> CreditAccount:
        self.session.add(account)
        await self.session.flush()
        await self.session.refresh(account)
        return account

    async def debit_if_sufficient(self, user_id: str, amount: Decimal) -> Optional[Decimal]:
        stmt = (
            update(CreditAccount)
            .where(CreditAccount.user_id == user_id)
            .where(_credits(CreditAccount.balance - amount) >= 0)
            .values(
                balance=_credits(CreditAccount.balance - amount),
                credits_used=_credits(CreditAccount.credits_used + amount),
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return None
        return await self._current_balance(user_id)

    async def credit(self, user_id: str, amount: Decimal, release_usage: bool = False) -> Optional[Decimal]:
        values = {
            "balance": _credits(CreditAccount.balance + amount),
            "updated_at": datetime.utcnow(),
        }
        if release_usage:
            values["credits_used"] = case(
                (_credits(CreditAccount.credits_used - amount) >= 0, _credits(CreditAccount.credits_used - amount)),
                else_=0,
            )

        stmt = (
            update(CreditAccount)
            .where(CreditAccount.user_id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return None
        return await self._current_balance(user_id)

    async def apply_renewal(
        self,
        account_id: int,
        tier: AccountTier,
        monthly_credits: Decimal,
        new_balance: Decimal,
        period_start: datetime,
        period_end: datetime,
    ) -> bool:
        """
        Should be called within a transaction with the account already locked
        """
        stmt = (
            update(CreditAccount)
            .where(CreditAccount.id == account_id)
            .where(
                or_(
                    CreditAccount.last_renewal_at.is_(None),
                    CreditAccount.last_renewal_at < period_start,
                )
            )
            .values(
                tier=tier,
                monthly_credits=monthly_credits,
                balance=new_balance,
                credits_used=0,
                current_period_start=period_start,
                current_period_end=period_end,
                last_renewal_at=period_start,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def set_payment_customer_id(self, account_id: int, customer_id: str) -> None:
        stmt = (
            update(CreditAccount)
            .where(CreditAccount.id == account_id)
            .values(payment_customer_id=customer_id, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def _current_balance(self, user_id: str) -> Decimal:
        stmt = select(CreditAccount.balance).where(CreditAccount.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one()
