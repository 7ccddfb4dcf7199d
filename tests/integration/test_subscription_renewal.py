"""Integration tests for subscription renewals (set-monthly grants)

Tests cover:
- Renewal sets the balance to the tier allotment and resets usage
- A renewal older than the last applied one changes nothing
- Purchases made after a late-delivered renewal are carried over
"""

import pytest
from datetime import datetime
from decimal import Decimal

from src.app.use_cases.credits import (
    GrantCommandDTO,
    GrantCredits,
    LedgerOutcome,
    ReconcileLedger,
    ReserveCommandDTO,
    ReserveCredits,
)
from src.domain.credit_account import AccountTier
from src.domain.credit_transaction import GrantMode


@pytest.fixture
def grant(session_factory, repos):
    async def _grant(event_id, amount, at, mode=GrantMode.SET_MONTHLY, tier=AccountTier.PRO, user_id="user_sub"):
        async with session_factory() as session:
            uow, account_repo, transaction_repo, _ = repos(session)
            return await GrantCredits(uow, account_repo, transaction_repo).execute(
                GrantCommandDTO(
                    user_id=user_id,
                    billing_event_id=event_id,
                    amount=Decimal(amount),
                    mode=mode,
                    tier=tier if mode == GrantMode.SET_MONTHLY else None,
                    event_created_at=at,
                )
            )

    return _grant


@pytest.fixture
def account(session_factory, repos):
    async def _account(user_id="user_sub"):
        async with session_factory() as session:
            _, account_repo, _, _ = repos(session)
            return await account_repo.get_by_user_id(user_id)

    return _account


@pytest.mark.asyncio
class TestSubscriptionRenewal:

    async def test_renewal_resets_balance_and_usage(self, session_factory, repos, grant, account):
        first = await grant("evt_jan", "35", datetime(2024, 1, 1))
        assert first.value.outcome == LedgerOutcome.APPLIED

        async with session_factory() as session:
            uow, account_repo, transaction_repo, _ = repos(session)
            reserved = await ReserveCredits(uow, account_repo, transaction_repo).execute(
                ReserveCommandDTO(user_id="user_sub", reservation_id="rsv_jan", amount=Decimal("2.7"))
            )
            assert reserved.is_ok()

        renewed = await grant("evt_feb", "35", datetime(2024, 2, 1))

        assert renewed.value.outcome == LedgerOutcome.APPLIED
        assert renewed.value.balance_before == Decimal("32.3")
        assert renewed.value.amount == Decimal("2.7")

        current = await account()
        assert current.balance == Decimal("35")
        assert current.credits_used == Decimal("0")
        assert current.tier == AccountTier.PRO
        assert current.monthly_credits == Decimal("35")
        assert current.current_period_start == datetime(2024, 2, 1)
        assert current.current_period_end == datetime(2024, 3, 2)

    async def test_stale_renewal_ignored(self, grant, account):
        await grant("evt_feb", "35", datetime(2024, 2, 1))
        await grant("evt_upgrade", "100", datetime(2024, 2, 10), tier=AccountTier.BUSINESS)

        stale = await grant("evt_jan_late", "10", datetime(2024, 1, 1), tier=AccountTier.STARTER)

        assert stale.is_ok()
        assert stale.value.outcome == LedgerOutcome.STALE_RENEWAL
        current = await account()
        assert current.balance == Decimal("100")
        assert current.tier == AccountTier.BUSINESS

    async def test_stale_renewal_redelivery_is_still_stale(self, grant):
        await grant("evt_feb", "35", datetime(2024, 2, 1))
        await grant("evt_jan_late", "35", datetime(2024, 1, 1))

        again = await grant("evt_jan_late", "35", datetime(2024, 1, 1))

        assert again.value.outcome == LedgerOutcome.STALE_RENEWAL

    async def test_purchase_after_late_renewal_carried_over(self, session_factory, repos, grant, account):
        """
        Given a purchase at Mar 5 applied before the Mar 1 renewal arrives
        When the renewal is applied
        Then the balance is the allotment plus the newer purchase
        """
        await grant("evt_feb", "35", datetime(2024, 2, 1))
        await grant("evt_buy", "10", datetime(2024, 3, 5), mode=GrantMode.ADD)
        assert (await account()).balance == Decimal("45")

        renewed = await grant("evt_mar", "35", datetime(2024, 3, 1))

        assert renewed.value.outcome == LedgerOutcome.APPLIED
        assert (await account()).balance == Decimal("45")

        async with session_factory() as session:
            uow, account_repo, transaction_repo, _ = repos(session)
            reconciliation = await ReconcileLedger(uow, account_repo, transaction_repo).execute()
        assert reconciliation.value.discrepancies_found == 0

    async def test_purchase_before_renewal_not_carried_over(self, grant, account):
        await grant("evt_feb", "35", datetime(2024, 2, 1))
        await grant("evt_buy", "10", datetime(2024, 2, 20), mode=GrantMode.ADD)

        await grant("evt_mar", "35", datetime(2024, 3, 1))

        assert (await account()).balance == Decimal("35")
