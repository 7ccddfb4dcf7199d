"""Unit tests for GrantCredits use case

Tests cover:
- Additive purchase grant
- Monthly renewal (set balance, carry over newer purchases)
- Stale renewal ordering guard
- Idempotency on billing event id
- Account creation on first grant
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.credits.grant_credits import GrantCredits
from src.app.use_cases.credits.dtos import GrantCommandDTO, LedgerOutcome
from src.domain.credit_account import AccountTier, CreditAccount
from src.domain.credit_transaction import CreditTransaction, GrantMode, TransactionType

EVENT_TIME = datetime(2024, 6, 1, 0, 0, 0)


@pytest.fixture
def mock_account_repo():
    return MagicMock()


@pytest.fixture
def mock_transaction_repo():
    repo = MagicMock()
    repo.get_by_idempotency_key = AsyncMock(return_value=None)
    repo.create = AsyncMock(side_effect=lambda t: t)
    return repo


@pytest.fixture
def grant_use_case(mock_uow, mock_account_repo, mock_transaction_repo):
    return GrantCredits(
        uow=mock_uow,
        account_repo=mock_account_repo,
        transaction_repo=mock_transaction_repo,
        subscription_period_days=30,
    )


@pytest.fixture
def account():
    return CreditAccount(
        id=1,
        user_id="user_123",
        balance=Decimal("2.5"),
        tier=AccountTier.FREE,
    )


@pytest.mark.asyncio
class TestAddGrant:

    async def test_add_grant_increments_balance(
        self, grant_use_case, mock_account_repo, mock_transaction_repo, mock_uow, account
    ):
        mock_account_repo.get_by_user_id = AsyncMock(return_value=account)
        mock_account_repo.credit = AsyncMock(return_value=Decimal("12.5"))

        result = await grant_use_case.execute(
            GrantCommandDTO(
                user_id="user_123",
                billing_event_id="evt_1",
                amount=Decimal("10"),
                mode=GrantMode.ADD,
                event_created_at=EVENT_TIME,
            )
        )

        assert result.is_ok()
        response = result.value
        assert response.outcome == LedgerOutcome.APPLIED
        assert response.amount == Decimal("10")
        assert response.balance_before == Decimal("2.5")
        assert response.balance_after == Decimal("12.5")
        assert response.related_billing_event_id == "evt_1"
        assert response.idempotency_key == "grant:evt_1"

        created = mock_transaction_repo.create.call_args[0][0]
        assert created.transaction_type == TransactionType.GRANT
        assert created.grant_mode == GrantMode.ADD
        assert created.event_created_at == EVENT_TIME
        mock_uow.commit.assert_called_once()

    async def test_grant_opens_missing_account(
        self, grant_use_case, mock_account_repo, mock_transaction_repo, account
    ):
        account.balance = Decimal("0")
        mock_account_repo.get_by_user_id = AsyncMock(side_effect=[None, account])
        mock_account_repo.create = AsyncMock(side_effect=lambda a: a)
        mock_account_repo.credit = AsyncMock(return_value=Decimal("5"))

        result = await grant_use_case.execute(
            GrantCommandDTO(user_id="user_123", billing_event_id="evt_2", amount=Decimal("5"))
        )

        assert result.is_ok()
        mock_account_repo.create.assert_called_once()
        assert mock_account_repo.create.call_args[0][0].user_id == "user_123"

    async def test_zero_add_grant_rejected(self, grant_use_case, mock_transaction_repo):
        result = await grant_use_case.execute(
            GrantCommandDTO(user_id="user_123", billing_event_id="evt_3", amount=Decimal("0"))
        )

        assert result.is_err()
        assert result.error.code == "INVALID_REQUEST"
        mock_transaction_repo.get_by_idempotency_key.assert_not_called()

    async def test_duplicate_event_is_no_op(
        self, grant_use_case, mock_account_repo, mock_transaction_repo, mock_uow
    ):
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(
            return_value=CreditTransaction(
                id=5,
                user_id="user_123",
                account_id=1,
                transaction_type=TransactionType.GRANT,
                amount=Decimal("10"),
                balance_before=Decimal("2.5"),
                balance_after=Decimal("12.5"),
                related_billing_event_id="evt_1",
                grant_mode=GrantMode.ADD,
                idempotency_key="grant:evt_1",
            )
        )
        mock_account_repo.credit = AsyncMock()

        result = await grant_use_case.execute(
            GrantCommandDTO(user_id="user_123", billing_event_id="evt_1", amount=Decimal("10"))
        )

        assert result.is_ok()
        assert result.value.outcome == LedgerOutcome.ALREADY_APPLIED
        assert result.value.balance_after == Decimal("12.5")
        mock_account_repo.credit.assert_not_called()
        mock_uow.commit.assert_not_called()


@pytest.mark.asyncio
class TestMonthlyGrant:

    async def test_renewal_sets_balance_to_allotment(
        self, grant_use_case, mock_account_repo, mock_transaction_repo, mock_uow, account
    ):
        mock_account_repo.get_by_user_id = AsyncMock(return_value=account)
        mock_account_repo.apply_renewal = AsyncMock(return_value=True)
        mock_transaction_repo.sum_added_grants_since = AsyncMock(return_value=Decimal("0"))

        result = await grant_use_case.execute(
            GrantCommandDTO(
                user_id="user_123",
                billing_event_id="evt_sub",
                amount=Decimal("35"),
                mode=GrantMode.SET_MONTHLY,
                tier=AccountTier.PRO,
                event_created_at=EVENT_TIME,
            )
        )

        assert result.is_ok()
        response = result.value
        assert response.outcome == LedgerOutcome.APPLIED
        assert response.balance_before == Decimal("2.5")
        assert response.balance_after == Decimal("35")
        assert response.amount == Decimal("32.5")

        mock_account_repo.get_by_user_id.assert_called_with("user_123", for_update=True)
        mock_account_repo.apply_renewal.assert_called_once_with(
            account_id=1,
            tier=AccountTier.PRO,
            monthly_credits=Decimal("35"),
            new_balance=Decimal("35"),
            period_start=EVENT_TIME,
            period_end=EVENT_TIME + timedelta(days=30),
        )
        mock_uow.commit.assert_called_once()

    async def test_renewal_carries_over_newer_purchases(
        self, grant_use_case, mock_account_repo, mock_transaction_repo, account
    ):
        """
        Given: A purchase of 5 credits whose event is newer than the renewal
        When: The older renewal arrives late
        Then: Balance = allotment + 5
        """
        account.balance = Decimal("7")
        mock_account_repo.get_by_user_id = AsyncMock(return_value=account)
        mock_account_repo.apply_renewal = AsyncMock(return_value=True)
        mock_transaction_repo.sum_added_grants_since = AsyncMock(return_value=Decimal("5"))

        result = await grant_use_case.execute(
            GrantCommandDTO(
                user_id="user_123",
                billing_event_id="evt_sub",
                amount=Decimal("10"),
                mode=GrantMode.SET_MONTHLY,
                tier=AccountTier.STARTER,
                event_created_at=EVENT_TIME,
            )
        )

        assert result.is_ok()
        assert result.value.balance_after == Decimal("15")
        mock_transaction_repo.sum_added_grants_since.assert_called_once_with("user_123", EVENT_TIME)

    async def test_stale_renewal_ignored(
        self, grant_use_case, mock_account_repo, mock_transaction_repo, mock_uow, account
    ):
        account.last_renewal_at = EVENT_TIME
        mock_account_repo.get_by_user_id = AsyncMock(return_value=account)
        mock_account_repo.apply_renewal = AsyncMock()

        result = await grant_use_case.execute(
            GrantCommandDTO(
                user_id="user_123",
                billing_event_id="evt_old",
                amount=Decimal("10"),
                mode=GrantMode.SET_MONTHLY,
                tier=AccountTier.STARTER,
                event_created_at=EVENT_TIME - timedelta(days=30),
            )
        )

        assert result.is_ok()
        assert result.value.outcome == LedgerOutcome.STALE_RENEWAL
        assert result.value.balance_after == Decimal("2.5")
        mock_account_repo.apply_renewal.assert_not_called()
        mock_transaction_repo.create.assert_not_called()
        mock_uow.commit.assert_not_called()

    async def test_renewal_rejected_by_store_guard_is_stale(
        self, grant_use_case, mock_account_repo, mock_transaction_repo, mock_uow, account
    ):
        mock_account_repo.get_by_user_id = AsyncMock(return_value=account)
        mock_account_repo.apply_renewal = AsyncMock(return_value=False)
        mock_transaction_repo.sum_added_grants_since = AsyncMock(return_value=Decimal("0"))

        result = await grant_use_case.execute(
            GrantCommandDTO(
                user_id="user_123",
                billing_event_id="evt_race",
                amount=Decimal("10"),
                mode=GrantMode.SET_MONTHLY,
                tier=AccountTier.STARTER,
                event_created_at=EVENT_TIME,
            )
        )

        assert result.is_ok()
        assert result.value.outcome == LedgerOutcome.STALE_RENEWAL
        mock_transaction_repo.create.assert_not_called()

    async def test_monthly_grant_requires_tier(self, grant_use_case):
        result = await grant_use_case.execute(
            GrantCommandDTO(
                user_id="user_123",
                billing_event_id="evt_sub",
                amount=Decimal("10"),
                mode=GrantMode.SET_MONTHLY,
            )
        )

        assert result.is_err()
        assert result.error.code == "INVALID_REQUEST"
