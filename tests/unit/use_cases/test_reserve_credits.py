"""Unit tests for ReserveCredits use case

Tests cover:
- Successful reservation via conditional debit
- Insufficient credits (no transaction written)
- Idempotent replay of a reservation token
- Store failures
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime
from sqlalchemy.exc import IntegrityError, OperationalError

from src.app.use_cases.credits.reserve_credits import ReserveCredits
from src.app.use_cases.credits.dtos import LedgerOutcome, ReserveCommandDTO
from src.domain.credit_account import CreditAccount
from src.domain.credit_transaction import CreditTransaction, TransactionType


@pytest.fixture
def mock_account_repo():
    return MagicMock()


@pytest.fixture
def mock_transaction_repo():
    return MagicMock()


@pytest.fixture
def reserve_use_case(mock_uow, mock_account_repo, mock_transaction_repo):
    return ReserveCredits(
        uow=mock_uow,
        account_repo=mock_account_repo,
        transaction_repo=mock_transaction_repo,
    )


@pytest.fixture
def sample_command():
    return ReserveCommandDTO(
        user_id="user_123",
        reservation_id="rsv_abc",
        amount=Decimal("0.4"),
    )


@pytest.fixture
def sample_account():
    return CreditAccount(
        id=1,
        user_id="user_123",
        balance=Decimal("1.000000"),
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow(),
    )


def _created(transaction: CreditTransaction) -> CreditTransaction:
    transaction.id = 42
    return transaction


@pytest.mark.asyncio
class TestReserveCreditsSuccess:

    async def test_reserve_with_sufficient_balance(
        self, reserve_use_case, mock_account_repo, mock_transaction_repo, mock_uow, sample_command, sample_account
    ):
        """
        Given: Account balance 1.0
        When: 0.4 is reserved
        Then: Conditional debit applied, negative reserve entry written, committed
        """
        # Arrange
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=None)
        mock_account_repo.get_by_user_id = AsyncMock(return_value=sample_account)
        mock_account_repo.debit_if_sufficient = AsyncMock(return_value=Decimal("0.600000"))
        mock_transaction_repo.create = AsyncMock(side_effect=_created)

        # Act
        result = await reserve_use_case.execute(sample_command)

        # Assert
        assert result.is_ok()
        response = result.value
        assert response.outcome == LedgerOutcome.APPLIED
        assert response.transaction_id == 42
        assert response.transaction_type == "reserve"
        assert response.amount == Decimal("-0.4")
        assert response.balance_before == Decimal("1.000000")
        assert response.balance_after == Decimal("0.600000")
        assert response.idempotency_key == "reserve:rsv_abc"
        assert response.related_generation_id == "rsv_abc"

        mock_account_repo.debit_if_sufficient.assert_called_once_with("user_123", Decimal("0.4"))
        created = mock_transaction_repo.create.call_args[0][0]
        assert created.transaction_type == TransactionType.RESERVE
        assert created.account_id == 1
        mock_uow.commit.assert_called_once()


@pytest.mark.asyncio
class TestReserveCreditsRejections:

    async def test_insufficient_credits(
        self, reserve_use_case, mock_account_repo, mock_transaction_repo, mock_uow, sample_account
    ):
        """
        Given: Balance 0.5
        When: 0.8 is reserved
        Then: INSUFFICIENT_CREDITS with required/available, nothing written
        """
        sample_account.balance = Decimal("0.5")
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=None)
        mock_account_repo.get_by_user_id = AsyncMock(return_value=sample_account)
        mock_account_repo.debit_if_sufficient = AsyncMock(return_value=None)
        mock_transaction_repo.create = AsyncMock()

        result = await reserve_use_case.execute(
            ReserveCommandDTO(user_id="user_123", reservation_id="rsv_x", amount=Decimal("0.8"))
        )

        assert result.is_err()
        assert result.error.code == "INSUFFICIENT_CREDITS"
        assert result.error.details == {"required": "0.8", "available": "0.5"}
        mock_transaction_repo.create.assert_not_called()
        mock_uow.commit.assert_not_called()
        mock_uow.rollback.assert_called()

    async def test_account_not_found(
        self, reserve_use_case, mock_account_repo, mock_transaction_repo, mock_uow, sample_command
    ):
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=None)
        mock_account_repo.get_by_user_id = AsyncMock(return_value=None)
        mock_account_repo.debit_if_sufficient = AsyncMock()

        result = await reserve_use_case.execute(sample_command)

        assert result.is_err()
        assert result.error.code == "ACCOUNT_NOT_FOUND"
        mock_account_repo.debit_if_sufficient.assert_not_called()


@pytest.mark.asyncio
class TestReserveCreditsIdempotency:

    async def test_replayed_token_returns_original_entry(
        self, reserve_use_case, mock_account_repo, mock_transaction_repo, mock_uow, sample_command
    ):
        existing = CreditTransaction(
            id=7,
            user_id="user_123",
            account_id=1,
            transaction_type=TransactionType.RESERVE,
            amount=Decimal("-0.4"),
            balance_before=Decimal("1.0"),
            balance_after=Decimal("0.6"),
            related_generation_id="rsv_abc",
            idempotency_key="reserve:rsv_abc",
            created_at=datetime.utcnow(),
        )
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=existing)
        mock_account_repo.debit_if_sufficient = AsyncMock()

        result = await reserve_use_case.execute(sample_command)

        assert result.is_ok()
        assert result.value.outcome == LedgerOutcome.ALREADY_RESERVED
        assert result.value.transaction_id == 7
        assert result.value.balance_after == Decimal("0.6")
        mock_account_repo.debit_if_sufficient.assert_not_called()
        mock_uow.commit.assert_not_called()

    async def test_token_of_another_user_conflicts(
        self, reserve_use_case, mock_transaction_repo, sample_command
    ):
        existing = CreditTransaction(
            id=7,
            user_id="someone_else",
            account_id=2,
            transaction_type=TransactionType.RESERVE,
            amount=Decimal("-0.4"),
            balance_before=Decimal("1.0"),
            balance_after=Decimal("0.6"),
            idempotency_key="reserve:rsv_abc",
        )
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=existing)

        result = await reserve_use_case.execute(sample_command)

        assert result.is_err()
        assert result.error.code == "RESERVATION_CONFLICT"

    async def test_concurrent_duplicate_insert_reported_as_already_reserved(
        self, reserve_use_case, mock_account_repo, mock_transaction_repo, mock_uow, sample_command, sample_account
    ):
        existing = CreditTransaction(
            id=9,
            user_id="user_123",
            account_id=1,
            transaction_type=TransactionType.RESERVE,
            amount=Decimal("-0.4"),
            balance_before=Decimal("1.0"),
            balance_after=Decimal("0.6"),
            idempotency_key="reserve:rsv_abc",
        )
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(side_effect=[None, existing])
        mock_account_repo.get_by_user_id = AsyncMock(return_value=sample_account)
        mock_account_repo.debit_if_sufficient = AsyncMock(return_value=Decimal("0.2"))
        mock_transaction_repo.create = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("duplicate key"))
        )

        result = await reserve_use_case.execute(sample_command)

        assert result.is_ok()
        assert result.value.outcome == LedgerOutcome.ALREADY_RESERVED
        assert result.value.transaction_id == 9
        mock_uow.rollback.assert_called()
        mock_uow.commit.assert_not_called()


@pytest.mark.asyncio
class TestReserveCreditsStoreFailure:

    async def test_store_unavailable(
        self, reserve_use_case, mock_transaction_repo, mock_uow, sample_command
    ):
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
        )

        result = await reserve_use_case.execute(sample_command)

        assert result.is_err()
        assert result.error.code == "STORE_UNAVAILABLE"
        mock_uow.rollback.assert_called_once()
