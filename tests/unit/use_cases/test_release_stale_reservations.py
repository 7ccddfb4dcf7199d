"""Unit tests for ReleaseStaleReservations use case"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from libs.result import Error, Return
from src.app.use_cases.credits.release_stale_reservations import ReleaseStaleReservations
from src.app.use_cases.credits.dtos import LedgerEntryResponseDTO, LedgerOutcome
from src.domain.credit_transaction import CreditTransaction, TransactionType

NOW = datetime(2024, 6, 1, 12, 0, 0)


def _reservation(reservation_id, user_id="user_1", amount="0.4"):
    return CreditTransaction(
        id=1,
        user_id=user_id,
        account_id=1,
        transaction_type=TransactionType.RESERVE,
        amount=-Decimal(amount),
        balance_before=Decimal("1"),
        balance_after=Decimal("1") - Decimal(amount),
        related_generation_id=reservation_id,
        idempotency_key=f"reserve:{reservation_id}",
    )


@pytest.fixture
def mock_transaction_repo():
    return MagicMock()


@pytest.fixture
def mock_refund():
    refund = MagicMock()
    refund.execute = AsyncMock()
    return refund


@pytest.mark.asyncio
class TestReleaseStaleReservations:

    async def test_refunds_each_orphan(self, mock_uow, mock_transaction_repo, mock_refund):
        mock_transaction_repo.get_unresolved_reservations = AsyncMock(
            return_value=[_reservation("rsv_1"), _reservation("rsv_2", amount="0.8")]
        )
        mock_refund.execute.return_value = Return.ok(
            LedgerEntryResponseDTO(outcome=LedgerOutcome.APPLIED, user_id="user_1")
        )

        use_case = ReleaseStaleReservations(
            uow=mock_uow,
            transaction_repo=mock_transaction_repo,
            refund=mock_refund,
            stale_after_minutes=15,
        )
        result = await use_case.execute(now=NOW)

        assert result.is_ok()
        assert result.value.reservations_found == 2
        assert [r.reservation_id for r in result.value.released] == ["rsv_1", "rsv_2"]
        assert result.value.released[1].amount == Decimal("0.8")
        assert result.value.failed == 0
        assert result.value.cutoff == NOW - timedelta(minutes=15)

        mock_transaction_repo.get_unresolved_reservations.assert_called_once_with(
            created_before=NOW - timedelta(minutes=15), limit=100
        )
        refunded = [c.args[0].reservation_id for c in mock_refund.execute.call_args_list]
        assert refunded == ["rsv_1", "rsv_2"]

    async def test_failed_refund_counted_and_skipped(self, mock_uow, mock_transaction_repo, mock_refund):
        mock_transaction_repo.get_unresolved_reservations = AsyncMock(
            return_value=[_reservation("rsv_1"), _reservation("rsv_2")]
        )
        mock_refund.execute.side_effect = [
            Return.err(Error(code="STORE_UNAVAILABLE", message="db down")),
            Return.ok(LedgerEntryResponseDTO(outcome=LedgerOutcome.APPLIED, user_id="user_1")),
        ]

        use_case = ReleaseStaleReservations(mock_uow, mock_transaction_repo, mock_refund)
        result = await use_case.execute(now=NOW)

        assert result.is_ok()
        assert result.value.failed == 1
        assert [r.reservation_id for r in result.value.released] == ["rsv_2"]

    async def test_nothing_to_release(self, mock_uow, mock_transaction_repo, mock_refund):
        mock_transaction_repo.get_unresolved_reservations = AsyncMock(return_value=[])

        use_case = ReleaseStaleReservations(mock_uow, mock_transaction_repo, mock_refund)
        result = await use_case.execute(now=NOW)

        assert result.is_ok()
        assert result.value.reservations_found == 0
        mock_refund.execute.assert_not_called()
