"""ReconcileLedger Use Case

Checks every account balance against the sum of its transaction log.
"""

import logging
import time
from datetime import datetime
from sqlalchemy.exc import SQLAlchemyError
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from .dtos import LedgerDiscrepancyDTO, ReconciliationResultDTO

logger = logging.getLogger(__name__)


class ReconcileLedger:
    """
    Use Case: Reconcile account balances against the transaction log

    Business Rules:
    1. Accounts open at zero, so the signed sum of an account's transactions
       must equal its balance
    2. Mismatches are reported and logged
    3. Does NOT modify any data (read-only reconciliation)

    Flow:
    1. Get all accounts
    2. For each account compare balance with transaction sum
    3. Return reconciliation result with all discrepancies
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo

    async def execute(self) -> Result[ReconciliationResultDTO]:
        start_time = time.time()
        reconciliation_time = datetime.utcnow()

        try:
            logger.info("Starting credit ledger reconciliation")

            # Step 1: Get all accounts
            accounts = await self.account_repo.get_all()
            total_accounts = len(accounts)

            logger.info(f"Found {total_accounts} accounts to reconcile")

            # Step 2: Compare each balance with its log
            discrepancies: list[LedgerDiscrepancyDTO] = []

            for account in accounts:
                transaction_sum = await self.transaction_repo.get_transaction_sum_by_account(
                    account.id
                )

                if account.balance != transaction_sum:
                    discrepancy_amount = account.balance - transaction_sum

                    discrepancies.append(
                        LedgerDiscrepancyDTO(
                            user_id=account.user_id,
                            account_id=account.id,
                            account_balance=account.balance,
                            calculated_balance=transaction_sum,
                            discrepancy=discrepancy_amount,
                        )
                    )

                    logger.warning(
                        f"Discrepancy found for user {account.user_id} "
                        f"(account_id={account.id}): "
                        f"balance={account.balance}, "
                        f"transaction_sum={transaction_sum}, "
                        f"discrepancy={discrepancy_amount}"
                    )

            await self.uow.rollback()

            # Step 3: Build response
            execution_time_ms = int((time.time() - start_time) * 1000)

            response = ReconciliationResultDTO(
                total_accounts_checked=total_accounts,
                discrepancies_found=len(discrepancies),
                discrepancies=discrepancies,
                reconciliation_time=reconciliation_time,
                execution_time_ms=execution_time_ms,
            )

            if discrepancies:
                logger.warning(
                    f"Reconciliation complete. Found {len(discrepancies)} discrepancies "
                    f"out of {total_accounts} accounts in {execution_time_ms}ms"
                )
            else:
                logger.info(
                    f"Reconciliation complete. All {total_accounts} accounts balanced "
                    f"in {execution_time_ms}ms"
                )

            return Return.ok(response)

        except SQLAlchemyError as e:
            await self.uow.rollback()
            logger.error(f"Ledger reconciliation failed: {e}")
            return Return.err(
                Error(
                    code="STORE_UNAVAILABLE",
                    message="Failed to reconcile credit ledger",
                    reason=str(e),
                )
            )
