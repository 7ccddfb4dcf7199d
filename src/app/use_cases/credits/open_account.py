"""OpenAccount Use Case

Creates the zero-balance credit account a user spends from. Called from the
signup flow; calling it again returns the existing account.
"""

import logging
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.domain.credit_account import CreditAccount
from .dtos import BalanceResponseDTO, OpenAccountCommandDTO
from .get_balance import balance_from_account

logger = logging.getLogger(__name__)


class OpenAccount:

    def __init__(self, uow: UnitOfWork, account_repo: CreditAccountRepository):
        self.uow = uow
        self.account_repo = account_repo

    async def execute(self, command: OpenAccountCommandDTO) -> Result[BalanceResponseDTO]:
        try:
            account = await self.account_repo.get_by_user_id(command.user_id)
            if account:
                response = balance_from_account(account)
                await self.uow.rollback()
                return Return.ok(response)

            account = await self.account_repo.create(CreditAccount(user_id=command.user_id))
            response = balance_from_account(account)
            await self.uow.commit()

            logger.info(f"Opened credit account for user {command.user_id}")
            return Return.ok(response)

        except IntegrityError:
            await self.uow.rollback()
            account = await self.account_repo.get_by_user_id(command.user_id)
            if account:
                return Return.ok(balance_from_account(account))
            return Return.err(
                Error(code="STORE_UNAVAILABLE", message="Failed to open credit account")
            )

        except SQLAlchemyError as e:
            await self.uow.rollback()
            logger.error(f"Failed to open account for user {command.user_id}: {e}")
            return Return.err(
                Error(
                    code="STORE_UNAVAILABLE",
                    message="Failed to open credit account",
                    reason=str(e),
                )
            )
