"""Credits API Routes

Account opening, balance and transaction history.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.error import ClientError
from src.api.schemas.credits_request import OpenAccountRequestSchema
from src.adapter.repositories import (
    SqlAlchemyCreditAccountRepository,
    SqlAlchemyCreditTransactionRepository,
    SqlAlchemyGenerationRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.use_cases.credits import (
    BalanceResponseDTO,
    GetBalance,
    ListTransactions,
    ListTransactionsResponseDTO,
    OpenAccount,
    OpenAccountCommandDTO,
)
from src.depends import get_session

router = APIRouter(prefix="/credits", tags=["Credits"])


@router.post("/accounts", response_model=BalanceResponseDTO, status_code=status.HTTP_200_OK)
async def open_account(
    request: OpenAccountRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """
    Open a zero-balance credit account for a new user.

    Calling it again for the same user returns the existing account.
    """
    use_case = OpenAccount(
        SqlAlchemyUnitOfWork(session), SqlAlchemyCreditAccountRepository(session)
    )
    result = await use_case.execute(OpenAccountCommandDTO(user_id=request.user_id))

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/balance/{user_id}",
    response_model=BalanceResponseDTO,
    responses={
        404: {
            "description": "Account not found",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "ACCOUNT_NOT_FOUND",
                            "message": "No credit account found for user user_123",
                        }
                    }
                }
            },
        }
    },
)
async def get_balance(
    user_id: str,
    session: AsyncSession = Depends(get_session),
):
    """
    Latest committed credit balance, tier and usage for the current period.
    """
    use_case = GetBalance(SqlAlchemyCreditAccountRepository(session))
    result = await use_case.execute(user_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get("/transactions/{user_id}", response_model=ListTransactionsResponseDTO)
async def list_transactions(
    user_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    transaction_type: Optional[str] = Query(default=None, description="reserve, refund or grant"),
    session: AsyncSession = Depends(get_session),
):
    """
    Ledger entries for a user, newest first. Amounts are signed deltas.

    Reserve and refund entries link to the generation they paid for.
    """
    use_case = ListTransactions(
        SqlAlchemyCreditTransactionRepository(session),
        SqlAlchemyGenerationRepository(session),
    )
    result = await use_case.execute(
        user_id, limit=limit, offset=offset, transaction_type=transaction_type
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value
