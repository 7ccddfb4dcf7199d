"""Resolve the payment-provider customer for a credit account"""

import logging
from sqlalchemy.exc import SQLAlchemyError
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.payment_gateway import PaymentGateway, PaymentGatewayError
from src.app.repositories.credit_account_repository import CreditAccountRepository

logger = logging.getLogger(__name__)


async def ensure_payment_customer(
    uow: UnitOfWork,
    account_repo: CreditAccountRepository,
    gateway: PaymentGateway,
    user_id: str,
    email: str,
) -> Result[str]:
    """
    Return the account's customer reference, creating it on first checkout

    The reference is stored on the account so webhooks can be matched back
    to the user.
    """
    try:
        account = await account_repo.get_by_user_id(user_id)
        if not account:
            await uow.rollback()
            return Return.err(
                Error(
                    code="ACCOUNT_NOT_FOUND",
                    message=f"Credit account not found for user {user_id}",
                )
            )
        if account.payment_customer_id:
            customer_ref = account.payment_customer_id
            await uow.rollback()
            return Return.ok(customer_ref)

        account_id = account.id
        await uow.rollback()

        customer_ref = await gateway.create_customer(user_id, email)
        await account_repo.set_payment_customer_id(account_id, customer_ref)
        await uow.commit()

        logger.info(f"Created payment customer {customer_ref} for user {user_id}")
        return Return.ok(customer_ref)

    except PaymentGatewayError as e:
        return Return.err(
            Error(
                code="PAYMENT_PROVIDER_UNAVAILABLE",
                message="Payment provider is unavailable, please retry",
                reason=str(e),
            )
        )
    except SQLAlchemyError as e:
        await uow.rollback()
        logger.error(f"Failed to store payment customer for user {user_id}: {e}")
        return Return.err(
            Error(code="STORE_UNAVAILABLE", message="Failed to store payment customer", reason=str(e))
        )
