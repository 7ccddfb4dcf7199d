"""Billing API Routes

Stripe checkout sessions and the Stripe webhook.
"""

from fastapi import APIRouter, Depends, Header, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.error import ClientError
from src.api.schemas.billing_request import (
    CreditsCheckoutRequestSchema,
    SubscriptionCheckoutRequestSchema,
)
from src.adapter.repositories import (
    SqlAlchemyCreditAccountRepository,
    SqlAlchemyCreditTransactionRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.payment_gateway import PaymentGateway
from src.app.use_cases.billing import (
    BillingEventResponseDTO,
    CheckoutSessionResponseDTO,
    CreateCreditsCheckout,
    CreateCreditsCheckoutCommandDTO,
    CreateSubscriptionCheckout,
    CreateSubscriptionCheckoutCommandDTO,
    HandleBillingEvent,
    HandleBillingEventCommandDTO,
)
from src.app.use_cases.credits import GrantCredits
from src.depends import get_config, get_payment_gateway, get_session

router = APIRouter(prefix="/billing", tags=["Billing"])


@router.post("/checkout/credits", response_model=CheckoutSessionResponseDTO)
async def create_credits_checkout(
    request: CreditsCheckoutRequestSchema,
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    config=Depends(get_config),
):
    """
    Hosted checkout for a one-time credit purchase.

    Credits are granted when Stripe delivers `checkout.session.completed`.
    """
    use_case = CreateCreditsCheckout(
        uow=SqlAlchemyUnitOfWork(session),
        account_repo=SqlAlchemyCreditAccountRepository(session),
        gateway=gateway,
        app_url=config.APP_URL,
        unit_price_cents=config.CREDIT_UNIT_PRICE_CENTS,
    )
    result = await use_case.execute(
        CreateCreditsCheckoutCommandDTO(
            user_id=request.user_id,
            email=request.email,
            credit_amount=request.credit_amount,
        )
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post("/checkout/subscription", response_model=CheckoutSessionResponseDTO)
async def create_subscription_checkout(
    request: SubscriptionCheckoutRequestSchema,
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    config=Depends(get_config),
):
    """
    Hosted checkout for a subscription tier.
    """
    use_case = CreateSubscriptionCheckout(
        uow=SqlAlchemyUnitOfWork(session),
        account_repo=SqlAlchemyCreditAccountRepository(session),
        gateway=gateway,
        app_url=config.APP_URL,
        tier_price_ids=config.TIER_PRICE_IDS,
    )
    result = await use_case.execute(
        CreateSubscriptionCheckoutCommandDTO(
            user_id=request.user_id,
            email=request.email,
            tier=request.tier,
        )
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/webhooks/stripe",
    response_model=BillingEventResponseDTO,
    responses={
        400: {"description": "Signature or payload rejected; Stripe will retry"},
        503: {"description": "Store unavailable; Stripe will retry"},
    },
)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(default=None, alias="stripe-signature"),
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    config=Depends(get_config),
):
    """
    Apply a Stripe event. Redelivered events are acknowledged without
    granting twice.
    """
    raw_body = await request.body()

    uow = SqlAlchemyUnitOfWork(session)
    account_repo = SqlAlchemyCreditAccountRepository(session)
    transaction_repo = SqlAlchemyCreditTransactionRepository(session)

    use_case = HandleBillingEvent(
        account_repo=account_repo,
        gateway=gateway,
        grant=GrantCredits(
            uow,
            account_repo,
            transaction_repo,
            subscription_period_days=config.SUBSCRIPTION_PERIOD_DAYS,
        ),
        tier_monthly_credits=config.TIER_MONTHLY_CREDITS,
    )
    result = await use_case.execute(
        HandleBillingEventCommandDTO(raw_body=raw_body, signature_header=stripe_signature)
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value
