"""CreateCreditsCheckout Use Case

Opens a hosted checkout for a one-time credit purchase. Credits are granted
later by the checkout.session.completed webhook, not here.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.payment_gateway import (
    CheckoutMode,
    PaymentGateway,
    PaymentGatewayError,
    PriceSpec,
)
from src.app.repositories.credit_account_repository import CreditAccountRepository
from .dtos import CheckoutSessionResponseDTO, CreateCreditsCheckoutCommandDTO
from .payment_customer import ensure_payment_customer

logger = logging.getLogger(__name__)


class CreateCreditsCheckout:
    """
    Use Case: Create a credit purchase checkout

    Business Rules:
    1. At least one credit per purchase
    2. Price is credit_amount * unit price, charged as one line item
    3. Metadata {userId, type=credits, creditAmount} drives the grant webhook
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        gateway: PaymentGateway,
        app_url: str,
        unit_price_cents: int = 150,
    ):
        self.uow = uow
        self.account_repo = account_repo
        self.gateway = gateway
        self.app_url = app_url.rstrip("/")
        self.unit_price_cents = unit_price_cents

    async def execute(self, command: CreateCreditsCheckoutCommandDTO) -> Result[CheckoutSessionResponseDTO]:
        customer = await ensure_payment_customer(
            self.uow, self.account_repo, self.gateway, command.user_id, command.email
        )
        if customer.is_err():
            return customer

        amount_cents = command.credit_amount * self.unit_price_cents
        return_url = f"{self.app_url}/dashboard"

        try:
            url = await self.gateway.create_checkout_session(
                customer_ref=customer.value,
                price=PriceSpec(
                    unit_amount_cents=amount_cents,
                    product_name=f"{command.credit_amount} Video Credits",
                    product_description=f"Purchase {command.credit_amount} credits for video generation",
                ),
                mode=CheckoutMode.PAYMENT,
                success_url=f"{return_url}?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=return_url,
                metadata={
                    "userId": command.user_id,
                    "type": "credits",
                    "creditAmount": str(command.credit_amount),
                },
            )
        except PaymentGatewayError as e:
            return Return.err(
                Error(
                    code="PAYMENT_PROVIDER_UNAVAILABLE",
                    message="Payment provider is unavailable, please retry",
                    reason=str(e),
                )
            )

        logger.info(f"Created credits checkout for user {command.user_id} ({command.credit_amount} credits)")
        return Return.ok(
            CheckoutSessionResponseDTO(
                url=url,
                user_id=command.user_id,
                mode=CheckoutMode.PAYMENT,
                amount_cents=amount_cents,
            )
        )
