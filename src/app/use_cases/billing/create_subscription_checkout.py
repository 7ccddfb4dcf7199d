"""CreateSubscriptionCheckout Use Case

Opens a hosted checkout for a subscription tier.
"""

import logging
from typing import Dict
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.payment_gateway import (
    CheckoutMode,
    PaymentGateway,
    PaymentGatewayError,
    PriceSpec,
)
from src.app.repositories.credit_account_repository import CreditAccountRepository
from .dtos import CheckoutSessionResponseDTO, CreateSubscriptionCheckoutCommandDTO
from .payment_customer import ensure_payment_customer

logger = logging.getLogger(__name__)


class CreateSubscriptionCheckout:
    """
    Use Case: Create a subscription checkout

    Business Rules:
    1. The tier must have a configured price id
    2. Metadata {userId, tier} is attached to the session and the
       subscription, so both the first checkout and every renewal invoice
       identify the user and tier
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        gateway: PaymentGateway,
        app_url: str,
        tier_price_ids: Dict[str, str],
    ):
        self.uow = uow
        self.account_repo = account_repo
        self.gateway = gateway
        self.app_url = app_url.rstrip("/")
        self.tier_price_ids = tier_price_ids

    async def execute(self, command: CreateSubscriptionCheckoutCommandDTO) -> Result[CheckoutSessionResponseDTO]:
        tier = command.tier.value
        price_id = self.tier_price_ids.get(tier)
        if not price_id:
            return Return.err(
                Error(
                    code="INVALID_REQUEST",
                    message=f"No price configured for tier: {tier}",
                )
            )

        customer = await ensure_payment_customer(
            self.uow, self.account_repo, self.gateway, command.user_id, command.email
        )
        if customer.is_err():
            return customer

        return_url = f"{self.app_url}/dashboard"

        try:
            url = await self.gateway.create_checkout_session(
                customer_ref=customer.value,
                price=PriceSpec(price_id=price_id),
                mode=CheckoutMode.SUBSCRIPTION,
                success_url=f"{return_url}?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=return_url,
                metadata={"userId": command.user_id, "tier": tier},
            )
        except PaymentGatewayError as e:
            return Return.err(
                Error(
                    code="PAYMENT_PROVIDER_UNAVAILABLE",
                    message="Payment provider is unavailable, please retry",
                    reason=str(e),
                )
            )

        logger.info(f"Created {tier} subscription checkout for user {command.user_id}")
        return Return.ok(
            CheckoutSessionResponseDTO(
                url=url,
                user_id=command.user_id,
                mode=CheckoutMode.SUBSCRIPTION,
                tier=tier,
            )
        )
