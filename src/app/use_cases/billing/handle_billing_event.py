"""HandleBillingEvent Use Case

Verifies a payment-provider webhook and turns completed purchases and
subscription renewals into credit grants. Delivery is at-least-once; the
grant is idempotent on the event id.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional
from sqlalchemy.exc import SQLAlchemyError
from libs.result import Result, Return, Error
from src.app.services.payment_gateway import (
    BillingEvent,
    PaymentGateway,
    WebhookVerificationError,
)
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.use_cases.credits import GrantCommandDTO, GrantCredits
from src.domain.credit_account import AccountTier
from src.domain.credit_transaction import GrantMode
from .dtos import BillingEventResponseDTO, HandleBillingEventCommandDTO

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
INVOICE_PAID = "invoice.paid"
SUBSCRIPTION_CYCLE = "subscription_cycle"


class HandleBillingEvent:
    """
    Use Case: Apply a billing webhook

    Business Rules:
    1. Unverified events are rejected with no state change
    2. checkout.session.completed with type=credits -> add grant of creditAmount
    3. checkout.session.completed with a tier -> set-monthly to the tier allotment
    4. invoice.paid for a subscription cycle -> set-monthly from subscription metadata
    5. The user comes from metadata.userId, else from the customer reference
    6. Any other event type is acknowledged and ignored
    """

    def __init__(
        self,
        account_repo: CreditAccountRepository,
        gateway: PaymentGateway,
        grant: GrantCredits,
        tier_monthly_credits: Dict[str, Any],
    ):
        self.account_repo = account_repo
        self.gateway = gateway
        self.grant = grant
        self.tier_monthly_credits = tier_monthly_credits

    async def execute(self, command: HandleBillingEventCommandDTO) -> Result[BillingEventResponseDTO]:
        # Step 1: Verify
        if not command.signature_header:
            return self._reject("Missing signature")
        try:
            event = self.gateway.verify_and_parse_webhook(command.raw_body, command.signature_header)
        except WebhookVerificationError as e:
            return self._reject(str(e))

        logger.info(f"Webhook received: {event.type} ({event.id})")

        # Step 2: Dispatch
        if event.type == CHECKOUT_COMPLETED:
            metadata = event.data.get("metadata") or {}
            if metadata.get("type") == "credits":
                return await self._grant_purchase(event, metadata)
            if metadata.get("tier"):
                return await self._grant_monthly(event, metadata)
        elif event.type == INVOICE_PAID and event.data.get("billing_reason") == SUBSCRIPTION_CYCLE:
            return await self._grant_monthly(event, self._subscription_metadata(event.data))

        return Return.ok(
            BillingEventResponseDTO(event_id=event.id, event_type=event.type, handled=False)
        )

    async def _grant_purchase(self, event: BillingEvent, metadata: Dict[str, Any]) -> Result[BillingEventResponseDTO]:
        try:
            amount = Decimal(str(metadata.get("creditAmount")))
        except InvalidOperation:
            return self._reject(f"Invalid creditAmount in event {event.id}")
        if not amount.is_finite() or amount <= 0:
            return self._reject(f"Invalid creditAmount in event {event.id}")

        return await self._apply(event, metadata, amount, GrantMode.ADD, None)

    async def _grant_monthly(self, event: BillingEvent, metadata: Dict[str, Any]) -> Result[BillingEventResponseDTO]:
        tier = metadata.get("tier")
        if tier not in self.tier_monthly_credits:
            return self._reject(f"Unknown subscription tier {tier!r} in event {event.id}")

        amount = Decimal(str(self.tier_monthly_credits[tier]))
        return await self._apply(event, metadata, amount, GrantMode.SET_MONTHLY, AccountTier(tier))

    async def _apply(
        self,
        event: BillingEvent,
        metadata: Dict[str, Any],
        amount: Decimal,
        mode: GrantMode,
        tier: Optional[AccountTier],
    ) -> Result[BillingEventResponseDTO]:
        try:
            user_id = await self._resolve_user(event, metadata)
        except SQLAlchemyError as e:
            logger.error(f"Failed to resolve user for event {event.id}: {e}")
            return Return.err(
                Error(code="STORE_UNAVAILABLE", message="Failed to resolve billing customer", reason=str(e))
            )
        if not user_id:
            return self._reject(f"Cannot resolve user for event {event.id}")

        result = await self.grant.execute(
            GrantCommandDTO(
                user_id=user_id,
                billing_event_id=event.id,
                amount=amount,
                mode=mode,
                tier=tier,
                event_created_at=event.created_at,
            )
        )
        if result.is_err():
            if result.error.code == "INVALID_REQUEST":
                return self._reject(result.error.message)
            return result

        return Return.ok(
            BillingEventResponseDTO(
                event_id=event.id,
                event_type=event.type,
                handled=True,
                outcome=result.value.outcome.value,
                user_id=user_id,
            )
        )

    async def _resolve_user(self, event: BillingEvent, metadata: Dict[str, Any]) -> Optional[str]:
        user_id = metadata.get("userId")
        if user_id:
            return user_id

        customer = event.data.get("customer")
        if not customer:
            return None
        account = await self.account_repo.get_by_payment_customer_id(customer)
        return account.user_id if account else None

    @staticmethod
    def _subscription_metadata(invoice: Dict[str, Any]) -> Dict[str, Any]:
        details = invoice.get("subscription_details")
        if not details:
            # Newer API versions nest it under parent
            details = (invoice.get("parent") or {}).get("subscription_details")
        return (details or {}).get("metadata") or {}

    @staticmethod
    def _reject(reason: str) -> Result[BillingEventResponseDTO]:
        logger.warning(f"Webhook rejected: {reason}")
        return Return.err(
            Error(
                code="WEBHOOK_REJECTED",
                message="Webhook processing failed",
                reason=reason,
            )
        )
