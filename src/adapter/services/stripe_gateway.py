"""Stripe implementation of PaymentGateway"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict
import stripe
from src.app.services.payment_gateway import (
    BillingEvent,
    CheckoutMode,
    PaymentGateway,
    PaymentGatewayError,
    PriceSpec,
    WebhookVerificationError,
)

logger = logging.getLogger(__name__)


class StripePaymentGateway(PaymentGateway):
    """
    Stripe-backed payment gateway

    Checkout metadata for subscriptions is also copied onto the subscription
    so renewal invoices carry the user and tier.
    """

    def __init__(self, secret_key: str, webhook_secret: str, webhook_tolerance: int = 300):
        self.webhook_secret = webhook_secret
        self.webhook_tolerance = webhook_tolerance
        stripe.api_key = secret_key

    async def create_customer(self, user_id: str, email: str) -> str:
        try:
            customer = await stripe.Customer.create_async(
                email=email,
                metadata={"userId": user_id},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe customer creation failed for user {user_id}: {e}")
            raise PaymentGatewayError(str(e)) from e
        return customer.id

    async def create_checkout_session(
        self,
        customer_ref: str,
        price: PriceSpec,
        mode: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> str:
        params = {
            "customer": customer_ref,
            "line_items": [self._line_item(price)],
            "mode": mode,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if mode == CheckoutMode.SUBSCRIPTION:
            params["subscription_data"] = {"metadata": metadata}

        try:
            session = await stripe.checkout.Session.create_async(**params)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout creation failed for customer {customer_ref}: {e}")
            raise PaymentGatewayError(str(e)) from e
        return session.url

    def verify_and_parse_webhook(self, raw_body: bytes, signature_header: str) -> BillingEvent:
        try:
            stripe.Webhook.construct_event(
                raw_body,
                signature_header,
                self.webhook_secret,
                tolerance=self.webhook_tolerance,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Invalid webhook signature: {e}")
            raise WebhookVerificationError("Invalid webhook signature") from e
        except ValueError as e:
            logger.warning(f"Invalid webhook payload: {e}")
            raise WebhookVerificationError("Invalid payload") from e

        try:
            payload = json.loads(raw_body)
            return BillingEvent(
                id=payload["id"],
                type=payload["type"],
                created_at=datetime.fromtimestamp(payload["created"], timezone.utc).replace(tzinfo=None),
                data=payload.get("data", {}).get("object", {}) or {},
            )
        except (KeyError, TypeError, ValueError) as e:
            raise WebhookVerificationError(f"Malformed event: {e}") from e

    @staticmethod
    def _line_item(price: PriceSpec) -> Dict:
        if price.price_id:
            return {"price": price.price_id, "quantity": price.quantity}
        product_data = {"name": price.product_name}
        if price.product_description:
            product_data["description"] = price.product_description
        return {
            "price_data": {
                "currency": price.currency,
                "product_data": product_data,
                "unit_amount": price.unit_amount_cents,
            },
            "quantity": price.quantity,
        }
