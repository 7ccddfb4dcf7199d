"""Unit tests for StripePaymentGateway"""

import hashlib
import hmac
import json
import time
from datetime import datetime
import pytest
import stripe
from unittest.mock import AsyncMock, MagicMock, patch

from src.adapter.services.stripe_gateway import StripePaymentGateway
from src.app.services.payment_gateway import (
    CheckoutMode,
    PaymentGatewayError,
    PriceSpec,
    WebhookVerificationError,
)

WEBHOOK_SECRET = "whsec_test_secret"


def _sign(body: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    timestamp = timestamp or int(time.time())
    signed_payload = f"{timestamp}.{body.decode('utf-8')}"
    signature = hmac.new(secret.encode("utf-8"), signed_payload.encode("utf-8"), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def _event_body(event_type="checkout.session.completed", obj=None) -> bytes:
    return json.dumps(
        {
            "id": "evt_123",
            "object": "event",
            "type": event_type,
            "created": 1709294400,
            "data": {"object": obj or {"metadata": {"userId": "user_123", "type": "credits"}}},
        }
    ).encode("utf-8")


@pytest.fixture
def gateway():
    return StripePaymentGateway(secret_key="sk_test_123", webhook_secret=WEBHOOK_SECRET)


class TestVerifyWebhook:

    def test_valid_signature_parses_event(self, gateway):
        body = _event_body()

        event = gateway.verify_and_parse_webhook(body, _sign(body))

        assert event.id == "evt_123"
        assert event.type == "checkout.session.completed"
        assert event.data["metadata"]["userId"] == "user_123"
        assert event.created_at == datetime(2024, 3, 1, 12, 0)
        assert event.created_at.tzinfo is None

    def test_wrong_secret_rejected(self, gateway):
        body = _event_body()

        with pytest.raises(WebhookVerificationError):
            gateway.verify_and_parse_webhook(body, _sign(body, secret="whsec_other"))

    def test_tampered_body_rejected(self, gateway):
        body = _event_body()
        header = _sign(body)

        with pytest.raises(WebhookVerificationError):
            gateway.verify_and_parse_webhook(body.replace(b"user_123", b"user_999"), header)

    def test_expired_timestamp_rejected(self, gateway):
        body = _event_body()

        with pytest.raises(WebhookVerificationError):
            gateway.verify_and_parse_webhook(body, _sign(body, timestamp=int(time.time()) - 3600))


class TestLineItem:

    def test_catalog_price(self):
        assert StripePaymentGateway._line_item(PriceSpec(price_id="price_pro")) == {
            "price": "price_pro",
            "quantity": 1,
        }

    def test_inline_price(self):
        item = StripePaymentGateway._line_item(
            PriceSpec(unit_amount_cents=1500, product_name="10 Video Credits", product_description="desc")
        )

        assert item["price_data"]["unit_amount"] == 1500
        assert item["price_data"]["currency"] == "usd"
        assert item["price_data"]["product_data"] == {"name": "10 Video Credits", "description": "desc"}


@pytest.mark.asyncio
class TestCheckoutSession:

    async def test_subscription_copies_metadata(self, gateway):
        with patch(
            "stripe.checkout.Session.create_async",
            new=AsyncMock(return_value=MagicMock(url="https://checkout.stripe.com/c/1")),
        ) as create:
            url = await gateway.create_checkout_session(
                customer_ref="cus_1",
                price=PriceSpec(price_id="price_pro"),
                mode=CheckoutMode.SUBSCRIPTION,
                success_url="https://app/ok",
                cancel_url="https://app/cancel",
                metadata={"userId": "user_123", "tier": "pro"},
            )

        assert url == "https://checkout.stripe.com/c/1"
        kwargs = create.call_args.kwargs
        assert kwargs["customer"] == "cus_1"
        assert kwargs["subscription_data"] == {"metadata": {"userId": "user_123", "tier": "pro"}}

    async def test_payment_has_no_subscription_data(self, gateway):
        with patch(
            "stripe.checkout.Session.create_async",
            new=AsyncMock(return_value=MagicMock(url="https://checkout.stripe.com/c/2")),
        ) as create:
            await gateway.create_checkout_session(
                customer_ref="cus_1",
                price=PriceSpec(unit_amount_cents=150, product_name="1 Video Credits"),
                mode=CheckoutMode.PAYMENT,
                success_url="https://app/ok",
                cancel_url="https://app/cancel",
                metadata={"userId": "user_123", "type": "credits", "creditAmount": "1"},
            )

        assert "subscription_data" not in create.call_args.kwargs

    async def test_stripe_error_wrapped(self, gateway):
        with patch(
            "stripe.checkout.Session.create_async",
            new=AsyncMock(side_effect=stripe.APIConnectionError("network down")),
        ):
            with pytest.raises(PaymentGatewayError):
                await gateway.create_checkout_session(
                    customer_ref="cus_1",
                    price=PriceSpec(price_id="price_pro"),
                    mode=CheckoutMode.SUBSCRIPTION,
                    success_url="https://app/ok",
                    cancel_url="https://app/cancel",
                    metadata={},
                )

    async def test_create_customer(self, gateway):
        with patch(
            "stripe.Customer.create_async", new=AsyncMock(return_value=MagicMock(id="cus_new"))
        ) as create:
            customer_id = await gateway.create_customer("user_123", "u@example.com")

        assert customer_id == "cus_new"
        assert create.call_args.kwargs["metadata"] == {"userId": "user_123"}
