"""Payment Gateway Interface

The payment provider is consumed through three calls: create a customer,
create a hosted checkout session, and verify an incoming webhook.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class CheckoutMode:
    PAYMENT = "payment"
    SUBSCRIPTION = "subscription"


class PriceSpec(BaseModel):
    """Either a catalog price id or an inline one-off price"""
    price_id: Optional[str] = None
    unit_amount_cents: Optional[int] = None
    currency: str = "usd"
    product_name: Optional[str] = None
    product_description: Optional[str] = None
    quantity: int = 1


class BillingEvent(BaseModel):
    """Verified webhook event"""
    id: str
    type: str
    created_at: datetime
    data: Dict[str, Any] = Field(default_factory=dict)


class PaymentGatewayError(Exception):
    """Payment provider call failed"""


class WebhookVerificationError(Exception):
    """Webhook payload or signature is invalid"""


class PaymentGateway(ABC):

    @abstractmethod
    async def create_customer(self, user_id: str, email: str) -> str:
        """
        Returns:
            Customer reference at the payment provider
        """
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        customer_ref: str,
        price: PriceSpec,
        mode: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> str:
        """
        Returns:
            Hosted checkout URL

        Raises:
            PaymentGatewayError
        """
        pass

    @abstractmethod
    def verify_and_parse_webhook(self, raw_body: bytes, signature_header: str) -> BillingEvent:
        """
        Raises:
            WebhookVerificationError: signature or payload invalid
        """
        pass
