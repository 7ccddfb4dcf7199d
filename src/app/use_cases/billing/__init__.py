"""Billing use cases"""
from .create_credits_checkout import CreateCreditsCheckout
from .create_subscription_checkout import CreateSubscriptionCheckout
from .handle_billing_event import HandleBillingEvent
from .dtos import (
    CreateCreditsCheckoutCommandDTO,
    CreateSubscriptionCheckoutCommandDTO,
    CheckoutSessionResponseDTO,
    HandleBillingEventCommandDTO,
    BillingEventResponseDTO,
)

__all__ = [
    "CreateCreditsCheckout",
    "CreateSubscriptionCheckout",
    "HandleBillingEvent",
    "CreateCreditsCheckoutCommandDTO",
    "CreateSubscriptionCheckoutCommandDTO",
    "CheckoutSessionResponseDTO",
    "HandleBillingEventCommandDTO",
    "BillingEventResponseDTO",
]
