"""Request schemas for Billing API

Pydantic models for validating incoming HTTP requests.
"""

from pydantic import BaseModel, Field
from src.domain.credit_account import AccountTier


class CreditsCheckoutRequestSchema(BaseModel):
    """
    Request schema for a one-time credit purchase

    Used for POST /billing/checkout/credits endpoint.
    """

    user_id: str = Field(..., min_length=1)

    email: str = Field(..., min_length=3, description="Billing email for the payment customer")

    credit_amount: int = Field(..., ge=1, description="Whole credits to buy (at least 1)")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user_123",
                "email": "user@example.com",
                "credit_amount": 10,
            }
        }


class SubscriptionCheckoutRequestSchema(BaseModel):
    """
    Request schema for a subscription checkout

    Used for POST /billing/checkout/subscription endpoint.
    """

    user_id: str = Field(..., min_length=1)

    email: str = Field(..., min_length=3)

    tier: AccountTier = Field(..., description="starter, pro or business")
