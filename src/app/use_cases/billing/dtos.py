"""Data Transfer Objects for billing use cases"""

from typing import Optional
from pydantic import BaseModel, Field
from src.domain.credit_account import AccountTier


class CreateCreditsCheckoutCommandDTO(BaseModel):
    """
    Command DTO for a one-time credit purchase
    """

    user_id: str = Field(..., min_length=1)

    email: str = Field(..., min_length=3)

    credit_amount: int = Field(..., ge=1, description="Whole credits to buy")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user_123",
                "email": "user@example.com",
                "credit_amount": 10,
            }
        }


class CreateSubscriptionCheckoutCommandDTO(BaseModel):
    """
    Command DTO for starting a subscription
    """

    user_id: str = Field(..., min_length=1)

    email: str = Field(..., min_length=3)

    tier: AccountTier


class CheckoutSessionResponseDTO(BaseModel):
    url: str

    user_id: str

    mode: str

    amount_cents: Optional[int] = None

    tier: Optional[str] = None


class HandleBillingEventCommandDTO(BaseModel):
    raw_body: bytes

    signature_header: Optional[str] = None


class BillingEventResponseDTO(BaseModel):
    """
    Acknowledgement of a webhook event

    handled is False for event types that are acknowledged and ignored.
    """

    event_id: str

    event_type: str

    handled: bool

    outcome: Optional[str] = None

    user_id: Optional[str] = None
