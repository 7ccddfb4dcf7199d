from .unit_of_work import UnitOfWork
from .video_provider import (
    VideoProvider,
    ProviderRegistry,
    ProviderPollResult,
    ProviderJobStatus,
    ProviderError,
)
from .payment_gateway import (
    PaymentGateway,
    PriceSpec,
    CheckoutMode,
    BillingEvent,
    PaymentGatewayError,
    WebhookVerificationError,
)

__all__ = [
    "UnitOfWork",
    "VideoProvider",
    "ProviderRegistry",
    "ProviderPollResult",
    "ProviderJobStatus",
    "ProviderError",
    "PaymentGateway",
    "PriceSpec",
    "CheckoutMode",
    "BillingEvent",
    "PaymentGatewayError",
    "WebhookVerificationError",
]
