from .base import BaseModel, generate_reservation_id
from .credit_account import CreditAccount, AccountTier
from .credit_transaction import CreditTransaction, TransactionType, GrantMode
from .generation import GenerationRecord, GenerationStatus
from .video_model import VideoModel, ProviderName, MODEL_CATALOG, get_video_model

__all__ = [
    "BaseModel",
    "generate_reservation_id",
    "CreditAccount",
    "AccountTier",
    "CreditTransaction",
    "TransactionType",
    "GrantMode",
    "GenerationRecord",
    "GenerationStatus",
    "VideoModel",
    "ProviderName",
    "MODEL_CATALOG",
    "get_video_model",
]
