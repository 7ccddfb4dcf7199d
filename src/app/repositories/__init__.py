from .credit_account_repository import CreditAccountRepository
from .credit_transaction_repository import CreditTransactionRepository
from .generation_repository import GenerationRepository

__all__ = [
    "CreditAccountRepository",
    "CreditTransactionRepository",
    "GenerationRepository",
]
