from .unit_of_work import SqlAlchemyUnitOfWork
from .stripe_gateway import StripePaymentGateway
from .providers import (
    ReplicateProvider,
    RunwayProvider,
    LumaProvider,
    create_provider_registry,
)

__all__ = [
    "SqlAlchemyUnitOfWork",
    "StripePaymentGateway",
    "ReplicateProvider",
    "RunwayProvider",
    "LumaProvider",
    "create_provider_registry",
]
