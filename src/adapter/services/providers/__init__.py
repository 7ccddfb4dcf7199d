"""Video provider adapters"""

import logging
from typing import Optional
import httpx
from src.app.services.video_provider import ProviderRegistry
from .replicate import ReplicateProvider
from .runway import RunwayProvider
from .luma import LumaProvider

logger = logging.getLogger(__name__)


def create_provider_registry(config, transport: Optional[httpx.AsyncBaseTransport] = None) -> ProviderRegistry:
    """
    Factory function building the registry from ApplicationConfig

    Providers without an API key are left out; models routed to them fail
    with PROVIDER_UNAVAILABLE.
    """
    registry = ProviderRegistry()
    timeout = float(config.PROVIDER_TIMEOUT_SECONDS)

    if config.REPLICATE_API_TOKEN:
        registry.register(
            ReplicateProvider(
                api_key=config.REPLICATE_API_TOKEN,
                base_url=config.REPLICATE_API_URL,
                timeout=timeout,
                transport=transport,
            )
        )
    if config.RUNWAY_API_KEY:
        registry.register(
            RunwayProvider(
                api_key=config.RUNWAY_API_KEY,
                base_url=config.RUNWAY_API_URL,
                api_version=config.RUNWAY_API_VERSION,
                timeout=timeout,
                transport=transport,
            )
        )
    if config.LUMA_API_KEY:
        registry.register(
            LumaProvider(
                api_key=config.LUMA_API_KEY,
                base_url=config.LUMA_API_URL,
                timeout=timeout,
                transport=transport,
            )
        )

    if not any(name in registry for name in ("replicate", "runway", "luma")):
        logger.warning("No video provider API keys configured")

    return registry


__all__ = [
    "ReplicateProvider",
    "RunwayProvider",
    "LumaProvider",
    "create_provider_registry",
]
