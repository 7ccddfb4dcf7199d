"""Shared HTTP plumbing for provider adapters"""

import logging
from typing import Any, Dict, Optional
import httpx
from src.app.services.video_provider import ProviderError, VideoProvider

logger = logging.getLogger(__name__)


class HttpVideoProvider(VideoProvider):
    """
    Base class for JSON-over-HTTP providers

    Opens a short-lived httpx.AsyncClient per request. A transport can be
    injected (httpx.MockTransport in tests).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.request(method, path, json=json, headers=self._headers())
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"{self.name.value} {method} {path} returned {e.response.status_code}: "
                f"{e.response.text[:500]}"
            )
            raise ProviderError(
                self.name.value,
                f"HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"{self.name.value} {method} {path} failed: {e}")
            raise ProviderError(self.name.value, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise ProviderError(self.name.value, f"invalid JSON response: {e}") from e

    def _require_job_id(self, payload: Dict[str, Any]) -> str:
        job_id = payload.get("id")
        if not job_id:
            raise ProviderError(self.name.value, "response did not include a job id")
        return str(job_id)
