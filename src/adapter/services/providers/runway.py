"""Runway adapter

Tasks report ``PENDING | THROTTLED | RUNNING | SUCCEEDED | FAILED | CANCELLED``
and return output URLs as a list; the first one is the video.
"""

from typing import Any, Dict, Optional
import httpx
from src.app.services.video_provider import ProviderJobStatus, ProviderPollResult
from src.domain.video_model import ProviderName, VideoModel
from .http_provider import HttpVideoProvider

RUNWAY_STATUS_MAP = {
    "PENDING": ProviderJobStatus.QUEUED,
    "THROTTLED": ProviderJobStatus.QUEUED,
    "RUNNING": ProviderJobStatus.PROCESSING,
    "SUCCEEDED": ProviderJobStatus.SUCCEEDED,
    "FAILED": ProviderJobStatus.FAILED,
    "CANCELLED": ProviderJobStatus.FAILED,
}


class RunwayProvider(HttpVideoProvider):
    name = ProviderName.RUNWAY

    def __init__(
        self,
        api_key: str,
        base_url: str,
        api_version: str = "2024-11-06",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key, base_url, timeout=timeout, transport=transport)
        self.api_version = api_version

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["X-Runway-Version"] = self.api_version
        return headers

    async def submit(self, prompt: str, model: VideoModel) -> str:
        payload = await self._request(
            "POST",
            "/text_to_video",
            json={
                "model": model.backend_model,
                "promptText": prompt,
                "duration": 6,
                "ratio": "1280:720",
            },
        )
        return self._require_job_id(payload)

    async def poll(self, job_id: str) -> ProviderPollResult:
        payload = await self._request("GET", f"/tasks/{job_id}")
        native = payload.get("status")
        status = RUNWAY_STATUS_MAP.get(native, ProviderJobStatus.PROCESSING)
        error = payload.get("failure") or payload.get("failureCode")
        return ProviderPollResult(
            job_id=job_id,
            status=status,
            native_status=native,
            output_url=self.extract_output(payload) if status == ProviderJobStatus.SUCCEEDED else None,
            error_detail=str(error) if error else None,
            raw=payload,
        )

    def extract_output(self, payload: Dict[str, Any]) -> Optional[str]:
        output = payload.get("output")
        if isinstance(output, list) and output and isinstance(output[0], str):
            return output[0]
        return None
