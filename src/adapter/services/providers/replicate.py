"""Replicate adapter

Predictions report ``starting | processing | succeeded | failed | canceled``
and return the video URL as a plain string in ``output``.
"""

from typing import Any, Dict, Optional
from src.app.services.video_provider import ProviderJobStatus, ProviderPollResult
from src.domain.video_model import ProviderName, VideoModel
from .http_provider import HttpVideoProvider

REPLICATE_STATUS_MAP = {
    "starting": ProviderJobStatus.QUEUED,
    "processing": ProviderJobStatus.PROCESSING,
    "succeeded": ProviderJobStatus.SUCCEEDED,
    "failed": ProviderJobStatus.FAILED,
    "canceled": ProviderJobStatus.FAILED,
}


class ReplicateProvider(HttpVideoProvider):
    name = ProviderName.REPLICATE

    async def submit(self, prompt: str, model: VideoModel) -> str:
        payload = await self._request(
            "POST",
            f"/models/{model.backend_model}/predictions",
            json={
                "input": {
                    "prompt": prompt,
                    "duration": 6,
                    "aspect_ratio": "16:9",
                }
            },
        )
        return self._require_job_id(payload)

    async def poll(self, job_id: str) -> ProviderPollResult:
        payload = await self._request("GET", f"/predictions/{job_id}")
        native = payload.get("status")
        status = REPLICATE_STATUS_MAP.get(native, ProviderJobStatus.PROCESSING)
        error = payload.get("error")
        if native == "canceled" and not error:
            error = "Prediction was canceled"
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
        return output if isinstance(output, str) and output else None
