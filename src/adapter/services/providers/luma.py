"""Luma Dream Machine adapter

Generations report ``queued | dreaming | completed | failed`` and nest the
video URL under ``assets.video``.
"""

from typing import Any, Dict, Optional
from src.app.services.video_provider import ProviderJobStatus, ProviderPollResult
from src.domain.video_model import ProviderName, VideoModel
from .http_provider import HttpVideoProvider

LUMA_STATUS_MAP = {
    "queued": ProviderJobStatus.QUEUED,
    "dreaming": ProviderJobStatus.PROCESSING,
    "completed": ProviderJobStatus.SUCCEEDED,
    "failed": ProviderJobStatus.FAILED,
}


class LumaProvider(HttpVideoProvider):
    name = ProviderName.LUMA

    async def submit(self, prompt: str, model: VideoModel) -> str:
        payload = await self._request(
            "POST",
            "/generations",
            json={
                "prompt": prompt,
                "model": model.backend_model,
                "duration": "5s",
                "resolution": "720p",
            },
        )
        return self._require_job_id(payload)

    async def poll(self, job_id: str) -> ProviderPollResult:
        payload = await self._request("GET", f"/generations/{job_id}")
        native = payload.get("state")
        status = LUMA_STATUS_MAP.get(native, ProviderJobStatus.PROCESSING)
        error = payload.get("failure_reason")
        return ProviderPollResult(
            job_id=job_id,
            status=status,
            native_status=native,
            output_url=self.extract_output(payload) if status == ProviderJobStatus.SUCCEEDED else None,
            error_detail=str(error) if error else None,
            raw=payload,
        )

    def extract_output(self, payload: Dict[str, Any]) -> Optional[str]:
        assets = payload.get("assets")
        if isinstance(assets, dict):
            video = assets.get("video")
            if isinstance(video, str) and video:
                return video
        return None
