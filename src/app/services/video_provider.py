"""Video Provider Interface

Uniform capability over heterogeneous generation backends: submit a job,
poll its status, extract the playable URL from the provider's own
response shape.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field
from src.domain.video_model import ProviderName, VideoModel


class ProviderJobStatus(str, Enum):
    """Canonical job states every provider vocabulary is mapped onto"""
    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ProviderPollResult(BaseModel):
    job_id: str
    status: ProviderJobStatus
    native_status: Optional[str] = None
    output_url: Optional[str] = None
    error_detail: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class ProviderError(Exception):
    """Raised when a provider cannot be reached or rejects a request"""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


class VideoProvider(ABC):
    """
    Abstract video generation backend

    Implementations translate their native status vocabulary into
    ProviderJobStatus. Unrecognized states map to PROCESSING so a job is
    never considered terminal by mistake.
    """

    name: ProviderName

    @abstractmethod
    async def submit(self, prompt: str, model: VideoModel) -> str:
        """
        Start a generation job

        Returns:
            Provider job id

        Raises:
            ProviderError: submission failed
        """
        pass

    @abstractmethod
    async def poll(self, job_id: str) -> ProviderPollResult:
        """
        Fetch the current job state

        Raises:
            ProviderError: status could not be fetched
        """
        pass

    @abstractmethod
    def extract_output(self, payload: Dict[str, Any]) -> Optional[str]:
        """Pull the video URL out of a provider response, None if absent"""
        pass


class ProviderRegistry:
    """Provider adapters keyed by ProviderName"""

    def __init__(self, providers: Optional[Dict[ProviderName, VideoProvider]] = None):
        self._providers: Dict[ProviderName, VideoProvider] = dict(providers or {})

    def register(self, provider: VideoProvider) -> None:
        self._providers[provider.name] = provider

    def get(self, name) -> Optional[VideoProvider]:
        try:
            return self._providers.get(ProviderName(name))
        except ValueError:
            return None

    def __contains__(self, name) -> bool:
        return self.get(name) is not None
