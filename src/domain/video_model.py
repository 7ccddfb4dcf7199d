"""Video model catalog

The only place that maps a model identifier to the credits charged, the
provider that runs it and what the operator pays for it.
"""

from decimal import Decimal
from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict


class ProviderName(str, Enum):
    REPLICATE = "replicate"
    RUNWAY = "runway"
    LUMA = "luma"


class VideoModel(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str
    display_name: str
    provider: ProviderName
    backend_model: str
    credits_cost: Decimal
    operator_cost: Decimal
    estimated_duration_seconds: int


MODEL_CATALOG: Dict[str, VideoModel] = {
    m.model_id: m
    for m in (
        VideoModel(
            model_id="seedance-1-pro-fast",
            display_name="Seedance 1 Pro Fast",
            provider=ProviderName.REPLICATE,
            backend_model="bytedance/seedance-1-pro-fast",
            credits_cost=Decimal("0.4"),
            operator_cost=Decimal("0.36"),
            estimated_duration_seconds=30,
        ),
        VideoModel(
            model_id="gen-4-turbo",
            display_name="Runway Gen-4 Turbo",
            provider=ProviderName.RUNWAY,
            backend_model="gen4_turbo",
            credits_cost=Decimal("0.3"),
            operator_cost=Decimal("0.30"),
            estimated_duration_seconds=60,
        ),
        VideoModel(
            model_id="gen-4",
            display_name="Runway Gen-4",
            provider=ProviderName.RUNWAY,
            backend_model="gen4",
            credits_cost=Decimal("0.8"),
            operator_cost=Decimal("0.72"),
            estimated_duration_seconds=60,
        ),
        VideoModel(
            model_id="veo-3-1",
            display_name="Runway Veo 3.1",
            provider=ProviderName.RUNWAY,
            backend_model="veo3.1",
            credits_cost=Decimal("2.7"),
            operator_cost=Decimal("2.40"),
            estimated_duration_seconds=60,
        ),
        VideoModel(
            model_id="ray-flash-2",
            display_name="Luma Ray Flash 2",
            provider=ProviderName.LUMA,
            backend_model="ray-flash-2",
            credits_cost=Decimal("0.5"),
            operator_cost=Decimal("0.45"),
            estimated_duration_seconds=60,
        ),
    )
}


def get_video_model(model_id: str, catalog: Optional[Dict[str, VideoModel]] = None) -> Optional[VideoModel]:
    return (catalog if catalog is not None else MODEL_CATALOG).get(model_id)
