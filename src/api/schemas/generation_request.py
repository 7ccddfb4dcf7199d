"""Request schemas for Generation API"""

from pydantic import BaseModel, ConfigDict, Field


class SubmitGenerationRequestSchema(BaseModel):
    """
    Request schema for submitting a video generation

    Used for POST /generations endpoint. An empty prompt or unknown model is
    answered with 400 INVALID_REQUEST by the use case.
    """

    model_config = ConfigDict(
        protected_namespaces=(),
        json_schema_extra={
            "example": {
                "user_id": "user_123",
                "prompt": "A drone shot over a foggy pine forest at sunrise",
                "model_id": "seedance-1-pro-fast",
            }
        },
    )

    user_id: str = Field(..., min_length=1, description="User identifier")

    prompt: str = Field(..., max_length=2000, description="Text prompt for the video")

    model_id: str = Field(..., min_length=1, description="Model from GET /generations/models")
