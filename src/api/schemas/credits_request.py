"""Request schemas for Credits API"""

from pydantic import BaseModel, Field


class OpenAccountRequestSchema(BaseModel):
    """
    Request schema for opening a credit account

    Used for POST /credits/accounts endpoint (signup hook).
    """

    user_id: str = Field(
        ...,
        min_length=1,
        description="User identifier (required, non-empty)"
    )
