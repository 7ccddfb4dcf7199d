"""Generation Record Domain Entity

One paid request to an external video provider.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import Numeric, String, Text
from src.domain.base import BaseModel, BigIntegerId


class GenerationStatus(str, Enum):
    """Generation lifecycle: starting -> processing -> succeeded | failed"""
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({GenerationStatus.SUCCEEDED, GenerationStatus.FAILED})

_STATUS_RANK = {
    GenerationStatus.STARTING: 0,
    GenerationStatus.PROCESSING: 1,
    GenerationStatus.SUCCEEDED: 2,
    GenerationStatus.FAILED: 2,
}


def is_forward_transition(current: GenerationStatus, new: GenerationStatus) -> bool:
    """True if moving from current to new respects the lifecycle order"""
    if current in TERMINAL_STATUSES:
        return False
    return _STATUS_RANK[new] > _STATUS_RANK[current]


class GenerationRecord(BaseModel, table=True):
    """
    Generation Record

    Domain Rules:
    - Created after the provider accepted the job (status=starting)
    - generation_id is the provider job id; reservation_id is the token the
      credits were reserved under
    - Terminal once succeeded or failed; retained for history
    """

    __tablename__ = "generations"
    __table_args__ = (
        Index('ix_generations_user_created', 'user_id', 'created_at'),
        Index('ix_generations_status', 'status'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntegerId, primary_key=True, autoincrement=True),
    )

    generation_id: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True),
        description="Provider-assigned job id"
    )

    reservation_id: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True),
        description="Reservation token the credits were debited under"
    )

    user_id: str = Field(index=True)

    provider: str = Field(sa_column=Column(String(50), nullable=False))

    model: str = Field(sa_column=Column(String(100), nullable=False))

    prompt: str = Field(sa_column=Column(Text, nullable=False))

    status: GenerationStatus = Field(default=GenerationStatus.STARTING)

    credits_reserved: Decimal = Field(sa_column=Column(Numeric(18, 6), nullable=False))

    cost_to_operator: Decimal = Field(
        sa_column=Column(Numeric(10, 4), nullable=False),
        description="Operator's dollar cost for this generation"
    )

    video_url: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    error_message: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    created_at: datetime = Field(default_factory=datetime.utcnow)

    updated_at: datetime = Field(default_factory=datetime.utcnow)

    completed_at: Optional[datetime] = Field(default=None)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
