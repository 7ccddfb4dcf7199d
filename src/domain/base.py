from uuid import uuid4
from sqlalchemy import BigInteger, Integer
from sqlmodel import SQLModel

# SQLite only auto-increments INTEGER PRIMARY KEY columns
BigIntegerId = BigInteger().with_variant(Integer(), "sqlite")


class BaseModel(SQLModel):
    pass


def generate_reservation_id() -> str:
    """Locally minted token that keys a credit reservation before the provider job id exists"""
    return f"rsv_{uuid4().hex}"
