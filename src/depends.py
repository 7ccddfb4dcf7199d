from typing import Optional
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.adapter.services.providers import create_provider_registry
from src.adapter.services.stripe_gateway import StripePaymentGateway
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.video_provider import ProviderRegistry

# Registers every table on SQLModel.metadata
import src.domain  # noqa: F401


def build_engine(db_uri: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine

    SQLite transactions are opened with BEGIN IMMEDIATE so concurrent
    writers are serialized by the database file lock instead of failing
    on lock upgrade.
    """
    engine = create_async_engine(db_uri, echo=echo, future=True)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


engine = build_engine(ApplicationConfig.DB_URI, echo=ApplicationConfig.DB_ECHO)

AsyncSessionLocal = build_session_factory(engine)

_provider_registry: Optional[ProviderRegistry] = None
_payment_gateway: Optional[PaymentGateway] = None


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_config():
    return ApplicationConfig


def get_provider_registry() -> ProviderRegistry:
    global _provider_registry
    if _provider_registry is None:
        _provider_registry = create_provider_registry(ApplicationConfig)
    return _provider_registry


def get_payment_gateway() -> PaymentGateway:
    global _payment_gateway
    if _payment_gateway is None:
        _payment_gateway = StripePaymentGateway(
            secret_key=ApplicationConfig.STRIPE_SECRET_KEY,
            webhook_secret=ApplicationConfig.STRIPE_WEBHOOK_SECRET,
            webhook_tolerance=ApplicationConfig.STRIPE_WEBHOOK_TOLERANCE,
        )
    return _payment_gateway
