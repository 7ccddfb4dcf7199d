import asyncio
import itertools
import pytest
import pytest_asyncio
from decimal import Decimal
from typing import Any, Dict, Optional
from httpx import ASGITransport, AsyncClient
from src.adapter.repositories import (
    SqlAlchemyCreditAccountRepository,
    SqlAlchemyCreditTransactionRepository,
    SqlAlchemyGenerationRepository,
)
from src.adapter.services.stripe_gateway import StripePaymentGateway
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.video_provider import (
    ProviderError,
    ProviderJobStatus,
    ProviderPollResult,
    ProviderRegistry,
    VideoProvider,
)
from src.app.use_cases.credits import GrantCommandDTO, GrantCredits, OpenAccount, OpenAccountCommandDTO
from src.depends import (
    build_engine,
    build_session_factory,
    get_payment_gateway,
    get_provider_registry,
    get_session,
    init_db,
)
from src.domain.video_model import ProviderName, VideoModel

WEBHOOK_SECRET = "whsec_integration"


class FakeVideoProvider(VideoProvider):
    """In-memory provider; job states are set by the test"""

    def __init__(self, name: ProviderName):
        self.name = name
        self.submitted = []
        self.poll_count = 0
        self.fail_submit: Optional[Exception] = None
        self.fail_poll: Optional[Exception] = None
        self.jobs: Dict[str, ProviderPollResult] = {}
        # When set, poll holds its result until the event fires
        self.poll_gate: Optional[asyncio.Event] = None
        self._ids = itertools.count(1)

    async def submit(self, prompt: str, model: VideoModel) -> str:
        if self.fail_submit:
            raise self.fail_submit
        job_id = f"{self.name.value}_job_{next(self._ids)}"
        self.submitted.append((job_id, prompt, model.model_id))
        self.jobs[job_id] = ProviderPollResult(job_id=job_id, status=ProviderJobStatus.QUEUED)
        return job_id

    async def poll(self, job_id: str) -> ProviderPollResult:
        self.poll_count += 1
        if self.fail_poll:
            raise self.fail_poll
        if job_id not in self.jobs:
            raise ProviderError(self.name.value, f"unknown job {job_id}", status_code=404)
        result = self.jobs[job_id]
        gate = self.poll_gate
        if gate:
            await gate.wait()
        return result

    def extract_output(self, payload: Dict[str, Any]) -> Optional[str]:
        return payload.get("video")

    def finish(self, job_id: str, video_url: str = "https://cdn.example.com/video.mp4"):
        self.jobs[job_id] = ProviderPollResult(
            job_id=job_id, status=ProviderJobStatus.SUCCEEDED, output_url=video_url
        )

    def fail(self, job_id: str, detail: str = "provider error"):
        self.jobs[job_id] = ProviderPollResult(
            job_id=job_id, status=ProviderJobStatus.FAILED, error_detail=detail
        )


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """File-backed SQLite database per test, so concurrent sessions use real locking"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'credits_test.db'}")
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a new database session for each test"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def runway():
    return FakeVideoProvider(ProviderName.RUNWAY)


@pytest.fixture
def replicate():
    return FakeVideoProvider(ProviderName.REPLICATE)


@pytest.fixture
def providers(runway, replicate):
    return ProviderRegistry({ProviderName.RUNWAY: runway, ProviderName.REPLICATE: replicate})


@pytest.fixture
def payment_gateway():
    return StripePaymentGateway(secret_key="sk_test_integration", webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def repos():
    """Build (uow, account_repo, transaction_repo, generation_repo) for a session"""

    def _build(session):
        return (
            SqlAlchemyUnitOfWork(session),
            SqlAlchemyCreditAccountRepository(session),
            SqlAlchemyCreditTransactionRepository(session),
            SqlAlchemyGenerationRepository(session),
        )

    return _build


@pytest.fixture
def funded_account(session_factory, repos):
    """Open an account and grant it a starting balance through the ledger"""

    async def _fund(user_id: str, balance: str) -> None:
        async with session_factory() as session:
            uow, account_repo, transaction_repo, _ = repos(session)
            opened = await OpenAccount(uow, account_repo).execute(OpenAccountCommandDTO(user_id=user_id))
            assert opened.is_ok()
            if Decimal(balance) > 0:
                granted = await GrantCredits(uow, account_repo, transaction_repo).execute(
                    GrantCommandDTO(
                        user_id=user_id,
                        billing_event_id=f"evt_seed_{user_id}",
                        amount=Decimal(balance),
                    )
                )
                assert granted.is_ok()

    return _fund


@pytest_asyncio.fixture
async def client(session_factory, providers, payment_gateway):
    """Create test client with session, provider and gateway overrides"""
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_provider_registry] = lambda: providers
    app.dependency_overrides[get_payment_gateway] = lambda: payment_gateway

    # Use ASGITransport for httpx AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
