import logging
import time
import sentry_sdk
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from src.api.error import ClientError, client_error_handler
from src.api.routes import billing, credits, generations

logger = logging.getLogger(__name__)


async def request_logging_middleware(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(f"{request.method} {request.url.path} failed")
        raise
    elapsed_ms = int((time.time() - start) * 1000)
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms}ms)")
    return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    from src.depends import engine, init_db

    await init_db(engine)
    logger.info("Database schema ready")
    yield
    await engine.dispose()


def init_sentry(config) -> None:
    if not (config.ENABLE_SENTRY and config.DSN_SENTRY):
        return

    sentry_sdk.init(
        dsn=config.DSN_SENTRY,
        environment=config.SENTRY_ENVIRONMENT,
        traces_sample_rate=0.1,
    )
    logger.info("Sentry error reporting enabled")


def create_app(config) -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    init_sentry(config)

    app = FastAPI(
        title="Video Credit Service",
        description="Credit ledger and video generation orchestration",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=config.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if config.ENABLE_LOGGING_MIDDLEWARE:
        app.middleware("http")(request_logging_middleware)

    app.add_exception_handler(ClientError, client_error_handler)

    app.include_router(generations.router, prefix=config.API_PREFIX)
    app.include_router(credits.router, prefix=config.API_PREFIX)
    app.include_router(billing.router, prefix=config.API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app
