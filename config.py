import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./video_credits.db")
    DB_ECHO = bool(data.get("DB_ECHO", False))
    API_PREFIX = data.get("API_PREFIX", "")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENABLE_LOGGING_MIDDLEWARE = bool(data.get("ENABLE_LOGGING_MIDDLEWARE", 1))
    ENABLE_SENTRY = data.get("ENABLE_SENTRY", 0)
    DSN_SENTRY = data.get("DSN_SENTRY", "")
    SENTRY_ENVIRONMENT = data.get("SENTRY_ENVIRONMENT", "dev")

    # Video providers
    REPLICATE_API_TOKEN = data.get("REPLICATE_API_TOKEN", "")
    REPLICATE_API_URL = data.get("REPLICATE_API_URL", "https://api.replicate.com/v1")
    RUNWAY_API_KEY = data.get("RUNWAY_API_KEY", "")
    RUNWAY_API_URL = data.get("RUNWAY_API_URL", "https://api.dev.runwayml.com/v1")
    RUNWAY_API_VERSION = data.get("RUNWAY_API_VERSION", "2024-11-06")
    LUMA_API_KEY = data.get("LUMA_API_KEY", "")
    LUMA_API_URL = data.get("LUMA_API_URL", "https://api.lumalabs.ai/dream-machine/v1")
    PROVIDER_TIMEOUT_SECONDS = data.get("PROVIDER_TIMEOUT_SECONDS", 30.0)

    # Stripe
    STRIPE_SECRET_KEY = data.get("STRIPE_SECRET_KEY", "")
    STRIPE_WEBHOOK_SECRET = data.get("STRIPE_WEBHOOK_SECRET", "")
    STRIPE_WEBHOOK_TOLERANCE = data.get("STRIPE_WEBHOOK_TOLERANCE", 300)  # Seconds

    # Pricing
    CREDIT_UNIT_PRICE_CENTS = data.get("CREDIT_UNIT_PRICE_CENTS", 150)  # $1.50 per credit
    TIER_PRICE_IDS = data.get("TIER_PRICE_IDS", {})  # tier -> Stripe price id
    TIER_MONTHLY_CREDITS = data.get(
        "TIER_MONTHLY_CREDITS", {"starter": 10, "pro": 35, "business": 100}
    )
    SUBSCRIPTION_PERIOD_DAYS = data.get("SUBSCRIPTION_PERIOD_DAYS", 30)
    APP_URL = data.get("APP_URL", "http://localhost:3000")

    # Generation Poller
    GENERATION_POLLER_ENABLED = bool(data.get("GENERATION_POLLER_ENABLED", True))
    GENERATION_POLL_INTERVAL_SECONDS = data.get("GENERATION_POLL_INTERVAL_SECONDS", 3)
    GENERATION_POLL_BATCH_SIZE = data.get("GENERATION_POLL_BATCH_SIZE", 100)

    # Ledger Reconciliation
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 900)  # 15 minutes
    STALE_RESERVATION_MINUTES = data.get("STALE_RESERVATION_MINUTES", 15)
