import os
from dotenv import load_dotenv

load_dotenv()


def _database_uri():
    """Prefer DATABASE_URL, otherwise build the Postgres URI from its parts."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    DB_NAME = os.getenv("DB_NAME")
    DB_USER = os.getenv("DB_USER")
    DB_PASSWORD = os.getenv("DB_PASSWORD")
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    return f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "true").lower() == "true"
    RATELIMIT_STORAGE_URL = os.getenv("RATELIMIT_STORAGE_URL")
    MANUAL_TRIGGER_RATE_LIMIT = os.getenv("MANUAL_TRIGGER_RATE_LIMIT", "5 per minute")

    # Scheduler
    SCHEDULER_STALE_LOCK_MINUTES = int(os.getenv("SCHEDULER_STALE_LOCK_MINUTES", 30))
    SCHEDULER_MAX_WORKERS = int(os.getenv("SCHEDULER_MAX_WORKERS", 1))
    SCHEDULER_CRON_HOUR = os.getenv("SCHEDULER_CRON_HOUR", "6")
    SCHEDULER_CRON_MINUTE = os.getenv("SCHEDULER_CRON_MINUTE", "0")

    # Price lookup
    PRICE_SOURCE = os.getenv("PRICE_SOURCE", "local")
    MFAPI_BASE_URL = os.getenv("MFAPI_BASE_URL", "https://api.mfapi.in")
    PRICE_LOOKUP_TIMEOUT_SECONDS = float(os.getenv("PRICE_LOOKUP_TIMEOUT_SECONDS", 10))
