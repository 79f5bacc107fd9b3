import os


def _int_env(name, default=None):
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Config:
    raw_db_url = os.getenv("DATABASE_URL")

    if raw_db_url:
        if raw_db_url.startswith("postgres://"):
            raw_db_url = raw_db_url.replace("postgres://", "postgresql://", 1)
        SQLALCHEMY_DATABASE_URI = raw_db_url
    else:
        SQLALCHEMY_DATABASE_URI = "sqlite:///climbing.db"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me-dev-secret")

    # Scoring rules
    BEST_BOULDERS_COUNTED = _int_env("BEST_BOULDERS_COUNTED", 6)
    FINALISTS_PER_GENDER = _int_env("FINALISTS_PER_GENDER", 6)

    # Leaderboard cache lifetime in seconds
    LEADERBOARD_CACHE_TTL = _int_env("LEADERBOARD_CACHE_TTL", 10)

    # None = pending validation requests never expire
    VALIDATION_REQUEST_TTL_MINUTES = _int_env("VALIDATION_REQUEST_TTL_MINUTES")

    LEDGER_WRITE_RETRIES = _int_env("LEDGER_WRITE_RETRIES", 3)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SECRET_KEY = "test-secret"
    LEADERBOARD_CACHE_TTL = 0


RESEND_API_KEY = os.getenv("RESEND_API_KEY", None)
RESEND_FROM_EMAIL = os.getenv("RESEND_FROM_EMAIL", None)
ADMIN_EMAILS_RAW = os.getenv("ADMIN_EMAILS", "")
