import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY") or os.urandom(32).hex()
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", f"sqlite:///{BASE_DIR / 'tagboard.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Listing
    POSTS_PER_PAGE = int(os.environ.get("POSTS_PER_PAGE", "20"))
    SEARCH_MAX_LENGTH = int(os.environ.get("SEARCH_MAX_LENGTH", "200"))

    # Security
    TRUST_PROXY = os.environ.get("TRUST_PROXY", "false").lower() == "true"

    # Rate limiting
    RATELIMIT_DEFAULT = os.environ.get("RATELIMIT_DEFAULT", "200 per hour")
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")

    # Session
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_SAMESITE = "Lax"

    # Seeds
    SEED_POST_COUNT = int(os.environ.get("SEED_POST_COUNT", "30"))


class DevelopmentConfig(Config):
    DEBUG = True

    @classmethod
    def init_app(cls, app):
        if not os.environ.get("SECRET_KEY"):
            app.logger.warning("SECRET_KEY not set, using an ephemeral key. Sessions will not survive restarts.")


class ProductionConfig(Config):
    DEBUG = False
    SESSION_COOKIE_SECURE = True
    TRUST_PROXY = os.environ.get("TRUST_PROXY", "true").lower() == "true"

    @classmethod
    def init_app(cls, app):
        secret_key = os.environ.get("SECRET_KEY", "").strip()
        if not secret_key:
            raise RuntimeError("SECRET_KEY environment variable must be set in production")
        if len(secret_key) < 32:
            raise RuntimeError(
                "SECRET_KEY is too short for production (minimum 32 characters). "
                'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
            )
        lowered_secret = secret_key.lower()
        weak_markers = ("changeme", "change-this", "replace", "secret", "example", "default")
        if any(marker in lowered_secret for marker in weak_markers):
            raise RuntimeError(
                "SECRET_KEY appears to be a placeholder and is not allowed in production. "
                'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
            )

        app.config["TRUST_PROXY"] = os.environ.get("TRUST_PROXY", "true").lower() == "true"

        # The default limiter storage is in-memory; more workers would split its counters.
        web_concurrency = os.environ.get("WEB_CONCURRENCY")
        if web_concurrency:
            try:
                worker_count = int(web_concurrency)
            except ValueError as exc:
                raise RuntimeError("WEB_CONCURRENCY must be an integer when set.") from exc
            if worker_count <= 0:
                raise RuntimeError("WEB_CONCURRENCY must be at least 1 when set.")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    SERVER_NAME = "localhost"
    SECRET_KEY = "testing-secret-key"


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
