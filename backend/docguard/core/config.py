"""
Pydantic Settings — centralized configuration loaded from environment variables.

Components receive a Settings instance at construction time; get_settings()
only supplies the process-wide default.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database ──────────────────────────────
    POSTGRES_USER: str = "docguard_user"
    POSTGRES_PASSWORD: str = "docguard_pass"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "docguard_db"
    DATABASE_URL_OVERRIDE: str = ""

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for app runtime (asyncpg)."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def DATABASE_URL_SYNC(self) -> str:
        """Sync URL for Alembic migrations (psycopg2)."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # ── Redis / Celery ────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # ── LLM Provider (Google Gemini) ─────────
    GOOGLE_API_KEY: str = ""
    GEMINI_VISION_MODEL: str = "gemini-2.5-flash"
    GEMINI_TEXT_MODEL: str = "gemini-2.5-flash-lite"
    LLM_TEMPERATURE: float = 0.1
    LLM_MAX_TOKENS_VISION: int = 1000
    LLM_MAX_TOKENS_TEXT: int = 500

    # ── LangSmith Tracing ────────────────────
    LANGSMITH_API_KEY: str = ""
    LANGSMITH_ENDPOINT: str = "https://api.smith.langchain.com"
    LANGSMITH_PROJECT: str = "docguard-validation"
    LANGSMITH_TRACING: bool = False

    # ── Credentials at rest ──────────────────
    CREDENTIAL_ENCRYPTION_KEY: str = ""
    LEGACY_XOR_KEY: str = ""

    # ── OAuth clients (credential refresh) ───
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    MICROSOFT_CLIENT_ID: str = ""
    MICROSOFT_CLIENT_SECRET: str = ""
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    # ── Validation queue ─────────────────────
    QUEUE_BATCH_SIZE: int = 10
    QUEUE_MAX_ATTEMPTS: int = 5
    QUEUE_CONCURRENCY: int = 4
    QUEUE_STALE_AFTER_SECONDS: int = 900

    # ── Per-stage timeouts (seconds) ─────────
    FETCH_TIMEOUT_SECONDS: float = 30.0
    CLASSIFY_TIMEOUT_SECONDS: float = 60.0
    STAGE_TIMEOUT_SECONDS: float = 15.0
    JOB_TIMEOUT_SECONDS: float = 180.0

    # ── Owner matching ───────────────────────
    OWNER_MATCH_REVIEW_THRESHOLD: float = 0.85
    NAME_MATCH_FLOOR: float = 0.7

    # ── Default auto-approval thresholds ─────
    MIN_OWNER_MATCH_CONFIDENCE: float = 0.90
    MIN_AUTHENTICITY_SCORE: float = 0.85
    MIN_REQUEST_COMPLIANCE_SCORE: float = 0.95
    ALLOW_EXPIRED_DOCUMENTS: bool = False

    # ── Application ───────────────────────────
    APP_ENV: str = "development"
    SERVICE_API_TOKEN: str = ""
    CORS_ORIGINS: list[str] = ["*"]

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Process-wide default settings."""
    return Settings()


settings = get_settings()
