from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DATABASE_URL: str = "sqlite+pysqlite:///./adpublish.db"

    LOG_LEVEL: str = "INFO"
    AUTO_CREATE_TABLES: bool = False  # local SQLite only; deployed databases use alembic

    USE_DRY_RUN_EXECUTION: bool = True

    META_APP_SECRET: str = ""
    META_API_VERSION: str = "v21.0"
    META_PAGE_ID: str = ""  # fallback when the campaign connection has no page selected

    # Publishing
    PUBLISH_TIMEOUT_SECONDS: float = 30.0
    MIN_DAILY_BUDGET: float = 1.0

    # Reconciliation
    RECONCILE_TIMEOUT_SECONDS: float = 15.0
    RECONCILE_INTERVAL_SECONDS: int = 300
    RECONCILE_SCHEDULER_ENABLED: bool = False


settings = Settings()
