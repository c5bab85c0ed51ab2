from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "doccompare"
    db_username: str = "doccompare"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    # Schema-creation/write access to PostgreSQL. Read once at startup;
    # False selects the in-memory fallback backend.
    db_create_access: bool = False

    max_job_attempts: int = 3
    job_poll_interval_seconds: int = 5
    queue_retry_delay_seconds: int = 60
    default_queue_priority: int = 5

    storage_root: str = "/app/files"

    pdf_engine: str = "pdfplumber"

    comparison_provider: str = "openai"
    openai_api_key: str = ""
    openai_model_name: str = "gpt-4o-mini"
    openai_base_url: str | None = None
    openai_timeout_seconds: int = 30
    openai_temperature: float = 0.0
