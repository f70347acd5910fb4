from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "bv_user"
    postgres_password: str = "changeme"
    postgres_db: str = "brand_visibility"
    database_url: str = ""  # full SQLAlchemy URL, overrides the postgres_* fields when set

    @property
    def postgres_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def postgres_url_sync(self) -> str:
        """For Alembic migrations (sync driver)."""
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Auth
    jwt_secret_key: str = "change-this-to-a-random-string"
    jwt_algorithm: str = "HS256"
    cron_secret: str = ""  # bearer token expected on fromCron trigger calls
    manual_report_allowed_emails: str = ""  # comma-separated allow-list for manual report runs

    # Provider API keys
    perplexity_api_key: str = ""
    perplexity_model: str = "sonar"
    google_cse_api_key: str = ""
    google_cse_id: str = ""
    openai_api_key: str = ""
    tavily_api_key: str = ""

    # ChatGPT browser executor (remote service driving the chat UI)
    chatgpt_executor_url: str = ""  # empty = chatgpt pass not scheduled
    chatgpt_executor_token: str = ""
    chatgpt_executor_timeout: int = 180

    # Report pipeline
    report_eligible_plans: str = "starter,pro,enterprise"
    daily_report_hour_utc: int = 6
    prompt_delay_seconds: float = 1.5  # between prompts inside one provider pass
    brand_delay_seconds: float = 5.0  # between brands in the daily run
    url_batch_size: int = 20  # Tavily extract batch size
    url_batch_delay_seconds: float = 1.0
    url_max_retries: int = 3
    manual_report_timeout_seconds: int = 280

    # App
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # CORS
    allowed_origins: str = "*"  # comma-separated, e.g. "https://app.example.com,https://admin.example.com"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable

    @property
    def manual_allowed_emails(self) -> set[str]:
        return {e.strip().lower() for e in self.manual_report_allowed_emails.split(",") if e.strip()}

    @property
    def eligible_plans(self) -> list[str]:
        return [p.strip() for p in self.report_eligible_plans.split(",") if p.strip()]


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on startup in non-test environments."""
    if settings.app_env != "production":
        return

    errors: list[str] = []

    if settings.jwt_secret_key in ("change-this-to-a-random-string", ""):
        errors.append("JWT_SECRET_KEY must be set to a secure random value")

    if len(settings.jwt_secret_key) < 32:
        errors.append("JWT_SECRET_KEY must be at least 32 characters")

    if not settings.cron_secret:
        errors.append("CRON_SECRET must be set so scheduled triggers can authenticate")

    if not settings.perplexity_api_key:
        errors.append("PERPLEXITY_API_KEY must be set (perplexity is the primary report provider)")

    if settings.allowed_origins == "*":
        errors.append("ALLOWED_ORIGINS must not be '*' in production")
    if settings.app_debug:
        errors.append("APP_DEBUG must be false in production")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))
