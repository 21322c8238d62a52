from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Signal Brief"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database
    database_url: str | None = None
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_auto_create_schema: bool = True

    # Signal providers
    newsdata_api_key: str | None = None
    newsdata_base_url: str = "https://newsdata.io"
    jsearch_api_key: str | None = None
    jsearch_base_url: str = "https://jsearch.p.rapidapi.com"
    jsearch_host: str = "jsearch.p.rapidapi.com"
    builtwith_api_key: str | None = None
    builtwith_base_url: str = "https://api.builtwith.com"
    fetch_timeout_seconds: float = 10.0

    # Signal caps
    news_page_size: int = 10
    news_max_items: int = 8
    jobs_max_items: int = 15
    tech_max_items: int = 15

    # Generative model (OpenAI-compatible chat completions)
    llm_api_key: str | None = None
    llm_base_url: str = "https://api.groq.com/openai/v1"
    llm_model: str = "llama-3.3-70b-versatile"
    llm_temperature: float = 0.8
    llm_max_tokens: int = 2000
    llm_timeout_seconds: float = 45.0

    # HTTP
    cors_origins: list[str] = ["*"]
    allowed_hosts: list[str] = ["*"]

    # Sentry
    sentry_dsn: str | None = None

    # Metrics
    metrics_backend: str = "stdout"
    metrics_namespace: str = "briefs"
    metrics_disable: bool = False
    metrics_sample_rate: float = 1.0
    metrics_statsd_host: str = "127.0.0.1"
    metrics_statsd_port: int = 8125
    metrics_schema_version: str = "briefs.v1"

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
