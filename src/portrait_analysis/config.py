"""Application configuration."""

import os
import socket

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    telegram_bot_token: str
    supabase_url: str
    supabase_service_key: str
    admin_token: str
    openai_api_key: str
    openai_model: str = "o3"
    openai_summary_model: str = "gpt-4.1-nano"
    openai_reasoning_effort: str = "medium"
    openai_store: bool = True
    redis_url: str = "redis://localhost:6379"
    notification_channel: str = "bot_notifications"
    analysis_stream: str = "photo-analysis"
    analysis_group: str = "analysis-workers"
    analysis_consumer: str = socket.gethostname()
    analysis_claim_idle_ms: int = 600_000
    analysis_claim_interval_seconds: float = 60.0
    job_max_attempts: int = 3
    job_backoff_seconds: float = 2.0
    worker_concurrency: int = 4
    run_worker: bool = True
    run_chat_relay: bool = True
    upload_dir: str = "uploads/photos"
    backgrounds_dir: str = "assets/backgrounds"
    typing_interval_seconds: float = 4.0
    min_analysis_length: int = 1000
    prompt_cache_ttl_seconds: int = 300
    default_analysis_cost: int = 1
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
