"""Application configuration via environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    environment: str = "development"
    debug: bool = False
    service_name: str = "taskflow-service"

    # AWS
    aws_region: str = "us-east-1"

    # CORS
    cors_origins: list[str] = ["*"]

    # Bedrock - Claude Haiku 4.5 with cross-region inference
    bedrock_model_id: str = "us.anthropic.claude-haiku-4-5-20251001-v1:0"
    ai_enabled: bool = True

    # Database
    db_path: Path = Path.home() / ".taskflow" / "taskflow.db"

    # Fernet key for integration credentials at rest
    encryption_key: str = ""

    # Ingestion
    scan_max_items: int = 50
    scheduler_tick_seconds: float = 60.0
    scheduler_enabled: bool = False  # Start pollers inside the API process
    relevance_min_rule_length: int = 10
    rejected_resurface_days: int | None = None  # None = rejected items never come back
    http_timeout_seconds: float = 20.0

    # Default scan cadence per source (minutes)
    email_scan_frequency: int = 60
    chat_scan_frequency: int = 15
    bot_scan_frequency: int = 1

    # Gamification
    xp_per_task: int = 50
    xp_per_level: int = 500

    class Config:
        env_prefix = "TASKFLOW_"
        env_file = ".env"
        case_sensitive = False


settings = Settings()
