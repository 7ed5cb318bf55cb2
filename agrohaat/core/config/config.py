from enum import Enum
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class CounterPolicy(str, Enum):
    cumulative = "cumulative"
    reset_on_expiry = "reset_on_expiry"


class Settings(BaseSettings):
    """Application configuration from .env and environment"""

    # Core
    app_name: str = "AgroHaat API"
    version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 2
    debug: bool = False

    # Database
    database_url: str = "sqlite://db.sqlite3"

    # Celery
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    # Token verification (tokens are issued by the identity provider)
    secret_key: str = "change-me"
    algorithm: str = "HS256"

    CORS_ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:8080",
    ]

    # Bid lifecycle rules
    CONFIRMATION_WINDOW_HOURS: int = 6
    SUSPENSION_THRESHOLD: int = 3
    SUSPENSION_DAYS: int = 7
    ABANDONMENT_COUNTER_POLICY: CounterPolicy = CounterPolicy.cumulative

    # Scheduled jobs
    SWEEP_INTERVAL_SECONDS: int = 300
    AUCTION_INTERVAL_SECONDS: int = 300
    AUCTION_AUTO_RESOLVE: bool = True

    # Push delivery
    PUSH_ENABLED: bool = False
    KAFKA_BOOTSTRAP_SERVERS: str = "localhost:9092"
    KAFKA_TOPIC_NOTIFICATIONS: str = "agrohaat.notifications"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
