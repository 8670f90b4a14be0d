import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./judgeboard.db")

    # Redis configuration (leaderboard cache + score change notifications)
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://redis:6379/0")

    # Celery configuration
    CELERY_BROKER_URL: str = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/1")
    CELERY_RESULT_BACKEND: str = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/1")

    # Realtime leaderboard: bursts of score writes inside this window
    # collapse into a single recomputation
    LEADERBOARD_DEBOUNCE_MS: int = int(os.getenv("LEADERBOARD_DEBOUNCE_MS", "250"))

    # Redis sorted-set cache of the last snapshot per event
    LEADERBOARD_CACHE_TTL_SECONDS: int = int(os.getenv("LEADERBOARD_CACHE_TTL_SECONDS", str(30 * 24 * 60 * 60)))

    # Persisted leaderboard snapshots older than this are pruned
    SNAPSHOT_RETENTION_DAYS: int = int(os.getenv("SNAPSHOT_RETENTION_DAYS", "180"))

    # Display fallbacks for names the lookups cannot resolve
    UNKNOWN_TEAM_NAME: str = os.getenv("UNKNOWN_TEAM_NAME", "Unknown Team")
    UNKNOWN_EVENT_NAME: str = os.getenv("UNKNOWN_EVENT_NAME", "Unknown Event")

    # Structured logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "api")

    # Comma separated; "*" allows any origin
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    class Config:
        # Let BaseSettings read from project .env if present (local dev).
        env_file = ".env"


settings = Settings()
