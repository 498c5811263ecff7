"""
Application configuration using environment variables.
"""
import os
from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "MapTo API"
    debug: bool = False
    environment: str = "development"

    # Post store: memory, json or sql
    store_backend: str = "memory"
    data_file: str = "./data/posts.json"
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./mapto.db")

    # Posts
    post_ttl_hours: int = 24
    default_radius_meters: float = 5000.0
    purge_interval_seconds: int = 5 * 60

    # Requests
    max_body_bytes: int = 10 * 1024
    post_rate_limit: str = "30/minute"

    # Client application entry document (SPA fallback)
    static_dir: Optional[str] = "./public"

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    class Config:
        env_prefix = "MAPTO_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def post_ttl_ms(self) -> int:
        return self.post_ttl_hours * 60 * 60 * 1000


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
