"""
Post store backends and the factory that picks one from settings.
"""
from pathlib import Path

from ..config import Settings
from .base import LikeResult, Post, PostRepository
from .json_file import JsonFilePostRepository
from .memory import MemoryPostRepository
from .sql import SqlPostRepository

BACKENDS = ("memory", "json", "sql")


def build_repository(settings: Settings) -> PostRepository:
    """Create the post store configured by ``settings.store_backend``."""
    backend = settings.store_backend.lower()
    ttl_ms = settings.post_ttl_ms

    if backend == "memory":
        return MemoryPostRepository(ttl_ms=ttl_ms)
    if backend == "json":
        return JsonFilePostRepository(Path(settings.data_file), ttl_ms=ttl_ms)
    if backend == "sql":
        return SqlPostRepository.from_url(settings.database_url, ttl_ms=ttl_ms)

    raise ValueError(f"Unknown store backend {settings.store_backend!r}; expected one of {', '.join(BACKENDS)}")


__all__ = [
    "BACKENDS",
    "build_repository",
    "JsonFilePostRepository",
    "LikeResult",
    "MemoryPostRepository",
    "Post",
    "PostRepository",
    "SqlPostRepository",
]
