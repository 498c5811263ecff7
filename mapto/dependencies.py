"""
FastAPI dependencies that hand the app-owned post store to the routes.
"""
from fastapi import Depends, Request

from .geo import GeoPurgeEngine
from .store.base import PostRepository


def get_repository(request: Request) -> PostRepository:
    """The post store created at startup and held on ``app.state``."""
    return request.app.state.repository


def get_geo_engine(repository: PostRepository = Depends(get_repository)) -> GeoPurgeEngine:
    return GeoPurgeEngine(repository)
