"""
Great-circle distance and the purge-then-query path shared by all backends.
"""
import math
from typing import Any, Callable, Dict, List, Optional

from .errors import BackendFailure
from .logging_config import store_logger
from .store.base import Post, PostRepository
from .store.sanitize import now_ms as _now_ms

EARTH_RADIUS_METERS = 6371000.0


def to_radians(value: float) -> float:
    return (value * math.pi) / 180


def distance_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in meters on a sphere of radius 6,371,000 m."""
    d_lat = to_radians(lat2 - lat1)
    d_lng = to_radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) * math.sin(d_lat / 2)
        + math.cos(to_radians(lat1))
        * math.cos(to_radians(lat2))
        * math.sin(d_lng / 2)
        * math.sin(d_lng / 2)
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def within_radius(post: Post, lat: float, lng: float, radius_meters: float) -> bool:
    """True when ``post`` lies at most ``radius_meters`` from (lat, lng).

    Radius validation (strictly positive) is the caller's job.
    """
    return distance_meters(lat, lng, post.lat, post.lng) <= radius_meters


class GeoPurgeEngine:
    """
    Evicts expired posts and answers radius queries on top of any
    PostRepository, so every backend returns the same shape.
    """

    def __init__(self, repository: PostRepository, clock: Optional[Callable[[], int]] = None):
        self.repository = repository
        self.clock = clock or _now_ms

    def purge(self, now_ms: Optional[int] = None) -> int:
        """
        Remove expired posts. Backend failures are logged and reported as
        zero removals; the next request or interval retries.
        """
        now = self.clock() if now_ms is None else now_ms
        try:
            removed = self.repository.purge_expired(now)
        except BackendFailure as e:
            store_logger.warning("Purge failed, will retry", backend=self.repository.name, error_message=str(e))
            return 0
        if removed:
            store_logger.info("Purged expired posts", backend=self.repository.name, removed=removed)
        return removed

    def nearby(self, lat: float, lng: float, radius_meters: float, now_ms: Optional[int] = None) -> List[Dict[str, Any]]:
        """Active posts within the radius, newest first, each with ``ageMs``."""
        now = self.clock() if now_ms is None else now_ms
        posts = [
            p for p in self.repository.list_active(now)
            if within_radius(p, lat, lng, radius_meters)
        ]
        posts.sort(key=lambda p: p.timestamp, reverse=True)
        return [dict(p.to_dict(), ageMs=now - p.timestamp) for p in posts]
