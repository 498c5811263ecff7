"""
Post record and the repository contract every store backend implements.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Mapping, Optional


DEFAULT_TTL_MS = 24 * 60 * 60 * 1000

DUPLICATE_ID_MESSAGE = "Post id already exists"


@dataclass
class Post:
    """A geolocated micro-post as stored by a backend."""
    id: str
    lat: float
    lng: float
    text: str
    mood: Optional[str]
    timestamp: int
    likes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LikeResult:
    """Post-increment like count for a single post."""
    id: str
    likes: int

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "likes": self.likes}


class PostRepository(ABC):
    """
    Storage contract shared by the memory, JSON file and SQL backends.

    A post is active while ``now_ms - timestamp < ttl_ms``. Everything else
    is expired and is removed by ``purge_expired``.
    """

    name = "abstract"

    def __init__(self, ttl_ms: int = DEFAULT_TTL_MS):
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self.ttl_ms = ttl_ms

    def cutoff(self, now_ms: int) -> int:
        """Oldest timestamp that is still active at ``now_ms``."""
        return now_ms - self.ttl_ms + 1

    def is_active(self, post: Post, now_ms: int) -> bool:
        return post.timestamp >= self.cutoff(now_ms)

    @abstractmethod
    def list_active(self, now_ms: int) -> List[Post]:
        """Return every active post. Order is unspecified."""

    @abstractmethod
    def create(self, candidate: Mapping[str, Any]) -> Post:
        """Sanitize, store and return the canonical stored post.

        Raises ValidationError before anything is written, BackendFailure
        when the write itself fails.
        """

    @abstractmethod
    def increment_likes(self, post_id: str) -> Optional[LikeResult]:
        """Add one like. Returns None when the post does not exist."""

    @abstractmethod
    def purge_expired(self, now_ms: int) -> int:
        """Delete expired posts and return how many were removed."""

    def count_active(self, now_ms: int) -> int:
        return len(self.list_active(now_ms))

    def close(self) -> None:
        """Release backend resources."""
