"""
In-memory post store. State lives as long as the owning process.
"""
import threading
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional

from ..errors import ValidationError
from .base import DEFAULT_TTL_MS, DUPLICATE_ID_MESSAGE, LikeResult, Post, PostRepository
from .sanitize import normalize_record, prepare_post


class MemoryPostRepository(PostRepository):
    """Posts kept in a dict keyed by id, guarded by one lock."""

    name = "memory"

    def __init__(self, ttl_ms: int = DEFAULT_TTL_MS, posts: Optional[List[Mapping[str, Any]]] = None):
        super().__init__(ttl_ms)
        self._lock = threading.RLock()
        self._posts: Dict[str, Post] = {}
        for entry in posts or []:
            post = normalize_record(entry)
            if post is not None:
                self._posts[post.id] = post

    def list_active(self, now_ms: int) -> List[Post]:
        with self._lock:
            return [replace(p) for p in self._posts.values() if self.is_active(p, now_ms)]

    def create(self, candidate: Mapping[str, Any]) -> Post:
        post = prepare_post(candidate)
        with self._lock:
            if post.id in self._posts:
                raise ValidationError(DUPLICATE_ID_MESSAGE)
            self._posts[post.id] = post
            return replace(post)

    def increment_likes(self, post_id: str) -> Optional[LikeResult]:
        with self._lock:
            post = self._posts.get(post_id)
            if post is None:
                return None
            post.likes += 1
            return LikeResult(id=post.id, likes=post.likes)

    def purge_expired(self, now_ms: int) -> int:
        with self._lock:
            kept = {pid: p for pid, p in self._posts.items() if self.is_active(p, now_ms)}
            removed = len(self._posts) - len(kept)
            # Swap in one step so readers never see a partial purge
            self._posts = kept
            return removed
