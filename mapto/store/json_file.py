"""
JSON file post store.

The whole store is one JSON array of post records. It is read fully on
startup and rewritten fully after every mutation (create, like, purge).
"""
import json
import os
import tempfile
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ..errors import BackendFailure, ValidationError
from ..logging_config import store_logger
from .base import DEFAULT_TTL_MS, DUPLICATE_ID_MESSAGE, LikeResult, Post, PostRepository
from .sanitize import normalize_record, prepare_post


class JsonFilePostRepository(PostRepository):
    """Posts mirrored in memory and snapshotted to a JSON file."""

    name = "json"

    def __init__(self, path: Path, ttl_ms: int = DEFAULT_TTL_MS):
        super().__init__(ttl_ms)
        self.path = Path(path)
        self._lock = threading.RLock()
        self._posts: Dict[str, Post] = self._load()

    # ============================================================
    # SNAPSHOT I/O
    # ============================================================

    def _load(self) -> Dict[str, Post]:
        """Read the snapshot. Missing, malformed or non-array files load as empty."""
        if not self.path.exists():
            return {}

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            store_logger.warning(
                "Could not read post snapshot, starting empty",
                path=str(self.path),
                error_message=str(e),
            )
            return {}

        if not isinstance(raw, list):
            store_logger.warning("Post snapshot is not an array, starting empty", path=str(self.path))
            return {}

        posts = {}
        skipped = 0
        for entry in raw:
            post = normalize_record(entry)
            if post is None:
                skipped += 1
                continue
            posts[post.id] = post

        store_logger.info("Loaded post snapshot", path=str(self.path), posts=len(posts), skipped=skipped)
        return posts

    def _write(self) -> None:
        """Rewrite the snapshot atomically (temp file + rename)."""
        records = [p.to_dict() for p in self._posts.values()]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(records, fh, ensure_ascii=False)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            store_logger.error("Failed to write post snapshot", error=e, path=str(self.path))
            raise BackendFailure(f"Failed to write {self.path}") from e

    # ============================================================
    # REPOSITORY
    # ============================================================

    def list_active(self, now_ms: int) -> List[Post]:
        with self._lock:
            return [replace(p) for p in self._posts.values() if self.is_active(p, now_ms)]

    def create(self, candidate: Mapping[str, Any]) -> Post:
        post = prepare_post(candidate)
        with self._lock:
            if post.id in self._posts:
                raise ValidationError(DUPLICATE_ID_MESSAGE)
            self._posts[post.id] = post
            try:
                self._write()
            except BackendFailure:
                del self._posts[post.id]
                raise
            return replace(post)

    def increment_likes(self, post_id: str) -> Optional[LikeResult]:
        with self._lock:
            post = self._posts.get(post_id)
            if post is None:
                return None
            post.likes += 1
            try:
                self._write()
            except BackendFailure:
                post.likes -= 1
                raise
            return LikeResult(id=post.id, likes=post.likes)

    def purge_expired(self, now_ms: int) -> int:
        with self._lock:
            kept = {pid: p for pid, p in self._posts.items() if self.is_active(p, now_ms)}
            removed = len(self._posts) - len(kept)
            if removed == 0:
                return 0
            previous = self._posts
            self._posts = kept
            try:
                self._write()
            except BackendFailure:
                self._posts = previous
                raise
            return removed
