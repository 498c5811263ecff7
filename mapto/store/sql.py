"""
SQL post store backed by SQLAlchemy.

Each mutation is a single statement, so increment and purge atomicity come
from the database engine itself.
"""
from typing import Any, List, Mapping, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..database import Base, make_engine, make_session_factory, session_scope
from ..errors import BackendFailure, ValidationError
from ..logging_config import store_logger
from ..models.post import PostRow
from .base import DEFAULT_TTL_MS, DUPLICATE_ID_MESSAGE, LikeResult, Post, PostRepository
from .sanitize import normalize_record, prepare_post


def row_to_dict(row: PostRow) -> dict:
    return {
        "id": str(row.id) if row.id is not None else None,
        "lat": row.lat,
        "lng": row.lng,
        "text": row.text,
        "mood": row.mood,
        "timestamp": row.timestamp,
        "likes": row.likes,
    }


class SqlPostRepository(PostRepository):
    """Posts stored in the ``posts`` table."""

    name = "sql"

    def __init__(self, engine: Engine, ttl_ms: int = DEFAULT_TTL_MS):
        super().__init__(ttl_ms)
        self.engine = engine
        self._sessions = make_session_factory(engine)
        # Idempotent: only creates the table when it is missing
        Base.metadata.create_all(bind=engine, tables=[PostRow.__table__])

    @classmethod
    def from_url(cls, database_url: str, ttl_ms: int = DEFAULT_TTL_MS) -> "SqlPostRepository":
        return cls(make_engine(database_url), ttl_ms=ttl_ms)

    def list_active(self, now_ms: int) -> List[Post]:
        try:
            with session_scope(self._sessions) as db:
                rows = db.query(PostRow).filter(PostRow.timestamp >= self.cutoff(now_ms)).all()
                records = [row_to_dict(r) for r in rows]
        except SQLAlchemyError as e:
            store_logger.error("Failed to load posts", error=e)
            raise BackendFailure("Failed to load posts") from e

        posts = []
        for record in records:
            post = normalize_record(record)
            if post is not None:
                posts.append(post)
        return posts

    def create(self, candidate: Mapping[str, Any]) -> Post:
        post = prepare_post(candidate)
        try:
            with session_scope(self._sessions) as db:
                db.add(PostRow(**post.to_dict()))
        except IntegrityError as e:
            # primary key is the only constraint an insert can break
            raise ValidationError(DUPLICATE_ID_MESSAGE) from e
        except SQLAlchemyError as e:
            store_logger.error("Failed to insert post", error=e, post_id=post.id)
            raise BackendFailure("Failed to create post") from e
        return post

    def increment_likes(self, post_id: str) -> Optional[LikeResult]:
        try:
            with session_scope(self._sessions) as db:
                updated = (
                    db.query(PostRow)
                    .filter(PostRow.id == post_id)
                    .update({PostRow.likes: PostRow.likes + 1}, synchronize_session=False)
                )
                if not updated:
                    return None
                likes = db.query(PostRow.likes).filter(PostRow.id == post_id).scalar()
        except SQLAlchemyError as e:
            store_logger.error("Failed to like post", error=e, post_id=post_id)
            raise BackendFailure("Failed to like post") from e
        return LikeResult(id=post_id, likes=int(likes))

    def purge_expired(self, now_ms: int) -> int:
        try:
            with session_scope(self._sessions) as db:
                return (
                    db.query(PostRow)
                    .filter(PostRow.timestamp < self.cutoff(now_ms))
                    .delete(synchronize_session=False)
                )
        except SQLAlchemyError as e:
            raise BackendFailure("Failed to purge posts") from e

    def count_active(self, now_ms: int) -> int:
        try:
            with session_scope(self._sessions) as db:
                return db.query(PostRow).filter(PostRow.timestamp >= self.cutoff(now_ms)).count()
        except SQLAlchemyError as e:
            raise BackendFailure("Failed to count posts") from e

    def close(self) -> None:
        self.engine.dispose()
