from pydantic import BaseModel
from typing import Any, Optional


class PostCreate(BaseModel):
    """Raw creation body. Fields are coerced and sanitized by the store."""
    lat: Any = None
    lng: Any = None
    text: Any = None
    mood: Any = None


class PostResponse(BaseModel):
    id: str
    lat: float
    lng: float
    text: str
    mood: Optional[str] = None
    timestamp: int
    likes: int


class NearbyPostResponse(PostResponse):
    ageMs: int


class LikeResponse(BaseModel):
    id: str
    likes: int
