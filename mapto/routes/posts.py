"""
Posts routes: nearby query, creation and likes.

Every handler runs a purge pass before its own operation.
"""
from fastapi import APIRouter, Depends, Request
from typing import List, Optional

from ..config import Settings, get_settings
from ..dependencies import get_geo_engine
from ..errors import BackendFailure, NotFound, ValidationError
from ..geo import GeoPurgeEngine
from ..limiter import limiter
from ..logging_config import api_logger
from ..responses import bad_request, server_error
from ..schemas.posts import LikeResponse, NearbyPostResponse, PostCreate, PostResponse
from ..store.sanitize import finite_float, parse_float

router = APIRouter(prefix="/api/posts", tags=["posts"])


def resolve_radius(raw: Optional[str], default: float) -> float:
    """Missing, non-numeric or zero radius falls back to ``default``."""
    radius = parse_float(raw)
    if radius is None or radius == 0:
        return default
    return radius


@router.get("", response_model=List[NearbyPostResponse])
def list_nearby_posts(
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    radius: Optional[str] = None,
    engine: GeoPurgeEngine = Depends(get_geo_engine),
    settings: Settings = Depends(get_settings),
):
    """Active posts within ``radius`` meters of (lat, lng), newest first."""
    engine.purge()

    lat_num = finite_float(lat)
    lng_num = finite_float(lng)
    radius_meters = resolve_radius(radius, settings.default_radius_meters)

    if lat_num is None or lng_num is None or radius_meters <= 0:
        bad_request("lat, lng, and radius must be valid numbers")

    try:
        return engine.nearby(lat_num, lng_num, radius_meters)
    except BackendFailure:
        server_error("Failed to load posts")


@router.post("", response_model=PostResponse, status_code=201)
@limiter.limit(get_settings().post_rate_limit)
def create_post(
    request: Request,
    post_data: PostCreate,
    engine: GeoPurgeEngine = Depends(get_geo_engine),
):
    """Create a post at (lat, lng) with text and/or mood."""
    engine.purge()

    try:
        post = engine.repository.create(post_data.model_dump())
    except ValidationError as e:
        bad_request(str(e))
    except BackendFailure:
        server_error("Failed to create post")

    api_logger.info("Post created", post_id=post.id, has_mood=post.mood is not None)
    return post.to_dict()


@router.post("/{post_id}/like", response_model=LikeResponse)
def like_post(
    post_id: str,
    engine: GeoPurgeEngine = Depends(get_geo_engine),
):
    """Add one like to a post."""
    engine.purge()

    try:
        result = engine.repository.increment_likes(post_id)
    except BackendFailure:
        server_error("Failed to like post")

    if result is None:
        raise NotFound("Post not found")
    return result.to_dict()
