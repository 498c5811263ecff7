from .posts import PostCreate, PostResponse, NearbyPostResponse, LikeResponse

__all__ = [
    "PostCreate",
    "PostResponse",
    "NearbyPostResponse",
    "LikeResponse",
]
