from .post import PostRow

__all__ = [
    "PostRow",
]
