"""
Sanitization and normalization shared by every post store backend.

All backends go through these functions so a post looks the same no matter
where it is stored:

- text: non-strings become "", trimmed, first 500 code points kept
- mood: non-strings become None, trimmed, first MOOD_MAX_CHARS code points kept
- numbers: parsed the same way regardless of locale ("." decimal separator)
"""
import math
import re
import time
import uuid
from typing import Any, Mapping, Optional

from ..errors import ValidationError
from .base import Post

TEXT_MAX_CHARS = 500
MOOD_MAX_CHARS = 8

# Leading numeric prefix, the way a JSON client or query string spells a float
_FLOAT_PREFIX = re.compile(
    r"^\s*([+-]?(?:inf(?:inity)?(?![a-z])|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))",
    re.IGNORECASE,
)


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def parse_float(value: Any) -> Optional[float]:
    """
    Parse a number the locale-independent way.

    Numbers pass through, strings are read up to the end of their leading
    numeric prefix ("12.5km" -> 12.5). Anything else yields None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            # integers beyond float range
            return math.inf if value > 0 else -math.inf
    if isinstance(value, str):
        match = _FLOAT_PREFIX.match(value)
        if not match:
            return None
        return float(match.group(1))
    return None


def finite_float(value: Any) -> Optional[float]:
    """parse_float, but NaN and +/-inf are treated as missing."""
    number = parse_float(value)
    if number is None or not math.isfinite(number):
        return None
    return number


def _truncate(value: Any, limit: int) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()[:limit]


def sanitize_text(value: Any) -> str:
    return _truncate(value, TEXT_MAX_CHARS)


def sanitize_mood(value: Any) -> Optional[str]:
    return _truncate(value, MOOD_MAX_CHARS) or None


def sanitize_likes(value: Any) -> int:
    likes = finite_float(value)
    if likes is None or likes < 0:
        return 0
    return int(math.floor(likes))


def prepare_post(candidate: Mapping[str, Any], timestamp: Optional[int] = None) -> Post:
    """
    Validate a creation candidate and build the post that will be stored.

    Raises ValidationError when lat/lng are not finite numbers or when both
    text and mood are empty after sanitization. Nothing is written here.
    """
    if not isinstance(candidate, Mapping):
        raise ValidationError("Post body must be an object")

    lat = finite_float(candidate.get("lat"))
    lng = finite_float(candidate.get("lng"))
    if lat is None or lng is None:
        raise ValidationError("lat and lng are required numbers")

    text = sanitize_text(candidate.get("text"))
    mood = sanitize_mood(candidate.get("mood"))
    if not text and not mood:
        raise ValidationError("Either text or mood must be provided")

    if timestamp is None:
        timestamp = candidate.get("timestamp")
    stamp = finite_float(timestamp)
    if stamp is None:
        stamp = float(now_ms())

    post_id = candidate.get("id")
    if not isinstance(post_id, str) or not post_id:
        post_id = str(uuid.uuid4())

    return Post(
        id=post_id,
        lat=lat,
        lng=lng,
        text=text,
        mood=mood,
        timestamp=int(stamp),
        likes=0,
    )


def normalize_record(entry: Any) -> Optional[Post]:
    """
    Normalize a record read back from storage.

    Returns None for records that cannot be represented (not a mapping, or
    non-finite lat/lng/timestamp) so loaders can skip them without crashing.
    The text/mood rule is not re-checked: it only applies at creation.
    """
    if not isinstance(entry, Mapping):
        return None

    lat = finite_float(entry.get("lat"))
    lng = finite_float(entry.get("lng"))
    timestamp = finite_float(entry.get("timestamp"))
    if lat is None or lng is None or timestamp is None:
        return None

    post_id = entry.get("id")
    if not isinstance(post_id, str) or not post_id:
        post_id = str(uuid.uuid4())

    return Post(
        id=post_id,
        lat=lat,
        lng=lng,
        text=sanitize_text(entry.get("text")),
        mood=sanitize_mood(entry.get("mood")),
        timestamp=int(timestamp),
        likes=sanitize_likes(entry.get("likes")),
    )
