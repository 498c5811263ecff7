"""
Domain errors shared by the post store, the HTTP layer and the reminder engine.
"""


class MaptoError(Exception):
    """Base class for MapTo domain errors."""


class ValidationError(MaptoError):
    """Malformed or missing required input. Never retried."""


class NotFound(MaptoError):
    """The operation targets an entity that does not exist."""


class BackendFailure(MaptoError):
    """Storage I/O or connectivity failure."""


class CapabilityUnavailable(MaptoError):
    """The runtime lacks deferred-notification support.

    Not a user-facing error: raising it selects the timer fallback.
    """
