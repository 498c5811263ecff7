"""MapTo: ephemeral geolocated posts and post reminders."""

__version__ = "1.0.0"
