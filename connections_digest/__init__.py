"""Open connections digest — periodic per-connector reminder job."""

__version__ = "1.0.0"
