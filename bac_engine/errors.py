"""Typed errors raised by the engine.

Validation errors are raised before a session is touched. PersistenceError
wraps store failures; the in-memory session stays authoritative.
"""


class BacError(Exception):
    """Base class for engine errors."""


class InvalidProfile(BacError):
    """Profile cannot be used for a calculation (e.g. non-positive weight)."""


class InvalidEvent(BacError):
    """Drink or food event rejected at ingestion."""


class NotFound(BacError):
    """No event with the given id in the session."""


class SessionClosed(BacError):
    """Transition attempted on an ended session."""


class PersistenceError(BacError):
    """Saving or loading a session failed. Safe to retry."""
