"""Live tracking services."""

from .session import LiveTrackingSession, SessionState

__all__ = ["LiveTrackingSession", "SessionState"]
