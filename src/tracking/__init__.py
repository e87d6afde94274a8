"""
Tracking module.

Records study session start/end events as interactions.
"""

from src.tracking.tracker import SessionTracker, MIN_SESSION_ID_LENGTH

__all__ = [
    "SessionTracker",
    "MIN_SESSION_ID_LENGTH",
]
