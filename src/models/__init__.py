"""
Data models module.

Defines data structures for interactions and interest profiles.
"""

from src.models.interaction import (
    Interaction,
    EVENT_START,
    EVENT_END,
    EVENT_TYPES,
    utc_now,
    ensure_utc,
)
from src.models.interest_profile import InterestProfile

__all__ = [
    "Interaction",
    "InterestProfile",
    "EVENT_START",
    "EVENT_END",
    "EVENT_TYPES",
    "utc_now",
    "ensure_utc",
]
