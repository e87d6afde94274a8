"""
In-memory storage backend for Interest Digest.

Use this when MongoDB is not configured or for testing.
Data is stored in memory and lost when the process ends.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from src.models.interaction import EVENT_END, Interaction, ensure_utc, utc_now
from src.models.interest_profile import InterestProfile
from src.scoring.scorer import INTERACTION_LOOKBACK, build_tag_lookup
from src.storage.base import Storage


class InMemoryStorage(Storage):
    """
    Dict-backed storage with the same semantics as MongoStorage.

    Users, contents and interactions live in plain dicts/lists. Helper
    methods (add_user, add_content, add_interaction) seed data directly.
    """

    def __init__(self):
        self._users: Dict[str, dict] = {}
        self._contents: Dict[str, dict] = {}
        self._interactions: List[Interaction] = []

    @property
    def name(self) -> str:
        return "memory"

    # =========================================================================
    # Seeding helpers
    # =========================================================================

    def add_user(
        self,
        user_id: str,
        interests: Optional[Dict[str, float]] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        """Create (or replace) a user record."""
        self._users[user_id] = {
            "dynamicInterests": dict(interests or {}),
            "version": 0,
            "updatedAt": ensure_utc(updated_at) if updated_at else utc_now(),
            "interestsUpdatedAt": None,
        }

    def add_content(self, content_id: str, tags: Optional[List[str]] = None) -> None:
        """Create (or replace) a content item with its tags."""
        self._contents[content_id] = {"_id": content_id, "tags": list(tags) if tags is not None else None}

    def add_interaction(self, interaction: Interaction) -> None:
        """Append an interaction without the per-session idempotency check."""
        self._interactions.append(interaction)

    # =========================================================================
    # Storage Interface Implementation
    # =========================================================================

    def get_recent_interactions(
        self,
        user_id: str,
        limit: int = INTERACTION_LOOKBACK,
    ) -> List[Interaction]:
        """Get the user's newest "end" interactions."""
        completed = [
            i for i in self._interactions
            if i.user_id == user_id and i.event_type == EVENT_END
        ]
        completed.sort(key=lambda i: i.timestamp, reverse=True)
        return completed[:limit]

    def get_content_tags(self, content_ids: Iterable[str]) -> Dict[str, List[str]]:
        """Resolve tags for the requested content ids."""
        documents = [self._contents[cid] for cid in content_ids if cid in self._contents]
        return build_tag_lookup(documents)

    def get_interest_profile(self, user_id: str) -> Optional[InterestProfile]:
        """Get a copy of the stored interest map, or None for unknown users."""
        user = self._users.get(user_id)
        if user is None:
            return None
        return InterestProfile(
            user_id=user_id,
            interests=dict(user["dynamicInterests"]),
            version=user["version"],
            updated_at=user["interestsUpdatedAt"],
        )

    def save_interest_profile(
        self,
        user_id: str,
        interests: Dict[str, float],
        expected_version: int,
    ) -> bool:
        """Replace the map when the version still matches."""
        user = self._users.get(user_id)
        if user is None or user["version"] != expected_version:
            return False

        user["dynamicInterests"] = dict(interests)
        user["version"] = expected_version + 1
        user["interestsUpdatedAt"] = utc_now()
        return True

    def get_active_user_ids(self, since: datetime) -> List[str]:
        """Users whose record changed at or after `since`."""
        since = ensure_utc(since)
        return [uid for uid, user in self._users.items() if user["updatedAt"] >= since]

    def record_interaction(self, interaction: Interaction) -> Interaction:
        """Store a session event once per (user, session, type)."""
        if interaction.session_id:
            existing = self.find_session_event(
                interaction.user_id,
                interaction.session_id,
                interaction.event_type,
            )
            if existing:
                return existing

        self._interactions.append(interaction)
        return interaction

    def find_session_event(
        self,
        user_id: str,
        session_id: str,
        event_type: str,
    ) -> Optional[Interaction]:
        for interaction in self._interactions:
            if (
                interaction.user_id == user_id
                and interaction.session_id == session_id
                and interaction.event_type == event_type
            ):
                return interaction
        return None

    # =========================================================================
    # Test helpers
    # =========================================================================

    def clear(self) -> None:
        """Clear all records (for testing)."""
        self._users.clear()
        self._contents.clear()
        self._interactions.clear()

    def count_interactions(self) -> int:
        """Return number of stored interactions (for testing)."""
        return len(self._interactions)
