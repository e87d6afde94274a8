"""
Base storage abstraction for Interest Digest.

Defines the abstract interface that all storage backends must implement.
This allows swapping between MongoDB and the in-memory store used in
development and tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from src.models.interaction import Interaction
from src.models.interest_profile import InterestProfile
from src.scoring.scorer import INTERACTION_LOOKBACK


class Storage(ABC):
    """
    Abstract base class for all storage backends.

    Implementations must provide methods for:
    - Reading a user's recent completed interactions
    - Batch-resolving content tags
    - Reading and conditionally overwriting a user's interest map
    - Listing recently active users
    - Recording session events for the tracker

    Read and write errors are not caught here; they propagate to the caller.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the name of this storage backend.

        Used for logging and debugging.
        """
        pass

    @abstractmethod
    def get_recent_interactions(
        self,
        user_id: str,
        limit: int = INTERACTION_LOOKBACK,
    ) -> List[Interaction]:
        """
        Retrieve a user's most recent completed sessions.

        Only "end" events are returned; they carry duration and progress.

        Args:
            user_id: The user to look up.
            limit: Maximum number of interactions (default 200).

        Returns:
            List of Interaction instances, newest first.
        """
        pass

    @abstractmethod
    def get_content_tags(self, content_ids: Iterable[str]) -> Dict[str, List[str]]:
        """
        Resolve tags for many content items in one lookup.

        Content with no tags, and unknown ids, are absent from the result.

        Args:
            content_ids: Distinct content ids.

        Returns:
            Dict mapping content id -> tags.
        """
        pass

    @abstractmethod
    def get_interest_profile(self, user_id: str) -> Optional[InterestProfile]:
        """
        Retrieve a user's stored interest map.

        Args:
            user_id: The user to look up.

        Returns:
            InterestProfile (possibly with an empty map), or None if the
            user does not exist.
        """
        pass

    @abstractmethod
    def save_interest_profile(
        self,
        user_id: str,
        interests: Dict[str, float],
        expected_version: int,
    ) -> bool:
        """
        Overwrite a user's interest map if nobody else wrote it first.

        The whole map is replaced; the version is incremented and the
        update time stamped.

        Args:
            user_id: The user to update.
            interests: The complete new map.
            expected_version: Version read before computing the map.

        Returns:
            True if written, False if the stored version changed (or the
            user no longer exists).
        """
        pass

    @abstractmethod
    def get_active_user_ids(self, since: datetime) -> List[str]:
        """
        List users whose record was updated at or after `since`.

        Args:
            since: Activity cutoff.

        Returns:
            List of user ids.
        """
        pass

    @abstractmethod
    def record_interaction(self, interaction: Interaction) -> Interaction:
        """
        Persist a session event.

        Must be idempotent per (user_id, session_id, event_type): recording
        the same session event twice keeps the first one.

        Args:
            interaction: The event to store.

        Returns:
            The stored Interaction (the existing one on a repeat).
        """
        pass

    @abstractmethod
    def find_session_event(
        self,
        user_id: str,
        session_id: str,
        event_type: str,
    ) -> Optional[Interaction]:
        """
        Find the event of a given type for a tracked session.

        Returns:
            Interaction if found, None otherwise.
        """
        pass

    def __str__(self) -> str:
        return f"Storage({self.name})"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
