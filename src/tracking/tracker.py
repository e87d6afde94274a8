"""
Session tracker.

Turns the client's start/end events into interaction records. The "end"
record is the one the interest scorer reads: it carries the session
duration and the progress positions at both ends of the session.
"""

from datetime import datetime
from typing import Callable, Optional

from bson import ObjectId

from src.models.interaction import EVENT_END, EVENT_START, Interaction, ensure_utc, utc_now
from src.storage.base import Storage


MIN_SESSION_ID_LENGTH = 10


class SessionTracker:
    """
    Records study sessions for a storage backend.

    Both calls are idempotent per session: repeating a start or an end
    (page reloads, retried beacons) keeps the first record.
    """

    def __init__(self, storage: Storage, clock: Callable[[], datetime] = None):
        self.storage = storage
        self._clock = clock or utc_now

    @staticmethod
    def _validate(session_id: str, position: Optional[float]) -> None:
        errors = []
        if not session_id or len(session_id) < MIN_SESSION_ID_LENGTH:
            errors.append(f"session_id must be at least {MIN_SESSION_ID_LENGTH} characters")
        if position is not None and not (0 <= position <= 100):
            errors.append(f"position must be between 0 and 100, got {position}")
        if errors:
            raise ValueError("; ".join(errors))

    def start_session(
        self,
        user_id: str,
        content_id: str,
        session_id: str,
        position: Optional[float] = None,
    ) -> Interaction:
        """
        Record the start of a session.

        Args:
            user_id: The learner.
            content_id: The content being opened (ObjectId hex string).
            session_id: Client-generated session id.
            position: Progress position (0-100) when the session opened.

        Returns:
            The stored start Interaction.
        """
        self._validate(session_id, position)
        if not ObjectId.is_valid(content_id):
            raise ValueError(f"content_id must be a valid ObjectId, got {content_id!r}")

        event = Interaction(
            user_id=user_id,
            content_id=content_id,
            event_type=EVENT_START,
            timestamp=self._clock(),
            start_progress=position,
            session_id=session_id,
        )
        return self.storage.record_interaction(event)

    def end_session(
        self,
        user_id: str,
        session_id: str,
        position: Optional[float] = None,
    ) -> Optional[Interaction]:
        """
        Record the end of a session.

        Duration is the whole seconds elapsed since the matching start event;
        the start position carries over and `position` becomes the end progress.

        Returns:
            The stored end Interaction, or None if no start was recorded
            for this session (nothing is written).
        """
        self._validate(session_id, position)

        start = self.storage.find_session_event(user_id, session_id, EVENT_START)
        if start is None:
            return None

        now = ensure_utc(self._clock())
        duration = max(round((now - start.timestamp).total_seconds()), 0)

        event = Interaction(
            user_id=user_id,
            content_id=start.content_id,
            event_type=EVENT_END,
            timestamp=now,
            duration_seconds=duration,
            start_progress=start.start_progress,
            end_progress=position,
            session_id=session_id,
        )
        return self.storage.record_interaction(event)
