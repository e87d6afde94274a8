"""
Interaction data model for Interest Digest.

Defines the Interaction dataclass representing one logged learning session
event (start or end) for a user and a content item. Interaction records are
append-only: the tracker writes them, the interest scorer only reads them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


EVENT_START = "start"
EVENT_END = "end"
EVENT_TYPES = (EVENT_START, EVENT_END)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to timezone-aware UTC.

    Naive datetimes are assumed to already be in UTC, which is how
    MongoDB hands them back when the client is not tz-aware.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Interaction:
    """
    A single learning session event.

    Attributes:
        user_id: The learner who produced the event.
        content_id: The content item being studied.
        event_type: "start" when the session opened, "end" when it closed.
        timestamp: When the event happened (UTC).
        duration_seconds: Session length, only set on "end" events.
        start_progress: Scroll/progress position (0-100) when the session started.
        end_progress: Scroll/progress position (0-100) when the session ended.
        session_id: Client-generated id pairing a start with its end.
        id: Unique identifier of this record.
    """

    # Required fields
    user_id: str
    content_id: str
    event_type: str

    # Optional fields with defaults
    timestamp: datetime = field(default_factory=utc_now)
    duration_seconds: Optional[float] = None
    start_progress: Optional[float] = None
    end_progress: Optional[float] = None
    session_id: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        self.timestamp = ensure_utc(self.timestamp)
        self.validate()

    def validate(self) -> None:
        """
        Validate that required fields are present and values are in range.

        Raises:
            ValueError: If validation fails.
        """
        errors = []

        if not self.user_id or not str(self.user_id).strip():
            errors.append("user_id is required and cannot be empty")

        if not self.content_id or not str(self.content_id).strip():
            errors.append("content_id is required and cannot be empty")

        if self.event_type not in EVENT_TYPES:
            errors.append(f"event_type must be one of {EVENT_TYPES}, got {self.event_type!r}")

        if self.duration_seconds is not None and self.duration_seconds < 0:
            errors.append(f"duration_seconds cannot be negative, got {self.duration_seconds}")

        for name in ("start_progress", "end_progress"):
            value = getattr(self, name)
            if value is not None and not (0 <= value <= 100):
                errors.append(f"{name} must be between 0 and 100, got {value}")

        if errors:
            raise ValueError(f"Interaction validation failed: {'; '.join(errors)}")

    @property
    def progress_made(self) -> float:
        """Forward progress within the session in percentage points."""
        return (self.end_progress or 0) - (self.start_progress or 0)

    def to_dict(self) -> dict:
        """
        Convert to the document shape stored in the interactions collection.

        Keys are camelCase to match the documents the web clients write.
        Optional fields that are unset are omitted.
        """
        data = {
            "userId": self.user_id,
            "contentId": self.content_id,
            "eventType": self.event_type,
            "timestamp": self.timestamp,
        }
        if self.session_id is not None:
            data["sessionId"] = self.session_id
        if self.duration_seconds is not None:
            data["durationSeconds"] = self.duration_seconds
        if self.start_progress is not None:
            data["startProgress"] = self.start_progress
        if self.end_progress is not None:
            data["endProgress"] = self.end_progress
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Interaction":
        """
        Create an Interaction from a stored document.

        Accepts ObjectId values for ids (they are converted to strings) and
        ISO strings for the timestamp. A stored record must carry its
        timestamp; without it the record's age is unknown.

        Args:
            data: Document with camelCase keys.

        Returns:
            New Interaction instance.

        Raises:
            ValueError: If the timestamp is missing or any field is invalid.
        """
        timestamp = data.get("timestamp")
        if timestamp is None:
            raise ValueError("Interaction validation failed: timestamp is required")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))

        kwargs = {
            "user_id": str(data.get("userId", "")),
            "content_id": str(data.get("contentId", "")),
            "event_type": data.get("eventType", ""),
            "duration_seconds": data.get("durationSeconds"),
            "start_progress": data.get("startProgress"),
            "end_progress": data.get("endProgress"),
            "session_id": data.get("sessionId"),
            "timestamp": timestamp,
        }
        if data.get("_id") is not None:
            kwargs["id"] = str(data["_id"])

        return cls(**kwargs)

    def __str__(self) -> str:
        return f"[{self.event_type}] {self.user_id} -> {self.content_id} at {self.timestamp.isoformat()}"

    def __repr__(self) -> str:
        return (
            f"Interaction(id={self.id!r}, user_id={self.user_id!r}, "
            f"content_id={self.content_id!r}, event_type={self.event_type!r})"
        )
