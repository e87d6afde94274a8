"""
MongoDB storage backend for Interest Digest.

Implements the Storage interface on top of pymongo.

=============================================================================
COLLECTIONS
=============================================================================

| Collection   | Fields used                                              |
|--------------|----------------------------------------------------------|
| users        | _id, updatedAt, dynamicInterests (tag -> weight),        |
|              | dynamicInterestsVersion, dynamicInterestsUpdatedAt       |
| interactions | userId, contentId, sessionId, eventType ("start"/"end"), |
|              | timestamp, durationSeconds, startProgress, endProgress   |
| contents     | _id, tags                                                |

Ids are stored as ObjectIds by the web clients; string ids that are valid
ObjectIds are converted before querying, anything else is used as-is.

Suggested index: interactions {userId: 1, eventType: 1, timestamp: -1}.
=============================================================================
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo import DESCENDING, MongoClient

from src.config import (
    MONGODB_URI,
    MONGODB_DB_NAME,
    MONGODB_TIMEOUT_MS,
    USERS_COLLECTION,
    INTERACTIONS_COLLECTION,
    CONTENTS_COLLECTION,
)
from src.models.interaction import EVENT_END, Interaction, utc_now
from src.models.interest_profile import InterestProfile
from src.scoring.scorer import INTERACTION_LOOKBACK, build_tag_lookup
from src.storage.base import Storage


INTERESTS_FIELD = "dynamicInterests"
VERSION_FIELD = "dynamicInterestsVersion"
INTERESTS_UPDATED_FIELD = "dynamicInterestsUpdatedAt"

_INTERACTION_PROJECTION = {
    "userId": 1,
    "contentId": 1,
    "eventType": 1,
    "sessionId": 1,
    "timestamp": 1,
    "durationSeconds": 1,
    "startProgress": 1,
    "endProgress": 1,
}


def to_object_id(value: Any) -> Any:
    """Convert a 24-hex-char string to ObjectId; return anything else unchanged."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


class MongoStorage(Storage):
    """
    MongoDB-backed storage implementation.

    Configuration is pulled from environment variables via src.config:
    - MONGODB_URI: connection string
    - MONGODB_DB_NAME: database name
    - *_COLLECTION: collection names

    A pre-built client can be passed in (tests pass a mock). Otherwise the
    client is created on first use. pymongo errors are not caught.
    """

    def __init__(
        self,
        uri: str = None,
        db_name: str = None,
        client: MongoClient = None,
        timeout_ms: int = None,
    ):
        """
        Initialize MongoStorage.

        Args:
            uri: Connection string. Defaults to config.MONGODB_URI.
            db_name: Database name. Defaults to config.MONGODB_DB_NAME.
            client: Existing MongoClient (or compatible object).
            timeout_ms: Server selection timeout. Defaults to config.MONGODB_TIMEOUT_MS.
        """
        # Use provided values, or fall back to config if None (not empty string)
        self.uri = uri if uri is not None else MONGODB_URI
        self.db_name = db_name if db_name is not None else MONGODB_DB_NAME
        self.timeout_ms = timeout_ms if timeout_ms is not None else MONGODB_TIMEOUT_MS

        self._client = client
        self._db = None

    @property
    def name(self) -> str:
        return "mongodb"

    def _validate_config(self) -> None:
        """Validate that required configuration is present."""
        if self._client is None and not self.uri:
            raise ValueError("MONGODB_URI is not configured")
        if not self.db_name:
            raise ValueError("MONGODB_DB_NAME is not configured")

    @property
    def db(self):
        """Database handle, connecting lazily."""
        if self._db is None:
            self._validate_config()
            if self._client is None:
                self._client = MongoClient(
                    self.uri,
                    serverSelectionTimeoutMS=self.timeout_ms,
                    tz_aware=True,
                )
            self._db = self._client[self.db_name]
        return self._db

    @property
    def users(self):
        return self.db[USERS_COLLECTION]

    @property
    def interactions(self):
        return self.db[INTERACTIONS_COLLECTION]

    @property
    def contents(self):
        return self.db[CONTENTS_COLLECTION]

    def close(self) -> None:
        """Close the underlying client if one was opened."""
        if self._client is not None:
            self._client.close()
        self._client = None
        self._db = None

    # =========================================================================
    # Storage Interface Implementation
    # =========================================================================

    def get_recent_interactions(
        self,
        user_id: str,
        limit: int = INTERACTION_LOOKBACK,
    ) -> List[Interaction]:
        """
        Fetch the newest completed sessions for a user.

        Query: {userId, eventType: "end"} sorted by timestamp desc, limited.

        Documents that fail validation (negative duration from clock skew,
        progress out of range, missing timestamp) are skipped so one bad
        record does not block the user's refresh.
        """
        cursor = (
            self.interactions.find(
                {"userId": to_object_id(user_id), "eventType": EVENT_END},
                _INTERACTION_PROJECTION,
            )
            .sort("timestamp", DESCENDING)
            .limit(limit)
        )

        interactions = []
        for doc in cursor:
            try:
                interactions.append(Interaction.from_dict(doc))
            except ValueError as e:
                print(f"[{self.name}] Skipping invalid interaction {doc.get('_id')}: {e}")
        return interactions

    def get_content_tags(self, content_ids: Iterable[str]) -> Dict[str, List[str]]:
        """
        Resolve tags with a single $in query projecting only "tags".
        """
        ids = [to_object_id(cid) for cid in content_ids]
        if not ids:
            return {}

        documents = self.contents.find({"_id": {"$in": ids}}, {"tags": 1})
        return build_tag_lookup(documents)

    def get_interest_profile(self, user_id: str) -> Optional[InterestProfile]:
        """
        Read the stored interest map and its version.
        """
        doc = self.users.find_one(
            {"_id": to_object_id(user_id)},
            {INTERESTS_FIELD: 1, VERSION_FIELD: 1, INTERESTS_UPDATED_FIELD: 1},
        )
        if doc is None:
            return None

        stored = doc.get(INTERESTS_FIELD) or {}
        return InterestProfile(
            user_id=user_id,
            interests={tag: float(weight) for tag, weight in stored.items()},
            version=int(doc.get(VERSION_FIELD) or 0),
            updated_at=doc.get(INTERESTS_UPDATED_FIELD),
        )

    def save_interest_profile(
        self,
        user_id: str,
        interests: Dict[str, float],
        expected_version: int,
    ) -> bool:
        """
        Overwrite the interest map with a conditional update on the version.

        Version 0 also matches documents that never had the field.
        The user's own updatedAt is left alone so the refresh job does not
        mark users as active.
        """
        if expected_version == 0:
            version_filter = {"$in": [0, None]}
        else:
            version_filter = expected_version

        result = self.users.update_one(
            {"_id": to_object_id(user_id), VERSION_FIELD: version_filter},
            {
                "$set": {
                    INTERESTS_FIELD: dict(interests),
                    INTERESTS_UPDATED_FIELD: utc_now(),
                },
                "$inc": {VERSION_FIELD: 1},
            },
        )
        return result.matched_count == 1

    def get_active_user_ids(self, since: datetime) -> List[str]:
        """List users with updatedAt >= since."""
        cursor = self.users.find({"updatedAt": {"$gte": since}}, {"_id": 1})
        return [str(doc["_id"]) for doc in cursor]

    def record_interaction(self, interaction: Interaction) -> Interaction:
        """
        Store a session event.

        Events with a session id are upserted with $setOnInsert so a repeated
        start/end for the same session never creates a duplicate.
        """
        doc = interaction.to_dict()
        doc["userId"] = to_object_id(doc["userId"])
        doc["contentId"] = to_object_id(doc["contentId"])

        if not interaction.session_id:
            inserted = self.interactions.insert_one(doc)
            interaction.id = str(inserted.inserted_id)
            return interaction

        key = {
            "userId": doc["userId"],
            "sessionId": interaction.session_id,
            "eventType": interaction.event_type,
        }
        self.interactions.update_one(key, {"$setOnInsert": doc}, upsert=True)

        stored = self.interactions.find_one(key)
        return Interaction.from_dict(stored) if stored else interaction

    def find_session_event(
        self,
        user_id: str,
        session_id: str,
        event_type: str,
    ) -> Optional[Interaction]:
        doc = self.interactions.find_one({
            "userId": to_object_id(user_id),
            "sessionId": session_id,
            "eventType": event_type,
        })
        return Interaction.from_dict(doc) if doc else None
