"""
Interest profile model.

A user's "dynamic interests": topic tag -> accumulated weight, plus the
version counter used for conditional writes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple


@dataclass
class InterestProfile:
    """
    Stored interest map for one user.

    Attributes:
        user_id: Owner of the profile.
        interests: Mapping of tag -> weight. Empty for users never scored.
        version: Incremented on every write; 0 when never written.
        updated_at: When the map was last written, None if never.
    """
    user_id: str
    interests: Dict[str, float] = field(default_factory=dict)
    version: int = 0
    updated_at: Optional[datetime] = None

    def ranked(self, limit: Optional[int] = None) -> List[Tuple[str, float]]:
        """Return (tag, weight) pairs by descending weight."""
        pairs = sorted(self.interests.items(), key=lambda pair: pair[1], reverse=True)
        if limit is not None:
            return pairs[:limit]
        return pairs

    def top_tags(self, limit: int = 5) -> List[str]:
        """Return the names of the highest-weighted tags."""
        return [tag for tag, _ in self.ranked(limit)]

    def __len__(self) -> int:
        return len(self.interests)

    def __str__(self) -> str:
        return f"InterestProfile({self.user_id}: {len(self.interests)} tags, v{self.version})"
