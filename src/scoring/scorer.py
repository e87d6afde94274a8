"""
Interest scoring logic for Interest Digest.

Provides pure, side-effect-free functions to:
1. Score a single learning session by engagement (time spent + progress)
2. Decay older sessions exponentially by age
3. Accumulate per-tag weights across a user's recent sessions
4. Merge fresh weights with the previously stored interest map
5. Keep only the strongest interests

All functions are deterministic given a fixed `now` and do not mutate input data.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from src.models.interaction import Interaction, ensure_utc, utc_now


# =============================================================================
# Scoring Configuration
# =============================================================================

# Per-day multiplicative decay: 0.98 means an interaction loses 2% per day
TIME_DECAY_FACTOR: float = 0.98

# Cap on the number of tags persisted in a user's interest map
MAX_INTERESTS_TO_STORE: int = 20

# How many of the most recent completed sessions feed one computation
INTERACTION_LOOKBACK: int = 200

# Engagement time worth one point (1 point per 5 minutes)
SECONDS_PER_POINT: float = 300.0

# Progress (percentage points) a session must exceed to earn the bonus
PROGRESS_BONUS_THRESHOLD: float = 10.0
PROGRESS_BONUS_POINTS: float = 2.0

SECONDS_PER_DAY: float = 24 * 60 * 60


# =============================================================================
# Result Data Structures
# =============================================================================

@dataclass
class ScoringResult:
    """
    Result of computing a user's interest map.

    Attributes:
        interests: Final (tag, weight) pairs, descending, at most the cap.
        fresh_weights: Per-tag weights from this run's interactions only.
        interactions_scored: Interactions that contributed weight.
        interactions_skipped: Interactions ignored (no tags or zero score).
        tags_dropped: Tags that fell below the cap and were discarded.
    """
    interests: List[Tuple[str, float]]
    fresh_weights: Dict[str, float] = field(default_factory=dict)
    interactions_scored: int = 0
    interactions_skipped: int = 0
    tags_dropped: List[str] = field(default_factory=list)

    def as_map(self) -> Dict[str, float]:
        """Final interests as a plain dict (insertion order = rank)."""
        return dict(self.interests)


# =============================================================================
# Per-Interaction Scoring
# =============================================================================

def compute_days_since(timestamp: datetime, now: Optional[datetime] = None) -> float:
    """
    Fractional days elapsed between an interaction and `now`.

    Naive datetimes are treated as UTC. Timestamps in the future (clock
    skew between app servers) count as zero days old.

    Args:
        timestamp: When the interaction happened.
        now: Current time (for testing). Defaults to the current UTC time.

    Returns:
        Elapsed days, never negative.
    """
    if now is None:
        now = utc_now()

    elapsed = ensure_utc(now) - ensure_utc(timestamp)
    days = elapsed.total_seconds() / SECONDS_PER_DAY
    return max(days, 0.0)


def compute_time_decay(timestamp: datetime, now: Optional[datetime] = None) -> float:
    """
    Compute the exponential time decay for an interaction.

    Formula:
        decay = TIME_DECAY_FACTOR ** days_since_interaction

    A session from today is worth ~1.0, one from a week ago ~0.87,
    one from a month ago ~0.55.

    Args:
        timestamp: When the interaction happened.
        now: Current time (for testing).

    Returns:
        Decay multiplier in (0.0, 1.0].
    """
    return TIME_DECAY_FACTOR ** compute_days_since(timestamp, now)


def compute_interaction_score(interaction: Interaction) -> float:
    """
    Compute the raw (undecayed) engagement score of one session.

    Formula:
    - Base: duration_seconds / 300 (1 point per 5 minutes)
    - Bonus: +2 if end_progress - start_progress > 10

    Rationale:
    - Time spent shows attention, but idle tabs also accumulate time
    - The flat progress bonus rewards sessions that actually moved forward

    Missing duration or progress values count as 0.

    Args:
        interaction: A completed ("end") interaction.

    Returns:
        Raw score, >= 0.
    """
    score = (interaction.duration_seconds or 0) / SECONDS_PER_POINT

    if interaction.progress_made > PROGRESS_BONUS_THRESHOLD:
        score += PROGRESS_BONUS_POINTS

    return score


# =============================================================================
# Tag Lookup
# =============================================================================

def collect_content_ids(interactions: Iterable[Interaction]) -> List[str]:
    """
    Collect the distinct content ids referenced by interactions.

    Order follows first appearance so batch lookups are reproducible.
    """
    seen: Dict[str, None] = {}
    for interaction in interactions:
        seen.setdefault(str(interaction.content_id), None)
    return list(seen)


def build_tag_lookup(documents: Iterable[Mapping]) -> Dict[str, List[str]]:
    """
    Index content documents by id, keeping only their tags.

    Documents without tags (missing, None or empty) are left out, so a
    lookup miss means "this content cannot contribute to any interest".

    Args:
        documents: Content documents with "_id" and optional "tags".

    Returns:
        Dict mapping content id (as string) -> list of tags.
    """
    lookup: Dict[str, List[str]] = {}
    for doc in documents:
        tags = doc.get("tags")
        if tags:
            lookup[str(doc["_id"])] = list(tags)
    return lookup


# =============================================================================
# Aggregation
# =============================================================================

def _accumulate(
    interactions: Iterable[Interaction],
    tag_lookup: Mapping[str, List[str]],
    now: datetime,
) -> Tuple[Dict[str, float], int, int]:
    weights: Dict[str, float] = {}
    scored = 0
    skipped = 0

    for interaction in interactions:
        tags = tag_lookup.get(str(interaction.content_id))
        if not tags:
            skipped += 1
            continue

        raw_score = compute_interaction_score(interaction)
        if raw_score <= 0:
            skipped += 1
            continue

        weighted = raw_score * compute_time_decay(interaction.timestamp, now)
        for tag in tags:
            weights[tag] = weights.get(tag, 0.0) + weighted
        scored += 1

    return weights, scored, skipped


def accumulate_tag_weights(
    interactions: Iterable[Interaction],
    tag_lookup: Mapping[str, List[str]],
    now: Optional[datetime] = None,
) -> Dict[str, float]:
    """
    Sum decayed engagement scores per tag.

    Each interaction adds `raw_score * decay` to every tag of its content,
    so one session can strengthen several topics at once. Interactions whose
    content has no tags, or whose raw score is not positive, add nothing.

    Args:
        interactions: Completed interactions, any order.
        tag_lookup: Content id -> tags, as built by build_tag_lookup().
        now: Current time (for testing).

    Returns:
        Dict mapping tag -> accumulated weight.
    """
    if now is None:
        now = utc_now()
    weights, _, _ = _accumulate(interactions, tag_lookup, now)
    return weights


def merge_with_existing(
    fresh_weights: Mapping[str, float],
    existing: Optional[Mapping[str, float]],
) -> Dict[str, float]:
    """
    Merge fresh weights with the previously stored interest map.

    Formula:
        merged[tag] = fresh[tag] + existing[tag] * TIME_DECAY_FACTOR

    The stored map is decayed by a single step per run, regardless of how
    long ago it was written.

    Args:
        fresh_weights: Weights from this run's interactions.
        existing: Stored map (None or empty for new users).

    Returns:
        New dict; neither input is modified.
    """
    merged = dict(fresh_weights)
    for tag, weight in (existing or {}).items():
        merged[tag] = merged.get(tag, 0.0) + weight * TIME_DECAY_FACTOR
    return merged


def select_top_interests(
    weights: Mapping[str, float],
    limit: int = MAX_INTERESTS_TO_STORE,
) -> List[Tuple[str, float]]:
    """
    Keep the highest-weighted tags.

    Sorting is stable: tags with equal weight keep their accumulation order.

    Args:
        weights: Tag -> weight.
        limit: Maximum number of pairs returned.

    Returns:
        (tag, weight) pairs in descending weight order.
    """
    ranked = sorted(weights.items(), key=lambda pair: pair[1], reverse=True)
    return ranked[:limit]


def rank_interests(
    interests: Optional[Mapping[str, float]],
    limit: Optional[int] = None,
) -> List[Tuple[str, float]]:
    """
    Order a stored interest map for display or recommendation matching.

    Storage does not guarantee key order, so consumers sort by weight.
    """
    if not interests:
        return []
    ranked = sorted(interests.items(), key=lambda pair: pair[1], reverse=True)
    return ranked if limit is None else ranked[:limit]


def compute_interest_map(
    interactions: List[Interaction],
    tag_lookup: Mapping[str, List[str]],
    existing: Optional[Mapping[str, float]] = None,
    now: Optional[datetime] = None,
    limit: int = MAX_INTERESTS_TO_STORE,
) -> ScoringResult:
    """
    Compute a user's new interest map.

    This is the main scoring function that combines all steps:
        1. Score and decay each interaction, accumulate per tag
        2. Decay the stored map one step and add it in
        3. Sort descending and keep the top `limit` tags

    This is a pure function - it does not modify any input.

    Args:
        interactions: The user's recent completed interactions.
        tag_lookup: Content id -> tags for the referenced content.
        existing: The user's stored interest map, if any.
        now: Current time for decay (for testing).
        limit: Cap on stored tags.

    Returns:
        ScoringResult with final interests and a breakdown.

    Example:
        >>> result = compute_interest_map(interactions, lookup, {"algebra": 10})
        >>> result.as_map()
        {'algebra': 9.8}
    """
    if now is None:
        now = utc_now()

    fresh, scored, skipped = _accumulate(interactions, tag_lookup, now)
    merged = merge_with_existing(fresh, existing)
    top = select_top_interests(merged, limit)

    kept = {tag for tag, _ in top}
    dropped = [tag for tag in merged if tag not in kept]

    return ScoringResult(
        interests=top,
        fresh_weights=fresh,
        interactions_scored=scored,
        interactions_skipped=skipped,
        tags_dropped=dropped,
    )
