"""
Scoring module.

Turns recent learning sessions into time-decayed per-topic interest weights.
"""

from src.scoring.scorer import (
    TIME_DECAY_FACTOR,
    MAX_INTERESTS_TO_STORE,
    INTERACTION_LOOKBACK,
    SECONDS_PER_POINT,
    PROGRESS_BONUS_THRESHOLD,
    PROGRESS_BONUS_POINTS,
    compute_days_since,
    compute_time_decay,
    compute_interaction_score,
    collect_content_ids,
    build_tag_lookup,
    accumulate_tag_weights,
    merge_with_existing,
    select_top_interests,
    rank_interests,
    compute_interest_map,
    ScoringResult,
)

__all__ = [
    # Constants
    "TIME_DECAY_FACTOR",
    "MAX_INTERESTS_TO_STORE",
    "INTERACTION_LOOKBACK",
    "SECONDS_PER_POINT",
    "PROGRESS_BONUS_THRESHOLD",
    "PROGRESS_BONUS_POINTS",
    # Scoring functions
    "compute_days_since",
    "compute_time_decay",
    "compute_interaction_score",
    "collect_content_ids",
    "build_tag_lookup",
    "accumulate_tag_weights",
    "merge_with_existing",
    "select_top_interests",
    "rank_interests",
    "compute_interest_map",
    "ScoringResult",
]
