"""
Interest Digest Pipeline - Core execution logic.

This module recomputes users' dynamic interests:

    Interactions → Tag lookup → Scoring → Conditional write → Summary

Per user (update_user_interests):
1. Fetch the most recent 200 completed sessions
2. Batch-resolve tags for the distinct content ids
3. Load the stored interest map (missing user = silent no-op)
4. Score, decay, merge with the decayed stored map, keep the top 20
5. Overwrite the stored map with a version-checked write

Batch (InterestRefreshPipeline):
1. Select users active in the last N hours (or an explicit list)
2. Update each user sequentially
3. Isolate per-user failures and report a summary

Design principles:
- Error isolation: one user failing doesn't stop the batch
- No partial writes: the only write is the final full overwrite
- Dry-run support: compute without writing (`--dry-run`)
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
import traceback

from src.models.interaction import utc_now
from src.scoring import (
    INTERACTION_LOOKBACK,
    collect_content_ids,
    compute_interest_map,
)
from src.storage.base import Storage
from src.storage import InMemoryStorage, MongoStorage
from src.config import (
    MONGODB_URI,
    ACTIVE_USER_WINDOW_HOURS,
    INTEREST_UPDATE_MAX_ATTEMPTS,
)


STATUS_UPDATED = "updated"
STATUS_DRY_RUN = "dry_run"
STATUS_SKIPPED_NO_USER = "skipped_no_user"
STATUS_SKIPPED_NO_INTERACTIONS = "skipped_no_interactions"
STATUS_FAILED = "failed"


class InterestUpdateConflict(Exception):
    """Raised when another writer kept winning the conditional update."""

    def __init__(self, user_id: str, attempts: int):
        self.user_id = user_id
        self.attempts = attempts
        super().__init__(
            f"Interest map for user {user_id} changed concurrently {attempts} times; giving up"
        )


# =============================================================================
# Result Data Structures
# =============================================================================

@dataclass
class UpdateResult:
    """Outcome of recomputing one user's interests."""
    user_id: str
    status: str
    interests: List[Tuple[str, float]] = field(default_factory=list)
    interactions_considered: int = 0
    attempts: int = 0
    error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def written(self) -> bool:
        """True if the interest map was persisted."""
        return self.status == STATUS_UPDATED

    @property
    def skipped(self) -> bool:
        return self.status in (STATUS_SKIPPED_NO_USER, STATUS_SKIPPED_NO_INTERACTIONS)

    @property
    def failed(self) -> bool:
        return self.status == STATUS_FAILED


@dataclass
class PipelineResult:
    """Complete result of a batch refresh."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    dry_run: bool = False
    storage_name: str = ""

    user_results: List[UpdateResult] = field(default_factory=list)

    # Errors that aborted the run (user selection, storage setup)
    errors: List[str] = field(default_factory=list)

    @property
    def users_processed(self) -> int:
        return len(self.user_results)

    @property
    def users_updated(self) -> int:
        return sum(1 for r in self.user_results if r.status in (STATUS_UPDATED, STATUS_DRY_RUN))

    @property
    def users_skipped(self) -> int:
        return sum(1 for r in self.user_results if r.skipped)

    @property
    def users_failed(self) -> int:
        return sum(1 for r in self.user_results if r.failed)

    @property
    def duration_seconds(self) -> float:
        """Total pipeline duration in seconds."""
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    @property
    def succeeded(self) -> bool:
        return not self.errors and self.users_failed == 0

    def to_summary(self) -> str:
        """Generate a human-readable summary."""
        lines = [
            "=" * 60,
            "INTEREST REFRESH SUMMARY",
            "=" * 60,
            f"Started:  {self.started_at.strftime('%Y-%m-%d %H:%M:%S')}",
            f"Duration: {self.duration_seconds:.2f}s",
            f"Mode:     {'DRY RUN' if self.dry_run else 'LIVE'}",
            f"Storage:  {self.storage_name or '(none)'}",
            "",
            f"Users processed: {self.users_processed}",
            f"  {'Computed' if self.dry_run else 'Updated'}: {self.users_updated}",
            f"  Skipped: {self.users_skipped}",
            f"  Failed:  {self.users_failed}",
        ]

        failures = [r for r in self.user_results if r.failed]
        if failures:
            lines.extend(["", "Failed users:"])
            for r in failures[:5]:  # Show first 5
                lines.append(f"  ✗ {r.user_id}: {r.error}")

        if self.errors:
            lines.extend(["", "Errors:"])
            for error in self.errors[:5]:
                lines.append(f"  - {error}")

        lines.append("=" * 60)
        return "\n".join(lines)


# =============================================================================
# Single-User Update
# =============================================================================

def update_user_interests(
    user_id: str,
    storage: Storage,
    now: Optional[datetime] = None,
    dry_run: bool = False,
    max_attempts: int = INTEREST_UPDATE_MAX_ATTEMPTS,
    verbose: bool = False,
) -> UpdateResult:
    """
    Recompute and persist one user's dynamic interests.

    A missing user and a user without completed sessions are both no-ops,
    reported through the result status. Storage errors propagate.

    If the stored map changes between read and write (another run for the
    same user), the map is re-read and recomputed, up to `max_attempts` times.

    Args:
        user_id: The user to update.
        storage: Backend to read from and write to.
        now: Current time for decay (for testing).
        dry_run: Compute but do not write.
        max_attempts: Conditional write attempts before giving up.
        verbose: Print progress.

    Returns:
        UpdateResult describing what happened.

    Raises:
        InterestUpdateConflict: If every write attempt lost a race.
    """
    if now is None:
        now = utc_now()

    interactions = storage.get_recent_interactions(user_id, limit=INTERACTION_LOOKBACK)
    if not interactions:
        if verbose:
            print(f"[interests] No new interactions for user {user_id}. Skipping.")
        return UpdateResult(user_id=user_id, status=STATUS_SKIPPED_NO_INTERACTIONS)

    tag_lookup = storage.get_content_tags(collect_content_ids(interactions))

    attempt = 0
    while attempt < max_attempts:
        attempt += 1

        profile = storage.get_interest_profile(user_id)
        if profile is None:
            if verbose:
                print(f"[interests] User {user_id} not found. Skipping.")
            return UpdateResult(
                user_id=user_id,
                status=STATUS_SKIPPED_NO_USER,
                interactions_considered=len(interactions),
                attempts=attempt,
            )

        scoring = compute_interest_map(interactions, tag_lookup, profile.interests, now)

        if dry_run:
            return UpdateResult(
                user_id=user_id,
                status=STATUS_DRY_RUN,
                interests=scoring.interests,
                interactions_considered=len(interactions),
                attempts=attempt,
            )

        if storage.save_interest_profile(user_id, scoring.as_map(), profile.version):
            if verbose:
                print(
                    f"[interests] Updated user {user_id}: {len(scoring.interests)} tags "
                    f"from {scoring.interactions_scored} sessions"
                )
            return UpdateResult(
                user_id=user_id,
                status=STATUS_UPDATED,
                interests=scoring.interests,
                interactions_considered=len(interactions),
                attempts=attempt,
            )

        if verbose:
            print(f"[interests] Concurrent update for user {user_id}, retrying ({attempt}/{max_attempts})")

    raise InterestUpdateConflict(user_id, attempt)


# =============================================================================
# Pipeline Configuration
# =============================================================================

@dataclass
class PipelineConfig:
    """
    Configuration for a batch refresh.

    CLI arguments override config file defaults.
    """
    # Explicit users to refresh (None = users active within the window)
    user_ids: Optional[List[str]] = None
    active_window_hours: int = ACTIVE_USER_WINDOW_HOURS
    dry_run: bool = False
    verbose: bool = False
    max_attempts: int = INTEREST_UPDATE_MAX_ATTEMPTS

    @classmethod
    def from_args(cls, args) -> "PipelineConfig":
        """Create config from argparse namespace."""
        return cls(
            user_ids=args.user if hasattr(args, 'user') and args.user else None,
            active_window_hours=args.active_since_hours if getattr(args, 'active_since_hours', None) is not None else ACTIVE_USER_WINDOW_HOURS,
            dry_run=args.dry_run if hasattr(args, 'dry_run') else False,
            verbose=args.verbose if hasattr(args, 'verbose') else False,
        )


# =============================================================================
# Pipeline Class
# =============================================================================

class InterestRefreshPipeline:
    """
    Batch job that refreshes dynamic interests for many users.

    Usage:
        config = PipelineConfig(active_window_hours=24, dry_run=True)
        pipeline = InterestRefreshPipeline(config)
        result = pipeline.run()
        print(result.to_summary())

    Users are processed one at a time so the database is not flooded.
    """

    def __init__(self, config: PipelineConfig = None, storage: Storage = None):
        """
        Initialize the pipeline.

        Args:
            config: Pipeline configuration. Defaults to PipelineConfig().
            storage: Backend to use. Defaults to MongoDB when configured,
                otherwise the in-memory store.
        """
        self.config = config or PipelineConfig()
        self._storage = storage

    def get_storage(self) -> Storage:
        """Get the configured storage backend."""
        if self._storage is not None:
            return self._storage
        if MONGODB_URI:
            return MongoStorage()
        return InMemoryStorage()

    def _select_users(self, storage: Storage, now: datetime) -> List[str]:
        """Explicit user ids, or users active within the configured window."""
        if self.config.user_ids:
            return list(dict.fromkeys(self.config.user_ids))

        since = now - timedelta(hours=self.config.active_window_hours)
        return storage.get_active_user_ids(since)

    def _update_user(self, storage: Storage, user_id: str, now: datetime) -> UpdateResult:
        """
        Update a single user with error isolation.

        Returns:
            UpdateResult; failures carry the error instead of raising.
        """
        start_time = datetime.now()

        try:
            result = update_user_interests(
                user_id,
                storage,
                now=now,
                dry_run=self.config.dry_run,
                max_attempts=self.config.max_attempts,
                verbose=self.config.verbose,
            )
        except Exception as e:
            error_msg = f"{type(e).__name__}: {str(e)}"

            if self.config.verbose:
                print(f"[interests] Failed to update user {user_id}: {error_msg}")
                error_msg += f"\n{traceback.format_exc()}"

            result = UpdateResult(user_id=user_id, status=STATUS_FAILED, error=error_msg)

        result.duration_ms = (datetime.now() - start_time).total_seconds() * 1000
        return result

    def run(self) -> PipelineResult:
        """
        Execute the batch refresh.

        Returns:
            PipelineResult with execution details.
        """
        now = utc_now()
        result = PipelineResult(started_at=datetime.now(), dry_run=self.config.dry_run)
        storage = None

        try:
            storage = self.get_storage()
            result.storage_name = storage.name

            user_ids = self._select_users(storage, now)
            if self.config.verbose:
                if user_ids:
                    print(f"Found {len(user_ids)} users. Starting interest calculation...")
                else:
                    print("No active users to update.")

            for user_id in user_ids:
                result.user_results.append(self._update_user(storage, user_id, now))

        except Exception as e:
            result.errors.append(f"Pipeline error: {str(e)}")
            if self.config.verbose:
                result.errors.append(traceback.format_exc())

        finally:
            # Only close connections this pipeline opened itself
            if self._storage is None and isinstance(storage, MongoStorage):
                storage.close()

        result.finished_at = datetime.now()
        return result


# =============================================================================
# Convenience Functions
# =============================================================================

def run_pipeline(
    user_ids: List[str] = None,
    active_window_hours: int = None,
    dry_run: bool = False,
    verbose: bool = False,
    storage: Storage = None,
) -> PipelineResult:
    """
    Run the batch refresh with specified options.

    Convenience function for programmatic use (e.g. from a scheduler).

    Args:
        user_ids: Users to refresh (None = recently active users).
        active_window_hours: Activity window (default: config value).
        dry_run: If True, compute without writing.
        verbose: If True, print detailed progress.
        storage: Backend override.

    Returns:
        PipelineResult with execution details.
    """
    config = PipelineConfig(
        user_ids=user_ids,
        active_window_hours=active_window_hours or ACTIVE_USER_WINDOW_HOURS,
        dry_run=dry_run,
        verbose=verbose,
    )

    pipeline = InterestRefreshPipeline(config, storage=storage)
    return pipeline.run()
