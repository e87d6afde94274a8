#!/usr/bin/env python3
"""
Interest Digest - Dynamic interest refresh for learners.

Command-line entry point for the interest refresh job:
  - Select users active recently (or given explicitly)
  - Score their recent study sessions into per-topic weights
  - Merge with the decayed stored interests and keep the top 20
  - Store results to MongoDB (or the in-memory store in dev)
  - Print execution summary

Usage:
    python main.py                          # Refresh users active in the last 24h
    python main.py --user 64f0c2...         # Refresh one user
    python main.py --dry-run --verbose      # Compute only, no writes
    python main.py --show-interests 64f0... # Print a user's stored interests

Examples:
    # Scheduled run (e.g. nightly cron)
    python main.py --active-since-hours 24 --quiet

    # Debug a single learner
    python main.py --user 64f0c2a1b2c3d4e5f6a7b8c9 --dry-run -v
"""

import argparse
import sys

from src.pipeline import (
    InterestRefreshPipeline,
    PipelineConfig,
    PipelineResult,
)
from src.scoring import rank_interests
from src.storage import MongoStorage
from src.config import (
    ACTIVE_USER_WINDOW_HOURS,
    print_config_summary,
    validate_config,
)


def positive_int(value: str) -> int:
    """argparse type for integers >= 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="interest-digest",
        description="Recompute learners' dynamic topic interests from recent study sessions.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                             Refresh users active in the last 24h
  %(prog)s --active-since-hours 72     Widen the activity window
  %(prog)s --user ID --user ID2        Refresh specific users
  %(prog)s --dry-run                   Compute only, skip writes
  %(prog)s --show-interests ID         Show a user's stored interests
  %(prog)s -v --dry-run --user ID      Verbose dry-run for one user
        """,
    )

    # Core options
    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Compute interests but skip storage (no writes)",
    )

    parser.add_argument(
        "--user", "-u",
        action="append",
        metavar="USER_ID",
        help="Refresh this user (repeatable; default: recently active users)",
    )

    parser.add_argument(
        "--active-since-hours", "-a",
        type=positive_int,
        default=None,
        metavar="N",
        help=f"Refresh users active within N hours (default: {ACTIVE_USER_WINDOW_HOURS})",
    )

    # Output options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed progress and debug info",
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only show errors and final summary",
    )

    # Info options
    parser.add_argument(
        "--show-interests",
        metavar="USER_ID",
        help="Print a user's stored interests and exit",
    )

    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration and exit",
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0",
    )

    return parser


def show_config() -> None:
    """Display current configuration."""
    print("=" * 60)
    print("Interest Digest Configuration")
    print("=" * 60)
    print_config_summary()

    errors = validate_config()
    if errors:
        print("\nConfiguration warnings:")
        for error in errors:
            print(f"  ⚠️  {error}")
    else:
        print("\n✓ Configuration valid")
    print("=" * 60)


def show_interests(user_id: str, pipeline: InterestRefreshPipeline) -> int:
    """Print a user's stored interests, strongest first."""
    storage = pipeline.get_storage()
    try:
        profile = storage.get_interest_profile(user_id)
    finally:
        if isinstance(storage, MongoStorage):
            storage.close()

    if profile is None:
        print(f"User {user_id} not found")
        return 1

    ranked = rank_interests(profile.interests)
    print(f"Interests for {user_id} ({len(ranked)} tags, version {profile.version}):")
    if not ranked:
        print("  (none)")
    for position, (tag, weight) in enumerate(ranked, start=1):
        print(f"  {position:>2}. {tag:<30} {weight:8.3f}")
    return 0


def print_result_summary(result: PipelineResult, verbose: bool = False) -> None:
    """Print the pipeline result summary."""
    print(result.to_summary())

    if verbose:
        for user_result in result.user_results:
            if user_result.interests:
                tags = ", ".join(tag for tag, _ in user_result.interests[:5])
                print(f"  {user_result.user_id}: {tags}")


def main(argv: list = None) -> int:
    """
    Main entry point.

    Args:
        argv: Command-line arguments (default: sys.argv[1:]).

    Returns:
        Exit code (0 = success, 1 = error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Handle --show-config
    if args.show_config:
        show_config()
        return 0

    config = PipelineConfig.from_args(args)
    pipeline = InterestRefreshPipeline(config)

    if args.show_interests:
        try:
            return show_interests(args.show_interests, pipeline)
        except Exception as e:
            print(f"\n❌ Could not read interests: {e}")
            return 1

    # Print header (unless quiet)
    if not args.quiet:
        print("=" * 60)
        print("Interest Digest Refresh")
        print("=" * 60)

        if args.dry_run:
            print("Mode: DRY RUN (no storage writes)")

        if args.verbose:
            print("\nConfiguration:")
            print_config_summary()
            print()

        print(f"Settings:")
        print(f"  Users: {', '.join(config.user_ids) if config.user_ids else 'recently active'}")
        print(f"  Active window: {config.active_window_hours}h")
        print(f"  Dry run: {config.dry_run}")
        print()

    # Run the pipeline
    try:
        result = pipeline.run()

        # Print summary
        if not args.quiet:
            print_result_summary(result, args.verbose)

        if result.errors:
            if args.quiet:
                print(result.errors[0])
            return 1

        if result.users_failed > 0:
            print(f"\n⚠️  {result.users_failed} users failed to update")
            return 1

        return 0

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130
    except Exception as e:
        print(f"\n❌ Pipeline error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
