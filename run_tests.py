#!/usr/bin/env python3
"""
Test Runner Script for Interest Digest

Runs the test suite with formatted output; the result report is written
to test_results/ by tests/conftest.py.

Usage:
    python run_tests.py                        # Run all tests
    python run_tests.py --category properties  # Run specific category
    python run_tests.py --quick                # Stop on first failure
    python run_tests.py --verbose              # Verbose output
    python run_tests.py --list                 # List available categories
"""

import argparse
import subprocess
import sys
from datetime import datetime
from pathlib import Path

# Test categories mapping
TEST_CATEGORIES = {
    "config": "tests/test_system_config_validation.py",
    "properties": "tests/test_system_interest_properties.py",
    "cli": "tests/test_system_cli_behavior.py",
    "unit_models": "tests/test_models.py",
    "unit_scoring": "tests/test_scoring.py",
    "unit_storage": "tests/test_storage.py",
    "unit_pipeline": "tests/test_pipeline.py",
    "unit_tracker": "tests/test_tracker.py",
}

CATEGORY_DESCRIPTIONS = {
    "config": "Configuration validation - env vars, defaults, error messages",
    "properties": "Interest properties - no-op, cap, decay, bonus, untagged content",
    "cli": "CLI behavior - argument parsing, help text, exit codes",
    "unit_models": "Unit tests - interaction and profile models",
    "unit_scoring": "Unit tests - scoring module",
    "unit_storage": "Unit tests - in-memory and MongoDB storage",
    "unit_pipeline": "Unit tests - single-user update and batch refresh",
    "unit_tracker": "Unit tests - session tracker",
}


def list_categories():
    """Print available test categories."""
    print("\n" + "=" * 60)
    print("AVAILABLE TEST CATEGORIES")
    print("=" * 60)

    print("\n📋 System Tests:")
    for key, desc in CATEGORY_DESCRIPTIONS.items():
        if not key.startswith("unit_"):
            print(f"  {key:15} - {desc}")

    print("\n📋 Unit Tests:")
    for key, desc in CATEGORY_DESCRIPTIONS.items():
        if key.startswith("unit_"):
            print(f"  {key:15} - {desc}")

    print("\n" + "=" * 60)
    print("Usage examples:")
    print("  python run_tests.py --category config")
    print("  python run_tests.py --category properties,cli")
    print("  python run_tests.py  # Run all")
    print("=" * 60)


def run_tests(categories=None, verbose=False, quick=False):
    """Run tests with specified options."""
    cmd = [sys.executable, "-m", "pytest"]

    paths = [TEST_CATEGORIES[c] for c in (categories or []) if c in TEST_CATEGORIES]
    unknown = [c for c in (categories or []) if c not in TEST_CATEGORIES]
    if unknown:
        print(f"Unknown categories ignored: {', '.join(unknown)}")

    cmd.extend(paths or ["tests/"])

    if verbose:
        cmd.append("-v")
    else:
        cmd.append("--tb=short")

    if quick:
        cmd.extend(["-x", "--ff"])  # Stop on first failure, failed first

    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print("\n" + "=" * 60)
    print("INTEREST DIGEST TEST RUNNER")
    print("=" * 60)
    print(f"Started:    {timestamp}")
    print(f"Categories: {', '.join(categories) if categories else 'ALL'}")
    print(f"Options:    {'verbose' if verbose else 'standard'}{', quick' if quick else ''}")
    print("=" * 60 + "\n")

    result = subprocess.run(cmd, cwd=Path(__file__).parent)
    return result.returncode


def main():
    parser = argparse.ArgumentParser(
        description="Run Interest Digest tests with formatted output",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_tests.py                          # Run all tests
  python run_tests.py --category config        # Run config tests only
  python run_tests.py --category cli,properties  # Run multiple categories
  python run_tests.py --quick                  # Stop on first failure
  python run_tests.py --list                   # Show available categories
        """
    )

    parser.add_argument(
        "--category", "-c",
        type=str,
        help="Test category to run (comma-separated for multiple)",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show verbose output",
    )

    parser.add_argument(
        "--quick", "-q",
        action="store_true",
        help="Quick mode - stop on first failure",
    )

    parser.add_argument(
        "--list", "-l",
        action="store_true",
        help="List available test categories",
    )

    args = parser.parse_args()

    if args.list:
        list_categories()
        return 0

    categories = None
    if args.category:
        categories = [c.strip() for c in args.category.split(",")]

    return run_tests(
        categories=categories,
        verbose=args.verbose,
        quick=args.quick,
    )


if __name__ == "__main__":
    sys.exit(main())
