"""
Pytest Configuration and Fixtures

This module provides:
- Timestamped result file generation
- Shared fixtures for all tests
- Test category markers
"""

import pytest
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Dict, Any

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import test configuration
from tests.test_config import CONFIG, EXPECTED, TEST_DATA, TEST_CATEGORIES


# =============================================================================
# TEST RESULT FILE CONFIGURATION
# =============================================================================

RESULTS_DIR = PROJECT_ROOT / CONFIG["test_output_dir"]


def get_result_filename() -> str:
    """Generate timestamped result filename."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"test_results_{timestamp}.txt"


class TestResultCollector:
    """Collects test results for formatted output."""

    __test__ = False

    def __init__(self):
        self.results: List[Dict[str, Any]] = []
        self.start_time: datetime = None
        self.end_time: datetime = None
        self.categories: Dict[str, List[Dict]] = {}

    def add_result(self, nodeid: str, outcome: str, duration: float, message: str = ""):
        """Add a test result."""
        # nodeid format: tests/test_scoring.py::TestClass::test_method
        filename = nodeid.split("::")[0].split("/")[-1]
        category = filename.replace("test_", "", 1).replace(".py", "")

        result = {
            "nodeid": nodeid,
            "name": nodeid.split("::")[-1].replace("test_", "").replace("_", " ").title(),
            "category": category,
            "outcome": outcome,
            "duration": duration,
            "message": message,
        }

        self.results.append(result)
        self.categories.setdefault(category, []).append(result)

    def get_summary(self) -> Dict[str, int]:
        """Get test result summary."""
        return {
            "total": len(self.results),
            "passed": sum(1 for r in self.results if r["outcome"] == "passed"),
            "failed": sum(1 for r in self.results if r["outcome"] == "failed"),
            "skipped": sum(1 for r in self.results if r["outcome"] == "skipped"),
        }


# Global collector instance
_collector = TestResultCollector()


# =============================================================================
# PYTEST HOOKS
# =============================================================================

def pytest_configure(config):
    """Register custom markers and start the collector."""
    config.addinivalue_line(
        "markers", "config_validation: Configuration validation tests"
    )
    config.addinivalue_line(
        "markers", "interest_properties: End-to-end scoring guarantees"
    )
    config.addinivalue_line(
        "markers", "cli_behavior: CLI interface tests"
    )

    _collector.start_time = datetime.now()


def pytest_runtest_logreport(report):
    """Called after each test phase."""
    if report.when == "call":  # Only record the actual test call
        _collector.add_result(
            nodeid=report.nodeid,
            outcome=report.outcome,
            duration=report.duration,
            message=str(report.longrepr) if report.longrepr else "",
        )


def pytest_sessionfinish(session, exitstatus):
    """Write a formatted report once all tests complete."""
    _collector.end_time = datetime.now()
    if not _collector.results:
        return

    RESULTS_DIR.mkdir(exist_ok=True)
    filepath = RESULTS_DIR / get_result_filename()
    with open(filepath, "w") as f:
        f.write(generate_formatted_report(_collector))


def generate_formatted_report(collector: TestResultCollector) -> str:
    """Generate a formatted test report."""
    summary = collector.get_summary()
    lines = [
        "=" * 80,
        "INTEREST DIGEST - TEST RESULTS REPORT",
        "=" * 80,
        f"Run Date:     {collector.start_time.strftime('%Y-%m-%d %H:%M:%S')}",
    ]
    if collector.end_time:
        duration = (collector.end_time - collector.start_time).total_seconds()
        lines.append(f"Duration:     {duration:.2f} seconds")

    lines.extend([
        "",
        f"Total Tests:  {summary['total']}",
        f"Passed:       {summary['passed']} ✓",
        f"Failed:       {summary['failed']} ✗",
        f"Skipped:      {summary['skipped']} ○",
        "",
    ])

    for category, results in sorted(collector.categories.items()):
        cat_info = TEST_CATEGORIES.get(category, {
            "name": category.replace("_", " ").title(),
            "protects_against": [],
        })
        lines.append(f"[{cat_info['name']}]")
        for protection in cat_info.get("protects_against", []):
            lines.append(f"  protects against: {protection}")

        for result in results:
            status = "✓" if result["outcome"] == "passed" else "✗" if result["outcome"] == "failed" else "○"
            lines.append(f"    {status} {result['name']:<60} ({result['duration'] * 1000:.0f}ms)")
            if result["outcome"] == "failed" and result["message"]:
                for msg_line in result["message"].split("\n")[:3]:
                    if msg_line.strip():
                        lines.append(f"      └─ {msg_line[:70]}")
        lines.append("")

    lines.append("=" * 80)
    return "\n".join(lines)


# =============================================================================
# SHARED FIXTURES
# =============================================================================

@pytest.fixture
def now():
    """Fixed 'current time' for deterministic decay."""
    return CONFIG["now"]


@pytest.fixture
def user_id():
    return TEST_DATA["user_id"]


@pytest.fixture
def make_interaction(now, user_id):
    """Factory for completed interactions, `days_ago` relative to `now`."""
    from src.models.interaction import Interaction

    def _make(
        content_id: str,
        duration_seconds: float = 600,
        start_progress: float = 0,
        end_progress: float = 0,
        days_ago: float = 0,
        user: str = None,
        event_type: str = "end",
    ) -> Interaction:
        return Interaction(
            user_id=user or user_id,
            content_id=content_id,
            event_type=event_type,
            timestamp=now - timedelta(days=days_ago),
            duration_seconds=duration_seconds,
            start_progress=start_progress,
            end_progress=end_progress,
        )

    return _make


@pytest.fixture
def memory_storage():
    """An empty InMemoryStorage."""
    from src.storage.memory import InMemoryStorage
    return InMemoryStorage()


@pytest.fixture
def seeded_storage(memory_storage, user_id, now):
    """InMemoryStorage with the test user and all test contents."""
    memory_storage.add_user(user_id, updated_at=now)
    for content_id, tags in TEST_DATA["contents"].items():
        memory_storage.add_content(content_id, tags)
    return memory_storage


@pytest.fixture
def expected_values():
    """Provide access to expected values."""
    return EXPECTED


@pytest.fixture
def test_data():
    """Provide access to test data."""
    return TEST_DATA
