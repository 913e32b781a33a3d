from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from src.adapters.diagnostics import RecordingDiagnosticSink
from src.adapters.static_registry import InMemoryStaticRuleRegistry
from src.components.patterns import clear_cache


class MockTimePort:
    """Mock time provider."""

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now or datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self._now

    def set_now(self, now: datetime) -> None:
        self._now = now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)


def make_record(**overrides: Any) -> dict[str, Any]:
    """Rule record in the extension's storage shape."""
    record: dict[str, Any] = {
        "description": "Example",
        "includePattern": "http://example.com/*",
        "excludePattern": "",
        "redirectUrl": "https://google.com/search?q=$1",
        "patternType": "W",
        "processMatches": "noProcessing",
        "disabled": False,
        "appliesTo": ["main_frame"],
    }
    record.update(overrides)
    return record


@pytest.fixture(autouse=True)
def fresh_pattern_cache() -> None:
    """Compiled matchers are cached per process; start each test clean."""
    clear_cache()


@pytest.fixture
def time_port() -> MockTimePort:
    return MockTimePort()


@pytest.fixture
def sink() -> RecordingDiagnosticSink:
    return RecordingDiagnosticSink()


@pytest.fixture
def registry() -> InMemoryStaticRuleRegistry:
    return InMemoryStaticRuleRegistry()
