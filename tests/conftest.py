"""Shared pytest fixtures for stepforge tests."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from stepforge.journey.parser import ParsedJourney, parse_journey
from stepforge.llkb.store import LearnedPatternStore


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def journeys_dir(fixtures_dir: Path) -> Path:
    """Return path to journey document fixtures."""
    return fixtures_dir / "journeys"


@pytest.fixture
def login_journey(journeys_dir: Path) -> ParsedJourney:
    return parse_journey(journeys_dir / "login.md")


class FakeClock:
    """Controllable monotonic and wall clocks for store tests."""

    def __init__(self) -> None:
        self.seconds = 0.0
        self.current = datetime(2025, 1, 1, tzinfo=UTC)

    def monotonic(self) -> float:
        return self.seconds

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 0.0, days: int = 0) -> None:
        self.seconds += seconds + days * 86400
        self.current += timedelta(seconds=seconds, days=days)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path: Path, clock: FakeClock) -> LearnedPatternStore:
    """A learned pattern store in a temp directory with a fake clock."""
    return LearnedPatternStore(tmp_path / "llkb", clock=clock.monotonic, now=clock.now)
