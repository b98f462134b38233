"""
Pytest configuration and shared fixtures for market_mind tests.

Usage:
    @pytest.fixture functions are automatically available to all tests.
    Import helpers from conftest when needed.
"""
import asyncio
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest


def pytest_configure():
    """
    Ensure `src/` is on sys.path for the src-layout package import (`market_mind`).
    This keeps tests runnable without requiring an editable install.
    """
    root = Path(__file__).resolve().parents[1]
    src = root / "src"
    if src.exists():
        sys.path.insert(0, str(src))


# =============================================================================
# Mock Settings Fixture
# =============================================================================

@dataclass
class MockSettings:
    """Mock settings object for tests that don't need real API keys."""
    provider: str = "gemini"
    gemini_api_key: str = "test_gemini_key"
    fast_model: str = "fast-test-model"
    deep_model: str = "deep-test-model"
    openai_api_key: str = "test_openai_key"
    openai_base_url: str | None = None
    state_dir: Path = Path("/tmp/market_mind_test")
    log_level: str = "WARNING"


@pytest.fixture
def mock_settings(tmp_path) -> MockSettings:
    """Provide mock settings pointing the state dir at a per-test tmp dir."""
    return MockSettings(state_dir=tmp_path / "state")


@pytest.fixture
def state_env(tmp_path, monkeypatch) -> Path:
    """Point the real Settings at an isolated state dir (for CLI tests)."""
    state = tmp_path / "state"
    monkeypatch.setenv("MARKETMIND_STATE_DIR", str(state))
    monkeypatch.setenv("MARKETMIND_PROVIDER", "gemini")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    return state


# =============================================================================
# Fake gateway
# =============================================================================

class Blocked:
    """A scripted reply that waits for `release()` before returning (or raising) `value`."""

    def __init__(self, value: Any):
        self.value = value
        self._event: asyncio.Event | None = None
        self._released = False

    def release(self) -> None:
        self._released = True
        if self._event is not None:
            self._event.set()

    async def wait(self) -> Any:
        if not self._released:
            self._event = asyncio.Event()
            await self._event.wait()
        return self.value


class FakeGateway:
    """
    Stand-in for `Gateway` scripted per operation kind.

    Usage:
        gw = FakeGateway({OperationKind.TECH: [items_a, items_b]})
        gw.script(OperationKind.LYNCH, ProviderError("boom"))

    Each call pops the next scripted reply for its kind (the last one repeats).
    A reply may be a value, an exception instance, or a `Blocked` wrapper.
    """

    def __init__(self, replies: dict | None = None):
        self.replies: dict[Any, list[Any]] = {k: list(v) for k, v in (replies or {}).items()}
        self.calls: list[tuple[Any, str | None]] = []

    def script(self, kind, *replies) -> None:
        self.replies.setdefault(kind, []).extend(replies)

    def _next(self, kind) -> Any:
        queue = self.replies.get(kind)
        if not queue:
            raise AssertionError(f"no scripted reply for {kind}")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    async def run(self, kind, text=None):
        self.calls.append((kind, text))
        reply = self._next(kind)
        await asyncio.sleep(0)
        if isinstance(reply, Blocked):
            reply = await reply.wait()
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


class StepClock:
    """Deterministic wall clock for saved-scan timestamps."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.current = start or datetime(2025, 3, 1, 14, 30, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + self.step
        return now


class FakeMonotonic:
    """Manually advanced monotonic clock for the usage tracker."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Sample data helpers
# =============================================================================

def make_tech_items(*tickers: str) -> list:
    from market_mind.models import TechStockItem

    return [
        TechStockItem(
            ticker=t,
            name=f"{t} Corp",
            current_price="$100.00",
            support_level="$95.00",
            resistance_level="$110.00",
            target_1q="$120.00",
            upside="+20%",
            reasoning="Holding the 50-day average",
        )
        for t in (tickers or ("NVDA",))
    ]


def make_lynch(ticker: str = "NVDA", action: str = "Buy") -> Any:
    from market_mind.models import LynchVerdict

    return LynchVerdict(
        ticker=ticker,
        category="Fast Growers",
        thesis="Data center demand keeps compounding.",
        what_to_check=["Gross margin trend"],
        action=action,
    )


def make_manager(action: str = "Hold") -> Any:
    from market_mind.models import ManagerVerdict, Source

    return ManagerVerdict(
        summary="Guidance raised.",
        key_risks=["Export controls"],
        market_impact="Semis bid.",
        verdict="Constructive",
        action=action,
        sources=[Source(title="Reuters", uri="https://reuters.com/a")],
    )
