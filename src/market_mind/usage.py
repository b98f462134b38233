"""
Request-rate and lifetime usage tracking.

Advisory only: nothing is blocked when the rolling count passes the budget.
The rolling count covers a fixed 60s window. A background task
(``run_reset_loop``) zeroes it every window; reads also roll the window
themselves when the clock shows it has elapsed, so a stalled loop never leaves
a stale count behind.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from market_mind.models import Tier

logger = logging.getLogger(__name__)

ROLLING_WINDOW_S = 60.0

TIER_BUDGETS: dict[Tier, int] = {
    Tier.FREE: 15,
    Tier.PRO: 2000,
}


def budget(tier: Tier) -> int:
    """Requests-per-minute ceiling for *tier*."""
    return TIER_BUDGETS[Tier(tier)]


@dataclass(frozen=True)
class UsageSnapshot:
    rolling: int
    lifetime: int
    tier: Tier
    budget: int
    utilization: float


class UsageTracker:
    def __init__(
        self,
        *,
        lifetime: int = 0,
        tier: Tier = Tier.FREE,
        clock: Callable[[], float] = time.monotonic,
        window_s: float = ROLLING_WINDOW_S,
    ):
        self._clock = clock
        self._window_s = float(window_s)
        self._window_started = clock()
        self._rolling = 0
        self._lifetime = max(0, int(lifetime))
        self._tier = Tier(tier)
        self._listeners: list[Callable[[UsageSnapshot], None]] = []

    def add_listener(self, fn: Callable[[UsageSnapshot], None]) -> None:
        self._listeners.append(fn)

    def _notify(self) -> None:
        snap = self.snapshot()
        for fn in self._listeners:
            fn(snap)

    def roll(self) -> None:
        """Close the window if it has elapsed; listeners hear about a count that drops to zero."""
        now = self._clock()
        if now - self._window_started >= self._window_s:
            # Window restarts before notifying so the snapshot taken by _notify does not roll again.
            self._window_started = now
            had_calls = self._rolling > 0
            self._rolling = 0
            if had_calls:
                self._notify()

    @property
    def rolling_count(self) -> int:
        self.roll()
        return self._rolling

    @property
    def lifetime_count(self) -> int:
        return self._lifetime

    @property
    def tier(self) -> Tier:
        return self._tier

    def record_call(self, n: int = 1) -> None:
        if n < 0:
            raise ValueError("call count must be non-negative")
        self.roll()
        self._rolling += n
        self._lifetime += n
        self._notify()

    def budget(self, tier: Tier | None = None) -> int:
        return budget(self._tier if tier is None else tier)

    def utilization(self) -> float:
        ceiling = self.budget()
        if ceiling <= 0:
            return 1.0
        return min(max(self.rolling_count / ceiling, 0.0), 1.0)

    def set_tier(self, tier: Tier) -> None:
        tier = Tier(tier)
        if tier is self._tier:
            return
        self._tier = tier
        self._notify()

    def toggle_tier(self) -> Tier:
        self.set_tier(Tier.PRO if self._tier is Tier.FREE else Tier.FREE)
        return self._tier

    def reset_window(self) -> None:
        self._window_started = self._clock()
        had_calls = self._rolling > 0
        self._rolling = 0
        if had_calls:
            self._notify()

    async def run_reset_loop(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        """Zero the rolling count every window, forever."""
        while True:
            await sleep(self._window_s)
            logger.debug("rolling request window reset (was %d)", self._rolling)
            self.reset_window()

    def snapshot(self) -> UsageSnapshot:
        return UsageSnapshot(
            rolling=self.rolling_count,
            lifetime=self._lifetime,
            tier=self._tier,
            budget=self.budget(),
            utilization=self.utilization(),
        )
