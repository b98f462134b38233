from __future__ import annotations

import asyncio

import pytest

from conftest import FakeMonotonic
from market_mind.models import Tier
from market_mind.usage import TIER_BUDGETS, UsageTracker, budget


def _tracker(**kw) -> tuple[UsageTracker, FakeMonotonic]:
    clock = FakeMonotonic()
    return UsageTracker(clock=clock, **kw), clock


def test_tier_budgets():
    assert budget(Tier.FREE) == 15
    assert budget(Tier.PRO) == 2000
    assert set(TIER_BUDGETS) == set(Tier)


def test_utilization_reaches_one_at_budget_and_resets_after_window():
    t, clock = _tracker()
    for _ in range(15):
        t.record_call()
    assert t.rolling_count == 15
    assert t.utilization() == 1.0

    clock.advance(60)
    assert t.rolling_count == 0
    assert t.utilization() == 0.0
    assert t.lifetime_count == 15


def test_utilization_is_clamped():
    t, _ = _tracker()
    t.record_call(40)
    assert t.utilization() == 1.0


def test_window_is_not_reset_early():
    t, clock = _tracker()
    t.record_call(3)
    clock.advance(59.9)
    assert t.rolling_count == 3


def test_lifetime_starts_from_restored_value():
    t, _ = _tracker(lifetime=120, tier=Tier.PRO)
    t.record_call()
    assert t.lifetime_count == 121
    assert t.budget() == 2000
    assert t.utilization() == pytest.approx(1 / 2000)


def test_negative_count_rejected():
    t, _ = _tracker()
    with pytest.raises(ValueError):
        t.record_call(-1)


def test_listeners_receive_snapshots():
    t, _ = _tracker()
    seen = []
    t.add_listener(seen.append)
    t.record_call()
    t.toggle_tier()
    assert [(s.rolling, s.lifetime, s.tier) for s in seen] == [(1, 1, Tier.FREE), (1, 1, Tier.PRO)]
    assert seen[-1].budget == 2000


def test_set_same_tier_is_silent():
    t, _ = _tracker()
    seen = []
    t.add_listener(seen.append)
    t.set_tier(Tier.FREE)
    assert seen == []


def test_reset_window_notifies_only_when_counting():
    t, _ = _tracker()
    seen = []
    t.add_listener(seen.append)
    t.reset_window()
    assert seen == []
    t.record_call(2)
    t.reset_window()
    assert seen[-1].rolling == 0
    assert seen[-1].lifetime == 2


class _Stop(Exception):
    pass


def test_reset_loop_zeroes_rolling_count_each_window():
    t, _ = _tracker()
    t.record_call(5)
    slept: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        slept.append(seconds)
        if len(slept) == 2:
            t.record_call(4)
        if len(slept) == 3:
            raise _Stop

    with pytest.raises(_Stop):
        asyncio.run(t.run_reset_loop(sleep=fake_sleep))

    assert slept == [60.0, 60.0, 60.0]
    assert t.rolling_count == 0
    assert t.lifetime_count == 9


def test_elapsed_window_notifies_listeners_on_read():
    t, clock = _tracker()
    t.record_call(2)
    seen = []
    t.add_listener(seen.append)

    clock.advance(60)
    assert t.rolling_count == 0
    assert [(s.rolling, s.lifetime) for s in seen] == [(0, 2)]

    # an idle window rolling over stays silent
    clock.advance(60)
    t.snapshot()
    assert len(seen) == 1
