from __future__ import annotations

import pytest

from conftest import make_lynch, make_tech_items
from market_mind.models import OperationKind, SessionResultsRecord, Tier, UsageRecord
from market_mind.session import (
    AnalysisSession,
    OperationFailed,
    OperationStarted,
    OperationSucceeded,
    ResultReplaced,
    UsageSynced,
    reduce,
)

TECH = OperationKind.TECH
AHP = OperationKind.AHP


def _started(state, kind):
    state = reduce(state, OperationStarted(kind))
    return state, state.generations[kind]


def test_initial_state_is_idle():
    s = AnalysisSession.initial()
    assert not s.any_loading
    assert all(s.result(k) is None for k in OperationKind)
    assert s.error is None
    assert s.tier is Tier.FREE


def test_initial_restores_results_and_usage():
    record = SessionResultsRecord(dime_brief="brief", lynch_result=make_lynch())
    s = AnalysisSession.initial(record, UsageRecord(total_requests=7, api_tier=Tier.PRO))
    assert s.result(OperationKind.DIGEST) == "brief"
    assert s.result(OperationKind.LYNCH).ticker == "NVDA"
    assert s.total_requests == 7
    assert s.tier is Tier.PRO
    assert s.to_results_record() == record


def test_start_clears_result_and_sets_loading():
    s = reduce(AnalysisSession.initial(), ResultReplaced(TECH, make_tech_items()))
    s, gen = _started(s, TECH)
    assert s.is_loading(TECH)
    assert s.result(TECH) is None
    assert gen == 1


def test_success_records_result():
    s, gen = _started(AnalysisSession.initial(), TECH)
    items = make_tech_items("AMD")
    s = reduce(s, OperationSucceeded(TECH, gen, items))
    assert not s.is_loading(TECH)
    assert s.result(TECH) == items


def test_unrelated_kinds_untouched():
    s = reduce(AnalysisSession.initial(), ResultReplaced(AHP, ["ranking"]))
    s, gen = _started(s, TECH)
    s = reduce(s, OperationSucceeded(TECH, gen, make_tech_items()))
    assert s.result(AHP) == ["ranking"]
    assert not s.is_loading(AHP)
    assert s.generations[AHP] == 0


def test_stale_completion_is_discarded():
    s, first = _started(AnalysisSession.initial(), TECH)
    s, second = _started(s, TECH)
    newer = make_tech_items("NEW")
    s = reduce(s, OperationSucceeded(TECH, second, newer))

    after = reduce(s, OperationSucceeded(TECH, first, make_tech_items("OLD")))
    assert after is s
    assert after.result(TECH) == newer

    assert reduce(s, OperationFailed(TECH, first, "Tech scan error")) is s


def test_failure_sets_error_and_retry_clears_it():
    s, gen = _started(AnalysisSession.initial(), TECH)
    s = reduce(s, OperationFailed(TECH, gen, "Tech scan error"))
    assert s.error == "Tech scan error"
    assert s.error_kind is TECH
    assert not s.is_loading(TECH)

    # another kind does not clear it
    s, ahp_gen = _started(s, AHP)
    s = reduce(s, OperationSucceeded(AHP, ahp_gen, []))
    assert s.error == "Tech scan error"

    s, _ = _started(s, TECH)
    assert s.error is None


def test_usage_synced():
    s = reduce(AnalysisSession.initial(), UsageSynced(rolling=3, lifetime=30, tier=Tier.PRO))
    assert (s.rolling_requests, s.total_requests, s.tier) == (3, 30, Tier.PRO)


def test_state_is_read_only():
    s = AnalysisSession.initial()
    with pytest.raises(TypeError):
        s.results[TECH] = []  # type: ignore[index]
    with pytest.raises(AttributeError):
        s.error = "x"  # type: ignore[misc]


def test_unknown_update_rejected():
    with pytest.raises(TypeError):
        reduce(AnalysisSession.initial(), object())  # type: ignore[arg-type]
