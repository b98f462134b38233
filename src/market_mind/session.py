"""
Analysis session state and its reducer.

The session is an immutable snapshot. Every change goes through ``reduce(previous, update)``,
which returns a new snapshot; on a single event loop that keeps each update atomic with
respect to every other completion callback.

Per kind the lifecycle is ``idle -> loading -> succeeded | failed``; starting a new
invocation opens a new generation, and completions carrying an older generation are
discarded instead of overwriting the newer result.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Union

from market_mind.models import RESULT_FIELDS, OperationKind, SessionResultsRecord, Tier, UsageRecord

logger = logging.getLogger(__name__)


def _frozen(d: dict) -> Mapping:
    return MappingProxyType(dict(d))


def _per_kind(value: Any) -> Mapping:
    return _frozen({k: value for k in OperationKind})


@dataclass(frozen=True)
class AnalysisSession:
    loading: Mapping[OperationKind, bool] = field(default_factory=lambda: _per_kind(False))
    results: Mapping[OperationKind, Any] = field(default_factory=lambda: _per_kind(None))
    generations: Mapping[OperationKind, int] = field(default_factory=lambda: _per_kind(0))
    error: str | None = None
    error_kind: OperationKind | None = None
    rolling_requests: int = 0
    total_requests: int = 0
    tier: Tier = Tier.FREE

    @classmethod
    def initial(
        cls,
        results: SessionResultsRecord | None = None,
        usage: UsageRecord | None = None,
    ) -> "AnalysisSession":
        slots = {k: None for k in OperationKind}
        if results is not None:
            for kind, attr in RESULT_FIELDS.items():
                slots[kind] = getattr(results, attr)
        usage = usage or UsageRecord()
        return cls(results=_frozen(slots), total_requests=usage.total_requests, tier=usage.api_tier)

    def is_loading(self, kind: OperationKind) -> bool:
        return bool(self.loading[kind])

    def result(self, kind: OperationKind) -> Any:
        return self.results[kind]

    @property
    def any_loading(self) -> bool:
        return any(self.loading.values())

    def to_results_record(self) -> SessionResultsRecord:
        return SessionResultsRecord(**{attr: self.results[kind] for kind, attr in RESULT_FIELDS.items()})


# -- update descriptors ---------------------------------------------------------


@dataclass(frozen=True)
class OperationStarted:
    kind: OperationKind


@dataclass(frozen=True)
class OperationSucceeded:
    kind: OperationKind
    generation: int
    result: Any


@dataclass(frozen=True)
class OperationFailed:
    kind: OperationKind
    generation: int
    message: str


@dataclass(frozen=True)
class ResultReplaced:
    """Swap a result slot outside an operation run (e.g. loading a saved scan)."""

    kind: OperationKind
    result: Any


@dataclass(frozen=True)
class UsageSynced:
    rolling: int
    lifetime: int
    tier: Tier


Update = Union[OperationStarted, OperationSucceeded, OperationFailed, ResultReplaced, UsageSynced]


def _with(mapping: Mapping, kind: OperationKind, value: Any) -> Mapping:
    d = dict(mapping)
    d[kind] = value
    return _frozen(d)


def _clear_error_for(state: AnalysisSession, kind: OperationKind) -> dict[str, Any]:
    if state.error_kind is kind:
        return {"error": None, "error_kind": None}
    return {}


def reduce(state: AnalysisSession, update: Update) -> AnalysisSession:
    if isinstance(update, OperationStarted):
        k = update.kind
        return replace(
            state,
            loading=_with(state.loading, k, True),
            results=_with(state.results, k, None),
            generations=_with(state.generations, k, state.generations[k] + 1),
            **_clear_error_for(state, k),
        )

    if isinstance(update, (OperationSucceeded, OperationFailed)):
        k = update.kind
        if update.generation != state.generations[k]:
            logger.debug("discarding stale %s completion (gen %d, current %d)", k.value, update.generation, state.generations[k])
            return state
        if isinstance(update, OperationSucceeded):
            return replace(
                state,
                loading=_with(state.loading, k, False),
                results=_with(state.results, k, update.result),
                **_clear_error_for(state, k),
            )
        return replace(
            state,
            loading=_with(state.loading, k, False),
            error=update.message,
            error_kind=k,
        )

    if isinstance(update, ResultReplaced):
        return replace(state, results=_with(state.results, update.kind, update.result))

    if isinstance(update, UsageSynced):
        return replace(state, rolling_requests=update.rolling, total_requests=update.lifetime, tier=update.tier)

    raise TypeError(f"Unknown session update: {update!r}")
