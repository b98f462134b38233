"""
Orchestration controller.

Owns the single AnalysisSession and coordinates everything that touches it:

- launches one asyncio task per operation kind (kinds run fully in parallel)
- counts every gateway call on the usage tracker, success or not
- turns ProviderError / MalformedResponseError into the session error message
- mirrors terminal state (results, holdings, saved scans, usage) to the store

Usage:
    controller = Controller.from_settings(load_settings())
    controller.start()
    controller.analyze(news_text)      # both personas, tracked independently
    controller.refresh_all()           # every scan kind at once
    await controller.wait_idle()
    print(controller.session.result(OperationKind.TECH))
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import ValidationError

from market_mind.config import Settings
from market_mind.errors import MalformedResponseError, ProviderError
from market_mind.llm.gateway import Gateway
from market_mind.models import (
    SCAN_KINDS,
    HoldingPosition,
    OperationKind,
    SavedScanSnapshot,
    TechStockItem,
    Tier,
    UsageRecord,
)
from market_mind.portfolio import new_holding
from market_mind.session import (
    AnalysisSession,
    OperationFailed,
    OperationStarted,
    OperationSucceeded,
    ResultReplaced,
    Update,
    UsageSynced,
    reduce,
)
from market_mind.store import RestoredState, StateStore
from market_mind.usage import UsageSnapshot, UsageTracker

logger = logging.getLogger(__name__)

ERROR_MESSAGES: dict[OperationKind, str] = {
    OperationKind.LYNCH: "Lynch Failed",
    OperationKind.MANAGER: "Manager Failed",
    OperationKind.TRENDS: "Scan error",
    OperationKind.DIGEST: "Brief error",
    OperationKind.TECH: "Tech scan error",
    OperationKind.AHP: "AHP error",
    OperationKind.MATRIX: "Matrix error",
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Controller:
    def __init__(
        self,
        gateway: Gateway,
        store: StateStore | None = None,
        *,
        tracker: UsageTracker | None = None,
        now: Callable[[], datetime] = _utc_now,
    ):
        self.gateway = gateway
        self.store = store
        self._now = now

        restored = store.load_all() if store is not None else RestoredState()
        self._state = AnalysisSession.initial(restored.results, restored.usage)
        self._holdings: list[HoldingPosition] = list(restored.holdings)
        self._saved_scans: list[SavedScanSnapshot] = list(restored.saved_scans)

        self.tracker = tracker or UsageTracker(lifetime=restored.usage.total_requests, tier=restored.usage.api_tier)
        self._persisted_usage = (restored.usage.total_requests, restored.usage.api_tier)
        self.tracker.add_listener(self._on_usage)
        self._on_usage(self.tracker.snapshot())

        self._tasks: dict[OperationKind, asyncio.Task] = {}
        self._reset_task: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, settings: Settings, gateway: Gateway | None = None) -> "Controller":
        return cls(gateway or Gateway.from_settings(settings), StateStore(settings.state_dir))

    # -- read-only views -------------------------------------------------------

    @property
    def session(self) -> AnalysisSession:
        self.tracker.roll()
        return self._state

    @property
    def holdings(self) -> tuple[HoldingPosition, ...]:
        return tuple(self._holdings)

    @property
    def saved_scans(self) -> tuple[SavedScanSnapshot, ...]:
        return tuple(self._saved_scans)

    def dispatch(self, update: Update) -> AnalysisSession:
        self._state = reduce(self._state, update)
        return self._state

    # -- lifecycle -------------------------------------------------------------

    def start(self) -> None:
        """Start the rolling-window reset loop (once per controller)."""
        if self._reset_task is None:
            self._reset_task = asyncio.get_running_loop().create_task(
                self.tracker.run_reset_loop(), name="market-mind:usage-window"
            )

    async def stop(self) -> None:
        if self._reset_task is not None:
            self._reset_task.cancel()
            try:
                await self._reset_task
            except asyncio.CancelledError:
                pass
            self._reset_task = None

    async def wait_idle(self) -> None:
        """Wait until no operation task is pending (including ones launched while waiting)."""
        while True:
            pending = [t for t in self._tasks.values() if not t.done()]
            if not pending:
                return
            outcomes = await asyncio.gather(*pending, return_exceptions=True)
            for out in outcomes:
                if isinstance(out, Exception):
                    raise out

    # -- operations --------------------------------------------------------------

    def run(self, kind: OperationKind, text: str | None = None, *, force: bool = False) -> asyncio.Task:
        """
        Launch *kind* and return its task.

        While the same kind is still loading, the in-flight task is returned instead of
        issuing a second call, unless ``force`` is set; a forced re-run opens a new
        generation and the older completion is discarded when it lands.
        """
        current = self._tasks.get(kind)
        if not force and self._state.is_loading(kind) and current is not None and not current.done():
            logger.info("%s already in flight; reusing the pending request", kind.value)
            return current
        if kind.is_persona and (text is None or not text.strip()):
            raise ValueError("news text is required for persona analysis")

        loop = asyncio.get_running_loop()
        self.tracker.record_call()
        generation = self.dispatch(OperationStarted(kind)).generations[kind]
        task = loop.create_task(
            self._execute(kind, text, generation), name=f"market-mind:{kind.value}"
        )
        self._tasks[kind] = task
        return task

    async def _execute(self, kind: OperationKind, text: str | None, generation: int) -> Any:
        try:
            result = await self.gateway.run(kind, text)
        except (ProviderError, MalformedResponseError) as exc:
            logger.warning("%s failed: %s", kind.value, exc)
            self.dispatch(OperationFailed(kind, generation, ERROR_MESSAGES[kind]))
            return None
        except Exception:
            self.dispatch(OperationFailed(kind, generation, ERROR_MESSAGES[kind]))
            raise

        before = self._state
        if self.dispatch(OperationSucceeded(kind, generation, result)) is before:
            return None
        self._persist_results()
        if kind is OperationKind.TECH:
            self._auto_save_scan(result)
        return result

    def analyze(self, news_text: str) -> tuple[asyncio.Task, asyncio.Task]:
        """Run both persona analyses on the same text; each completes independently."""
        if not (news_text or "").strip():
            raise ValueError("news text is required for persona analysis")
        return self.run(OperationKind.LYNCH, news_text), self.run(OperationKind.MANAGER, news_text)

    def analyze_lynch(self, news_text: str) -> asyncio.Task:
        return self.run(OperationKind.LYNCH, news_text)

    def analyze_manager(self, news_text: str) -> asyncio.Task:
        return self.run(OperationKind.MANAGER, news_text)

    def scan_trends(self) -> asyncio.Task:
        return self.run(OperationKind.TRENDS)

    def fetch_digest(self) -> asyncio.Task:
        return self.run(OperationKind.DIGEST)

    def scan_tech(self) -> asyncio.Task:
        return self.run(OperationKind.TECH)

    def rank_ahp(self) -> asyncio.Task:
        return self.run(OperationKind.AHP)

    def scan_matrix(self) -> asyncio.Task:
        return self.run(OperationKind.MATRIX)

    def refresh_all(self) -> dict[OperationKind, asyncio.Task]:
        """Launch every scan kind concurrently; there is no combined completion signal."""
        return {kind: self.run(kind) for kind in SCAN_KINDS}

    # -- holdings --------------------------------------------------------------

    def add_holding(self, ticker: str, shares: float, avg_price: float) -> HoldingPosition:
        holding = new_holding(ticker, shares, avg_price)
        self._holdings.append(holding)
        self._persist("save_holdings", self._holdings)
        return holding

    def remove_holding(self, holding_id: str) -> bool:
        kept = [h for h in self._holdings if h.id != holding_id]
        if len(kept) == len(self._holdings):
            return False
        self._holdings = kept
        self._persist("save_holdings", self._holdings)
        return True

    # -- saved scans -------------------------------------------------------------

    def _auto_save_scan(self, items: list[TechStockItem]) -> SavedScanSnapshot:
        created = self._now()
        snap = SavedScanSnapshot(
            id=uuid.uuid4().hex,
            name=created.isoformat(),
            timestamp=int(created.timestamp() * 1000),
            data=list(items),
        )
        self._saved_scans.insert(0, snap)
        self._persist("save_saved_scans", self._saved_scans)
        return snap

    def _find_scan(self, scan_id: str) -> int:
        for i, s in enumerate(self._saved_scans):
            if s.id == scan_id:
                return i
        raise KeyError(f"No saved scan with id {scan_id!r}")

    def rename_scan(self, scan_id: str, name: str) -> SavedScanSnapshot:
        i = self._find_scan(scan_id)
        snap = self._saved_scans[i]
        if snap.name == name:
            return snap
        renamed = snap.model_copy(update={"name": name})
        self._saved_scans[i] = renamed
        self._persist("save_saved_scans", self._saved_scans)
        return renamed

    def load_scan(self, scan_id: str) -> SavedScanSnapshot:
        snap = self._saved_scans[self._find_scan(scan_id)]
        self.dispatch(ResultReplaced(OperationKind.TECH, list(snap.data)))
        self._persist_results()
        return snap

    def delete_scan(self, scan_id: str) -> bool:
        kept = [s for s in self._saved_scans if s.id != scan_id]
        if len(kept) == len(self._saved_scans):
            return False
        self._saved_scans = kept
        self._persist("save_saved_scans", self._saved_scans)
        return True

    # -- usage -------------------------------------------------------------------

    def set_tier(self, tier: Tier) -> None:
        self.tracker.set_tier(tier)

    def toggle_tier(self) -> Tier:
        return self.tracker.toggle_tier()

    def _on_usage(self, snap: UsageSnapshot) -> None:
        self.dispatch(UsageSynced(rolling=snap.rolling, lifetime=snap.lifetime, tier=snap.tier))
        if (snap.lifetime, snap.tier) != self._persisted_usage:
            self._persisted_usage = (snap.lifetime, snap.tier)
            self._persist(
                "save_usage",
                UsageRecord(total_requests=snap.lifetime, api_tier=snap.tier),
            )

    # -- persistence ---------------------------------------------------------------

    def _persist_results(self) -> None:
        try:
            record = self._state.to_results_record()
        except ValidationError as exc:
            logger.warning("Not persisting session results: %s", exc)
            return
        self._persist("save_results", record)

    def _persist(self, method: str, payload: Any) -> None:
        if self.store is None:
            return
        try:
            getattr(self.store, method)(payload)
        except (OSError, ValidationError) as exc:
            logger.warning("Failed to persist %s to %s: %s", method, self.store.root, exc)
