"""
Local persistence for terminal state.

Four independent JSON records live under the state directory (``MARKETMIND_STATE_DIR``,
default ``~/.market_mind``):

    session.json      latest result per operation kind
    holdings.json     user-entered positions
    saved_scans.json  auto-saved technical scans, newest first
    usage.json        lifetime request count + tier

Each file is an envelope ``{"schemaVersion": 1, "payload": ...}`` and is rewritten
in full on every change. Loading, error and in-flight fields never reach disk.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from pydantic import TypeAdapter, ValidationError

from market_mind.errors import PersistedDataCorrupt
from market_mind.models import HoldingPosition, SavedScanSnapshot, SessionResultsRecord, UsageRecord

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SESSION_RECORD = "session"
HOLDINGS_RECORD = "holdings"
SAVED_SCANS_RECORD = "saved_scans"
USAGE_RECORD = "usage"

_HOLDINGS = TypeAdapter(list[HoldingPosition])
_SAVED_SCANS = TypeAdapter(list[SavedScanSnapshot])


def _v0_to_v1(record: str, payload: Any) -> Any:
    # Pre-envelope usage files held the bare lifetime counter.
    if record == USAGE_RECORD and isinstance(payload, int) and not isinstance(payload, bool):
        return {"totalRequests": payload}
    return payload


# from_version -> migration producing from_version + 1
_MIGRATIONS: dict[int, Callable[[str, Any], Any]] = {
    0: _v0_to_v1,
}


@dataclass
class RestoredState:
    results: SessionResultsRecord = field(default_factory=SessionResultsRecord)
    holdings: list[HoldingPosition] = field(default_factory=list)
    saved_scans: list[SavedScanSnapshot] = field(default_factory=list)
    usage: UsageRecord = field(default_factory=UsageRecord)


class StateStore:
    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser()

    def path(self, record: str) -> Path:
        return self.root / f"{record}.json"

    # -- raw envelope I/O ---------------------------------------------------

    def _read_payload(self, record: str) -> Any | None:
        p = self.path(record)
        if not p.exists():
            return None
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise PersistedDataCorrupt(record, f"unreadable JSON ({exc})") from exc

        if isinstance(raw, dict) and "schemaVersion" in raw:
            version = raw.get("schemaVersion")
            if not isinstance(version, int) or "payload" not in raw:
                raise PersistedDataCorrupt(record, "malformed envelope")
            payload = raw["payload"]
        else:
            version, payload = 0, raw

        if version > SCHEMA_VERSION:
            raise PersistedDataCorrupt(record, f"schemaVersion {version} is newer than supported {SCHEMA_VERSION}")
        while version < SCHEMA_VERSION:
            payload = _MIGRATIONS[version](record, payload)
            version += 1
        return payload

    def _write_payload(self, record: str, payload: Any) -> None:
        p = self.path(record)
        p.parent.mkdir(parents=True, exist_ok=True)
        envelope = {"schemaVersion": SCHEMA_VERSION, "payload": payload}
        tmp = p.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, p)

    # -- typed records -------------------------------------------------------

    def load_results(self) -> SessionResultsRecord:
        payload = self._read_payload(SESSION_RECORD)
        if payload is None:
            return SessionResultsRecord()
        try:
            return SessionResultsRecord.model_validate(payload)
        except ValidationError as exc:
            raise PersistedDataCorrupt(SESSION_RECORD, f"{exc.error_count()} invalid field(s)") from exc

    def save_results(self, results: SessionResultsRecord) -> None:
        self._write_payload(SESSION_RECORD, results.model_dump(mode="json", by_alias=True))

    def load_holdings(self) -> list[HoldingPosition]:
        payload = self._read_payload(HOLDINGS_RECORD)
        if payload is None:
            return []
        try:
            return _HOLDINGS.validate_python(payload)
        except ValidationError as exc:
            raise PersistedDataCorrupt(HOLDINGS_RECORD, f"{exc.error_count()} invalid field(s)") from exc

    def save_holdings(self, holdings: list[HoldingPosition]) -> None:
        self._write_payload(HOLDINGS_RECORD, [h.model_dump(mode="json", by_alias=True) for h in holdings])

    def load_saved_scans(self) -> list[SavedScanSnapshot]:
        payload = self._read_payload(SAVED_SCANS_RECORD)
        if payload is None:
            return []
        try:
            return _SAVED_SCANS.validate_python(payload)
        except ValidationError as exc:
            raise PersistedDataCorrupt(SAVED_SCANS_RECORD, f"{exc.error_count()} invalid field(s)") from exc

    def save_saved_scans(self, scans: list[SavedScanSnapshot]) -> None:
        self._write_payload(SAVED_SCANS_RECORD, [s.model_dump(mode="json") for s in scans])

    def load_usage(self) -> UsageRecord:
        payload = self._read_payload(USAGE_RECORD)
        if payload is None:
            return UsageRecord()
        try:
            return UsageRecord.model_validate(payload)
        except ValidationError as exc:
            raise PersistedDataCorrupt(USAGE_RECORD, f"{exc.error_count()} invalid field(s)") from exc

    def save_usage(self, usage: UsageRecord) -> None:
        self._write_payload(USAGE_RECORD, usage.model_dump(mode="json", by_alias=True))

    # -- startup -------------------------------------------------------------

    def load_all(self) -> RestoredState:
        """Load every record independently; a corrupt record is logged and treated as empty."""
        state = RestoredState()
        loaders: list[tuple[str, Callable[[], Any]]] = [
            ("results", self.load_results),
            ("holdings", self.load_holdings),
            ("saved_scans", self.load_saved_scans),
            ("usage", self.load_usage),
        ]
        for attr, load in loaders:
            try:
                setattr(state, attr, load())
            except PersistedDataCorrupt as exc:
                logger.warning("Ignoring corrupt %s record in %s: %s", exc.record, self.root, exc.reason)
        return state
