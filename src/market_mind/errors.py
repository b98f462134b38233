"""Error taxonomy shared by the gateway, normalizer, store and controller."""

from __future__ import annotations


class MarketMindError(Exception):
    """Base class for market-mind failures."""


class ProviderError(MarketMindError):
    """The provider call was rejected, or it returned no usable text."""


class MalformedResponseError(MarketMindError):
    """The provider returned text that does not decode into the expected shape."""

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message)
        self.raw = raw


class PersistedDataCorrupt(MarketMindError):
    """A stored record could not be decoded."""

    def __init__(self, record: str, reason: str):
        super().__init__(f"{record}: {reason}")
        self.record = record
        self.reason = reason
