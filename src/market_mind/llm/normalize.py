"""
Turn raw provider replies into typed records.

Everything here is a pure function of the reply: no I/O, no shared state.
"""
from __future__ import annotations

import json
import re
from typing import Any, Callable, Iterable

from pydantic import TypeAdapter, ValidationError

from market_mind.errors import MalformedResponseError, ProviderError
from market_mind.llm.providers import ProviderReply
from market_mind.models import (
    AhpStockItem,
    LynchVerdict,
    ManagerVerdict,
    MatrixItem,
    OperationKind,
    Source,
    TechStockItem,
    TrendItem,
)

DIGEST_FALLBACK = "Error fetching brief"

_FENCE_OPEN = re.compile(r"^```(?:[\w-]+(?=[ \t]*\r?\n))?[ \t]*\r?\n?")
_FENCE_CLOSE = re.compile(r"\r?\n?[ \t]*```$")


def strip_code_fence(text: str) -> str:
    """Remove one leading ```lang / ``` fence and one trailing ``` fence."""
    t = (text or "").strip()
    t = _FENCE_OPEN.sub("", t, count=1)
    t = _FENCE_CLOSE.sub("", t, count=1)
    return t.strip()


def parse_json_payload(text: str) -> Any:
    """
    Decode a JSON payload, tolerating a markdown code fence around it.

    Raises MalformedResponseError when neither the raw nor the unfenced text is JSON.
    """
    try:
        return json.loads(text)
    except (TypeError, json.JSONDecodeError):
        pass
    try:
        return json.loads(strip_code_fence(text))
    except (TypeError, json.JSONDecodeError) as exc:
        raise MalformedResponseError(f"Response is not valid JSON: {str(text)[:200]!r}", raw=text) from exc


def extract_sources(grounding_chunks: Iterable[dict[str, Any]]) -> list[Source]:
    """Map grounding chunks to citations, dropping chunks that carry no web reference."""
    out: list[Source] = []
    for chunk in grounding_chunks or []:
        web = (chunk or {}).get("web")
        if not web or not web.get("uri"):
            continue
        out.append(Source(title=str(web.get("title") or ""), uri=str(web["uri"])))
    return out


def normalize_digest(text: str | None) -> str:
    t = (text or "").strip()
    return t or DIGEST_FALLBACK


def _unwrap_list(obj: Any) -> Any:
    # Some models wrap arrays: {"stocks": [...]}.
    if isinstance(obj, dict) and len(obj) == 1:
        (only,) = obj.values()
        if isinstance(only, list):
            return only
    return obj


def _list_decoder(item_type: type) -> Callable[[Any], list]:
    adapter = TypeAdapter(list[item_type])

    def decode(obj: Any) -> list:
        return adapter.validate_python(_unwrap_list(obj))

    return decode


def _decode_lynch(obj: Any) -> LynchVerdict:
    return LynchVerdict.model_validate(obj)


def _decode_manager(obj: Any) -> ManagerVerdict:
    return ManagerVerdict.model_validate(obj)


DECODERS: dict[OperationKind, Callable[[Any], Any]] = {
    OperationKind.LYNCH: _decode_lynch,
    OperationKind.MANAGER: _decode_manager,
    OperationKind.TRENDS: _list_decoder(TrendItem),
    OperationKind.TECH: _list_decoder(TechStockItem),
    OperationKind.AHP: _list_decoder(AhpStockItem),
    OperationKind.MATRIX: _list_decoder(MatrixItem),
}

# Kinds whose records carry a `sources` list built from grounding metadata.
CITATION_KINDS = frozenset({OperationKind.MANAGER})


def decode_payload(kind: OperationKind, obj: Any) -> Any:
    try:
        decoder = DECODERS[kind]
    except KeyError:
        raise ValueError(f"No JSON decoder for operation kind {kind.value!r}") from None
    try:
        return decoder(obj)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"{kind.value} response does not match the expected shape: {exc.error_count()} error(s)",
            raw=json.dumps(obj, ensure_ascii=False, default=str)[:2000],
        ) from exc


def normalize(kind: OperationKind, reply: ProviderReply) -> Any:
    """Produce the typed result for *kind* from a provider reply."""
    if kind is OperationKind.DIGEST:
        return normalize_digest(reply.text)

    if not (reply.text or "").strip():
        raise ProviderError(f"{kind.value}: provider returned no text")

    obj = parse_json_payload(reply.text)
    if kind in CITATION_KINDS:
        # Citations come only from grounding metadata, never from the model text.
        if isinstance(obj, dict):
            obj = {k: v for k, v in obj.items() if k != "sources"}
        record = decode_payload(kind, obj)
        return record.model_copy(update={"sources": extract_sources(reply.grounding_chunks)})
    return decode_payload(kind, obj)
