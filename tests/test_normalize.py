from __future__ import annotations

import pytest

from market_mind.errors import MalformedResponseError, ProviderError
from market_mind.llm.normalize import (
    DIGEST_FALLBACK,
    extract_sources,
    normalize,
    parse_json_payload,
    strip_code_fence,
)
from market_mind.llm.providers import ProviderReply
from market_mind.models import LynchAction, LynchCategory, ManagerAction, MatrixAction, OperationKind


def test_strip_code_fence_variants():
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('```\n[1, 2]\n```') == "[1, 2]"
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


def test_parse_json_payload_accepts_fenced_and_bare():
    assert parse_json_payload('{"a": 1}') == {"a": 1}
    assert parse_json_payload('```json\n[{"ticker": "NVDA"}]\n```') == [{"ticker": "NVDA"}]


def test_parse_json_payload_rejects_non_json():
    with pytest.raises(MalformedResponseError) as ei:
        parse_json_payload("not json")
    assert ei.value.raw == "not json"


def test_fenced_trends_reply_decodes_to_items():
    reply = ProviderReply(text='```json\n[{"ticker":"NVDA","company":"Nvidia","sector":"Semis","price_trend":"+4%","catalyst":"GTC"}]\n```')
    items = normalize(OperationKind.TRENDS, reply)
    assert len(items) == 1
    assert items[0].ticker == "NVDA"
    assert items[0].catalyst == "GTC"


def test_not_json_reply_is_malformed():
    with pytest.raises(MalformedResponseError):
        normalize(OperationKind.TECH, ProviderReply(text="not json"))


def test_empty_reply_is_provider_error():
    with pytest.raises(ProviderError):
        normalize(OperationKind.AHP, ProviderReply(text=None))
    with pytest.raises(ProviderError):
        normalize(OperationKind.MATRIX, ProviderReply(text="   "))


def test_wrapped_list_is_unwrapped():
    reply = ProviderReply(text='{"stocks": [{"ticker": "AMD", "current_price": 160.5}]}')
    items = normalize(OperationKind.TECH, reply)
    assert [i.ticker for i in items] == ["AMD"]
    # bare numbers are kept as display strings
    assert items[0].current_price == "160.5"


def test_shape_mismatch_is_malformed():
    with pytest.raises(MalformedResponseError):
        normalize(OperationKind.AHP, ProviderReply(text='[{"ticker": "AMD"}]'))  # rank missing
    with pytest.raises(MalformedResponseError):
        normalize(OperationKind.TRENDS, ProviderReply(text='{"a": 1, "b": 2}'))


class TestDigest:
    def test_text_is_passed_through(self):
        assert normalize(OperationKind.DIGEST, ProviderReply(text="  ตลาดปรับตัวขึ้น  ")) == "ตลาดปรับตัวขึ้น"

    def test_empty_text_falls_back(self):
        assert normalize(OperationKind.DIGEST, ProviderReply(text=None)) == DIGEST_FALLBACK
        assert normalize(OperationKind.DIGEST, ProviderReply(text="")) == DIGEST_FALLBACK


class TestPersonas:
    def test_lynch_normalizes_category_and_action(self):
        reply = ProviderReply(text='{"ticker":"KO","category":"stalwarts","thesis":"t","what_to_check":[],"action":"buy"}')
        v = normalize(OperationKind.LYNCH, reply)
        assert v.category is LynchCategory.STALWARTS
        assert v.action is LynchAction.BUY

    def test_lynch_unknown_category(self):
        reply = ProviderReply(text='{"ticker":"KO","category":"Meme Stocks","action":"Pass"}')
        assert normalize(OperationKind.LYNCH, reply).category is LynchCategory.UNKNOWN

    def test_lynch_requires_action(self):
        with pytest.raises(MalformedResponseError):
            normalize(OperationKind.LYNCH, ProviderReply(text='{"ticker":"KO"}'))

    def test_manager_sources_come_from_grounding(self):
        reply = ProviderReply(
            text='{"summary":"s","key_risks":["r"],"market_impact":"m","verdict":"v","action":"SELL","sources":[]}',
            grounding_chunks=[
                {"web": {"title": "Reuters", "uri": "https://reuters.com/x"}},
                {"web": None},
                {"web": {"title": "no link", "uri": None}},
                {"web": {"title": None, "uri": "https://ft.com/y"}},
            ],
        )
        v = normalize(OperationKind.MANAGER, reply)
        assert v.action is ManagerAction.SELL
        assert [(s.title, s.uri) for s in v.sources] == [
            ("Reuters", "https://reuters.com/x"),
            ("", "https://ft.com/y"),
        ]

    def test_manager_without_grounding_keeps_sources_empty(self):
        reply = ProviderReply(text='{"summary":"s","action":"Hold"}')
        assert normalize(OperationKind.MANAGER, reply).sources == []

    def test_manager_ignores_sources_written_by_the_model(self):
        reply = ProviderReply(
            text='{"summary":"s","action":"Buy","sources":["https://x.com"]}',
            grounding_chunks=[{"web": {"title": "WSJ", "uri": "https://wsj.com/a"}}],
        )
        v = normalize(OperationKind.MANAGER, reply)
        assert [(s.title, s.uri) for s in v.sources] == [("WSJ", "https://wsj.com/a")]

    def test_manager_drops_uncited_sources_without_grounding(self):
        reply = ProviderReply(text='{"summary":"s","action":"Buy","sources":[{"title":"made up","uri":"https://fake"}]}')
        assert normalize(OperationKind.MANAGER, reply).sources == []


def test_matrix_action_and_quadrant():
    reply = ProviderReply(text='[{"ticker":"PLTR","urgency":80,"importance":30,"action":"buy now","reason":"breakout"}]')
    (item,) = normalize(OperationKind.MATRIX, reply)
    assert item.action is MatrixAction.BUY_NOW
    assert item.quadrant == "Delegate"


def test_extract_sources_handles_empty():
    assert extract_sources([]) == []
    assert extract_sources([{}]) == []
