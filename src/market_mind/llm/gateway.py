"""
Request gateway: one async call per operation kind.

Each operation sends a fixed instruction template (plus the caller's news text for
the two personas) to the provider exactly once and returns the normalized record.
ProviderError / MalformedResponseError propagate to the caller; nothing is retried
and nothing is counted here (usage tracking belongs to the controller).

Usage:
    from market_mind.llm.gateway import Gateway

    gateway = Gateway.from_settings(settings)
    verdict = await gateway.analyze_lynch(news_text)
    ranking = await gateway.rank_ahp()
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from market_mind.config import Settings
from market_mind.llm import prompts
from market_mind.llm.normalize import normalize
from market_mind.llm.providers import MIME_JSON, MIME_TEXT, GenerateRequest, Provider, make_provider
from market_mind.models import (
    AhpStockItem,
    LynchVerdict,
    ManagerVerdict,
    MatrixItem,
    OperationKind,
    TechStockItem,
    TrendItem,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationSpec:
    kind: OperationKind
    deep_model: bool
    use_search: bool
    mime_type: str
    system_instruction: str | None = None
    response_schema: dict[str, Any] | None = None
    # Persona kinds build contents from the caller's text; scans use a fixed prompt.
    contents: Callable[[str], str] | None = None
    fixed_prompt: str | None = None


OPERATIONS: dict[OperationKind, OperationSpec] = {
    OperationKind.LYNCH: OperationSpec(
        kind=OperationKind.LYNCH,
        deep_model=True,
        use_search=False,
        mime_type=MIME_JSON,
        system_instruction=prompts.LYNCH_SYSTEM_PROMPT,
        response_schema=prompts.LYNCH_SCHEMA,
        contents=prompts.lynch_contents,
    ),
    OperationKind.MANAGER: OperationSpec(
        kind=OperationKind.MANAGER,
        deep_model=False,
        use_search=True,
        mime_type=MIME_JSON,
        system_instruction=prompts.MANAGER_SYSTEM_PROMPT,
        contents=prompts.manager_contents,
    ),
    OperationKind.TRENDS: OperationSpec(
        kind=OperationKind.TRENDS, deep_model=False, use_search=True, mime_type=MIME_JSON, fixed_prompt=prompts.TRENDS_PROMPT
    ),
    OperationKind.DIGEST: OperationSpec(
        kind=OperationKind.DIGEST, deep_model=False, use_search=True, mime_type=MIME_TEXT, fixed_prompt=prompts.DIGEST_PROMPT
    ),
    OperationKind.TECH: OperationSpec(
        kind=OperationKind.TECH, deep_model=True, use_search=True, mime_type=MIME_JSON, fixed_prompt=prompts.TECH_PROMPT
    ),
    OperationKind.AHP: OperationSpec(
        kind=OperationKind.AHP, deep_model=True, use_search=True, mime_type=MIME_JSON, fixed_prompt=prompts.AHP_PROMPT
    ),
    OperationKind.MATRIX: OperationSpec(
        kind=OperationKind.MATRIX, deep_model=False, use_search=True, mime_type=MIME_JSON, fixed_prompt=prompts.MATRIX_PROMPT
    ),
}


class Gateway:
    def __init__(self, provider: Provider, *, fast_model: str, deep_model: str):
        self.provider = provider
        self.fast_model = fast_model
        self.deep_model = deep_model

    @classmethod
    def from_settings(cls, settings: Settings, provider: Provider | None = None) -> "Gateway":
        return cls(
            provider or make_provider(settings),
            fast_model=settings.fast_model,
            deep_model=settings.deep_model,
        )

    def build_request(self, kind: OperationKind, text: str | None = None) -> GenerateRequest:
        op = OPERATIONS[kind]
        if op.contents is not None:
            if text is None or not text.strip():
                raise ValueError(f"{kind.value} analysis needs non-empty news text")
            contents = op.contents(text)
        else:
            contents = op.fixed_prompt or ""
        return GenerateRequest(
            model=self.deep_model if op.deep_model else self.fast_model,
            contents=contents,
            system_instruction=op.system_instruction,
            use_search=op.use_search,
            response_schema=op.response_schema,
            response_mime_type=op.mime_type,
        )

    async def run(self, kind: OperationKind, text: str | None = None) -> Any:
        request = self.build_request(kind, text)
        logger.debug("-> %s %s (search=%s)", kind.value, request.model, request.use_search)
        reply = await self.provider.generate(request)
        return normalize(kind, reply)

    async def analyze_lynch(self, news_text: str) -> LynchVerdict:
        return await self.run(OperationKind.LYNCH, news_text)

    async def analyze_manager(self, news_text: str) -> ManagerVerdict:
        return await self.run(OperationKind.MANAGER, news_text)

    async def scan_trends(self) -> list[TrendItem]:
        return await self.run(OperationKind.TRENDS)

    async def fetch_digest(self) -> str:
        return await self.run(OperationKind.DIGEST)

    async def scan_tech(self) -> list[TechStockItem]:
        return await self.run(OperationKind.TECH)

    async def rank_ahp(self) -> list[AhpStockItem]:
        return await self.run(OperationKind.AHP)

    async def scan_matrix(self) -> list[MatrixItem]:
        return await self.run(OperationKind.MATRIX)
