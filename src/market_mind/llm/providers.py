"""
Provider adapters for the hosted generative model.

Each adapter turns a provider-neutral ``GenerateRequest`` into one SDK call and
the SDK response into a ``ProviderReply``:

    reply.text              -> raw text payload (None when the model returned nothing)
    reply.grounding_chunks  -> [{"web": {"title": ..., "uri": ...}}, {"web": None}, ...]

Usage:
    from market_mind.llm.providers import make_provider

    provider = make_provider(settings)
    reply = await provider.generate(GenerateRequest(model="...", contents="..."))
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from market_mind.config import Settings
from market_mind.errors import ProviderError

logger = logging.getLogger(__name__)

MIME_TEXT = "text/plain"
MIME_JSON = "application/json"


class LLMProvider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"


@dataclass(frozen=True)
class GenerateRequest:
    model: str
    contents: str
    system_instruction: str | None = None
    use_search: bool = False
    response_schema: dict[str, Any] | None = None
    response_mime_type: str = MIME_TEXT


@dataclass(frozen=True)
class ProviderReply:
    text: str | None
    grounding_chunks: list[dict[str, Any]] = field(default_factory=list)


class Provider(Protocol):
    name: str

    async def generate(self, request: GenerateRequest) -> ProviderReply: ...


class GeminiProvider:
    """Google Gemini through the ``google-genai`` async client (supports Search grounding)."""

    name = LLMProvider.GEMINI.value

    def __init__(self, api_key: str | None, client: Any = None):
        self._api_key = api_key
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ProviderError("Missing GEMINI_API_KEY in environment / .env")
            from google import genai

            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def generate(self, request: GenerateRequest) -> ProviderReply:
        from google.genai import types

        config_kwargs: dict[str, Any] = {"response_mime_type": request.response_mime_type}
        if request.system_instruction:
            config_kwargs["system_instruction"] = request.system_instruction
        if request.use_search:
            config_kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]
        if request.response_schema is not None:
            config_kwargs["response_json_schema"] = request.response_schema

        client = self._get_client()
        try:
            resp = await client.aio.models.generate_content(
                model=request.model,
                contents=request.contents,
                config=types.GenerateContentConfig(**config_kwargs),
            )
        except Exception as exc:
            raise ProviderError(f"Gemini request failed ({request.model}): {exc}") from exc

        return ProviderReply(text=resp.text, grounding_chunks=_gemini_chunks(resp))


def _gemini_chunks(resp: Any) -> list[dict[str, Any]]:
    candidates = getattr(resp, "candidates", None) or []
    if not candidates:
        return []
    meta = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(meta, "grounding_chunks", None) or []
    out: list[dict[str, Any]] = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        if web is None:
            out.append({"web": None})
        else:
            out.append({"web": {"title": getattr(web, "title", None), "uri": getattr(web, "uri", None)}})
    return out


class OpenAIProvider:
    """
    OpenAI-compatible chat completions (``OPENAI_BASE_URL`` may point at any compatible server).

    There is no hosted search tool on this path, so grounding requests come back without citations.
    """

    name = LLMProvider.OPENAI.value

    def __init__(self, api_key: str | None, base_url: str | None = None, client: Any = None):
        self._api_key = api_key
        self._base_url = base_url
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ProviderError("Missing OPENAI_API_KEY in environment / .env")
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    async def generate(self, request: GenerateRequest) -> ProviderReply:
        if request.use_search:
            logger.debug("Search grounding is not available on the OpenAI path (%s)", request.model)

        messages: list[dict[str, str]] = []
        if request.system_instruction:
            messages.append({"role": "system", "content": request.system_instruction})
        contents = request.contents
        if request.response_mime_type == MIME_JSON and request.response_schema is None:
            contents = f"{contents}\n\nReturn ONLY JSON."
        messages.append({"role": "user", "content": contents})

        kwargs: dict[str, Any] = {"model": request.model, "messages": messages}
        if request.response_schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "analysis", "schema": request.response_schema, "strict": True},
            }

        client = self._get_client()
        try:
            resp = await client.chat.completions.create(**kwargs)
        except Exception as exc:
            raise ProviderError(f"OpenAI request failed ({request.model}): {exc}") from exc

        choices = getattr(resp, "choices", None) or []
        text = choices[0].message.content if choices else None
        return ProviderReply(text=text)


def make_provider(settings: Settings) -> Provider:
    name = settings.provider
    if name == LLMProvider.OPENAI.value:
        return OpenAIProvider(api_key=settings.openai_api_key, base_url=settings.openai_base_url)
    if name == LLMProvider.GEMINI.value:
        return GeminiProvider(api_key=settings.gemini_api_key)
    raise ValueError(f"Unknown MARKETMIND_PROVIDER {name!r} (expected gemini|openai)")
