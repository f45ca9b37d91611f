"""Live network backends behind the AI gateway.

Each backend performs exactly one request per call and converts every
failure into a :class:`~inkpilot.ai.errors.GatewayError`; nothing here
retries or raises across the gateway boundary.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, List, Protocol, Union, cast

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from ..services.settings import Settings
from .ai_types import GatewayResult, SearchResult
from .errors import GatewayError, classify_status
from .prompts import SYSTEM_PROMPT

LOGGER = logging.getLogger(__name__)

SAFETY_CATEGORIES: tuple[str, ...] = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)
SAFETY_THRESHOLD = "BLOCK_MEDIUM_AND_ABOVE"


class CompletionBackend(Protocol):
    """A single-prompt text generation service."""

    async def generate(self, prompt: str, *, api_key: str) -> GatewayResult[str]:
        ...

    async def aclose(self) -> None:
        ...


class SearchBackend(Protocol):
    """A web search service returning ``{title, snippet, url}`` items."""

    async def search(self, query: str, *, api_key: str, max_results: int) -> GatewayResult[List[SearchResult]]:
        ...

    async def aclose(self) -> None:
        ...


SettingsSource = Union[Settings, Callable[[], Settings]]


def _as_source(settings: SettingsSource) -> Callable[[], Settings]:
    if isinstance(settings, Settings):
        return lambda: settings
    return settings


class _HttpBackend:
    """Owns (or borrows) an ``httpx.AsyncClient``.

    Settings are read through a callable on every request so credential or
    model changes made in the AI context apply to the next call.
    """

    def __init__(self, settings: SettingsSource, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings_source = _as_source(settings)
        self._client = client
        self._owns_client = client is None

    @property
    def settings(self) -> Settings:
        return self._settings_source()

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.request_timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class GeminiBackend(_HttpBackend):
    """Google Generative Language ``generateContent`` over plain HTTP."""

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        settings = self.settings
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": settings.temperature,
                "topK": 1,
                "topP": 1,
                "maxOutputTokens": settings.max_output_tokens,
            },
            "safetySettings": [
                {"category": category, "threshold": SAFETY_THRESHOLD} for category in SAFETY_CATEGORIES
            ],
        }

    def endpoint(self) -> str:
        base = self.settings.gemini_base_url.rstrip("/")
        return f"{base}/models/{self.settings.model}:generateContent"

    async def generate(self, prompt: str, *, api_key: str) -> GatewayResult[str]:
        try:
            response = await self._http().post(
                self.endpoint(),
                params={"key": api_key},
                json=self.build_payload(prompt),
            )
        except httpx.HTTPError as exc:
            LOGGER.warning("Gemini request failed: %s", exc)
            return GatewayResult.fail(GatewayError.transport(str(exc) or type(exc).__name__))

        error = classify_status(response.status_code, _error_message(response))
        if error is not None:
            LOGGER.warning("Gemini returned HTTP %s", response.status_code)
            return GatewayResult.fail(error)

        try:
            data = response.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            LOGGER.warning("Gemini response could not be parsed: %s", exc)
            return GatewayResult.fail(GatewayError.transport(f"Malformed response: {exc}"))
        return GatewayResult.ok(str(text))


class OpenAIBackend:
    """Chat completion through the official ``openai`` async client."""

    def __init__(self, settings: SettingsSource, *, client: AsyncOpenAI | None = None) -> None:
        self._settings_source = _as_source(settings)
        self._client = client
        # Identity of the client we built ourselves; injected clients are never rebuilt.
        self._client_identity: tuple[str, str] | None = None

    @property
    def settings(self) -> Settings:
        return self._settings_source()

    def _client_for(self, api_key: str) -> AsyncOpenAI:
        settings = self.settings
        identity = (api_key, settings.openai_base_url)
        injected = self._client is not None and self._client_identity is None
        if not injected and identity != self._client_identity:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=settings.openai_base_url,
                timeout=settings.request_timeout,
                max_retries=0,
            )
            self._client_identity = identity
        return cast(AsyncOpenAI, self._client)

    async def generate(self, prompt: str, *, api_key: str) -> GatewayResult[str]:
        settings = self.settings
        try:
            response = await self._client_for(api_key).chat.completions.create(
                model=settings.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=settings.max_output_tokens,
                temperature=settings.temperature,
            )
        except APIStatusError as exc:
            LOGGER.warning("OpenAI returned HTTP %s", exc.status_code)
            error = classify_status(exc.status_code, exc.message)
            return GatewayResult.fail(error or GatewayError.backend(exc.status_code, exc.message))
        except APIConnectionError as exc:
            LOGGER.warning("OpenAI connection failed: %s", exc)
            return GatewayResult.fail(GatewayError.transport(str(exc)))
        except OpenAIError as exc:
            return GatewayResult.fail(GatewayError.transport(str(exc)))

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as exc:
            return GatewayResult.fail(GatewayError.transport(f"Malformed response: {exc}"))
        return GatewayResult.ok(content or "")

    async def aclose(self) -> None:
        close = getattr(self._client, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result


class WebSearchBackend(_HttpBackend):
    """Minimal ``POST {query} -> {results: [...]}`` search contract (Tavily-shaped)."""

    async def search(self, query: str, *, api_key: str, max_results: int) -> GatewayResult[List[SearchResult]]:
        payload = {"query": query, "max_results": max_results, "search_depth": "basic"}
        try:
            response = await self._http().post(
                self.settings.search_api_url,
                json=payload,
                headers={"Authorization": f"Bearer {api_key}"},
            )
        except httpx.HTTPError as exc:
            LOGGER.warning("Search request failed: %s", exc)
            return GatewayResult.fail(GatewayError.transport(str(exc) or type(exc).__name__))

        error = classify_status(response.status_code, _error_message(response))
        if error is not None:
            return GatewayResult.fail(error)

        try:
            items = response.json()["results"]
            results = [SearchResult.from_payload(item) for item in items]
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            LOGGER.warning("Search response could not be parsed: %s", exc)
            return GatewayResult.fail(GatewayError.transport(f"Malformed response: {exc}"))
        return GatewayResult.ok(results)


def build_completion_backend(provider: str, settings: SettingsSource) -> CompletionBackend:
    if provider == "openai":
        return OpenAIBackend(settings)
    return GeminiBackend(settings)


def _error_message(response: httpx.Response) -> str:
    if response.is_success:
        return ""
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or "Unknown error"
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return "Unknown error"


__all__ = [
    "CompletionBackend",
    "SearchBackend",
    "GeminiBackend",
    "OpenAIBackend",
    "WebSearchBackend",
    "build_completion_backend",
    "SAFETY_CATEGORIES",
]
