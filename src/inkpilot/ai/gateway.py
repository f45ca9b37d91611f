"""Uniform entry point for text completion and web search.

Every call marks the :class:`~inkpilot.ai.context.AIContext` busy for its
whole duration and returns a :class:`~inkpilot.ai.ai_types.GatewayResult`.
The live/demo decision is made per call from the context's current settings.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List

from .ai_types import GatewayResult, SearchResult
from .backends import CompletionBackend, SearchBackend, WebSearchBackend, build_completion_backend
from .context import AIContext
from .errors import GatewayError
from .prompts import DEMO_REPLIES, build_prompt, demo_reply_for

LOGGER = logging.getLogger(__name__)

DEMO_SEARCH_SNIPPET = (
    "This is a mock search result. In production, this would be replaced with actual "
    "web search results from a configured search API."
)
DEMO_SEARCH_URL = "https://example.com"


class AIGateway:
    """Completion and search with a deterministic demo fallback."""

    def __init__(
        self,
        context: AIContext,
        *,
        completion_backend: CompletionBackend | None = None,
        search_backend: SearchBackend | None = None,
    ) -> None:
        self._context = context
        self._injected_completion = completion_backend
        self._completion_backends: Dict[str, CompletionBackend] = {}
        self._search_backend = search_backend

    @property
    def context(self) -> AIContext:
        return self._context

    @property
    def is_loading(self) -> bool:
        return self._context.is_loading

    async def complete(self, instruction: str, grounding_text: str = "") -> GatewayResult[str]:
        """Generate text for ``instruction`` applied to ``grounding_text``."""

        with self._context.busy.track("complete"):
            try:
                if not self._context.completion_is_live():
                    return await self._demo_complete(instruction)
                prompt = build_prompt(instruction, grounding_text)
                credential = self._context.credential or ""
                LOGGER.debug(
                    "Live completion via %s (%d prompt chars)",
                    self._context.settings.provider,
                    len(prompt),
                )
                result = await self._completion_backend().generate(prompt, api_key=credential)
            except Exception as exc:
                LOGGER.exception("Completion failed unexpectedly")
                return GatewayResult.fail(GatewayError.transport(str(exc) or type(exc).__name__))
        if not result.success:
            LOGGER.warning("Completion failed: %s", result.error)
        return result

    async def search(self, query: str) -> GatewayResult[List[SearchResult]]:
        """Search the web for ``query``."""

        with self._context.busy.track("search"):
            try:
                if not self._context.search_is_live():
                    return await self._demo_search(query)
                settings = self._context.settings
                LOGGER.debug("Live search for %r", query)
                result = await self._search().search(
                    query,
                    api_key=settings.search_api_key,
                    max_results=settings.search_max_results,
                )
            except Exception as exc:
                LOGGER.exception("Search failed unexpectedly")
                return GatewayResult.fail(GatewayError.transport(str(exc) or type(exc).__name__))
        if not result.success:
            LOGGER.warning("Search failed: %s", result.error)
        return result

    async def aclose(self) -> None:
        """Release network clients held by the live backends."""

        backends: list[CompletionBackend | SearchBackend] = list(self._completion_backends.values())
        if self._injected_completion is not None:
            backends.append(self._injected_completion)
        if self._search_backend is not None:
            backends.append(self._search_backend)
        for backend in backends:
            await backend.aclose()

    async def _demo_complete(self, instruction: str) -> GatewayResult[str]:
        await asyncio.sleep(self._context.settings.demo_delay_seconds)
        reply = demo_reply_for(instruction)
        LOGGER.debug("Demo completion matched %s", reply.name)
        return GatewayResult.ok(DEMO_REPLIES[reply])

    async def _demo_search(self, query: str) -> GatewayResult[List[SearchResult]]:
        await asyncio.sleep(self._context.settings.demo_search_delay_seconds)
        return GatewayResult.ok(
            [SearchResult(title=f"Search results for: {query}", snippet=DEMO_SEARCH_SNIPPET, url=DEMO_SEARCH_URL)]
        )

    def _completion_backend(self) -> CompletionBackend:
        if self._injected_completion is not None:
            return self._injected_completion
        provider = self._context.settings.provider
        backend = self._completion_backends.get(provider)
        if backend is None:
            backend = build_completion_backend(provider, lambda: self._context.settings)
            self._completion_backends[provider] = backend
        return backend

    def _search(self) -> SearchBackend:
        if self._search_backend is None:
            self._search_backend = WebSearchBackend(lambda: self._context.settings)
        return self._search_backend


__all__ = ["AIGateway", "DEMO_SEARCH_SNIPPET", "DEMO_SEARCH_URL"]
