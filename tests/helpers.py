"""Shared test helpers and fake backends.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import asyncio
from typing import List

from inkpilot.ai.ai_types import GatewayResult, SearchResult
from inkpilot.ai.context import AIContext
from inkpilot.ai.errors import GatewayError
from inkpilot.ai.gateway import AIGateway
from inkpilot.services.settings import Settings


class FakeCompletionBackend:
    """Completion backend returning scripted results in order.

    Each entry is either a string (success) or a :class:`GatewayError`. When
    ``gates`` is given, call ``n`` waits on ``gates[n]`` before answering so
    tests can control resolution order.
    """

    def __init__(self, *replies: str | GatewayError, gates: list[asyncio.Event] | None = None) -> None:
        self._replies = list(replies) or ["suggestion"]
        self._gates = list(gates or [])
        self.prompts: list[str] = []
        self.api_keys: list[str] = []
        self.closed = False

    async def generate(self, prompt: str, *, api_key: str) -> GatewayResult[str]:
        index = len(self.prompts)
        self.prompts.append(prompt)
        self.api_keys.append(api_key)
        if index < len(self._gates):
            await self._gates[index].wait()
        reply = self._replies[min(index, len(self._replies) - 1)]
        if isinstance(reply, GatewayError):
            return GatewayResult.fail(reply)
        return GatewayResult.ok(reply)

    async def aclose(self) -> None:
        self.closed = True


class FakeSearchBackend:
    """Search backend returning one scripted result list or error."""

    def __init__(self, results: List[SearchResult] | GatewayError | None = None) -> None:
        self._results = results if results is not None else [
            SearchResult(title="Python", snippet="A programming language.", url="https://python.org"),
        ]
        self.queries: list[str] = []
        self.closed = False

    async def search(self, query: str, *, api_key: str, max_results: int) -> GatewayResult[List[SearchResult]]:
        self.queries.append(query)
        if isinstance(self._results, GatewayError):
            return GatewayResult.fail(self._results)
        return GatewayResult.ok(
            [SearchResult(r.title, r.snippet, r.url) for r in self._results]
        )

    async def aclose(self) -> None:
        self.closed = True


def live_settings(**overrides: object) -> Settings:
    """Settings that put the gateway in live mode for both completion and search."""

    values: dict[str, object] = {
        "api_key": "test-key",
        "search_api_key": "search-key",
        "search_api_url": "https://search.test/api",
        "demo_delay_seconds": 0.0,
        "demo_search_delay_seconds": 0.0,
    }
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


def live_gateway(
    completion: FakeCompletionBackend | None = None,
    search: FakeSearchBackend | None = None,
    **overrides: object,
) -> AIGateway:
    context = AIContext(live_settings(**overrides))
    return AIGateway(
        context,
        completion_backend=completion or FakeCompletionBackend(),
        search_backend=search or FakeSearchBackend(),
    )


def demo_gateway() -> AIGateway:
    context = AIContext(Settings(demo_delay_seconds=0.0, demo_search_delay_seconds=0.0))
    return AIGateway(context)
