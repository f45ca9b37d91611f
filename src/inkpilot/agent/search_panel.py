"""Agent panel: web search with automatic summaries and URL crawling."""

from __future__ import annotations

import json
import logging
from typing import Protocol

from ..ai.ai_types import SearchResult
from ..ai.gateway import AIGateway
from ..ai.prompts import crawl_instruction, summary_instruction
from ..editor.document_model import DocumentSurface
from ..ui.events import ContentInserted, EventBus, SearchResultsUpdated

LOGGER = logging.getLogger(__name__)

ERROR_RESULT_URL = "#"
PLACEHOLDER_PAGE_CONTENT = "This would contain the crawled content from the URL"


class PageFetcher(Protocol):
    """Retrieves the readable text of a web page."""

    async def fetch(self, url: str) -> str:
        ...


class PlaceholderPageFetcher:
    """Returns fixed stand-in text instead of retrieving the page."""

    def __init__(self, content: str = PLACEHOLDER_PAGE_CONTENT) -> None:
        self._content = content

    async def fetch(self, url: str) -> str:
        LOGGER.debug("Placeholder fetch for %s", url)
        return self._content


def error_result(message: str) -> SearchResult:
    return SearchResult(
        title="Search Error",
        snippet=f"Failed to search: {message}",
        url=ERROR_RESULT_URL,
        is_error=True,
    )


class AgentPanel:
    """Holds the current query and result list for the search side panel."""

    def __init__(
        self,
        gateway: AIGateway,
        surface: DocumentSurface,
        *,
        bus: EventBus | None = None,
        fetcher: PageFetcher | None = None,
    ) -> None:
        self._gateway = gateway
        self._surface = surface
        self._bus = bus
        self._fetcher: PageFetcher = fetcher or PlaceholderPageFetcher()
        self._query = ""
        self._results: list[SearchResult] = []
        self._searching = 0
        self._generation = 0

    @property
    def query(self) -> str:
        return self._query

    @property
    def results(self) -> tuple[SearchResult, ...]:
        return tuple(self._results)

    @property
    def is_searching(self) -> bool:
        return self._searching > 0

    async def search(self, query: str, *, summarize: bool = True) -> tuple[SearchResult, ...]:
        """Search ``query`` and, when ``summarize`` is set, attach an AI summary
        to the first result.

        Searches may overlap. Only the most recently started one updates the
        panel; an older search that resolves late returns its results without
        touching the panel.
        """

        if not query or not query.strip():
            return self.results
        self._generation += 1
        generation = self._generation
        self._query = query
        self._set_results([])
        self._searching += 1
        try:
            outcome = await self._gateway.search(query)
            if not outcome.success:
                message = outcome.error.user_message() if outcome.error else "Unknown error"
                LOGGER.warning("Agent search for %r failed: %s", query, message)
                results = [error_result(message)]
                self._publish_if_current(generation, results)
                return tuple(results)

            results = list(outcome.value or [])
            self._publish_if_current(generation, results)
            if summarize and results and self._is_current(generation):
                await self._summarize(query, results, generation)
        finally:
            self._searching -= 1
        return tuple(results)

    async def crawl(self, url: str) -> str | None:
        """Summarize the page at ``url`` and insert the summary at the cursor."""

        if not url or url == ERROR_RESULT_URL:
            return None
        content = await self._fetcher.fetch(url)
        outcome = await self._gateway.complete(crawl_instruction(url), content)
        if not outcome.success or not outcome.value:
            LOGGER.warning(
                "Crawl summary for %s failed: %s",
                url,
                outcome.error.user_message() if outcome.error else "empty response",
            )
            return None
        text = f"\n\n### Content from {url}\n\n{outcome.value}\n\n"
        self._insert(text, source="crawl")
        return text

    def insert_summary(self, summary: str) -> str:
        text = f"\n\n## {self._query}\n\n{summary}\n\n"
        self._insert(text, source="summary")
        return text

    def insert(self, text: str) -> str:
        self._insert(text, source="agent")
        return text

    async def _summarize(self, query: str, results: list[SearchResult], generation: int) -> None:
        grounding = json.dumps([result.as_dict() for result in results], indent=2)
        outcome = await self._gateway.complete(summary_instruction(query), grounding)
        if not outcome.success or not outcome.value:
            LOGGER.info("Search summary unavailable for %r", query)
            return
        if not self._is_current(generation):
            LOGGER.debug("Dropping summary for superseded search %r", query)
            return
        results[0].ai_summary = outcome.value
        self._set_results(results)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _publish_if_current(self, generation: int, results: list[SearchResult]) -> None:
        if self._is_current(generation):
            self._set_results(results)
        else:
            LOGGER.debug("Search %s superseded; results not shown", generation)

    def _set_results(self, results: list[SearchResult]) -> None:
        self._results = results
        if self._bus is not None:
            self._bus.publish(SearchResultsUpdated(query=self._query, results=tuple(results)))

    def _insert(self, text: str, *, source: str) -> None:
        self._surface.insert_at_cursor(text)
        if self._bus is not None:
            self._bus.publish(ContentInserted(text=text, source=source))


__all__ = [
    "AgentPanel",
    "ERROR_RESULT_URL",
    "PageFetcher",
    "PlaceholderPageFetcher",
    "error_result",
]
