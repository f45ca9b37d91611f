"""Search-and-summarize side panel."""

from .search_panel import AgentPanel, PageFetcher, PlaceholderPageFetcher

__all__ = ["AgentPanel", "PageFetcher", "PlaceholderPageFetcher"]
