"""Value types shared by the gateway and its callers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Mapping, TypeVar

from .errors import GatewayError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class GatewayResult(Generic[T]):
    """Outcome of a gateway call: either ``value`` or ``error`` is set."""

    value: T | None = None
    error: GatewayError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: T) -> "GatewayResult[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: GatewayError) -> "GatewayResult[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value, raising ``RuntimeError`` for failed results."""

        if self.error is not None:
            raise RuntimeError(f"Gateway call failed: {self.error.user_message()}")
        return self.value  # type: ignore[return-value]


@dataclass(slots=True)
class SearchResult:
    """One web search hit, optionally enriched with an AI summary."""

    title: str
    snippet: str
    url: str
    ai_summary: str | None = None
    is_error: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SearchResult":
        """Build a result from a search backend item (``snippet`` or ``content`` body)."""

        snippet = payload.get("snippet")
        if snippet is None:
            snippet = payload.get("content", "")
        return cls(
            title=str(payload.get("title") or ""),
            snippet=str(snippet or ""),
            url=str(payload.get("url") or ""),
        )

    def as_dict(self) -> dict[str, Any]:
        return {"title": self.title, "snippet": self.snippet, "url": self.url}


__all__ = ["GatewayResult", "SearchResult"]
