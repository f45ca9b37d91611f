"""AI gateway, backends and prompt tables."""

from .ai_types import GatewayResult, SearchResult
from .context import AIContext, BusyTracker
from .errors import ErrorKind, GatewayError
from .gateway import AIGateway
from .prompts import ActionKind

__all__ = [
    "AIContext",
    "AIGateway",
    "ActionKind",
    "BusyTracker",
    "ErrorKind",
    "GatewayError",
    "GatewayResult",
    "SearchResult",
]
