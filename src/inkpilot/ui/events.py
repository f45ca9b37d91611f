"""Event bus and event types connecting the editor, toolbar and assistant panels.

Components publish small dataclass events instead of holding references to
each other, so the selection tracker never needs to know about the preview
controller and the chat router never needs to know about the Qt widgets.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, DefaultDict, Generic, TypeVar
from weakref import WeakMethod

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..ai.ai_types import SearchResult
    from ..ai.prompts import ActionKind
    from ..chat.message_model import ChatMessage
    from ..editor.document_model import Anchor, Selection
    from .domain.preview_controller import PreviewState

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for every event published on the :class:`EventBus`."""


# =============================================================================
# Gateway events
# =============================================================================


@dataclass(slots=True)
class LoadingChanged(Event):
    """Emitted when the AI context flips between idle and busy.

    Attributes:
        is_loading: True while at least one AI or search call is in flight.
        in_flight: Number of calls in flight after the change.
        labels: Labels of the calls still in flight, oldest first.
    """

    is_loading: bool
    in_flight: int
    labels: tuple[str, ...] = ()


# =============================================================================
# Selection & toolbar events
# =============================================================================


@dataclass(slots=True)
class SelectionChanged(Event):
    """Emitted by the selection tracker after every selection notification.

    ``selection`` and ``anchor`` are both None when the selection collapsed.
    """

    selection: Selection | None
    anchor: Anchor | None


@dataclass(slots=True)
class ToolbarVisibilityChanged(Event):
    """Emitted when the floating toolbar is shown, moved or hidden."""

    visible: bool
    anchor: Anchor | None = None


@dataclass(slots=True)
class ActionSelected(Event):
    """Emitted once per toolbar click."""

    action: ActionKind


# =============================================================================
# Preview events
# =============================================================================


@dataclass(slots=True)
class PreviewStaged(Event):
    """Emitted when an AI suggestion is ready for the user to confirm or cancel."""

    preview: PreviewState


@dataclass(slots=True)
class PreviewCleared(Event):
    """Emitted when a staged preview is discarded.

    Attributes:
        committed: True when the suggestion was written into the document.
        reason: ``"confirmed"``, ``"cancelled"``, ``"stale"`` or ``"superseded"``.
    """

    committed: bool
    reason: str


@dataclass(slots=True)
class TransformFailed(Event):
    """Emitted when a transform request or its confirmation fails."""

    action: ActionKind
    message: str


# =============================================================================
# Assistant panel events
# =============================================================================


@dataclass(slots=True)
class ChatMessageAppended(Event):
    """Emitted for every message appended to the chat transcript."""

    message: ChatMessage


@dataclass(slots=True)
class SearchResultsUpdated(Event):
    """Emitted when the agent panel's result list changes."""

    query: str
    results: tuple[SearchResult, ...]


@dataclass(slots=True)
class ContentInserted(Event):
    """Emitted after assistant content was inserted at the document cursor.

    Attributes:
        text: The inserted text.
        source: ``"chat"``, ``"summary"``, ``"crawl"`` or ``"agent"``.
    """

    text: str
    source: str


class EventBus(Generic[E]):
    """Synchronous publish/subscribe bus keyed by event class.

    Bound-method handlers are held through :class:`weakref.WeakMethod` so a
    discarded widget or controller silently drops out of dispatch; plain
    functions and lambdas are held strongly. A handler that raises is logged
    and the remaining handlers still run.

    Not thread-safe: publish and subscribe from the event loop thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of exactly ``event_type``."""

        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""

        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                logger.debug("Unsubscribed %s from %s", _handler_name(handler), event_type.__name__)
                return

    def publish(self, event: E) -> None:
        """Invoke every live handler registered for ``type(event)`` in subscription order."""

        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            logger.debug("No handlers for %s", event_type.__name__)
            return

        logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))
        dead: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised while handling %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for handler_ref in dead:
            if handler_ref in handlers:
                handlers.remove(handler_ref)

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "LoadingChanged",
    "SelectionChanged",
    "ToolbarVisibilityChanged",
    "ActionSelected",
    "PreviewStaged",
    "PreviewCleared",
    "TransformFailed",
    "ChatMessageAppended",
    "SearchResultsUpdated",
    "ContentInserted",
]
