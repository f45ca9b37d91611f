"""Preview/confirm workflow for selection transforms.

A toolbar action captures the active selection by value, asks the gateway for
a rewrite and stages the answer next to the original. Nothing touches the
document until :meth:`PreviewController.confirm` runs, and confirm only writes
when the captured range still holds the original text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ...ai.gateway import AIGateway
from ...ai.prompts import ACTION_TEMPLATES, PREVIEW_TITLES, ActionKind
from ...editor.document_model import DocumentSurface, Selection
from ..events import Event, EventBus, PreviewCleared, PreviewStaged, TransformFailed

LOGGER = logging.getLogger(__name__)

STALE_SELECTION_MESSAGE = "The document changed since the text was selected; the suggestion was not applied."


class PreviewPhase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    STAGED = "staged"
    FAILED = "failed"


class ConfirmOutcome(str, Enum):
    APPLIED = "applied"
    STALE = "stale"
    NOTHING_STAGED = "nothing_staged"


@dataclass(frozen=True, slots=True)
class TextStats:
    """Word and character counts for one side of a comparison."""

    words: int
    chars: int

    @classmethod
    def of(cls, text: str) -> "TextStats":
        return cls(words=len(text.split()), chars=len(text))


@dataclass(frozen=True, slots=True)
class ComparisonMetrics:
    """Derived numbers shown beside a staged original/suggestion pair."""

    original: TextStats
    suggestion: TextStats
    changed: bool = True

    @classmethod
    def compare(cls, original: str, suggestion: str) -> "ComparisonMetrics":
        return cls(TextStats.of(original), TextStats.of(suggestion), changed=original != suggestion)

    @property
    def word_delta(self) -> int:
        return self.suggestion.words - self.original.words

    @property
    def char_delta(self) -> int:
        return self.suggestion.chars - self.original.chars

    @staticmethod
    def format_delta(delta: int) -> str:
        return f"+{delta}" if delta > 0 else str(delta)


@dataclass(frozen=True, slots=True)
class TransformRequest:
    action: ActionKind
    source_selection: Selection

    @property
    def instruction(self) -> str:
        return ACTION_TEMPLATES[self.action]


@dataclass(slots=True)
class PreviewState:
    """A suggestion waiting for the user's decision."""

    original: str
    suggestion: str
    action: ActionKind
    source_selection: Selection
    committed: bool = False

    @property
    def title(self) -> str:
        return PREVIEW_TITLES.get(self.action, "AI Suggestion")

    @property
    def metrics(self) -> ComparisonMetrics:
        return ComparisonMetrics.compare(self.original, self.suggestion)

    @property
    def changed(self) -> bool:
        return self.original != self.suggestion


class PreviewController:
    """State machine ``IDLE -> PENDING -> {STAGED, FAILED} -> IDLE``.

    Requests are not cancellable. Each one keeps its own captured selection,
    so a request that resolves after the user moved on still stages against
    the text it was issued for; the newest resolved suggestion replaces any
    older staged one.
    """

    def __init__(
        self,
        gateway: AIGateway,
        surface: DocumentSurface,
        selection_source: Callable[[], Selection | None],
        *,
        bus: EventBus | None = None,
    ) -> None:
        self._gateway = gateway
        self._surface = surface
        self._selection_source = selection_source
        self._bus = bus
        self._preview: PreviewState | None = None
        self._pending = 0
        self._phase = PreviewPhase.IDLE

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def phase(self) -> PreviewPhase:
        return self._phase

    @property
    def preview(self) -> PreviewState | None:
        return self._preview

    @property
    def is_busy(self) -> bool:
        return self._pending > 0

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    async def request_transform(self, action: ActionKind | str) -> PreviewState | None:
        """Run ``action`` over the active selection and stage the result."""

        kind = ActionKind(action)
        selection = self._selection_source()
        if selection is None or selection.is_empty:
            LOGGER.debug("Ignoring %s: no active selection", kind.value)
            return None

        request = TransformRequest(kind, selection)
        self._pending += 1
        self._phase = PreviewPhase.PENDING
        LOGGER.debug("Transform %s requested for [%s, %s)", kind.value, selection.start, selection.end)
        try:
            result = await self._gateway.complete(request.instruction, selection.text)
        finally:
            self._pending -= 1

        if not result.success or result.value is None:
            message = result.error.user_message() if result.error else "No suggestion returned"
            LOGGER.info("Transform %s failed: %s", kind.value, message)
            self._publish(TransformFailed(action=kind, message=message))
            self._settle()
            if self._phase is PreviewPhase.IDLE:
                # Reported until the next request or decision.
                self._phase = PreviewPhase.FAILED
            return None

        if self._preview is not None:
            self._publish(PreviewCleared(committed=False, reason="superseded"))
        preview = PreviewState(
            original=selection.text,
            suggestion=result.value,
            action=kind,
            source_selection=selection,
        )
        self._preview = preview
        self._phase = PreviewPhase.STAGED
        self._publish(PreviewStaged(preview=preview))
        return preview

    def confirm(self, *, force: bool = False) -> ConfirmOutcome:
        """Write the staged suggestion over its captured range.

        When the range no longer holds the original text the confirm fails and
        the preview is dropped, unless ``force`` applies it at the captured
        offsets anyway.
        """

        preview = self._preview
        if preview is None:
            return ConfirmOutcome.NOTHING_STAGED

        selection = preview.source_selection
        current = self._surface.text_between(selection.start, selection.end)
        if current != preview.original and not force:
            LOGGER.warning(
                "Captured range [%s, %s) no longer matches the original text; not applying",
                selection.start,
                selection.end,
            )
            self._discard(reason="stale")
            self._publish(TransformFailed(action=preview.action, message=STALE_SELECTION_MESSAGE))
            return ConfirmOutcome.STALE

        self._surface.replace(selection.start, selection.end, preview.suggestion)
        preview.committed = True
        LOGGER.debug("Applied %s suggestion at [%s, %s)", preview.action.value, selection.start, selection.end)
        self._discard(reason="confirmed", committed=True)
        return ConfirmOutcome.APPLIED

    def cancel(self) -> bool:
        """Drop the staged suggestion; the document is never touched.

        With nothing staged this only dismisses a reported failure.
        """

        if self._preview is None:
            self._settle()
            return False
        self._discard(reason="cancelled")
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _discard(self, *, reason: str, committed: bool = False) -> None:
        self._preview = None
        self._settle()
        self._publish(PreviewCleared(committed=committed, reason=reason))

    def _settle(self) -> None:
        if self._preview is not None:
            self._phase = PreviewPhase.STAGED
        elif self._pending:
            self._phase = PreviewPhase.PENDING
        else:
            self._phase = PreviewPhase.IDLE

    def _publish(self, event: Event) -> None:
        if self._bus is not None:
            self._bus.publish(event)


__all__ = [
    "ComparisonMetrics",
    "ConfirmOutcome",
    "PreviewController",
    "PreviewPhase",
    "PreviewState",
    "TextStats",
    "TransformRequest",
    "STALE_SELECTION_MESSAGE",
]
