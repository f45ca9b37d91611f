"""Presentation model for the contextual AI action toolbar."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..ai.prompts import ACTION_LABELS, ActionKind
from ..editor.document_model import Anchor
from .events import ActionSelected, EventBus, ToolbarVisibilityChanged

LOGGER = logging.getLogger(__name__)

PREVIEW_MAX_CHARS = 60


@dataclass(frozen=True, slots=True)
class ToolbarAction:
    kind: ActionKind
    label: str

    @property
    def tooltip(self) -> str:
        return f"{self.label} selected text"


TOOLBAR_ACTIONS: tuple[ToolbarAction, ...] = tuple(
    ToolbarAction(kind, ACTION_LABELS[kind]) for kind in ActionKind
)


class FloatingToolbar:
    """Fixed set of actions shown at an anchor point.

    Holds no request state: every :meth:`select` publishes exactly one
    :class:`ActionSelected`, even while an earlier request is still pending.
    """

    actions: tuple[ToolbarAction, ...] = TOOLBAR_ACTIONS

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus
        self._visible = False
        self._anchor: Anchor | None = None
        self._selected_text = ""

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def anchor(self) -> Anchor | None:
        return self._anchor

    @property
    def selected_text(self) -> str:
        return self._selected_text

    @property
    def selection_preview(self) -> str:
        text = " ".join(self._selected_text.split())
        if len(text) <= PREVIEW_MAX_CHARS:
            return text
        return text[: PREVIEW_MAX_CHARS - 1].rstrip() + "…"

    def show(self, anchor: Anchor, selected_text: str) -> None:
        self._visible = True
        self._anchor = anchor
        self._selected_text = selected_text
        self._bus.publish(ToolbarVisibilityChanged(visible=True, anchor=anchor))

    def hide(self) -> None:
        if not self._visible:
            return
        self._visible = False
        self._anchor = None
        self._selected_text = ""
        self._bus.publish(ToolbarVisibilityChanged(visible=False))

    def select(self, action: ActionKind | str) -> None:
        kind = ActionKind(action)
        LOGGER.debug("Toolbar action selected: %s", kind.value)
        self._bus.publish(ActionSelected(action=kind))
