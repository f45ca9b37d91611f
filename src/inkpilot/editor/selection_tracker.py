"""Derives the active selection and toolbar anchor from surface notifications."""

from __future__ import annotations

import logging
from typing import Callable

from ..ui.events import EventBus, SelectionChanged
from ..ui.floating_toolbar import FloatingToolbar
from .document_model import Anchor, DocumentSurface, Selection

LOGGER = logging.getLogger(__name__)

TOOLBAR_VERTICAL_OFFSET = 60.0


class SelectionTracker:
    """Keeps the active :class:`Selection` and drives toolbar visibility."""

    def __init__(
        self,
        surface: DocumentSurface,
        toolbar: FloatingToolbar,
        *,
        bus: EventBus | None = None,
        vertical_offset: float = TOOLBAR_VERTICAL_OFFSET,
    ) -> None:
        self._surface = surface
        self._toolbar = toolbar
        self._bus = bus
        self._vertical_offset = vertical_offset
        self._selection: Selection | None = None
        self._anchor: Anchor | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def active_selection(self) -> Selection | None:
        return self._selection

    @property
    def anchor(self) -> Anchor | None:
        return self._anchor

    def attach(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._surface.subscribe_selection(self.on_selection_changed)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_selection_changed(self, start: int, end: int, is_empty: bool) -> None:
        if end < start:
            start, end = end, start
        if is_empty or start == end:
            self._clear()
            return

        text = self._surface.text_between(start, end)
        self._selection = Selection(start, end, text)
        self._anchor = self.compute_anchor(start, end)
        self._toolbar.show(self._anchor, text)
        self._publish()

    def compute_anchor(self, start: int, end: int) -> Anchor:
        """Midpoint of the two carets horizontally, a fixed offset above the start caret."""

        start_x, start_y = self._surface.coords_at(start)
        end_x, _ = self._surface.coords_at(end)
        origin_x, origin_y = self._surface.origin()
        x = (start_x + end_x) / 2 - origin_x
        y = start_y - origin_y - self._vertical_offset
        return Anchor(x, y)

    def _clear(self) -> None:
        had_selection = self._selection is not None
        self._selection = None
        self._anchor = None
        self._toolbar.hide()
        if had_selection:
            self._publish()

    def _publish(self) -> None:
        if self._bus is not None:
            self._bus.publish(SelectionChanged(selection=self._selection, anchor=self._anchor))
