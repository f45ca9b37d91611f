"""Selection value types and the document collaborator boundary.

The rich-text surface is an external component; the rest of the package only
talks to it through :class:`DocumentSurface`. :class:`TextDocument` is a
headless plain-text implementation used when no widget is attached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

LOGGER = logging.getLogger(__name__)

Point = tuple[float, float]


@dataclass(frozen=True, slots=True)
class Selection:
    """A captured span of document content.

    ``start``/``end`` are content offsets and ``text`` is exactly the content
    between them at capture time.
    """

    start: int
    end: int
    text: str

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid selection range [{self.start}, {self.end})")

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def as_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)


@dataclass(frozen=True, slots=True)
class Anchor:
    """Screen position for the floating toolbar, relative to the surface origin."""

    x: float
    y: float


class SelectionListener(Protocol):
    """Callback receiving ``(start, end, is_empty)`` on every selection change."""

    def __call__(self, start: int, end: int, is_empty: bool) -> None:
        ...


class DocumentSurface(Protocol):
    """Operations the AI pipeline needs from the editing surface."""

    def subscribe_selection(self, listener: SelectionListener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""
        ...

    def coords_at(self, offset: int) -> Point:
        """Viewport coordinates of the caret placed at ``offset``."""
        ...

    def origin(self) -> Point:
        """Viewport coordinates of the surface's top-left corner."""
        ...

    def text_between(self, start: int, end: int) -> str:
        ...

    def replace(self, start: int, end: int, text: str) -> None:
        ...

    def insert_at_cursor(self, text: str) -> None:
        ...

    def is_active(self, name: str) -> bool:
        """Whether a formatting mark or block type is active at the cursor."""
        ...


class TextDocument:
    """In-memory plain-text document implementing :class:`DocumentSurface`.

    Coordinates use a fixed character grid so anchor math stays deterministic.
    """

    def __init__(
        self,
        text: str = "",
        *,
        char_width: float = 8.0,
        line_height: float = 20.0,
        origin: Point = (0.0, 0.0),
    ) -> None:
        self._text = text
        self._selection = (len(text), len(text))
        self._listeners: list[SelectionListener] = []
        self._char_width = char_width
        self._line_height = line_height
        self._origin = origin
        self.version_id = 1

    @property
    def text(self) -> str:
        return self._text

    @property
    def selection(self) -> tuple[int, int]:
        return self._selection

    @property
    def cursor(self) -> int:
        return self._selection[1]

    # ------------------------------------------------------------------
    # DocumentSurface
    # ------------------------------------------------------------------
    def subscribe_selection(self, listener: SelectionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def coords_at(self, offset: int) -> Point:
        offset = self._clamp(offset)
        preceding = self._text[:offset]
        line = preceding.count("\n")
        column = offset - (preceding.rfind("\n") + 1)
        x0, y0 = self._origin
        return (x0 + column * self._char_width, y0 + line * self._line_height)

    def origin(self) -> Point:
        return self._origin

    def text_between(self, start: int, end: int) -> str:
        start, end = self._ordered(start, end)
        return self._text[start:end]

    def replace(self, start: int, end: int, text: str) -> None:
        start, end = self._ordered(start, end)
        self._text = self._text[:start] + text + self._text[end:]
        self.version_id += 1
        caret = start + len(text)
        LOGGER.debug("Replaced [%s, %s) with %d chars (version %s)", start, end, len(text), self.version_id)
        self.set_selection(caret, caret)

    def insert_at_cursor(self, text: str) -> None:
        """Insert at the caret, replacing the selected text when a range is selected."""

        start, end = self._selection
        self.replace(min(start, end), max(start, end), text)

    def is_active(self, name: str) -> bool:
        # Plain text carries no marks or block types.
        return False

    # ------------------------------------------------------------------
    # Editing helpers
    # ------------------------------------------------------------------
    def set_selection(self, start: int, end: int | None = None) -> None:
        """Move the selection and notify listeners; ``end`` defaults to a caret."""

        end = start if end is None else end
        start, end = self._clamp(start), self._clamp(end)
        self._selection = (start, end)
        is_empty = start == end
        for listener in list(self._listeners):
            listener(min(start, end), max(start, end), is_empty)

    def select_text(self, needle: str, *, occurrence: int = 0) -> Selection:
        """Select the ``occurrence``-th match of ``needle`` and return it."""

        index = -1
        for _ in range(occurrence + 1):
            index = self._text.find(needle, index + 1)
            if index < 0:
                raise ValueError(f"{needle!r} not found in document")
        self.set_selection(index, index + len(needle))
        return Selection(index, index + len(needle), needle)

    def set_text(self, text: str) -> None:
        """Replace the whole document, collapsing the selection at the end."""

        self._text = text
        self.version_id += 1
        self.set_selection(len(text))

    def _clamp(self, offset: int) -> int:
        return max(0, min(int(offset), len(self._text)))

    def _ordered(self, start: int, end: int) -> tuple[int, int]:
        start, end = self._clamp(start), self._clamp(end)
        if end < start:
            start, end = end, start
        return start, end


__all__ = [
    "Anchor",
    "DocumentSurface",
    "Point",
    "Selection",
    "SelectionListener",
    "TextDocument",
]
