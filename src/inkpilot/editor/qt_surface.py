"""PySide6 implementation of :class:`~inkpilot.editor.document_model.DocumentSurface`."""

from __future__ import annotations

import logging
from typing import Callable, Union

from PySide6.QtGui import QTextCursor
from PySide6.QtWidgets import QPlainTextEdit, QTextEdit

from .document_model import Point, SelectionListener

LOGGER = logging.getLogger(__name__)

TextWidget = Union[QTextEdit, QPlainTextEdit]

_MARK_CHECKS: dict[str, Callable[[QTextCursor], bool]] = {
    "bold": lambda cursor: cursor.charFormat().font().bold(),
    "italic": lambda cursor: cursor.charFormat().fontItalic(),
    "underline": lambda cursor: cursor.charFormat().fontUnderline(),
    "list": lambda cursor: cursor.currentList() is not None,
    "heading": lambda cursor: cursor.blockFormat().headingLevel() > 0,
}


class QtDocumentSurface:
    """Adapts a ``QTextEdit``/``QPlainTextEdit`` to the surface protocol.

    Offsets are Qt document positions; coordinates are viewport pixels from
    ``cursorRect``.
    """

    def __init__(self, editor: TextWidget) -> None:
        self._editor = editor
        self._listeners: list[SelectionListener] = []
        self._last: tuple[int, int] | None = None
        editor.selectionChanged.connect(self._handle_selection_changed)
        editor.cursorPositionChanged.connect(self._handle_selection_changed)

    @property
    def widget(self) -> TextWidget:
        return self._editor

    def subscribe_selection(self, listener: SelectionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def coords_at(self, offset: int) -> Point:
        cursor = QTextCursor(self._editor.document())
        cursor.setPosition(self._clamp(offset))
        rect = self._editor.cursorRect(cursor)
        return (float(rect.left()), float(rect.top()))

    def origin(self) -> Point:
        # cursorRect is already relative to the viewport.
        return (0.0, 0.0)

    def text_between(self, start: int, end: int) -> str:
        cursor = self._range_cursor(start, end)
        # Qt uses U+2029 as the paragraph separator inside selections.
        return cursor.selectedText().replace("\u2029", "\n")

    def replace(self, start: int, end: int, text: str) -> None:
        cursor = self._range_cursor(start, end)
        cursor.beginEditBlock()
        cursor.insertText(text)
        cursor.endEditBlock()
        self._editor.setTextCursor(cursor)
        LOGGER.debug("Replaced [%s, %s) with %d chars", start, end, len(text))

    def insert_at_cursor(self, text: str) -> None:
        cursor = self._editor.textCursor()
        cursor.insertText(text)
        self._editor.setTextCursor(cursor)

    def is_active(self, name: str) -> bool:
        check = _MARK_CHECKS.get(name)
        if check is None:
            return False
        return bool(check(self._editor.textCursor()))

    def _handle_selection_changed(self) -> None:
        cursor = self._editor.textCursor()
        start, end = cursor.selectionStart(), cursor.selectionEnd()
        if self._last == (start, end):
            return
        self._last = (start, end)
        for listener in list(self._listeners):
            listener(start, end, start == end)

    def _range_cursor(self, start: int, end: int) -> QTextCursor:
        start, end = self._clamp(start), self._clamp(end)
        if end < start:
            start, end = end, start
        cursor = QTextCursor(self._editor.document())
        cursor.setPosition(start)
        cursor.setPosition(end, QTextCursor.MoveMode.KeepAnchor)
        return cursor

    def _clamp(self, offset: int) -> int:
        last = max(0, self._editor.document().characterCount() - 1)
        return max(0, min(int(offset), last))


__all__ = ["QtDocumentSurface"]
