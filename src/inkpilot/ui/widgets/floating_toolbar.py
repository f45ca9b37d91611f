"""Qt view for :class:`~inkpilot.ui.floating_toolbar.FloatingToolbar`."""

from __future__ import annotations

from PySide6.QtCore import QPoint
from PySide6.QtWidgets import QFrame, QHBoxLayout, QPushButton, QWidget

from ..events import EventBus, ToolbarVisibilityChanged
from ..floating_toolbar import FloatingToolbar

__all__ = ["FloatingToolbarWidget"]


class FloatingToolbarWidget(QFrame):
    """Row of action buttons positioned over the editor viewport."""

    def __init__(self, toolbar: FloatingToolbar, bus: EventBus, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("inkpilot-floating-toolbar")
        self.setFrameShape(QFrame.Shape.StyledPanel)
        self._toolbar = toolbar
        self._bus = bus
        self._buttons: dict[str, QPushButton] = {}

        layout = QHBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)
        layout.setSpacing(2)
        for action in toolbar.actions:
            button = QPushButton(action.label, self)
            button.setToolTip(action.tooltip)
            button.clicked.connect(lambda _checked=False, kind=action.kind: self._toolbar.select(kind))
            layout.addWidget(button)
            self._buttons[action.kind.value] = button

        bus.subscribe(ToolbarVisibilityChanged, self._on_visibility_changed)
        self.hide()

    def button(self, action: str) -> QPushButton:
        return self._buttons[action]

    def _on_visibility_changed(self, event: ToolbarVisibilityChanged) -> None:
        if not event.visible or event.anchor is None:
            self.hide()
            return
        self.adjustSize()
        x = int(event.anchor.x - self.width() / 2)
        self.move(QPoint(max(0, x), max(0, int(event.anchor.y))))
        self.setToolTip(self._toolbar.selection_preview)
        self.show()
        self.raise_()
