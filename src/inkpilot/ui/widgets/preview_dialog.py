"""Side-by-side comparison dialog for a staged suggestion."""

from __future__ import annotations

from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QGridLayout,
    QLabel,
    QPlainTextEdit,
    QVBoxLayout,
    QWidget,
)

from ..domain.preview_controller import ComparisonMetrics, ConfirmOutcome, PreviewController, PreviewState

__all__ = ["PreviewDialog", "format_metrics"]


def format_metrics(metrics: ComparisonMetrics) -> str:
    words = ComparisonMetrics.format_delta(metrics.word_delta)
    chars = ComparisonMetrics.format_delta(metrics.char_delta)
    return (
        f"Original: {metrics.original.words} words, {metrics.original.chars} characters  |  "
        f"Suggestion: {metrics.suggestion.words} words, {metrics.suggestion.chars} characters  |  "
        f"Change: {words} words, {chars} characters"
    )


class PreviewDialog(QDialog):
    """Shows original and suggestion; Apply confirms and Cancel discards."""

    def __init__(self, controller: PreviewController, preview: PreviewState, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._controller = controller
        self._preview = preview
        self.outcome: ConfirmOutcome | None = None
        self.setWindowTitle(preview.title)
        self.setModal(True)

        layout = QVBoxLayout(self)
        grid = QGridLayout()
        grid.addWidget(QLabel("Original"), 0, 0)
        grid.addWidget(QLabel("AI Suggestion"), 0, 1)
        self.original_view = self._readonly(preview.original)
        self.suggestion_view = self._readonly(preview.suggestion)
        grid.addWidget(self.original_view, 1, 0)
        grid.addWidget(self.suggestion_view, 1, 1)
        layout.addLayout(grid)

        self.metrics_label = QLabel(format_metrics(preview.metrics))
        self.metrics_label.setWordWrap(True)
        layout.addWidget(self.metrics_label)

        self.buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Apply | QDialogButtonBox.StandardButton.Cancel
        )
        self.buttons.button(QDialogButtonBox.StandardButton.Apply).clicked.connect(self._apply)
        self.buttons.rejected.connect(self.reject)
        layout.addWidget(self.buttons)

    def reject(self) -> None:  # noqa: D401 - Qt override
        if self.outcome is None and self._controller.preview is self._preview:
            self._controller.cancel()
        super().reject()

    def _apply(self) -> None:
        self.outcome = self._controller.confirm()
        self.accept()

    def _readonly(self, text: str) -> QPlainTextEdit:
        view = QPlainTextEdit(self)
        view.setPlainText(text)
        view.setReadOnly(True)
        return view
