"""Main window hosting the editor, floating toolbar and assistant docks."""

from __future__ import annotations

import logging

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QBrush, QColor
from PySide6.QtWidgets import (
    QDockWidget,
    QHBoxLayout,
    QInputDialog,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QPushButton,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from ...ai.context import AIContext
from ...chat.message_model import ChatMessage
from ...editor.qt_surface import QtDocumentSurface
from ..events import (
    ChatMessageAppended,
    LoadingChanged,
    PreviewStaged,
    SearchResultsUpdated,
    TransformFailed,
)
from ..session import AssistantSession
from .floating_toolbar import FloatingToolbarWidget
from .preview_dialog import PreviewDialog

__all__ = ["AssistantWindow"]

LOGGER = logging.getLogger(__name__)

_MESSAGE_ID_ROLE = Qt.ItemDataRole.UserRole
_RESULT_URL_ROLE = Qt.ItemDataRole.UserRole + 1


class AssistantWindow(QMainWindow):
    """Editor with the AI toolbar, a chat dock and a search dock."""

    def __init__(self, context: AIContext, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("inkpilot")
        self.resize(1100, 720)

        self.editor = QTextEdit(self)
        self.setCentralWidget(self.editor)
        self.surface = QtDocumentSurface(self.editor)
        self.session = AssistantSession(context, self.surface)
        self.session.attach()
        self.toolbar_widget = FloatingToolbarWidget(
            self.session.toolbar, self.session.bus, parent=self.editor.viewport()
        )
        self._preview_dialog: PreviewDialog | None = None

        self._build_chat_dock()
        self._build_agent_dock()
        self._build_menu()

        bus = self.session.bus
        bus.subscribe(PreviewStaged, self._on_preview_staged)
        bus.subscribe(TransformFailed, self._on_transform_failed)
        bus.subscribe(LoadingChanged, self._on_loading_changed)
        bus.subscribe(ChatMessageAppended, self._on_chat_message)
        bus.subscribe(SearchResultsUpdated, self._on_results_updated)

        for message in self.session.chat.messages:
            self._add_chat_item(message)
        self._show_mode()

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def _build_chat_dock(self) -> None:
        panel = QWidget(self)
        layout = QVBoxLayout(panel)
        self.chat_list = QListWidget(panel)
        self.chat_list.setWordWrap(True)
        layout.addWidget(self.chat_list)

        row = QHBoxLayout()
        self.chat_input = QLineEdit(panel)
        self.chat_input.setPlaceholderText("Ask me anything...")
        self.chat_input.returnPressed.connect(self._submit_chat)
        row.addWidget(self.chat_input)
        insert_button = QPushButton("Insert", panel)
        insert_button.clicked.connect(self._insert_chat_message)
        row.addWidget(insert_button)
        layout.addLayout(row)

        dock = QDockWidget("AI Assistant", self)
        dock.setWidget(panel)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, dock)

    def _build_agent_dock(self) -> None:
        panel = QWidget(self)
        layout = QVBoxLayout(panel)
        row = QHBoxLayout()
        self.search_input = QLineEdit(panel)
        self.search_input.setPlaceholderText("Search the web...")
        self.search_input.returnPressed.connect(self._submit_search)
        row.addWidget(self.search_input)
        layout.addLayout(row)

        self.results_list = QListWidget(panel)
        self.results_list.setWordWrap(True)
        layout.addWidget(self.results_list)

        buttons = QHBoxLayout()
        self.summary_button = QPushButton("Insert Summary", panel)
        self.summary_button.clicked.connect(self._insert_summary)
        buttons.addWidget(self.summary_button)
        crawl_button = QPushButton("Crawl", panel)
        crawl_button.clicked.connect(self._crawl_selected)
        buttons.addWidget(crawl_button)
        layout.addLayout(buttons)

        dock = QDockWidget("Agent", self)
        dock.setWidget(panel)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, dock)

    def _build_menu(self) -> None:
        menu = self.menuBar().addMenu("&Settings")
        action = QAction("Set API Key...", self)
        action.triggered.connect(self._prompt_api_key)
        menu.addAction(action)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------
    def _submit_chat(self) -> None:
        text = self.chat_input.text()
        if not text.strip():
            return
        self.chat_input.clear()
        self.session.schedule(self.session.chat.submit(text))

    def _insert_chat_message(self) -> None:
        item = self.chat_list.currentItem()
        if item is None:
            return
        self.session.chat.insert_message(item.data(_MESSAGE_ID_ROLE))

    def _submit_search(self) -> None:
        query = self.search_input.text()
        if query.strip():
            self.session.schedule(self.session.agent.search(query))

    def _insert_summary(self) -> None:
        results = self.session.agent.results
        if results and results[0].ai_summary:
            self.session.agent.insert_summary(results[0].ai_summary)

    def _crawl_selected(self) -> None:
        item = self.results_list.currentItem()
        if item is None:
            return
        self.session.schedule(self.session.agent.crawl(item.data(_RESULT_URL_ROLE)))

    def _prompt_api_key(self) -> None:
        key, accepted = QInputDialog.getText(
            self,
            "API Key",
            "Enter your API key (leave empty for demo mode):",
            QLineEdit.EchoMode.Password,
        )
        if accepted:
            self.session.context.set_credential(key)
            self._show_mode()

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def _on_preview_staged(self, event: PreviewStaged) -> None:
        if self._preview_dialog is not None:
            self._preview_dialog.close()
        dialog = PreviewDialog(self.session.preview, event.preview, self)
        dialog.finished.connect(self._on_preview_finished)
        self._preview_dialog = dialog
        dialog.open()

    def _on_preview_finished(self, _result: int) -> None:
        self._preview_dialog = None

    def _on_transform_failed(self, event: TransformFailed) -> None:
        self.statusBar().showMessage(event.message, 8000)

    def _on_loading_changed(self, event: LoadingChanged) -> None:
        if event.is_loading:
            self.statusBar().showMessage(f"AI is working ({', '.join(event.labels)})...")
        else:
            self.statusBar().clearMessage()
            self._show_mode()

    def _on_chat_message(self, event: ChatMessageAppended) -> None:
        self._add_chat_item(event.message)

    def _on_results_updated(self, event: SearchResultsUpdated) -> None:
        self.results_list.clear()
        for result in event.results:
            text = f"{result.title}\n{result.snippet}"
            if result.ai_summary:
                text += f"\n\nAI Summary: {result.ai_summary}"
            item = QListWidgetItem(text, self.results_list)
            item.setData(_RESULT_URL_ROLE, result.url)
        self.summary_button.setEnabled(bool(event.results and event.results[0].ai_summary))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _add_chat_item(self, message: ChatMessage) -> None:
        prefix = "You" if message.role == "user" else "AI"
        item = QListWidgetItem(f"{prefix}: {message.content}", self.chat_list)
        item.setData(_MESSAGE_ID_ROLE, message.id)
        if message.is_error:
            item.setForeground(QBrush(QColor("#b00020")))
        self.chat_list.scrollToBottom()

    def _show_mode(self) -> None:
        if self.session.context.completion_is_live():
            self.statusBar().showMessage("Connected")
        else:
            self.statusBar().showMessage("Demo mode: set an API key to use live AI")

    def closeEvent(self, event) -> None:  # noqa: N802 - Qt override
        self.session.detach()
        super().closeEvent(event)
