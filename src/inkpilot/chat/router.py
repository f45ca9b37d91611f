"""Routes free-form chat input to either web search or plain completion."""

from __future__ import annotations

import logging
from enum import Enum

from ..ai.ai_types import SearchResult
from ..ai.errors import GatewayError
from ..ai.gateway import AIGateway
from ..editor.document_model import DocumentSurface
from ..ui.events import ChatMessageAppended, ContentInserted, EventBus
from .message_model import ChatMessage, Transcript

LOGGER = logging.getLogger(__name__)

DEFAULT_GREETING = (
    "Hello! I'm your AI assistant. I can help you edit text, search the web, "
    "and improve your writing. How can I help you today?"
)
NO_RESULTS_REPLY = "I couldn't find anything for that. Try rephrasing your search."
SEARCH_KEYWORDS: tuple[str, ...] = ("search", "find", "look up")


class Intent(str, Enum):
    SEARCH = "search"
    CHAT = "chat"


def classify_intent(text: str) -> Intent:
    """Keyword match; anything that is not a search request is chat."""

    lowered = text.lower()
    if any(keyword in lowered for keyword in SEARCH_KEYWORDS):
        return Intent.SEARCH
    return Intent.CHAT


def format_search_reply(result: SearchResult) -> str:
    return (
        "I found some information for you:\n\n"
        f"{result.title}\n{result.snippet}\n\n"
        "Would you like me to insert this information into your document?"
    )


def format_error_reply(error: GatewayError | None) -> str:
    message = error.user_message() if error is not None else "Unknown error"
    return f"Sorry, I encountered an error: {message}"


class ConversationalRouter:
    """Owns the chat transcript and answers each submitted message once.

    The user's message is appended before any network call so it is visible
    while the reply is loading. Every ``submit`` of non-blank text appends
    exactly two messages.
    """

    def __init__(
        self,
        gateway: AIGateway,
        surface: DocumentSurface,
        *,
        bus: EventBus | None = None,
        greeting: str | None = DEFAULT_GREETING,
        transcript: Transcript | None = None,
    ) -> None:
        self._gateway = gateway
        self._surface = surface
        self._bus = bus
        self._transcript = transcript or Transcript()
        if greeting:
            self._append("assistant", greeting)

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return self._transcript.messages

    async def submit(self, text: str) -> ChatMessage | None:
        """Append ``text`` as a user message and return the assistant's reply."""

        if not text or not text.strip():
            return None
        self._append("user", text)

        intent = classify_intent(text)
        LOGGER.debug("Routing chat input as %s", intent.value)
        if intent is Intent.SEARCH:
            return await self._answer_search(text)
        return await self._answer_chat(text)

    def insert_message(self, message_id: str) -> str:
        """Insert a message's insertable content (or its text) at the cursor."""

        message = self._transcript.get(message_id)
        text = message.insertable if message.insertable is not None else message.content
        self._surface.insert_at_cursor(text)
        if self._bus is not None:
            self._bus.publish(ContentInserted(text=text, source="chat"))
        return text

    async def _answer_search(self, query: str) -> ChatMessage:
        result = await self._gateway.search(query)
        if not result.success:
            return self._append("assistant", format_error_reply(result.error), is_error=True)
        hits = result.value or []
        if not hits:
            return self._append("assistant", NO_RESULTS_REPLY)
        top = hits[0]
        return self._append(
            "assistant",
            format_search_reply(top),
            insertable=f"{top.title}\n{top.snippet}",
        )

    async def _answer_chat(self, text: str) -> ChatMessage:
        result = await self._gateway.complete(text, "")
        if not result.success or result.value is None:
            return self._append("assistant", format_error_reply(result.error), is_error=True)
        return self._append("assistant", result.value)

    def _append(self, role, content: str, *, is_error: bool = False, insertable: str | None = None) -> ChatMessage:
        message = self._transcript.append(role, content, is_error=is_error, insertable=insertable)
        if self._bus is not None:
            self._bus.publish(ChatMessageAppended(message=message))
        return message


__all__ = [
    "ConversationalRouter",
    "DEFAULT_GREETING",
    "Intent",
    "NO_RESULTS_REPLY",
    "classify_intent",
    "format_error_reply",
    "format_search_reply",
]
