"""Chat transcript and conversational routing."""

from .message_model import ChatMessage, Transcript
from .router import ConversationalRouter, Intent, classify_intent

__all__ = ["ChatMessage", "ConversationalRouter", "Intent", "Transcript", "classify_intent"]
