"""Fixed instruction templates for toolbar actions, demo replies and agent prompts."""

from __future__ import annotations

from enum import Enum

__all__ = [
    "ActionKind",
    "ACTION_TEMPLATES",
    "ACTION_LABELS",
    "PREVIEW_TITLES",
    "DemoReply",
    "DEMO_REPLIES",
    "build_prompt",
    "demo_reply_for",
    "summary_instruction",
    "crawl_instruction",
    "SYSTEM_PROMPT",
]

SYSTEM_PROMPT = "You are a helpful writing assistant. Help users edit and improve their text."


class ActionKind(str, Enum):
    """Transformations offered by the floating toolbar, in display order."""

    SHORTEN = "shorten"
    LENGTHEN = "lengthen"
    FIX_GRAMMAR = "grammar"
    TABULATE = "table"
    IMPROVE = "improve"


ACTION_TEMPLATES: dict[ActionKind, str] = {
    ActionKind.SHORTEN: "Please shorten this text while keeping the main meaning:",
    ActionKind.LENGTHEN: "Please expand this text with more details and context:",
    ActionKind.FIX_GRAMMAR: "Please fix any grammar and spelling errors in this text:",
    ActionKind.TABULATE: "Convert this text into a well-formatted table:",
    ActionKind.IMPROVE: "Please improve the clarity and readability of this text:",
}

ACTION_LABELS: dict[ActionKind, str] = {
    ActionKind.SHORTEN: "Shorten",
    ActionKind.LENGTHEN: "Lengthen",
    ActionKind.FIX_GRAMMAR: "Grammar",
    ActionKind.TABULATE: "To Table",
    ActionKind.IMPROVE: "Improve",
}

PREVIEW_TITLES: dict[ActionKind, str] = {
    ActionKind.SHORTEN: "Shortened Text",
    ActionKind.LENGTHEN: "Lengthened Text",
    ActionKind.FIX_GRAMMAR: "Grammar Corrected",
    ActionKind.TABULATE: "Table Format",
    ActionKind.IMPROVE: "Improved Text",
}


class DemoReply(str, Enum):
    """Canned demo-mode completions, matched in declaration order."""

    SHORTEN = "shorten"
    LENGTHEN = "lengthen"
    GRAMMAR = "grammar"
    TABLE = "table"
    FALLBACK = "default"

    @property
    def keyword(self) -> str | None:
        return None if self is DemoReply.FALLBACK else self.value


DEMO_REPLIES: dict[DemoReply, str] = {
    DemoReply.SHORTEN: "Here is a shortened version of your text.",
    DemoReply.LENGTHEN: "Here is an expanded version of your text with more details and context.",
    DemoReply.GRAMMAR: "Here is your text with grammar corrections applied.",
    DemoReply.TABLE: "| Column 1 | Column 2 |\n|----------|----------|\n| Data 1   | Data 2   |",
    DemoReply.FALLBACK: "I can help you edit this text. What would you like me to do?",
}


def demo_reply_for(instruction: str) -> DemoReply:
    """Pick the canned reply whose keyword appears in ``instruction``."""

    lowered = instruction.lower()
    for reply in DemoReply:
        keyword = reply.keyword
        if keyword is not None and keyword in lowered:
            return reply
    return DemoReply.FALLBACK


def build_prompt(instruction: str, grounding_text: str = "") -> str:
    """Combine an instruction with the text it should operate on."""

    if grounding_text:
        return f'{instruction}\n\nText to work with: "{grounding_text}"'
    return instruction


def summary_instruction(query: str) -> str:
    return (
        f'Based on these search results about "{query}", '
        "create a concise summary that can be inserted into a document:"
    )


def crawl_instruction(url: str) -> str:
    return f"Summarize the content from this URL for insertion into a document: {url}"
