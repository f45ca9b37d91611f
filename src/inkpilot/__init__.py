"""Inline AI writing assistant: selection transforms, chat and web search."""

__version__ = "0.1.0"

__all__ = ["__version__"]
