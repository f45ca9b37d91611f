"""Failure taxonomy returned by the AI gateway."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__all__ = [
    "ErrorKind",
    "GatewayError",
    "RATE_LIMIT_MESSAGE",
    "INVALID_CREDENTIAL_MESSAGE",
    "ACCESS_DENIED_MESSAGE",
    "classify_status",
]

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait a moment and try again."
INVALID_CREDENTIAL_MESSAGE = "Invalid API key. Please check your API key."
ACCESS_DENIED_MESSAGE = "Access denied. Please check your API key permissions."


class ErrorKind(str, Enum):
    """Tag identifying why a gateway call failed."""

    RATE_LIMITED = "rate_limited"
    INVALID_CREDENTIAL = "invalid_credential"
    BACKEND_ERROR = "backend_error"
    TRANSPORT_ERROR = "transport_error"
    # Reserved: the conversational router routes every non-search input to
    # chat, so nothing produces this tag today.
    CLASSIFICATION_AMBIGUOUS = "classification_ambiguous"


@dataclass(frozen=True, slots=True)
class GatewayError:
    """A failed gateway call, carried as a value rather than raised."""

    kind: ErrorKind
    message: str = ""
    status: int | None = None

    @classmethod
    def rate_limited(cls, message: str = "") -> "GatewayError":
        return cls(ErrorKind.RATE_LIMITED, message, 429)

    @classmethod
    def invalid_credential(cls, status: int = 401, message: str = "") -> "GatewayError":
        return cls(ErrorKind.INVALID_CREDENTIAL, message, status)

    @classmethod
    def backend(cls, status: int, message: str) -> "GatewayError":
        return cls(ErrorKind.BACKEND_ERROR, message, status)

    @classmethod
    def transport(cls, message: str) -> "GatewayError":
        return cls(ErrorKind.TRANSPORT_ERROR, message)

    def user_message(self) -> str:
        """Human-readable description shown in the transcript and notices.

        Rate-limit and credential failures get fixed wording; everything else
        surfaces the backend's own message.
        """

        if self.kind is ErrorKind.RATE_LIMITED:
            return RATE_LIMIT_MESSAGE
        if self.kind is ErrorKind.INVALID_CREDENTIAL:
            return ACCESS_DENIED_MESSAGE if self.status == 403 else INVALID_CREDENTIAL_MESSAGE
        if self.kind is ErrorKind.BACKEND_ERROR:
            detail = self.message or "Unknown error"
            return f"API error: {self.status} - {detail}"
        return self.message or "Unknown error"


def classify_status(status: int, message: str = "") -> GatewayError | None:
    """Map an HTTP status code to a :class:`GatewayError`; ``None`` for 2xx."""

    if 200 <= status < 300:
        return None
    if status == 429:
        return GatewayError.rate_limited(message)
    if status in (401, 403):
        return GatewayError.invalid_credential(status, message)
    return GatewayError.backend(status, message)
