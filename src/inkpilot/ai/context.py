"""Explicitly constructed AI context: settings, credential and busy state.

One :class:`AIContext` is created at startup and handed to every component
that talks to the gateway. It replaces a process-wide loading flag with a
reference-counted tracker, so overlapping calls keep ``is_loading`` true
until the last one finishes.
"""

from __future__ import annotations

import itertools
import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator

from ..services.settings import Settings, SettingsStore, redact_secret
from ..ui.events import EventBus, LoadingChanged
from ..utils import logging as logging_utils

LOGGER = logging.getLogger(__name__)


class BusyTracker:
    """Counts in-flight requests by id and reports idle/busy edges."""

    def __init__(self, bus: EventBus | None = None) -> None:
        self._bus = bus
        self._in_flight: dict[int, str] = {}
        self._ids = itertools.count(1)

    @property
    def is_loading(self) -> bool:
        return bool(self._in_flight)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def labels(self) -> tuple[str, ...]:
        return tuple(self._in_flight.values())

    def begin(self, label: str) -> int:
        request_id = next(self._ids)
        was_idle = not self._in_flight
        self._in_flight[request_id] = label
        LOGGER.debug("Request %s started (%s); %s in flight", request_id, label, len(self._in_flight))
        if was_idle:
            self._publish()
        return request_id

    def end(self, request_id: int) -> None:
        label = self._in_flight.pop(request_id, None)
        if label is None:
            return
        LOGGER.debug("Request %s finished (%s); %s in flight", request_id, label, len(self._in_flight))
        if not self._in_flight:
            self._publish()

    @contextmanager
    def track(self, label: str) -> Iterator[int]:
        request_id = self.begin(label)
        try:
            yield request_id
        finally:
            self.end(request_id)

    def _publish(self) -> None:
        if self._bus is not None:
            self._bus.publish(
                LoadingChanged(is_loading=self.is_loading, in_flight=self.in_flight, labels=self.labels())
            )


class AIContext:
    """State shared by the gateway and the components that call it."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: SettingsStore | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._store = store
        self.bus: EventBus = bus or EventBus()
        self.busy = BusyTracker(self.bus)

    @classmethod
    def load(cls, store: SettingsStore, *, bus: EventBus | None = None) -> "AIContext":
        """Create a context from persisted settings."""

        settings = store.load()
        LOGGER.info(
            "AI context loaded (provider=%s, credential=%s, demo_mode=%s)",
            settings.provider,
            redact_secret(settings.api_key) or "<none>",
            settings.demo_mode,
        )
        return cls(settings, store=store, bus=bus)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def credential(self) -> str | None:
        return self._settings.api_key or None

    @property
    def is_loading(self) -> bool:
        return self.busy.is_loading

    def set_credential(self, api_key: str) -> None:
        """Replace the credential and persist it when a store is attached."""

        api_key = (api_key or "").strip()
        self._settings = replace(self._settings, api_key=api_key)
        if self._store is not None:
            self._store.save_credential(api_key)
        LOGGER.debug("Credential updated (%s)", redact_secret(api_key) or "<cleared>")

    def update_settings(self, **changes: object) -> Settings:
        self._settings = replace(self._settings, **changes)
        if "debug_logging" in changes:
            logging_utils.set_ai_traffic(self._settings.debug_logging)
        return self._settings

    def completion_is_live(self) -> bool:
        """Live completions need a credential and demo mode switched off."""

        return bool(self.credential) and not self._settings.demo_mode

    def search_is_live(self) -> bool:
        settings = self._settings
        return bool(settings.search_api_key and settings.search_api_url) and not settings.demo_mode


__all__ = ["AIContext", "BusyTracker"]
