"""Unit tests for :mod:`inkpilot.ui.events`."""

from __future__ import annotations

import gc
import logging
from dataclasses import dataclass

import pytest

from inkpilot.ai.prompts import ActionKind
from inkpilot.editor.document_model import Anchor, Selection
from inkpilot.ui.events import (
    ActionSelected,
    ContentInserted,
    Event,
    EventBus,
    LoadingChanged,
    SelectionChanged,
)


@dataclass(slots=True)
class Ping(Event):
    message: str


@dataclass(slots=True)
class Pong(Event):
    value: int = 0


class _Listener:
    def __init__(self) -> None:
        self.seen: list[str] = []

    def on_ping(self, event: Ping) -> None:
        self.seen.append(event.message)


class TestSubscription:
    def test_subscribe_and_count(self) -> None:
        bus: EventBus[Event] = EventBus()
        bus.subscribe(Ping, lambda e: None)
        bus.subscribe(Ping, lambda e: None)
        bus.subscribe(Pong, lambda e: None)

        assert bus.handler_count(Ping) == 2
        assert bus.handler_count(Pong) == 1
        assert bus.handler_count() == 3

    def test_unsubscribe_removes_only_first_registration(self) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[str] = []

        def handler(event: Ping) -> None:
            received.append(event.message)

        bus.subscribe(Ping, handler)
        bus.subscribe(Ping, handler)
        bus.unsubscribe(Ping, handler)
        bus.publish(Ping("once"))

        assert received == ["once"]

    def test_unsubscribe_unknown_handler_is_ignored(self) -> None:
        bus: EventBus[Event] = EventBus()
        bus.unsubscribe(Ping, lambda e: None)
        assert bus.handler_count() == 0


class TestPublish:
    def test_handlers_run_in_subscription_order(self) -> None:
        bus: EventBus[Event] = EventBus()
        order: list[int] = []
        bus.subscribe(Ping, lambda e: order.append(1))
        bus.subscribe(Ping, lambda e: order.append(2))

        bus.publish(Ping("go"))

        assert order == [1, 2]

    def test_publish_is_keyed_by_exact_type(self) -> None:
        bus: EventBus[Event] = EventBus()
        pings: list[str] = []
        pongs: list[int] = []
        bus.subscribe(Ping, lambda e: pings.append(e.message))
        bus.subscribe(Pong, lambda e: pongs.append(e.value))

        bus.publish(Pong(3))
        bus.publish(Ping("a"))

        assert pings == ["a"]
        assert pongs == [3]

    def test_publish_without_handlers_is_safe(self) -> None:
        EventBus().publish(Ping("nobody"))

    def test_raising_handler_is_logged_and_isolated(self, caplog: pytest.LogCaptureFixture) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[str] = []

        def broken(event: Ping) -> None:
            raise RuntimeError("boom")

        bus.subscribe(Ping, broken)
        bus.subscribe(Ping, lambda e: received.append(e.message))

        with caplog.at_level(logging.ERROR, logger="inkpilot.ui.events"):
            bus.publish(Ping("still delivered"))

        assert received == ["still delivered"]
        assert any("broken" in record.getMessage() for record in caplog.records)


class TestWeakReferences:
    def test_bound_method_dropped_after_owner_collected(self) -> None:
        bus: EventBus[Event] = EventBus()
        listener = _Listener()
        bus.subscribe(Ping, listener.on_ping)
        bus.publish(Ping("alive"))
        assert listener.seen == ["alive"]

        del listener
        gc.collect()
        bus.publish(Ping("gone"))

        assert bus.handler_count(Ping) == 0

    def test_lambda_handlers_are_held_strongly(self) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[str] = []
        bus.subscribe(Ping, lambda e: received.append(e.message))
        gc.collect()

        bus.publish(Ping("kept"))

        assert received == ["kept"]

    def test_unsubscribe_bound_method(self) -> None:
        bus: EventBus[Event] = EventBus()
        listener = _Listener()
        bus.subscribe(Ping, listener.on_ping)
        bus.unsubscribe(Ping, listener.on_ping)
        bus.publish(Ping("ignored"))
        assert listener.seen == []


class TestDomainEvents:
    def test_selection_changed_carries_selection_and_anchor(self) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[SelectionChanged] = []
        bus.subscribe(SelectionChanged, received.append)

        selection = Selection(0, 5, "hello")
        bus.publish(SelectionChanged(selection=selection, anchor=Anchor(10.0, -60.0)))

        assert received[0].selection == selection
        assert received[0].anchor == Anchor(10.0, -60.0)

    def test_event_types_use_slots(self) -> None:
        assert hasattr(LoadingChanged(True, 1), "__slots__")
        assert ActionSelected(ActionKind.SHORTEN).action is ActionKind.SHORTEN
        assert ContentInserted("x", "chat").source == "chat"
