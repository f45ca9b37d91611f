"""Composition root wiring the assistant components to one document surface."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

from ..agent.search_panel import AgentPanel, PageFetcher
from ..ai.context import AIContext
from ..ai.gateway import AIGateway
from ..chat.router import ConversationalRouter
from ..editor.document_model import DocumentSurface
from ..editor.selection_tracker import SelectionTracker
from .domain.preview_controller import PreviewController
from .events import ActionSelected, EventBus
from .floating_toolbar import FloatingToolbar

LOGGER = logging.getLogger(__name__)


class AssistantSession:
    """Owns the toolbar, tracker, preview controller, chat router and agent panel.

    Toolbar clicks arrive as :class:`ActionSelected` events and are turned into
    transform tasks on the running event loop; several may be in flight at once.
    """

    def __init__(
        self,
        context: AIContext,
        surface: DocumentSurface,
        *,
        gateway: AIGateway | None = None,
        fetcher: PageFetcher | None = None,
        greeting: str | None = None,
    ) -> None:
        self.context = context
        self.surface = surface
        self.bus: EventBus = context.bus
        self.gateway = gateway or AIGateway(context)
        self.toolbar = FloatingToolbar(self.bus)
        self.tracker = SelectionTracker(surface, self.toolbar, bus=self.bus)
        self.preview = PreviewController(
            self.gateway,
            surface,
            lambda: self.tracker.active_selection,
            bus=self.bus,
        )
        router_kwargs: dict[str, Any] = {"bus": self.bus}
        if greeting is not None:
            router_kwargs["greeting"] = greeting
        self.chat = ConversationalRouter(self.gateway, surface, **router_kwargs)
        self.agent = AgentPanel(self.gateway, surface, bus=self.bus, fetcher=fetcher)
        self._tasks: set[asyncio.Task[Any]] = set()
        self._attached = False

    @property
    def pending_tasks(self) -> tuple[asyncio.Task[Any], ...]:
        return tuple(self._tasks)

    def attach(self) -> None:
        if self._attached:
            return
        self.tracker.attach()
        self.bus.subscribe(ActionSelected, self._on_action_selected)
        self._attached = True

    def detach(self) -> None:
        if not self._attached:
            return
        self.tracker.detach()
        self.bus.unsubscribe(ActionSelected, self._on_action_selected)
        self._attached = False

    async def wait_idle(self) -> None:
        """Wait for every transform task scheduled so far."""

        while self._tasks:
            await asyncio.gather(*tuple(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        self.detach()
        await self.wait_idle()
        await self.gateway.aclose()

    def _on_action_selected(self, event: ActionSelected) -> None:
        self.schedule(self.preview.request_transform(event.action))

    def schedule(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            LOGGER.warning("No running event loop; assistant task dropped")
            return None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_finished)
        return task

    def _on_task_finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Assistant task failed", exc_info=exc)


__all__ = ["AssistantSession"]
