"""
In-process event bus.

Routes domain events to the handlers registered for their type.  A
service publishes an event after its store update has succeeded and
returns immediately: each handler runs in its own ``asyncio`` task, so
a slow or failing notification never delays or fails the workflow that
produced the event.  Handler errors are logged and otherwise ignored.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Set, Type, Union

from ..schemas.events import DomainEvent


logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], Union[None, Awaitable[None]]]


class EventBus:
    """Publish/subscribe hub for domain events.

    Multiple handlers can be registered for the same event type.  A
    handler registered for a base class also receives its subclasses.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = {}
        self._pending: Set["asyncio.Task[Any]"] = set()

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug("Registered %s for %s", getattr(handler, "__name__", handler), event_type.__name__)

    def handlers_for(self, event: DomainEvent) -> List[EventHandler]:
        handlers: List[EventHandler] = []
        for event_type in type(event).__mro__:
            handlers.extend(self._handlers.get(event_type, []))
        return handlers

    def publish(self, event: DomainEvent) -> None:
        """Schedule every matching handler without waiting for it.

        Must be called from inside a running event loop.
        """
        handlers = self.handlers_for(event)
        if not handlers:
            logger.debug("No handlers registered for %s", type(event).__name__)
            return
        loop = asyncio.get_running_loop()
        logger.info("Publishing %s (%s)", type(event).__name__, event.event_id)
        logger.debug("Event payload: %s", event.to_dict())
        for handler in handlers:
            task = loop.create_task(self._run(handler, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _run(self, handler: EventHandler, event: DomainEvent) -> None:
        name = getattr(handler, "__name__", repr(handler))
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Error in event handler %s for %s", name, type(event).__name__)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until all scheduled handlers have finished.

        Used at shutdown and in tests; services never call it.
        """
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
