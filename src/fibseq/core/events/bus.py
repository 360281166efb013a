from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, DefaultDict, Iterable, Protocol, Sequence, TypeAlias

import structlog

from fibseq.core.events.base import Event

log = structlog.get_logger()

EventHandler: TypeAlias = Callable[[Event], None]


class EventComponent(Protocol):
    """
    Anything that listens to runtime events: displays, recorders, test collectors.
    """

    def subscriptions(self) -> Sequence[tuple[str, EventHandler]]:
        """
        Return (event_type, handler) pairs, in the order they should be wired.
        """
        ...


@dataclass(frozen=True, slots=True)
class Subscription:
    component: str
    event_type: str
    handler: EventHandler


class EventBus:
    """
    Synchronous in-process bus between the sequence runtime and its listeners.

    The lifecycle publishes while holding its lock, on the thread that caused
    the event (the tick thread for BlockEmitted, a command caller for
    PhaseChanged). Handlers therefore:
      - run in subscription order, one event at a time
      - must not submit commands back into the lifecycle
      - propagate their exceptions to the publisher, which halts the run
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, *, event_type: str, handler: EventHandler, component: str = "") -> Subscription:
        if not event_type:
            raise ValueError("event_type must be non-empty")

        handlers = self._handlers[event_type]
        if handler in handlers:
            raise RuntimeError(f"handler already subscribed: component={component or '-'} event_type={event_type}")
        handlers.append(handler)

        return Subscription(component=component, event_type=event_type, handler=handler)

    def attach(self, components: Iterable[EventComponent]) -> tuple[Subscription, ...]:
        """
        Subscribe every (event_type, handler) pair each component declares.
        """
        wired: list[Subscription] = []
        for component in components:
            name = type(component).__name__
            pairs = component.subscriptions()
            if not isinstance(pairs, Sequence):
                raise TypeError(f"{name}.subscriptions() must return a Sequence")

            for event_type, handler in pairs:
                wired.append(self.subscribe(event_type=event_type, handler=handler, component=name))

            log.debug("bus.attached", component=name, event_types=[event_type for event_type, _ in pairs])
        return tuple(wired)

    def publish(self, event: Event) -> None:
        handlers = self._handlers.get(event.event_type, ())
        log.debug("bus.publish", event_type=event.event_type, sequence=event.sequence, handlers=len(handlers))
        for handler in handlers:
            handler(event)
