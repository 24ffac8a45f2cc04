"""
Event Dispatcher - Minimal pub/sub used by the engine and by modules.

Event names can be given as a single name, a space-separated string or a
list. Handlers receive an Event and are called in subscription order.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable

Handler = Callable[["Event"], Any]

# Events published by the engine itself
INITIAL_UPDATE = "cascade.initialUpdate"
SERVICE_FAILED = "cascade.serviceFailed"


def as_names(value: Any) -> list[str]:
    """Normalize a name, a space-separated string or a list into a list of names."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(" ")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
    else:
        items = [value]
    return [item for item in items if item]


@dataclass
class Event:
    """A named signal with an optional payload."""
    type: str
    data: Any = None
    target: Any = None


@dataclass(eq=False)
class _Subscription:
    handler: Handler
    once: bool = False


class EventDispatcher:
    """
    Register / unregister / dispatch-by-name.

    Usage:
        dispatcher = EventDispatcher()
        dispatcher.subscribe("saved closed", on_change)
        dispatcher.publish("saved", {"id": 3})
    """

    def __init__(self):
        self._handlers: dict[str, list[_Subscription]] = {}

    def subscribe(
        self,
        events: str | list[str] | Mapping[str, Handler],
        handler: Handler | None = None,
        once: bool = False,
    ) -> EventDispatcher:
        """
        Call `handler` every time one of the events is published.

        A mapping {name: handler} subscribes several handlers at once.
        """
        if isinstance(events, Mapping):
            for name, mapped in events.items():
                self.subscribe(name, mapped, once=once)
            return self

        if handler is None:
            return self

        for name in as_names(events):
            self._handlers.setdefault(name, []).append(_Subscription(handler, once))
        return self

    def unsubscribe(
        self,
        events: str | list[str] | None = None,
        handler: Handler | None = None,
    ) -> EventDispatcher:
        """
        Remove handlers.

        Without arguments every handler is removed; without a handler every
        handler bound to the named events is removed.
        """
        if events is None and handler is None:
            self._handlers = {}
            return self

        names = as_names(events) if events is not None else list(self._handlers)
        for name in names:
            if handler is None:
                self._handlers.pop(name, None)
                continue
            remaining = [s for s in self._handlers.get(name, []) if s.handler is not handler]
            if remaining:
                self._handlers[name] = remaining
            else:
                self._handlers.pop(name, None)
        return self

    def publish(self, events: str | list[str], data: Any = None) -> EventDispatcher:
        """Call every handler bound to the events, in subscription order."""
        for name in as_names(events):
            subscriptions = self._handlers.get(name)
            if not subscriptions:
                continue

            event = self.get_event(name, {} if data is None else data)
            fired = list(subscriptions)
            for subscription in fired:
                subscription.handler(event)

            remaining = [s for s in self._handlers.get(name, []) if not (s.once and s in fired)]
            if remaining:
                self._handlers[name] = remaining
            else:
                self._handlers.pop(name, None)
        return self

    def get_event(self, name: str, data: Any = None) -> Event:
        """Build the Event object handed to handlers."""
        return Event(type=name, data=data, target=self)

    def has_listeners(self, name: str) -> bool:
        return bool(self._handlers.get(name))


@dataclass
class ModuleTriggers:
    """Handlers a module declares: events it listens to, properties it watches."""
    events: dict[str, Handler] = field(default_factory=dict)
    properties: dict[str, Handler] = field(default_factory=dict)


class Module(EventDispatcher):
    """
    Base class for modules bound into an engine.

    Subclasses fill `self.triggers.events` / `self.triggers.properties`
    in their constructor and publish events on themselves; the engine
    routes those events into its main loop.

    The engine always passes a light scope as the last constructor
    argument.
    """

    def __init__(self, *args: Any):
        super().__init__()
        self.triggers = ModuleTriggers()
        self.scope = args[-1] if args else None
