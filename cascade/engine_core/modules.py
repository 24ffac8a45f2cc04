"""
Module Binding - Instantiates modules and wires them into the event graph.

A module is built as `klass(*params, light_scope)` and then declares:
- triggers.events:     {event: handler} called when the event passes
                       through the main loop
- triggers.properties: {property: handler} called once right away if the
                       property has a value, then after every accepted write

Every event the module publishes on itself that the engine knows about
(as a property trigger or a hack trigger) is routed into the main loop.
"""

from __future__ import annotations
from collections.abc import Mapping
from typing import Any, TYPE_CHECKING

from .events import INITIAL_UPDATE, Handler
from .scope import build_scope

if TYPE_CHECKING:
    from .engine import Engine


def _trigger_map(triggers: Any, key: str) -> dict[str, Handler]:
    if triggers is None:
        return {}
    if isinstance(triggers, Mapping):
        value = triggers.get(key)
    else:
        value = getattr(triggers, key, None)
    return dict(value or {})


class ModuleRegistry:
    """Bound modules and the listener tables the main loop reads."""

    def __init__(self, engine: Engine):
        self._engine = engine
        self.modules: list[Any] = []
        self.event_listeners: dict[str, list[Handler]] = {}
        self.property_listeners: dict[str, list[Handler]] = {}

    def add(self, klass: Any, params: list[Any] | None = None, options: Any = None) -> Any:
        """Instantiate and bind a module; returns the instance."""
        engine = self._engine
        diagnostics = engine.diagnostics
        if klass is None:
            diagnostics.die("Module class not specified.")
        if not callable(klass):
            diagnostics.die("First parameter must be callable.")

        module = klass(*(params or []), build_scope(engine))
        triggers = getattr(module, "triggers", None)

        for event, handler in _trigger_map(triggers, "events").items():
            self.event_listeners.setdefault(event, []).append(handler)

        for property_id, handler in _trigger_map(triggers, "properties").items():
            if property_id not in engine.properties:
                diagnostics.warn(f'Module watches unknown property "{property_id}".')
                continue
            self.property_listeners.setdefault(property_id, []).append(handler)
            if engine.get(property_id) is not None:
                handler(engine.get_event(INITIAL_UPDATE, build_scope(engine)))

        subscribe = getattr(module, "subscribe", None)
        if callable(subscribe):
            for event in self.bound_events():
                subscribe(event, engine.on_module_event)

        self.modules.append(module)
        return module

    def bound_events(self) -> list[str]:
        """Events routed from modules into the main loop."""
        engine = self._engine
        return list(dict.fromkeys([*engine.properties.ascending, *engine.hacks.events()]))
