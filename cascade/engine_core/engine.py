"""
Engine - Owns every registry and exposes the public surface.

Construction:
    engine = Engine({
        "name": "counter",
        "properties": [
            {"id": "count", "type": "number", "value": 0,
             "triggers": "inc", "dispatch": "countChanged"},
        ],
        "hacks": [{"triggers": "reset", "method": reset_count}],
        "services": [{"id": "load", "url": "/api/:user", "setter": "count"}],
        "shortcuts": [{"id": "user", "method": lambda scope: "alice"}],
    })

Registration order is properties, hacks, services, shortcuts. Every
registration error is fatal; the engine is never half-built.

Public surface: get, update, call, emit, add_module, the pub/sub methods
inherited from EventDispatcher, and `scope` (the owner's full scope).
"""

from __future__ import annotations
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ..diagnostics import Diagnostics
from ..schema.models import EngineDescriptor
from ..settings import Settings, get_settings
from ..transport.base import Transport
from ..transport.http import AsyncHttpTransport
from .events import EventDispatcher
from .hacks import HackRegistry
from .modules import ModuleRegistry
from .properties import PropertyRegistry
from .reconciler import LoopOptions, LoopReport, PendingEffects, Reconciler, as_events
from .scope import FullScope
from .services import ServiceOrchestrator
from .shortcuts import ShortcutRegistry

DEFAULT_NAME = "cascade"


class Engine(EventDispatcher):
    """A reactive state engine instance."""

    def __init__(
        self,
        descriptor: EngineDescriptor | Mapping[str, Any] | str | None = None,
        *,
        name: str | None = None,
        transport: Transport | None = None,
        settings: Settings | None = None,
    ):
        super().__init__()

        if isinstance(descriptor, str):
            name, descriptor = name or descriptor, None
        raw_name = descriptor.get("name") if isinstance(descriptor, Mapping) else None

        self.name = name or raw_name or DEFAULT_NAME
        self._settings = settings
        self.diagnostics = Diagnostics(self.name, settings_provider=lambda: self.settings)

        try:
            if isinstance(descriptor, Mapping):
                descriptor = EngineDescriptor.model_validate(descriptor)
        except ValidationError as exc:
            self.diagnostics.die(f"Invalid engine descriptor: {exc}")
        descriptor = descriptor or EngineDescriptor()
        if descriptor.name and not name:
            self.name = self.diagnostics.name = descriptor.name

        self.properties = PropertyRegistry(self)
        self.hacks = HackRegistry(self)
        self.services = ServiceOrchestrator(self, transport or AsyncHttpTransport())
        self.shortcuts = ShortcutRegistry(self)
        self.modules = ModuleRegistry(self)
        self.reconciler = Reconciler(self)

        for options in descriptor.properties:
            self.properties.register(options)
        for options in descriptor.hacks:
            self.hacks.register(options)
        for options in descriptor.services:
            self.services.register(options)
        for options in descriptor.shortcuts:
            self.shortcuts.register(options)

        self.scope = FullScope(self)

    def __repr__(self) -> str:
        return f"<Engine {self.name!r}>"

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    # =========================================================================
    # Reads
    # =========================================================================

    def has_property(self, property_id: str) -> bool:
        return property_id in self.properties

    def get(self, property_id: str, *args: Any) -> Any:
        """Current value of a property, through its getter."""
        return self.properties.get(property_id, *args)

    def get_label(self, property_id: str) -> str | None:
        return self.properties.get_label(property_id)

    def get_events_for(self, property_id: str) -> list[str]:
        return self.properties.get_events_for(property_id)

    def expand(self, token: Any, *fallbacks: Any) -> Any:
        return self.shortcuts.expand(token, *fallbacks)

    def snapshot(self) -> dict[str, Any]:
        return self.properties.snapshot()

    # =========================================================================
    # Writes and events
    # =========================================================================

    def update(self, properties: Any, options: LoopOptions | Mapping[str, Any] | None = None) -> Engine:
        """
        Write properties directly, then propagate what they dispatch.

        Accepts a mapping {id: value} or a list of
        {"property": id, "value": v, "parameters": [...]} entries; the
        parameters are passed on to an overridden setter.
        """
        if properties is None:
            self.diagnostics.warn("Nothing to update.")
            return self

        if isinstance(properties, Mapping):
            entries = [(k, v, ()) for k, v in properties.items()]
        elif isinstance(properties, (list, tuple)):
            entries = [
                (entry.get("property"), entry.get("value"), tuple(entry.get("parameters") or ()))
                for entry in properties
            ]
        else:
            self.diagnostics.warn("The properties must be stored in a list or a mapping.")
            return self

        pending = PendingEffects(self.diagnostics)
        for property_id, value, args in entries:
            if property_id not in self.properties:
                self.diagnostics.warn(f'The property "{property_id}" is not referenced.')
                continue
            self.reconciler.write(property_id, value, pending, *args)

        self.diagnostics.dump("Updating properties:", [entry[0] for entry in entries])
        self.reconciler.reconcile(pending, options)
        return self

    def call(self, service_id: str, params: Any = None) -> Engine:
        """Invoke a service; completion re-enters the main loop later."""
        self.services.call(service_id, params)
        return self

    def emit(self, events: Any, data: Any = None, force: bool = False) -> LoopReport:
        """
        Feed events straight into the main loop.

        `events` is a name, a space-separated string, an Event or a list;
        `data` is attached to every event given by name.
        """
        batch = as_events(events, target=self)
        if data is not None:
            for event in batch:
                if event.data is None:
                    event.data = data
        return self.reconciler.run(batch, LoopOptions(force=force))

    def on_module_event(self, event: Any) -> LoopReport:
        """Entry point for events published by bound modules."""
        return self.reconciler.run([event])

    def add_module(self, klass: Any, params: list[Any] | None = None, options: Any = None) -> Any:
        """Instantiate and bind a module; returns the module."""
        return self.modules.add(klass, params, options)
