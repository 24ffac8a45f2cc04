"""
Property Registry - Property descriptors, current values and the get/set protocol.

Design principles:
- A property is registered once and never deleted
- Every write goes through set(); nothing else touches stored values
- Stored values always conform to the declared type
- Custom setters/getters run inside a scope, never against the registry

Writes:
- Default setter: equal atomic value -> no change; type mismatch ->
  diagnostic and no change; otherwise store.
- Overridden setter: the closure reads its candidate with scope[id], may
  replace it, and returns whether the write is accepted (True unless it
  returns a boolean). The stored value is what the scope holds for the
  property after the closure ran.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, TYPE_CHECKING

from ..schema.models import PropertyOptions
from .events import as_names
from .scope import RESERVED_NAMES, execute
from .types import conforms, equal_under_type, is_atomic, is_valid_type

if TYPE_CHECKING:
    from .engine import Engine


@dataclass
class PropertyDescriptor:
    """A named reactive value with its accessors and event wiring."""
    id: str
    label: str
    type: Any = None
    value: Any = None
    getter: Callable[..., Any] | None = None
    setter: Callable[..., Any] | None = None
    getter_overridden: bool = False
    setter_overridden: bool = False

    # Events that may write this property
    triggers: list[str] = field(default_factory=list)
    # Events fired after an accepted write
    dispatch: list[str] = field(default_factory=list)


class PropertyRegistry:
    """
    Owns property descriptors and the event indices derived from them.

    `ascending` maps an event to the properties it may write,
    `descending` maps a property to the events fired after it changes.
    Both are append-only and keep registration order.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._properties: dict[str, PropertyDescriptor] = {}
        self.ascending: dict[str, list[str]] = {}
        self.descending: dict[str, list[str]] = {}

    @property
    def diagnostics(self):
        return self._engine.diagnostics

    def __contains__(self, property_id: Any) -> bool:
        return isinstance(property_id, str) and property_id in self._properties

    def __iter__(self):
        return iter(self._properties)

    def descriptor(self, property_id: str) -> PropertyDescriptor | None:
        return self._properties.get(property_id)

    # =========================================================================
    # Registration
    # =========================================================================

    def register(self, options: PropertyOptions | Mapping[str, Any]) -> PropertyDescriptor:
        """
        Register a property.

        Fails fatally if the id is missing, already registered, or
        collides with a reserved scope name.
        """
        if isinstance(options, Mapping):
            options = PropertyOptions.model_validate(options)

        property_id = options.id
        if property_id is None:
            self.diagnostics.die("Property name not specified")
        if property_id in self._properties:
            self.diagnostics.die(f'Property "{property_id}" already exists')
        if property_id in RESERVED_NAMES:
            self.diagnostics.die(f'"{property_id}" can not be used to name a property')

        prop = PropertyDescriptor(id=property_id, label=options.label or property_id)

        if options.type is not None:
            if is_valid_type(options.type):
                prop.type = options.type
            else:
                self.diagnostics.warn(f'Property "{property_id}": Type not valid')

        if options.setter is not None:
            prop.setter = options.setter
            prop.setter_overridden = True
        else:
            prop.setter = partial(self._default_setter, prop)

        if options.getter is not None:
            prop.getter = options.getter
            prop.getter_overridden = True
        else:
            prop.getter = partial(self._default_getter, prop)

        self._properties[property_id] = prop

        if options.has_value:
            self.set(property_id, options.value)
        elif prop.type is not None:
            self.diagnostics.dump(f'Property "{property_id}": Initial value is missing')

        if options.triggers is not None:
            prop.triggers = self._event_list(property_id, "triggers", options.triggers)
            for event in prop.triggers:
                self.ascending.setdefault(event, []).append(property_id)

        if options.dispatch is not None:
            prop.dispatch = self._event_list(property_id, "dispatch", options.dispatch)
            if prop.dispatch:
                self.descending[property_id] = list(prop.dispatch)

        return prop

    def _event_list(self, property_id: str, key: str, value: Any) -> list[str]:
        if isinstance(value, str) or (
            isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value)
        ):
            return as_names(value)

        self.diagnostics.warn(
            f'Property "{property_id}": Events ("{key}") must be specified in a list '
            "or separated by spaces in a string"
        )
        return []

    # =========================================================================
    # Default accessors
    # =========================================================================

    def _default_setter(self, prop: PropertyDescriptor, value: Any) -> bool:
        if is_atomic(prop.type) and equal_under_type(value, prop.value, prop.type):
            return False

        if prop.type is not None and not conforms(prop.type, value):
            self.diagnostics.warn(f'Property "{prop.id}": Wrong type error')
            return False

        prop.value = value
        return True

    @staticmethod
    def _default_getter(prop: PropertyDescriptor) -> Any:
        return prop.value

    # =========================================================================
    # Get / set protocol
    # =========================================================================

    def get(self, property_id: str, *args: Any) -> Any:
        """Read a property, through its overridden getter if any."""
        prop = self._properties.get(property_id)
        if prop is None:
            self.diagnostics.warn(f'Property "{property_id}" not referenced.')
            return None

        if not prop.getter_overridden:
            return prop.getter()

        result = execute(
            self._engine,
            prop.getter,
            params=args,
            inputs={property_id: prop.value},
        )
        return result.returned_value

    def set(self, property_id: str, value: Any, *args: Any) -> bool:
        """
        Attempt a write.

        Returns True if the write was accepted. Listeners and dispatch
        events are the caller's business (see Reconciler.write).
        """
        prop = self._properties.get(property_id)
        if prop is None:
            self.diagnostics.warn(f'Property "{property_id}" not referenced.')
            return False

        if not prop.setter_overridden:
            return prop.setter(value)

        result = execute(
            self._engine,
            prop.setter,
            params=args,
            inputs={property_id: value},
        )
        returned = result.returned_value
        accepted = returned if isinstance(returned, bool) else True
        if not accepted:
            return False

        stored = result.properties.get(property_id)
        if prop.type is not None and not conforms(prop.type, stored):
            self.diagnostics.warn(f'Property "{property_id}": Wrong type error')
            return False

        ignored = [k for k in result.properties if k != property_id]
        if ignored:
            self.diagnostics.dump(
                f'Property "{property_id}": setter writes to {ignored} are ignored'
            )

        prop.value = stored
        return True

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_label(self, property_id: str) -> str | None:
        prop = self._properties.get(property_id)
        return prop.label if prop else None

    def get_events_for(self, property_id: str) -> list[str]:
        prop = self._properties.get(property_id)
        return list(prop.triggers) if prop else []

    def dispatch_for(self, property_id: str) -> list[str]:
        return self.descending.get(property_id, [])

    def snapshot(self) -> dict[str, Any]:
        """Current value of every property, read through its getter."""
        return {property_id: self.get(property_id) for property_id in self._properties}
