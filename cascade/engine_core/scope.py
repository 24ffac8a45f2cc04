"""
Execution Scope - The capability-scoped object handed to user closures.

Every user closure (overridden getter/setter, hack method, service
success/error handler, shortcut) is called as `closure(scope, *params)`
against a fresh scope, never against the engine's internal state.

Capability levels:
- LightScope: read-only helpers (get, labels, events, diagnostics, expand)
  plus recording of property writes and events.
- CallScope: light + call(), which queues a service call.
- FullScope: call + update() and add_module(); only the engine owner gets it.

Closures never return their effects: they record them on the scope, and
the caller harvests an ExecutionResult after the closure returns.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, TYPE_CHECKING

from .events import as_names

if TYPE_CHECKING:
    from .engine import Engine


class ScopeLevel(Enum):
    """Capability level of a scope."""
    LIGHT = "light"
    CALL = "call"
    FULL = "full"


@dataclass
class ServiceCall:
    """A service call queued by a closure."""
    service: str
    params: Any = None


@dataclass
class ExecutionResult:
    """
    Normalized output of any user closure.

    Setters, hack methods and service callbacks all produce this shape,
    which is what the main loop merges.
    """
    returned_value: Any = None
    properties: dict[str, Any] = field(default_factory=dict)
    events: list[str] = field(default_factory=list)
    service_calls: list[ServiceCall] = field(default_factory=list)


class LightScope:
    """
    Read-only view of the engine, plus recording of writes and events.

    Usage inside a closure:
        def method(scope, event):
            scope["total"] = scope.get("total") + 1
            scope.dispatch("totalBumped")
    """
    level = ScopeLevel.LIGHT

    def __init__(self, engine: Engine, inputs: dict[str, Any] | None = None):
        self._engine = engine
        self._properties: dict[str, Any] = dict(inputs or {})
        self._events: list[str] = []
        self._service_calls: list[ServiceCall] = []

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, property_id: str, *args: Any) -> Any:
        """Read the current value of a property."""
        return self._engine.get(property_id, *args)

    def get_events_for(self, property_id: str) -> list[str]:
        """Events that can write a property."""
        return self._engine.get_events_for(property_id)

    def get_label(self, property_id: str) -> str | None:
        return self._engine.get_label(property_id)

    def expand(self, token: Any, *fallbacks: Any) -> Any:
        """Resolve a shortcut token (see ShortcutRegistry.expand)."""
        return self._engine.expand(token, *fallbacks)

    def __getitem__(self, property_id: str) -> Any:
        # Pending value first: a setter reads its candidate this way
        if property_id in self._properties:
            return self._properties[property_id]
        return self.get(property_id)

    def __contains__(self, property_id: str) -> bool:
        return property_id in self._properties

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def warn(self, *parts: Any) -> None:
        self._engine.diagnostics.warn(*parts)

    def die(self, *parts: Any) -> None:
        self._engine.diagnostics.die(*parts)

    def dump(self, *parts: Any) -> None:
        self._engine.diagnostics.dump(*parts)

    # -------------------------------------------------------------------------
    # Recorded effects
    # -------------------------------------------------------------------------

    def set(self, property_id: str, value: Any) -> None:
        """Record a property write, applied by the caller after the closure returns."""
        if not self._engine.has_property(property_id):
            self.warn(f'The key "{property_id}" is not a method nor a property.')
            return
        self._properties[property_id] = value

    def __setitem__(self, property_id: str, value: Any) -> None:
        self.set(property_id, value)

    def dispatch(self, *events: Any) -> None:
        """Record events to dispatch once the closure's effects are merged."""
        for item in events:
            for event in as_names(item):
                if event not in self._events:
                    self._events.append(event)

    @property
    def events(self) -> list[str]:
        return list(self._events)

    def harvest(self, returned: Any = None) -> ExecutionResult:
        """Collect everything the closure recorded."""
        return ExecutionResult(
            returned_value=returned,
            properties=dict(self._properties),
            events=list(self._events),
            service_calls=list(self._service_calls),
        )


class CallScope(LightScope):
    """Light scope that can also queue service calls."""
    level = ScopeLevel.CALL

    def call(self, service_id: str, params: Any = None) -> None:
        """Queue a service call; the caller invokes it while merging."""
        self._service_calls.append(ServiceCall(service=service_id, params=params))


class FullScope(CallScope):
    """Owner scope: can update properties and add modules directly."""
    level = ScopeLevel.FULL

    def update(self, properties: Any, options: Any = None) -> Any:
        return self._engine.update(properties, options)

    def add_module(self, klass: Any, params: Any = None, options: Any = None) -> Any:
        return self._engine.add_module(klass, params, options)


_SCOPES = {
    ScopeLevel.LIGHT: LightScope,
    ScopeLevel.CALL: CallScope,
    ScopeLevel.FULL: FullScope,
}

# Property ids may not shadow anything a scope exposes
RESERVED_NAMES = frozenset(
    {"events", "services", "hacks"}
    | {name for name in dir(FullScope) if not name.startswith("_")}
)


def build_scope(
    engine: Engine,
    level: ScopeLevel = ScopeLevel.LIGHT,
    inputs: dict[str, Any] | None = None,
) -> LightScope:
    return _SCOPES[level](engine, inputs)


def execute(
    engine: Engine,
    closure: Callable[..., Any],
    params: tuple[Any, ...] | list[Any] = (),
    inputs: dict[str, Any] | None = None,
    level: ScopeLevel = ScopeLevel.LIGHT,
) -> ExecutionResult:
    """
    Run a user closure against a fresh scope and harvest its effects.

    `inputs` pre-seed the scope's pending properties, so a setter both
    reads its candidate value and may replace it.
    """
    if not callable(closure):
        engine.diagnostics.die("The closure must be callable")

    scope = build_scope(engine, level, inputs)
    returned = closure(scope, *params)
    return scope.harvest(returned)
