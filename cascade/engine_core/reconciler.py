"""
Reconciler - The main loop propagating a batch of events to a fixpoint.

Per event, in batch order:
a. write every property the event may update (ascending index) from the
   event's data; a write counts if accepted, or always under `force`
b. for every counted write: notify property listeners, queue the
   property's dispatch events
c. call module event listeners for the event
d. run hack methods under a call scope and merge their results
   (first write to a property wins, later ones are diagnosed and dropped)
e. queue the hacks' dispatch events

After the batch, the shared merge step applies pending writes, invokes
pending service calls and publishes pending events; the published events
form the next batch. Service completions enter the same merge step.

The loop is an explicit work queue bounded by `max_iterations`; a graph
that never settles is reported instead of growing the stack.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable, TYPE_CHECKING

from .events import Event, as_names
from .scope import ExecutionResult, ScopeLevel, ServiceCall, build_scope, execute

if TYPE_CHECKING:
    from .engine import Engine
    from ..diagnostics import Diagnostics


@dataclass
class LoopOptions:
    """Options carried across the iterations of one reconciliation."""
    force: bool = False
    loop: int = 0

    @classmethod
    def coerce(cls, options: Any) -> LoopOptions:
        """Accept a LoopOptions, a {"force": ...} mapping or None."""
        if isinstance(options, cls):
            return options
        if isinstance(options, Mapping):
            return cls(force=bool(options.get("force", False)), loop=int(options.get("loop", 0)))
        return cls()


@dataclass
class LoopReport:
    """Outcome of one reconciliation."""
    iterations: int = 0
    converged: bool = True
    dispatched: list[str] = field(default_factory=list)


class PendingEffects:
    """
    Effects collected during one merge step.

    `dispatch` is an ordered set of event names; `updates` holds property
    writes proposed by closures, first writer wins.
    """

    def __init__(self, diagnostics: Diagnostics):
        self._diagnostics = diagnostics
        self.dispatch: dict[str, None] = {}
        self.updates: dict[str, Any] = {}
        self.service_calls: list[ServiceCall] = []

    def add_events(self, names: Iterable[str]) -> None:
        for name in names:
            self.dispatch.setdefault(name, None)

    def absorb(self, result: ExecutionResult) -> None:
        """Merge a closure's ExecutionResult."""
        self.add_events(result.events)

        for property_id, value in result.properties.items():
            if property_id in self.updates:
                self._diagnostics.warn(
                    f'The property "{property_id}" was already updated in this step; '
                    "the later value is ignored."
                )
                continue
            self.updates[property_id] = value

        self.service_calls.extend(result.service_calls)

    def __bool__(self) -> bool:
        return bool(self.dispatch or self.updates or self.service_calls)


def as_events(events: Any, target: Any = None) -> list[Event]:
    """Normalize an Event, a {"type", "data"} mapping, a name or a list of those."""
    if events is None:
        return []
    if isinstance(events, (Event, Mapping)):
        events = [events]
    elif isinstance(events, str):
        events = as_names(events)

    normalized = []
    for event in events:
        if isinstance(event, Event):
            normalized.append(event)
        elif isinstance(event, Mapping):
            normalized.append(Event(type=event["type"], data=event.get("data"), target=target))
        else:
            normalized.append(Event(type=str(event), target=target))
    return normalized


class Reconciler:
    """
    Runs the main loop for one engine.

    The reconciler owns no state of its own; registries and listener
    tables belong to the engine.
    """

    def __init__(self, engine: Engine):
        self._engine = engine

    @property
    def diagnostics(self) -> Diagnostics:
        return self._engine.diagnostics

    # =========================================================================
    # Main loop
    # =========================================================================

    def run(self, events: Any, options: LoopOptions | Mapping[str, Any] | None = None) -> LoopReport:
        """Propagate a batch of events until no further event is produced."""
        options = LoopOptions.coerce(options)
        report = LoopReport()
        limit = self._engine.settings.max_iterations

        batch = as_events(events)
        while batch:
            if limit and report.iterations >= limit:
                report.converged = False
                self.diagnostics.warn(
                    f"Main loop did not converge after {limit} iterations; "
                    f"dropping events {[e.type for e in batch]}"
                )
                break

            options.loop += 1
            report.iterations += 1
            self.diagnostics.dump(f"Iteration {options.loop} (main loop):", [e.type for e in batch])

            batch = self._iterate(batch, options)
            report.dispatched.extend(e.type for e in batch)

        return report

    def _iterate(self, batch: list[Event], options: LoopOptions) -> list[Event]:
        """Process one batch and return the next one."""
        properties = self._engine.properties
        hacks = self._engine.hacks
        modules = self._engine.modules
        pending = PendingEffects(self.diagnostics)

        for event in batch:
            data = event.data if isinstance(event.data, Mapping) else {}

            # Properties this event may update
            for property_id in properties.ascending.get(event.type, []):
                counted = options.force
                if property_id in data:
                    counted = properties.set(property_id, data[property_id]) or counted
                if counted:
                    self.notify(property_id)
                    pending.add_events(properties.dispatch_for(property_id))

            # Module listeners
            for listener in list(modules.event_listeners.get(event.type, [])):
                listener(event)

            # Hacks
            for method in list(hacks.methods_for(event.type)):
                result = execute(self._engine, method, params=(event,), level=ScopeLevel.CALL)
                pending.absorb(result)

            pending.add_events(hacks.dispatch_for(event.type))

        return self.settle(pending)

    # =========================================================================
    # Merge step
    # =========================================================================

    def write(self, property_id: str, value: Any, pending: PendingEffects, *args: Any) -> bool:
        """Write a property; on acceptance notify listeners and queue its dispatch events."""
        accepted = self._engine.properties.set(property_id, value, *args)
        if accepted:
            self.notify(property_id)
            pending.add_events(self._engine.properties.dispatch_for(property_id))
        return accepted

    def notify(self, property_id: str) -> None:
        """Call every module listener watching a property, in subscription order."""
        listeners = self._engine.modules.property_listeners.get(property_id, [])
        for listener in list(listeners):
            listener(self._engine.get_event(property_id, build_scope(self._engine)))

    def settle(self, pending: PendingEffects) -> list[Event]:
        """
        Apply pending writes, invoke pending service calls, publish pending events.

        Returns the published events as the next batch.
        """
        for property_id, value in pending.updates.items():
            if property_id not in self._engine.properties:
                self.diagnostics.warn(f'The property "{property_id}" is not referenced.')
                continue
            self.write(property_id, value, pending)

        for call in pending.service_calls:
            self._engine.call(call.service, call.params)

        return self.dispatch(pending.dispatch)

    def dispatch(self, names: Iterable[str]) -> list[Event]:
        """Publish events on the engine; each carries a light scope as data."""
        batch = []
        for name in list(names):
            scope = build_scope(self._engine)
            self._engine.publish(name, scope)
            batch.append(self._engine.get_event(name, scope))
        return batch

    def reconcile(
        self, pending: PendingEffects, options: LoopOptions | Mapping[str, Any] | None = None
    ) -> LoopReport:
        """Run the merge step, then the main loop on whatever it dispatched."""
        batch = self.settle(pending)
        if not batch:
            return LoopReport(iterations=0)
        report = self.run(batch, options)
        report.dispatched = [e.type for e in batch] + report.dispatched
        return report
