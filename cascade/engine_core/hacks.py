"""
Hack Registry - Declarative trigger -> side-effect rules.

A hack fires a method and/or dispatches events whenever one of its
trigger events passes through the main loop. Hacks are independent of
properties; many hacks may share a trigger and all of them fire, in
registration order.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, TYPE_CHECKING

from ..schema.models import HackOptions
from .events import as_names

if TYPE_CHECKING:
    from .engine import Engine


@dataclass
class Hack:
    triggers: list[str]
    method: Callable[..., Any] | None = None
    dispatch: list[str] = field(default_factory=list)


class HackRegistry:
    """Owns hacks and the per-event method / dispatch indices."""

    def __init__(self, engine: Engine):
        self._engine = engine
        self.hacks: list[Hack] = []
        self.methods: dict[str, list[Callable[..., Any]]] = {}
        self.dispatch: dict[str, list[str]] = {}

    def register(self, options: HackOptions | Mapping[str, Any]) -> Hack:
        """
        Register a hack.

        Fails fatally without triggers, or without both a method and
        events to dispatch.
        """
        if isinstance(options, Mapping):
            options = HackOptions.model_validate(options)

        diagnostics = self._engine.diagnostics
        triggers = as_names(options.triggers)
        if not triggers:
            diagnostics.die("A hack requires at least one trigger to be added")

        dispatch = as_names(options.dispatch)
        if options.method is None and not dispatch:
            diagnostics.die('A hack requires at least a method or a "dispatch" value to be added')

        hack = Hack(triggers=triggers, method=options.method, dispatch=dispatch)
        for event in triggers:
            if hack.method is not None:
                self.methods.setdefault(event, []).append(hack.method)
            if dispatch:
                self.dispatch.setdefault(event, []).extend(dispatch)

        self.hacks.append(hack)
        return hack

    def methods_for(self, event: str) -> list[Callable[..., Any]]:
        return self.methods.get(event, [])

    def dispatch_for(self, event: str) -> list[str]:
        return self.dispatch.get(event, [])

    def events(self) -> list[str]:
        """Every event some hack listens to, in first-seen order."""
        return list(dict.fromkeys([*self.methods, *self.dispatch]))
