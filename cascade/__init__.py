"""
Cascade - Reactive State Orchestration Engine

A small dataflow scheduler that binds named, typed properties to events.
The engine loads an engine descriptor and provides:
- Property registration with typed setters/getters
- Hacks (event-triggered side effects)
- Services (remote calls feeding results back into the graph)
- Modules bound through a capability-scoped interface
- A main loop that propagates events to a fixpoint
"""

from .errors import CascadeError, FatalError, DiagnosticError, DescriptorValidationError
from .settings import Settings, configure, get_settings, reset_settings
from .engine_core import Engine, Module, Event

__version__ = "0.1.0"

__all__ = [
    "CascadeError",
    "FatalError",
    "DiagnosticError",
    "DescriptorValidationError",
    "Settings",
    "configure",
    "get_settings",
    "reset_settings",
    "Engine",
    "Module",
    "Event",
]
