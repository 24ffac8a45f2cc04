"""
Engine Core - Reactive property graph and its convergence loop.

The engine is the runtime that:
1. Registers properties, hacks, services and shortcuts
2. Hands user closures a capability-scoped scope
3. Binds modules into the event graph
4. Propagates events to a fixpoint via the reconciler
5. Feeds service results back into the same loop
"""

from .events import Event, EventDispatcher, Module, ModuleTriggers, INITIAL_UPDATE, SERVICE_FAILED
from .types import conforms, equal_under_type, is_atomic, is_valid_type, type_of
from .scope import (
    LightScope,
    CallScope,
    FullScope,
    ScopeLevel,
    ExecutionResult,
    ServiceCall,
    RESERVED_NAMES,
)
from .properties import PropertyRegistry, PropertyDescriptor
from .hacks import HackRegistry, Hack
from .shortcuts import ShortcutRegistry
from .reconciler import Reconciler, LoopOptions, LoopReport, PendingEffects
from .services import ServiceOrchestrator
from .modules import ModuleRegistry
from .engine import Engine

__all__ = [
    "Event",
    "EventDispatcher",
    "Module",
    "ModuleTriggers",
    "INITIAL_UPDATE",
    "SERVICE_FAILED",
    "conforms",
    "equal_under_type",
    "is_atomic",
    "is_valid_type",
    "type_of",
    "LightScope",
    "CallScope",
    "FullScope",
    "ScopeLevel",
    "ExecutionResult",
    "ServiceCall",
    "RESERVED_NAMES",
    "PropertyRegistry",
    "PropertyDescriptor",
    "HackRegistry",
    "Hack",
    "ShortcutRegistry",
    "Reconciler",
    "LoopOptions",
    "LoopReport",
    "PendingEffects",
    "ServiceOrchestrator",
    "ModuleRegistry",
    "Engine",
]
