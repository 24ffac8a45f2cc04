"""
Descriptor models - Pydantic models for everything an engine is built from.

Keys follow Python naming; the camelCase keys of the external interface
(contentType, dataType, type) are accepted as aliases so descriptors
written for other hosts load unchanged.

Closures are validated as callables: passing a non-callable where a
closure is required fails validation, which the engine reports as a
fatal construction error.
"""

from typing import Any, Callable, Optional
from pydantic import BaseModel, ConfigDict, Field


class _Options(BaseModel):
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# Registrations
# =============================================================================

class PropertyOptions(_Options):
    """A reactive property declaration."""
    id: Optional[str] = None
    label: Optional[str] = None
    type: Any = None  # type expression, checked by the registry
    setter: Optional[Callable[..., Any]] = None
    getter: Optional[Callable[..., Any]] = None
    value: Any = None
    triggers: Any = None  # name, space-separated names or list
    dispatch: Any = None

    @property
    def has_value(self) -> bool:
        """True when an initial value was given, even if it is None."""
        return "value" in self.model_fields_set


class HackOptions(_Options):
    """A trigger -> side-effect rule."""
    triggers: Any = None
    dispatch: Any = None
    method: Optional[Callable[..., Any]] = None


class ShortcutOptions(_Options):
    """A named token resolver used by shortcut expansion."""
    id: Optional[str] = None
    method: Optional[Callable[..., Any]] = None


class ServiceOptions(_Options):
    """
    A service: one remote call wired into the reactive graph.

    `url` and `data` may be closures evaluated at call time.
    `path` selects the part of the response written to `setter`.
    """
    id: Any = None
    url: Any = None
    content_type: Optional[str] = Field(default=None, alias="contentType")
    data_type: Optional[str] = Field(default=None, alias="dataType")
    method: Optional[str] = Field(default=None, alias="type")
    data: Any = None
    success: Optional[Callable[..., Any]] = None
    error: Optional[Callable[..., Any]] = None
    setter: Optional[str] = None
    path: Optional[str] = None
    events: Any = None
    headers: Optional[dict[str, str]] = None
    timeout: Optional[float] = None


class CallOverrides(_Options):
    """
    Per-call overrides for a service.

    Every service key except `id` can be overridden; `events` add to the
    service's events instead of replacing them. `params` is the fallback
    lookup for shortcut tokens, `abort` cancels a call already in flight.
    """
    url: Any = None
    content_type: Optional[str] = Field(default=None, alias="contentType")
    data_type: Optional[str] = Field(default=None, alias="dataType")
    method: Optional[str] = Field(default=None, alias="type")
    data: Any = None
    success: Optional[Callable[..., Any]] = None
    error: Optional[Callable[..., Any]] = None
    setter: Optional[str] = None
    path: Optional[str] = None
    events: Any = None
    headers: Optional[dict[str, str]] = None
    timeout: Optional[float] = None
    params: Optional[dict[str, Any]] = None
    abort: bool = False


# =============================================================================
# Engine descriptor
# =============================================================================

class EngineDescriptor(_Options):
    """Everything needed to build an engine."""
    name: Optional[str] = None
    properties: list[PropertyOptions] = Field(default_factory=list)
    hacks: list[HackOptions] = Field(default_factory=list)
    services: list[ServiceOptions] = Field(default_factory=list)
    shortcuts: list[ShortcutOptions] = Field(default_factory=list)
