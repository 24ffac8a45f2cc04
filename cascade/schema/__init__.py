"""Engine descriptor schema - pydantic models and static validation."""

from .models import (
    EngineDescriptor,
    PropertyOptions,
    HackOptions,
    ServiceOptions,
    CallOverrides,
    ShortcutOptions,
)
from .validation import validate_descriptor, ValidationResult

__all__ = [
    "EngineDescriptor",
    "PropertyOptions",
    "HackOptions",
    "ServiceOptions",
    "CallOverrides",
    "ShortcutOptions",
    "validate_descriptor",
    "ValidationResult",
]
