"""
Descriptor Validation - Static checks on an engine descriptor.

Validates, without building an engine, that:
1. The descriptor has the right structure
2. Ids are present, unique and not reserved
3. Hacks have triggers and something to do
4. Type expressions and initial values are consistent
5. Services reference known properties

Errors are what would make engine construction fail; warnings are what
would only produce diagnostics at runtime.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from ..engine_core.events import as_names
from ..engine_core.scope import RESERVED_NAMES
from ..engine_core.types import conforms, is_valid_type
from ..errors import DescriptorValidationError
from .models import EngineDescriptor, HackOptions, PropertyOptions, ServiceOptions, ShortcutOptions


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str]
    warnings: list[str]


def validate_descriptor(
    descriptor: EngineDescriptor | Mapping[str, Any],
    raise_on_error: bool = False,
) -> ValidationResult:
    """
    Validate a complete engine descriptor.

    Returns ValidationResult with errors and warnings.
    Raises DescriptorValidationError if raise_on_error=True and errors exist.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if isinstance(descriptor, Mapping):
        try:
            descriptor = EngineDescriptor.model_validate(descriptor)
        except ValidationError as exc:
            for err in exc.errors():
                location = ".".join(str(part) for part in err["loc"])
                errors.append(f"{location}: {err['msg']}")
            return _finish(errors, warnings, raise_on_error)

    property_ids: set[str] = set()
    for index, prop in enumerate(descriptor.properties):
        errors.extend(_validate_property(index, prop, property_ids, warnings))

    for index, hack in enumerate(descriptor.hacks):
        errors.extend(_validate_hack(index, hack))

    service_ids: set[str] = set()
    for service in descriptor.services:
        errors.extend(_validate_service(service, service_ids, property_ids, warnings))

    shortcut_ids: set[str] = set()
    for shortcut in descriptor.shortcuts:
        errors.extend(_validate_shortcut(shortcut, shortcut_ids))

    if not descriptor.properties and not descriptor.hacks:
        warnings.append("No properties or hacks defined - nothing will react to events")

    return _finish(errors, warnings, raise_on_error)


def _finish(errors: list[str], warnings: list[str], raise_on_error: bool) -> ValidationResult:
    if errors and raise_on_error:
        raise DescriptorValidationError(errors)
    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def _event_declaration_ok(value: Any) -> bool:
    if value is None or isinstance(value, str):
        return True
    return isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value)


def _validate_property(
    index: int, prop: PropertyOptions, seen: set[str], warnings: list[str]
) -> list[str]:
    """Validate a single property declaration."""
    errors = []
    if not prop.id:
        errors.append(f"Property #{index} has no id")
        return errors

    if prop.id in seen:
        errors.append(f'Property "{prop.id}" already exists')
    if prop.id in RESERVED_NAMES:
        errors.append(f'"{prop.id}" can not be used to name a property')
    seen.add(prop.id)

    if prop.type is not None:
        if not is_valid_type(prop.type):
            warnings.append(f'Property "{prop.id}": Type not valid')
        elif not prop.has_value:
            warnings.append(f'Property "{prop.id}": Initial value is missing')
        elif prop.setter is None and not conforms(prop.type, prop.value):
            warnings.append(f'Property "{prop.id}": Initial value does not match type')

    for key in ("triggers", "dispatch"):
        if not _event_declaration_ok(getattr(prop, key)):
            warnings.append(
                f'Property "{prop.id}": Events ("{key}") must be a list or a space-separated string'
            )

    return errors


def _validate_hack(index: int, hack: HackOptions) -> list[str]:
    errors = []
    if not as_names(hack.triggers):
        errors.append(f"Hack #{index} requires at least one trigger")
    if hack.method is None and not as_names(hack.dispatch):
        errors.append(f'Hack #{index} requires at least a method or a "dispatch" value')
    return errors


def _validate_service(
    service: ServiceOptions,
    seen: set[str],
    property_ids: set[str],
    warnings: list[str],
) -> list[str]:
    errors = []
    if not isinstance(service.id, str) or not service.id:
        errors.append("A service has no id")
        return errors

    if service.id in seen:
        errors.append(f'The service "{service.id}" already exists')
    seen.add(service.id)

    if not (isinstance(service.url, str) or callable(service.url)):
        errors.append(f'Service "{service.id}": URL is not valid')

    # Token setters are resolved at call time
    if service.setter and not service.setter.startswith(":") and service.setter not in property_ids:
        warnings.append(f'Service "{service.id}" writes unknown property "{service.setter}"')

    return errors


def _validate_shortcut(shortcut: ShortcutOptions, seen: set[str]) -> list[str]:
    errors = []
    if not shortcut.id:
        errors.append("A shortcut has no id")
        return errors
    if shortcut.id in seen:
        errors.append(f'Shortcut "{shortcut.id}" already exists')
    if shortcut.method is None:
        errors.append(f'Shortcut "{shortcut.id}" has no method')
    seen.add(shortcut.id)
    return errors
