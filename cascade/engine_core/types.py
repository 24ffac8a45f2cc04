"""
Type Predicates - The narrow type language used by property declarations.

A type expression is either:
- A string of type names joined by "|", optionally prefixed with "?" to
  accept None: "number", "string|number", "?array", "*"
- A mapping describing an object shape: {"x": "number", "label": "?string"}

Known type names:
    * boolean number string function array date regexp object null undefined

Atomic types (number, string, boolean, null, undefined and shapes made
only of those) can be compared by value; writing an equal value to an
atomic-typed property is a no-op.
"""

from __future__ import annotations
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any
import re

ATOMS = frozenset({"number", "string", "boolean", "null", "undefined"})

TYPES = frozenset({
    "*",
    "boolean",
    "number",
    "string",
    "function",
    "array",
    "date",
    "regexp",
    "object",
    "null",
    "undefined",
})


def type_of(value: Any) -> str:
    """Return the type name of a Python value."""
    if value is None:
        return "null"
    # bool before number: bool is an int subclass
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, (datetime, date)):
        return "date"
    if isinstance(value, re.Pattern):
        return "regexp"
    if isinstance(value, Mapping):
        return "object"
    if callable(value):
        return "function"
    return "object"


def _tokens(expr: str) -> list[str]:
    return expr[1:].split("|") if expr.startswith("?") else expr.split("|")


def is_valid_type(expr: Any) -> bool:
    """Check that a type expression only uses known type names."""
    if isinstance(expr, str):
        return all(token in TYPES for token in _tokens(expr))
    if isinstance(expr, Mapping):
        return all(is_valid_type(sub) for sub in expr.values())
    return False


def conforms(expr: Any, value: Any) -> bool:
    """
    Check that a value conforms to a type expression.

    Object shapes reject values carrying keys the shape does not declare.
    """
    if isinstance(expr, str):
        if value is None:
            return expr.startswith("?")
        tokens = _tokens(expr)
        return "*" in tokens or type_of(value) in tokens

    if isinstance(expr, Mapping):
        # Only mappings have keys to check; sets and plain instances also report "object"
        if not isinstance(value, Mapping):
            return False
        for key, sub in expr.items():
            if not conforms(sub, value.get(key)):
                return False
        return all(key in expr for key in value)

    return False


def is_atomic(expr: Any) -> bool:
    """Check whether values of this type can be compared by value."""
    if isinstance(expr, str):
        return all(token in ATOMS for token in _tokens(expr))
    if isinstance(expr, Mapping):
        return all(is_atomic(sub) for sub in expr.values())
    return False


def equal_under_type(a: Any, b: Any, expr: Any) -> bool:
    """
    Compare two values of an atomic type.

    Returns False whenever the type is not atomic or either value does
    not conform, so callers treat the write as a change.
    """
    if not is_atomic(expr) or not conforms(expr, a) or not conforms(expr, b):
        return False

    if isinstance(expr, str):
        # 1 == True in Python; the types must match too
        return type_of(a) == type_of(b) and a == b

    if not (isinstance(a, Mapping) and isinstance(b, Mapping)):
        return False
    return all(equal_under_type(a.get(key), b.get(key), sub) for key, sub in expr.items())
