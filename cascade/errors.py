"""
Error types raised by the engine.

Severities:
- FatalError: construction-time problems (duplicate ids, missing fields,
  non-callable closures). Always raised.
- DiagnosticError: recoverable problems, raised only in strict mode.
  Otherwise they are logged and the offending operation is skipped.

Transport failures are never raised; they are routed to the service's
error closure.
"""

from __future__ import annotations


class CascadeError(Exception):
    """Base class for every error raised by the engine."""


class FatalError(CascadeError):
    """Raised when the engine cannot be built or a die() is requested."""


class DiagnosticError(CascadeError):
    """Raised for a recoverable diagnostic when strict mode is enabled."""


class DescriptorValidationError(CascadeError):
    """Raised when descriptor validation fails."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Descriptor validation failed with {len(errors)} error(s)")
