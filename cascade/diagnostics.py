"""
Diagnostics - warn / die / dump helpers tagged with the engine name.

- warn(): recoverable problem. Fatal in strict mode, otherwise logged at
  WARNING level and kept in `warnings` so callers can inspect it.
- die(): always raises FatalError.
- dump(): debug trace, emitted only in verbose mode.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import logging
import time

from .errors import DiagnosticError, FatalError
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

_START_TIME = time.monotonic()

MAX_WARNINGS = 500


def _render(parts: tuple[Any, ...]) -> str:
    return " ".join(str(p) for p in parts)


@dataclass
class Diagnostics:
    """
    Diagnostic sink for one engine instance.

    Settings are resolved lazily so `configure()` calls made after the
    engine was built still apply. Only the latest `max_warnings` warnings
    are kept; hosts may also clear `warnings` themselves.
    """
    name: str
    settings_provider: Callable[[], Settings] = get_settings
    warnings: list[str] = field(default_factory=list)
    max_warnings: int = MAX_WARNINGS

    @property
    def settings(self) -> Settings:
        return self.settings_provider()

    def _tag(self, message: str) -> str:
        return f"[{self.name}] {message}"

    def warn(self, *parts: Any) -> None:
        message = self._tag(_render(parts))
        if self.settings.strict:
            raise DiagnosticError(message)
        self.warnings.append(message)
        if len(self.warnings) > self.max_warnings:
            del self.warnings[: len(self.warnings) - self.max_warnings]
        logger.warning(message)

    def die(self, *parts: Any) -> None:
        raise FatalError(self._tag(_render(parts)))

    def dump(self, *parts: Any) -> None:
        settings = self.settings
        if not settings.verbose:
            return
        message = self._tag(_render(parts))
        if settings.display_time:
            elapsed = int((time.monotonic() - _START_TIME) * 1000)
            message = f"{elapsed:08d} {message}"
        logger.debug(message)
