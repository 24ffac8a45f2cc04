"""
Shortcuts - Token substitution for service URLs, data, setters and paths.

A token is the configured prefix (":" by default) followed by a bare
word, e.g. ":user". It resolves, in order, to:
1. a registered shortcut method, called with a light scope
2. a registered property's current value
3. the first fallback mapping holding that key
Unresolved tokens pass through unchanged.
"""

from __future__ import annotations
from collections.abc import Mapping
from typing import Any, Callable, TYPE_CHECKING
import re

from ..schema.models import ShortcutOptions
from .scope import execute

if TYPE_CHECKING:
    from .engine import Engine

# Upper bound on URL rewriting passes, for tokens that expand to tokens
MAX_EXPANSION_PASSES = 32


class ShortcutRegistry:
    """Owns shortcut methods and performs token expansion."""

    def __init__(self, engine: Engine):
        self._engine = engine
        self._shortcuts: dict[str, Callable[..., Any]] = {}

    def __contains__(self, shortcut_id: Any) -> bool:
        return shortcut_id in self._shortcuts

    def register(
        self,
        shortcut_id: str | ShortcutOptions | Mapping[str, Any] | None,
        method: Callable[..., Any] | None = None,
    ) -> None:
        if isinstance(shortcut_id, Mapping):
            shortcut_id = ShortcutOptions.model_validate(shortcut_id)
        if isinstance(shortcut_id, ShortcutOptions):
            shortcut_id, method = shortcut_id.id, shortcut_id.method

        diagnostics = self._engine.diagnostics
        if shortcut_id is None:
            diagnostics.die("Shortcut ID not specified.")
        if shortcut_id in self._shortcuts:
            diagnostics.die(f'Shortcut "{shortcut_id}" already exists.')
        if method is None:
            diagnostics.die("Shortcut method not specified.")
        if not callable(method):
            diagnostics.die(f'Shortcut "{shortcut_id}": method must be callable.')

        self._shortcuts[shortcut_id] = method

    # =========================================================================
    # Expansion
    # =========================================================================

    @property
    def prefix(self) -> str:
        return self._engine.settings.shortcut_prefix

    def full_pattern(self) -> re.Pattern[str]:
        return re.compile("^" + re.escape(self.prefix) + r"(\w+)$")

    def contains_pattern(self) -> re.Pattern[str]:
        return re.compile(re.escape(self.prefix) + r"(\w+)")

    def is_token(self, value: Any) -> bool:
        return isinstance(value, str) and bool(self.full_pattern().match(value))

    def expand(self, value: Any, *fallbacks: Any) -> Any:
        """Resolve `value` if it is exactly one token, else return it unchanged."""
        if value is None:
            return value
        match = self.full_pattern().match(str(value))
        if not match:
            return value
        name = match.group(1)

        method = self._shortcuts.get(name)
        if method is not None:
            return execute(self._engine, method).returned_value

        if self._engine.has_property(name):
            return self._engine.get(name)

        for fallback in fallbacks:
            if isinstance(fallback, Mapping) and name in fallback:
                return fallback[name]

        return value

    def expand_string(self, text: str, *fallbacks: Any) -> str:
        """
        Expand every token found inside a string.

        Repeats until no token remains or a pass changes nothing.
        """
        pattern = self.contains_pattern()

        def substitute(match: re.Match[str]) -> str:
            expanded = self.expand(match.group(0), *fallbacks)
            return "" if expanded is None else str(expanded)

        previous = None
        passes = 0
        while text != previous and pattern.search(text) and passes < MAX_EXPANSION_PASSES:
            previous = text
            text = pattern.sub(substitute, text)
            passes += 1
        return text

    def expand_data(self, data: Any, *fallbacks: Any) -> Any:
        """
        Expand request data.

        A string that is exactly one token is expanded; in a mapping, only
        first-level string values that are exactly one token are expanded.
        """
        if isinstance(data, str):
            return self.expand(data, *fallbacks) if self.is_token(data) else data

        if not isinstance(data, Mapping):
            return data

        expanded = dict(data)
        for _ in range(MAX_EXPANSION_PASSES):
            changed = False
            for key, value in expanded.items():
                if not self.is_token(value):
                    continue
                resolved = self.expand(value, *fallbacks)
                if resolved != value:
                    expanded[key] = resolved
                    changed = True
            if not changed:
                break
        return expanded
