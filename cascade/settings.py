"""
Global settings consumed by every engine instance.

The engine owns no policy: strictness, verbosity and the shortcut token
prefix are read from here at call time. Defaults come from the
environment so a host can flip them without code changes:

    CASCADE_STRICT=1            diagnostics become fatal
    CASCADE_VERBOSE=1           dump() output is logged
    CASCADE_SHORTCUT_PREFIX=:   prefix of shortcut tokens
    CASCADE_DISPLAY_TIME=1      prefix dump() lines with elapsed ms
    CASCADE_MAX_ITERATIONS=1000 main loop convergence bound (0 = none)
"""

from __future__ import annotations
from dataclasses import dataclass, fields, replace
from typing import Any
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    """Knobs consumed by the engine, diagnostics and shortcut expansion."""
    strict: bool = False
    verbose: bool = False
    shortcut_prefix: str = ":"
    display_time: bool = False
    max_iterations: int = 1000

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from CASCADE_* environment variables."""
        return cls(
            strict=_env_flag("CASCADE_STRICT"),
            verbose=_env_flag("CASCADE_VERBOSE"),
            shortcut_prefix=os.getenv("CASCADE_SHORTCUT_PREFIX", ":") or ":",
            display_time=_env_flag("CASCADE_DISPLAY_TIME"),
            max_iterations=_env_int("CASCADE_MAX_ITERATIONS", 1000),
        )


_settings = Settings.from_env()


def get_settings() -> Settings:
    """Return the process-wide settings."""
    return _settings


def configure(**changes: Any) -> Settings:
    """
    Update the process-wide settings.

    Unknown keys are ignored so hosts can pass a shared config mapping.
    Returns the updated settings.
    """
    global _settings
    known = {f.name for f in fields(Settings)}
    _settings = replace(_settings, **{k: v for k, v in changes.items() if k in known})
    return _settings


def reset_settings() -> Settings:
    """Restore settings from the environment."""
    global _settings
    _settings = Settings.from_env()
    return _settings
