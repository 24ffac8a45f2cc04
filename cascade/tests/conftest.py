"""
Pytest fixtures for Cascade tests.
"""

import pytest

from ..engine_core import Engine, Module
from ..settings import Settings, reset_settings
from ..transport import DeferredTransport


@pytest.fixture
def transport() -> DeferredTransport:
    """Transport whose calls complete only when a test settles them."""
    return DeferredTransport()


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from CASCADE_* environment variables."""
    return Settings()


@pytest.fixture
def strict_settings() -> Settings:
    return Settings(strict=True)


@pytest.fixture
def make_engine(transport, settings):
    """Build engines wired to the deferred transport and isolated settings."""
    def _make(descriptor=None, **kwargs):
        kwargs.setdefault("transport", transport)
        kwargs.setdefault("settings", settings)
        return Engine(descriptor, **kwargs)
    return _make


@pytest.fixture
def counter_engine(make_engine) -> Engine:
    """A single number property written by "inc" and announcing "countChanged"."""
    return make_engine({
        "name": "counter",
        "properties": [
            {
                "id": "count",
                "type": "number",
                "value": 0,
                "triggers": "inc",
                "dispatch": "countChanged",
            },
        ],
    })


@pytest.fixture
def recorder():
    """Subscribe to engine events and keep what was published, in order."""
    def _record(engine: Engine, *names: str) -> list:
        seen = []
        for name in names:
            engine.subscribe(name, seen.append)
        return seen
    return _record


class WatchingModule(Module):
    """Module recording the events and property updates it declared interest in."""

    def __init__(self, events, properties, *args):
        super().__init__(*args)
        self.seen_events = []
        self.seen_properties = []
        for name in events:
            self.triggers.events[name] = self.seen_events.append
        for name in properties:
            self.triggers.properties[name] = self.seen_properties.append


@pytest.fixture
def watching_module():
    return WatchingModule


@pytest.fixture(autouse=True)
def _restore_global_settings():
    """Tests that call configure() must not leak into the next test."""
    yield
    reset_settings()
