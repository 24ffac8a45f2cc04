"""
Tests for execution scopes.

Tests:
- Capability levels
- Recording and harvesting of effects
- Pending values shadowing stored ones
"""

import pytest

from ..engine_core.scope import (
    RESERVED_NAMES,
    CallScope,
    FullScope,
    LightScope,
    ScopeLevel,
    build_scope,
    execute,
)
from ..errors import FatalError


class TestLevels:
    """Tests for scope capabilities."""

    def test_build_scope_levels(self, counter_engine):
        assert type(build_scope(counter_engine)) is LightScope
        assert type(build_scope(counter_engine, ScopeLevel.CALL)) is CallScope
        assert type(build_scope(counter_engine, ScopeLevel.FULL)) is FullScope

    def test_light_scope_cannot_call_or_update(self, counter_engine):
        scope = build_scope(counter_engine)
        assert not hasattr(scope, "call")
        assert not hasattr(scope, "update")

    def test_call_scope_cannot_update(self, counter_engine):
        scope = build_scope(counter_engine, ScopeLevel.CALL)
        assert hasattr(scope, "call")
        assert not hasattr(scope, "update")

    def test_engine_owner_gets_full_scope(self, counter_engine):
        counter_engine.scope.update({"count": 4})
        assert counter_engine.get("count") == 4

    def test_reserved_names(self):
        for name in ("get", "set", "update", "call", "dispatch", "events", "services", "hacks"):
            assert name in RESERVED_NAMES


class TestExecute:
    """Tests for execute and harvesting."""

    def test_harvest_collects_effects(self, counter_engine):
        def closure(scope, amount):
            scope["count"] = amount
            scope.dispatch("a b", "a")
            scope.call("load", {"data": {"q": 1}})
            return "done"

        result = execute(counter_engine, closure, params=(5,), level=ScopeLevel.CALL)

        assert result.returned_value == "done"
        assert result.properties == {"count": 5}
        assert result.events == ["a", "b"]
        assert [c.service for c in result.service_calls] == ["load"]
        assert result.service_calls[0].params == {"data": {"q": 1}}

    def test_effects_are_not_applied(self, counter_engine):
        """Writes are recorded, never applied by the scope itself."""
        execute(counter_engine, lambda scope: scope.set("count", 9))
        assert counter_engine.get("count") == 0

    def test_unknown_key_is_dropped(self, counter_engine):
        result = execute(counter_engine, lambda scope: scope.set("nope", 1))

        assert result.properties == {}
        assert any("is not a method nor a property" in w for w in counter_engine.diagnostics.warnings)

    def test_inputs_shadow_stored_values(self, counter_engine):
        def closure(scope):
            return scope["count"], scope.get("count"), "count" in scope

        assert execute(counter_engine, closure, inputs={"count": 7}).returned_value == (7, 0, True)
        assert execute(counter_engine, closure).returned_value == (0, 0, False)

    def test_not_callable_is_fatal(self, counter_engine):
        with pytest.raises(FatalError):
            execute(counter_engine, "not a function")
