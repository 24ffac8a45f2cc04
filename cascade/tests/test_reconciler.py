"""
Tests for the main loop.

Tests:
- Event -> property -> event propagation
- Forced writes
- Termination and the convergence bound
- Shared merge step
"""

import pytest

from ..engine_core.reconciler import LoopOptions, PendingEffects, as_events
from ..engine_core.events import Event
from ..engine_core.scope import ExecutionResult
from ..errors import DiagnosticError
from ..settings import Settings


@pytest.fixture
def chain_engine(make_engine):
    """setA writes a; a change makes a hack write b = a * 2."""
    def double(scope, event):
        scope["b"] = scope.get("a") * 2

    return make_engine({
        "properties": [
            {"id": "a", "type": "number", "value": 0, "triggers": "setA", "dispatch": "aChanged"},
            {"id": "b", "type": "number", "value": 0, "dispatch": "bChanged"},
        ],
        "hacks": [{"triggers": "aChanged", "method": double}],
    })


@pytest.fixture
def ping_pong_engine(make_engine):
    def _make(settings):
        return make_engine(
            {"hacks": [
                {"triggers": "ping", "dispatch": "pong"},
                {"triggers": "pong", "dispatch": "ping"},
            ]},
            settings=settings,
        )
    return _make


class TestPropagation:
    """Tests for event propagation."""

    def test_counter_scenario(self, counter_engine, watching_module):
        """A module publishing inc sees countChanged exactly once, with count == 1."""
        module = counter_engine.add_module(watching_module, [["countChanged"], []])

        module.publish("inc", {"count": 1})

        assert counter_engine.get("count") == 1
        assert len(module.seen_events) == 1
        assert module.seen_events[0].data.get("count") == 1

    def test_chain(self, chain_engine, recorder):
        seen = recorder(chain_engine, "aChanged", "bChanged")

        report = chain_engine.emit("setA", {"a": 2})

        assert chain_engine.get("b") == 4
        assert [e.type for e in seen] == ["aChanged", "bChanged"]
        assert report.dispatched == ["aChanged", "bChanged"]
        assert report.iterations == 3
        assert report.converged

    def test_published_events_carry_a_scope(self, chain_engine, recorder):
        seen = recorder(chain_engine, "aChanged")

        chain_engine.emit("setA", {"a": 2})

        assert seen[0].data.get("a") == 2
        assert not hasattr(seen[0].data, "call")

    def test_rejected_write_dispatches_nothing(self, chain_engine, recorder):
        seen = recorder(chain_engine, "aChanged")

        chain_engine.emit("setA", {"a": 0})

        assert seen == []

    def test_event_without_payload_key_writes_nothing(self, chain_engine):
        chain_engine.emit("setA", {"other": 1})
        assert chain_engine.get("a") == 0

    def test_update_propagates(self, chain_engine):
        chain_engine.update({"a": 3})
        assert chain_engine.get("b") == 6


class TestForce:
    """Tests for forced writes."""

    def test_force_counts_rejected_writes(self, chain_engine, recorder):
        seen = recorder(chain_engine, "aChanged")

        chain_engine.emit("setA", force=True)

        assert [e.type for e in seen] == ["aChanged"]

    def test_force_persists_across_iterations(self, chain_engine):
        options = LoopOptions(force=True)
        chain_engine.reconciler.run(as_events("setA"), options)

        assert options.force
        assert options.loop == 2


    def test_options_coercion(self):
        options = LoopOptions(force=True)

        assert LoopOptions.coerce(options) is options
        assert LoopOptions.coerce({"force": True}) == LoopOptions(force=True)
        assert LoopOptions.coerce(None) == LoopOptions()


class TestTermination:
    """Tests for loop termination."""

    def test_batch_without_consumers(self, counter_engine):
        report = counter_engine.emit("nobody")

        assert report.iterations == 1
        assert report.dispatched == []
        assert report.converged

    def test_empty_batch(self, counter_engine):
        report = counter_engine.emit([])
        assert report.iterations == 0

    def test_convergence_bound(self, ping_pong_engine):
        engine = ping_pong_engine(Settings(max_iterations=10))

        report = engine.emit("ping")

        assert not report.converged
        assert report.iterations == 10
        assert any("did not converge" in w for w in engine.diagnostics.warnings)

    def test_convergence_bound_is_fatal_in_strict_mode(self, ping_pong_engine):
        engine = ping_pong_engine(Settings(strict=True, max_iterations=5))
        with pytest.raises(DiagnosticError, match="did not converge"):
            engine.emit("ping")


class TestMergeStep:
    """Tests for PendingEffects and as_events."""

    def test_absorb_keeps_first_write(self, counter_engine):
        pending = PendingEffects(counter_engine.diagnostics)
        pending.absorb(ExecutionResult(properties={"count": 1}, events=["a"]))
        pending.absorb(ExecutionResult(properties={"count": 2}, events=["b", "a"]))

        assert pending.updates == {"count": 1}
        assert list(pending.dispatch) == ["a", "b"]
        assert len(counter_engine.diagnostics.warnings) == 1

    def test_settle_applies_and_publishes(self, counter_engine, recorder):
        seen = recorder(counter_engine, "countChanged")
        pending = PendingEffects(counter_engine.diagnostics)
        pending.updates["count"] = 5

        batch = counter_engine.reconciler.settle(pending)

        assert counter_engine.get("count") == 5
        assert [e.type for e in batch] == ["countChanged"]
        assert len(seen) == 1

    def test_as_events_forms(self):
        event = Event("x")
        assert as_events(event) == [event]
        assert [e.type for e in as_events("a b")] == ["a", "b"]
        assert as_events({"type": "a", "data": {"k": 1}})[0].data == {"k": 1}
        assert [e.type for e in as_events(["a", event])] == ["a", "x"]
