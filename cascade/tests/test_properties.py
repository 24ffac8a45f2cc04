"""
Tests for the property registry.

Tests:
- Registration and its fatal errors
- Default setter: type checks and atomic no-ops
- Overridden setters and getters
- Event indices
"""

import pytest

from ..errors import DiagnosticError, FatalError


def _warned(engine, text):
    return any(text in w for w in engine.diagnostics.warnings)


class TestRegistration:
    """Tests for property registration."""

    def test_initial_value(self, counter_engine):
        assert counter_engine.get("count") == 0
        assert counter_engine.has_property("count")

    def test_label_defaults_to_id(self, make_engine):
        engine = make_engine({"properties": [
            {"id": "a"},
            {"id": "b", "label": "The B"},
        ]})
        assert engine.get_label("a") == "a"
        assert engine.get_label("b") == "The B"

    def test_missing_id_is_fatal(self, make_engine):
        with pytest.raises(FatalError, match="Property name not specified"):
            make_engine({"properties": [{"value": 1}]})

    def test_duplicate_id_is_fatal(self, make_engine):
        with pytest.raises(FatalError, match="already exists"):
            make_engine({"properties": [{"id": "a"}, {"id": "a"}]})

    def test_reserved_id_is_fatal(self, make_engine):
        with pytest.raises(FatalError, match="can not be used"):
            make_engine({"properties": [{"id": "update"}]})

    def test_non_callable_setter_is_fatal(self, make_engine):
        with pytest.raises(FatalError):
            make_engine({"properties": [{"id": "a", "setter": 5}]})

    def test_invalid_type_is_ignored(self, make_engine):
        engine = make_engine({"properties": [{"id": "a", "type": "integer", "value": "x"}]})

        assert _warned(engine, "Type not valid")
        assert engine.get("a") == "x"

    def test_missing_initial_value(self, make_engine):
        """A typed property without a value starts as None without a warning."""
        engine = make_engine({"properties": [{"id": "a", "type": "number"}]})

        assert engine.get("a") is None
        assert engine.diagnostics.warnings == []

    def test_event_indices(self, make_engine):
        engine = make_engine({"properties": [
            {"id": "a", "triggers": "x y", "dispatch": ["aChanged"]},
            {"id": "b", "triggers": ["y"]},
        ]})

        assert engine.properties.ascending == {"x": ["a"], "y": ["a", "b"]}
        assert engine.properties.descending == {"a": ["aChanged"]}
        assert engine.get_events_for("a") == ["x", "y"]

    def test_malformed_triggers(self, make_engine):
        engine = make_engine({"properties": [{"id": "a", "triggers": 5}]})

        assert _warned(engine, '("triggers") must be specified in a list')
        assert engine.properties.ascending == {}


class TestDefaultSetter:
    """Tests for writes through the default setter."""

    def test_accepted_write(self, counter_engine):
        assert counter_engine.properties.set("count", 3) is True
        assert counter_engine.get("count") == 3

    def test_equal_atomic_value_is_noop(self, counter_engine):
        assert counter_engine.properties.set("count", 0) is False

    def test_equal_non_atomic_value_is_a_change(self, make_engine):
        engine = make_engine({"properties": [{"id": "items", "type": "array", "value": [1]}]})
        assert engine.properties.set("items", [1]) is True

    def test_wrong_type_is_rejected(self, counter_engine):
        counter_engine.update({"count": "three"})

        assert counter_engine.get("count") == 0
        assert _warned(counter_engine, 'Property "count": Wrong type error')

    def test_wrong_shape_is_rejected(self, make_engine):
        engine = make_engine({"properties": [
            {"id": "point", "type": {"x": "number", "y": "number"}, "value": {"x": 0, "y": 0}},
        ]})

        assert engine.properties.set("point", {"x": 1}) is False
        assert engine.properties.set("point", {"x": 1, "y": 2, "z": 3}) is False
        assert engine.get("point") == {"x": 0, "y": 0}
        assert len(engine.diagnostics.warnings) == 2

    def test_non_mapping_object_is_rejected(self, make_engine):
        """Sets and plain instances are objects too, but have no keys to check."""
        class Point:
            def __init__(self, x):
                self.x = x

        engine = make_engine({"properties": [{"id": "p", "type": {"x": "number"}, "value": {"x": 0}}]})

        engine.update({"p": Point(2)})
        engine.update({"p": {1, 2}})

        assert engine.get("p") == {"x": 0}
        assert len(engine.diagnostics.warnings) == 2
        assert all("Wrong type error" in w for w in engine.diagnostics.warnings)

    def test_wrong_type_is_fatal_in_strict_mode(self, make_engine, strict_settings):
        engine = make_engine(
            {"properties": [{"id": "count", "type": "number", "value": 0}]},
            settings=strict_settings,
        )
        with pytest.raises(DiagnosticError):
            engine.update({"count": "three"})

    def test_unknown_property(self, counter_engine):
        assert counter_engine.get("nope") is None
        assert counter_engine.properties.set("nope", 1) is False
        assert _warned(counter_engine, 'Property "nope" not referenced.')


class TestOverriddenAccessors:
    """Tests for custom setters and getters."""

    def test_setter_transforms_value(self, make_engine):
        def upper(scope):
            scope["name"] = scope["name"].upper()

        engine = make_engine({"properties": [
            {"id": "name", "type": "string", "value": "alice", "setter": upper},
        ]})
        assert engine.get("name") == "ALICE"

        engine.update({"name": "bob"})
        assert engine.get("name") == "BOB"

    def test_setter_can_reject(self, make_engine):
        def only_positive(scope):
            return scope["n"] > 0

        engine = make_engine({"properties": [
            {"id": "n", "type": "number", "value": 1, "setter": only_positive},
        ]})

        assert engine.properties.set("n", -1) is False
        assert engine.get("n") == 1

    def test_setter_result_is_type_checked(self, make_engine):
        def bad(scope):
            scope["n"] = "oops"

        engine = make_engine({"properties": [{"id": "n", "type": "number", "setter": bad}]})

        assert engine.properties.set("n", 1) is False
        assert engine.get("n") is None
        assert _warned(engine, "Wrong type error")

    def test_setter_receives_parameters(self, make_engine):
        def in_meters(scope, unit="m"):
            scope["distance"] = scope["distance"] * (1000 if unit == "km" else 1)

        engine = make_engine({"properties": [{"id": "distance", "setter": in_meters}]})
        engine.properties.set("distance", 2, "km")

        assert engine.get("distance") == 2000

    def test_setter_writes_to_other_properties_are_ignored(self, make_engine):
        def sneaky(scope):
            scope["other"] = "changed"

        engine = make_engine({"properties": [
            {"id": "other", "value": "original"},
            {"id": "a", "setter": sneaky},
        ]})
        engine.properties.set("a", 1)

        assert engine.get("a") == 1
        assert engine.get("other") == "original"

    def test_getter(self, make_engine):
        def doubled(scope):
            return scope["temp"] * 2

        engine = make_engine({"properties": [
            {"id": "temp", "type": "number", "value": 21, "getter": doubled},
        ]})

        assert engine.get("temp") == 42
        # Stored value is untouched
        assert engine.properties.descriptor("temp").value == 21

    def test_snapshot_reads_through_getters(self, make_engine):
        engine = make_engine({"properties": [
            {"id": "a", "value": 1},
            {"id": "b", "value": 2, "getter": lambda scope: scope["b"] + 1},
        ]})
        assert engine.snapshot() == {"a": 1, "b": 3}
