"""
Tests for the type predicates.

Tests:
- Type names of Python values
- Type expression validity
- Conformance, including nullable and object shapes
- Value equality under atomic types
"""

from datetime import datetime
import re

import pytest

from ..engine_core.types import conforms, equal_under_type, is_atomic, is_valid_type, type_of


class TestTypeOf:
    """Tests for type_of."""

    @pytest.mark.parametrize("value,expected", [
        (None, "null"),
        (True, "boolean"),
        (3, "number"),
        (1.5, "number"),
        ("a", "string"),
        ([1, 2], "array"),
        ({"a": 1}, "object"),
        (datetime(2024, 1, 1), "date"),
        (re.compile("x"), "regexp"),
        (len, "function"),
    ])
    def test_type_names(self, value, expected):
        assert type_of(value) == expected

    def test_bool_is_not_a_number(self):
        """bool is an int subclass but must report boolean."""
        assert type_of(False) == "boolean"
        assert not conforms("number", True)


class TestValidity:
    """Tests for is_valid_type."""

    def test_known_names_and_unions(self):
        assert is_valid_type("number")
        assert is_valid_type("number|string")
        assert is_valid_type("?array")
        assert is_valid_type("*")

    def test_unknown_names(self):
        assert not is_valid_type("integer")
        assert not is_valid_type("number|int")

    def test_object_shapes(self):
        assert is_valid_type({"x": "number", "label": "?string"})
        assert not is_valid_type({"x": "nope"})

    def test_other_values_are_invalid(self):
        assert not is_valid_type(3)
        assert not is_valid_type(None)


class TestConforms:
    """Tests for conforms."""

    def test_simple_types(self):
        assert conforms("number", 1)
        assert not conforms("number", "1")
        assert conforms("string|number", "1")

    def test_null_requires_question_mark(self):
        assert not conforms("number", None)
        assert conforms("?number", None)

    def test_wildcard_accepts_anything_but_null(self):
        assert conforms("*", object())
        assert not conforms("*", None)
        assert conforms("?*", None)

    def test_object_shape(self):
        shape = {"x": "number", "label": "?string"}
        assert conforms(shape, {"x": 1, "label": "a"})
        assert conforms(shape, {"x": 1})
        assert not conforms(shape, {"x": "a"})
        assert not conforms(shape, {})
        assert not conforms(shape, [1])

    def test_object_shape_rejects_extra_keys(self):
        assert not conforms({"x": "number"}, {"x": 1, "y": 2})

    def test_object_shape_rejects_non_mappings(self):
        class Point:
            x = 1

        assert not conforms({"x": "number"}, Point())
        assert not conforms({"x": "number"}, {1, 2})
        assert not conforms({"x": "number"}, b"x")


class TestAtomicEquality:
    """Tests for is_atomic and equal_under_type."""

    def test_atomic_types(self):
        assert is_atomic("number|string")
        assert is_atomic({"x": "number"})
        assert not is_atomic("array")
        assert not is_atomic({"x": "array"})
        assert not is_atomic(None)

    def test_equal_values(self):
        assert equal_under_type(1, 1, "number")
        assert not equal_under_type(1, 2, "number")
        assert equal_under_type({"x": 1}, {"x": 1}, {"x": "number"})

    def test_equal_requires_same_type(self):
        """1 == True in Python, but not under a union type."""
        assert not equal_under_type(1, True, "number|boolean")

    def test_non_atomic_never_equal(self):
        assert not equal_under_type([1], [1], "array")

    def test_non_conforming_never_equal(self):
        assert not equal_under_type("a", "a", "number")

    def test_non_mapping_shapes_never_equal(self):
        assert not equal_under_type({1}, {1}, {"x": "?number"})
