"""
Tests for the operator table: arity, result types and implementations.
"""

import math

import pytest
from scoredoc.errors import SchemaMismatch
from scoredoc.operators import OPERATORS, get_operator
from scoredoc.schema import BOOLEAN, DOUBLE, INT, LONG, STRING, Map


class TestArity:
    def test_binary(self):
        plus = get_operator("+")
        assert plus.accepts(2)
        assert not plus.accepts(1)
        assert not plus.accepts(3)
        assert plus.arity == "2"

    def test_variadic_map_new(self):
        op = get_operator("map.new")
        assert op.accepts(6)
        assert op.arity == "2+"

    def test_unknown_operator(self):
        assert get_operator("m.sigmoid") is None


class TestResultTypes:
    """Result type rules."""

    def test_addition_promotes(self):
        assert OPERATORS["+"].result([INT, INT]) == INT
        assert OPERATORS["+"].result([INT, LONG]) == LONG
        assert OPERATORS["+"].result([INT, DOUBLE]) == DOUBLE

    def test_division_is_double(self):
        assert OPERATORS["/"].result([INT, INT]) == DOUBLE

    def test_arithmetic_rejects_strings(self):
        with pytest.raises(SchemaMismatch):
            OPERATORS["*"].result([STRING, DOUBLE])

    def test_comparison(self):
        assert OPERATORS["<"].result([INT, DOUBLE]) == BOOLEAN
        assert OPERATORS["=="].result([STRING, STRING]) == BOOLEAN
        with pytest.raises(SchemaMismatch):
            OPERATORS["<"].result([STRING, DOUBLE])

    def test_boolean_logic(self):
        assert OPERATORS["&&"].result([BOOLEAN, BOOLEAN]) == BOOLEAN
        with pytest.raises(SchemaMismatch):
            OPERATORS["!"].result([INT])

    def test_maps(self):
        assert OPERATORS["map.new"].result([STRING, DOUBLE, STRING, DOUBLE]) == Map(DOUBLE)
        assert OPERATORS["map.get"].result([Map(DOUBLE), STRING]) == DOUBLE
        assert OPERATORS["m.link.softmax"].result([Map(DOUBLE)]) == Map(DOUBLE)

    def test_map_keys_must_be_strings(self):
        with pytest.raises(SchemaMismatch):
            OPERATORS["map.new"].result([INT, DOUBLE])

    def test_map_new_needs_pairs(self):
        with pytest.raises(SchemaMismatch):
            OPERATORS["map.new"].result([STRING, DOUBLE, STRING])


class TestImplementations:
    """Python implementations used by the local engine."""

    def test_inverse_logit(self):
        logit = OPERATORS["m.link.logit"].impl
        assert logit(0.0) == pytest.approx(0.5)
        assert logit(-1000.0) == pytest.approx(0.0)
        assert logit(1000.0) == pytest.approx(1.0)

    def test_inverse_probit(self):
        probit = OPERATORS["m.link.probit"].impl
        assert probit(0.0) == pytest.approx(0.5)
        assert probit(1.96) == pytest.approx(0.975, abs=1e-3)

    def test_inverse_cloglog(self):
        assert OPERATORS["m.link.cloglog"].impl(0.0) == pytest.approx(1.0 - math.exp(-1.0))

    def test_softmax_sums_to_one(self):
        probs = OPERATORS["m.link.softmax"].impl({"a": 1.0, "b": 2.0, "c": 3.0})
        assert sum(probs.values()) == pytest.approx(1.0)
        assert probs["c"] > probs["b"] > probs["a"]

    def test_map_roundtrip(self):
        m = OPERATORS["map.new"].impl("a", 1.0, "b", 2.0)
        assert m == {"a": 1.0, "b": 2.0}
        assert OPERATORS["map.get"].impl(m, "b") == 2.0

    def test_round_returns_float(self):
        assert OPERATORS["m.round"].impl(2.4) == 2.0
