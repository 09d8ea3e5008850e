"""
Tests for the expression node system.

These tests verify:
    - Nodes can be created and composed
    - Nodes are immutable and compare structurally
    - Literal type tagging keeps integers and floats apart
    - Free reference analysis respects Let scope
"""

from dataclasses import FrozenInstanceError

import pytest
from scoredoc.expressions import (
    Block,
    Call,
    ExprNode,
    If,
    Let,
    Literal,
    Ref,
    call,
    children,
    iter_refs,
    lit,
    literal_type,
    local,
    num,
    walk,
)
from scoredoc.schema import BOOLEAN, DOUBLE, INT, LONG, NULL, STRING


class TestLiteral:
    """Typed constants."""

    def test_integer_stays_integer(self):
        """2 is an int literal, never widened to double."""
        assert lit(2) == Literal(2, INT)
        assert lit(2) != lit(2.0)

    def test_large_integer_is_long(self):
        assert literal_type(2 ** 40) == LONG

    def test_bool_is_not_int(self):
        assert literal_type(True) == BOOLEAN

    def test_other_tags(self):
        assert literal_type(None) == NULL
        assert literal_type("yes") == STRING
        assert literal_type(0.5) == DOUBLE

    def test_unsupported_value(self):
        with pytest.raises(TypeError):
            literal_type(object())

    def test_num_is_always_double(self):
        assert num(3) == Literal(3.0, DOUBLE)


class TestComposition:
    """Building and inspecting trees."""

    def test_call_args_are_tuple(self):
        node = Call("+", [Ref("x"), lit(1)])
        assert node.args == (Ref("x"), Literal(1, INT))
        assert isinstance(node, ExprNode)

    def test_call_helper(self):
        assert call("*", Ref("x"), num(2)) == Call("*", (Ref("x"), num(2)))

    def test_nodes_are_immutable(self):
        node = Ref("x")
        with pytest.raises(FrozenInstanceError):
            node.symbol = "y"

    def test_children_order(self):
        node = If(Ref("c"), Ref("a"), Ref("b"))
        assert children(node) == (Ref("c"), Ref("a"), Ref("b"))

    def test_walk_visits_every_node(self):
        node = Block((Call("+", (Ref("x"), num(1))), Ref("y")))
        assert len(list(walk(node))) == 5

    def test_structural_equality(self):
        """Two separately built trees with the same shape are equal."""
        first = Let((("t", Ref("x")),), Call("*", (Ref("t"), Ref("t"))))
        second = Let([("t", Ref("x"))], Call("*", [Ref("t"), Ref("t")]))
        assert first == second


class TestFreeReferences:
    """iter_refs reports only symbols not bound by an enclosing Let."""

    def test_plain_refs(self):
        node = Call("+", (Ref("x"), Ref("y")))
        assert list(iter_refs(node)) == ["x", "y"]

    def test_let_binding_is_not_free(self):
        node = Let((("t", Ref("x")),), Call("+", (Ref("t"), Ref("y"))))
        assert list(iter_refs(node)) == ["x", "y"]

    def test_binding_visible_to_later_bindings(self):
        node = Let((("a", Ref("x")), ("b", Ref("a"))), Ref("b"))
        assert list(iter_refs(node)) == ["x"]

    def test_binding_not_visible_before_itself(self):
        node = Let((("a", Ref("b")), ("b", Ref("x"))), Ref("a"))
        assert list(iter_refs(node)) == ["b", "x"]


def test_local_names_use_reserved_prefix():
    assert local("p") == "__p"
    assert local("score", 2) == "__score_2"
