"""
Expression Nodes

A document's action is a tree of expression nodes, never a string of
code in some target language.

This ensures:
    - Type inference before anything is executed
    - Language independence of the emitted document
    - Serialization capability
    - Structural comparison (two compiles of the same model are equal)

ARCHITECTURAL RULE:
    Nodes are structure only. They never evaluate themselves,
    simplify themselves or render themselves.
"""

from dataclasses import dataclass
from typing import Any, Iterator, Optional, Set, Tuple

from .schema import BOOLEAN, DOUBLE, INT, LONG, NULL, STRING, TypeDescriptor

INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1


class ExprNode:
    """
    Base class for all expression nodes.

    DO NOT:
        - Add evaluation logic here (belongs in the engine)
        - Add type inference here (belongs in the assembler)
        - Add constant folding anywhere
    """
    pass


@dataclass(frozen=True)
class Literal(ExprNode):
    """
    A typed constant.

    Examples:
        Literal(2, INT)
        Literal(0.39, DOUBLE)
        Literal("setosa", STRING)

    Properties:
        value: the constant (bool, int, float, str, None, or a dict/list
               for map and array cell initialisers)
        type: its TypeDescriptor
    """

    value: Any
    type: TypeDescriptor


@dataclass(frozen=True)
class Ref(ExprNode):
    """
    Reference to an input field, a cell, or a Let binding.

    Resolution is checked by the assembler, not here.
    """

    symbol: str


@dataclass(frozen=True)
class Call(ExprNode):
    """
    Operator or function application.

    Example:
        X1 * 0.39 + 2.33

    Becomes:
        Call("+", (Call("*", (Ref("X1"), Literal(0.39, DOUBLE))),
                   Literal(2.33, DOUBLE)))

    Properties:
        op: operator name from the operator table
        args: ordered argument nodes
    """

    op: str
    args: Tuple[ExprNode, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))


@dataclass(frozen=True)
class Let(ExprNode):
    """
    Sequential local bindings.

    Each binding is visible to the bindings after it and to the body.

    Properties:
        bindings: ordered (name, expression) pairs
        body: expression evaluated with all bindings in scope
    """

    bindings: Tuple[Tuple[str, ExprNode], ...]
    body: ExprNode

    def __post_init__(self):
        object.__setattr__(self, "bindings", tuple((str(n), e) for n, e in self.bindings))


@dataclass(frozen=True)
class If(ExprNode):
    """Two-way conditional. Both branches are required."""

    cond: ExprNode
    then: ExprNode
    orelse: ExprNode


@dataclass(frozen=True)
class Block(ExprNode):
    """Ordered statements; the value is that of the last one."""

    statements: Tuple[ExprNode, ...]

    def __post_init__(self):
        object.__setattr__(self, "statements", tuple(self.statements))


def literal_type(value: Any) -> TypeDescriptor:
    """
    Type tag for a Python constant.

    bool is checked before int (bool is an int subclass). Integers keep
    integer type: int when they fit in 32 bits, long otherwise.
    """
    if value is None:
        return NULL
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, int):
        return INT if INT_MIN <= value <= INT_MAX else LONG
    if isinstance(value, float):
        return DOUBLE
    if isinstance(value, str):
        return STRING
    raise TypeError(f"Cannot type-tag literal of type {type(value).__name__}")


def lit(value: Any, type: Optional[TypeDescriptor] = None) -> Literal:
    return Literal(value, type if type is not None else literal_type(value))


def num(value: float) -> Literal:
    """A double literal, whatever the Python type of value."""
    return Literal(float(value), DOUBLE)


def call(op: str, *args: ExprNode) -> Call:
    return Call(op, tuple(args))


def children(node: ExprNode) -> Tuple[ExprNode, ...]:
    """Direct sub-expressions of a node, in evaluation order."""
    if isinstance(node, Call):
        return node.args
    if isinstance(node, Let):
        return tuple(e for _, e in node.bindings) + (node.body,)
    if isinstance(node, If):
        return (node.cond, node.then, node.orelse)
    if isinstance(node, Block):
        return node.statements
    return ()


def walk(node: ExprNode) -> Iterator[ExprNode]:
    """Pre-order traversal of every node in a tree."""
    yield node
    for child in children(node):
        yield from walk(child)


def iter_refs(node: ExprNode, bound: Optional[Set[str]] = None) -> Iterator[str]:
    """
    Yield the free references of an expression.

    Symbols bound by an enclosing Let are not free inside its scope.
    """
    bound = set(bound or ())
    if isinstance(node, Ref):
        if node.symbol not in bound:
            yield node.symbol
    elif isinstance(node, Let):
        scope = set(bound)
        for name, expr in node.bindings:
            yield from iter_refs(expr, scope)
            scope.add(name)
        yield from iter_refs(node.body, scope)
    else:
        for child in children(node):
            yield from iter_refs(child, bound)


# Prefix of symbols the compilers bind internally; input fields may not use it
RESERVED_PREFIX = "__"


def local(name: str, index: Optional[int] = None) -> str:
    """Name of a compiler-generated Let binding."""
    if index is None:
        return f"{RESERVED_PREFIX}{name}"
    return f"{RESERVED_PREFIX}{name}_{index}"
