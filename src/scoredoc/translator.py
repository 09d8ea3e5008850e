"""
Expression Translator (host expression -> document expression nodes).

The host language is Python expression syntax, given either as source
text or as an already parsed ``ast.expr``.

Mapping:
    a + b, a - b, ...     -> Call("+", [a, b]), ...
    -a                    -> Call("u-", [a])
    a and b / a or b      -> Call("&&" / "||", ...) folded left
    not a                 -> Call("!", [a])
    a < b <= c            -> Call("&&", [Call("<", [a, b]), Call("<=", [b, c])])
    f(x, y)               -> Call(<table name of f>, [x, y])
    x if c else y         -> If(c, x, y)
    2, 2.0, "s", True     -> Literal with its own type (no widening)
    name                  -> Ref(name), must be in scope

The translator is purely structural: it never evaluates, and never
folds constants. ``2 + 2`` stays a Call with two literal arguments.
"""

import ast
from typing import Dict, Iterable, Optional, Union

from .errors import UnboundSymbol, UnsupportedConstruct
from .expressions import Call, ExprNode, If, Literal, Ref, literal_type
from .operators import get_operator


BINARY_OPERATORS = {
    ast.Add: "+",
    ast.Sub: "-",
    ast.Mult: "*",
    ast.Div: "/",
    ast.FloorDiv: "//",
    ast.Mod: "%",
    ast.Pow: "**",
}

UNARY_OPERATORS = {
    ast.USub: "u-",
    ast.Not: "!",
}

COMPARISON_OPERATORS = {
    ast.Eq: "==",
    ast.NotEq: "!=",
    ast.Lt: "<",
    ast.LtE: "<=",
    ast.Gt: ">",
    ast.GtE: ">=",
}

BOOLEAN_OPERATORS = {
    ast.And: "&&",
    ast.Or: "||",
}

# Host function name -> operator name
FUNCTIONS: Dict[str, str] = {
    "exp": "m.exp",
    "log": "m.ln",
    "log10": "m.log10",
    "sqrt": "m.sqrt",
    "abs": "m.abs",
    "fabs": "m.abs",
    "round": "m.round",
    "pow": "**",
    "min": "min",
    "max": "max",
}

# Module prefixes accepted in front of a function name (math.exp, np.exp)
MODULE_PREFIXES = ("math", "np", "numpy")


class Translator:
    """
    Translates host expressions against a fixed scope.

    Args:
        scope: symbols a free name may refer to (input fields, cell
               names, symbols bound by the caller)
    """

    def __init__(self, scope: Iterable[str] = ()):
        self.scope = frozenset(scope)

    def translate(self, host_expr: Union[str, ast.AST]) -> ExprNode:
        if isinstance(host_expr, str):
            try:
                tree = ast.parse(host_expr.strip(), mode="eval")
            except SyntaxError as e:
                raise UnsupportedConstruct("syntax", str(e.msg))
            return self._visit(tree.body)
        if isinstance(host_expr, ast.Expression):
            return self._visit(host_expr.body)
        if isinstance(host_expr, ast.expr):
            return self._visit(host_expr)
        raise UnsupportedConstruct(type(host_expr).__name__, "not an expression")

    def _visit(self, node: ast.AST) -> ExprNode:
        if isinstance(node, ast.Constant):
            return self._constant(node)
        if isinstance(node, ast.Name):
            return self._name(node)
        if isinstance(node, ast.BinOp):
            return self._binop(node)
        if isinstance(node, ast.UnaryOp):
            return self._unaryop(node)
        if isinstance(node, ast.BoolOp):
            return self._boolop(node)
        if isinstance(node, ast.Compare):
            return self._compare(node)
        if isinstance(node, ast.Call):
            return self._call(node)
        if isinstance(node, ast.IfExp):
            return If(self._visit(node.test), self._visit(node.body), self._visit(node.orelse))
        raise UnsupportedConstruct(type(node).__name__)

    def _constant(self, node: ast.Constant) -> Literal:
        try:
            return Literal(node.value, literal_type(node.value))
        except TypeError:
            raise UnsupportedConstruct("constant", f"{type(node.value).__name__} literal")

    def _name(self, node: ast.Name) -> Ref:
        if node.id not in self.scope:
            raise UnboundSymbol(node.id)
        return Ref(node.id)

    def _binop(self, node: ast.BinOp) -> Call:
        op = BINARY_OPERATORS.get(type(node.op))
        if op is None:
            raise UnsupportedConstruct("operator", type(node.op).__name__)
        return Call(op, (self._visit(node.left), self._visit(node.right)))

    def _unaryop(self, node: ast.UnaryOp) -> Call:
        op = UNARY_OPERATORS.get(type(node.op))
        if op is None:
            raise UnsupportedConstruct("operator", type(node.op).__name__)
        return Call(op, (self._visit(node.operand),))

    def _boolop(self, node: ast.BoolOp) -> Call:
        op = BOOLEAN_OPERATORS[type(node.op)]
        values = [self._visit(v) for v in node.values]
        result = values[0]
        for value in values[1:]:
            result = Call(op, (result, value))
        return result

    def _compare(self, node: ast.Compare) -> Call:
        operands = [self._visit(node.left)] + [self._visit(c) for c in node.comparators]
        comparisons = []
        for i, op_node in enumerate(node.ops):
            op = COMPARISON_OPERATORS.get(type(op_node))
            if op is None:
                raise UnsupportedConstruct("comparison", type(op_node).__name__)
            comparisons.append(Call(op, (operands[i], operands[i + 1])))
        result = comparisons[0]
        for comparison in comparisons[1:]:
            result = Call("&&", (result, comparison))
        return result

    def _call(self, node: ast.Call) -> Call:
        name = self._function_name(node.func)
        if node.keywords:
            raise UnsupportedConstruct("keyword argument", name)
        if any(isinstance(a, ast.Starred) for a in node.args):
            raise UnsupportedConstruct("starred argument", name)

        op_name = FUNCTIONS.get(name)
        if op_name is None:
            raise UnsupportedConstruct("function", name)
        operator = get_operator(op_name)
        if not operator.accepts(len(node.args)):
            raise UnsupportedConstruct(
                "function", f"{name} takes {operator.arity} argument(s), got {len(node.args)}"
            )
        return Call(op_name, tuple(self._visit(a) for a in node.args))

    def _function_name(self, func: ast.AST) -> str:
        if isinstance(func, ast.Name):
            return func.id
        if (isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name)
                and func.value.id in MODULE_PREFIXES):
            return func.attr
        raise UnsupportedConstruct("callee", type(func).__name__)


def translate(host_expr: Union[str, ast.AST], scope: Optional[Iterable[str]] = None) -> ExprNode:
    """
    Translate a host expression into an expression node.

    Args:
        host_expr: Python expression source, or a parsed ast expression
        scope: names free variables may refer to

    Returns:
        ExprNode

    Raises:
        UnsupportedConstruct: operator or form with no document equivalent
        UnboundSymbol: free name not in scope
    """
    return Translator(scope or ()).translate(host_expr)
