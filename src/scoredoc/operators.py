"""
Operator table.

Every Call node names an operator registered here. An operator declares
its arity, the rule giving its result type from its argument types, and
the Python function the local engine uses to execute it.

The table is small: arithmetic, comparison, boolean logic,
a few math functions, inverse link functions and string-keyed maps.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .errors import SchemaMismatch
from .schema import (
    BOOLEAN,
    DOUBLE,
    STRING,
    Map,
    TypeDescriptor,
    describe,
    is_numeric,
    promote,
    unify,
)


@dataclass(frozen=True)
class Operator:
    """
    Properties:
        name: operator name as it appears in Call.op
        min_args / max_args: arity bounds (max_args None = variadic)
        result: argument types -> result type (raises SchemaMismatch)
        impl: argument values -> result value
    """

    name: str
    min_args: int
    max_args: Optional[int]
    result: Callable[[Sequence[TypeDescriptor]], TypeDescriptor]
    impl: Callable[..., object]

    def accepts(self, n_args: int) -> bool:
        if n_args < self.min_args:
            return False
        return self.max_args is None or n_args <= self.max_args

    @property
    def arity(self) -> str:
        if self.max_args is None:
            return f"{self.min_args}+"
        if self.min_args == self.max_args:
            return str(self.min_args)
        return f"{self.min_args}-{self.max_args}"


# ---------------------------------------------------------------------------
# Result type rules
# ---------------------------------------------------------------------------

def _require_numeric(name: str, types: Sequence[TypeDescriptor]) -> None:
    for t in types:
        if not is_numeric(t):
            raise SchemaMismatch(
                f"Operator {name!r} expects numeric arguments, got {describe(t)}",
                expected="numeric", actual=t,
            )


def _numeric_same(name: str):
    def rule(types):
        _require_numeric(name, types)
        result = types[0]
        for t in types[1:]:
            result = promote(result, t)
        return result
    return rule


def _numeric_double(name: str):
    def rule(types):
        _require_numeric(name, types)
        return DOUBLE
    return rule


def _comparison(name: str):
    def rule(types):
        left, right = types
        if is_numeric(left) and is_numeric(right):
            return BOOLEAN
        if left == right and (name in ("==", "!=") or left == STRING):
            return BOOLEAN
        raise SchemaMismatch(
            f"Operator {name!r} cannot compare {describe(left)} with {describe(right)}",
            expected=left, actual=right,
        )
    return rule


def _boolean(name: str):
    def rule(types):
        for t in types:
            if t != BOOLEAN:
                raise SchemaMismatch(
                    f"Operator {name!r} expects boolean arguments, got {describe(t)}",
                    expected=BOOLEAN, actual=t,
                )
        return BOOLEAN
    return rule


def _map_new(types):
    if len(types) % 2:
        raise SchemaMismatch("'map.new' expects alternating key/value arguments")
    keys, values = types[0::2], types[1::2]
    for k in keys:
        if k != STRING:
            raise SchemaMismatch(f"'map.new' keys must be strings, got {describe(k)}",
                                 expected=STRING, actual=k)
    value_type = values[0]
    for v in values[1:]:
        value_type = unify(value_type, v)
    return Map(value_type)


def _map_get(types):
    container, key = types
    if not isinstance(container, Map):
        raise SchemaMismatch(f"'map.get' expects a map, got {describe(container)}",
                             actual=container)
    if key != STRING:
        raise SchemaMismatch(f"'map.get' key must be a string, got {describe(key)}",
                             expected=STRING, actual=key)
    return container.values


def _softmax_type(types):
    (container,) = types
    if not isinstance(container, Map) or not is_numeric(container.values):
        raise SchemaMismatch(
            f"'m.link.softmax' expects a map of numbers, got {describe(container)}",
            actual=container,
        )
    return Map(DOUBLE)


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------

def _inv_logit(x):
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def _inv_probit(x):
    return 0.5 * (1.0 + math.erf(x / math.sqrt(2.0)))


def _inv_cloglog(x):
    return 1.0 - math.exp(-math.exp(x))


def _softmax(scores):
    if not scores:
        return {}
    top = max(scores.values())
    exps = {k: math.exp(v - top) for k, v in scores.items()}
    total = sum(exps.values())
    return {k: v / total for k, v in exps.items()}


def _map_new_impl(*items):
    return {items[i]: items[i + 1] for i in range(0, len(items), 2)}


def _same_type_or_numeric(name: str):
    def rule(types):
        if all(is_numeric(t) for t in types):
            return _numeric_same(name)(types)
        if types[0] == types[1]:
            return types[0]
        raise SchemaMismatch(
            f"Operator {name!r} expects comparable arguments, got "
            f"{describe(types[0])} and {describe(types[1])}",
        )
    return rule


_OPERATORS: List[Operator] = [
    # Arithmetic
    Operator("+", 2, 2, _numeric_same("+"), lambda a, b: a + b),
    Operator("-", 2, 2, _numeric_same("-"), lambda a, b: a - b),
    Operator("*", 2, 2, _numeric_same("*"), lambda a, b: a * b),
    Operator("/", 2, 2, _numeric_double("/"), lambda a, b: a / b),
    Operator("//", 2, 2, _numeric_same("//"), lambda a, b: a // b),
    Operator("%", 2, 2, _numeric_same("%"), lambda a, b: a % b),
    Operator("**", 2, 2, _numeric_double("**"), lambda a, b: float(a) ** b),
    Operator("u-", 1, 1, _numeric_same("u-"), lambda a: -a),

    # Comparison
    Operator("==", 2, 2, _comparison("=="), lambda a, b: a == b),
    Operator("!=", 2, 2, _comparison("!="), lambda a, b: a != b),
    Operator("<", 2, 2, _comparison("<"), lambda a, b: a < b),
    Operator("<=", 2, 2, _comparison("<="), lambda a, b: a <= b),
    Operator(">", 2, 2, _comparison(">"), lambda a, b: a > b),
    Operator(">=", 2, 2, _comparison(">="), lambda a, b: a >= b),

    # Boolean logic
    Operator("&&", 2, 2, _boolean("&&"), lambda a, b: a and b),
    Operator("||", 2, 2, _boolean("||"), lambda a, b: a or b),
    Operator("!", 1, 1, _boolean("!"), lambda a: not a),

    # Math
    Operator("m.exp", 1, 1, _numeric_double("m.exp"), math.exp),
    Operator("m.ln", 1, 1, _numeric_double("m.ln"), math.log),
    Operator("m.log10", 1, 1, _numeric_double("m.log10"), math.log10),
    Operator("m.sqrt", 1, 1, _numeric_double("m.sqrt"), math.sqrt),
    Operator("m.abs", 1, 1, _numeric_same("m.abs"), abs),
    Operator("m.round", 1, 1, _numeric_double("m.round"), lambda a: float(round(a))),
    Operator("min", 2, 2, _same_type_or_numeric("min"), min),
    Operator("max", 2, 2, _same_type_or_numeric("max"), max),

    # Inverse link functions
    Operator("m.link.logit", 1, 1, _numeric_double("m.link.logit"), _inv_logit),
    Operator("m.link.probit", 1, 1, _numeric_double("m.link.probit"), _inv_probit),
    Operator("m.link.cloglog", 1, 1, _numeric_double("m.link.cloglog"), _inv_cloglog),
    Operator("m.link.softmax", 1, 1, _softmax_type, _softmax),

    # Maps
    Operator("map.new", 2, None, _map_new, _map_new_impl),
    Operator("map.get", 2, 2, _map_get, lambda m, k: m[k]),
]

OPERATORS: Dict[str, Operator] = {op.name: op for op in _OPERATORS}


def get_operator(name: str) -> Optional[Operator]:
    """Look up an operator by name, or None if it is not in the table."""
    return OPERATORS.get(name)
