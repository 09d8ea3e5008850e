"""
Document Assembler.

Composes input schema, output schema, action and cells into one
Document, refusing anything structurally inconsistent.

Checks, in order:
    1. input is a record; no field or cell uses the reserved prefix
    2. cell names are unique and do not shadow input fields
    3. cell initial values match their declared types
    4. every Ref resolves (input field, cell, or enclosing Let binding)
    5. every Call names a known operator with a valid argument count
    6. every expression has an inferable type (If conditions are boolean)
    7. the terminal expression's type is compatible with the output type

Failures raise SchemaMismatch, UnresolvedReference or DuplicateCell.
Nothing is coerced; no partial Document is returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .errors import DuplicateCell, SchemaMismatch, UnresolvedReference
from .expressions import (
    RESERVED_PREFIX,
    Block,
    Call,
    ExprNode,
    If,
    Let,
    Literal,
    Ref,
    iter_refs,
)
from .operators import get_operator
from .schema import (
    BOOLEAN,
    NUMERIC_RANK,
    Array,
    Enum,
    Map,
    Primitive,
    Record,
    TypeDescriptor,
    Union,
    compatible,
    describe,
    unify,
)
from .translator import translate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cell:
    """
    A named document-level constant.

    Properties:
        name: cell name, referenced from the action with Ref(name)
        type: declared TypeDescriptor
        init: initial value (plain Python data matching type); lists are
              stored as tuples and dicts as read-only mappings
    """

    name: str
    type: TypeDescriptor
    init: Any

    def __post_init__(self):
        object.__setattr__(self, "init", freeze_value(self.init))


def freeze_value(value: Any) -> Any:
    """Read-only copy of plain Python data: tuples for lists, MappingProxyType for dicts."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze_value(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_value(v) for v in value)
    return value


@dataclass(frozen=True)
class Document:
    """
    The assembled scoring document.

    Immutable once assembled; the only long-lived artifact of a compile.

    Properties:
        name: document name
        input: input record schema
        output: output schema
        action: top-level statements; the last one is the result
        cells: named constants
        metadata: free-form string annotations
    """

    name: str
    input: Record
    output: TypeDescriptor
    action: tuple
    cells: tuple = ()
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "action", tuple(self.action))
        object.__setattr__(self, "cells", tuple(self.cells))
        object.__setattr__(self, "metadata",
                           MappingProxyType({str(k): str(v) for k, v in dict(self.metadata).items()}))

    def get_cell(self, name: str) -> Optional[Cell]:
        for cell in self.cells:
            if cell.name == name:
                return cell
        return None

    @property
    def input_fields(self) -> tuple:
        return self.input.field_names


def value_matches(value: Any, t: TypeDescriptor) -> bool:
    """Whether a plain Python value is an instance of a type."""
    if isinstance(t, Union):
        return any(value_matches(value, alt) for alt in t.types)
    if isinstance(t, Primitive):
        if t.kind == "null":
            return value is None
        if t.kind == "boolean":
            return isinstance(value, bool)
        if t.kind in ("int", "long"):
            return isinstance(value, int) and not isinstance(value, bool)
        if t.kind in ("float", "double"):
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if t.kind == "string":
            return isinstance(value, str)
    if isinstance(t, Enum):
        return isinstance(value, str) and value in t.symbols
    if isinstance(t, Array):
        return isinstance(value, (list, tuple)) and all(value_matches(v, t.items) for v in value)
    if isinstance(t, Map):
        return (isinstance(value, Mapping)
                and all(isinstance(k, str) and value_matches(v, t.values) for k, v in value.items()))
    if isinstance(t, Record):
        return (isinstance(value, Mapping) and set(value) == set(t.field_names)
                and all(value_matches(value[n], ft) for n, ft in t.fields))
    return False


def _literal_type(node: Literal) -> TypeDescriptor:
    t = node.type
    if isinstance(t, Primitive) and t.kind in NUMERIC_RANK and isinstance(node.value, bool):
        raise SchemaMismatch(f"Boolean value {node.value!r} tagged as {t.kind}", expected=t)
    if isinstance(t, Primitive) and t.kind in ("int", "long") and isinstance(node.value, float):
        raise SchemaMismatch(f"Float value {node.value!r} tagged as {t.kind}", expected=t)
    if not value_matches(node.value, t):
        raise SchemaMismatch(f"Literal {node.value!r} does not match type {describe(t)}", expected=t)
    return t


def infer_type(node: ExprNode, env: Mapping[str, TypeDescriptor]) -> TypeDescriptor:
    """
    Infer the type of an expression.

    Args:
        node: expression
        env: types of the symbols in scope

    Raises:
        UnresolvedReference: unknown symbol or operator
        SchemaMismatch: arity or argument type errors
    """
    if isinstance(node, Literal):
        return _literal_type(node)

    if isinstance(node, Ref):
        if node.symbol not in env:
            raise UnresolvedReference(node.symbol)
        return env[node.symbol]

    if isinstance(node, Call):
        operator = get_operator(node.op)
        if operator is None:
            raise UnresolvedReference(node.op, kind="operator")
        if not operator.accepts(len(node.args)):
            raise SchemaMismatch(
                f"Operator {node.op!r} takes {operator.arity} argument(s), got {len(node.args)}"
            )
        return operator.result([infer_type(arg, env) for arg in node.args])

    if isinstance(node, Let):
        scope: Dict[str, TypeDescriptor] = dict(env)
        for name, expr in node.bindings:
            scope[name] = infer_type(expr, scope)
        return infer_type(node.body, scope)

    if isinstance(node, If):
        cond = infer_type(node.cond, env)
        if cond != BOOLEAN:
            raise SchemaMismatch(f"If condition must be boolean, got {describe(cond)}",
                                 expected=BOOLEAN, actual=cond)
        return unify(infer_type(node.then, env), infer_type(node.orelse, env))

    if isinstance(node, Block):
        if not node.statements:
            raise SchemaMismatch("Empty block has no value")
        result = None
        for statement in node.statements:
            result = infer_type(statement, env)
        return result

    raise SchemaMismatch(f"Unknown expression node {type(node).__name__}")


def unresolved_references(input_type: Record, action: Iterable[ExprNode],
                          cells: Iterable[Cell] = ()) -> List[str]:
    """Free references of the action that are neither input fields nor cells."""
    known = set(input_type.field_names) | {c.name for c in cells}
    missing: List[str] = []
    for statement in action:
        for symbol in iter_refs(statement):
            if symbol not in known and symbol not in missing:
                missing.append(symbol)
    return missing


def check_references(document: Document) -> List[str]:
    return unresolved_references(document.input, document.action, document.cells)


def _check_names(input_type: Record, cells: Sequence[Cell]) -> None:
    for name in input_type.field_names:
        if name.startswith(RESERVED_PREFIX):
            raise SchemaMismatch(f"Input field {name!r} uses the reserved prefix {RESERVED_PREFIX!r}")
    seen = set(input_type.field_names)
    for cell in cells:
        if cell.name.startswith(RESERVED_PREFIX):
            raise SchemaMismatch(f"Cell {cell.name!r} uses the reserved prefix {RESERVED_PREFIX!r}")
        if cell.name in seen:
            raise DuplicateCell(cell.name)
        seen.add(cell.name)
        if not value_matches(cell.init, cell.type):
            raise SchemaMismatch(
                f"Cell {cell.name!r} initial value does not match {describe(cell.type)}",
                expected=cell.type,
            )


def assemble(input_type: Record, output_type: TypeDescriptor, action: Sequence[ExprNode],
             cells: Sequence[Cell] = (), name: str = "scoring",
             metadata: Optional[Mapping[str, str]] = None) -> Document:
    """
    Assemble and check a Document.

    Args:
        input_type: input record schema
        output_type: declared output schema
        action: top-level statements (non-empty)
        cells: named constants
        name: document name
        metadata: string annotations

    Returns:
        Document

    Raises:
        SchemaMismatch, UnresolvedReference, DuplicateCell
    """
    if not isinstance(input_type, Record):
        raise SchemaMismatch(f"Document input must be a record, got {describe(input_type)}",
                             actual=input_type)
    action = tuple(action)
    cells = tuple(cells)
    if not action:
        raise SchemaMismatch("Document action is empty")

    _check_names(input_type, cells)

    missing = unresolved_references(input_type, action, cells)
    if missing:
        raise UnresolvedReference(missing[0])

    env: Dict[str, TypeDescriptor] = dict(input_type.fields)
    env.update({c.name: c.type for c in cells})
    terminal = None
    for statement in action:
        terminal = infer_type(statement, env)

    if not compatible(terminal, output_type):
        raise SchemaMismatch(
            f"Action returns {describe(terminal)} but output is declared {describe(output_type)}",
            expected=output_type, actual=terminal,
        )

    document = Document(name=name, input=input_type, output=output_type,
                        action=action, cells=cells, metadata=metadata or {})
    logger.debug("Assembled document %r: %d statement(s), %d cell(s)", name, len(action), len(cells))
    return document


def build_expression_document(source, input_type: Record, output_type: TypeDescriptor,
                              cells: Sequence[Cell] = (), name: str = "expression",
                              metadata: Optional[Mapping[str, str]] = None) -> Document:
    """
    Translate a user-supplied scoring expression and assemble it.

    Free names in the expression may refer to input fields or cells.
    """
    if not isinstance(input_type, Record):
        raise SchemaMismatch(f"Document input must be a record, got {describe(input_type)}",
                             actual=input_type)
    scope = list(input_type.field_names) + [c.name for c in cells]
    expr = translate(source, scope)
    return assemble(input_type, output_type, (expr,), cells, name=name, metadata=metadata)
