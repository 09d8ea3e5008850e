"""
Serialization helpers for Documents (types, expressions, cells).

Provides lossless JSON/YAML round-trip via intermediate dict representation.
The dict layout is explicit: one key per field and a "node" tag per expression.
Literal nodes carry their type, so 2 and 2.0 survive the trip distinct.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Mapping

import yaml

from scoredoc.assembler import Cell, Document
from scoredoc.expressions import (
    Block,
    Call,
    ExprNode,
    If,
    Let,
    Literal,
    Ref,
)
from scoredoc.schema import (
    PRIMITIVE_KINDS,
    Array,
    Enum,
    Map,
    Primitive,
    Record,
    TypeDescriptor,
    Union,
)


def type_to_dict(t: TypeDescriptor) -> Any:
    if isinstance(t, Primitive):
        return t.kind
    if isinstance(t, Record):
        return {
            "type": "record",
            "name": t.name,
            "fields": [{"name": n, "type": type_to_dict(ft)} for n, ft in t.fields],
        }
    if isinstance(t, Enum):
        return {"type": "enum", "name": t.name, "symbols": list(t.symbols)}
    if isinstance(t, Array):
        return {"type": "array", "items": type_to_dict(t.items)}
    if isinstance(t, Map):
        return {"type": "map", "values": type_to_dict(t.values)}
    if isinstance(t, Union):
        return [type_to_dict(alt) for alt in t.types]
    raise TypeError(f"Unsupported type descriptor: {type(t)}")


def type_from_dict(d: Any) -> TypeDescriptor:
    if isinstance(d, str):
        if d not in PRIMITIVE_KINDS:
            raise TypeError(f"Unsupported primitive type: {d}")
        return Primitive(d)
    if isinstance(d, list):
        return Union(tuple(type_from_dict(alt) for alt in d))
    t = d.get("type")
    if t == "record":
        return Record(d["name"], tuple((f["name"], type_from_dict(f["type"])) for f in d.get("fields", [])))
    if t == "enum":
        return Enum(d["name"], tuple(d.get("symbols", [])))
    if t == "array":
        return Array(type_from_dict(d["items"]))
    if t == "map":
        return Map(type_from_dict(d["values"]))
    raise TypeError(f"Unsupported type dict: {t}")


def expr_to_dict(expr: ExprNode) -> Dict[str, Any]:
    if isinstance(expr, Literal):
        return {"node": "lit", "value": expr.value, "type": type_to_dict(expr.type)}
    if isinstance(expr, Ref):
        return {"node": "ref", "symbol": expr.symbol}
    if isinstance(expr, Call):
        return {"node": "call", "op": expr.op, "args": [expr_to_dict(a) for a in expr.args]}
    if isinstance(expr, Let):
        return {
            "node": "let",
            "bindings": [{"name": n, "expr": expr_to_dict(e)} for n, e in expr.bindings],
            "body": expr_to_dict(expr.body),
        }
    if isinstance(expr, If):
        return {
            "node": "if",
            "cond": expr_to_dict(expr.cond),
            "then": expr_to_dict(expr.then),
            "else": expr_to_dict(expr.orelse),
        }
    if isinstance(expr, Block):
        return {"node": "block", "statements": [expr_to_dict(s) for s in expr.statements]}
    raise TypeError(f"Unsupported expression type: {type(expr)}")


def expr_from_dict(d: Dict[str, Any]) -> ExprNode:
    n = d.get("node")
    if n == "lit":
        return Literal(d["value"], type_from_dict(d["type"]))
    if n == "ref":
        return Ref(d["symbol"])
    if n == "call":
        return Call(d["op"], tuple(expr_from_dict(a) for a in d.get("args", [])))
    if n == "let":
        bindings = tuple((b["name"], expr_from_dict(b["expr"])) for b in d.get("bindings", []))
        return Let(bindings, expr_from_dict(d["body"]))
    if n == "if":
        return If(expr_from_dict(d["cond"]), expr_from_dict(d["then"]), expr_from_dict(d["else"]))
    if n == "block":
        return Block(tuple(expr_from_dict(s) for s in d.get("statements", [])))
    raise TypeError(f"Unsupported expression dict type: {n}")


def _plain_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _plain_value(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_plain_value(v) for v in value]
    return value


def cell_to_dict(c: Cell) -> Dict[str, Any]:
    return {"name": c.name, "type": type_to_dict(c.type), "init": _plain_value(c.init)}


def cell_from_dict(d: Dict[str, Any]) -> Cell:
    return Cell(name=d["name"], type=type_from_dict(d["type"]), init=d.get("init"))


def document_to_dict(doc: Document) -> Dict[str, Any]:
    return {
        "name": doc.name,
        "input": type_to_dict(doc.input),
        "output": type_to_dict(doc.output),
        "action": [expr_to_dict(s) for s in doc.action],
        "cells": [cell_to_dict(c) for c in doc.cells],
        "metadata": dict(doc.metadata),
    }


def document_from_dict(d: Dict[str, Any]) -> Document:
    """
    Rebuild a Document from its dict form.

    This does not re-run the assembler checks; pass the result through
    ``assemble`` (or a LocalEngine) when the source is untrusted.
    """
    return Document(
        name=d.get("name", ""),
        input=type_from_dict(d["input"]),
        output=type_from_dict(d["output"]),
        action=tuple(expr_from_dict(s) for s in d.get("action", [])),
        cells=tuple(cell_from_dict(c) for c in d.get("cells", [])),
        metadata=d.get("metadata", {}),
    )


def document_to_json(doc: Document) -> str:
    return json.dumps(document_to_dict(doc), sort_keys=True)


def document_from_json(s: str) -> Document:
    d = json.loads(s)
    return document_from_dict(d)


def document_to_yaml(doc: Document) -> str:
    return yaml.safe_dump(document_to_dict(doc))


def document_from_yaml(s: str) -> Document:
    d = yaml.safe_load(s)
    return document_from_dict(d)
