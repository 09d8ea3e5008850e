"""
Document Analyzer: inventory and diagnostics of assembled documents.

This module provides lightweight analysis of Document objects:
    - Expression size and depth
    - Operator usage inventory
    - Input field and cell usage
    - Warning flags for deployment risk

IMPORTANT: Analysis is read-only. It does NOT modify the document.
It only produces reports.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Set

from scoredoc.assembler import Document
from scoredoc.expressions import Call, ExprNode, If, Let, children, iter_refs

# Depth above which analyze_document warns
MAX_DEPTH_WARNING = 64


@dataclass
class ExpressionMetrics:
    """Metrics about a single expression tree."""
    depth: int = 0
    node_count: int = 0
    if_count: int = 0
    let_bindings: int = 0
    operators: Counter = field(default_factory=Counter)


def _analyze_expression(expr: ExprNode) -> ExpressionMetrics:
    """Recursively analyze an expression tree."""
    metrics = ExpressionMetrics(depth=1, node_count=1)

    if isinstance(expr, Call):
        metrics.operators[expr.op] += 1
    elif isinstance(expr, If):
        metrics.if_count += 1
    elif isinstance(expr, Let):
        metrics.let_bindings += len(expr.bindings)

    deepest = 0
    for child in children(expr):
        sub = _analyze_expression(child)
        deepest = max(deepest, sub.depth)
        metrics.node_count += sub.node_count
        metrics.if_count += sub.if_count
        metrics.let_bindings += sub.let_bindings
        metrics.operators.update(sub.operators)
    metrics.depth += deepest

    return metrics


@dataclass
class DocumentReport:
    """Analysis report for a document."""

    document_name: str
    total_statements: int = 0
    total_cells: int = 0
    total_inputs: int = 0

    # Expression size
    total_nodes: int = 0
    max_depth: int = 0
    if_count: int = 0
    let_bindings: int = 0
    operator_usage: Dict[str, int] = field(default_factory=dict)

    # Symbol usage
    referenced_inputs: Set[str] = field(default_factory=set)
    unused_inputs: Set[str] = field(default_factory=set)
    unused_cells: Set[str] = field(default_factory=set)

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def analyze_document(document: Document) -> DocumentReport:
    """
    Analyze a Document.

    Returns a DocumentReport with metrics and warnings.
    """
    report = DocumentReport(document_name=document.name)
    report.total_statements = len(document.action)
    report.total_cells = len(document.cells)
    report.total_inputs = len(document.input_fields)

    operators: Counter = Counter()
    referenced: Set[str] = set()
    for statement in document.action:
        metrics = _analyze_expression(statement)
        report.total_nodes += metrics.node_count
        report.max_depth = max(report.max_depth, metrics.depth)
        report.if_count += metrics.if_count
        report.let_bindings += metrics.let_bindings
        operators.update(metrics.operators)
        referenced.update(iter_refs(statement))

    report.operator_usage = dict(sorted(operators.items()))
    inputs = set(document.input_fields)
    cells = {c.name for c in document.cells}
    report.referenced_inputs = referenced & inputs
    report.unused_inputs = inputs - referenced
    report.unused_cells = cells - referenced

    if report.unused_inputs:
        report.add_warning(f"Unused input fields: {', '.join(sorted(report.unused_inputs))}")

    if report.unused_cells:
        report.add_warning(f"Unused cells: {', '.join(sorted(report.unused_cells))}")

    if report.max_depth > MAX_DEPTH_WARNING:
        report.add_warning(f"High expression depth: {report.max_depth}")

    return report
