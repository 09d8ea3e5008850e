"""
Graphviz DOT diagram generator for scoring documents.

Converts a Document's action into Graphviz DOT format for visualization.

Supports two modes:
    - SIMPLE: operators, references and literal values
    - DETAILED: adds literal types, Let binding names, If branch labels
      and the document's cells
"""

from enum import Enum
from typing import List

from scoredoc.assembler import Document
from scoredoc.expressions import Block, Call, ExprNode, If, Let, Literal, Ref
from scoredoc.schema import describe


class DotMode(Enum):
    """Visualization modes for DOT output."""
    SIMPLE = "simple"      # Just the expression tree
    DETAILED = "detailed"  # Types, binding names, branch labels, cells


def _escape_dot_string(s: str) -> str:
    """Escape special characters for DOT labels."""
    if not s:
        return '""'
    # Escape backslashes first
    s = s.replace('\\', '\\\\')
    s = s.replace('"', '\\"')
    s = s.replace('\n', '\\n')
    return f'"{s}"'


class _Renderer:
    """Assigns node ids while walking the action."""

    def __init__(self, mode: DotMode, input_fields):
        self.mode = mode
        self.input_fields = set(input_fields)
        self.lines: List[str] = []
        self.counter = 0

    def _new_id(self) -> str:
        node_id = f"n{self.counter}"
        self.counter += 1
        return node_id

    def _node(self, label: str, **attrs) -> str:
        node_id = self._new_id()
        extra = "".join(f", {k}={v}" for k, v in attrs.items())
        self.lines.append(f"  {node_id} [label={_escape_dot_string(label)}{extra}];")
        return node_id

    def _edge(self, parent: str, child: str, label: str = "") -> None:
        attr = ""
        if label and self.mode == DotMode.DETAILED:
            attr = f" [label={_escape_dot_string(label)}]"
        self.lines.append(f"  {parent} -> {child}{attr};")

    def render(self, expr: ExprNode) -> str:
        if isinstance(expr, Literal):
            label = repr(expr.value)
            if self.mode == DotMode.DETAILED:
                label = f"{label}\n{describe(expr.type)}"
            return self._node(label, shape="plaintext", fillcolor="lightyellow")

        if isinstance(expr, Ref):
            color = "lightgreen" if expr.symbol in self.input_fields else "white"
            return self._node(expr.symbol, shape="ellipse", fillcolor=color)

        if isinstance(expr, Call):
            node_id = self._node(expr.op)
            for i, arg in enumerate(expr.args):
                self._edge(node_id, self.render(arg), str(i))
            return node_id

        if isinstance(expr, Let):
            node_id = self._node("let", fillcolor="lightgrey")
            for name, bound in expr.bindings:
                self._edge(node_id, self.render(bound), name)
            self._edge(node_id, self.render(expr.body), "in")
            return node_id

        if isinstance(expr, If):
            node_id = self._node("if", shape="diamond", fillcolor="orange")
            self._edge(node_id, self.render(expr.cond), "cond")
            self._edge(node_id, self.render(expr.then), "then")
            self._edge(node_id, self.render(expr.orelse), "else")
            return node_id

        if isinstance(expr, Block):
            node_id = self._node("block", fillcolor="lightgrey")
            for i, statement in enumerate(expr.statements):
                self._edge(node_id, self.render(statement), str(i))
            return node_id

        return self._node("?")


def generate_dot(document: Document, mode: DotMode = DotMode.SIMPLE) -> str:
    """
    Generate Graphviz DOT format for a document's action.

    Args:
        document: Document to visualize
        mode: Visualization mode (SIMPLE, DETAILED)

    Returns:
        String containing DOT graph definition
    """
    renderer = _Renderer(mode, document.input_fields)
    lines = []

    # Header
    lines.append("digraph action {")
    lines.append("  rankdir=TB;")
    lines.append("  node [shape=box, style=filled, fillcolor=lightblue];")

    title = document.name
    if mode == DotMode.DETAILED:
        title = f"{title}\noutput: {describe(document.output)}"
    lines.append(f"  ACTION [shape=ellipse, fillcolor=lightgreen, label={_escape_dot_string(title)}];")

    for statement in document.action:
        root = renderer.render(statement)
        renderer.lines.append(f"  ACTION -> {root};")

    lines.extend(renderer.lines)

    if mode == DotMode.DETAILED and document.cells:
        lines.append('  subgraph "cluster_cells" {')
        lines.append('    label="cells";')
        lines.append('    style=filled;')
        lines.append('    color=lightgrey;')
        for cell in document.cells:
            label = f"{cell.name}: {describe(cell.type)}"
            lines.append(f"    {_escape_dot_string('cell_' + cell.name)} [label={_escape_dot_string(label)}];")
        lines.append("  }")

    # Footer
    lines.append("}")

    return "\n".join(lines)


def save_dot_file(document: Document, filename: str, mode: DotMode = DotMode.SIMPLE) -> None:
    """
    Generate DOT and save to file.

    Args:
        document: Document to visualize
        filename: Output file path (.dot extension recommended)
        mode: Visualization mode
    """
    dot = generate_dot(document, mode=mode)
    with open(filename, 'w') as f:
        f.write(dot)


__all__ = ["DotMode", "generate_dot", "save_dot_file"]
