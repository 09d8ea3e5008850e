"""
Tests for DOT diagram generator.

These tests verify that Documents are correctly converted to Graphviz DOT format.

Tests cover:
    - Expression nodes and edges
    - Input references styled apart from local bindings
    - Branch and binding labels in detailed mode
    - Special character escaping
    - File output
"""

import pytest
from scoredoc.assembler import Cell, assemble
from scoredoc.backends import DotMode, generate_dot, save_dot_file
from scoredoc.backends.dot_generator import _escape_dot_string
from scoredoc.builders import LinearBuilder
from scoredoc.config import PredType
from scoredoc.examples import build_example_logistic_record
from scoredoc.expressions import Call, If, Ref, lit, num
from scoredoc.schema import DOUBLE, STRING, Record

INPUT = Record("Input", (("x", DOUBLE),))


@pytest.fixture
def logistic_document():
    compiled = LinearBuilder().build(build_example_logistic_record(), PredType.CLASS)
    return assemble(compiled.input_type, compiled.output_type, compiled.action, name="logistic")


class TestDotBasicStructure:
    """Test basic DOT graph structure."""

    def test_header_and_footer(self, logistic_document):
        dot = generate_dot(logistic_document, mode=DotMode.SIMPLE)
        assert dot.startswith("digraph action {")
        assert dot.rstrip().endswith("}")

    def test_root_node_named_after_document(self, logistic_document):
        dot = generate_dot(logistic_document)
        assert 'ACTION [shape=ellipse, fillcolor=lightgreen, label="logistic"];' in dot

    def test_operator_nodes(self, logistic_document):
        dot = generate_dot(logistic_document)
        assert 'label="m.link.logit"' in dot
        assert 'label="let"' in dot

    def test_input_refs_highlighted(self, logistic_document):
        dot = generate_dot(logistic_document)
        assert 'label="X1", shape=ellipse, fillcolor=lightgreen' in dot
        assert 'label="__p", shape=ellipse, fillcolor=white' in dot

    def test_one_edge_per_child(self):
        document = assemble(INPUT, DOUBLE, (Call("+", (Ref("x"), num(1.0))),))
        dot = generate_dot(document)
        assert "ACTION -> n0;" in dot
        assert "n0 -> n1;" in dot
        assert "n0 -> n2;" in dot


class TestDotModes:
    """Simple vs. detailed output."""

    def test_simple_has_no_edge_labels(self):
        document = assemble(INPUT, STRING,
                            (If(Call(">", (Ref("x"), num(0.0))), lit("pos"), lit("neg")),))
        dot = generate_dot(document, mode=DotMode.SIMPLE)
        assert 'label="cond"' not in dot

    def test_detailed_labels_branches(self):
        document = assemble(INPUT, STRING,
                            (If(Call(">", (Ref("x"), num(0.0))), lit("pos"), lit("neg")),))
        dot = generate_dot(document, mode=DotMode.DETAILED)
        assert '[label="cond"]' in dot
        assert '[label="then"]' in dot
        assert '[label="else"]' in dot
        assert "output: string" in dot

    def test_detailed_shows_literal_types(self):
        document = assemble(INPUT, DOUBLE, (Call("*", (Ref("x"), num(2.0))),))
        dot = generate_dot(document, mode=DotMode.DETAILED)
        assert 'label="2.0\\ndouble"' in dot

    def test_detailed_names_let_bindings(self, logistic_document):
        dot = generate_dot(logistic_document, mode=DotMode.DETAILED)
        assert '[label="__p"]' in dot
        assert '[label="in"]' in dot

    def test_detailed_cells_cluster(self):
        document = assemble(INPUT, DOUBLE, (Call("*", (Ref("w"), Ref("x"))),),
                            (Cell("w", DOUBLE, 0.5),))
        dot = generate_dot(document, mode=DotMode.DETAILED)
        assert 'subgraph "cluster_cells"' in dot
        assert '"cell_w" [label="w: double"];' in dot


class TestEscaping:
    def test_quotes_and_backslashes(self):
        assert _escape_dot_string('say "hi"') == '"say \\"hi\\""'
        assert _escape_dot_string("a\\b") == '"a\\\\b"'

    def test_newline(self):
        assert _escape_dot_string("a\nb") == '"a\\nb"'

    def test_empty(self):
        assert _escape_dot_string("") == '""'

    def test_string_literal_label(self):
        document = assemble(INPUT, STRING, (lit('he said "no"'),))
        dot = generate_dot(document)
        assert '\\"no\\"' in dot


def test_save_dot_file(tmp_path, logistic_document):
    path = tmp_path / "logistic.dot"
    save_dot_file(logistic_document, str(path), mode=DotMode.DETAILED)
    assert path.read_text() == generate_dot(logistic_document, mode=DotMode.DETAILED)
