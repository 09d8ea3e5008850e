"""
Tests for the Document Analyzer.

Tests verify that the analyzer correctly:
    - Measures expression size and depth
    - Inventories operator usage
    - Detects unused input fields and cells
    - Leaves the document untouched
"""

from scoredoc.analyzer import MAX_DEPTH_WARNING, analyze_document
from scoredoc.assembler import Cell, assemble
from scoredoc.builders import LinearBuilder
from scoredoc.config import PredType
from scoredoc.examples import build_example_logistic_record
from scoredoc.expressions import Call, If, Ref, num
from scoredoc.schema import DOUBLE, Record

INPUT = Record("Input", (("x", DOUBLE), ("y", DOUBLE)))


def test_simple_document():
    """x + y: three nodes, depth two."""
    document = assemble(INPUT, DOUBLE, (Call("+", (Ref("x"), Ref("y"))),), name="sum")
    report = analyze_document(document)

    assert report.document_name == "sum"
    assert report.total_statements == 1
    assert report.total_inputs == 2
    assert report.total_nodes == 3
    assert report.max_depth == 2
    assert report.operator_usage == {"+": 1}
    assert report.referenced_inputs == {"x", "y"}
    assert not report.unused_inputs
    assert report.warnings == []


def test_unused_input():
    document = assemble(INPUT, DOUBLE, (Ref("x"),))
    report = analyze_document(document)
    assert report.unused_inputs == {"y"}
    assert any("Unused input fields: y" in w for w in report.warnings)


def test_unused_cell():
    document = assemble(INPUT, DOUBLE, (Call("+", (Ref("x"), Ref("y"))),),
                        (Cell("spare", DOUBLE, 1.0),))
    report = analyze_document(document)
    assert report.unused_cells == {"spare"}
    assert report.total_cells == 1


def test_compiled_model_inventory():
    compiled = LinearBuilder().build(build_example_logistic_record(), PredType.CLASS)
    document = assemble(compiled.input_type, compiled.output_type, compiled.action)
    report = analyze_document(document)

    assert report.operator_usage["m.link.logit"] == 1
    assert report.operator_usage[">"] == 1
    assert report.if_count == 2
    # __p, then __score_0, __score_1, __better_1, __best_1, __top_1
    assert report.let_bindings == 6
    assert report.referenced_inputs == {"X1", "X2"}


def test_deep_expression_warning():
    node = Ref("x")
    for _ in range(MAX_DEPTH_WARNING + 1):
        node = If(Call(">", (Ref("y"), num(0.0))), node, Ref("y"))
    report = analyze_document(assemble(INPUT, DOUBLE, (node,)))
    assert report.max_depth > MAX_DEPTH_WARNING
    assert any("High expression depth" in w for w in report.warnings)


def test_analysis_is_read_only():
    document = assemble(INPUT, DOUBLE, (Ref("x"),))
    before = (document.action, document.cells, dict(document.metadata))
    analyze_document(document)
    assert (document.action, document.cells, dict(document.metadata)) == before
