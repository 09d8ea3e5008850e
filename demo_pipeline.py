#!/usr/bin/env python3
"""
Complete Pipeline Demo: ParameterRecord → Document → Validation → Diagrams

Shows the full workflow:
1. Compile an example logistic record with a YAML configuration
2. Validate the document on sample records
3. Analyze the document
4. Serialize to JSON and generate a Graphviz diagram
"""

import logging

from scoredoc.analyzer import analyze_document
from scoredoc.backends import DotMode, generate_dot, save_dot_file
from scoredoc.config import ProducerConfig
from scoredoc.engine import LocalEngine, evaluate
from scoredoc.examples import build_example_logistic_record
from scoredoc.producer import produce_from_record
from scoredoc.serialization import document_to_json

CONFIG = """
pred_type: class
validation_mode: warn
timeout: 5
name: logistic_demo
"""


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 80)
    print("COMPLETE PIPELINE DEMO: record → document → validation → diagram")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Compile
    # =========================================================================
    print("\n1. COMPILING...")
    config = ProducerConfig.from_yaml(CONFIG)
    samples = [{"X1": 0.0, "X2": 0.0}, {"X1": 3.0, "X2": 1.0}]
    result = produce_from_record(build_example_logistic_record(), config, LocalEngine(samples))
    document = result.document
    print(f"   ✓ Document: {document.name}")
    print(f"   ✓ Inputs: {', '.join(document.input_fields)}")
    print(f"   ✓ Validation passed: {result.passed}")

    # =========================================================================
    # STEP 2: Score
    # =========================================================================
    print("\n2. SCORING SAMPLES...")
    for sample in samples:
        print(f"   {sample} -> {evaluate(document, sample)}")

    # =========================================================================
    # STEP 3: Analyze
    # =========================================================================
    print("\n3. ANALYZING...")
    report = analyze_document(document)
    print(f"   ✓ Nodes: {report.total_nodes}, depth: {report.max_depth}")
    print(f"   ✓ Operators: {report.operator_usage}")
    for warning in report.warnings:
        print(f"      - {warning}")

    # =========================================================================
    # STEP 4: Serialize and draw
    # =========================================================================
    print("\n4. SERIALIZING...")
    print(f"   {document_to_json(document)[:120]}...")
    save_dot_file(document, "logistic_demo.dot", mode=DotMode.DETAILED)
    print("   ✓ Saved logistic_demo.dot")
    print("\n" + generate_dot(document, mode=DotMode.SIMPLE).split("\n")[0])

    print("\n" + "=" * 80)
    print("To visualize the diagram:")
    print("  dot -Tpng logistic_demo.dot -o logistic_demo.png")
    print("=" * 80)


if __name__ == "__main__":
    main()
