"""
scoredoc: portable scoring documents from fitted statistical models.

A fitted model is turned into a Document: an input record schema, an
output schema and an action expression graph that any conforming
engine can execute.

    fitted model -> ParameterRecord -> CompiledModel -> Document -> validation

ARCHITECTURAL GUARANTEE:
------------------------
Documents contain ZERO knowledge of:
    - the library that fitted the model
    - the engine that will execute them
    - any target language syntax

Documents are structure only, and immutable once assembled.
"""

__version__ = "0.1.0"
