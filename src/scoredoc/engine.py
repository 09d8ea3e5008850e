"""
Execution engines.

The validation gateway hands a Document to a ValidationEngine and reads
back an accept / reject answer with a diagnostic. Two engines ship here:

    LocalEngine     in-process: re-checks the document and executes it
                    on sample input records
    CommandEngine   out-of-process: pipes the document JSON into an
                    external command; exit status 0 means accepted

``evaluate`` is the interpreter LocalEngine uses; it is also handy for
scoring a record directly from a Document.
"""

import logging
import subprocess
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

from .assembler import Document, assemble, value_matches
from .errors import EvaluationError, ScoredocError
from .expressions import Block, Call, ExprNode, If, Let, Literal, Ref
from .operators import get_operator
from .schema import describe
from .serialization import document_to_json

logger = logging.getLogger(__name__)


def _eval(node: ExprNode, env: Dict[str, Any]) -> Any:
    if isinstance(node, Literal):
        return node.value

    if isinstance(node, Ref):
        try:
            return env[node.symbol]
        except KeyError:
            raise EvaluationError(f"Unbound symbol at run time: {node.symbol!r}")

    if isinstance(node, Call):
        operator = get_operator(node.op)
        if operator is None:
            raise EvaluationError(f"Unknown operator: {node.op!r}")
        args = [_eval(arg, env) for arg in node.args]
        try:
            return operator.impl(*args)
        except (ArithmeticError, ValueError, KeyError, TypeError) as e:
            raise EvaluationError(f"{node.op}: {e}")

    if isinstance(node, Let):
        scope = dict(env)
        for name, expr in node.bindings:
            scope[name] = _eval(expr, scope)
        return _eval(node.body, scope)

    if isinstance(node, If):
        return _eval(node.then if _eval(node.cond, env) else node.orelse, env)

    if isinstance(node, Block):
        result = None
        for statement in node.statements:
            result = _eval(statement, env)
        return result

    raise EvaluationError(f"Unknown expression node {type(node).__name__}")


def evaluate(document: Document, record: Mapping[str, Any]) -> Any:
    """
    Score one input record with a Document.

    Args:
        document: assembled document
        record: input field name -> value

    Returns:
        value of the last action statement
    """
    missing = [name for name in document.input_fields if name not in record]
    if missing:
        raise EvaluationError(f"Input record lacks fields: {', '.join(missing)}")

    env: Dict[str, Any] = {name: record[name] for name in document.input_fields}
    env.update({cell.name: cell.init for cell in document.cells})
    result = None
    for statement in document.action:
        result = _eval(statement, env)
    return result


@dataclass(frozen=True)
class EngineResponse:
    ok: bool
    diagnostic: Optional[str] = None


class ValidationEngine(ABC):
    """A black-box engine that accepts or rejects a document."""

    @abstractmethod
    def check(self, document: Document, timeout: Optional[float] = None) -> EngineResponse:
        pass


class LocalEngine(ValidationEngine):
    """
    In-process engine.

    Re-runs the structural checks of the assembler, then executes the
    document on each sample record and checks every result against the
    declared output type.

    Args:
        samples: input records to execute
    """

    def __init__(self, samples: Sequence[Mapping[str, Any]] = ()):
        self.samples = list(samples)

    def check(self, document, timeout=None):
        started = time.monotonic()
        try:
            assemble(document.input, document.output, document.action, document.cells,
                     name=document.name, metadata=document.metadata)
        except ScoredocError as e:
            return EngineResponse(False, str(e))

        for i, sample in enumerate(self.samples):
            if timeout is not None and time.monotonic() - started > timeout:
                return EngineResponse(False, f"timed out after {timeout}s ({i} of {len(self.samples)} samples)")
            try:
                result = evaluate(document, sample)
            except EvaluationError as e:
                return EngineResponse(False, f"sample {i}: {e}")
            if not value_matches(result, document.output):
                return EngineResponse(
                    False, f"sample {i}: result {result!r} is not a {describe(document.output)}"
                )
        return EngineResponse(True)


class CommandEngine(ValidationEngine):
    """
    External engine invoked as a subprocess.

    The document JSON is written to the command's stdin. Exit status 0
    accepts the document; otherwise stderr (or stdout) is the diagnostic.

    Args:
        argv: command and arguments, e.g. ["pfa-check", "--strict"]
    """

    def __init__(self, argv: Sequence[str], env: Optional[Mapping[str, str]] = None):
        self.argv = list(argv)
        self.env = dict(env) if env is not None else None

    def check(self, document, timeout=None):
        payload = document_to_json(document)
        logger.debug("Running engine %s on document %r", self.argv[0], document.name)
        try:
            completed = subprocess.run(
                self.argv,
                input=payload,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=self.env,
            )
        except subprocess.TimeoutExpired:
            return EngineResponse(False, f"engine timed out after {timeout}s")
        except OSError as e:
            return EngineResponse(False, f"cannot start engine {self.argv[0]!r}: {e}")

        if completed.returncode == 0:
            return EngineResponse(True)
        diagnostic = (completed.stderr or "").strip() or (completed.stdout or "").strip()
        return EngineResponse(False, diagnostic or f"engine exited with status {completed.returncode}")
