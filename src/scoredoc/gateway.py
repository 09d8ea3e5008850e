"""
Validation Gateway.

Optional, post-assembly verification of a Document by an execution
engine. The gateway never modifies the Document it is given.

Modes:
    off     engine not invoked
    warn    failure is logged; the Document is returned with the diagnostic
    error   failure raises ValidationFailed carrying the engine diagnostic
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .assembler import Document
from .config import ValidationMode
from .engine import EngineResponse, LocalEngine, ValidationEngine
from .errors import ScoredocError, ValidationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """
    Properties:
        document: the (unchanged) document that was checked
        mode: gateway mode used
        passed: engine accepted the document (True when skipped)
        diagnostic: engine diagnostic on failure
        skipped: engine was not invoked (mode off)
    """

    document: Document
    mode: ValidationMode
    passed: bool
    diagnostic: Optional[str] = None
    skipped: bool = False


def validate(document: Document, mode=ValidationMode.OFF,
             engine: Optional[ValidationEngine] = None,
             timeout: Optional[float] = None) -> ValidationResult:
    """
    Check a document with an engine according to mode.

    Args:
        document: assembled document
        mode: off, warn or error
        engine: engine to use (default: LocalEngine without samples)
        timeout: seconds the engine call may take

    Returns:
        ValidationResult

    Raises:
        ValidationFailed: engine rejected the document in error mode
    """
    mode = ValidationMode(mode)
    if mode is ValidationMode.OFF:
        return ValidationResult(document=document, mode=mode, passed=True, skipped=True)

    engine = engine if engine is not None else LocalEngine()
    try:
        response = engine.check(document, timeout=timeout)
    except (ScoredocError, OSError) as e:
        response = EngineResponse(False, f"engine error: {e}")

    if response.ok:
        logger.debug("Document %r accepted by %s", document.name, type(engine).__name__)
        return ValidationResult(document=document, mode=mode, passed=True)

    diagnostic = response.diagnostic or "rejected without diagnostic"
    if mode is ValidationMode.ERROR:
        raise ValidationFailed(diagnostic)

    logger.warning("Validation of document %r failed: %s", document.name, diagnostic)
    return ValidationResult(document=document, mode=mode, passed=False, diagnostic=diagnostic)
