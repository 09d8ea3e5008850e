"""
End-to-end production: fitted model -> validated Document.

    extract -> compile -> assemble -> validate

Every compile-time error propagates to the caller unchanged; a Document
is only returned once it has been fully assembled. Validation runs last
and never alters the Document.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .assembler import Document, assemble
from .builders import CompiledModel
from .config import ProducerConfig
from .engine import ValidationEngine
from .families import FamilyRegistry, ModelFamily, compile_record
from .gateway import ValidationResult, validate
from .params import ParameterRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductionResult:
    document: Document
    validation: ValidationResult

    @property
    def passed(self) -> bool:
        return self.validation.passed


def _finish(compiled: CompiledModel, config: ProducerConfig, metadata,
            engine: Optional[ValidationEngine]) -> ProductionResult:
    document = assemble(
        compiled.input_type,
        compiled.output_type,
        compiled.action,
        name=config.name,
        metadata=metadata,
    )
    validation = validate(document, config.validation_mode, engine, config.timeout)
    logger.info("Produced document %r (%s output, validation %s)", document.name,
                config.pred_type.value,
                "skipped" if validation.skipped else ("passed" if validation.passed else "failed"))
    return ProductionResult(document=document, validation=validation)


def produce(fitted, family, config: Optional[ProducerConfig] = None,
            engine: Optional[ValidationEngine] = None,
            feature_names: Optional[Sequence[str]] = None,
            registry: Optional[FamilyRegistry] = None) -> ProductionResult:
    """
    Produce a scoring document from a fitted model.

    Args:
        fitted: fitted estimator of the given family
        family: ModelFamily (or its value, e.g. "logistic")
        config: producer configuration (defaults apply when None)
        engine: validation engine (default: LocalEngine)
        feature_names: input names in column order
        registry: family registry (default: FamilyRegistry.default())

    Returns:
        ProductionResult
    """
    config = config or ProducerConfig()
    registry = registry or FamilyRegistry.default()
    family = ModelFamily(family)
    compiled = registry.compile_model(family, fitted, config.pred_type, config.cutoffs, feature_names)
    metadata = dict(config.metadata)
    metadata.setdefault("family", family.value)
    metadata.setdefault("pred_type", config.pred_type.value)
    return _finish(compiled, config, metadata, engine)


def produce_from_record(record: ParameterRecord, config: Optional[ProducerConfig] = None,
                        engine: Optional[ValidationEngine] = None) -> ProductionResult:
    """Produce a scoring document from an already extracted record."""
    config = config or ProducerConfig()
    compiled = compile_record(record, config.pred_type, config.cutoffs)
    metadata = dict(config.metadata)
    metadata.setdefault("family", record.family.value)
    metadata.setdefault("pred_type", config.pred_type.value)
    return _finish(compiled, config, metadata, engine)
