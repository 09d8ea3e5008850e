"""
Model family dispatch.

Supported families are an explicit enumeration. Each family pairs an
Extractable (fitted object -> ParameterRecord) with a Buildable
(ParameterRecord -> CompiledModel). The caller names the family; no
runtime inspection of the fitted object's class happens here.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

from .builders import Buildable, CompiledModel, LinearBuilder, TreeBuilder
from .config import PredType
from .errors import UnsupportedModelVariant
from .extractors import (
    Extractable,
    ForestExtractor,
    GLMExtractor,
    LinearExtractor,
    LogisticExtractor,
    RegularizedExtractor,
    TreeExtractor,
    TweedieExtractor,
)
from .params import Family, Link, ParameterRecord


class ModelFamily(Enum):
    LINEAR = "linear"
    LOGISTIC = "logistic"
    POISSON = "poisson"
    GAMMA = "gamma"
    TWEEDIE = "tweedie"
    REGULARIZED = "regularized"
    DECISION_TREE = "decision_tree"
    RANDOM_FOREST = "random_forest"


@dataclass(frozen=True)
class FamilySupport:
    """The two capabilities composed for one family."""

    extractor: Extractable
    builder: Buildable


class FamilyRegistry:
    """
    Registry of supported model families.

    Usage:
        registry = FamilyRegistry.default()
        record = registry.extract(ModelFamily.LOGISTIC, fitted)
        compiled = registry.compile_record(record, PredType.CLASS)
    """

    def __init__(self):
        self._families: Dict[ModelFamily, FamilySupport] = {}

    def register(self, family: ModelFamily, extractor: Extractable, builder: Buildable) -> None:
        self._families[ModelFamily(family)] = FamilySupport(extractor, builder)

    def support(self, family) -> FamilySupport:
        try:
            family = ModelFamily(family)
        except ValueError:
            raise UnsupportedModelVariant(str(family), reason="unknown model family")
        if family not in self._families:
            raise UnsupportedModelVariant(family.value, reason="no extractor registered")
        return self._families[family]

    def list_available(self) -> List[str]:
        return [f.value for f in self._families]

    def extract(self, family, fitted, feature_names: Optional[Sequence[str]] = None) -> ParameterRecord:
        return self.support(family).extractor.extract(fitted, feature_names)

    def compile_model(self, family, fitted, pred_type=PredType.RESPONSE,
                      cutoffs: Optional[Mapping[str, float]] = None,
                      feature_names: Optional[Sequence[str]] = None) -> CompiledModel:
        support = self.support(family)
        record = support.extractor.extract(fitted, feature_names)
        return support.builder.build(record, pred_type, cutoffs)

    def compile_record(self, record: ParameterRecord, pred_type=PredType.RESPONSE,
                       cutoffs: Optional[Mapping[str, float]] = None) -> CompiledModel:
        """Compile a record built by hand (or by any extractor)."""
        return builder_for(record).build(record, pred_type, cutoffs)

    @classmethod
    def default(cls) -> "FamilyRegistry":
        registry = cls()
        linear = LinearBuilder()
        trees = TreeBuilder()
        registry.register(ModelFamily.LINEAR, LinearExtractor(), linear)
        registry.register(ModelFamily.LOGISTIC, LogisticExtractor(), linear)
        registry.register(ModelFamily.POISSON, GLMExtractor(Family.POISSON, Link.LOG, "poisson"), linear)
        registry.register(ModelFamily.GAMMA, GLMExtractor(Family.GAMMA, Link.LOG, "gamma"), linear)
        registry.register(ModelFamily.TWEEDIE, TweedieExtractor(), linear)
        registry.register(ModelFamily.REGULARIZED, RegularizedExtractor(), linear)
        registry.register(ModelFamily.DECISION_TREE, TreeExtractor(), trees)
        registry.register(ModelFamily.RANDOM_FOREST, ForestExtractor(), trees)
        return registry


_LINEAR_BUILDER = LinearBuilder()
_TREE_BUILDER = TreeBuilder()


def builder_for(record: ParameterRecord) -> Buildable:
    """Records with trees compile with TreeBuilder, all others with LinearBuilder."""
    return _TREE_BUILDER if record.is_ensemble else _LINEAR_BUILDER


def compile_record(record: ParameterRecord, pred_type=PredType.RESPONSE,
                   cutoffs: Optional[Mapping[str, float]] = None) -> CompiledModel:
    return builder_for(record).build(record, pred_type, cutoffs)
