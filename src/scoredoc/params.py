"""
Parameter Records

The normalized, family-agnostic result of extracting a fitted model.

A ParameterRecord is created fresh for one compile call and is never
modified afterwards: mappings are stored as read-only views over private
copies, sequences as tuples.

Two shapes share this record:
    - linear:   regressors, coefficients, intercept (or one
                LinearPredictor per class for multinomial models)
    - ensemble: trees plus an aggregation mode
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union


class Family(Enum):
    """Response distribution of the fitted model."""

    GAUSSIAN = "gaussian"
    BINOMIAL = "binomial"
    POISSON = "poisson"
    GAMMA = "gamma"
    INVERSE_GAUSSIAN = "inverse_gaussian"
    TWEEDIE = "tweedie"
    MULTINOMIAL = "multinomial"
    COX = "cox"


class Link(Enum):
    """Link function; the compiler applies its inverse."""

    IDENTITY = "identity"
    LOGIT = "logit"
    PROBIT = "probit"
    CLOGLOG = "cloglog"
    LOG = "log"
    INVERSE = "inverse"
    SQRT = "sqrt"
    SOFTMAX = "softmax"


class Task(Enum):
    REGRESSION = "regression"
    CLASSIFICATION = "classification"


class Aggregation(Enum):
    """How an ensemble combines the outputs of its trees."""

    MEAN = "mean"
    MAJORITY_VOTE = "majority_vote"


@dataclass(frozen=True)
class Leaf:
    """Terminal tree node: a class label or a numeric prediction."""

    value: Union[str, float]


@dataclass(frozen=True)
class Split:
    """
    Internal tree node.

    Rows with ``feature <= threshold`` go left, all others go right.
    """

    feature: str
    threshold: float
    left: "TreeNode"
    right: "TreeNode"


TreeNode = Union[Split, Leaf]


def _frozen_mapping(values: Optional[Mapping[str, float]]) -> Mapping[str, float]:
    return MappingProxyType({str(k): float(v) for k, v in dict(values or {}).items()})


@dataclass(frozen=True)
class LinearPredictor:
    """One class's linear predictor in a multinomial model."""

    label: str
    coefficients: Mapping[str, float]
    intercept: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "coefficients", _frozen_mapping(self.coefficients))
        object.__setattr__(self, "intercept", float(self.intercept))


@dataclass(frozen=True)
class ParameterRecord:
    """
    Normalized extraction result.

    Properties:
        family: response distribution
        link: link function
        task: regression or classification
        regressors: ordered input feature names
        coefficients: regressor name -> weight (single-predictor models)
        intercept: constant term
        class_labels: declared class order (classification only); this
                      order is the tie-break order of every decision
        class_predictors: one LinearPredictor per class (multinomial)
        trees: ordered tree roots (tree-based families)
        aggregation: how trees are combined
    """

    family: Family
    link: Link = Link.IDENTITY
    task: Task = Task.REGRESSION
    regressors: Tuple[str, ...] = ()
    coefficients: Mapping[str, float] = field(default_factory=dict)
    intercept: float = 0.0
    class_labels: Tuple[str, ...] = ()
    class_predictors: Tuple[LinearPredictor, ...] = ()
    trees: Tuple[TreeNode, ...] = ()
    aggregation: Optional[Aggregation] = None

    def __post_init__(self):
        coefficients = _frozen_mapping(self.coefficients)
        regressors = tuple(str(r) for r in self.regressors)
        if not regressors:
            # Default order: coefficient order, then any multinomial extras
            names = list(coefficients)
            for predictor in self.class_predictors:
                names.extend(n for n in predictor.coefficients if n not in names)
            regressors = tuple(names)
        object.__setattr__(self, "coefficients", coefficients)
        object.__setattr__(self, "regressors", regressors)
        object.__setattr__(self, "intercept", float(self.intercept))
        object.__setattr__(self, "class_labels", tuple(str(c) for c in self.class_labels))
        object.__setattr__(self, "class_predictors", tuple(self.class_predictors))
        object.__setattr__(self, "trees", tuple(self.trees))

    @property
    def is_ensemble(self) -> bool:
        return bool(self.trees)

    @property
    def is_classification(self) -> bool:
        return self.task is Task.CLASSIFICATION


def tree_depth(node: TreeNode) -> int:
    if isinstance(node, Leaf):
        return 0
    return 1 + max(tree_depth(node.left), tree_depth(node.right))


def tree_features(node: TreeNode) -> Tuple[str, ...]:
    """Features used by a tree, in first-use (pre-order) order."""
    seen = []
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Split):
            if current.feature not in seen:
                seen.append(current.feature)
            stack.append(current.right)
            stack.append(current.left)
    return tuple(seen)
