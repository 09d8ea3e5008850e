"""
Model Compilers.

A Buildable turns a ParameterRecord into the pieces of a document:
input schema, output schema and action. Compilers are pure: the same
record, prediction type and cutoffs always give structurally equal
output.

    LinearBuilder   linear predictor -> inverse link -> decision
    TreeBuilder     nested Ifs per tree -> mean / vote counts -> decision

Anything a compiler cannot reproduce exactly raises
UnsupportedModelVariant. Nothing is approximated.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from .config import PredType
from .decision import decide
from .errors import UnsupportedModelVariant
from .expressions import Call, ExprNode, If, Let, Literal, Ref, local, num
from .params import Aggregation, Family, Leaf, Link, ParameterRecord, Split, TreeNode, tree_features
from .schema import DOUBLE, STRING, Map, Record, TypeDescriptor

logger = logging.getLogger(__name__)

INPUT_RECORD_NAME = "Input"

REGRESSION_FAMILIES = (
    Family.GAUSSIAN,
    Family.POISSON,
    Family.GAMMA,
    Family.INVERSE_GAUSSIAN,
    Family.TWEEDIE,
)
REGRESSION_LINKS = (Link.IDENTITY, Link.LOG, Link.INVERSE, Link.SQRT)
BINOMIAL_LINKS = (Link.LOGIT, Link.PROBIT, Link.CLOGLOG)

# Inverse links that are a single operator call
INVERSE_LINK_OPERATORS = {
    Link.LOGIT: "m.link.logit",
    Link.PROBIT: "m.link.probit",
    Link.CLOGLOG: "m.link.cloglog",
    Link.LOG: "m.exp",
}


@dataclass(frozen=True)
class CompiledModel:
    """Input schema, output schema and action of one compiled model."""

    input_type: Record
    output_type: TypeDescriptor
    action: Tuple[ExprNode, ...]


class Buildable(ABC):
    """Capability every model family implements alongside Extractable."""

    @abstractmethod
    def build(self, record: ParameterRecord, pred_type=PredType.RESPONSE,
              cutoffs: Optional[Mapping[str, float]] = None) -> CompiledModel:
        """
        Compile a record.

        Raises:
            UnsupportedModelVariant: family / link / task not supported
            MissingCutoff: cutoffs do not cover the class labels
        """
        pass

    def _unsupported(self, record: ParameterRecord, reason: str) -> UnsupportedModelVariant:
        return UnsupportedModelVariant(record.family.value, record.link.value,
                                       record.task.value, reason)


def input_type_for(regressors) -> Record:
    return Record(INPUT_RECORD_NAME, tuple((name, DOUBLE) for name in regressors))


def output_type_for(record: ParameterRecord, pred_type: PredType) -> TypeDescriptor:
    if not record.is_classification:
        return DOUBLE
    if pred_type is PredType.PROBABILITY:
        return Map(DOUBLE)
    return STRING


def linear_predictor(coefficients: Mapping[str, float], intercept: float,
                     regressors) -> ExprNode:
    """
    ``c1*x1 + c2*x2 + ... + intercept`` in regressor order.

    Regressors without a coefficient contribute no term.
    """
    total: Optional[ExprNode] = None
    for name in regressors:
        if name not in coefficients:
            continue
        term = Call("*", (num(coefficients[name]), Ref(name)))
        total = term if total is None else Call("+", (total, term))
    if total is None:
        return num(intercept)
    return Call("+", (total, num(intercept)))


def inverse_link(eta: ExprNode, link: Link) -> ExprNode:
    """Mean response from the linear predictor."""
    if link is Link.IDENTITY:
        return eta
    if link in INVERSE_LINK_OPERATORS:
        return Call(INVERSE_LINK_OPERATORS[link], (eta,))
    if link is Link.INVERSE:
        return Call("/", (num(1.0), eta))
    if link is Link.SQRT:
        return Call("**", (eta, num(2.0)))
    raise ValueError(f"No scalar inverse for link {link.value!r}")


class LinearBuilder(Buildable):
    """
    Linear and generalized linear models, regularized or not.

    Binomial models score the two classes as (1 - p, p), with p the
    inverse link of the linear predictor for the second class.
    Multinomial models normalize the per-class predictors with softmax.
    """

    def build(self, record, pred_type=PredType.RESPONSE, cutoffs=None):
        pred_type = PredType(pred_type)
        if record.is_ensemble:
            raise self._unsupported(record, "record holds trees, not coefficients")
        if record.family is Family.COX:
            raise self._unsupported(record, "Cox models have no closed-form prediction")
        self._check_regressors(record)

        if record.family is Family.MULTINOMIAL:
            result = self._multinomial(record, pred_type, cutoffs)
        elif record.family is Family.BINOMIAL:
            result = self._binomial(record, pred_type, cutoffs)
        elif record.family in REGRESSION_FAMILIES:
            result = self._regression(record, pred_type, cutoffs)
        else:
            raise self._unsupported(record, "unknown family")

        logger.debug("Compiled %s/%s record (%s)", record.family.value, record.link.value,
                     pred_type.value)
        return CompiledModel(
            input_type=input_type_for(record.regressors),
            output_type=output_type_for(record, pred_type),
            action=(result,),
        )

    def _check_regressors(self, record: ParameterRecord) -> None:
        declared = set(record.regressors)
        used = set(record.coefficients)
        for predictor in record.class_predictors:
            used.update(predictor.coefficients)
        undeclared = sorted(used - declared)
        if undeclared:
            raise self._unsupported(
                record, f"coefficients for undeclared regressors: {', '.join(undeclared)}"
            )

    def _regression(self, record, pred_type, cutoffs) -> ExprNode:
        if record.is_classification:
            raise self._unsupported(record, "classification task on a regression family")
        if record.link not in REGRESSION_LINKS:
            raise self._unsupported(record, "link not supported for regression families")
        eta = linear_predictor(record.coefficients, record.intercept, record.regressors)
        return decide(inverse_link(eta, record.link), pred_type, cutoffs)

    def _binomial(self, record, pred_type, cutoffs) -> ExprNode:
        if not record.is_classification:
            raise self._unsupported(record, "binomial/multinomial families need a classification task")
        if record.link not in BINOMIAL_LINKS:
            raise self._unsupported(record, "binomial models need a logit, probit or cloglog link")
        if len(record.class_labels) != 2:
            raise self._unsupported(
                record, f"binomial models need exactly two class labels, got {len(record.class_labels)}"
            )
        negative, positive = record.class_labels
        eta = linear_predictor(record.coefficients, record.intercept, record.regressors)
        p = local("p")
        scores = {
            negative: Call("-", (num(1.0), Ref(p))),
            positive: Ref(p),
        }
        return Let(((p, inverse_link(eta, record.link)),), decide(scores, pred_type, cutoffs))

    def _multinomial(self, record, pred_type, cutoffs) -> ExprNode:
        if not record.is_classification:
            raise self._unsupported(record, "binomial/multinomial families need a classification task")
        if record.link is not Link.SOFTMAX:
            raise self._unsupported(record, "multinomial models need a softmax link")
        labels = record.class_labels
        predictors = {p.label: p for p in record.class_predictors}
        if len(labels) < 2 or list(predictors) != list(labels):
            raise self._unsupported(record, "need one linear predictor per class label, in label order")

        args: List[ExprNode] = []
        for label in labels:
            predictor = predictors[label]
            args.append(Literal(label, STRING))
            args.append(linear_predictor(predictor.coefficients, predictor.intercept,
                                         record.regressors))
        probs = local("probs")
        scores = {label: Call("map.get", (Ref(probs), Literal(label, STRING))) for label in labels}
        softmax = Call("m.link.softmax", (Call("map.new", tuple(args)),))
        return Let(((probs, softmax),), decide(scores, pred_type, cutoffs))


class TreeBuilder(Buildable):
    """
    Single trees and tree ensembles.

    Each tree becomes nested If nodes; rows with ``feature <= threshold``
    take the left branch. Regression ensembles average the tree outputs.
    Classification ensembles bind each tree's class once, count votes
    per class and hand the vote fractions to the decision module, so the
    majority class wins and ties go to the first declared label.
    """

    def build(self, record, pred_type=PredType.RESPONSE, cutoffs=None):
        pred_type = PredType(pred_type)
        if not record.trees:
            raise self._unsupported(record, "record holds no trees")

        if record.is_classification:
            if record.aggregation not in (None, Aggregation.MAJORITY_VOTE):
                raise self._unsupported(record, "classification ensembles aggregate by majority vote")
            result = self._classification(record, pred_type, cutoffs)
        else:
            if record.aggregation not in (None, Aggregation.MEAN):
                raise self._unsupported(record, "regression ensembles aggregate by mean")
            result = self._regression(record, pred_type, cutoffs)

        regressors = record.regressors
        if not regressors:
            names: List[str] = []
            for tree in record.trees:
                names.extend(f for f in tree_features(tree) if f not in names)
            regressors = tuple(names)

        logger.debug("Compiled ensemble of %d trees (%s)", len(record.trees), pred_type.value)
        return CompiledModel(
            input_type=input_type_for(regressors),
            output_type=output_type_for(record, pred_type),
            action=(result,),
        )

    def _tree(self, node: TreeNode, record: ParameterRecord) -> ExprNode:
        if isinstance(node, Leaf):
            if record.is_classification:
                if str(node.value) not in record.class_labels:
                    raise self._unsupported(record, f"leaf predicts undeclared class {node.value!r}")
                return Literal(str(node.value), STRING)
            return num(node.value)
        if isinstance(node, Split):
            return If(
                Call("<=", (Ref(node.feature), num(node.threshold))),
                self._tree(node.left, record),
                self._tree(node.right, record),
            )
        raise self._unsupported(record, f"unknown tree node {type(node).__name__}")

    def _regression(self, record, pred_type, cutoffs) -> ExprNode:
        outputs = [self._tree(tree, record) for tree in record.trees]
        if len(outputs) == 1:
            return decide(outputs[0], pred_type, cutoffs)
        total = outputs[0]
        for output in outputs[1:]:
            total = Call("+", (total, output))
        return decide(Call("/", (total, num(len(outputs)))), pred_type, cutoffs)

    def _classification(self, record, pred_type, cutoffs) -> ExprNode:
        labels = record.class_labels
        if len(labels) < 2:
            raise self._unsupported(record, "classification needs at least two class labels")

        n_trees = len(record.trees)
        bindings: List[Tuple[str, ExprNode]] = [
            (local("tree", i), self._tree(tree, record)) for i, tree in enumerate(record.trees)
        ]
        scores = {}
        for j, label in enumerate(labels):
            count: Optional[ExprNode] = None
            for i in range(n_trees):
                vote = If(Call("==", (Ref(local("tree", i)), Literal(label, STRING))),
                          num(1.0), num(0.0))
                count = vote if count is None else Call("+", (count, vote))
            bindings.append((local("votes", j), count))
            scores[label] = Call("/", (Ref(local("votes", j)), num(n_trees)))

        return Let(tuple(bindings), decide(scores, pred_type, cutoffs))
