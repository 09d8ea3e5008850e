"""
Classification Decision Module.

The single place where classification-versus-regression output policy is
decided. Every compiler hands its per-class scores (or its raw
regression prediction) to ``decide`` instead of building its own
selection logic.

Selection rules:
    - probability: the full score map, unchanged
    - class, no cutoffs: argmax of scores
    - class, cutoffs: argmax of score / cutoff
    - response: raw value for regression, the class for classification

Ties always go to the label declared first. The argmax is emitted as a
chain of Let bindings with strict ``>`` comparisons, so a later label
only wins when it is strictly better.
"""

import logging
import numbers
from typing import Dict, List, Mapping, Optional, Tuple, Union

from .config import PredType
from .errors import MissingCutoff, UnsupportedModelVariant
from .expressions import Call, ExprNode, If, Let, Literal, Ref, local, num
from .schema import STRING

logger = logging.getLogger(__name__)

Scores = Union[ExprNode, Mapping[str, ExprNode]]


def validate_cutoffs(labels, cutoffs: Mapping[str, float]) -> Dict[str, float]:
    """
    Check a cutoff mapping against the declared class labels.

    Labels and cutoff keys are compared by their string form.

    Returns:
        label -> cutoff as float, in label order

    Raises:
        MissingCutoff: a label has no cutoff, a cutoff is not a strictly
                       positive number, or a cutoff names an unknown label
    """
    labels = [str(label) for label in labels]
    given = {str(label): value for label, value in cutoffs.items()}
    checked: Dict[str, float] = {}
    for label in labels:
        if label not in given:
            raise MissingCutoff(label)
        value = given[label]
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise MissingCutoff(label, f"cutoff must be a number, got {value!r}")
        if not value > 0:
            raise MissingCutoff(label, f"cutoff must be strictly positive, got {value!r}")
        checked[label] = float(value)
    for label in given:
        if label not in checked:
            raise MissingCutoff(label, "not a class label of this model")
    return checked


def decide(scores: Scores, pred_type=PredType.RESPONSE,
           cutoffs: Optional[Mapping[str, float]] = None) -> ExprNode:
    """
    Build the expression producing the model's output.

    Args:
        scores: ordered mapping label -> score expression (classification;
                declaration order is the tie-break order), or a single
                expression (regression); plain numbers are
                taken as double literals
        pred_type: response, probability or class
        cutoffs: optional label -> strictly positive cutoff

    Returns:
        ExprNode

    Raises:
        MissingCutoff: cutoffs do not exactly cover the labels
        UnsupportedModelVariant: prediction type impossible for the task
    """
    pred_type = PredType(pred_type)

    if isinstance(scores, ExprNode):
        if cutoffs is not None:
            raise UnsupportedModelVariant(
                "regression", task="regression", reason="cutoffs given for a regression prediction",
            )
        if pred_type is PredType.RESPONSE:
            return scores
        raise UnsupportedModelVariant(
            "regression", task="regression",
            reason=f"prediction type {pred_type.value!r} needs class scores",
        )

    scores = {str(label): s if isinstance(s, ExprNode) else num(s) for label, s in scores.items()}
    labels = list(scores)
    if not labels:
        raise UnsupportedModelVariant("classification", task="classification",
                                      reason="no class scores")
    if cutoffs is not None:
        cutoffs = validate_cutoffs(labels, cutoffs)

    if pred_type is PredType.PROBABILITY:
        args: List[ExprNode] = []
        for label in labels:
            args.extend((Literal(label, STRING), scores[label]))
        return Call("map.new", tuple(args))

    logger.debug("Selecting among %d classes (cutoffs: %s)", len(labels), cutoffs is not None)
    return _argmax(labels, scores, cutoffs)


def _argmax(labels: List[str], scores: Mapping[str, ExprNode],
            cutoffs: Optional[Mapping[str, float]]) -> ExprNode:
    bindings: List[Tuple[str, ExprNode]] = []
    keys = []
    for i, label in enumerate(labels):
        bindings.append((local("score", i), scores[label]))
        key = Ref(local("score", i))
        if cutoffs is not None:
            bindings.append((local("ratio", i), Call("/", (key, num(cutoffs[label])))))
            key = Ref(local("ratio", i))
        keys.append(key)

    best = Literal(labels[0], STRING)
    top: ExprNode = keys[0]
    for i in range(1, len(labels)):
        better = local("better", i)
        bindings.append((better, Call(">", (keys[i], top))))
        bindings.append((local("best", i), If(Ref(better), Literal(labels[i], STRING), best)))
        bindings.append((local("top", i), If(Ref(better), keys[i], top)))
        best = Ref(local("best", i))
        top = Ref(local("top", i))

    return Let(tuple(bindings), best)
