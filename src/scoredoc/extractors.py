"""
Parameter Extractors.

One Extractable per model family. Each knows the layout of its fitted
object and normalizes it into a ParameterRecord.

Fitted objects are scikit-learn style estimators, read only through
their public fitted attributes (coef_, intercept_, classes_, tree_,
estimators_, ...). Nothing here imports scikit-learn, and nothing here
writes to the fitted object.

Any structural surprise raises IncompatibleModel naming the family and
what was missing, rather than producing a partial record.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .errors import IncompatibleModel
from .params import (
    Aggregation,
    Family,
    Leaf,
    LinearPredictor,
    Link,
    ParameterRecord,
    Split,
    Task,
    TreeNode,
)

logger = logging.getLogger(__name__)

# scikit-learn marks missing children with -1
TREE_LEAF = -1


def _response_family(labels: Tuple[str, ...]) -> Family:
    if not labels:
        return Family.GAUSSIAN
    return Family.BINOMIAL if len(labels) == 2 else Family.MULTINOMIAL


class Extractable(ABC):
    """
    Capability every model family implements.

    Subclasses set ``family_name`` (used in error context) and implement
    ``extract``.
    """

    family_name: str = "model"

    @abstractmethod
    def extract(self, fitted, feature_names: Optional[Sequence[str]] = None) -> ParameterRecord:
        """
        Normalize a fitted model.

        Args:
            fitted: fitted estimator
            feature_names: input names in column order; defaults to the
                           estimator's feature_names_in_, then x0..xN

        Returns:
            ParameterRecord

        Raises:
            IncompatibleModel: fitted object lacks the expected structure
        """
        pass

    # -- helpers ----------------------------------------------------------

    def _fail(self, reason: str) -> IncompatibleModel:
        return IncompatibleModel(self.family_name, reason)

    def _require(self, fitted, *attrs: str) -> None:
        for attr in attrs:
            if not hasattr(fitted, attr):
                raise self._fail(f"missing fitted attribute {attr!r} (is the estimator fitted?)")

    def _feature_names(self, fitted, n_features: int,
                       feature_names: Optional[Sequence[str]]) -> Tuple[str, ...]:
        if feature_names is None:
            feature_names = getattr(fitted, "feature_names_in_", None)
        if feature_names is None:
            names = tuple(f"x{i}" for i in range(n_features))
        else:
            names = tuple(str(n) for n in feature_names)
        if len(names) != n_features:
            raise self._fail(f"{len(names)} feature names for {n_features} features")
        if len(set(names)) != len(names):
            raise self._fail("feature names are not unique")
        return names

    def _coefficient_rows(self, fitted) -> np.ndarray:
        coef = np.asarray(fitted.coef_, dtype=float)
        if coef.ndim == 1:
            coef = coef.reshape(1, -1)
        if coef.ndim != 2 or coef.shape[1] == 0:
            raise self._fail(f"unexpected coefficient shape {coef.shape}")
        return coef

    def _intercepts(self, fitted, n_rows: int) -> np.ndarray:
        intercept = np.atleast_1d(np.asarray(getattr(fitted, "intercept_", 0.0), dtype=float))
        if intercept.size == 1 and n_rows > 1:
            intercept = np.repeat(intercept, n_rows)
        if intercept.size != n_rows:
            raise self._fail(f"{intercept.size} intercepts for {n_rows} coefficient rows")
        return intercept


class LinearExtractor(Extractable):
    """Least-squares models: LinearRegression, Ridge, Lasso, ElasticNet."""

    family_name = "linear"

    def extract(self, fitted, feature_names=None):
        self._require(fitted, "coef_")
        return self._single_predictor(fitted, feature_names, Family.GAUSSIAN, Link.IDENTITY)

    def _single_predictor(self, fitted, feature_names, family: Family, link: Link) -> ParameterRecord:
        coef = self._coefficient_rows(fitted)
        if coef.shape[0] != 1:
            raise self._fail(f"multi-output fit with {coef.shape[0]} targets")
        intercept = self._intercepts(fitted, 1)
        names = self._feature_names(fitted, coef.shape[1], feature_names)
        record = ParameterRecord(
            family=family,
            link=link,
            task=Task.REGRESSION,
            regressors=names,
            coefficients=dict(zip(names, coef[0].tolist())),
            intercept=float(intercept[0]),
        )
        logger.debug("Extracted %s record with %d regressors", family.value, len(names))
        return record


class LogisticExtractor(Extractable):
    """
    LogisticRegression.

    Two classes give a binomial/logit record whose coefficients predict
    the second class. More classes give a multinomial/softmax record
    with one predictor per class.
    """

    family_name = "logistic"

    def extract(self, fitted, feature_names=None):
        self._require(fitted, "coef_", "classes_")
        labels = tuple(str(c) for c in fitted.classes_)
        if len(labels) < 2:
            raise self._fail("fewer than two classes")
        coef = self._coefficient_rows(fitted)
        names = self._feature_names(fitted, coef.shape[1], feature_names)

        if len(labels) == 2:
            if coef.shape[0] != 1:
                raise self._fail(f"binary fit with {coef.shape[0]} coefficient rows")
            intercept = self._intercepts(fitted, 1)
            return ParameterRecord(
                family=Family.BINOMIAL,
                link=Link.LOGIT,
                task=Task.CLASSIFICATION,
                regressors=names,
                coefficients=dict(zip(names, coef[0].tolist())),
                intercept=float(intercept[0]),
                class_labels=labels,
            )

        if coef.shape[0] != len(labels):
            raise self._fail(f"{coef.shape[0]} coefficient rows for {len(labels)} classes")
        intercepts = self._intercepts(fitted, len(labels))
        predictors = tuple(
            LinearPredictor(label, dict(zip(names, row.tolist())), float(b))
            for label, row, b in zip(labels, coef, intercepts)
        )
        logger.debug("Extracted multinomial record with %d classes", len(labels))
        return ParameterRecord(
            family=Family.MULTINOMIAL,
            link=Link.SOFTMAX,
            task=Task.CLASSIFICATION,
            regressors=names,
            class_labels=labels,
            class_predictors=predictors,
        )


class GLMExtractor(LinearExtractor):
    """Generalized linear regressors with a fixed family and link."""

    def __init__(self, family: Family, link: Link, family_name: str):
        self.family = family
        self.link = link
        self.family_name = family_name

    def extract(self, fitted, feature_names=None):
        self._require(fitted, "coef_")
        return self._single_predictor(fitted, feature_names, self.family, self.link)


class TweedieExtractor(LinearExtractor):
    """TweedieRegressor: family from ``power``, link from ``link``."""

    family_name = "tweedie"

    POWER_FAMILIES = {
        0.0: Family.GAUSSIAN,
        1.0: Family.POISSON,
        2.0: Family.GAMMA,
        3.0: Family.INVERSE_GAUSSIAN,
    }

    def extract(self, fitted, feature_names=None):
        self._require(fitted, "coef_", "power")
        power = float(fitted.power)
        family = self.POWER_FAMILIES.get(power, Family.TWEEDIE)
        link_name = getattr(fitted, "link", "auto")
        if link_name == "auto":
            link = Link.IDENTITY if power <= 0 else Link.LOG
        elif link_name in ("identity", "log"):
            link = Link(link_name)
        else:
            raise self._fail(f"unknown link {link_name!r}")
        return self._single_predictor(fitted, feature_names, family, link)


class RegularizedExtractor(LinearExtractor):
    """
    Cross-validated regularization paths: LassoCV, ElasticNetCV,
    RidgeCV, LogisticRegressionCV.

    The coefficients at the selected penalty are extracted; a fit
    whose path is empty is rejected.
    """

    family_name = "regularized"

    def extract(self, fitted, feature_names=None):
        self._require(fitted, "coef_")
        path = self._path(fitted)
        if path is None or np.size(path) == 0:
            raise self._fail("fit has no regularization path")

        if hasattr(fitted, "classes_"):
            logistic = LogisticExtractor()
            logistic.family_name = self.family_name
            return logistic.extract(fitted, feature_names)
        return self._single_predictor(fitted, feature_names, Family.GAUSSIAN, Link.IDENTITY)

    @staticmethod
    def _path(fitted):
        for attr in ("alphas_", "Cs_", "alphas"):
            path = getattr(fitted, attr, None)
            if path is not None:
                return np.asarray(path, dtype=float)
        return None


class TreeExtractor(Extractable):
    """Single decision trees (classifier or regressor)."""

    family_name = "decision_tree"

    def extract(self, fitted, feature_names=None):
        self._require(fitted, "tree_")
        labels = self._labels(fitted)
        names = self._feature_names(fitted, self._n_features(fitted), feature_names)
        root = self._convert(fitted.tree_, names, labels)
        return ParameterRecord(
            family=_response_family(labels),
            task=Task.CLASSIFICATION if labels else Task.REGRESSION,
            regressors=names,
            class_labels=labels,
            trees=(root,),
            aggregation=Aggregation.MAJORITY_VOTE if labels else Aggregation.MEAN,
        )

    def _labels(self, fitted) -> Tuple[str, ...]:
        classes = getattr(fitted, "classes_", None)
        if classes is None:
            return ()
        labels = tuple(str(c) for c in np.atleast_1d(classes))
        if len(labels) < 2:
            raise self._fail("fewer than two classes")
        return labels

    def _n_features(self, fitted) -> int:
        n = getattr(fitted, "n_features_in_", None)
        if n is None:
            n = getattr(fitted.tree_, "n_features", None)
        if n is None:
            raise self._fail("cannot determine number of features")
        return int(n)

    def _convert(self, tree, names: Tuple[str, ...], labels: Tuple[str, ...]) -> TreeNode:
        for attr in ("children_left", "children_right", "feature", "threshold", "value"):
            if not hasattr(tree, attr):
                raise self._fail(f"tree structure lacks {attr!r}")

        left = np.asarray(tree.children_left)
        right = np.asarray(tree.children_right)
        feature = np.asarray(tree.feature)
        threshold = np.asarray(tree.threshold, dtype=float)
        value = np.asarray(tree.value, dtype=float)

        if left.size == 0 or left[0] == TREE_LEAF:
            raise self._fail("tree has no splits")
        if value.ndim != 3 or value.shape[1] != 1:
            raise self._fail("multi-output trees are not supported")
        if labels and value.shape[2] != len(labels):
            raise self._fail(f"leaf values have {value.shape[2]} classes, expected {len(labels)}")

        def leaf(node: int) -> Leaf:
            if labels:
                # argmax returns the first maximum: ties go to the first declared class
                return Leaf(labels[int(np.argmax(value[node][0]))])
            return Leaf(float(value[node][0][0]))

        def build(node: int) -> TreeNode:
            if left[node] == TREE_LEAF:
                return leaf(node)
            index = int(feature[node])
            if not 0 <= index < len(names):
                raise self._fail(f"split on unknown feature index {index}")
            return Split(
                feature=names[index],
                threshold=float(threshold[node]),
                left=build(int(left[node])),
                right=build(int(right[node])),
            )

        return build(0)


class ForestExtractor(TreeExtractor):
    """
    Random forests and extra-trees (classifier or regressor).

    Classification forests aggregate by majority vote over the trees'
    predicted classes; regression forests by the mean of tree outputs.
    """

    family_name = "random_forest"

    def extract(self, fitted, feature_names=None):
        self._require(fitted, "estimators_")
        estimators = list(fitted.estimators_)
        if not estimators:
            raise self._fail("forest has no trees")
        labels = self._labels(fitted)
        names = self._feature_names(fitted, self._n_features_forest(fitted, estimators), feature_names)

        trees: List[TreeNode] = []
        for i, estimator in enumerate(estimators):
            if not hasattr(estimator, "tree_"):
                raise self._fail(f"estimator {i} is not a decision tree")
            trees.append(self._convert(estimator.tree_, names, labels))

        logger.debug("Extracted forest of %d trees", len(trees))
        return ParameterRecord(
            family=_response_family(labels),
            task=Task.CLASSIFICATION if labels else Task.REGRESSION,
            regressors=names,
            class_labels=labels,
            trees=tuple(trees),
            aggregation=Aggregation.MAJORITY_VOTE if labels else Aggregation.MEAN,
        )

    def _n_features_forest(self, fitted, estimators) -> int:
        n = getattr(fitted, "n_features_in_", None)
        if n is None:
            return self._n_features(estimators[0])
        return int(n)
