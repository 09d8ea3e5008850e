"""
Example parameter records for demos and tests.

Builds small, hand-written records shaped like real extractions:
    - a binary logistic model with two regressors
    - a three-class multinomial model
    - a two-tree classification forest on iris-style measurements
"""
from scoredoc.params import (
    Aggregation,
    Family,
    Leaf,
    LinearPredictor,
    Link,
    ParameterRecord,
    Split,
    Task,
)


def build_example_logistic_record() -> ParameterRecord:
    """logit^-1(-1.94*X1 + 0.39*X2 + 2.33), classes "no" / "yes"."""
    return ParameterRecord(
        family=Family.BINOMIAL,
        link=Link.LOGIT,
        task=Task.CLASSIFICATION,
        regressors=("X1", "X2"),
        coefficients={"X1": -1.94, "X2": 0.39},
        intercept=2.33,
        class_labels=("no", "yes"),
    )


def build_example_multinomial_record() -> ParameterRecord:
    labels = ("A", "B", "C")
    weights = {
        "A": ({"X1": 1.2, "X2": -0.4}, 0.1),
        "B": ({"X1": -0.3, "X2": 0.8}, 0.0),
        "C": ({"X1": -0.9, "X2": -0.4}, -0.1),
    }
    return ParameterRecord(
        family=Family.MULTINOMIAL,
        link=Link.SOFTMAX,
        task=Task.CLASSIFICATION,
        regressors=("X1", "X2"),
        class_labels=labels,
        class_predictors=tuple(
            LinearPredictor(label, weights[label][0], weights[label][1]) for label in labels
        ),
    )


def build_example_forest_record() -> ParameterRecord:
    # Two depth-2 trees on petal measurements
    first = Split(
        feature="petal_length",
        threshold=2.45,
        left=Leaf("setosa"),
        right=Split("petal_width", 1.75, Leaf("versicolor"), Leaf("virginica")),
    )
    second = Split(
        feature="petal_width",
        threshold=0.8,
        left=Leaf("setosa"),
        right=Split("petal_length", 4.95, Leaf("versicolor"), Leaf("virginica")),
    )
    return ParameterRecord(
        family=Family.MULTINOMIAL,
        task=Task.CLASSIFICATION,
        regressors=("petal_length", "petal_width"),
        class_labels=("setosa", "versicolor", "virginica"),
        trees=(first, second),
        aggregation=Aggregation.MAJORITY_VOTE,
    )
