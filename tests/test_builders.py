"""
Tests for the model compilers.

Compiled actions are checked two ways: structurally (the emitted tree)
and behaviourally (assembled and executed by the local engine).
"""

import math

import pytest
from scoredoc.assembler import assemble
from scoredoc.builders import LinearBuilder, TreeBuilder, inverse_link, linear_predictor
from scoredoc.config import PredType
from scoredoc.engine import evaluate
from scoredoc.errors import MissingCutoff, UnsupportedModelVariant
from scoredoc.examples import (
    build_example_forest_record,
    build_example_logistic_record,
    build_example_multinomial_record,
)
from scoredoc.expressions import Call, Let, Ref, num
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
from scoredoc.schema import DOUBLE, STRING, Map, Record


def to_document(compiled):
    return assemble(compiled.input_type, compiled.output_type, compiled.action)


def score(compiled, **row):
    return evaluate(to_document(compiled), row)


def logistic(x):
    return 1.0 / (1.0 + math.exp(-x))


class TestLinearPredictor:
    def test_terms_in_regressor_order(self):
        eta = linear_predictor({"X1": -1.94, "X2": 0.39}, 2.33, ("X1", "X2"))
        assert eta == Call("+", (
            Call("+", (Call("*", (num(-1.94), Ref("X1"))), Call("*", (num(0.39), Ref("X2"))))),
            num(2.33),
        ))

    def test_intercept_only(self):
        assert linear_predictor({}, 1.5, ()) == num(1.5)

    def test_inverse_links(self):
        eta = Ref("eta")
        assert inverse_link(eta, Link.IDENTITY) is eta
        assert inverse_link(eta, Link.LOG) == Call("m.exp", (eta,))
        assert inverse_link(eta, Link.INVERSE) == Call("/", (num(1.0), eta))
        assert inverse_link(eta, Link.SQRT) == Call("**", (eta, num(2.0)))


class TestBinomial:
    """Binary logistic and friends."""

    def test_logistic_class_structure(self):
        """logit^-1(-1.94*X1 + 0.39*X2 + 2.33), then argmax over (1 - p, p)."""
        compiled = LinearBuilder().build(build_example_logistic_record(), PredType.CLASS)
        assert compiled.input_type == Record("Input", (("X1", DOUBLE), ("X2", DOUBLE)))
        assert compiled.output_type == STRING
        (action,) = compiled.action
        assert isinstance(action, Let)
        name, value = action.bindings[0]
        assert name == "__p"
        assert value == Call("m.link.logit", (linear_predictor(
            {"X1": -1.94, "X2": 0.39}, 2.33, ("X1", "X2")),))
        # No cutoff weighting
        assert "__ratio_0" not in [n for n, _ in action.body.bindings]

    @pytest.mark.parametrize("x1, x2, expected", [
        (0.0, 0.0, "yes"),
        (3.0, 1.0, "no"),
    ])
    def test_logistic_class(self, x1, x2, expected):
        compiled = LinearBuilder().build(build_example_logistic_record(), PredType.CLASS)
        assert score(compiled, X1=x1, X2=x2) == expected

    def test_logistic_probability(self):
        compiled = LinearBuilder().build(build_example_logistic_record(), PredType.PROBABILITY)
        assert compiled.output_type == Map(DOUBLE)
        probs = score(compiled, X1=1.0, X2=2.0)
        p = logistic(-1.94 + 0.78 + 2.33)
        assert probs["yes"] == pytest.approx(p)
        assert probs["no"] == pytest.approx(1.0 - p)

    def test_cutoffs_shift_decision(self):
        # p(yes) ~ 0.91 at the origin; a large cutoff on "yes" flips it
        compiled = LinearBuilder().build(build_example_logistic_record(), PredType.CLASS,
                                         {"no": 0.05, "yes": 0.95})
        assert score(compiled, X1=0.0, X2=0.0) == "no"

    def test_missing_cutoff(self):
        with pytest.raises(MissingCutoff):
            LinearBuilder().build(build_example_logistic_record(), PredType.CLASS, {"yes": 0.5})

    def test_probit(self):
        record = ParameterRecord(family=Family.BINOMIAL, link=Link.PROBIT, task=Task.CLASSIFICATION,
                                 coefficients={"x": 1.0}, class_labels=("a", "b"))
        compiled = LinearBuilder().build(record, PredType.PROBABILITY)
        assert score(compiled, x=0.0)["b"] == pytest.approx(0.5)

    def test_wrong_label_count(self):
        record = ParameterRecord(family=Family.BINOMIAL, link=Link.LOGIT, task=Task.CLASSIFICATION,
                                 coefficients={"x": 1.0}, class_labels=("a", "b", "c"))
        with pytest.raises(UnsupportedModelVariant):
            LinearBuilder().build(record, PredType.CLASS)

    def test_identity_link_rejected(self):
        record = ParameterRecord(family=Family.BINOMIAL, task=Task.CLASSIFICATION,
                                 coefficients={"x": 1.0}, class_labels=("a", "b"))
        with pytest.raises(UnsupportedModelVariant) as exc:
            LinearBuilder().build(record, PredType.CLASS)
        assert exc.value.family == "binomial"
        assert exc.value.link == "identity"

    def test_regression_task_rejected(self):
        record = ParameterRecord(family=Family.BINOMIAL, link=Link.LOGIT,
                                 coefficients={"X1": -1.94, "X2": 0.39}, intercept=2.33,
                                 class_labels=("no", "yes"))
        with pytest.raises(UnsupportedModelVariant) as exc:
            LinearBuilder().build(record, PredType.CLASS)
        assert exc.value.family == "binomial"


class TestRegression:
    """Gaussian and log-link families."""

    def test_gaussian(self):
        record = ParameterRecord(family=Family.GAUSSIAN, coefficients={"a": 2.0, "b": -1.0},
                                 intercept=0.5)
        compiled = LinearBuilder().build(record)
        assert compiled.output_type == DOUBLE
        assert score(compiled, a=1.0, b=3.0) == pytest.approx(-0.5)

    def test_poisson_log_link(self):
        record = ParameterRecord(family=Family.POISSON, link=Link.LOG, coefficients={"x": 0.3},
                                 intercept=-1.0)
        compiled = LinearBuilder().build(record)
        assert score(compiled, x=2.0) == pytest.approx(math.exp(-0.4))

    def test_gamma_inverse_link(self):
        record = ParameterRecord(family=Family.GAMMA, link=Link.INVERSE, coefficients={"x": 1.0},
                                 intercept=1.0)
        assert score(LinearBuilder().build(record), x=1.0) == pytest.approx(0.5)

    def test_class_output_rejected(self):
        record = ParameterRecord(family=Family.GAUSSIAN, coefficients={"x": 1.0})
        with pytest.raises(UnsupportedModelVariant):
            LinearBuilder().build(record, PredType.CLASS)

    def test_logit_link_rejected(self):
        record = ParameterRecord(family=Family.POISSON, link=Link.LOGIT, coefficients={"x": 1.0})
        with pytest.raises(UnsupportedModelVariant):
            LinearBuilder().build(record)

    def test_cox_rejected(self):
        record = ParameterRecord(family=Family.COX, coefficients={"x": 1.0})
        with pytest.raises(UnsupportedModelVariant) as exc:
            LinearBuilder().build(record)
        assert exc.value.family == "cox"

    def test_undeclared_regressor(self):
        record = ParameterRecord(family=Family.GAUSSIAN, regressors=("a",),
                                 coefficients={"a": 1.0, "b": 2.0})
        with pytest.raises(UnsupportedModelVariant):
            LinearBuilder().build(record)

    def test_unused_regressor_stays_an_input(self):
        record = ParameterRecord(family=Family.GAUSSIAN, regressors=("a", "b"),
                                 coefficients={"a": 1.0})
        compiled = LinearBuilder().build(record)
        assert compiled.input_type.field_names == ("a", "b")


class TestMultinomial:
    def test_probabilities_sum_to_one(self):
        compiled = LinearBuilder().build(build_example_multinomial_record(), PredType.PROBABILITY)
        probs = score(compiled, X1=0.5, X2=-0.5)
        assert list(probs) == ["A", "B", "C"]
        assert sum(probs.values()) == pytest.approx(1.0)

    def test_class_matches_highest_probability(self):
        builder = LinearBuilder()
        record = build_example_multinomial_record()
        probs = score(builder.build(record, PredType.PROBABILITY), X1=-1.0, X2=1.0)
        label = score(builder.build(record, PredType.CLASS), X1=-1.0, X2=1.0)
        assert label == max(probs, key=probs.get)

    def test_predictors_out_of_order(self):
        record = ParameterRecord(
            family=Family.MULTINOMIAL, link=Link.SOFTMAX, task=Task.CLASSIFICATION,
            class_labels=("A", "B"),
            class_predictors=(LinearPredictor("B", {"x": 1.0}), LinearPredictor("A", {"x": 1.0})),
        )
        with pytest.raises(UnsupportedModelVariant):
            LinearBuilder().build(record, PredType.CLASS)

    def test_regression_task_rejected(self):
        record = ParameterRecord(
            family=Family.MULTINOMIAL, link=Link.SOFTMAX, class_labels=("A", "B"),
            class_predictors=(LinearPredictor("A", {"x": 1.0}), LinearPredictor("B", {"x": -1.0})),
        )
        with pytest.raises(UnsupportedModelVariant):
            LinearBuilder().build(record, PredType.PROBABILITY)


class TestTrees:
    """Single trees and forests."""

    def test_forest_majority_vote(self):
        compiled = TreeBuilder().build(build_example_forest_record(), PredType.CLASS)
        assert score(compiled, petal_length=1.0, petal_width=0.2) == "setosa"
        assert score(compiled, petal_length=5.5, petal_width=2.0) == "virginica"

    def test_forest_vote_tie_goes_to_first_declared(self):
        """One tree says versicolor, the other virginica."""
        compiled = TreeBuilder().build(build_example_forest_record(), PredType.CLASS)
        assert score(compiled, petal_length=5.0, petal_width=1.5) == "versicolor"

    def test_forest_vote_fractions(self):
        compiled = TreeBuilder().build(build_example_forest_record(), PredType.PROBABILITY)
        probs = score(compiled, petal_length=5.0, petal_width=1.5)
        assert probs == {"setosa": 0.0, "versicolor": 0.5, "virginica": 0.5}

    def test_split_boundary_goes_left(self):
        compiled = TreeBuilder().build(build_example_forest_record(), PredType.CLASS)
        assert score(compiled, petal_length=2.45, petal_width=0.8) == "setosa"

    def test_regression_tree(self):
        record = ParameterRecord(family=Family.GAUSSIAN, trees=(Split("x", 1.0, Leaf(10.0), Leaf(20.0)),))
        compiled = TreeBuilder().build(record)
        assert compiled.input_type.field_names == ("x",)
        assert score(compiled, x=0.0) == 10.0
        assert score(compiled, x=1.5) == 20.0

    def test_regression_forest_mean(self):
        trees = (Split("x", 1.0, Leaf(10.0), Leaf(20.0)), Split("x", 2.0, Leaf(0.0), Leaf(40.0)))
        record = ParameterRecord(family=Family.GAUSSIAN, trees=trees, aggregation=Aggregation.MEAN)
        assert score(TreeBuilder().build(record), x=1.5) == pytest.approx(10.0)

    def test_undeclared_leaf_class(self):
        record = ParameterRecord(family=Family.BINOMIAL, task=Task.CLASSIFICATION,
                                 class_labels=("a", "b"),
                                 trees=(Split("x", 0.0, Leaf("a"), Leaf("c")),))
        with pytest.raises(UnsupportedModelVariant):
            TreeBuilder().build(record, PredType.CLASS)

    def test_wrong_aggregation(self):
        record = ParameterRecord(family=Family.GAUSSIAN, trees=(Leaf(1.0),),
                                 aggregation=Aggregation.MAJORITY_VOTE)
        with pytest.raises(UnsupportedModelVariant):
            TreeBuilder().build(record)

    def test_linear_builder_rejects_trees(self):
        with pytest.raises(UnsupportedModelVariant):
            LinearBuilder().build(build_example_forest_record(), PredType.CLASS)


class TestDeterminism:
    """Same record, same options: structurally equal output."""

    @pytest.mark.parametrize("make_record, builder", [
        (build_example_logistic_record, LinearBuilder()),
        (build_example_multinomial_record, LinearBuilder()),
        (build_example_forest_record, TreeBuilder()),
    ])
    def test_repeatable(self, make_record, builder):
        first = builder.build(make_record(), PredType.CLASS, None)
        second = builder.build(make_record(), PredType.CLASS, None)
        assert first == second
