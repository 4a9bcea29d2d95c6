"""
Unit tests for theoretical model parsing, validation and fit metrics.
"""

import math

import pytest

from stochdep.distribution import SingleVarMetrics
from stochdep.pmf import ConditionalResult
from stochdep.theoretical import (
    ConditionalMSE,
    ModelFitResult,
    ModelValidationError,
    TheoreticalModel,
    check_model_values,
    conditional_mse,
    enumerate_outcomes,
    fit_distances,
    model_distribution_string,
    model_joint_pmf,
    mse_mode,
    parse_state_space,
    parse_theoretical_model,
    unconditional_mse,
    validate_model_table,
)
from stochdep.types import JointPMF, RandomVariable, VariableType


class TestParseTheoreticalModel:
    """Test suite for distribution-text models."""

    def test_valid_model(self) -> None:
        text = "X,Y,Probability\na,x,0.5\nb,y,0.5\n"
        pmf = parse_theoretical_model(text, ["X", "Y"])
        assert dict(pmf) == {("a", "x"): 0.5, ("b", "y"): 0.5}

    def test_duplicate_rows_accumulate(self) -> None:
        text = "X,Probability\na,0.25\na,0.25\nb,0.5"
        pmf = parse_theoretical_model(text, ["X"])
        assert math.isclose(pmf[("a",)], 0.5)

    def test_sum_not_one(self) -> None:
        text = "X,Probability\na,0.5\nb,0.4"
        with pytest.raises(ModelValidationError, match="sum to 0.900000"):
            parse_theoretical_model(text, ["X"], model_name="M")

    def test_sum_within_tolerance(self) -> None:
        text = "X,Probability\na,0.333333\nb,0.666666"
        pmf = parse_theoretical_model(text, ["X"])
        assert len(pmf) == 2

    def test_variable_order_mismatch(self) -> None:
        text = "Y,X,Probability\nx,a,1.0"
        with pytest.raises(ModelValidationError, match="does not match"):
            parse_theoretical_model(text, ["X", "Y"])

    def test_missing_probability_column(self) -> None:
        with pytest.raises(ModelValidationError):
            parse_theoretical_model("X,P\na,1.0", ["X"])

    def test_ragged_row(self) -> None:
        with pytest.raises(ModelValidationError, match="row 1"):
            parse_theoretical_model("X,Y,Probability\na,1.0", ["X", "Y"])

    def test_invalid_probability(self) -> None:
        with pytest.raises(ModelValidationError):
            parse_theoretical_model("X,Probability\na,-0.5\nb,1.5", ["X"])
        with pytest.raises(ModelValidationError):
            parse_theoretical_model("X,Probability\na,lots", ["X"])

    def test_empty(self) -> None:
        with pytest.raises(ModelValidationError):
            parse_theoretical_model("X,Probability", ["X"])


class TestTableModels:
    """Test suite for state-space plus table models."""

    def _model(self, table: dict) -> TheoreticalModel:
        return TheoreticalModel(
            id="m1",
            name="Table",
            state_spaces={"X": "a, b", "Y": "x,y"},
            joint_probabilities=table,
        )

    def test_parse_state_space(self) -> None:
        assert parse_state_space("a, b, a, ") == ("a", "b")

    def test_enumerate_outcomes(self) -> None:
        outcomes = enumerate_outcomes(self._model({}), ["X", "Y"])
        assert outcomes == [("a", "x"), ("a", "y"), ("b", "x"), ("b", "y")]

    def test_enumerate_outcomes_variable_mismatch(self) -> None:
        with pytest.raises(ModelValidationError, match="missing state spaces"):
            enumerate_outcomes(self._model({}), ["X", "Y", "Z"])

    def test_complete_table(self) -> None:
        model = self._model(
            {("a", "x"): 0.25, "a,y": "0.25", ("b", "x"): 0.5, ("b", "y"): 0}
        )
        table = validate_model_table(model, ["X", "Y"])
        assert math.isclose(table[("a", "y")], 0.25)

        pmf = model_joint_pmf(model, ["X", "Y"])
        assert ("b", "y") not in pmf
        assert math.isclose(pmf[("b", "x")], 0.5)

    def test_incomplete_table(self) -> None:
        model = self._model({("a", "x"): 0.5, ("b", "y"): 0.5})
        with pytest.raises(ModelValidationError, match="incomplete"):
            validate_model_table(model, ["X", "Y"])

    def test_undeclared_outcome(self) -> None:
        model = self._model({("c", "x"): 1.0})
        with pytest.raises(ModelValidationError, match="undeclared"):
            validate_model_table(model, ["X", "Y"])

    def test_tuple_and_string_keys_accumulate(self) -> None:
        model = self._model(
            {
                ("a", "x"): 0.125,
                "a,x": 0.125,
                ("a", "y"): 0.25,
                ("b", "x"): 0.25,
                ("b", "y"): 0.25,
            }
        )
        table = validate_model_table(model, ["X", "Y"])
        assert math.isclose(table[("a", "x")], 0.25)
        assert math.isclose(model_joint_pmf(model, ["X", "Y"])[("a", "x")], 0.25)

    def test_table_sum(self) -> None:
        model = self._model(
            {("a", "x"): 0.2, ("a", "y"): 0.2, ("b", "x"): 0.2, ("b", "y"): 0.2}
        )
        with pytest.raises(ModelValidationError, match="sum to 0.800000"):
            validate_model_table(model, ["X", "Y"])

    def test_distribution_string_omits_zero_rows(self) -> None:
        model = self._model({("a", "x"): 1.0, ("b", "y"): 0.0})
        text = model_distribution_string(model, ["X", "Y"])
        assert text.splitlines() == ["X,Y,Probability", "a,x,1.0"]

    def test_distribution_text_takes_precedence(self) -> None:
        model = TheoreticalModel(
            id="m", name="M", distribution="X,Probability\na,1.0", state_spaces={"X": "b"}
        )
        pmf = model_joint_pmf(model, ["X"])
        assert dict(pmf) == {("a",): 1.0}


class TestModelChecks:
    """Test suite for value checks and fit metrics."""

    def test_non_numeric_value_for_numerical_variable(self) -> None:
        v = RandomVariable("v", "N", ["1", "2"], VariableType.NUMERICAL)
        with pytest.raises(ModelValidationError, match="non-numeric"):
            check_model_values({("high",): 1.0}, [v], model_name="M")
        check_model_values({("1",): 1.0}, [v])

    def test_fit_distances(self) -> None:
        p = JointPMF({("a",): 0.5, ("b",): 0.5})
        h, js = fit_distances(p, p)
        assert math.isclose(h, 0.0, abs_tol=1e-12)
        assert math.isclose(js, 0.0, abs_tol=1e-6)
        h, js = fit_distances({("a",): 1.0}, {("b",): 1.0})
        assert math.isclose(h, 1.0)
        assert math.isclose(js, 1.0)

    def test_mse_mode(self) -> None:
        num = RandomVariable("n", "N", ["1"], VariableType.NUMERICAL)
        cat = RandomVariable("c", "C", ["a"])
        assert mse_mode([num, cat]) == "conditional"
        assert mse_mode([num]) == "unconditional"
        assert mse_mode([cat]) is None


class TestMSE:
    """Test suite for MSE computations."""

    def test_unconditional_mse_is_variance_plus_bias(self) -> None:
        empirical = SingleVarMetrics(pmf=(), mode=(), median=None, mean=2.0, variance=0.5)
        model = SingleVarMetrics(pmf=(), mode=(), median=None, mean=2.5, variance=0.25)
        assert math.isclose(unconditional_mse(empirical, model), 0.5)
        no_mean = SingleVarMetrics(pmf=(), mode=(), median=None)
        assert unconditional_mse(no_mean, model) is None

    def test_conditional_mse(self) -> None:
        y = RandomVariable("y", "Y", [1, 3, 5, 5], VariableType.NUMERICAL)
        g = RandomVariable("g", "G", ["a", "a", "b", "b"])
        model_conds = [
            ConditionalResult("Y", "G", "a", (), mean=2.0),
            ConditionalResult("Y", "G", "b", (), mean=5.0),
        ]
        result = conditional_mse(y, g, model_conds, {("a",): 0.5, ("b",): 0.5})
        assert isinstance(result, ConditionalMSE)
        assert result.per_condition == {"a": 1.0, "b": 0.0}
        assert math.isclose(result.cumulative, 0.5)

    def test_conditional_mse_without_predictions(self) -> None:
        y = RandomVariable("y", "Y", [1], VariableType.NUMERICAL)
        g = RandomVariable("g", "G", ["a"])
        assert conditional_mse(y, g, [], {("a",): 1.0}) is None

    def test_mse_labels(self) -> None:
        fit = ModelFitResult(
            model_id="m",
            model_name="M",
            unconditional_mse={"X": 0.5},
            conditional_mse=(
                ConditionalMSE("Y", "G", {"a": 1.0, "b": 0.0}, 0.5),
            ),
        )
        labels = fit.mse_labels()
        assert labels == {
            "MSE: X": 0.5,
            "MSE: Y | G=a": 1.0,
            "MSE: Y | G=b": 0.0,
            "Cumulative MSE (Y | G)": 0.5,
        }
        assert fit.is_valid
        assert not ModelFitResult(model_id="m", model_name="M", error="bad").is_valid
