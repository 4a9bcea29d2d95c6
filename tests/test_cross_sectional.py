"""
Unit tests for the cross-sectional analysis pipeline.
"""

import logging
import math

import pytest

from stochdep.cross_sectional import pair_key, perform_full_analysis
from stochdep.theoretical import TheoreticalModel
from stochdep.types import RandomVariable, VariableType


def _numeric_pair() -> list:
    return [
        RandomVariable("var_0", "VarA", [1, 2, 2, 3], VariableType.NUMERICAL),
        RandomVariable("var_1", "VarB", [10, 20, 20, 31], VariableType.NUMERICAL),
    ]


def _mixed_pair() -> list:
    return [
        RandomVariable("var_0", "G", ["a", "a", "b", "b"]),
        RandomVariable("var_1", "Y", [1, 3, 5, 5], VariableType.NUMERICAL),
    ]


class TestEmpiricalAnalysis:
    """Test suite for the empirical part of the report."""

    def test_numeric_pair_metrics(self) -> None:
        report = perform_full_analysis(_numeric_pair())
        pair = report.pair("var_1", "var_0")
        assert pair.var1_name == "VarA"
        m = pair.empirical
        assert m.pearson_correlation > 0.99
        assert m.mutual_information > 0.0
        assert m.distance_correlation > 0.95
        assert m.cramers_v is None

    def test_single_variable_metrics(self) -> None:
        report = perform_full_analysis(_numeric_pair())
        a = report.single_vars["var_0"].empirical
        assert math.isclose(a.mean, 2.0)
        assert math.isclose(a.variance, 0.5)
        assert a.mode == ("2",)
        assert a.median == "2"

    def test_categorical_pair(self) -> None:
        variables = [
            RandomVariable("var_0", "X", ["a", "a", "b", "b"]),
            RandomVariable("var_1", "Y", ["x", "x", "y", "y"]),
        ]
        report = perform_full_analysis(variables)
        m = report.pairwise[0].empirical
        assert m.pearson_correlation is None
        assert math.isclose(m.cramers_v, 1.0)
        assert math.isclose(m.mutual_information, 1.0)

    def test_conditionals_both_directions(self) -> None:
        report = perform_full_analysis(_mixed_pair())
        cond = report.conditional[pair_key("var_1", "var_0")].empirical
        assert set(cond) == {"G", "Y"}
        given_g = {c.condition_value: c for c in cond["G"]}
        assert math.isclose(given_g["a"].mean, 2.0)

    def test_pairs_cover_all_unordered_combinations(self) -> None:
        variables = _numeric_pair() + [RandomVariable("var_2", "C", ["u", "v", "u", "v"])]
        report = perform_full_analysis(variables)
        keys = {pair_key(p.var1_id, p.var2_id) for p in report.pairwise}
        assert keys == {
            ("var_0", "var_1"),
            ("var_0", "var_2"),
            ("var_1", "var_2"),
        }
        assert set(report.conditional) == keys
        assert report.empirical_joint_pmf.arity == 3

    def test_single_variable_has_no_pairs(self) -> None:
        report = perform_full_analysis([RandomVariable("var_0", "X", ["a", "a", "a", "b"])])
        assert report.pairwise == ()
        assert report.single_vars["var_0"].empirical.mode == ("a",)


class TestInputValidation:
    """Test suite for dataset checks."""

    def test_empty_dataset(self) -> None:
        with pytest.raises(ValueError, match="empty dataset"):
            perform_full_analysis([])
        with pytest.raises(ValueError, match="empty dataset"):
            perform_full_analysis([RandomVariable("v", "X", [])])

    def test_length_mismatch(self) -> None:
        variables = [
            RandomVariable("var_0", "X", ["a", "b"]),
            RandomVariable("var_1", "Y", ["a"]),
        ]
        with pytest.raises(ValueError):
            perform_full_analysis(variables)

    def test_duplicate_names(self) -> None:
        variables = [
            RandomVariable("var_0", "X", ["a"]),
            RandomVariable("var_1", "X", ["b"]),
        ]
        with pytest.raises(ValueError, match="unique"):
            perform_full_analysis(variables)

    def test_unknown_pair(self) -> None:
        report = perform_full_analysis(_numeric_pair())
        with pytest.raises(KeyError):
            report.pair("var_0", "var_9")


class TestModelEvaluation:
    """Test suite for theoretical model evaluation."""

    def test_model_summing_to_point_nine(self, caplog: pytest.LogCaptureFixture) -> None:
        model = TheoreticalModel(
            id="bad",
            name="Bad",
            distribution="VarA,VarB,Probability\n1,10,0.5\n2,20,0.4",
        )
        with caplog.at_level(logging.WARNING, logger="stochdep"):
            report = perform_full_analysis(_numeric_pair(), [model])
        fit = report.model_fit[0]
        assert not fit.is_valid
        assert "sum to 0.900000" in fit.error
        assert fit.hellinger_distance is None
        assert fit.jensen_shannon_distance is None
        assert fit.mse_labels() == {}
        assert "bad" not in report.single_vars["var_0"].theoretical
        assert "bad" not in report.pairwise[0].theoretical
        assert "bad" not in report.theoretical_joint_pmfs
        assert any("Bad" in r.getMessage() for r in caplog.records)

    def test_model_matching_data(self) -> None:
        model = TheoreticalModel(
            id="m1",
            name="Exact",
            distribution="VarA,VarB,Probability\n1,10,0.25\n2,20,0.5\n3,31,0.25",
        )
        report = perform_full_analysis(_numeric_pair(), [model])
        fit = report.model_fit[0]
        assert fit.is_valid
        assert math.isclose(fit.hellinger_distance, 0.0, abs_tol=1e-9)
        assert math.isclose(fit.jensen_shannon_distance, 0.0, abs_tol=1e-6)
        assert math.isclose(fit.unconditional_mse["VarA"], 0.5)
        assert math.isclose(fit.unconditional_mse["VarB"], 55.1875)
        assert fit.conditional_mse == ()

        theo = report.pair("var_0", "var_1").theoretical["m1"]
        emp = report.pair("var_0", "var_1").empirical
        assert math.isclose(theo.pearson_correlation, emp.pearson_correlation, rel_tol=1e-9)
        assert math.isclose(theo.mutual_information, emp.mutual_information, rel_tol=1e-9)
        assert math.isclose(
            theo.distance_correlation, emp.distance_correlation, abs_tol=1e-9
        )

    def test_mixed_types_use_conditional_mse(self) -> None:
        model = TheoreticalModel(
            id="m1",
            name="Means",
            distribution="G,Y,Probability\na,2,0.5\nb,5,0.5",
        )
        report = perform_full_analysis(_mixed_pair(), [model])
        fit = report.model_fit[0]
        assert fit.unconditional_mse == {}
        assert len(fit.conditional_mse) == 1
        c = fit.conditional_mse[0]
        assert (c.target, c.given) == ("Y", "G")
        assert c.per_condition == {"a": 1.0, "b": 0.0}
        assert math.isclose(c.cumulative, 0.5)

    def test_categorical_only_has_no_mse(self) -> None:
        variables = [RandomVariable("var_0", "X", ["a", "b"])]
        model = TheoreticalModel(id="m", name="M", distribution="X,Probability\na,0.5\nb,0.5")
        fit = perform_full_analysis(variables, [model]).model_fit[0]
        assert fit.is_valid
        assert fit.mse_labels() == {}

    def test_non_numeric_model_value_rejected(self) -> None:
        model = TheoreticalModel(
            id="m",
            name="Text",
            distribution="VarA,VarB,Probability\nlow,10,1.0",
        )
        fit = perform_full_analysis(_numeric_pair(), [model]).model_fit[0]
        assert not fit.is_valid
        assert "non-numeric" in fit.error

    def test_table_model(self) -> None:
        variables = [
            RandomVariable("var_0", "X", ["a", "b"]),
            RandomVariable("var_1", "Y", ["x", "y"]),
        ]
        model = TheoreticalModel(
            id="t",
            name="Table",
            state_spaces={"X": "a,b", "Y": "x,y"},
            joint_probabilities={
                ("a", "x"): 0.5,
                ("a", "y"): 0.0,
                ("b", "x"): 0.0,
                ("b", "y"): 0.5,
            },
        )
        report = perform_full_analysis(variables, [model])
        fit = report.model_fit[0]
        assert fit.is_valid
        assert math.isclose(fit.hellinger_distance, 0.0, abs_tol=1e-9)
        assert math.isclose(report.pairwise[0].theoretical["t"].cramers_v, 1.0)

    def test_zero_probability_level_not_counted(self) -> None:
        variables = [
            RandomVariable("var_0", "X", ["a", "a", "b", "b"]),
            RandomVariable("var_1", "Y", ["x", "x", "y", "y"]),
        ]
        model = TheoreticalModel(
            id="m",
            name="Sparse",
            distribution="X,Y,Probability\na,x,0.5\nb,y,0.5\nc,z,0",
        )
        report = perform_full_analysis(variables, [model])
        assert report.model_fit[0].is_valid
        assert math.isclose(report.pairwise[0].theoretical["m"].cramers_v, 1.0)
        assert math.isclose(report.pairwise[0].empirical.cramers_v, 1.0)

    def test_every_model_has_a_fit_record(self) -> None:
        models = [
            TheoreticalModel(
                id="good",
                name="Good",
                distribution="VarA,VarB,Probability\n1,10,0.25\n2,20,0.5\n3,31,0.25",
            ),
            TheoreticalModel(
                id="short",
                name="Short",
                distribution="VarA,VarB,Probability\n1,10,0.5",
            ),
            TheoreticalModel(
                id="point",
                name="Point",
                distribution="VarA,VarB,Probability\n2,20,1.0",
            ),
        ]
        report = perform_full_analysis(_numeric_pair(), models)
        assert [f.model_id for f in report.model_fit] == ["good", "short", "point"]
        assert [f.is_valid for f in report.model_fit] == [True, False, True]
        assert set(report.theoretical_joint_pmfs) == {"good", "point"}
