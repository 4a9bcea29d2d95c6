"""
Unit tests for JSON and CSV export.
"""

import json

from stochdep.cross_sectional import perform_full_analysis
from stochdep.export import (
    export_time_series_to_json,
    export_to_csv,
    export_to_json,
    format_csv_value,
    report_to_dict,
)
from stochdep.markov.diagnostics import perform_time_series_analysis
from stochdep.markov.tpm import TimeSeriesPanel
from stochdep.theoretical import TheoreticalModel
from stochdep.types import RandomVariable, VariableType


def _report():
    variables = [
        RandomVariable("var_0", "G", ["a", "a", "b", "b"]),
        RandomVariable("var_1", "Y", [1, 3, 5, 5], VariableType.NUMERICAL),
    ]
    models = [
        TheoreticalModel(id="m1", name="Means", distribution="G,Y,Probability\na,2,0.5\nb,5,0.5"),
        TheoreticalModel(id="m2", name="Broken", distribution="G,Y,Probability\na,2,0.5"),
    ]
    return perform_full_analysis(variables, models)


def test_format_csv_value() -> None:
    assert format_csv_value(None) == "N/A"
    assert format_csv_value(()) == "N/A"
    assert format_csv_value(("a", "b")) == "a; b"
    assert format_csv_value(float("nan")) == "N/A"
    assert format_csv_value(0.5) == "0.5"


def test_report_to_dict_structure() -> None:
    data = report_to_dict(_report())
    assert [v["name"] for v in data["variables"]] == ["G", "Y"]
    assert data["variables"][1]["type"] == "Numerical"
    assert ["a", "1"] in [entry[0] for entry in data["empirical_joint_pmf"]]
    assert "var_0-var_1" in data["conditional"]
    assert data["model_fit"][1]["error"] is not None
    assert data["single_vars"]["var_0"]["empirical"]["mode"] == ["a", "b"]


def test_export_to_json_round_trips_through_json() -> None:
    text = export_to_json(_report())
    data = json.loads(text)
    assert set(data["theoretical_joint_pmfs"]) == {"m1"}
    pair = data["pairwise"][0]
    assert pair["empirical"]["pearson_correlation"] is None
    assert pair["theoretical"]["m1"]["mutual_information"] > 0.0


def test_export_to_csv_sections() -> None:
    text = export_to_csv(_report())
    lines = text.splitlines()
    assert lines[0] == "Single Variable Analysis"
    assert "Pairwise Dependence Analysis" in lines
    assert "Model Fit Analysis" in lines
    assert "Variable 1,Variable 2,Metric,Empirical,m1" in lines
    assert "mode,a; b,a; b" in lines
    assert "median,a,a" in lines
    assert any(line.startswith("Means,Cumulative MSE (Y | G),") for line in lines)
    assert any(line.startswith("Broken,error,") for line in lines)


def test_time_series_json_handles_nan() -> None:
    panel = TimeSeriesPanel(["t1", "t2"], [["A", "B"], ["B", "A"]])
    report = perform_time_series_analysis(panel)
    data = json.loads(export_time_series_to_json(report))
    assert data["is_homogeneous"] is True
    assert data["weak_stationarity"]["mean"] == [None, None]
    assert data["step_tpms"][0]["label"] == "P(t2|t1)"
    assert data["step_tpms"][0]["rows"][0] == {"from": ["A"], "to": {"A": 0.0, "B": 1.0}}
