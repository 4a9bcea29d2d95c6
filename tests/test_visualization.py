"""
Unit tests for plotting helpers.
"""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from stochdep.cross_sectional import perform_full_analysis
from stochdep.markov.diagnostics import perform_time_series_analysis
from stochdep.markov.tpm import TimeSeriesPanel, TransitionMatrix
from stochdep.types import RandomVariable, VariableType
from stochdep.visualization import DependenceVisualizer, MarkovVisualizer


def _report():
    variables = [
        RandomVariable("var_0", "A", [1, 2, 2, 3], VariableType.NUMERICAL),
        RandomVariable("var_1", "B", [10, 20, 20, 31], VariableType.NUMERICAL),
        RandomVariable("var_2", "C", ["x", "y", "x", "y"]),
    ]
    return perform_full_analysis(variables)


class TestDependenceVisualizer:
    """Test suite for cross-sectional plots."""

    def test_metric_heatmap_returns_axes(self) -> None:
        ax = DependenceVisualizer.plot_metric_heatmap(_report(), "pearson_correlation")
        assert ax is not None
        assert "Pearson" in ax.get_title()
        plt.close("all")

    def test_unknown_metric(self) -> None:
        with pytest.raises(ValueError):
            DependenceVisualizer.plot_metric_heatmap(_report(), "spearman")

    def test_pmf_plot(self) -> None:
        report = _report()
        fig, ax = plt.subplots()
        out = DependenceVisualizer.plot_pmf(report.single_vars["var_2"].empirical, ax=ax)
        assert out is ax
        assert len(ax.patches) == 2
        plt.close(fig)


class TestMarkovVisualizer:
    """Test suite for Markov-chain plots."""

    def test_tpm_and_stationarity(self) -> None:
        panel = TimeSeriesPanel(["t1", "t2", "t3"], [["1", "2", "1"], ["2", "1", "2"]])
        report = perform_time_series_analysis(panel)
        ax = MarkovVisualizer.plot_tpm(report.representative_tpm)
        assert ax.get_title() == "P(t2|t1)"
        ax = MarkovVisualizer.plot_stationarity(report.weak_stationarity)
        assert ax.get_title() == "Weak Stationarity"
        plt.close("all")

    def test_empty_tpm(self) -> None:
        with pytest.raises(ValueError):
            MarkovVisualizer.plot_tpm(TransitionMatrix())
