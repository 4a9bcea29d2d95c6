"""
Visualization tools for dependence and Markov-chain reports.

This module provides plotting for pairwise metric heatmaps, single-variable
PMFs, transition probability matrices and weak-stationarity trajectories.
"""

from __future__ import annotations

from typing import Optional

import matplotlib.pyplot as plt
import numpy as np

from stochdep.cross_sectional import CrossSectionalReport
from stochdep.distribution import SingleVarMetrics
from stochdep.markov.diagnostics import StationarityResult
from stochdep.markov.tpm import TransitionMatrix

PAIRWISE_METRIC_NAMES = (
    "distance_correlation",
    "pearson_correlation",
    "mutual_information",
    "cramers_v",
)


class DependenceVisualizer:
    """
    Visualizes cross-sectional analysis results.
    """

    @staticmethod
    def plot_metric_heatmap(
        report: CrossSectionalReport,
        metric: str = "distance_correlation",
        model_id: Optional[str] = None,
        ax: Optional[plt.Axes] = None,
    ) -> plt.Axes:
        """
        Plot a symmetric variable x variable heatmap of one pairwise metric.

        Args:
            report: Cross-sectional report.
            metric: One of PAIRWISE_METRIC_NAMES.
            model_id: Plot a model's metrics instead of the empirical ones.
            ax: Matplotlib axes to plot on. If None, creates new figure.

        Returns:
            Matplotlib axes object. Undefined metrics are drawn as blank cells.

        Raises:
            ValueError: If the metric name is unknown.
        """
        if metric not in PAIRWISE_METRIC_NAMES:
            raise ValueError(f"Unknown pairwise metric '{metric}'")
        if ax is None:
            _, ax = plt.subplots(figsize=(8, 6))

        names = [v.name for v in report.variables]
        index = {v.id: i for i, v in enumerate(report.variables)}
        data = np.full((len(names), len(names)), np.nan)
        for pair in report.pairwise:
            metrics = pair.empirical if model_id is None else pair.theoretical.get(model_id)
            if metrics is None:
                continue
            value = getattr(metrics, metric)
            if value is None:
                continue
            i, j = index[pair.var1_id], index[pair.var2_id]
            data[i, j] = data[j, i] = float(value)

        im = ax.imshow(np.ma.masked_invalid(data), cmap="viridis", aspect="auto")
        ax.set_xticks(np.arange(len(names)))
        ax.set_yticks(np.arange(len(names)))
        ax.set_xticklabels(names)
        ax.set_yticklabels(names)
        source = "Empirical" if model_id is None else model_id
        ax.set_title(f"{metric.replace('_', ' ').title()} ({source})")
        plt.colorbar(im, ax=ax)
        return ax

    @staticmethod
    def plot_pmf(
        metrics: SingleVarMetrics,
        title: str = "PMF",
        ax: Optional[plt.Axes] = None,
    ) -> plt.Axes:
        """Bar chart of a single-variable distribution in its type order."""
        if ax is None:
            _, ax = plt.subplots(figsize=(8, 5))
        values = [pt.value for pt in metrics.pmf]
        probs = [pt.probability for pt in metrics.pmf]
        ax.bar(np.arange(len(values)), probs, color="steelblue")
        ax.set_xticks(np.arange(len(values)))
        ax.set_xticklabels(values)
        ax.set_ylabel("Probability")
        ax.set_ylim(0.0, 1.0)
        ax.set_title(title)
        return ax


class MarkovVisualizer:
    """
    Visualizes transition matrices and stationarity diagnostics.
    """

    @staticmethod
    def plot_tpm(
        tpm: TransitionMatrix, ax: Optional[plt.Axes] = None
    ) -> plt.Axes:
        """
        Plot a heatmap of a transition probability matrix.

        Args:
            tpm: Matrix to plot; history tuples are joined with commas.
            ax: Matplotlib axes to plot on. If None, creates new figure.

        Returns:
            Matplotlib axes object.

        Raises:
            ValueError: If the matrix is empty.
        """
        if tpm.is_empty:
            raise ValueError("Cannot plot an empty transition matrix")
        if ax is None:
            _, ax = plt.subplots(figsize=(8, 6))

        from_states = tpm.from_states
        to_states = tpm.to_states
        data = tpm.to_array(from_states, to_states)

        im = ax.imshow(data, cmap="Blues", vmin=0.0, vmax=1.0, aspect="auto")
        ax.set_xticks(np.arange(len(to_states)))
        ax.set_yticks(np.arange(len(from_states)))
        ax.set_xticklabels(to_states)
        ax.set_yticklabels([",".join(h) for h in from_states])
        ax.set_xlabel("To state")
        ax.set_ylabel("From state")
        ax.set_title(tpm.label or "Transition Matrix")
        for i in range(data.shape[0]):
            for j in range(data.shape[1]):
                ax.text(j, i, f"{data[i, j]:.2f}", ha="center", va="center", fontsize=8)

        plt.colorbar(im, ax=ax, label="Probability")
        return ax

    @staticmethod
    def plot_stationarity(
        result: StationarityResult, ax: Optional[plt.Axes] = None
    ) -> plt.Axes:
        """Per-step mean with a +/- one standard deviation band."""
        if ax is None:
            _, ax = plt.subplots(figsize=(10, 5))
        x = np.arange(len(result.time_labels))
        mean = np.asarray(result.mean, dtype=float)
        std = np.sqrt(np.asarray(result.variance, dtype=float))
        ax.plot(x, mean, marker="o", label="Mean")
        ax.fill_between(x, mean - std, mean + std, alpha=0.2, label="Mean ± std")
        ax.set_xticks(x)
        ax.set_xticklabels(result.time_labels)
        ax.set_xlabel("Time")
        ax.set_ylabel("State value")
        ax.set_title("Weak Stationarity")
        ax.legend()
        return ax
