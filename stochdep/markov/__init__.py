"""
Markov-chain diagnostics for time-indexed panel data.

This subpackage is separate from the cross-sectional analysis: its input is
a panel of categorical states (instances x time steps) rather than a set of
aligned variables, and its outputs are transition probability matrices and
the diagnostics built on them (homogeneity, Markovian sufficiency, weak
stationarity).
"""

from stochdep.markov.tpm import (
    TimeSeriesPanel,
    TransitionMatrix,
    average_tpms,
    estimate_tpm,
    tpm_gjs_distance,
    tpm_hellinger_distance,
)
from stochdep.markov.diagnostics import (
    HomogeneityResult,
    LabeledDistance,
    MarkovianFitResult,
    StationarityResult,
    TimeSeriesReport,
    first_order_tpms,
    full_history_tpm,
    markovian_fit,
    perform_time_series_analysis,
    run_homogeneity_check,
    weak_stationarity,
)

__all__ = [
    "TimeSeriesPanel",
    "TransitionMatrix",
    "average_tpms",
    "estimate_tpm",
    "tpm_gjs_distance",
    "tpm_hellinger_distance",
    "HomogeneityResult",
    "LabeledDistance",
    "MarkovianFitResult",
    "StationarityResult",
    "TimeSeriesReport",
    "first_order_tpms",
    "full_history_tpm",
    "markovian_fit",
    "perform_time_series_analysis",
    "run_homogeneity_check",
    "weak_stationarity",
]
