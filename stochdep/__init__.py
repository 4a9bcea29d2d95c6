"""
Stochastic dependence analysis package.

Estimates joint and marginal PMFs from tabular samples, measures pairwise
dependence (Pearson, mutual information, distance correlation, Cramér's V),
scores theoretical joint-distribution models against the data, and runs
Markov-chain diagnostics on time-indexed panels.
"""

from stochdep.analysis import analyze_text
from stochdep.cross_sectional import CrossSectionalReport, perform_full_analysis
from stochdep.io import DataFormatError, build_variables, parse_input, parse_time_series
from stochdep.markov import TimeSeriesPanel, TimeSeriesReport, perform_time_series_analysis
from stochdep.policy import DEFAULT_POLICY, AnalysisPolicy, ModeTiePolicy
from stochdep.theoretical import ModelValidationError, TheoreticalModel
from stochdep.types import JointPMF, RandomVariable, VariableType

__version__ = "0.1.0"

__all__ = [
    "analyze_text",
    "CrossSectionalReport",
    "perform_full_analysis",
    "DataFormatError",
    "build_variables",
    "parse_input",
    "parse_time_series",
    "TimeSeriesPanel",
    "TimeSeriesReport",
    "perform_time_series_analysis",
    "DEFAULT_POLICY",
    "AnalysisPolicy",
    "ModeTiePolicy",
    "ModelValidationError",
    "TheoreticalModel",
    "JointPMF",
    "RandomVariable",
    "VariableType",
]
