"""
Text-level entry point dispatching to the cross-sectional or time-series
analysis.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence, Union

from stochdep.cross_sectional import CrossSectionalReport, perform_full_analysis
from stochdep.io import (
    TIME_SERIES,
    build_variables,
    detect_analysis_type,
    parse_input,
    parse_time_series,
)
from stochdep.markov.diagnostics import TimeSeriesReport, perform_time_series_analysis
from stochdep.policy import DEFAULT_POLICY, AnalysisPolicy
from stochdep.theoretical import TheoreticalModel
from stochdep.types import VariableType

logger = logging.getLogger(__name__)


def analyze_text(
    text: str,
    theoretical_models: Sequence[TheoreticalModel] = (),
    *,
    types: Optional[Mapping[str, Union[VariableType, str]]] = None,
    ordinal_orders: Optional[Mapping[str, Sequence[str]]] = None,
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> Union[CrossSectionalReport, TimeSeriesReport]:
    """
    Parse `text` and run the analysis its header calls for.

    Theoretical models, declared types and ordinal orders only apply to
    cross-sectional input.

    Raises:
        DataFormatError: If the text is malformed.
        ValueError: If the parsed data cannot be analysed.
    """
    mode = detect_analysis_type(text)
    logger.debug("Detected %s input", mode)
    if mode == TIME_SERIES:
        return perform_time_series_analysis(parse_time_series(text), policy=policy)
    variables = build_variables(parse_input(text), types, ordinal_orders)
    return perform_full_analysis(variables, theoretical_models, policy=policy)
