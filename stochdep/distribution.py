"""
Distribution utilities for single discrete variables.

This module turns an (unordered) probability mapping into an ordered,
cumulative distribution and derives location/scale summaries from it:
  - mean and variance (Numerical variables only),
  - mode(s), with an explicit tie policy,
  - median, as the first value in type order reaching cumulative 0.5.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from stochdep.policy import DEFAULT_POLICY, AnalysisPolicy, ModeTiePolicy
from stochdep.types import (
    TYPE_CAPABILITIES,
    Distribution,
    DistributionPoint,
    JointPMF,
    VariableType,
    to_float,
    value_sort_key,
)

ScalarPMF = Union[JointPMF, Mapping[str, float]]

# Cumulative sums of exact fractions such as 3 * (1/6) land just below 0.5.
_MEDIAN_EPS = 1e-12


def _scalar_items(pmf: ScalarPMF) -> Iterable[Tuple[str, float]]:
    if isinstance(pmf, JointPMF):
        if len(pmf) and pmf.arity != 1:
            raise ValueError(f"Expected a single-variable PMF, got arity {pmf.arity}")
        return ((k[0], float(p)) for k, p in pmf.items())
    return ((str(k), float(p)) for k, p in pmf.items())


def to_distribution(
    pmf: ScalarPMF,
    vtype: Union[VariableType, str],
    ordinal_order: Sequence[str] = (),
) -> Distribution:
    """
    Sort a single-variable PMF by its type's order and accumulate it.

    Args:
        pmf: Value -> probability mapping (or an arity-1 JointPMF).
        vtype: Variable type deciding the ordering.
        ordinal_order: Declared order for Ordinal variables.

    Returns:
        Tuple of DistributionPoint; the last cumulative is ~1 when the input
        is normalized.
    """
    key = value_sort_key(VariableType(vtype), ordinal_order)
    entries = sorted(_scalar_items(pmf), key=lambda kv: key(kv[0]))
    out = []
    cumulative = 0.0
    for value, p in entries:
        cumulative += p
        out.append(DistributionPoint(value=value, probability=p, cumulative=cumulative))
    return tuple(out)


def _numeric_values(dist: Distribution) -> Optional[np.ndarray]:
    xs = [to_float(pt.value) for pt in dist]
    if not xs or any(x is None for x in xs):
        return None
    return np.asarray(xs, dtype=float)


def mean(dist: Distribution) -> Optional[float]:
    """Probability-weighted mean, or None if any value is non-numeric."""
    x = _numeric_values(dist)
    if x is None:
        return None
    p = np.asarray([pt.probability for pt in dist], dtype=float)
    return float(np.dot(x, p))


def variance(dist: Distribution, mu: Optional[float] = None) -> Optional[float]:
    """Probability-weighted second central moment, or None if non-numeric."""
    x = _numeric_values(dist)
    if x is None:
        return None
    if mu is None:
        mu = mean(dist)
    p = np.asarray([pt.probability for pt in dist], dtype=float)
    return float(np.dot((x - float(mu)) ** 2, p))


def mode(
    dist: Distribution, *, policy: AnalysisPolicy = DEFAULT_POLICY
) -> Tuple[str, ...]:
    """
    Values whose probability is within `policy.mode_tolerance` of the maximum.

    Ties are returned in the distribution's type order. Under
    ModeTiePolicy.NONE_IF_UNIFORM an all-tied distribution over more than one
    value has no mode.
    """
    if not dist:
        return ()
    max_p = max(pt.probability for pt in dist)
    if max_p <= 0.0:
        return ()
    modes = tuple(
        pt.value for pt in dist if abs(pt.probability - max_p) < policy.mode_tolerance
    )
    if (
        ModeTiePolicy(policy.mode_tie_policy) is ModeTiePolicy.NONE_IF_UNIFORM
        and len(modes) == len(dist)
        and len(dist) > 1
    ):
        return ()
    return modes


def median(dist: Distribution) -> Optional[str]:
    """
    First value (in type order) whose cumulative probability reaches 0.5.

    Falls back to the last value when rounding keeps the running total below
    0.5; returns None for an empty distribution.
    """
    if not dist:
        return None
    for pt in dist:
        if pt.cumulative >= 0.5 - _MEDIAN_EPS:
            return pt.value
    return dist[-1].value


@dataclass(frozen=True)
class SingleVarMetrics:
    pmf: Distribution
    mode: Tuple[str, ...]
    median: Optional[str]
    mean: Optional[float] = None
    variance: Optional[float] = None


def single_var_metrics(
    pmf: ScalarPMF,
    vtype: Union[VariableType, str],
    ordinal_order: Sequence[str] = (),
    *,
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> SingleVarMetrics:
    """
    Compute the distribution and summary statistics of one variable.

    Mean and variance are only populated for types with moments and only
    when every value is numeric-coercible.
    """
    vtype = VariableType(vtype)
    dist = to_distribution(pmf, vtype, ordinal_order)
    mu: Optional[float] = None
    var: Optional[float] = None
    if TYPE_CAPABILITIES[vtype].has_moments:
        mu = mean(dist)
        if mu is not None:
            var = variance(dist, mu)
    return SingleVarMetrics(
        pmf=dist,
        mode=mode(dist, policy=policy),
        median=median(dist),
        mean=mu,
        variance=var,
    )
