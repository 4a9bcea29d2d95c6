"""
Empirical and derived probability mass functions.

Joint PMFs are estimated from raw samples by counting value tuples; marginal
and conditional PMFs are derived from any joint PMF (empirical or
theoretical) by re-keying and normalising.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

from stochdep.distribution import mean, to_distribution, variance
from stochdep.policy import DEFAULT_POLICY, AnalysisPolicy
from stochdep.types import Distribution, JointPMF, Outcome, RandomVariable

logger = logging.getLogger(__name__)


def empirical_joint_pmf(variables: Sequence[RandomVariable]) -> JointPMF:
    """
    Estimate the joint PMF of all variables from their aligned samples.

    Args:
        variables: Variables whose data columns share one sample count.

    Returns:
        JointPMF keyed by the tuple of all variables' values at each sample
        index, in variable order. Empty when there are no samples.

    Raises:
        ValueError: If the data columns have different lengths.
    """
    if not variables:
        return JointPMF()
    n = len(variables[0].data)
    for v in variables[1:]:
        if len(v.data) != n:
            raise ValueError(
                f"Variable {v.name!r} has {len(v.data)} samples, expected {n}"
            )
    if n == 0:
        return JointPMF()
    counts: Counter = Counter(zip(*(v.data for v in variables)))
    return JointPMF.from_counts(counts)


def marginal_pmf(
    joint: Mapping[Outcome, float],
    keep_indices: Sequence[int],
    total_arity: Optional[int] = None,
) -> JointPMF:
    """
    Marginalise a joint PMF onto the variables at `keep_indices`.

    Entries whose key arity differs from `total_arity` are skipped.
    """
    keep = [int(i) for i in keep_indices]
    acc: Dict[Outcome, float] = {}
    skipped = 0
    for key, p in joint.items():
        if total_arity is not None and len(key) != int(total_arity):
            skipped += 1
            continue
        sub = tuple(key[i] for i in keep)
        acc[sub] = acc.get(sub, 0.0) + float(p)
    if skipped:
        logger.debug("marginal_pmf skipped %d entries with mismatched arity", skipped)
    return JointPMF(acc)


def conditional_pmf(
    joint: Mapping[Outcome, float],
    marginal_given: Mapping[Outcome, float],
    target: int,
    given: int,
    *,
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> Dict[str, Dict[str, float]]:
    """
    P(target | given = g) for every g with non-negligible marginal mass.

    Args:
        joint: Joint PMF containing both variables.
        marginal_given: Arity-1 marginal of the conditioning variable.
        target: Position of the target variable in `joint` keys.
        given: Position of the conditioning variable in `joint` keys.
        policy: Supplies the zero-probability cut-off.

    Returns:
        Mapping given value -> (target value -> probability). Every target
        value seen in `joint` appears in each row (zero-filled); conditioning
        values with ~zero marginal are omitted.
    """
    target_values: List[str] = []
    seen = set()
    slices: Dict[str, Dict[str, float]] = {}
    for key, p in joint.items():
        t, g = key[target], key[given]
        if t not in seen:
            seen.add(t)
            target_values.append(t)
        row = slices.setdefault(g, {})
        row[t] = row.get(t, 0.0) + float(p)

    out: Dict[str, Dict[str, float]] = {}
    for gkey, pg in marginal_given.items():
        g = gkey[0] if isinstance(gkey, tuple) else str(gkey)
        pg = float(pg)
        if pg <= policy.zero_probability:
            continue
        row = slices.get(g, {})
        out[g] = {t: row.get(t, 0.0) / pg for t in target_values}
    return out


@dataclass(frozen=True)
class ConditionalResult:
    """
    Distribution of `conditional_variable` given `given_variable` = value.
    """

    conditional_variable: str
    given_variable: str
    condition_value: str
    distribution: Distribution
    mean: Optional[float] = None
    variance: Optional[float] = None


def _conditional_results(
    joint_pair: Mapping[Outcome, float],
    marginal_given: Mapping[Outcome, float],
    target_var: RandomVariable,
    given_var: RandomVariable,
    target: int,
    given: int,
    policy: AnalysisPolicy,
) -> List[ConditionalResult]:
    rows = conditional_pmf(joint_pair, marginal_given, target, given, policy=policy)
    given_key = given_var.sort_key()
    results: List[ConditionalResult] = []
    for g in sorted(rows, key=given_key):
        dist = to_distribution(rows[g], target_var.type, target_var.ordinal_order)
        mu: Optional[float] = None
        var: Optional[float] = None
        if target_var.capabilities.has_moments:
            mu = mean(dist)
            if mu is not None:
                var = variance(dist, mu)
        results.append(
            ConditionalResult(
                conditional_variable=target_var.name,
                given_variable=given_var.name,
                condition_value=g,
                distribution=dist,
                mean=mu,
                variance=var,
            )
        )
    return results


def conditional_distributions(
    joint_pair: Mapping[Outcome, float],
    marginal1: Mapping[Outcome, float],
    marginal2: Mapping[Outcome, float],
    var1: RandomVariable,
    var2: RandomVariable,
    *,
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> Dict[str, List[ConditionalResult]]:
    """
    Both-direction conditional distributions for one variable pair.

    Args:
        joint_pair: Arity-2 PMF keyed (var1 value, var2 value).
        marginal1: Marginal PMF of var1.
        marginal2: Marginal PMF of var2.
        var1: First variable.
        var2: Second variable.
        policy: Analysis policy.

    Returns:
        {var2.name: [P(var1 | var2=v) ...], var1.name: [P(var2 | var1=v) ...]},
        each list sorted by the conditioning variable's type order.
    """
    return {
        var2.name: _conditional_results(
            joint_pair, marginal2, var1, var2, 0, 1, policy
        ),
        var1.name: _conditional_results(
            joint_pair, marginal1, var2, var1, 1, 0, policy
        ),
    }
