"""
Cross-sectional dependence analysis.

`perform_full_analysis` composes the PMF estimator, dependence measures and
theoretical-model evaluator into one report:
  - per-variable metrics (empirical, and per valid model),
  - pairwise dependence metrics for every unordered pair,
  - both-direction conditional distributions for every pair,
  - one fit record per model (invalid models carry only their error).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Tuple

from stochdep.dependence import (
    PairwiseMetrics,
    cramers_v,
    cramers_v_from_pmf,
    distance_correlation,
    distance_correlation_from_pmf,
    mutual_information,
    pearson_correlation,
    pearson_from_pmf,
)
from stochdep.distribution import SingleVarMetrics, single_var_metrics
from stochdep.pmf import (
    ConditionalResult,
    conditional_distributions,
    empirical_joint_pmf,
    marginal_pmf,
)
from stochdep.policy import DEFAULT_POLICY, AnalysisPolicy
from stochdep.theoretical import (
    ConditionalMSE,
    ModelFitResult,
    ModelValidationError,
    TheoreticalModel,
    check_model_values,
    conditional_mse,
    fit_distances,
    model_joint_pmf,
    mse_mode,
    unconditional_mse,
)
from stochdep.types import JointPMF, RandomVariable

logger = logging.getLogger(__name__)

PairKey = Tuple[str, str]
ConditionalsByGiven = Mapping[str, Tuple[ConditionalResult, ...]]


def pair_key(id1: str, id2: str) -> PairKey:
    """Direction-independent key for a variable pair."""
    a, b = sorted((str(id1), str(id2)))
    return (a, b)


@dataclass(frozen=True)
class SingleVarResults:
    empirical: SingleVarMetrics
    theoretical: Mapping[str, SingleVarMetrics] = field(default_factory=dict)


@dataclass(frozen=True)
class PairwiseResult:
    var1_id: str
    var1_name: str
    var2_id: str
    var2_name: str
    empirical: PairwiseMetrics
    theoretical: Mapping[str, PairwiseMetrics] = field(default_factory=dict)


@dataclass(frozen=True)
class PairwiseConditionalAnalysis:
    """
    Conditionals for one pair, keyed by the name of the conditioning variable.
    """

    empirical: ConditionalsByGiven
    theoretical: Mapping[str, ConditionalsByGiven] = field(default_factory=dict)


@dataclass(frozen=True)
class CrossSectionalReport:
    variables: Tuple[RandomVariable, ...]
    single_vars: Mapping[str, SingleVarResults]
    pairwise: Tuple[PairwiseResult, ...]
    conditional: Mapping[PairKey, PairwiseConditionalAnalysis]
    model_fit: Tuple[ModelFitResult, ...]
    empirical_joint_pmf: JointPMF
    theoretical_joint_pmfs: Mapping[str, JointPMF]

    def pair(self, id1: str, id2: str) -> PairwiseResult:
        """Return the pairwise result for two variable ids, in either order."""
        key = pair_key(id1, id2)
        for p in self.pairwise:
            if pair_key(p.var1_id, p.var2_id) == key:
                return p
        raise KeyError(f"No pairwise result for {id1!r}, {id2!r}")


def _check_variables(variables: Sequence[RandomVariable]) -> None:
    if not variables or len(variables[0].data) == 0:
        raise ValueError("Cannot perform analysis on empty dataset.")
    n = len(variables[0].data)
    for v in variables:
        if len(v.data) != n:
            raise ValueError(
                f"Variable {v.name!r} has {len(v.data)} samples, expected {n}"
            )
    for attr in ("id", "name"):
        values = [getattr(v, attr) for v in variables]
        if len(set(values)) != len(values):
            raise ValueError(f"Variable {attr}s must be unique")


def _pmf_pairwise_metrics(
    joint_pair: JointPMF,
    marginal1: JointPMF,
    marginal2: JointPMF,
    var1: RandomVariable,
    var2: RandomVariable,
    policy: AnalysisPolicy,
) -> PairwiseMetrics:
    both_numeric = var1.is_numerical and var2.is_numerical
    both_categorical = var1.is_categorical and var2.is_categorical
    return PairwiseMetrics(
        pearson_correlation=pearson_from_pmf(joint_pair) if both_numeric else None,
        mutual_information=mutual_information(joint_pair, marginal1, marginal2, policy=policy),
        distance_correlation=distance_correlation_from_pmf(
            joint_pair,
            numeric1=var1.is_numerical,
            numeric2=var2.is_numerical,
            policy=policy,
        ),
        cramers_v=(
            cramers_v_from_pmf(joint_pair, policy=policy) if both_categorical else None
        ),
    )


def _sample_pairwise_metrics(
    joint_pair: JointPMF,
    marginal1: JointPMF,
    marginal2: JointPMF,
    var1: RandomVariable,
    var2: RandomVariable,
    policy: AnalysisPolicy,
) -> PairwiseMetrics:
    both_numeric = var1.is_numerical and var2.is_numerical
    both_categorical = var1.is_categorical and var2.is_categorical
    return PairwiseMetrics(
        pearson_correlation=(
            pearson_correlation(var1.data, var2.data) if both_numeric else None
        ),
        mutual_information=mutual_information(joint_pair, marginal1, marginal2, policy=policy),
        distance_correlation=distance_correlation(
            var1.data,
            var2.data,
            numeric1=var1.is_numerical,
            numeric2=var2.is_numerical,
            policy=policy,
        ),
        cramers_v=cramers_v(var1.data, var2.data) if both_categorical else None,
    )


def _freeze_conditionals(
    raw: Mapping[str, List[ConditionalResult]]
) -> Dict[str, Tuple[ConditionalResult, ...]]:
    return {k: tuple(v) for k, v in raw.items()}


def perform_full_analysis(
    variables: Sequence[RandomVariable],
    theoretical_models: Sequence[TheoreticalModel] = (),
    *,
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> CrossSectionalReport:
    """
    Run the full cross-sectional analysis.

    Args:
        variables: Variables with equal-length data, in data column order.
        theoretical_models: Models to evaluate; invalid ones are reported in
            `model_fit` with an error and otherwise ignored.
        policy: Tolerances and tie policies.

    Returns:
        CrossSectionalReport built from scratch for this input.

    Raises:
        ValueError: If the dataset is empty, columns differ in length, or
            variable ids/names are not unique.
    """
    policy.validate()
    _check_variables(variables)
    variables = tuple(variables)
    num_vars = len(variables)
    names = [v.name for v in variables]
    logger.debug(
        "Cross-sectional analysis: %d variables, %d samples, %d models",
        num_vars,
        len(variables[0].data),
        len(theoretical_models),
    )

    # Empirical estimates are computed first.
    joint = empirical_joint_pmf(variables)
    marginals: List[JointPMF] = [marginal_pmf(joint, [i], num_vars) for i in range(num_vars)]
    empirical_single: Dict[str, SingleVarMetrics] = {
        v.id: single_var_metrics(marginals[i], v.type, v.ordinal_order, policy=policy)
        for i, v in enumerate(variables)
    }

    pairs = [(i, j) for i in range(num_vars) for j in range(i + 1, num_vars)]
    empirical_pairwise: Dict[Tuple[int, int], PairwiseMetrics] = {}
    empirical_conditional: Dict[Tuple[int, int], Dict[str, Tuple[ConditionalResult, ...]]] = {}
    for i, j in pairs:
        v1, v2 = variables[i], variables[j]
        joint_pair = marginal_pmf(joint, [i, j], num_vars)
        empirical_pairwise[(i, j)] = _sample_pairwise_metrics(
            joint_pair, marginals[i], marginals[j], v1, v2, policy
        )
        empirical_conditional[(i, j)] = _freeze_conditionals(
            conditional_distributions(
                joint_pair, marginals[i], marginals[j], v1, v2, policy=policy
            )
        )

    theoretical_single: Dict[str, Dict[str, SingleVarMetrics]] = {v.id: {} for v in variables}
    theoretical_pairwise: Dict[Tuple[int, int], Dict[str, PairwiseMetrics]] = {p: {} for p in pairs}
    theoretical_conditional: Dict[
        Tuple[int, int], Dict[str, Dict[str, Tuple[ConditionalResult, ...]]]
    ] = {p: {} for p in pairs}
    model_pmfs: Dict[str, JointPMF] = {}
    model_fit: List[ModelFitResult] = []
    mode = mse_mode(variables)

    for model in theoretical_models:
        try:
            model_pmf = model_joint_pmf(model, names, policy=policy)
            check_model_values(model_pmf, variables, model_name=model.name)
        except ModelValidationError as exc:
            logger.warning("Model %r rejected: %s", model.name, exc)
            model_fit.append(
                ModelFitResult(model_id=model.id, model_name=model.name, error=str(exc))
            )
            continue
        model_pmfs[model.id] = model_pmf

        model_marginals = [marginal_pmf(model_pmf, [i], num_vars) for i in range(num_vars)]
        for i, v in enumerate(variables):
            theoretical_single[v.id][model.id] = single_var_metrics(
                model_marginals[i], v.type, v.ordinal_order, policy=policy
            )

        for i, j in pairs:
            v1, v2 = variables[i], variables[j]
            pair_pmf = marginal_pmf(model_pmf, [i, j], num_vars)
            theoretical_pairwise[(i, j)][model.id] = _pmf_pairwise_metrics(
                pair_pmf, model_marginals[i], model_marginals[j], v1, v2, policy
            )
            theoretical_conditional[(i, j)][model.id] = _freeze_conditionals(
                conditional_distributions(
                    pair_pmf, model_marginals[i], model_marginals[j], v1, v2, policy=policy
                )
            )

        uncond: Dict[str, float] = {}
        cond: List[ConditionalMSE] = []
        if mode == "unconditional":
            for v in variables:
                mse = unconditional_mse(empirical_single[v.id], theoretical_single[v.id][model.id])
                if mse is not None:
                    uncond[v.name] = mse
        elif mode == "conditional":
            for ti, target in enumerate(variables):
                if not target.is_numerical:
                    continue
                for gi, given in enumerate(variables):
                    if gi == ti or not given.is_categorical:
                        continue
                    key = (min(ti, gi), max(ti, gi))
                    model_conds = theoretical_conditional[key][model.id].get(given.name, ())
                    result = conditional_mse(target, given, model_conds, marginals[gi])
                    if result is not None:
                        cond.append(result)

        hellinger, js = fit_distances(joint, model_pmf)
        model_fit.append(
            ModelFitResult(
                model_id=model.id,
                model_name=model.name,
                hellinger_distance=hellinger,
                jensen_shannon_distance=js,
                unconditional_mse=uncond,
                conditional_mse=tuple(cond),
            )
        )

    single_vars = {
        v.id: SingleVarResults(
            empirical=empirical_single[v.id], theoretical=theoretical_single[v.id]
        )
        for v in variables
    }
    pairwise = tuple(
        PairwiseResult(
            var1_id=variables[i].id,
            var1_name=variables[i].name,
            var2_id=variables[j].id,
            var2_name=variables[j].name,
            empirical=empirical_pairwise[(i, j)],
            theoretical=theoretical_pairwise[(i, j)],
        )
        for i, j in pairs
    )
    conditional = {
        pair_key(variables[i].id, variables[j].id): PairwiseConditionalAnalysis(
            empirical=empirical_conditional[(i, j)],
            theoretical=theoretical_conditional[(i, j)],
        )
        for i, j in pairs
    }
    return CrossSectionalReport(
        variables=variables,
        single_vars=single_vars,
        pairwise=pairwise,
        conditional=conditional,
        model_fit=tuple(model_fit),
        empirical_joint_pmf=joint,
        theoretical_joint_pmfs=model_pmfs,
    )
