"""
User-declared theoretical joint distributions and their fit to data.

A theoretical model is declared either as a distribution text
(`Var1,...,VarN,Probability` header plus one row per joint outcome) or as
per-variable state spaces plus a joint-probability table over their
cartesian product. Either form is parsed into a JointPMF, validated, and
compared with the empirical joint PMF.

Validation failures raise ModelValidationError; the cross-sectional
orchestrator turns them into a per-model error instead of aborting the run.
"""

from __future__ import annotations

import csv
import io
import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from stochdep.distribution import SingleVarMetrics
from stochdep.divergence import generalized_js_divergence, hellinger_distance
from stochdep.pmf import ConditionalResult
from stochdep.policy import DEFAULT_POLICY, AnalysisPolicy
from stochdep.types import JointPMF, Outcome, RandomVariable, to_float

logger = logging.getLogger(__name__)

PROBABILITY_COLUMN = "Probability"

TableKey = Union[Outcome, str]


class ModelValidationError(ValueError):
    """A theoretical model cannot be evaluated against the data."""


@dataclass(frozen=True)
class TheoreticalModel:
    """
    A named theoretical joint distribution over the analysed variables.

    Attributes:
        id: Stable identifier used to key per-model results.
        name: Display name.
        distribution: Distribution text; when given it takes precedence over
            the table form.
        state_spaces: Variable name -> comma-separated list of values.
        joint_probabilities: Outcome (tuple, or comma-joined string) ->
            probability (number or numeric string).
    """

    id: str
    name: str
    distribution: Optional[str] = None
    state_spaces: Mapping[str, str] = field(default_factory=dict)
    joint_probabilities: Mapping[TableKey, Union[float, str]] = field(default_factory=dict)


def parse_state_space(text: str) -> Tuple[str, ...]:
    """Split a comma-separated state list, dropping blanks and duplicates."""
    out: List[str] = []
    for raw in next(csv.reader([str(text)]), []):
        s = raw.strip()
        if s and s not in out:
            out.append(s)
    return tuple(out)


def enumerate_outcomes(
    model: TheoreticalModel, variable_names: Sequence[str]
) -> List[Outcome]:
    """
    Cartesian product of the model's state spaces, in data variable order.

    Raises:
        ModelValidationError: If a variable has no declared states or the
            model declares variables the data does not have.
    """
    declared = set(model.state_spaces.keys())
    expected = set(variable_names)
    if declared != expected:
        extra = sorted(declared - expected)
        missing = sorted(expected - declared)
        parts = []
        if missing:
            parts.append(f"missing state spaces for {', '.join(missing)}")
        if extra:
            parts.append(f"unknown variables {', '.join(extra)}")
        raise ModelValidationError(
            f"Model {model.name!r} does not match the data variables: " + "; ".join(parts)
        )
    spaces = []
    for name in variable_names:
        space = parse_state_space(model.state_spaces[name])
        if not space:
            raise ModelValidationError(
                f"Model {model.name!r} has an empty state space for {name!r}"
            )
        spaces.append(space)
    return [tuple(o) for o in itertools.product(*spaces)]


def _table_key(key: TableKey) -> Outcome:
    if isinstance(key, tuple):
        return tuple(str(v).strip() for v in key)
    return tuple(v.strip() for v in next(csv.reader([str(key)]), []))


def _parse_probability(raw: object, where: str, model_name: str) -> float:
    p = to_float(raw)
    if p is None:
        raise ModelValidationError(
            f"Invalid probability in model {model_name!r} at {where}: {raw!r}"
        )
    if p < 0.0 or p > 1.0:
        raise ModelValidationError(
            f"Probability out of [0, 1] in model {model_name!r} at {where}: {p}"
        )
    return p


def validate_model_table(
    model: TheoreticalModel,
    variable_names: Sequence[str],
    *,
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> Dict[Outcome, float]:
    """
    Check that the joint table covers every outcome and sums to 1.

    Returns:
        Outcome -> probability for every cartesian outcome, in enumeration
        order.

    Raises:
        ModelValidationError: On missing outcomes, invalid probabilities or a
            total outside `policy.probability_tolerance` of 1.
    """
    outcomes = enumerate_outcomes(model, variable_names)
    # A tuple key and its comma-joined spelling name the same outcome; their
    # probabilities accumulate.
    given: Dict[Outcome, List[object]] = {}
    for key, value in model.joint_probabilities.items():
        if str(value).strip() == "":
            continue
        given.setdefault(_table_key(key), []).append(value)

    declared = set(outcomes)
    unknown = [k for k in given if k not in declared]
    if unknown:
        raise ModelValidationError(
            f"Model {model.name!r} has a probability for undeclared outcome "
            f"({','.join(unknown[0])})"
        )
    missing = [o for o in outcomes if o not in given]
    if missing:
        raise ModelValidationError(
            f"Model {model.name!r} is incomplete: {len(missing)} of {len(outcomes)} "
            f"outcomes have no probability (first: {','.join(missing[0])})"
        )

    table = {
        o: float(
            np.sum(
                [
                    _parse_probability(v, "outcome " + ",".join(o), model.name)
                    for v in given[o]
                ]
            )
        )
        for o in outcomes
    }
    total = float(np.sum(list(table.values())))
    if abs(total - 1.0) > policy.probability_tolerance:
        raise ModelValidationError(
            f"Probabilities in model {model.name!r} sum to {total:.6f}, expected 1"
        )
    return table


def model_distribution_string(
    model: TheoreticalModel, variable_names: Sequence[str]
) -> str:
    """
    Render the table form of a model as distribution text.

    Rows with probability ≤ 0 or no parsable probability are omitted; values
    containing commas are quoted.
    """
    if not variable_names:
        return ""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow([*variable_names, PROBABILITY_COLUMN])
    for key, raw in model.joint_probabilities.items():
        p = to_float(raw)
        outcome = _table_key(key)
        if not outcome or p is None or p <= 0.0:
            continue
        writer.writerow([*outcome, repr(p)])
    return buf.getvalue().rstrip("\n")


def parse_theoretical_model(
    distribution: str,
    variable_names: Sequence[str],
    *,
    model_name: str = "model",
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> JointPMF:
    """
    Parse distribution text into a joint PMF over `variable_names`.

    Args:
        distribution: `Var1,...,VarN,Probability` header plus outcome rows.
        variable_names: The data's variable names, in data order.
        model_name: Name used in error messages.
        policy: Supplies the sum-to-one tolerance.

    Returns:
        JointPMF keyed in data variable order. Duplicate outcome rows
        accumulate probability.

    Raises:
        ModelValidationError: If the header is missing or in a different
            variable order, a row is malformed, a probability is invalid, or
            the total is not 1 within tolerance.
    """
    lines = [ln for ln in str(distribution or "").strip().splitlines() if ln.strip()]
    if len(lines) < 2:
        raise ModelValidationError(
            f"Model {model_name!r} distribution is empty or has no outcome rows"
        )
    rows = list(csv.reader(lines))
    header = [h.strip() for h in rows[0]]
    if not header or header[-1] != PROBABILITY_COLUMN:
        raise ModelValidationError(
            f"Model {model_name!r} must end its header with a "
            f"'{PROBABILITY_COLUMN}' column"
        )
    model_vars = header[:-1]
    if list(model_vars) != list(variable_names):
        raise ModelValidationError(
            f"Model variable order ({','.join(model_vars)}) does not match "
            f"data order ({','.join(variable_names)})"
        )

    acc: Dict[Outcome, float] = {}
    for row_no, row in enumerate(rows[1:], start=1):
        values = [v.strip() for v in row]
        if len(values) != len(header):
            raise ModelValidationError(
                f"Model {model_name!r} row {row_no} has {len(values)} values, "
                f"header has {len(header)}"
            )
        p = _parse_probability(values[-1], f"row {row_no}", model_name)
        key = tuple(values[:-1])
        acc[key] = acc.get(key, 0.0) + p

    total = float(np.sum(list(acc.values())))
    if abs(total - 1.0) > policy.probability_tolerance:
        raise ModelValidationError(
            f"Probabilities in model {model_name!r} sum to {total:.6f}, expected 1"
        )
    return JointPMF(acc)


def model_joint_pmf(
    model: TheoreticalModel,
    variable_names: Sequence[str],
    *,
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> JointPMF:
    """
    Resolve either declaration form of `model` into a validated joint PMF.
    """
    if model.distribution is not None and str(model.distribution).strip():
        text = str(model.distribution)
    else:
        validate_model_table(model, variable_names, policy=policy)
        text = model_distribution_string(model, variable_names)
    return parse_theoretical_model(
        text, variable_names, model_name=model.name, policy=policy
    )


def check_model_values(
    pmf: Mapping[Outcome, float],
    variables: Sequence[RandomVariable],
    *,
    model_name: str = "model",
) -> None:
    """
    Reject models assigning non-numeric values to Numerical variables.

    Raises:
        ModelValidationError: On the first offending value.
    """
    for pos, v in enumerate(variables):
        if not v.is_numerical:
            continue
        for key in pmf:
            if to_float(key[pos]) is None:
                raise ModelValidationError(
                    f"Model {model_name!r} has non-numeric value {key[pos]!r} "
                    f"for numerical variable {v.name!r}"
                )


def fit_distances(
    empirical: Mapping[Outcome, float], model_pmf: Mapping[Outcome, float]
) -> Tuple[float, float]:
    """
    (Hellinger distance, Jensen-Shannon distance) between data and model.
    """
    h = hellinger_distance(empirical, model_pmf)
    js = float(np.sqrt(generalized_js_divergence([empirical, model_pmf])))
    return h, js


def mse_mode(variables: Sequence[RandomVariable]) -> Optional[str]:
    """
    Which MSE computation applies to a dataset.

    Returns:
        "conditional" when numerical and categorical variables are mixed,
        "unconditional" when there are numerical variables only, and None
        when there is no numerical variable.
    """
    has_numeric = any(v.is_numerical for v in variables)
    has_categorical = any(v.is_categorical for v in variables)
    if not has_numeric:
        return None
    return "conditional" if has_categorical else "unconditional"


def unconditional_mse(
    empirical: SingleVarMetrics, model: SingleVarMetrics
) -> Optional[float]:
    """
    E_model[(X − empirical mean)²] = model variance + bias².
    """
    if empirical.mean is None or model.mean is None or model.variance is None:
        return None
    bias = float(model.mean) - float(empirical.mean)
    return float(model.variance) + bias * bias


@dataclass(frozen=True)
class ConditionalMSE:
    """
    MSE of a numerical target predicted by the model's conditional means.

    Attributes:
        target: Numerical target variable name.
        given: Categorical conditioning variable name.
        per_condition: Condition value -> mean squared error over the data
            rows with that condition value.
        cumulative: Σ per_condition[c] · P_empirical(given = c).
    """

    target: str
    given: str
    per_condition: Mapping[str, float]
    cumulative: float


def conditional_mse(
    target: RandomVariable,
    given: RandomVariable,
    model_conditionals: Sequence[ConditionalResult],
    empirical_given_marginal: Mapping[Outcome, float],
) -> Optional[ConditionalMSE]:
    """
    Per-condition and probability-weighted MSE of `target` given `given`.

    Only rows whose condition value has a model conditional mean contribute.
    Returns None when no row can be scored.
    """
    predictions = {
        c.condition_value: float(c.mean) for c in model_conditionals if c.mean is not None
    }
    errors: Dict[str, List[float]] = {}
    for raw_y, g in zip(target.data, given.data):
        y = to_float(raw_y)
        pred = predictions.get(g)
        if y is None or pred is None:
            continue
        errors.setdefault(g, []).append((y - pred) ** 2)
    if not errors:
        return None

    key = given.sort_key()
    per_condition: Dict[str, float] = {}
    cumulative = 0.0
    for g in sorted(errors, key=key):
        m = float(np.mean(errors[g]))
        per_condition[g] = m
        cumulative += m * float(empirical_given_marginal.get((g,), 0.0))
    return ConditionalMSE(
        target=target.name,
        given=given.name,
        per_condition=per_condition,
        cumulative=float(cumulative),
    )


@dataclass(frozen=True)
class ModelFitResult:
    """
    Goodness of fit of one theoretical model, or the reason it was rejected.
    """

    model_id: str
    model_name: str
    hellinger_distance: Optional[float] = None
    jensen_shannon_distance: Optional[float] = None
    unconditional_mse: Mapping[str, float] = field(default_factory=dict)
    conditional_mse: Tuple[ConditionalMSE, ...] = ()
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None

    def mse_labels(self) -> Dict[str, float]:
        """Flatten all MSE values into display-label -> value."""
        out: Dict[str, float] = {}
        for name, v in self.unconditional_mse.items():
            out[f"MSE: {name}"] = float(v)
        for c in self.conditional_mse:
            for cond, v in c.per_condition.items():
                out[f"MSE: {c.target} | {c.given}={cond}"] = float(v)
            out[f"Cumulative MSE ({c.target} | {c.given})"] = float(c.cumulative)
        return out
