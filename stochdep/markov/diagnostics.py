"""
Markov-chain diagnostics for a panel of categorical state sequences.

The pipeline run by `perform_time_series_analysis`:
  1. first-order TPM per step t = 1..T-1,
  2. homogeneity check (pairwise Hellinger between step TPMs plus one
     normalized GJS distance over all of them, against fixed thresholds),
  3. representative TPM (first step if homogeneous, else the average),
  4. Markovian fit: observed full-history joint PMF vs the chain-rule
     approximation P(X1) * prod P(Xt | Xt-1),
  5. weak stationarity: per-step sample mean and variance.
"""

from __future__ import annotations

import itertools
import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np

from stochdep.divergence import generalized_js_divergence, hellinger_distance
from stochdep.markov.tpm import (
    TimeSeriesPanel,
    TransitionMatrix,
    average_tpms,
    estimate_tpm,
    tpm_gjs_distance,
    tpm_hellinger_distance,
)
from stochdep.policy import DEFAULT_POLICY, AnalysisPolicy
from stochdep.types import JointPMF, Outcome, to_float

logger = logging.getLogger(__name__)

# numpy arrays support at most 32 dimensions.
_MAX_ENUMERATED_STEPS = 32


@dataclass(frozen=True)
class LabeledDistance:
    pair: str
    distance: float


@dataclass(frozen=True)
class HomogeneityResult:
    hellinger_distances: Tuple[LabeledDistance, ...]
    gjs_distance: float
    is_homogeneous: bool


@dataclass(frozen=True)
class MarkovianFitResult:
    """
    Comparison of the observed sequence distribution with its first-order
    Markov approximation.

    `enumerated` is False when the state-space^T enumeration exceeded the
    policy cap and the approximation was evaluated on observed sequences only.
    """

    full_history_pmf: JointPMF
    markov_approximation_pmf: JointPMF
    initial_state_pmf: JointPMF
    hellinger_distance: float
    jensen_shannon_distance: float
    enumerated: bool = True


@dataclass(frozen=True)
class StationarityResult:
    time_labels: Tuple[str, ...]
    mean: Tuple[float, ...]
    variance: Tuple[float, ...]


@dataclass(frozen=True)
class TimeSeriesReport:
    state_space: Tuple[str, ...]
    step_tpms: Tuple[TransitionMatrix, ...]
    homogeneity: HomogeneityResult
    average_tpm: TransitionMatrix
    representative_tpm: TransitionMatrix
    full_history_tpm: TransitionMatrix
    markovian_fit: MarkovianFitResult
    weak_stationarity: StationarityResult

    @property
    def is_homogeneous(self) -> bool:
        return self.homogeneity.is_homogeneous


def first_order_tpms(panel: TimeSeriesPanel) -> List[TransitionMatrix]:
    """One first-order TPM per step t = 1..T-1, labelled P(t|t-1)."""
    labels = panel.time_labels
    states = panel.state_space
    return [
        estimate_tpm(
            panel, t, 1, state_space=states, label=f"P({labels[t]}|{labels[t - 1]})"
        )
        for t in range(1, panel.num_steps)
    ]


def full_history_tpm(panel: TimeSeriesPanel) -> TransitionMatrix:
    """P(X_T | X_1..X_{T-1}): the order-(T-1) TPM at the last step."""
    labels = panel.time_labels
    if panel.num_steps < 2:
        return TransitionMatrix(rows={}, order=0, label="")
    last = panel.num_steps - 1
    return estimate_tpm(
        panel, last, last, label=f"P({labels[last]}|...{labels[0]})"
    )


def run_homogeneity_check(
    tpms: Sequence[TransitionMatrix], *, policy: AnalysisPolicy = DEFAULT_POLICY
) -> HomogeneityResult:
    """
    Decide whether the step TPMs describe one time-homogeneous chain.

    Homogeneous iff every pairwise Hellinger distance is within
    `policy.homogeneity_hellinger_threshold` and the normalized GJS distance
    is within `policy.homogeneity_gjs_threshold`. Fewer than two TPMs are
    trivially homogeneous.
    """
    if len(tpms) < 2:
        return HomogeneityResult(hellinger_distances=(), gjs_distance=0.0, is_homogeneous=True)

    distances = tuple(
        LabeledDistance(
            pair=f"{a.label} vs {b.label}", distance=tpm_hellinger_distance(a, b)
        )
        for a, b in itertools.combinations(tpms, 2)
    )
    gjs = tpm_gjs_distance(tpms)
    homogeneous = (
        all(d.distance <= policy.homogeneity_hellinger_threshold for d in distances)
        and gjs <= policy.homogeneity_gjs_threshold
    )
    return HomogeneityResult(
        hellinger_distances=distances, gjs_distance=gjs, is_homogeneous=bool(homogeneous)
    )


def _sequence_pmf(sequences: Sequence[Outcome]) -> JointPMF:
    return JointPMF.from_counts(Counter(tuple(s) for s in sequences))


def _enumerated_approximation(
    initial: JointPMF, tpm: TransitionMatrix, states: Sequence[str], steps: int
) -> Dict[Outcome, float]:
    s = len(states)
    init = np.asarray([initial.get((x,), 0.0) for x in states], dtype=float)
    M = tpm.to_array([(x,) for x in states], list(states))
    joint = init
    for _ in range(1, steps):
        # Broadcasting appends one axis per step; C-order flattening then
        # matches itertools.product(states, repeat=steps).
        joint = joint[..., None] * M
    flat = np.asarray(joint, dtype=float).reshape(-1)
    out: Dict[Outcome, float] = {}
    for idx in np.flatnonzero(flat > 0.0):
        digits = np.unravel_index(int(idx), (s,) * steps)
        out[tuple(states[int(d)] for d in digits)] = float(flat[idx])
    return out


def _observed_approximation(
    initial: JointPMF, tpm: TransitionMatrix, sequences: Sequence[Outcome]
) -> Dict[Outcome, float]:
    out: Dict[Outcome, float] = {}
    for seq in sequences:
        if seq in out:
            continue
        p = initial.get((seq[0],), 0.0)
        for prev, nxt in zip(seq, seq[1:]):
            p *= tpm.prob((prev,), nxt)
        out[seq] = p
    return out


def markovian_fit(
    panel: TimeSeriesPanel,
    representative_tpm: TransitionMatrix,
    *,
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> MarkovianFitResult:
    """
    Compare observed sequences with the first-order chain-rule approximation.

    The approximation is enumerated over every sequence in
    state_space^num_steps unless that exceeds
    `policy.max_enumerated_sequences`, in which case only observed sequences
    are scored. It is renormalized when its mass drifts from 1 by more than
    `policy.renormalize_tolerance`.
    """
    sequences = [tuple(seq) for seq in panel.instances]
    full_history = _sequence_pmf(sequences)
    initial = JointPMF.from_counts(Counter((seq[0],) for seq in sequences))
    states = panel.state_space
    steps = panel.num_steps

    size = len(states) ** steps
    enumerated = (
        size <= int(policy.max_enumerated_sequences) and steps <= _MAX_ENUMERATED_STEPS
    )
    if enumerated:
        logger.debug("Enumerating %d candidate sequences", size)
        approx = _enumerated_approximation(initial, representative_tpm, states, steps)
    else:
        logger.warning(
            "State space %d^%d exceeds %d sequences; scoring observed sequences only",
            len(states),
            steps,
            policy.max_enumerated_sequences,
        )
        approx = _observed_approximation(initial, representative_tpm, sequences)

    total = math.fsum(approx.values())
    if total > policy.zero_probability and abs(total - 1.0) > policy.renormalize_tolerance:
        logger.debug("Renormalizing Markov approximation with mass %.6f", total)
        approx = {k: p / total for k, p in approx.items()}
    approx_pmf = JointPMF(approx)

    return MarkovianFitResult(
        full_history_pmf=full_history,
        markov_approximation_pmf=approx_pmf,
        initial_state_pmf=initial,
        hellinger_distance=hellinger_distance(full_history, approx_pmf),
        jensen_shannon_distance=float(
            np.sqrt(generalized_js_divergence([full_history, approx_pmf]))
        ),
        enumerated=enumerated,
    )


def weak_stationarity(panel: TimeSeriesPanel) -> StationarityResult:
    """
    Per-step sample mean and (n-1)-denominator variance.

    Only numeric-coercible states enter each step; a step with none yields
    NaN for both, and a single numeric value has variance 0.
    """
    means: List[float] = []
    variances: List[float] = []
    for t in range(panel.num_steps):
        xs = [x for x in (to_float(s) for s in panel.states_at(t)) if x is not None]
        if not xs:
            means.append(float("nan"))
            variances.append(float("nan"))
            continue
        arr = np.asarray(xs, dtype=float)
        means.append(float(arr.mean()))
        variances.append(float(arr.var(ddof=1)) if arr.size > 1 else 0.0)
    return StationarityResult(
        time_labels=panel.time_labels, mean=tuple(means), variance=tuple(variances)
    )


def perform_time_series_analysis(
    panel: TimeSeriesPanel, *, policy: AnalysisPolicy = DEFAULT_POLICY
) -> TimeSeriesReport:
    """
    Run the full Markov-chain diagnostic pipeline on a panel.

    Args:
        panel: Instances x time steps states.
        policy: Thresholds and tolerances.

    Returns:
        TimeSeriesReport. Short histories produce empty TPMs rather than
        errors.
    """
    policy.validate()
    logger.debug(
        "Time-series analysis: %d instances, %d steps, %d states",
        panel.num_instances,
        panel.num_steps,
        len(panel.state_space),
    )
    states = panel.state_space
    steps = first_order_tpms(panel)
    homogeneity = run_homogeneity_check(steps, policy=policy)
    average = average_tpms(steps, state_space=states)
    if homogeneity.is_homogeneous:
        representative = steps[0] if steps else TransitionMatrix(rows={}, order=1)
    else:
        representative = average

    return TimeSeriesReport(
        state_space=states,
        step_tpms=tuple(steps),
        homogeneity=homogeneity,
        average_tpm=average,
        representative_tpm=representative,
        full_history_tpm=full_history_tpm(panel),
        markovian_fit=markovian_fit(panel, representative, policy=policy),
        weak_stationarity=weak_stationarity(panel),
    )
