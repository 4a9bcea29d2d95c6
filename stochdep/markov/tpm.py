"""
Transition probability matrices estimated from a panel of categorical states.

A panel holds `num_instances` state sequences observed over the same
`num_steps` time labels. An order-k TPM at time index t conditions the state
at t on the k preceding states of each instance.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from stochdep.divergence import generalized_js_from_matrix, hellinger_from_vectors
from stochdep.types import JointPMF, Outcome


@dataclass(frozen=True)
class TimeSeriesPanel:
    """
    Instances x time steps matrix of categorical states.

    `instances[i][t]` is the state of instance i at `time_labels[t]`.
    """

    time_labels: Tuple[str, ...]
    instances: Tuple[Tuple[str, ...], ...]

    def __init__(
        self, time_labels: Sequence[str], instances: Sequence[Sequence[str]]
    ) -> None:
        labels = tuple(str(t) for t in time_labels)
        rows = tuple(tuple(str(s) for s in seq) for seq in instances)
        if not labels:
            raise ValueError("Panel needs at least one time step")
        if not rows:
            raise ValueError("Panel needs at least one instance")
        for i, seq in enumerate(rows):
            if len(seq) != len(labels):
                raise ValueError(
                    f"Instance {i + 1} has {len(seq)} states, expected {len(labels)}"
                )
        object.__setattr__(self, "time_labels", labels)
        object.__setattr__(self, "instances", rows)

    @property
    def num_instances(self) -> int:
        return len(self.instances)

    @property
    def num_steps(self) -> int:
        return len(self.time_labels)

    @property
    def state_space(self) -> Tuple[str, ...]:
        return tuple(sorted({s for seq in self.instances for s in seq}))

    def states_at(self, t: int) -> Tuple[str, ...]:
        return tuple(seq[t] for seq in self.instances)


@dataclass(frozen=True)
class TransitionMatrix:
    """
    rows[history][next_state] = probability.

    `history` is the tuple of the `order` preceding states. Rows estimated
    from counts sum to 1; averaged matrices may carry less mass in rows that
    some steps never observed.
    """

    rows: Mapping[Outcome, Mapping[str, float]] = field(default_factory=dict)
    order: int = 1
    label: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.rows

    @property
    def from_states(self) -> Tuple[Outcome, ...]:
        return tuple(sorted(self.rows))

    @property
    def to_states(self) -> Tuple[str, ...]:
        return tuple(sorted({s for row in self.rows.values() for s in row}))

    def prob(self, history: Sequence[str], next_state: str) -> float:
        row = self.rows.get(tuple(history))
        if row is None:
            return 0.0
        return float(row.get(str(next_state), 0.0))

    def to_array(
        self, from_states: Sequence[Outcome], to_states: Sequence[str]
    ) -> np.ndarray:
        """Dense (len(from_states), len(to_states)) array, zero-filled."""
        out = np.zeros((len(from_states), len(to_states)), dtype=float)
        col = {s: j for j, s in enumerate(to_states)}
        for i, h in enumerate(from_states):
            for s, p in self.rows.get(tuple(h), {}).items():
                j = col.get(s)
                if j is not None:
                    out[i, j] = float(p)
        return out

    def as_joint_pmf(
        self,
        from_states: Optional[Sequence[Outcome]] = None,
        to_states: Optional[Sequence[str]] = None,
    ) -> JointPMF:
        """
        The matrix as one normalized PMF over (history..., next_state).
        """
        from_states = self.from_states if from_states is None else from_states
        to_states = self.to_states if to_states is None else to_states
        arr = self.to_array(from_states, to_states)
        total = float(arr.sum())
        if total <= 0.0:
            return JointPMF()
        items = []
        for i, h in enumerate(from_states):
            for j, s in enumerate(to_states):
                if arr[i, j] > 0.0:
                    items.append((tuple(h) + (s,), arr[i, j] / total))
        return JointPMF(items)


def estimate_tpm(
    panel: TimeSeriesPanel,
    time_index: int,
    order: int = 1,
    *,
    state_space: Optional[Sequence[str]] = None,
    label: str = "",
) -> TransitionMatrix:
    """
    Estimate P(X_t | X_{t-order}, ..., X_{t-1}) from transition counts.

    Args:
        panel: Observed state sequences.
        time_index: Index t of the "to" state.
        order: Number of preceding states in the history.
        state_space: Next states to list in every row (zero-filled).
            Defaults to the panel's state space.
        label: Display label.

    Returns:
        TransitionMatrix with one row per observed history; empty when
        `time_index < order`.
    """
    order = int(order)
    time_index = int(time_index)
    if order < 0:
        raise ValueError("order must be non-negative")
    if time_index >= panel.num_steps:
        raise ValueError(
            f"time_index {time_index} out of range for {panel.num_steps} steps"
        )
    if time_index < order:
        return TransitionMatrix(rows={}, order=order, label=label)

    states = tuple(state_space) if state_space is not None else panel.state_space
    history_counts: Counter = Counter()
    joint_counts: Dict[Outcome, Counter] = defaultdict(Counter)
    for seq in panel.instances:
        history = tuple(seq[time_index - order : time_index])
        history_counts[history] += 1
        joint_counts[history][seq[time_index]] += 1

    rows: Dict[Outcome, Dict[str, float]] = {}
    for history in sorted(history_counts):
        total = float(history_counts[history])
        counts = joint_counts[history]
        rows[history] = {s: counts.get(s, 0) / total for s in states}
    return TransitionMatrix(rows=rows, order=order, label=label)


def _union_axes(
    tpms: Sequence[TransitionMatrix],
) -> Tuple[List[Outcome], List[str]]:
    from_states = sorted({h for t in tpms for h in t.rows})
    to_states = sorted({s for t in tpms for row in t.rows.values() for s in row})
    return from_states, to_states


def average_tpms(
    tpms: Sequence[TransitionMatrix],
    *,
    state_space: Optional[Sequence[str]] = None,
    label: str = "Average 1st Order TPM",
) -> TransitionMatrix:
    """
    Entrywise mean of `tpms` with uniform weight per matrix.

    A matrix lacking a row (or being empty) contributes zero to that row's
    average.
    """
    if not tpms:
        return TransitionMatrix(rows={}, order=1, label=label)
    from_states, to_states = _union_axes(tpms)
    if state_space is not None:
        to_states = sorted(set(to_states) | {str(s) for s in state_space})
    stacked = np.stack([t.to_array(from_states, to_states) for t in tpms])
    mean = stacked.mean(axis=0)
    rows = {
        h: {s: float(mean[i, j]) for j, s in enumerate(to_states)}
        for i, h in enumerate(from_states)
    }
    return TransitionMatrix(rows=rows, order=tpms[0].order, label=label)


def tpm_hellinger_distance(t1: TransitionMatrix, t2: TransitionMatrix) -> float:
    """
    Hellinger distance between two TPMs flattened to from x to vectors.

    Both matrices are laid out over the sorted union of their from- and
    to-states, with unobserved transitions as 0. The vectors are not
    renormalized, so for m shared rows the distance lies in [0, sqrt(m)].
    """
    from_states, to_states = _union_axes([t1, t2])
    if not from_states or not to_states:
        return 0.0
    p = t1.to_array(from_states, to_states).ravel()
    q = t2.to_array(from_states, to_states).ravel()
    return hellinger_from_vectors(p, q)


def tpm_gjs_distance(tpms: Sequence[TransitionMatrix]) -> float:
    """
    Normalized generalized JS distance across several TPMs.

    Each TPM becomes a normalized joint PMF over (from, to); the GJS
    divergence of those PMFs is divided by log2(k) for k matrices, clamped
    to [0, 1], and square-rooted.
    """
    k = len(tpms)
    if k < 2:
        return 0.0
    from_states, to_states = _union_axes(tpms)
    if not from_states or not to_states:
        return 0.0
    rows = []
    for t in tpms:
        arr = t.to_array(from_states, to_states).ravel()
        total = float(arr.sum())
        rows.append(arr / total if total > 0.0 else arr)
    divergence = generalized_js_from_matrix(np.vstack(rows)) / float(np.log2(k))
    return float(np.sqrt(min(max(divergence, 0.0), 1.0)))
