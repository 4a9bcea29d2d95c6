"""
Pairwise dependence measures between two discrete variables.

Four measures are provided, each in a sample form (raw data columns) and, for
theoretical models, a PMF form (an arity-2 joint PMF):
  - Pearson correlation (numeric x numeric),
  - mutual information in bits (any x any),
  - distance correlation (any x any; absolute difference for numeric data,
    0/1 mismatch for categorical data),
  - Cramér's V (categorical x categorical).

All measures are symmetric in their two inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial.distance import pdist, squareform
from scipy.stats import chi2_contingency

from stochdep.policy import DEFAULT_POLICY, AnalysisPolicy
from stochdep.types import Outcome, to_float


@dataclass(frozen=True)
class PairwiseMetrics:
    pearson_correlation: Optional[float] = None
    mutual_information: Optional[float] = None
    distance_correlation: Optional[float] = None
    cramers_v: Optional[float] = None


def is_numeric_column(data: Sequence[str]) -> bool:
    return len(data) > 0 and all(to_float(v) is not None for v in data)


def _as_float_array(data: Sequence[str]) -> np.ndarray:
    xs = [to_float(v) for v in data]
    if any(x is None for x in xs):
        raise ValueError("Numeric measure requested for non-numeric data")
    return np.asarray(xs, dtype=float)


def _check_lengths(data1: Sequence[str], data2: Sequence[str]) -> int:
    if len(data1) != len(data2):
        raise ValueError(
            f"Data lengths must match ({len(data1)} != {len(data2)})"
        )
    return len(data1)


def pearson_correlation(data1: Sequence[str], data2: Sequence[str]) -> Optional[float]:
    """
    Pearson correlation of two numeric columns.

    Returns:
        Correlation in [-1, 1], or None when either column has zero variance
        (or there are no samples), since the coefficient is undefined there.
    """
    n = _check_lengths(data1, data2)
    if n == 0:
        return None
    x = _as_float_array(data1)
    y = _as_float_array(data2)
    # Constant columns are detected on the raw values; the mean of a repeated
    # inexact float such as 0.1 leaves rounding residue in the deviations.
    if np.ptp(x) == 0.0 or np.ptp(y) == 0.0:
        return None
    dx = x - x.mean()
    dy = y - y.mean()
    sx = float(np.sqrt(np.mean(dx * dx)))
    sy = float(np.sqrt(np.mean(dy * dy)))
    r = float(np.mean(dx * dy) / (sx * sy))
    return float(np.clip(r, -1.0, 1.0))


def _pair_arrays(joint_pair: Mapping[Outcome, float]) -> Tuple[List[str], List[str], np.ndarray]:
    xs: List[str] = []
    ys: List[str] = []
    ps: List[float] = []
    for key, p in joint_pair.items():
        xs.append(key[0])
        ys.append(key[1])
        ps.append(float(p))
    return xs, ys, np.asarray(ps, dtype=float)


def pearson_from_pmf(joint_pair: Mapping[Outcome, float]) -> Optional[float]:
    """
    Pearson correlation implied by an arity-2 PMF over numeric values.

    Returns None when either marginal variance is zero or the PMF is empty.
    """
    if not joint_pair:
        return None
    xs, ys, p = _pair_arrays(joint_pair)
    total = float(p.sum())
    if total <= 0.0:
        return None
    p = p / total
    x = _as_float_array(xs)
    y = _as_float_array(ys)
    support = p > 0.0
    if np.ptp(x[support]) == 0.0 or np.ptp(y[support]) == 0.0:
        return None
    mx = float(np.dot(p, x))
    my = float(np.dot(p, y))
    vx = float(np.dot(p, (x - mx) ** 2))
    vy = float(np.dot(p, (y - my) ** 2))
    if vx <= 0.0 or vy <= 0.0:
        return None
    cov = float(np.dot(p, (x - mx) * (y - my)))
    return float(np.clip(cov / (np.sqrt(vx) * np.sqrt(vy)), -1.0, 1.0))


def mutual_information(
    joint_pair: Mapping[Outcome, float],
    marginal1: Mapping[Outcome, float],
    marginal2: Mapping[Outcome, float],
    *,
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> float:
    """
    Mutual information Σ p(x,y)·log2(p(x,y) / (p(x)p(y))) in bits.

    Terms where any of the three probabilities is at or below
    `policy.zero_probability` are skipped. Clamped to ≥ 0.
    """
    eps = policy.zero_probability
    mi = 0.0
    for key, pxy in joint_pair.items():
        pxy = float(pxy)
        px = float(marginal1.get((key[0],), 0.0))
        py = float(marginal2.get((key[1],), 0.0))
        if pxy > eps and px > eps and py > eps:
            mi += pxy * float(np.log2(pxy / (px * py)))
    return max(0.0, mi)


def _distance_matrix(values: Sequence[str], numeric: bool) -> np.ndarray:
    if numeric:
        x = _as_float_array(values).reshape(-1, 1)
        return squareform(pdist(x, metric="cityblock"))
    # Categories are encoded as integer codes; with one coordinate, the
    # Hamming distance is exactly the 0/1 mismatch indicator.
    _, codes = np.unique(np.asarray([str(v) for v in values], dtype=object), return_inverse=True)
    return squareform(pdist(codes.reshape(-1, 1).astype(float), metric="hamming"))


def _weighted_double_center(d: np.ndarray, w: np.ndarray) -> np.ndarray:
    row = d @ w
    grand = float(w @ row)
    return d - row[:, None] - row[None, :] + grand


def _weighted_dcor(a: np.ndarray, b: np.ndarray, w: np.ndarray, floor: float) -> float:
    A = _weighted_double_center(a, w)
    B = _weighted_double_center(b, w)
    W = np.outer(w, w)
    dcov2 = float(np.sum(W * A * B))
    dvar1 = float(np.sum(W * A * A))
    dvar2 = float(np.sum(W * B * B))
    if dvar1 <= floor or dvar2 <= floor:
        return 0.0
    return float(np.sqrt(max(0.0, dcov2 / np.sqrt(dvar1 * dvar2))))


def distance_correlation(
    data1: Sequence[str],
    data2: Sequence[str],
    *,
    numeric1: Optional[bool] = None,
    numeric2: Optional[bool] = None,
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> float:
    """
    Sample distance correlation of two columns.

    Args:
        data1: First column.
        data2: Second column.
        numeric1: Use absolute differences for data1. Auto-detected if None.
        numeric2: Use absolute differences for data2. Auto-detected if None.
        policy: Supplies the distance-variance floor.

    Returns:
        Distance correlation in [0, 1]; 0 with fewer than two samples or when
        either distance variance is ~0.
    """
    n = _check_lengths(data1, data2)
    if n < 2:
        return 0.0
    if numeric1 is None:
        numeric1 = is_numeric_column(data1)
    if numeric2 is None:
        numeric2 = is_numeric_column(data2)
    a = _distance_matrix(data1, bool(numeric1))
    b = _distance_matrix(data2, bool(numeric2))
    w = np.full(n, 1.0 / n)
    return _weighted_dcor(a, b, w, policy.variance_floor)


def distance_correlation_from_pmf(
    joint_pair: Mapping[Outcome, float],
    *,
    numeric1: bool,
    numeric2: bool,
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> float:
    """
    Distance correlation of the distribution described by an arity-2 PMF.

    Each outcome is an atom weighted by its probability; with empirical
    frequencies this equals the sample statistic.
    """
    if len(joint_pair) < 2:
        return 0.0
    xs, ys, p = _pair_arrays(joint_pair)
    total = float(p.sum())
    if total <= 0.0:
        return 0.0
    a = _distance_matrix(xs, numeric1)
    b = _distance_matrix(ys, numeric2)
    return _weighted_dcor(a, b, p / total, policy.variance_floor)


def cramers_v(data1: Sequence[str], data2: Sequence[str]) -> float:
    """
    Cramér's V of two categorical columns.

    Returns 0 with no samples or when either variable has fewer than two
    distinct levels.
    """
    n = _check_lengths(data1, data2)
    if n == 0:
        return 0.0
    levels1, codes1 = np.unique(np.asarray(data1, dtype=object), return_inverse=True)
    levels2, codes2 = np.unique(np.asarray(data2, dtype=object), return_inverse=True)
    r, k = len(levels1), len(levels2)
    if r < 2 or k < 2:
        return 0.0
    table = np.zeros((r, k), dtype=float)
    np.add.at(table, (codes1, codes2), 1.0)
    chi2 = float(chi2_contingency(table, correction=False)[0])
    return float(np.sqrt(chi2 / (n * min(r - 1, k - 1))))


def cramers_v_from_pmf(
    joint_pair: Mapping[Outcome, float],
    *,
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> float:
    """
    Population Cramér's V, sqrt(φ² / min(r−1, k−1)), of an arity-2 PMF.

    Only levels whose marginal probability exceeds `policy.zero_probability`
    are counted in r and k.
    """
    if not joint_pair:
        return 0.0
    rows = sorted({k[0] for k in joint_pair})
    cols = sorted({k[1] for k in joint_pair})
    ri = {v: i for i, v in enumerate(rows)}
    ci = {v: i for i, v in enumerate(cols)}
    P = np.zeros((len(rows), len(cols)), dtype=float)
    for key, p in joint_pair.items():
        P[ri[key[0]], ci[key[1]]] += float(p)
    total = float(P.sum())
    if total <= 0.0:
        return 0.0
    P /= total
    keep_rows = P.sum(axis=1) > policy.zero_probability
    keep_cols = P.sum(axis=0) > policy.zero_probability
    P = P[np.ix_(keep_rows, keep_cols)]
    r, k = P.shape
    if r < 2 or k < 2:
        return 0.0
    E = np.outer(P.sum(axis=1), P.sum(axis=0))
    mask = E > 0.0
    phi2 = float(np.sum((P[mask] - E[mask]) ** 2 / E[mask]))
    return float(np.sqrt(min(1.0, phi2 / min(r - 1, k - 1))))
