"""
Divergences between discrete distributions.

All functions take PMFs as mappings from outcome keys to probabilities and
work over the union of their keys, treating missing keys as probability 0.
"""

from __future__ import annotations

from typing import Hashable, List, Mapping, Sequence

import numpy as np
from scipy.stats import entropy

PMFLike = Mapping[Hashable, float]


def _aligned(pmfs: Sequence[PMFLike]) -> np.ndarray:
    """
    Stack PMFs into a (len(pmfs), n_keys) array over the union of keys.
    """
    keys: List[Hashable] = []
    seen = set()
    for pmf in pmfs:
        for k in pmf.keys():
            if k not in seen:
                seen.add(k)
                keys.append(k)
    out = np.zeros((len(pmfs), len(keys)), dtype=float)
    for r, pmf in enumerate(pmfs):
        for c, k in enumerate(keys):
            out[r, c] = float(pmf.get(k, 0.0) or 0.0)
    return out


def hellinger_from_vectors(p: np.ndarray, q: np.ndarray) -> float:
    p = np.clip(np.asarray(p, dtype=float), 0.0, None)
    q = np.clip(np.asarray(q, dtype=float), 0.0, None)
    return float(np.linalg.norm(np.sqrt(p) - np.sqrt(q)) / np.sqrt(2.0))


def hellinger_distance(p: PMFLike, q: PMFLike) -> float:
    """
    Hellinger distance (1/√2)·‖√p − √q‖₂ over the union of outcome keys.

    Symmetric, in [0, 1] for normalized inputs, 0 iff p and q agree on every
    key.
    """
    if not p and not q:
        return 0.0
    arr = _aligned([p, q])
    return hellinger_from_vectors(arr[0], arr[1])


def shannon_entropy_from_vector(p: np.ndarray) -> float:
    p = np.clip(np.asarray(p, dtype=float), 0.0, None)
    total = float(np.sum(p))
    if p.size == 0 or abs(total) < 1e-9:
        return 0.0
    # scipy normalizes the vector to unit mass before taking logs.
    return float(entropy(p, base=2))


def shannon_entropy(pmf: PMFLike) -> float:
    """
    Base-2 Shannon entropy; a PMF with non-unit mass is normalized first.
    """
    if not pmf:
        return 0.0
    return shannon_entropy_from_vector(
        np.fromiter((float(v) for v in pmf.values()), dtype=float)
    )


def generalized_js_from_matrix(rows: np.ndarray) -> float:
    """
    Generalized JS divergence of the rows of a (k, n) probability matrix.
    """
    rows = np.asarray(rows, dtype=float)
    k = rows.shape[0]
    if k < 2:
        return 0.0
    mixture = rows.mean(axis=0)
    h_m = shannon_entropy_from_vector(mixture)
    h_mean = float(np.mean([shannon_entropy_from_vector(r) for r in rows]))
    # Floating-point cancellation can push identical inputs slightly negative.
    return max(0.0, h_m - h_mean)


def generalized_js_divergence(pmfs: Sequence[PMFLike]) -> float:
    """
    Generalized Jensen-Shannon divergence, in bits.

    Computed as H(M) − mean(H(P_i)) with M the uniform mixture of the inputs;
    reduces to the standard JS divergence for two PMFs. Clamped to ≥ 0 and
    0 for fewer than two PMFs.
    """
    if len(pmfs) < 2:
        return 0.0
    return generalized_js_from_matrix(_aligned(list(pmfs)))


def js_distance(p: PMFLike, q: PMFLike) -> float:
    """Square root of the two-distribution JS divergence (a proper metric)."""
    return float(np.sqrt(generalized_js_divergence([p, q])))
