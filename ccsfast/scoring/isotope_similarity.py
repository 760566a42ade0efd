"""Similarity between observed and theoretical isotope envelopes.

All metrics take two equal-length, non-negative vectors and return a score in
[0, 1] (1 = identical shape). Callers normalize the observed vector by its
largest component first, and every metric is invariant to uniform scaling of
either input.

Performance
-----------
All metrics are Numba-compiled and allocation-free except the L2 variant.

Examples
--------
>>> observed = np.array([1.0, 0.55, 0.16])
>>> theoretical = np.array([1.0, 0.54, 0.17])
>>> isotope_similarity(observed, theoretical, IsotopicScoreMethod.ANGLE)
"""

from __future__ import annotations

import math
from enum import Enum

import numpy as np
from numba import njit

from .normalization import map_to_zero_one

# Euclidean distance (max-normalized envelopes) mapped to 0.9
EUCLIDEAN_NINETY_PERCENT_DISTANCE = 0.03


class IsotopicScoreMethod(Enum):
    """Similarity metric for isotopic-profile scoring."""
    ANGLE = "angle"
    EUCLIDEAN = "euclidean"
    PEARSON = "pearson"
    BHATTACHARYYA = "bhattacharyya"
    EUCLIDEAN_ALTERNATIVE = "euclidean_alternative"


@njit
def _normalize_by_max(v: np.ndarray) -> np.ndarray:
    peak = np.max(v)
    if peak <= 0.0:
        return np.zeros(len(v), dtype=np.float64)
    return v / peak


@njit
def angle_score(observed: np.ndarray, theoretical: np.ndarray) -> float:
    """Cosine angle mapped linearly: (π/2 - acos(cos θ)) / (π/2)."""
    dot = 0.0
    norm_o = 0.0
    norm_t = 0.0
    for i in range(len(observed)):
        dot += observed[i] * theoretical[i]
        norm_o += observed[i] * observed[i]
        norm_t += theoretical[i] * theoretical[i]
    if norm_o == 0.0 or norm_t == 0.0:
        return 0.0

    cos = max(-1.0, min(1.0, dot / (math.sqrt(norm_o) * math.sqrt(norm_t))))
    half_pi = math.pi / 2.0
    return max(0.0, (half_pi - math.acos(cos)) / half_pi)


@njit
def euclidean_score(observed: np.ndarray, theoretical: np.ndarray) -> float:
    """Distance of max-normalized envelopes, inverse-mapped (0.03 → 0.9)."""
    o = _normalize_by_max(observed)
    t = _normalize_by_max(theoretical)
    d2 = 0.0
    for i in range(len(o)):
        d2 += (o[i] - t[i]) ** 2
    return map_to_zero_one(math.sqrt(d2), True, EUCLIDEAN_NINETY_PERCENT_DISTANCE)


@njit
def euclidean_alternative_score(observed: np.ndarray, theoretical: np.ndarray) -> float:
    """Distance of L2-normalized envelopes, inverse-mapped (0.03 → 0.9)."""
    norm_o = math.sqrt(np.sum(observed * observed))
    norm_t = math.sqrt(np.sum(theoretical * theoretical))
    if norm_o == 0.0 or norm_t == 0.0:
        return 0.0
    d2 = 0.0
    for i in range(len(observed)):
        d2 += (observed[i] / norm_o - theoretical[i] / norm_t) ** 2
    return map_to_zero_one(math.sqrt(d2), True, EUCLIDEAN_NINETY_PERCENT_DISTANCE)


@njit
def pearson_score(observed: np.ndarray, theoretical: np.ndarray) -> float:
    """Pearson correlation, negative correlation clipped to 0."""
    n = len(observed)
    if n < 2:
        return 0.0
    mean_o = np.mean(observed)
    mean_t = np.mean(theoretical)
    cov = 0.0
    var_o = 0.0
    var_t = 0.0
    for i in range(n):
        do = observed[i] - mean_o
        dt = theoretical[i] - mean_t
        cov += do * dt
        var_o += do * do
        var_t += dt * dt
    if var_o <= 0.0 or var_t <= 0.0:
        return 0.0
    r = cov / math.sqrt(var_o * var_t)
    return max(0.0, min(1.0, r))


@njit
def bhattacharyya_score(observed: np.ndarray, theoretical: np.ndarray) -> float:
    """Bhattacharyya coefficient of the envelopes viewed as distributions."""
    sum_o = np.sum(observed)
    sum_t = np.sum(theoretical)
    if sum_o <= 0.0 or sum_t <= 0.0:
        return 0.0
    bc = 0.0
    for i in range(len(observed)):
        bc += math.sqrt((observed[i] / sum_o) * (theoretical[i] / sum_t))
    return min(1.0, bc)


def isotope_similarity(
    observed: np.ndarray,
    theoretical: np.ndarray,
    method: IsotopicScoreMethod = IsotopicScoreMethod.ANGLE,
) -> float:
    """Score the observed isotope envelope against the theoretical one.

    Args:
        observed: Observed isotope intensities
        theoretical: Theoretical relative abundances (same isotopes, same order)
        method: Similarity metric

    Returns:
        Similarity in [0, 1]

    Raises:
        ValueError: If the vectors differ in length or the method is unknown
    """
    observed = np.asarray(observed, dtype=np.float64)
    theoretical = np.asarray(theoretical, dtype=np.float64)
    if len(observed) != len(theoretical):
        raise ValueError(
            f"Isotope vectors differ in length: {len(observed)} vs {len(theoretical)}"
        )
    if len(observed) == 0:
        return 0.0

    observed = _normalize_by_max(observed)
    theoretical = _normalize_by_max(theoretical)

    if method == IsotopicScoreMethod.ANGLE:
        return angle_score(observed, theoretical)
    elif method == IsotopicScoreMethod.EUCLIDEAN:
        return euclidean_score(observed, theoretical)
    elif method == IsotopicScoreMethod.PEARSON:
        return pearson_score(observed, theoretical)
    elif method == IsotopicScoreMethod.BHATTACHARYYA:
        return bhattacharyya_score(observed, theoretical)
    elif method == IsotopicScoreMethod.EUCLIDEAN_ALTERNATIVE:
        return euclidean_alternative_score(observed, theoretical)
    else:
        raise ValueError(f"Unknown isotopic score method: {method}")
