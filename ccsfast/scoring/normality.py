"""Normality testing of arrival-time peak shapes.

A well-behaved arrival-time distribution is close to Gaussian. The drift
profile around the apex is turned into a sample of a random variable (each
scan position repeated in proportion to its intensity), and the Jarque–Bera
statistic of that sample measures how far skewness and kurtosis deviate from
a normal distribution:

    JB = n / 6 · (S² + (K - 3)² / 4)

with population skewness S and (non-excess) kurtosis K. JB is asymptotically
χ²(2); 9.21 is its 99th percentile.

Examples
--------
>>> window = np.array([1.0, 4.0, 9.0, 4.0, 1.0])
>>> samples = peak_to_random_variable(window, 100)
>>> jb = jarque_bera(samples)
"""

import numpy as np
from numba import njit

# 99th percentile of chi-square with 2 degrees of freedom
JARQUE_BERA_CRITICAL_99 = 9.21


@njit
def peak_to_random_variable(intensities: np.ndarray, n_samples: int = 100) -> np.ndarray:
    """Sample positions 0..len-1 with frequency proportional to intensity.

    Each position ``i`` is repeated ``ceil(n_samples * I_i / sum(I))`` times,
    so every position with signal contributes at least one sample.

    Returns
    -------
    samples : np.ndarray (float64)
        Empty if the window holds no positive intensity
    """
    total = 0.0
    for i in range(len(intensities)):
        if intensities[i] > 0.0:
            total += intensities[i]
    if total <= 0.0:
        return np.zeros(0, dtype=np.float64)

    counts = np.zeros(len(intensities), dtype=np.int64)
    n_total = 0
    for i in range(len(intensities)):
        if intensities[i] > 0.0:
            counts[i] = int(np.ceil(n_samples * intensities[i] / total))
            n_total += counts[i]

    samples = np.empty(n_total, dtype=np.float64)
    k = 0
    for i in range(len(intensities)):
        for _ in range(counts[i]):
            samples[k] = i
            k += 1
    return samples


@njit
def sample_moments(samples: np.ndarray) -> tuple:
    """Population skewness and (non-excess) kurtosis.

    Returns (nan, nan) for fewer than 2 samples or zero variance.
    """
    n = len(samples)
    if n < 2:
        return np.nan, np.nan

    mean = np.mean(samples)
    m2 = 0.0
    m3 = 0.0
    m4 = 0.0
    for i in range(n):
        d = samples[i] - mean
        d2 = d * d
        m2 += d2
        m3 += d2 * d
        m4 += d2 * d2
    m2 /= n
    m3 /= n
    m4 /= n
    if m2 <= 1e-300:
        return np.nan, np.nan

    return m3 / m2 ** 1.5, m4 / (m2 * m2)


@njit
def jarque_bera(samples: np.ndarray) -> float:
    """Jarque–Bera statistic of a sample.

    Returns inf for degenerate samples (fewer than 2 values or all equal),
    which no normality test should accept.
    """
    skewness, kurtosis = sample_moments(samples)
    if np.isnan(skewness):
        return np.inf
    n = len(samples)
    return n / 6.0 * (skewness * skewness + (kurtosis - 3.0) ** 2 / 4.0)
