"""Least-squares line with influence diagnostics and outlier removal.

The mobility of a track is the slope of drift time against P/(V·T). With only
a handful of voltage groups, a single mis-assigned peak can wreck the fit, so
:class:`FitLine` keeps every input point, tracks which ones are still active,
and can iteratively drop the most influential point (Cook's distance) until the
fit is good enough or too few points remain.

Statistics
----------
For n active points with fitted line y = slope·x + intercept:

- MSE = SS_res / (n - 2)  (0 for n <= 2)
- R² = 1 - SS_res / SS_tot
- leverage h_i = 1/n + (x_i - x̄)² / S_xx
- Cook's D_i = e_i² / (p·MSE) · h_i / (1 - h_i)²,  p = 2

Degenerate cases never raise: a vertical point cloud (S_xx = 0) fits slope 0
and R² 0; a constant y fits R² 1 when the residuals vanish; Cook's distance is
0 when MSE is 0 or the leverage reaches 1.

Examples
--------
>>> line = FitLine(np.array([0.010, 0.012, 0.014]), np.array([1.0, 1.2, 1.4]))
>>> round(line.slope, 6), round(line.r_squared, 6)
(100.0, 1.0)
>>> removed = line.robust_refine(min_r2=0.9, min_points=3)
"""

from __future__ import annotations

from typing import List

import numpy as np
from numba import njit

# Parameters of a straight line (slope, intercept)
N_LINE_PARAMETERS = 2


# ========== Numba kernels ==========

@njit
def _linear_fit(x, y):
    """
    Ordinary least squares: y = a*x + b

    Centered sums; a degenerate x spread gives a flat line through the mean.
    """
    n = x.size
    if n == 0:
        return 0.0, 0.0
    mx = 0.0
    my = 0.0
    for i in range(n):
        mx += x[i]
        my += y[i]
    mx /= n
    my /= n

    sxx = 0.0
    sxy = 0.0
    for i in range(n):
        dx = x[i] - mx
        sxx += dx*dx
        sxy += dx*(y[i] - my)

    if sxx <= 0.0:
        return 0.0, my
    a = sxy / sxx
    b = my - a*mx
    return a, b


@njit
def fit_statistics(x, y):
    """Fit a line and return (slope, intercept, r_squared, mse)."""
    n = x.size
    a, b = _linear_fit(x, y)
    if n == 0:
        return a, b, 0.0, 0.0

    my = 0.0
    mx = 0.0
    for i in range(n):
        my += y[i]
        mx += x[i]
    my /= n
    mx /= n

    ss_res = 0.0
    ss_tot = 0.0
    sxx = 0.0
    for i in range(n):
        e = y[i] - (a*x[i] + b)
        ss_res += e*e
        d = y[i] - my
        ss_tot += d*d
        dx = x[i] - mx
        sxx += dx*dx

    if sxx <= 0.0:
        r2 = 0.0
    elif ss_tot <= 0.0:
        r2 = 1.0 if ss_res <= 1e-300 else 0.0
    else:
        r2 = 1.0 - ss_res / ss_tot

    mse = ss_res / (n - N_LINE_PARAMETERS) if n > N_LINE_PARAMETERS else 0.0
    return a, b, r2, mse


@njit
def leverages(x):
    """Hat-matrix diagonal of simple linear regression."""
    n = x.size
    h = np.zeros(n, dtype=np.float64)
    if n == 0:
        return h
    mx = np.mean(x)
    sxx = 0.0
    for i in range(n):
        sxx += (x[i] - mx) ** 2
    for i in range(n):
        if sxx > 0.0:
            h[i] = 1.0 / n + (x[i] - mx) ** 2 / sxx
        else:
            h[i] = 1.0 / n
    return h


@njit
def cooks_distances(x, y, slope, intercept, mse):
    """Cook's distance of every point for the given fit."""
    n = x.size
    d = np.zeros(n, dtype=np.float64)
    if mse <= 0.0:
        return d
    h = leverages(x)
    for i in range(n):
        if h[i] >= 1.0:
            continue
        e = y[i] - (slope*x[i] + intercept)
        d[i] = e*e / (N_LINE_PARAMETERS * mse) * h[i] / ((1.0 - h[i]) ** 2)
    return d


# ========== FitLine ==========

class FitLine:
    """Least-squares line over a point set with removable outliers.

    Points are never deleted from ``x``/``y``; removal only flips the active
    mask, and ``outlier_indices`` lists removed points in removal order.
    """

    def __init__(self, x, y):
        self.x = np.asarray(x, dtype=np.float64)
        self.y = np.asarray(y, dtype=np.float64)
        if self.x.shape != self.y.shape or self.x.ndim != 1:
            raise ValueError(f"x and y must be 1-D arrays of equal length, got {self.x.shape} and {self.y.shape}")

        self.active = np.ones(len(self.x), dtype=np.bool_)
        self.outlier_indices: List[int] = []
        self._refit()

    def _refit(self):
        x, y = self.active_points()
        self.slope, self.intercept, self.r_squared, self.mse = fit_statistics(x, y)

    def __len__(self) -> int:
        return int(np.count_nonzero(self.active))

    def __repr__(self) -> str:
        return (
            f"FitLine(n={len(self)}, slope={self.slope:.6g}, "
            f"intercept={self.intercept:.6g}, r2={self.r_squared:.4f})"
        )

    def active_points(self):
        return self.x[self.active], self.y[self.active]

    def predict(self, x):
        return self.slope * np.asarray(x, dtype=np.float64) + self.intercept

    def residuals(self) -> np.ndarray:
        x, y = self.active_points()
        return y - self.predict(x)

    def leverages(self) -> np.ndarray:
        return leverages(self.active_points()[0])

    def cooks_distances(self) -> np.ndarray:
        """Cook's distance per active point (order of ``active_points``)."""
        x, y = self.active_points()
        return cooks_distances(x, y, self.slope, self.intercept, self.mse)

    def _remove(self, active_position: int) -> int:
        index = int(np.flatnonzero(self.active)[active_position])
        self.active[index] = False
        self.outlier_indices.append(index)
        return index

    def remove_highest_cook(self) -> int:
        """Remove the active point with the largest Cook's distance and refit.

        Returns:
            Index (into the input arrays) of the removed point

        Raises:
            ValueError: If no point is active
        """
        if len(self) == 0:
            raise ValueError("No active points to remove")
        index = self._remove(int(np.argmax(self.cooks_distances())))
        self._refit()
        return index

    def robust_refine(self, min_r2: float, min_points: int) -> List[int]:
        """Drop the most influential point while R² < ``min_r2`` and more than
        ``min_points`` points remain.

        Terminates after at most ``len(self) - min_points`` removals.

        Returns:
            Indices of the points removed by this call
        """
        removed = []
        while self.r_squared < min_r2 and len(self) > min_points:
            removed.append(self.remove_highest_cook())
        return removed

    def remove_above_threshold(self, threshold: float) -> List[int]:
        """Remove in one pass every active point whose Cook's distance exceeds ``threshold``."""
        distances = self.cooks_distances()
        positions = np.flatnonzero(distances > threshold)
        removed = [self._remove(int(p) - k) for k, p in enumerate(positions)]
        if removed:
            self._refit()
        return removed
