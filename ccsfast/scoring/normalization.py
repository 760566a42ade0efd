"""Score normalization into [0, 1].

Raw evidence (summed intensity, Jarque–Bera statistic, isotope distance,
parameter variance) lives on unbounded scales. Each is mapped into [0, 1] with
an arctangent transform calibrated by a "90% anchor": the raw value that should
map to exactly 0.9.

- normal mode (higher is better): ``atan(x * s) / (π/2)`` with
  ``s = tan(0.9 · π/2) / x90``
- inverse mode (lower is better): ``(π/2 - atan(x * s)) / (π/2)`` with
  ``s = tan(0.1 · π/2) / x90``

Examples
--------
>>> round(map_to_zero_one(100.0, False, 100.0), 6)
0.9
>>> round(map_to_zero_one(9.21, True, 9.21), 6)
0.9
"""

import math

from numba import njit

from ..constants import DETECTOR_SATURATION_INTENSITY


@njit
def map_to_zero_one(score: float, inverse: bool, ninety_percent_x: float) -> float:
    """Map a non-negative raw score into [0, 1] (anchor value → 0.9).

    Negative inputs are treated as 0. Infinite inputs map to 1 (normal) or 0
    (inverse).
    """
    if ninety_percent_x <= 0.0:
        raise ValueError("ninety_percent_x must be positive")

    x = max(score, 0.0)
    half_pi = math.pi / 2.0
    if inverse:
        scale = math.tan(0.1 * half_pi) / ninety_percent_x
        return (half_pi - math.atan(x * scale)) / half_pi
    else:
        scale = math.tan(0.9 * half_pi) / ninety_percent_x
        return math.atan(x * scale) / half_pi


def max_global_intensity(frame_count: int, accumulations: int) -> float:
    """Highest intensity a voltage group can digitize before saturating."""
    return DETECTOR_SATURATION_INTENSITY * frame_count * accumulations
