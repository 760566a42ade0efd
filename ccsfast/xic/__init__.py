"""Drift-time XIC extraction, merging and accumulation.

Key Features
------------
- Binary search on m/z-sorted centroids for O(log n) lookup
- Sparse chromatograms merged with a sorted two-pointer walk
- Per-voltage-group accumulation, averaged over frames
- Gaussian smoothing and half-maximum bounds

Examples
--------
>>> from ccsfast.xic import accumulate_voltage_groups
>>> accumulated = accumulate_voltage_groups(source, target_mz=500.25, ppm_tolerance=10.0)
>>> for group, xic in accumulated:
...     print(group.mean_voltage, xic.total_intensity())
"""

from .chromatogram import ExtractedIonChromatogram, merge_sorted_points
from .extraction import (
    binary_search_mz_bounds,
    binary_search_mz_range,
    build_drift_xic,
    sum_spectrum_in_window,
)
from .smoothing import half_max_bounds, sigma_for_smoothing_points, smooth_gaussian_1d
from .accumulation import VoltageSeparatedXics, accumulate_voltage_groups

__all__ = [
    # Chromatograms
    "ExtractedIonChromatogram",
    "merge_sorted_points",
    # Extraction kernels
    "binary_search_mz_range",
    "binary_search_mz_bounds",
    "build_drift_xic",
    "sum_spectrum_in_window",
    # Smoothing
    "smooth_gaussian_1d",
    "sigma_for_smoothing_points",
    "half_max_bounds",
    # Accumulation
    "VoltageSeparatedXics",
    "accumulate_voltage_groups",
]
