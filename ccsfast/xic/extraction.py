"""Fast XIC extraction from m/z-sorted IMS frame data.

One IMS frame is stored as three parallel centroid arrays (m/z, intensity,
drift scan) sorted ascending by m/z. Extracting the drift-time XIC of a target
is then a binary search for the m/z window followed by direct indexing into a
per-scan intensity vector, so no sorting is needed.

Performance
-----------
O(log n + k) per frame, where k is the number of centroids inside the window.

Examples
--------
>>> start, end = binary_search_mz_range(mz_array, 500.25, ppm_tolerance=10.0)
>>> intensities, saturated = build_drift_xic(
...     mz_array, intensity_array, scan_array, 500.25, 10.0,
...     scan_low=0, scan_high=399, n_scans=400, saturation_intensity=255.0
... )
"""

from typing import Tuple

import numba as nb
import numpy as np


@nb.njit
def binary_search_mz_range(
    mz_array: np.ndarray,
    target_mz: float,
    ppm_tolerance: float
) -> Tuple[int, int]:
    """Find the index range for centroids matching target m/z using binary search.

    Parameters
    ----------
    mz_array : np.ndarray
        Sorted array of m/z values
    target_mz : float
        Target m/z to search for
    ppm_tolerance : float
        Tolerance in parts per million

    Returns
    -------
    start_idx : int
        Start index (inclusive)
    end_idx : int
        End index (exclusive, Python convention)

    Examples
    --------
    >>> mz_array = np.array([100.0, 200.0, 200.1, 300.0])
    >>> start, end = binary_search_mz_range(mz_array, 200.0, 500.0)
    >>> # Returns (1, 3) - indices 1 and 2 match within 500 ppm
    """
    if len(mz_array) == 0 or target_mz <= 0:
        return 0, 0

    mz_tol = target_mz * ppm_tolerance / 1e6
    return binary_search_mz_bounds(mz_array, target_mz - mz_tol, target_mz + mz_tol)


@nb.njit
def binary_search_mz_bounds(
    mz_array: np.ndarray,
    low_mz: float,
    high_mz: float
) -> Tuple[int, int]:
    """Index range [start, end) of sorted ``mz_array`` within [low_mz, high_mz]."""
    # Lower bound
    left, right = 0, len(mz_array)
    while left < right:
        mid = (left + right) // 2
        if mz_array[mid] < low_mz:
            left = mid + 1
        else:
            right = mid
    start_idx = left

    # Upper bound
    left, right = start_idx, len(mz_array)
    while left < right:
        mid = (left + right) // 2
        if mz_array[mid] <= high_mz:
            left = mid + 1
        else:
            right = mid
    end_idx = left

    return start_idx, end_idx


@nb.njit
def build_drift_xic(
    mz_array: np.ndarray,
    intensity_array: np.ndarray,
    scan_array: np.ndarray,
    target_mz: float,
    ppm_tolerance: float,
    scan_low: int,
    scan_high: int,
    n_scans: int,
    saturation_intensity: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Build the drift-scan XIC of one frame by binary search + direct indexing.

    Parameters
    ----------
    mz_array : np.ndarray
        Sorted m/z values of the frame
        CRITICAL: Must be sorted ascending!
    intensity_array : np.ndarray
        Corresponding intensities
    scan_array : np.ndarray (int)
        Drift scan index for each centroid (0-based)
    target_mz : float
        Center of the m/z window
    ppm_tolerance : float
        Half-width of the m/z window in ppm
    scan_low, scan_high : int
        Inclusive drift-scan window
    n_scans : int
        Number of drift scans in the frame
    saturation_intensity : float
        Raw intensity at which the detector saturates

    Returns
    -------
    xic : np.ndarray (float64)
        Summed intensity per scan, length n_scans
    saturated : np.ndarray (bool)
        True where any contributing centroid reached the saturation ceiling
    """
    xic = np.zeros(n_scans, dtype=np.float64)
    saturated = np.zeros(n_scans, dtype=np.bool_)

    start_idx, end_idx = binary_search_mz_range(mz_array, target_mz, ppm_tolerance)
    for i in range(start_idx, end_idx):
        scan_idx = scan_array[i]
        if scan_low <= scan_idx <= scan_high and 0 <= scan_idx < n_scans:
            xic[scan_idx] += intensity_array[i]
            if intensity_array[i] >= saturation_intensity:
                saturated[scan_idx] = True

    return xic, saturated


@nb.njit
def sum_spectrum_in_window(
    mz_array: np.ndarray,
    intensity_array: np.ndarray,
    scan_array: np.ndarray,
    low_mz: float,
    high_mz: float,
    scan_low: int,
    scan_high: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """Collect (m/z, intensity) centroids of one frame inside an m/z and scan window.

    Returns the selected centroids in m/z order (input is m/z sorted). Identical
    m/z values are not merged here; callers aggregate across frames.
    """
    start_idx, end_idx = binary_search_mz_bounds(mz_array, low_mz, high_mz)
    n = end_idx - start_idx
    out_mz = np.empty(n, dtype=np.float64)
    out_int = np.empty(n, dtype=np.float64)
    count = 0
    for i in range(start_idx, end_idx):
        if scan_low <= scan_array[i] <= scan_high:
            out_mz[count] = mz_array[i]
            out_int[count] = intensity_array[i]
            count += 1
    return out_mz[:count], out_int[:count]
