"""Sparse drift-scan chromatograms and their sorted merge.

An :class:`ExtractedIonChromatogram` holds only the drift scans with signal,
sorted by scan. Chromatograms of the same m/z window over frames of the same
voltage group are combined with a two-pointer merge keyed on scan index,
summing intensities where scans coincide. The merge is commutative and
associative, and the empty chromatogram is its identity.

Examples
--------
>>> a = ExtractedIonChromatogram(500.25, 400, np.array([10, 11]), np.array([5.0, 7.0]))
>>> b = ExtractedIonChromatogram(500.25, 400, np.array([11, 12]), np.array([1.0, 2.0]))
>>> (a + b).intensities
array([5., 8., 2.])
"""

from __future__ import annotations

from typing import Optional, Tuple

import numba as nb
import numpy as np

from ..exceptions import IncompatibleChromatogramError


@nb.njit
def merge_sorted_points(
    scans_a: np.ndarray,
    intensities_a: np.ndarray,
    saturated_a: np.ndarray,
    scans_b: np.ndarray,
    intensities_b: np.ndarray,
    saturated_b: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Two-pointer merge of two scan-sorted point lists.

    Intensities of coincident scans are summed and their saturation flags OR-ed.

    Returns
    -------
    scans, intensities, saturated : np.ndarray
        Merged point list, sorted by scan, without duplicate scans
    """
    n_a = len(scans_a)
    n_b = len(scans_b)
    out_scans = np.empty(n_a + n_b, dtype=np.int64)
    out_int = np.empty(n_a + n_b, dtype=np.float64)
    out_sat = np.empty(n_a + n_b, dtype=np.bool_)

    i = 0
    j = 0
    k = 0
    while i < n_a and j < n_b:
        if scans_a[i] < scans_b[j]:
            out_scans[k] = scans_a[i]
            out_int[k] = intensities_a[i]
            out_sat[k] = saturated_a[i]
            i += 1
        elif scans_b[j] < scans_a[i]:
            out_scans[k] = scans_b[j]
            out_int[k] = intensities_b[j]
            out_sat[k] = saturated_b[j]
            j += 1
        else:
            out_scans[k] = scans_a[i]
            out_int[k] = intensities_a[i] + intensities_b[j]
            out_sat[k] = saturated_a[i] or saturated_b[j]
            i += 1
            j += 1
        k += 1

    while i < n_a:
        out_scans[k] = scans_a[i]
        out_int[k] = intensities_a[i]
        out_sat[k] = saturated_a[i]
        i += 1
        k += 1

    while j < n_b:
        out_scans[k] = scans_b[j]
        out_int[k] = intensities_b[j]
        out_sat[k] = saturated_b[j]
        j += 1
        k += 1

    return out_scans[:k], out_int[:k], out_sat[:k]


class ExtractedIonChromatogram:
    """Sparse (drift scan → intensity) series for one m/z window.

    Attributes:
        mz: Center of the m/z window
        scan_count: Number of drift scans in the underlying frames
        scans: Sorted drift scan indices with signal
        intensities: Intensity at each scan
        saturated: Whether any contributing centroid was saturated
    """

    def __init__(
        self,
        mz: float,
        scan_count: int,
        scans: Optional[np.ndarray] = None,
        intensities: Optional[np.ndarray] = None,
        saturated: Optional[np.ndarray] = None,
    ):
        self.mz = float(mz)
        self.scan_count = int(scan_count)
        self.scans = np.zeros(0, dtype=np.int64) if scans is None else np.asarray(scans, dtype=np.int64)
        self.intensities = (
            np.zeros(0, dtype=np.float64) if intensities is None
            else np.asarray(intensities, dtype=np.float64)
        )
        if saturated is None:
            saturated = np.zeros(len(self.scans), dtype=np.bool_)
        self.saturated = np.asarray(saturated, dtype=np.bool_)

        if not (len(self.scans) == len(self.intensities) == len(self.saturated)):
            raise ValueError("Chromatogram arrays differ in length")
        if len(self.scans) > 1 and np.any(np.diff(self.scans) <= 0):
            raise ValueError("Chromatogram scans must be strictly increasing")

    @classmethod
    def empty(cls, mz: float, scan_count: int) -> 'ExtractedIonChromatogram':
        return cls(mz, scan_count)

    def __len__(self) -> int:
        return len(self.scans)

    def __repr__(self) -> str:
        return f"ExtractedIonChromatogram(mz={self.mz:.4f}, scans={self.scan_count}, points={len(self)})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, ExtractedIonChromatogram):
            return NotImplemented
        return (
            self.mz == other.mz
            and self.scan_count == other.scan_count
            and np.array_equal(self.scans, other.scans)
            and np.allclose(self.intensities, other.intensities)
            and np.array_equal(self.saturated, other.saturated)
        )

    def __add__(self, other: 'ExtractedIonChromatogram') -> 'ExtractedIonChromatogram':
        return self.merge(other)

    def merge(self, other: 'ExtractedIonChromatogram') -> 'ExtractedIonChromatogram':
        """Sum two chromatograms of the same m/z window.

        Raises:
            IncompatibleChromatogramError: If scan count or m/z differ
        """
        if self.scan_count != other.scan_count:
            raise IncompatibleChromatogramError(
                f"Cannot merge chromatograms with {self.scan_count} and {other.scan_count} scans"
            )
        if self.mz != other.mz:
            raise IncompatibleChromatogramError(
                f"Cannot merge chromatograms at m/z {self.mz} and {other.mz}"
            )
        scans, intensities, saturated = merge_sorted_points(
            self.scans, self.intensities, self.saturated,
            other.scans, other.intensities, other.saturated,
        )
        return ExtractedIonChromatogram(self.mz, self.scan_count, scans, intensities, saturated)

    def scaled(self, factor: float) -> 'ExtractedIonChromatogram':
        return ExtractedIonChromatogram(
            self.mz, self.scan_count, self.scans.copy(), self.intensities * factor, self.saturated.copy()
        )

    def to_dense(self) -> np.ndarray:
        """Zero-padded intensity vector of length ``scan_count``."""
        dense = np.zeros(self.scan_count, dtype=np.float64)
        dense[self.scans] = self.intensities
        return dense

    def total_intensity(self) -> float:
        return float(np.sum(self.intensities))
