"""Frame data sources.

The cross-section pipeline never reads instrument files itself. It talks to a
:class:`FrameDataSource`, which exposes per-frame acquisition parameters,
drift-scan XICs, and local mass spectra. Instrument readers implement this
interface; :class:`InMemoryFrameSource` keeps centroided frames in memory and
is what synthetic datasets and the test suite use.

Frame and scan indices are 0-based. Frame and scan ranges are inclusive
``(first, last)`` tuples.

Examples
--------
>>> source = InMemoryFrameSource()
>>> params = FrameParams(voltage=1500.0, temperature=298.0, pressure=4.0,
...                      scan_count=400, tof_width_seconds=1e-4)
>>> source.add_frame(params, scans, mzs, intensities)
>>> xic = source.get_xic(500.25, 10.0, (0, 0), (0, 399))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, NamedTuple, Tuple

import numpy as np

from ..constants import DETECTOR_SATURATION_INTENSITY
from ..exceptions import DataIntegrityError
from ..xic.extraction import build_drift_xic, sum_spectrum_in_window


@dataclass(frozen=True)
class FrameParams:
    """Acquisition parameters of one IMS frame.

    Attributes:
        voltage: Drift-tube voltage (V)
        temperature: Drift-tube temperature (K)
        pressure: Drift-tube pressure (Torr)
        scan_count: Number of drift scans (TOF pulses) in the frame
        tof_width_seconds: Period of one drift scan (s)
        accumulations: Number of IMS separations summed into the frame
    """

    voltage: float
    temperature: float
    pressure: float
    scan_count: int
    tof_width_seconds: float
    accumulations: int = 1

    def validate(self):
        """Raise DataIntegrityError for physically impossible parameters."""
        if self.scan_count <= 0:
            raise DataIntegrityError(f"Frame has no drift scans: {self.scan_count}")
        if self.tof_width_seconds <= 0:
            raise DataIntegrityError(f"Invalid TOF width: {self.tof_width_seconds}")
        if self.temperature <= 0:
            raise DataIntegrityError(f"Invalid temperature (K): {self.temperature}")
        if self.pressure <= 0:
            raise DataIntegrityError(f"Invalid pressure (Torr): {self.pressure}")
        if self.accumulations <= 0:
            raise DataIntegrityError(f"Invalid accumulation count: {self.accumulations}")


class XicData(NamedTuple):
    """Sparse drift-scan XIC: only scans with non-zero intensity, sorted by scan."""
    scans: np.ndarray
    intensities: np.ndarray
    saturated: np.ndarray


class FrameDataSource:
    """Interface between the pipeline and an instrument dataset.

    Subclasses must implement all four methods.
    """

    def frame_count(self) -> int:
        raise NotImplementedError

    def frame_params(self, frame_index: int) -> FrameParams:
        raise NotImplementedError

    def get_xic(
        self,
        mz: float,
        ppm_tolerance: float,
        frame_range: Tuple[int, int],
        scan_range: Tuple[int, int],
    ) -> XicData:
        """Drift-scan XIC summed over ``frame_range`` inside ``scan_range``."""
        raise NotImplementedError

    def get_spectrum(
        self,
        frame_range: Tuple[int, int],
        scan_range: Tuple[int, int],
        mz_range: Tuple[float, float],
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Mass spectrum (sorted m/z, summed intensity) of a frame/scan window."""
        raise NotImplementedError


class InMemoryFrameSource(FrameDataSource):
    """FrameDataSource backed by centroid arrays held in memory.

    Each frame stores (m/z, intensity, scan) arrays sorted by m/z, which is
    what :func:`build_drift_xic` requires for its binary search.
    """

    def __init__(self, saturation_intensity: float = DETECTOR_SATURATION_INTENSITY):
        self.saturation_intensity = saturation_intensity
        self._params: List[FrameParams] = []
        self._frames: List[Tuple[np.ndarray, np.ndarray, np.ndarray]] = []

    def add_frame(
        self,
        params: FrameParams,
        scans: np.ndarray,
        mzs: np.ndarray,
        intensities: np.ndarray,
    ) -> int:
        """Append a frame and return its index.

        Raises:
            ValueError: If the centroid arrays differ in length or a scan index
                is outside the frame
        """
        scans = np.asarray(scans, dtype=np.int64)
        mzs = np.asarray(mzs, dtype=np.float64)
        intensities = np.asarray(intensities, dtype=np.float64)
        if not (len(scans) == len(mzs) == len(intensities)):
            raise ValueError(
                f"Centroid arrays differ in length: {len(scans)}, {len(mzs)}, {len(intensities)}"
            )
        if len(scans) > 0 and (scans.min() < 0 or scans.max() >= params.scan_count):
            raise ValueError(f"Scan index outside 0..{params.scan_count - 1}")

        order = np.argsort(mzs, kind="stable")
        self._params.append(params)
        self._frames.append((mzs[order], intensities[order], scans[order]))
        return len(self._frames) - 1

    def frame_count(self) -> int:
        return len(self._frames)

    def frame_params(self, frame_index: int) -> FrameParams:
        return self._params[frame_index]

    def _frame_indices(self, frame_range: Tuple[int, int]) -> range:
        first, last = frame_range
        if first < 0 or last >= len(self._frames) or first > last:
            raise ValueError(f"Invalid frame range {frame_range} for {len(self._frames)} frames")
        return range(first, last + 1)

    def get_xic(self, mz, ppm_tolerance, frame_range, scan_range) -> XicData:
        frames = self._frame_indices(frame_range)
        n_scans = max(self._params[f].scan_count for f in frames)
        summed = np.zeros(n_scans, dtype=np.float64)
        saturated = np.zeros(n_scans, dtype=np.bool_)

        for f in frames:
            params = self._params[f]
            frame_mz, frame_int, frame_scan = self._frames[f]
            xic, sat = build_drift_xic(
                frame_mz, frame_int, frame_scan,
                mz, ppm_tolerance,
                scan_range[0], scan_range[1],
                params.scan_count,
                self.saturation_intensity * params.accumulations,
            )
            summed[:params.scan_count] += xic
            saturated[:params.scan_count] |= sat

        nonzero = np.nonzero(summed > 0)[0]
        return XicData(nonzero.astype(np.int64), summed[nonzero], saturated[nonzero])

    def get_spectrum(self, frame_range, scan_range, mz_range):
        frames = self._frame_indices(frame_range)
        parts_mz = []
        parts_int = []
        for f in frames:
            frame_mz, frame_int, frame_scan = self._frames[f]
            sel_mz, sel_int = sum_spectrum_in_window(
                frame_mz, frame_int, frame_scan,
                mz_range[0], mz_range[1],
                scan_range[0], scan_range[1],
            )
            parts_mz.append(sel_mz)
            parts_int.append(sel_int)

        if not parts_mz:
            return np.zeros(0, dtype=np.float64), np.zeros(0, dtype=np.float64)

        all_mz = np.concatenate(parts_mz)
        all_int = np.concatenate(parts_int)
        unique_mz, inverse = np.unique(all_mz, return_inverse=True)
        summed = np.bincount(inverse, weights=all_int, minlength=len(unique_mz))
        return unique_mz, summed.astype(np.float64)
