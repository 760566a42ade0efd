"""Confidence scoring of detected arrival-time peaks.

Each :class:`StandardImsPeak` receives three independent scores in [0, 1]:

- **Intensity**: summed peak intensity against one third of the group's
  digitizer ceiling (255 × frames × accumulations), normal mapping
- **Peak shape**: Jarque–Bera normality of the drift profile in a window of
  ± drift-time tolerance around the apex, inverse mapping (9.21 → 0.9)
- **Isotopic profile**: similarity between the envelope observed at the
  theoretical isotope m/z values and the theoretical envelope (targets with
  known composition only)

A score of 0 means "fails or unknown". All functions are stateless.

Examples
--------
>>> global_max = max_global_intensity(group.frame_count, group.accumulations)
>>> scores = score_feature(source, group, peak, target, drift_time_tolerance_ms=0.5)
>>> scores.intensity_score, scores.peak_shape_score, scores.isotopic_score
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from ..data.source import FrameDataSource
from ..exceptions import MissingCompositionError
from ..features.peak_detection import StandardImsPeak
from ..targets import ImsTarget, has_composition, target_descriptor, target_mz
from ..voltage.group import VoltageGroup
from .isotope_similarity import IsotopicScoreMethod, isotope_similarity
from .normality import JARQUE_BERA_CRITICAL_99, jarque_bera, peak_to_random_variable
from .normalization import map_to_zero_one, max_global_intensity

# Apex and its neighbours must exceed this fraction of the global maximum
PEAK_SHAPE_NOISE_FRACTION = 0.0001

# Minimum number of drift scans in the peak-shape window
MIN_PEAK_SHAPE_POINTS = 3

# Samples drawn when converting a drift profile into a random variable
PEAK_SHAPE_SAMPLES = 100

# Summed isotope intensity below this fraction of the global maximum scores 0
ISOTOPIC_NOISE_FRACTION = 0.0003


@dataclass(frozen=True)
class PeakScores:
    """Composite confidence of one peak; each component in [0, 1]."""
    intensity_score: float = 0.0
    isotopic_score: float = 0.0
    peak_shape_score: float = 0.0

    def __post_init__(self):
        for name in ("intensity_score", "isotopic_score", "peak_shape_score"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")


@dataclass(frozen=True)
class ObservedPeak:
    """A scored peak tied to its voltage group (by id)."""
    peak_id: int
    voltage_group_id: int
    peak: StandardImsPeak
    scores: PeakScores


# ========== Intensity ==========

def intensity_score(peak: StandardImsPeak, global_max_intensity: float) -> float:
    """Summed intensity mapped so that a third of the ceiling scores 0.9."""
    if global_max_intensity <= 0:
        return 0.0
    return map_to_zero_one(peak.summed_intensity, False, global_max_intensity / 3.0)


# ========== Peak shape ==========

def drift_window_half_width(drift_time_tolerance_ms: float, tof_width_seconds: float) -> int:
    """Number of drift scans covering the drift-time tolerance."""
    if tof_width_seconds <= 0:
        raise ValueError(f"TOF width must be positive, got {tof_width_seconds}")
    return int(math.ceil(drift_time_tolerance_ms / 1000.0 / tof_width_seconds - 1e-9))


def peak_shape_score(
    source: FrameDataSource,
    group: VoltageGroup,
    peak: StandardImsPeak,
    drift_time_tolerance_ms: float,
    global_max_intensity: float,
) -> float:
    """Normality of the drift profile around the apex.

    Returns 0 when the window leaves the scan range, holds fewer than
    ``MIN_PEAK_SHAPE_POINTS`` scans, or when the apex or either neighbour is
    below the noise floor.
    """
    half_width = drift_window_half_width(drift_time_tolerance_ms, group.mean_tof_width_seconds)
    low = peak.apex_scan - half_width
    high = peak.apex_scan + half_width
    if low < 0 or high >= group.scan_count:
        return 0.0
    if high - low + 1 < MIN_PEAK_SHAPE_POINTS:
        return 0.0

    data = source.get_xic(peak.apex_mz, peak.mz_tolerance_ppm, group.frame_range, (low, high))
    window = np.zeros(high - low + 1, dtype=np.float64)
    window[data.scans - low] = data.intensities / group.frame_count

    noise_floor = global_max_intensity * PEAK_SHAPE_NOISE_FRACTION
    if np.any(window[half_width - 1:half_width + 2] < noise_floor):
        return 0.0

    samples = peak_to_random_variable(window, PEAK_SHAPE_SAMPLES)
    return map_to_zero_one(jarque_bera(samples), True, JARQUE_BERA_CRITICAL_99)


# ========== Isotopic profile ==========

def observed_isotope_envelope(
    source: FrameDataSource,
    group: VoltageGroup,
    peak: StandardImsPeak,
    target: ImsTarget,
) -> tuple:
    """Observed intensity at each theoretical isotope of the target.

    The isotope m/z values are shifted by the observed m/z error of the peak
    apex and queried within the peak's m/z tolerance and drift-time FWHM.

    Returns:
        (intensities, saturated) arrays, intensities averaged per frame

    Raises:
        MissingCompositionError: If the target has no isotope profile
    """
    if not has_composition(target):
        raise MissingCompositionError(
            f"Isotopic scoring needs composition, none known for {target_descriptor(target)}"
        )

    profile = target.isotope_profile
    mz_shift = peak.apex_mz - target_mz(target)
    scan_range = peak.fwhm_scan_range
    scan_range = (max(0, scan_range[0]), min(group.scan_count - 1, scan_range[1]))

    intensities = np.zeros(len(profile), dtype=np.float64)
    saturated = np.zeros(len(profile), dtype=np.bool_)
    for i, offset in enumerate(profile.mz_offsets):
        isotope_mz = target_mz(target) + offset + mz_shift
        data = source.get_xic(isotope_mz, peak.mz_tolerance_ppm, group.frame_range, scan_range)
        intensities[i] = np.sum(data.intensities) / group.frame_count
        saturated[i] = bool(np.any(data.saturated))

    return intensities, saturated


def isotopic_profile_score(
    source: FrameDataSource,
    group: VoltageGroup,
    peak: StandardImsPeak,
    target: ImsTarget,
    global_max_intensity: float,
    method: IsotopicScoreMethod = IsotopicScoreMethod.ANGLE,
) -> float:
    """Similarity of observed and theoretical isotope envelopes.

    Saturated isotopes are masked from both envelopes. Returns 0 if the total
    observed intensity is below the noise fraction of the global maximum or if
    fewer than two unsaturated isotopes remain.

    Raises:
        MissingCompositionError: If the target has no isotope profile
    """
    observed, saturated = observed_isotope_envelope(source, group, peak, target)

    if np.sum(observed) < global_max_intensity * ISOTOPIC_NOISE_FRACTION:
        return 0.0

    keep = ~saturated
    if np.count_nonzero(keep) < 2:
        return 0.0

    theoretical = target.isotope_profile.heights_array()
    return isotope_similarity(observed[keep], theoretical[keep], method)


# ========== Combined ==========

def score_feature(
    source: FrameDataSource,
    group: VoltageGroup,
    peak: StandardImsPeak,
    target: ImsTarget,
    drift_time_tolerance_ms: float,
    isotopic_method: IsotopicScoreMethod = IsotopicScoreMethod.ANGLE,
) -> PeakScores:
    """All three scores of one peak; isotopic is 0 when composition is unknown."""
    global_max = max_global_intensity(group.frame_count, group.accumulations)

    iso = 0.0
    if has_composition(target):
        iso = isotopic_profile_score(source, group, peak, target, global_max, isotopic_method)

    return PeakScores(
        intensity_score=intensity_score(peak, global_max),
        isotopic_score=iso,
        peak_shape_score=peak_shape_score(source, group, peak, drift_time_tolerance_ms, global_max),
    )


def average_peak_scores(scores: Iterable[PeakScores]) -> Optional[PeakScores]:
    """Component-wise mean; None for an empty collection."""
    scores = list(scores)
    if not scores:
        return None
    return PeakScores(
        intensity_score=float(np.mean([s.intensity_score for s in scores])),
        isotopic_score=float(np.mean([s.isotopic_score for s in scores])),
        peak_shape_score=float(np.mean([s.peak_shape_score for s in scores])),
    )
