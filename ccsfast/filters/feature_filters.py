"""Threshold filters for scored peaks and voltage groups.

Each predicate is independent; :func:`evaluate_feature` runs all of them and
records which ones fired, so rejected peaks can be reported afterwards. A
voltage group without any surviving peak is rejected as a whole.

Examples
--------
>>> thresholds = FeatureFilterThresholds(peak_shape_threshold=0.4)
>>> evaluation = evaluate_feature(observed, group, target, thresholds)
>>> evaluation.accepted, evaluation.reasons
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional

from ..features.peak_detection import StandardImsPeak
from ..scoring.feature_scoring import ObservedPeak, PeakScores
from ..scoring.voltage_group_scoring import voltage_group_stability_score
from ..targets import ImsTarget, TargetType, has_composition, target_mz
from ..units import ppm_error
from ..voltage.group import VoltageGroup

logger = logging.getLogger(__name__)

# Apex scans within this fraction of either end of the drift range are rejected
DRIFT_TIME_EDGE_FRACTION = 0.01


class RejectionReason(Enum):
    """Filter predicates that can reject a peak."""
    EXTREME_DRIFT_TIME = "extreme_drift_time"
    LOW_INTENSITY = "low_intensity"
    BAD_PEAK_SHAPE = "bad_peak_shape"
    LOW_ISOTOPIC_AFFINITY = "low_isotopic_affinity"
    HIGH_MZ_DISTANCE = "high_mz_distance"


@dataclass
class FeatureFilterThresholds:
    """Rejection thresholds for scored peaks."""

    # Minimum intensity score
    intensity_threshold: float = 0.0

    # Minimum summed intensity (per-frame average), 0 disables
    absolute_intensity_threshold: float = 0.0

    peak_shape_threshold: float = 0.4

    # Applied only to targets with known composition
    isotopic_threshold: float = 0.4

    # Drift-time targets only: maximum |apex m/z error| in ppm
    max_mz_distance_ppm: float = 10.0

    def __post_init__(self):
        for name in ("intensity_threshold", "peak_shape_threshold", "isotopic_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")


@dataclass(frozen=True)
class FeatureEvaluation:
    """Outcome of filtering one observed peak."""
    observed: ObservedPeak
    reasons: FrozenSet[RejectionReason] = field(default_factory=frozenset)

    @property
    def accepted(self) -> bool:
        return not self.reasons


@dataclass
class VoltageGroupEvaluation:
    """Surviving and rejected peaks of one voltage group."""
    group_id: int
    accepted_peaks: List[ObservedPeak]
    rejected: List[FeatureEvaluation]
    stability_score: float

    @property
    def accepted(self) -> bool:
        return len(self.accepted_peaks) > 0


# ========== Predicates ==========

def is_extreme_drift_time(peak: StandardImsPeak, scan_count: int) -> bool:
    """Apex within 1% of the start or end of the drift-scan range."""
    margin = int(round(scan_count * DRIFT_TIME_EDGE_FRACTION))
    return peak.apex_scan < margin or peak.apex_scan >= scan_count - margin


def is_low_intensity(
    peak: StandardImsPeak,
    scores: PeakScores,
    intensity_threshold: float,
    absolute_intensity_threshold: float = 0.0,
) -> bool:
    if scores.intensity_score < intensity_threshold:
        return True
    return peak.summed_intensity < absolute_intensity_threshold


def has_bad_peak_shape(scores: PeakScores, peak_shape_threshold: float) -> bool:
    return scores.peak_shape_score < peak_shape_threshold


def has_low_isotopic_affinity(scores: PeakScores, isotopic_threshold: float, composition_known: bool) -> bool:
    """Only meaningful when the target's composition is known."""
    if not composition_known:
        return False
    return scores.isotopic_score < isotopic_threshold


def is_far_in_mz(peak: StandardImsPeak, expected_mz: float, max_mz_distance_ppm: float) -> bool:
    return abs(ppm_error(peak.apex_mz, expected_mz)) > max_mz_distance_ppm


# ========== Evaluation ==========

def evaluate_feature(
    observed: ObservedPeak,
    group: VoltageGroup,
    target: ImsTarget,
    thresholds: FeatureFilterThresholds,
) -> FeatureEvaluation:
    """Run every predicate on one peak and collect the ones that fired."""
    peak = observed.peak
    scores = observed.scores
    reasons = set()

    if is_extreme_drift_time(peak, group.scan_count):
        reasons.add(RejectionReason.EXTREME_DRIFT_TIME)
    if is_low_intensity(peak, scores, thresholds.intensity_threshold, thresholds.absolute_intensity_threshold):
        reasons.add(RejectionReason.LOW_INTENSITY)
    if has_bad_peak_shape(scores, thresholds.peak_shape_threshold):
        reasons.add(RejectionReason.BAD_PEAK_SHAPE)
    if has_low_isotopic_affinity(scores, thresholds.isotopic_threshold, has_composition(target)):
        reasons.add(RejectionReason.LOW_ISOTOPIC_AFFINITY)
    if target.target_type == TargetType.DRIFT_TIME and is_far_in_mz(
        peak, target_mz(target), thresholds.max_mz_distance_ppm
    ):
        reasons.add(RejectionReason.HIGH_MZ_DISTANCE)

    evaluation = FeatureEvaluation(observed, frozenset(reasons))
    if not evaluation.accepted:
        fired = ", ".join(sorted(r.value for r in reasons))
        logger.debug(
            f"Rejected peak at {peak.apex_drift_time_ms:.3f} ms in voltage group "
            f"{observed.voltage_group_id}: {fired}"
        )
    return evaluation


def filter_voltage_group(
    observed_peaks: List[ObservedPeak],
    group: VoltageGroup,
    target: ImsTarget,
    thresholds: FeatureFilterThresholds,
) -> VoltageGroupEvaluation:
    """Filter all peaks of one group and score the group's stability."""
    accepted = []
    rejected = []
    for observed in observed_peaks:
        evaluation = evaluate_feature(observed, group, target, thresholds)
        if evaluation.accepted:
            accepted.append(observed)
        else:
            rejected.append(evaluation)

    return VoltageGroupEvaluation(
        group_id=group.group_id,
        accepted_peaks=accepted,
        rejected=rejected,
        stability_score=voltage_group_stability_score(group),
    )
