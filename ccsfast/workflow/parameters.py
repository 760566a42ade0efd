"""Search parameters for cross-section extraction."""

from __future__ import annotations

from dataclasses import dataclass

from ..constants import (
    DEFAULT_DRIFT_TIME_TOLERANCE_MS,
    DEFAULT_MASS_TOLERANCE_PPM,
    DRIFT_TUBE_LENGTH_CM,
    NITROGEN_MASS,
)
from ..features.peak_detection import PeakDetectionParams, PeakDetectorType
from ..filters.feature_filters import FeatureFilterThresholds
from ..scoring.isotope_similarity import IsotopicScoreMethod
from ..tracking.ion_tracker import CombinatorialIonTracker, HypothesisCriterion


@dataclass
class CrossSectionSearchParameters:
    """All tunables of one cross-section search.

    Attributes:
        drift_time_tolerance_ms: Peak-shape window half-width, and the scan
            window half-width for drift-time targets
        mass_tolerance_ppm: XIC m/z half-width
        num_smoothing_points: Gaussian smoothing window (drift scans)
        feature_filter_level: Blob volume filter, fraction of the largest blob
        intensity_threshold: Minimum intensity score
        peak_shape_threshold: Minimum peak-shape score
        isotopic_threshold: Minimum isotopic score (known composition only)
        min_fit_points: Minimum voltage groups on a track
        min_r2: Minimum R² of a track fit
        expect_isomer: Raise the prior of multi-track hypotheses
        peak_detector: Blob segmentation algorithm
        isotopic_score_method: Isotope envelope similarity metric
        relative_prominence: Minimum apex rise over the blob boundary,
            fraction of the profile maximum
        mz_window_ppm: Half-width of the local spectrum for the m/z apex
        max_explored_hypotheses: Cap on candidate tracks and on hypotheses
        hypothesis_criterion: Quantity maximized to select the winner
        drift_tube_length_cm: Drift-tube length L
        buffer_gas_mass: Buffer-gas molecular mass (Da), N2 by default
    """

    drift_time_tolerance_ms: float = DEFAULT_DRIFT_TIME_TOLERANCE_MS
    mass_tolerance_ppm: float = DEFAULT_MASS_TOLERANCE_PPM
    num_smoothing_points: int = 9
    feature_filter_level: float = 0.25
    intensity_threshold: float = 0.0
    peak_shape_threshold: float = 0.4
    isotopic_threshold: float = 0.4
    min_fit_points: int = 3
    min_r2: float = 0.9
    expect_isomer: bool = False
    peak_detector: PeakDetectorType = PeakDetectorType.WATERSHED
    isotopic_score_method: IsotopicScoreMethod = IsotopicScoreMethod.ANGLE
    relative_prominence: float = 0.01
    mz_window_ppm: float = 100.0
    max_explored_hypotheses: int = 3000
    hypothesis_criterion: HypothesisCriterion = HypothesisCriterion.POSTERIOR
    drift_tube_length_cm: float = DRIFT_TUBE_LENGTH_CM
    buffer_gas_mass: float = NITROGEN_MASS

    def __post_init__(self):
        if self.drift_time_tolerance_ms <= 0:
            raise ValueError(f"drift_time_tolerance_ms must be positive, got {self.drift_time_tolerance_ms}")
        if self.mass_tolerance_ppm <= 0:
            raise ValueError(f"mass_tolerance_ppm must be positive, got {self.mass_tolerance_ppm}")
        if self.min_fit_points < 2:
            raise ValueError(f"min_fit_points must be >= 2, got {self.min_fit_points}")
        if not 0.0 <= self.min_r2 <= 1.0:
            raise ValueError(f"min_r2 must be in [0, 1], got {self.min_r2}")
        if self.max_explored_hypotheses < 1:
            raise ValueError("max_explored_hypotheses must be positive")
        if self.drift_tube_length_cm <= 0 or self.buffer_gas_mass <= 0:
            raise ValueError("Drift-tube length and buffer-gas mass must be positive")

    @classmethod
    def for_isomer_search(cls, **kwargs) -> 'CrossSectionSearchParameters':
        """Preset for samples expected to hold several conformers."""
        kwargs.setdefault("expect_isomer", True)
        kwargs.setdefault("min_r2", 0.85)
        return cls(**kwargs)

    def peak_detection_params(self) -> PeakDetectionParams:
        return PeakDetectionParams(
            num_smoothing_points=self.num_smoothing_points,
            feature_filter_level=self.feature_filter_level,
            relative_prominence=self.relative_prominence,
            detector=self.peak_detector,
            mz_window_ppm=self.mz_window_ppm,
            fallback_mz_tolerance_ppm=self.mass_tolerance_ppm,
        )

    def filter_thresholds(self) -> FeatureFilterThresholds:
        return FeatureFilterThresholds(
            intensity_threshold=self.intensity_threshold,
            peak_shape_threshold=self.peak_shape_threshold,
            isotopic_threshold=self.isotopic_threshold,
            max_mz_distance_ppm=self.mass_tolerance_ppm,
        )

    def ion_tracker(self) -> CombinatorialIonTracker:
        return CombinatorialIonTracker(
            min_fit_points=self.min_fit_points,
            min_r2=self.min_r2,
            expect_isomer=self.expect_isomer,
            max_explored_hypotheses=self.max_explored_hypotheses,
            criterion=self.hypothesis_criterion,
            drift_tube_length_cm=self.drift_tube_length_cm,
            buffer_gas_mass=self.buffer_gas_mass,
        )
