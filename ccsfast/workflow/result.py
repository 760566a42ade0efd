"""Per-target results of cross-section extraction.

A :class:`CrossSectionResult` carries the overall :class:`AnalysisStatus`,
one :class:`IdentifiedIsomerInfo` per track of the winning hypothesis, and the
diagnostics needed to explain negative findings (rejected peaks, rejected
voltage groups, the best candidate track that failed validation).

Track conclusions are combined with the precedence
Positive > NotSufficientPoints > Rejected: any positive track makes the target
positive; otherwise a track short of fit points outranks a track with a poor
fit. A hypothesis without tracks is Negative.

Targets without identified isomers are Negative when nothing could be
tracked, NotSufficientPoints when peaks survive in fewer voltage groups than a
fit needs, and Rejected when candidate tracks exist but none is valid.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

from ..filters.feature_filters import FeatureEvaluation
from ..filters.track_filters import (
    has_enough_fit_points,
    has_good_fit,
    is_consistent_with_ion_dynamics,
)
from ..scoring.feature_scoring import PeakScores, average_peak_scores
from ..targets import ImsTarget, target_descriptor
from ..tracking.hypothesis import AssociationHypothesis
from ..tracking.isomer_track import ArrivalTimeSnapshot, IsomerTrack


class AnalysisStatus(Enum):
    """Outcome of analysing one target (or one track)."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    REJECTED = "rejected"
    NOT_SUFFICIENT_POINTS = "not_sufficient_points"
    UNKNOWN_ERROR = "unknown_error"


@dataclass(frozen=True)
class AssociationHypothesisInfo:
    """Probabilities of the winning hypothesis."""
    probability_of_data_given_hypothesis: float
    probability_of_hypothesis_given_data: float

    @classmethod
    def from_hypothesis(cls, hypothesis: AssociationHypothesis) -> 'AssociationHypothesisInfo':
        return cls(
            probability_of_data_given_hypothesis=hypothesis.probability_of_data_given_hypothesis,
            probability_of_hypothesis_given_data=hypothesis.probability_of_hypothesis_given_data,
        )


@dataclass(frozen=True)
class IdentifiedIsomerInfo:
    """Mobility, cross section and provenance of one identified conformer.

    Attributes:
        fit_points_count: Voltage groups left on the fit
        outlier_count: Peaks removed from the fit as outliers
        r_squared: R² of the mobility fit
        mobility: Reduced mobility K0, cm²/(V·s)
        cross_section: Collision cross section, Å²
        mean_temperature_kelvin: Frame-weighted temperature used for the CCS
        mass_with_adduct: Ion mass used for the reduced mass
        mz_error_ppm: Mean apex m/z error of the fitted peaks
        average_voltage_group_stability: Mean stability of the fitted groups
        average_peak_scores: Mean scores of the fitted peaks
        arrival_time_snapshots: One entry per fitted voltage group
        analysis_status: Conclusion for this track alone
    """
    fit_points_count: int
    outlier_count: int
    r_squared: float
    mobility: float
    cross_section: float
    mean_temperature_kelvin: float
    mass_with_adduct: float
    mz_error_ppm: float
    average_voltage_group_stability: float
    average_peak_scores: Optional[PeakScores]
    arrival_time_snapshots: Tuple[ArrivalTimeSnapshot, ...]
    analysis_status: AnalysisStatus


@dataclass(frozen=True)
class CrossSectionResult:
    """Everything reported for one target in one dataset."""
    dataset_name: str
    target: ImsTarget
    analysis_status: AnalysisStatus
    identified_isomers: Tuple[IdentifiedIsomerInfo, ...] = ()
    average_observed_peak_scores: Optional[PeakScores] = None
    average_voltage_group_stability: float = 0.0
    association_hypothesis_info: Optional[AssociationHypothesisInfo] = None
    rejected_features: Tuple[FeatureEvaluation, ...] = ()
    rejected_voltage_group_ids: Tuple[int, ...] = ()
    best_invalid_isomer: Optional[IdentifiedIsomerInfo] = None
    error_message: Optional[str] = None

    @property
    def target_descriptor(self) -> str:
        return target_descriptor(self.target)

    @property
    def is_positive(self) -> bool:
        return self.analysis_status == AnalysisStatus.POSITIVE


# ========== Conclusions ==========

def conclude_track_status(track: IsomerTrack, min_fit_points: int, min_r2: float) -> AnalysisStatus:
    """NotSufficientPoints for too few fit points, Rejected for a poor fit or a
    non-positive mobility, else Positive."""
    if not has_enough_fit_points(track, min_fit_points):
        return AnalysisStatus.NOT_SUFFICIENT_POINTS
    if not (has_good_fit(track, min_r2) and is_consistent_with_ion_dynamics(track)):
        return AnalysisStatus.REJECTED
    return AnalysisStatus.POSITIVE


def track_to_hypothesis_conclusion(track_statuses: Iterable[AnalysisStatus]) -> AnalysisStatus:
    """Combine track conclusions (Positive > NotSufficientPoints > Rejected).

    Negative when there is no track at all.
    """
    statuses = list(track_statuses)
    if not statuses:
        return AnalysisStatus.NEGATIVE
    if AnalysisStatus.POSITIVE in statuses:
        return AnalysisStatus.POSITIVE
    if AnalysisStatus.NOT_SUFFICIENT_POINTS in statuses:
        return AnalysisStatus.NOT_SUFFICIENT_POINTS
    return AnalysisStatus.REJECTED


def identified_isomer_info(track: IsomerTrack, min_fit_points: int, min_r2: float) -> IdentifiedIsomerInfo:
    """Export the fitted quantities of one track."""
    fitted = track.fitted_peaks
    return IdentifiedIsomerInfo(
        fit_points_count=track.fit_points_count,
        outlier_count=len(track.outlier_peaks),
        r_squared=track.r_squared,
        mobility=track.mobility,
        cross_section=track.cross_section,
        mean_temperature_kelvin=track.mean_temperature_kelvin,
        mass_with_adduct=track.target.mass_with_adduct,
        mz_error_ppm=track.mz_error_ppm,
        average_voltage_group_stability=track.average_voltage_group_stability,
        average_peak_scores=average_peak_scores(p.scores for p in fitted),
        arrival_time_snapshots=tuple(track.arrival_time_snapshots()),
        analysis_status=conclude_track_status(track, min_fit_points, min_r2),
    )


# ========== Factories ==========

def create_error_result(target: ImsTarget, dataset_name: str, message: str) -> CrossSectionResult:
    return CrossSectionResult(
        dataset_name=dataset_name,
        target=target,
        analysis_status=AnalysisStatus.UNKNOWN_ERROR,
        error_message=message,
    )


def create_negative_result(
    target: ImsTarget,
    dataset_name: str,
    rejected_features: Sequence[FeatureEvaluation] = (),
    rejected_voltage_group_ids: Sequence[int] = (),
    average_observed_peak_scores: Optional[PeakScores] = None,
    average_voltage_group_stability: float = 0.0,
    best_invalid_isomer: Optional[IdentifiedIsomerInfo] = None,
) -> CrossSectionResult:
    return create_unconfirmed_result(
        target, dataset_name, AnalysisStatus.NEGATIVE,
        rejected_features=rejected_features,
        rejected_voltage_group_ids=rejected_voltage_group_ids,
        average_observed_peak_scores=average_observed_peak_scores,
        average_voltage_group_stability=average_voltage_group_stability,
        best_invalid_isomer=best_invalid_isomer,
    )


def create_unconfirmed_result(
    target: ImsTarget,
    dataset_name: str,
    analysis_status: AnalysisStatus,
    rejected_features: Sequence[FeatureEvaluation] = (),
    rejected_voltage_group_ids: Sequence[int] = (),
    average_observed_peak_scores: Optional[PeakScores] = None,
    average_voltage_group_stability: float = 0.0,
    best_invalid_isomer: Optional[IdentifiedIsomerInfo] = None,
) -> CrossSectionResult:
    """Result without identified isomers (Negative, Rejected or NotSufficientPoints).

    The candidate that came closest is kept as ``best_invalid_isomer``.
    """
    if analysis_status in (AnalysisStatus.POSITIVE, AnalysisStatus.UNKNOWN_ERROR):
        raise ValueError(f"Not a finding without isomers: {analysis_status}")
    return CrossSectionResult(
        dataset_name=dataset_name,
        target=target,
        analysis_status=analysis_status,
        average_observed_peak_scores=average_observed_peak_scores,
        average_voltage_group_stability=average_voltage_group_stability,
        rejected_features=tuple(rejected_features),
        rejected_voltage_group_ids=tuple(rejected_voltage_group_ids),
        best_invalid_isomer=best_invalid_isomer,
    )


def create_result_from_hypothesis(
    target: ImsTarget,
    dataset_name: str,
    hypothesis: AssociationHypothesis,
    min_fit_points: int,
    min_r2: float,
    average_observed_peak_scores: Optional[PeakScores] = None,
    average_voltage_group_stability: float = 0.0,
    rejected_features: Sequence[FeatureEvaluation] = (),
    rejected_voltage_group_ids: Sequence[int] = (),
) -> CrossSectionResult:
    """Result with one isomer entry per track, highest mobility first."""
    isomers = [identified_isomer_info(t, min_fit_points, min_r2) for t in hypothesis.tracks]
    isomers.sort(key=lambda info: info.mobility, reverse=True)

    return CrossSectionResult(
        dataset_name=dataset_name,
        target=target,
        analysis_status=track_to_hypothesis_conclusion(i.analysis_status for i in isomers),
        identified_isomers=tuple(isomers),
        average_observed_peak_scores=average_observed_peak_scores,
        average_voltage_group_stability=average_voltage_group_stability,
        association_hypothesis_info=AssociationHypothesisInfo.from_hypothesis(hypothesis),
        rejected_features=tuple(rejected_features),
        rejected_voltage_group_ids=tuple(rejected_voltage_group_ids),
    )
