"""Tests for feature and track filters."""

from types import SimpleNamespace

import pytest

from ccsfast.filters.feature_filters import (
    FeatureFilterThresholds,
    RejectionReason,
    evaluate_feature,
    filter_voltage_group,
    is_extreme_drift_time,
)
from ccsfast.filters.track_filters import is_valid_track
from ccsfast.scoring.feature_scoring import PeakScores
from ccsfast.targets import TheoreticalIsotopeProfile, drift_time_target, molecule_target_from_mz

from conftest import SCAN_COUNT, TARGET_MZ, make_arena, make_observed_peak


@pytest.fixture
def group():
    return make_arena()[0]


@pytest.fixture
def thresholds():
    return FeatureFilterThresholds(peak_shape_threshold=0.4, isotopic_threshold=0.4)


class TestFeatureFilters:

    def test_good_peak_accepted(self, group, thresholds):
        evaluation = evaluate_feature(make_observed_peak(0, 0, 20.0), group, molecule_target_from_mz(TARGET_MZ), thresholds)
        assert evaluation.accepted

    def test_edge_peak_rejected(self, group, thresholds):
        evaluation = evaluate_feature(make_observed_peak(0, 0, 0.2), group, molecule_target_from_mz(TARGET_MZ), thresholds)
        assert RejectionReason.EXTREME_DRIFT_TIME in evaluation.reasons

    def test_edge_margin(self):
        inside = make_observed_peak(0, 0, 0.4).peak
        outside = make_observed_peak(0, 0, 0.3).peak
        assert not is_extreme_drift_time(inside, SCAN_COUNT)
        assert is_extreme_drift_time(outside, SCAN_COUNT)

    @pytest.mark.parametrize("apex_scan, extreme", [
        (3, True),
        (4, False),
        (395, False),
        (396, True),
        (399, True),
    ])
    def test_edge_margin_symmetric(self, apex_scan, extreme):
        # 1% of 400 scans: four scans excluded at each end
        peak = make_observed_peak(0, 0, apex_scan / 10.0).peak
        assert peak.apex_scan == apex_scan
        assert is_extreme_drift_time(peak, SCAN_COUNT) is extreme

    def test_bad_shape_rejected(self, group, thresholds):
        scores = PeakScores(intensity_score=0.9, peak_shape_score=0.1)
        evaluation = evaluate_feature(make_observed_peak(0, 0, 20.0, scores), group, molecule_target_from_mz(TARGET_MZ), thresholds)
        assert evaluation.reasons == frozenset({RejectionReason.BAD_PEAK_SHAPE})

    def test_isotopes_only_checked_with_composition(self, group, thresholds):
        observed = make_observed_peak(0, 0, 20.0)
        profile = TheoreticalIsotopeProfile((0.0, 1.003355), (1.0, 0.3))

        without = evaluate_feature(observed, group, molecule_target_from_mz(TARGET_MZ), thresholds)
        with_profile = evaluate_feature(
            observed, group, molecule_target_from_mz(TARGET_MZ, isotope_profile=profile), thresholds
        )

        assert without.accepted
        assert RejectionReason.LOW_ISOTOPIC_AFFINITY in with_profile.reasons

    def test_mz_distance_for_drift_time_targets(self, group, thresholds):
        observed = make_observed_peak(0, 0, 20.0, apex_mz=TARGET_MZ * (1 + 50e-6))
        evaluation = evaluate_feature(observed, group, drift_time_target(TARGET_MZ, 20.0), thresholds)
        assert RejectionReason.HIGH_MZ_DISTANCE in evaluation.reasons

    def test_group_without_survivors(self, group, thresholds):
        scores = PeakScores(intensity_score=0.9, peak_shape_score=0.1)
        peaks = [make_observed_peak(i, 0, 20.0 + i, scores) for i in range(2)]

        evaluation = filter_voltage_group(peaks, group, molecule_target_from_mz(TARGET_MZ), thresholds)

        assert not evaluation.accepted
        assert len(evaluation.rejected) == 2


class TestTrackFilters:

    @pytest.mark.parametrize("fit_points, mobility, r2, valid", [
        (3, 1.5, 0.95, True),
        (2, 1.5, 0.95, False),
        (3, -1.5, 0.95, False),
        (3, 1.5, 0.5, False),
    ])
    def test_is_valid_track(self, fit_points, mobility, r2, valid):
        track = SimpleNamespace(fit_points_count=fit_points, mobility=mobility, r_squared=r2)
        assert is_valid_track(track, 3, 0.9) is valid
