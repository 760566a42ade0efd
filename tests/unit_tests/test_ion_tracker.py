"""Tests for isomer tracks, association hypotheses and the ion tracker.

Peaks are placed at the exact drift times of ions with known reduced
mobility, so pure tracks fit with R² = 1.
"""

import logging
import math

import numpy as np
import pytest

from ccsfast.constants import CCS_PREFACTOR, NITROGEN_MASS
from ccsfast.scoring.feature_scoring import PeakScores
from ccsfast.targets import molecule_target_from_mz
from ccsfast.tracking.hypothesis import AssociationHypothesis
from ccsfast.tracking.ion_tracker import CombinatorialIonTracker, HypothesisCriterion
from ccsfast.tracking.isomer_track import (
    IsomerTrack,
    collision_cross_section,
    mobility_from_slope,
    reduced_mass,
)

from conftest import (
    TARGET_MZ,
    TEMPERATURE_KELVIN,
    VOLTAGES,
    drift_time_ms_for_mobility,
    make_arena,
    make_observed_peak,
)


@pytest.fixture
def target():
    return molecule_target_from_mz(TARGET_MZ)


def peaks_for_mobilities(mobilities, voltages=VOLTAGES):
    """One peak per (group, mobility), ids assigned in that order."""
    peaks = []
    for group_id, voltage in enumerate(voltages):
        for k0 in mobilities:
            peaks.append(make_observed_peak(len(peaks), group_id, drift_time_ms_for_mobility(k0, voltage)))
    return peaks


class TestPhysics:
    """Test the Mason-Schamp helpers."""

    def test_reduced_mass(self):
        assert reduced_mass(28.0, 28.0) == pytest.approx(14.0)
        assert reduced_mass(1e9, NITROGEN_MASS) == pytest.approx(NITROGEN_MASS, rel=1e-6)

    def test_mobility_from_slope(self):
        assert mobility_from_slope(1.5 / 78.0 ** 2, 78.0) == pytest.approx(1.5)

    def test_cross_section_formula(self):
        mu = reduced_mass(500.25, NITROGEN_MASS)
        expected = CCS_PREFACTOR / math.sqrt(mu * 298.0) * 2 / 1.5
        assert collision_cross_section(1.5, 298.0, -2, mu) == pytest.approx(expected)

    def test_cross_section_unphysical_inputs(self):
        assert collision_cross_section(0.0, 298.0, 1, 20.0) == 0.0
        assert collision_cross_section(1.5, 0.0, 1, 20.0) == 0.0


class TestIsomerTrack:
    """Test the mobility fit of a single track."""

    def test_exact_track(self, target):
        arena = make_arena()
        track = IsomerTrack(target, arena)
        for observed in peaks_for_mobilities([1.5]):
            track.add_observation(observed)

        assert track.fit_points_count == 3
        assert track.r_squared == pytest.approx(1.0)
        assert track.mobility == pytest.approx(1.5, rel=1e-6)
        assert track.mean_temperature_kelvin == pytest.approx(TEMPERATURE_KELVIN)
        assert track.peak_ids == frozenset({0, 1, 2})

        mu = reduced_mass(target.mass_with_adduct, NITROGEN_MASS)
        expected_ccs = CCS_PREFACTOR / math.sqrt(mu * TEMPERATURE_KELVIN) / 1.5
        assert track.cross_section == pytest.approx(expected_ccs, rel=1e-6)

    def test_duplicate_group_rejected(self, target):
        track = IsomerTrack(target, make_arena())
        track.add_observation(make_observed_peak(0, 0, 20.0))
        with pytest.raises(ValueError):
            track.add_observation(make_observed_peak(1, 0, 25.0))

    def test_snapshots_follow_fitted_peaks(self, target):
        track = IsomerTrack(target, make_arena())
        for observed in peaks_for_mobilities([1.5]):
            track.add_observation(observed)

        snapshots = track.arrival_time_snapshots()

        assert [s.voltage_group_id for s in snapshots] == [0, 1, 2]
        assert [s.drift_tube_voltage for s in snapshots] == pytest.approx(list(VOLTAGES))
        assert snapshots[0].measured_arrival_time_ms == pytest.approx(drift_time_ms_for_mobility(1.5, VOLTAGES[0]))

    def test_refine_drops_misplaced_peak(self, target):
        voltages = (1000.0, 1200.0, 1400.0, 1600.0, 1800.0)
        arena = make_arena(voltages)
        track = IsomerTrack(target, arena)
        for group_id, voltage in enumerate(voltages):
            drift = drift_time_ms_for_mobility(1.5, voltage)
            if group_id == 2:
                drift *= 1.5
            track.add_observation(make_observed_peak(group_id, group_id, drift))

        removed = track.refine(min_r2=0.99, min_fit_points=3)

        assert [p.peak_id for p in removed] == [2]
        assert track.fit_points_count == 4
        assert track.mobility == pytest.approx(1.5, rel=1e-6)


class TestAssociationHypothesis:

    def test_conflicting_tracks(self, target):
        arena = make_arena()
        peaks = peaks_for_mobilities([1.5])
        first = IsomerTrack(target, arena)
        second = IsomerTrack(target, arena)
        for observed in peaks:
            first.add_observation(observed)
        second.add_observation(peaks[0])

        hypothesis = AssociationHypothesis(peaks)
        hypothesis.add_isomer_track(first)

        assert hypothesis.is_conflict(second)
        with pytest.raises(ValueError):
            hypothesis.add_isomer_track(second)
        assert hypothesis.off_track_peaks() == []

    def test_empty_hypothesis(self):
        peaks = peaks_for_mobilities([1.5])
        hypothesis = AssociationHypothesis(peaks)
        assert hypothesis.is_empty
        assert hypothesis.track_keys == frozenset()
        assert len(hypothesis.off_track_peaks()) == 3


class TestCombinatorialIonTracker:
    """Test the full search on synthetic peak sets."""

    def test_single_conformer(self, target):
        tracker = CombinatorialIonTracker()

        outcome = tracker.find_optimum_hypothesis(peaks_for_mobilities([1.5]), make_arena(), target)

        assert outcome.found_tracks
        assert not outcome.tie and not outcome.truncated
        best = outcome.best_hypothesis
        assert len(best.tracks) == 1
        assert best.tracks[0].mobility == pytest.approx(1.5, rel=1e-6)
        assert best.probability_of_hypothesis_given_data > 0.9
        # Empty hypothesis plus the single-track one
        assert len(outcome.hypotheses) == 2
        assert sum(h.probability_of_hypothesis_given_data for h in outcome.hypotheses) == pytest.approx(1.0)

    def test_two_conformers(self, target):
        tracker = CombinatorialIonTracker(expect_isomer=True)

        outcome = tracker.find_optimum_hypothesis(peaks_for_mobilities([1.2, 1.6]), make_arena(), target)

        assert outcome.found_tracks
        mobilities = sorted(t.mobility for t in outcome.best_hypothesis.tracks)
        assert mobilities == pytest.approx([1.2, 1.6], rel=1e-6)
        assert outcome.best_hypothesis.off_track_peaks() == []

    def test_moderate_scores_still_tracked(self, target):
        """Peaks that passed the filters with middling scores still form the track."""
        moderate = PeakScores(intensity_score=0.4, isotopic_score=0.0, peak_shape_score=0.6)
        peaks = [
            make_observed_peak(i, i, drift_time_ms_for_mobility(1.5, v), scores=moderate)
            for i, v in enumerate(VOLTAGES)
        ]

        outcome = CombinatorialIonTracker().find_optimum_hypothesis(peaks, make_arena(), target)

        assert outcome.found_tracks
        assert outcome.best_hypothesis.tracks[0].mobility == pytest.approx(1.5, rel=1e-6)
        assert outcome.best_hypothesis.probability_of_hypothesis_given_data > 0.5

    @pytest.mark.parametrize("level", [0.01, 0.3, 0.5, 0.7, 0.99])
    def test_valid_track_beats_empty_hypothesis(self, target, level):
        scores = PeakScores(intensity_score=level, isotopic_score=0.0, peak_shape_score=level)
        peaks = [
            make_observed_peak(i, i, drift_time_ms_for_mobility(1.5, v), scores=scores)
            for i, v in enumerate(VOLTAGES)
        ]
        track = IsomerTrack(target, make_arena())
        for observed in peaks:
            track.add_observation(observed)
        tracker = CombinatorialIonTracker()
        empty = AssociationHypothesis(peaks)
        single = AssociationHypothesis(peaks)
        single.add_isomer_track(track)

        assert tracker.log_likelihood(single) > tracker.log_likelihood(empty)

    def test_longest_track_wins_over_subsets(self, target):
        """Four groups: the full track beats its equally straight three-point subsets."""
        voltages = (1000.0, 1200.0, 1400.0, 1600.0)
        moderate = PeakScores(intensity_score=0.4, isotopic_score=0.0, peak_shape_score=0.6)
        peaks = [
            make_observed_peak(i, i, drift_time_ms_for_mobility(1.5, v), scores=moderate)
            for i, v in enumerate(voltages)
        ]

        outcome = CombinatorialIonTracker().find_optimum_hypothesis(peaks, make_arena(voltages), target)

        assert not outcome.tie
        assert outcome.found_tracks
        assert outcome.best_hypothesis.tracks[0].fit_points_count == 4

    def test_best_effort_track(self, target):
        voltages = VOLTAGES[:2]
        weak = PeakScores(intensity_score=0.2, isotopic_score=0.0, peak_shape_score=0.2)
        peaks = [
            make_observed_peak(0, 0, drift_time_ms_for_mobility(1.5, voltages[0])),
            make_observed_peak(1, 1, drift_time_ms_for_mobility(1.5, voltages[1])),
            make_observed_peak(2, 1, drift_time_ms_for_mobility(1.2, voltages[1]), scores=weak),
        ]
        tracker = CombinatorialIonTracker()

        track = tracker.best_effort_track(peaks, make_arena(voltages), target)

        assert track.peak_ids == frozenset({0, 1})
        assert track.fit_points_count == 2
        assert track.mobility == pytest.approx(1.5, rel=1e-6)
        assert tracker.best_effort_track(peaks[:1], make_arena(voltages), target) is None

    def test_tie_is_negative(self, target):
        """Two equally good two-point tracks sharing a peak tie."""
        voltages = (1000.0, 2000.0)
        peaks = [
            make_observed_peak(0, 0, drift_time_ms_for_mobility(1.5, voltages[0])),
            make_observed_peak(1, 1, drift_time_ms_for_mobility(1.5, voltages[1])),
            make_observed_peak(2, 1, drift_time_ms_for_mobility(1.2, voltages[1])),
        ]
        tracker = CombinatorialIonTracker(min_fit_points=2)

        outcome = tracker.find_optimum_hypothesis(peaks, make_arena(voltages), target)

        assert outcome.tie
        assert outcome.best_hypothesis is None
        assert not outcome.found_tracks
        assert len(outcome.valid_tracks) == 2

    def test_truncated_search_warns(self, target, caplog):
        tracker = CombinatorialIonTracker(max_explored_hypotheses=1)

        with caplog.at_level(logging.WARNING, logger="ccsfast"):
            outcome = tracker.find_optimum_hypothesis(peaks_for_mobilities([1.2, 1.6]), make_arena(), target)

        assert outcome.truncated
        assert outcome.explored_tracks == 1
        assert "truncated" in caplog.text

    def test_duplicate_peak_ids(self, target):
        peaks = peaks_for_mobilities([1.5])
        peaks.append(make_observed_peak(0, 2, 30.0))
        with pytest.raises(ValueError):
            CombinatorialIonTracker().find_optimum_hypothesis(peaks, make_arena(), target)

    def test_too_few_groups(self, target):
        peaks = peaks_for_mobilities([1.5])[:2]
        outcome = CombinatorialIonTracker().find_optimum_hypothesis(peaks, make_arena(), target)
        assert outcome.valid_tracks == []
        assert outcome.best_hypothesis.is_empty

    def test_log_prior(self, target):
        arena = make_arena()
        peaks = peaks_for_mobilities([1.2, 1.6])
        tracks = []
        for k in range(2):
            track = IsomerTrack(target, arena)
            for observed in peaks[k::2]:
                track.add_observation(observed)
            tracks.append(track)

        tracker = CombinatorialIonTracker(expect_isomer=False)
        empty = AssociationHypothesis(peaks)
        one = AssociationHypothesis(peaks)
        one.add_isomer_track(tracks[0])
        two = AssociationHypothesis(peaks)
        two.add_isomer_track(tracks[0])
        two.add_isomer_track(tracks[1])

        assert tracker.log_prior(empty) == 0.0
        assert tracker.log_prior(one) == 0.0
        assert tracker.log_prior(two) == pytest.approx(np.log(0.1))

    def test_likelihood_criterion(self, target):
        tracker = CombinatorialIonTracker(criterion=HypothesisCriterion.LIKELIHOOD, expect_isomer=True)
        outcome = tracker.find_optimum_hypothesis(peaks_for_mobilities([1.2, 1.6]), make_arena(), target)
        assert len(outcome.best_hypothesis.tracks) == 2

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            CombinatorialIonTracker(min_fit_points=1)
        with pytest.raises(ValueError):
            CombinatorialIonTracker(max_explored_hypotheses=0)
