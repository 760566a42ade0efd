"""Tests for streaming voltage-group classification.

Tests:
- Welford running statistics against batch statistics
- Admission rules (empty group, 3 sigma, absolute tolerance, variance doubling)
- Zero-voltage instrument errors
- Arena bookkeeping and contiguous frame partitions
"""

import unittest

import numpy as np
import pytest

from ccsfast.exceptions import DataIntegrityError
from ccsfast.voltage.group import RunningStatistic, VoltageGroup, VoltageGroupArena


class TestRunningStatistic(unittest.TestCase):
    """Online mean/variance must match numpy on the same data."""

    def test_matches_batch_statistics(self):
        """Test mean and population variance against np.mean / np.var."""
        values = np.random.normal(1500.0, 2.0, 200)
        stat = RunningStatistic()
        for v in values:
            stat.add(v)

        self.assertEqual(stat.count, 200)
        self.assertAlmostEqual(stat.mean, np.mean(values), places=8)
        self.assertAlmostEqual(stat.variance, np.var(values), places=6)

    def test_single_value_has_zero_variance(self):
        stat = RunningStatistic()
        stat.add(42.0)
        self.assertEqual(stat.mean, 42.0)
        self.assertEqual(stat.variance, 0.0)

    def test_dry_run_does_not_modify(self):
        """Test that dry_run_variance predicts the variance without updating."""
        stat = RunningStatistic()
        for v in (1.0, 2.0, 3.0):
            stat.add(v)
        predicted = stat.dry_run_variance(10.0)

        self.assertEqual(stat.count, 3)
        self.assertAlmostEqual(predicted, np.var([1.0, 2.0, 3.0, 10.0]))


class TestVoltageGroupClassification:
    """Test the admission rule of VoltageGroup.offer."""

    def test_empty_group_accepts(self):
        group = VoltageGroup(group_id=0, first_frame=0)
        assert group.offer(1500.0, 298.0, 4.0, frame_index=0)
        assert group.frame_count == 1

    def test_running_variance_equals_batch_variance(self):
        """Test that accepted voltages reproduce the batch variance."""
        voltages = [1500.0, 1500.4, 1499.7, 1500.2, 1501.1, 1499.9]
        group = VoltageGroup(group_id=0, first_frame=0)
        for frame, v in enumerate(voltages):
            assert group.offer(v, 298.0, 4.0, frame_index=frame)

        assert group.mean_voltage == pytest.approx(np.mean(voltages))
        assert group.variance_voltage == pytest.approx(np.var(voltages))

    def test_small_absolute_difference_accepted(self):
        """Test that a jump below 5 V is accepted even with zero variance."""
        group = VoltageGroup(group_id=0, first_frame=0)
        group.offer(1500.0, 298.0, 4.0)
        assert group.offer(1503.0, 298.0, 4.0)

    def test_new_voltage_setting_rejected(self):
        """Test that a different voltage setting starts a new group."""
        group = VoltageGroup(group_id=0, first_frame=0)
        for v in (1500.0, 1500.2, 1499.8):
            group.offer(v, 298.0, 4.0)

        assert not group.offer(1000.0, 298.0, 4.0)
        assert group.frame_count == 3

    def test_within_three_sigma_accepted(self):
        """Test rule (b): inside 3 standard deviations."""
        group = VoltageGroup(group_id=0, first_frame=0)
        group.offer(1000.0, 298.0, 4.0)
        group.offer(1004.0, 298.0, 4.0)
        group.offer(996.0, 298.0, 4.0)
        # std ~ 3.27, so 3 sigma ~ 9.8 V
        assert group.accepts(1008.0)

    def test_zero_voltage_raises(self):
        group = VoltageGroup(group_id=0, first_frame=0)
        with pytest.raises(DataIntegrityError):
            group.offer(0.0, 298.0, 4.0, frame_index=7)

    def test_zero_voltage_raises_inside_group(self):
        group = VoltageGroup(group_id=0, first_frame=0)
        group.offer(1500.0, 298.0, 4.0)
        with pytest.raises(DataIntegrityError):
            group.offer(0.0, 298.0, 4.0)

    def test_conditions_round_trip_units(self):
        """Test that Kelvin/Torr views undo the nondimensionalization."""
        group = VoltageGroup(group_id=0, first_frame=0)
        group.offer(1500.0, 298.0, 4.0)
        group.offer(1500.0, 300.0, 4.2)

        assert group.mean_temperature_kelvin == pytest.approx(299.0)
        assert group.mean_pressure_torr == pytest.approx(4.1)

    def test_frame_range_tracks_frames(self):
        group = VoltageGroup(group_id=3, first_frame=10)
        for frame in (10, 11, 12):
            group.offer(1500.0, 298.0, 4.0, frame_index=frame)
        assert group.frame_range == (10, 12)


class TestVoltageGroupArena:
    """Test id-indexed storage of voltage groups."""

    def test_ids_are_sequential(self):
        arena = VoltageGroupArena()
        first = arena.new_group(first_frame=0)
        second = arena.new_group(first_frame=5)

        assert (first.group_id, second.group_id) == (0, 1)
        assert arena[1] is second
        assert len(arena) == 2

    def test_streaming_partition_is_contiguous(self):
        """Test that streaming frames yields contiguous, non-overlapping groups."""
        voltages = [1000.0, 1000.1, 999.9, 1400.0, 1400.2, 1800.0, 1799.8, 1800.1]
        arena = VoltageGroupArena()
        current = None
        for frame, v in enumerate(voltages):
            if current is None or not current.offer(v, 298.0, 4.0, frame_index=frame):
                current = arena.new_group(first_frame=frame)
                current.offer(v, 298.0, 4.0, frame_index=frame)

        ranges = [g.frame_range for g in arena]
        assert ranges == [(0, 2), (3, 4), (5, 7)]
        assert [g.frame_count for g in arena.non_empty()] == [3, 2, 3]
