"""Tests for arrival-time peak detection.

Tests:
- Watershed and local-maximum labelling on small profiles
- Blob detection with the summed-intensity filter
- Flat and empty profiles yield no peaks
- Full peak construction (apex, FWHM ordering, m/z fallback tolerance)
"""

import numpy as np
import pytest

from ccsfast.features.peak_detection import (
    PeakDetectionParams,
    PeakDetectorType,
    detect_blobs,
    find_peaks,
    local_maxima_labels,
    watershed_labels,
)
from ccsfast.xic.accumulation import accumulate_voltage_groups
from ccsfast.xic.smoothing import half_max_bounds, sigma_for_smoothing_points, smooth_gaussian_1d

from conftest import TARGET_MZ, TOF_WIDTH_SECONDS, apex_scan_for_mobility


def two_peak_profile(n=200, apexes=(50, 120), amplitudes=(100.0, 30.0), sigma=2.0):
    """Dense profile with isolated Gaussian peaks (zero between them)."""
    profile = np.zeros(n)
    for apex, amplitude in zip(apexes, amplitudes):
        scans = np.arange(apex - 10, apex + 11)
        profile[scans] = amplitude * np.exp(-0.5 * ((scans - apex) / sigma) ** 2)
    return profile


class TestLabelling:
    """Test the numba labelling kernels."""

    def test_watershed_separates_isolated_peaks(self):
        profile = np.array([0.0, 1.0, 3.0, 1.0, 0.0, 2.0, 5.0, 2.0, 0.0])

        labels, apexes = watershed_labels(profile)

        np.testing.assert_array_equal(labels, [-1, 1, 1, 1, -1, 0, 0, 0, -1])
        np.testing.assert_array_equal(apexes, [6, 2])

    def test_watershed_saddle_joins_higher_blob(self):
        profile = np.array([1.0, 4.0, 2.0, 3.0, 1.0])

        labels, apexes = watershed_labels(profile)

        np.testing.assert_array_equal(labels, [0, 0, 0, 1, 1])
        np.testing.assert_array_equal(apexes, [1, 3])

    def test_local_maxima(self):
        profile = np.array([0.0, 1.0, 3.0, 1.0, 0.0, 2.0, 5.0, 2.0, 0.0])

        labels, apexes = local_maxima_labels(profile)

        np.testing.assert_array_equal(apexes, [2, 6])
        assert labels[4] == -1
        assert set(labels[5:8]) == {1}


class TestSmoothing:

    def test_sigma_from_points(self):
        assert sigma_for_smoothing_points(9) == pytest.approx(1.5)
        assert sigma_for_smoothing_points(2) == 0.0

    def test_smoothing_preserves_constant(self):
        smoothed = smooth_gaussian_1d(np.full(30, 7.0), 1.5)
        np.testing.assert_allclose(smoothed, 7.0)

    def test_half_max_bounds_interpolated(self):
        positions = np.arange(5, dtype=np.float64)
        intensities = np.array([0.0, 2.0, 4.0, 2.0, 0.0])

        left, right = half_max_bounds(positions, intensities, 2)

        assert left == pytest.approx(1.0)
        assert right == pytest.approx(3.0)


class TestDetectBlobs:
    """Test blob segmentation and the volume filter."""

    def test_two_peaks_found_most_intense_first(self):
        blobs = detect_blobs(two_peak_profile(), PeakDetectionParams())

        assert [b.apex_scan for b in blobs] == [50, 120]
        assert blobs[0].summed_intensity > blobs[1].summed_intensity

    def test_filter_level_drops_weak_blob(self):
        """The weak peak holds 30% of the strong one's volume."""
        blobs = detect_blobs(two_peak_profile(), PeakDetectionParams(feature_filter_level=0.5))
        assert [b.apex_scan for b in blobs] == [50]

    def test_local_maxima_detector(self):
        params = PeakDetectionParams(detector=PeakDetectorType.LOCAL_MAXIMA)
        blobs = detect_blobs(two_peak_profile(), params)
        assert sorted(b.apex_scan for b in blobs) == [50, 120]

    def test_blob_bounds_contain_apex(self):
        for blob in detect_blobs(two_peak_profile(), PeakDetectionParams()):
            assert blob.min_scan <= blob.apex_scan <= blob.max_scan
            assert blob.prominence > 0

    def test_flat_profile_has_no_peaks(self):
        assert detect_blobs(np.full(100, 50.0), PeakDetectionParams()) == []

    def test_empty_profile_has_no_peaks(self):
        assert detect_blobs(np.zeros(100), PeakDetectionParams()) == []
        assert detect_blobs(np.zeros(0), PeakDetectionParams()) == []

    def test_invalid_params(self):
        with pytest.raises(ValueError):
            PeakDetectionParams(feature_filter_level=1.5)
        with pytest.raises(ValueError):
            PeakDetectionParams(relative_prominence=1.0)


class TestFindPeaks:
    """Test peak construction on a synthetic voltage group."""

    @pytest.fixture
    def first_group(self, single_isomer_source):
        accumulated = accumulate_voltage_groups(single_isomer_source, TARGET_MZ, 10.0)
        return next(iter(accumulated))

    def test_apex_at_expected_scan(self, single_isomer_source, single_isomer_mobility, first_group):
        group, xic = first_group

        peaks = find_peaks(single_isomer_source, group, xic, TARGET_MZ)

        assert len(peaks) == 1
        peak = peaks[0]
        assert peak.apex_scan == apex_scan_for_mobility(single_isomer_mobility, group.mean_voltage)
        assert peak.apex_drift_time_ms == pytest.approx(peak.apex_scan * TOF_WIDTH_SECONDS * 1000.0)
        assert peak.voltage_group_id == group.group_id

    def test_fwhm_is_monotonic(self, single_isomer_source, first_group):
        group, xic = first_group
        peak = find_peaks(single_isomer_source, group, xic, TARGET_MZ)[0]

        assert peak.min_scan <= peak.fwhm_scan_low < peak.apex_scan < peak.fwhm_scan_high <= peak.max_scan
        assert peak.drift_time_fwhm_low_ms < peak.apex_drift_time_ms < peak.drift_time_fwhm_high_ms
        # Raw sigma 2 smoothed with sigma 1.5 gives a FWHM near 5.9 scans
        assert 4.0 < peak.fwhm_scan_high - peak.fwhm_scan_low < 8.0

    def test_unresolved_mz_uses_fallback_tolerance(self, single_isomer_source, first_group):
        group, xic = first_group
        peak = find_peaks(single_isomer_source, group, xic, TARGET_MZ)[0]

        assert peak.apex_mz == pytest.approx(TARGET_MZ)
        assert peak.mz_tolerance_ppm == pytest.approx(10.0)

    def test_flat_group_yields_no_peaks(self, flat_line_source):
        group, xic = next(iter(accumulate_voltage_groups(flat_line_source, TARGET_MZ, 10.0)))
        assert find_peaks(flat_line_source, group, xic, TARGET_MZ) == []
