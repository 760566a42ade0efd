"""Pytest configuration for ccsfast tests.

Provides synthetic multi-voltage IMS datasets held in an
:class:`InMemoryFrameSource`. Arrival-time peaks are placed where the
Mason-Schamp relation puts an ion of known reduced mobility, so expected
mobilities and cross sections can be computed by hand.
"""

import numpy as np
import pytest

from ccsfast.constants import (
    DRIFT_TUBE_LENGTH_CM,
    PASCAL_PER_TORR,
    STANDARD_PRESSURE_PASCAL,
    STANDARD_TEMPERATURE_KELVIN,
)
from ccsfast.data.source import FrameParams, InMemoryFrameSource
from ccsfast.features.peak_detection import StandardImsPeak
from ccsfast.scoring.feature_scoring import ObservedPeak, PeakScores
from ccsfast.voltage.group import VoltageGroupArena

TARGET_MZ = 500.25
SCAN_COUNT = 400
TOF_WIDTH_SECONDS = 1e-4
TEMPERATURE_KELVIN = 298.0
PRESSURE_TORR = 4.0
VOLTAGES = (1000.0, 1400.0, 1800.0)
FRAMES_PER_GROUP = 3


def p_over_vt(voltage, pressure_torr=PRESSURE_TORR, temperature_kelvin=TEMPERATURE_KELVIN):
    """Nondimensionalized P / (V · T)."""
    p_nd = pressure_torr * PASCAL_PER_TORR / STANDARD_PRESSURE_PASCAL
    t_nd = temperature_kelvin / STANDARD_TEMPERATURE_KELVIN
    return p_nd / (voltage * t_nd)


def apex_scan_for_mobility(mobility, voltage, tof_width=TOF_WIDTH_SECONDS):
    """Nearest drift scan of an ion with reduced mobility ``mobility`` (cm²/(V·s))."""
    drift_time_s = DRIFT_TUBE_LENGTH_CM ** 2 * p_over_vt(voltage) / mobility
    return int(round(drift_time_s / tof_width))


def gaussian_centroids(apex_scans, amplitude=200.0, sigma=2.0, mz=TARGET_MZ, scan_count=SCAN_COUNT):
    """Centroids at one m/z with Gaussian drift profiles around each apex."""
    scans = []
    intensities = []
    for apex in apex_scans:
        for scan in range(max(0, apex - 8), min(scan_count, apex + 9)):
            scans.append(scan)
            intensities.append(amplitude * np.exp(-0.5 * ((scan - apex) / sigma) ** 2))
    scans = np.array(scans, dtype=np.int64)
    return scans, np.full(len(scans), mz), np.array(intensities)


def build_source(apex_scans_per_voltage, voltages=VOLTAGES, frames_per_group=FRAMES_PER_GROUP, **centroid_kwargs):
    """One voltage group per entry, each holding ``frames_per_group`` identical frames."""
    source = InMemoryFrameSource()
    for voltage, apex_scans in zip(voltages, apex_scans_per_voltage):
        params = FrameParams(
            voltage=voltage,
            temperature=TEMPERATURE_KELVIN,
            pressure=PRESSURE_TORR,
            scan_count=SCAN_COUNT,
            tof_width_seconds=TOF_WIDTH_SECONDS,
        )
        scans, mzs, intensities = gaussian_centroids(apex_scans, **centroid_kwargs)
        for _ in range(frames_per_group):
            source.add_frame(params, scans, mzs, intensities)
    return source


def make_observed_peak(peak_id, group_id, drift_time_ms, scores=None, apex_mz=TARGET_MZ):
    """ObservedPeak with a narrow synthetic arrival-time peak at ``drift_time_ms``."""
    apex_scan = int(round(drift_time_ms / 1000.0 / TOF_WIDTH_SECONDS))
    peak = StandardImsPeak(
        voltage_group_id=group_id,
        apex_scan=apex_scan,
        min_scan=apex_scan - 6,
        max_scan=apex_scan + 6,
        fwhm_scan_low=apex_scan - 2.4,
        fwhm_scan_high=apex_scan + 2.4,
        apex_drift_time_ms=drift_time_ms,
        drift_time_fwhm_low_ms=drift_time_ms - 0.24,
        drift_time_fwhm_high_ms=drift_time_ms + 0.24,
        apex_mz=apex_mz,
        mz_fwhm_low=apex_mz * (1 - 1e-5),
        mz_fwhm_high=apex_mz * (1 + 1e-5),
        summed_intensity=1000.0,
        apex_intensity=200.0,
    )
    if scores is None:
        scores = PeakScores(intensity_score=0.95, isotopic_score=0.0, peak_shape_score=0.95)
    return ObservedPeak(peak_id, group_id, peak, scores)


def make_arena(voltages=VOLTAGES):
    """Arena with one single-frame group per voltage, at the standard conditions."""
    arena = VoltageGroupArena()
    for frame, voltage in enumerate(voltages):
        group = arena.new_group(first_frame=frame)
        group.offer(
            voltage, TEMPERATURE_KELVIN, PRESSURE_TORR,
            frame_index=frame, scan_count=SCAN_COUNT, tof_width_seconds=TOF_WIDTH_SECONDS,
        )
    return arena


def drift_time_ms_for_mobility(mobility, voltage):
    return DRIFT_TUBE_LENGTH_CM ** 2 * p_over_vt(voltage) / mobility * 1000.0


@pytest.fixture
def single_isomer_mobility():
    return 1.5


@pytest.fixture
def single_isomer_source(single_isomer_mobility):
    """Three voltage groups, one arrival-time peak each."""
    apexes = [[apex_scan_for_mobility(single_isomer_mobility, v)] for v in VOLTAGES]
    return build_source(apexes)


@pytest.fixture
def two_isomer_mobilities():
    return 1.2, 1.6


@pytest.fixture
def two_isomer_source(two_isomer_mobilities):
    """Three voltage groups, two conformers with different mobilities in each."""
    apexes = [
        [apex_scan_for_mobility(k0, v) for k0 in two_isomer_mobilities]
        for v in VOLTAGES
    ]
    return build_source(apexes)


@pytest.fixture
def flat_line_source():
    """A single voltage group whose drift profile is constant."""
    source = InMemoryFrameSource()
    params = FrameParams(
        voltage=1000.0,
        temperature=TEMPERATURE_KELVIN,
        pressure=PRESSURE_TORR,
        scan_count=SCAN_COUNT,
        tof_width_seconds=TOF_WIDTH_SECONDS,
    )
    scans = np.arange(SCAN_COUNT, dtype=np.int64)
    for _ in range(FRAMES_PER_GROUP):
        source.add_frame(params, scans, np.full(SCAN_COUNT, TARGET_MZ), np.full(SCAN_COUNT, 50.0))
    return source


# Random seed for reproducibility
@pytest.fixture(scope="session", autouse=True)
def set_random_seed():
    """Set random seed for reproducible tests."""
    np.random.seed(42)
