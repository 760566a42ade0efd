"""Unit conversions for drift-tube measurements.

Instrument frames report pressure in Torr and temperature in Kelvin. The
Mason–Schamp fit works on nondimensionalized quantities (pressure relative to
one standard atmosphere, temperature relative to 273.15 K), which is what
makes ``L² · slope`` come out directly as the reduced mobility K0.

Examples
--------
>>> pressure_nd = nondimensionalize_pressure(torr_to_pascal(4.0))
>>> temperature_nd = nondimensionalize_temperature(298.0)
>>> y = pressure_nd / (1500.0 * temperature_nd)
"""

from numba import njit

from .constants import (
    ABSOLUTE_ZERO_CELSIUS,
    DRIFT_TIME_REFERENCE_PRESSURE_TORR,
    PASCAL_PER_TORR,
    STANDARD_PRESSURE_PASCAL,
    STANDARD_TEMPERATURE_KELVIN,
)


# ========== Pressure / temperature ==========

@njit
def torr_to_pascal(torr: float) -> float:
    return torr * PASCAL_PER_TORR


@njit
def pascal_to_torr(pascal: float) -> float:
    return pascal / PASCAL_PER_TORR


@njit
def celsius_to_kelvin(celsius: float) -> float:
    return celsius - ABSOLUTE_ZERO_CELSIUS


@njit
def kelvin_to_celsius(kelvin: float) -> float:
    return kelvin + ABSOLUTE_ZERO_CELSIUS


@njit
def nondimensionalize_pressure(pascal: float) -> float:
    """Pressure in units of one standard atmosphere."""
    return pascal / STANDARD_PRESSURE_PASCAL


@njit
def nondimensionalize_temperature(kelvin: float) -> float:
    """Temperature in units of the standard temperature (273.15 K)."""
    return kelvin / STANDARD_TEMPERATURE_KELVIN


@njit
def dimensionalize_pressure_to_torr(pressure_nd: float) -> float:
    return pressure_nd * STANDARD_PRESSURE_PASCAL / PASCAL_PER_TORR


@njit
def dimensionalize_temperature_to_kelvin(temperature_nd: float) -> float:
    return temperature_nd * STANDARD_TEMPERATURE_KELVIN


# ========== Drift time ==========

@njit
def scan_to_drift_time_ms(scan: float, tof_width_seconds: float) -> float:
    """Convert a (possibly fractional) drift scan index to milliseconds.

    One IMS scan is one TOF pulse, so the drift time of scan ``i`` is
    ``i * tof_width``.
    """
    return scan * tof_width_seconds * 1000.0


@njit
def drift_time_ms_to_scan(drift_time_ms: float, tof_width_seconds: float) -> float:
    return drift_time_ms / 1000.0 / tof_width_seconds


@njit
def normalize_drift_time(drift_time_ms: float, pressure_torr: float) -> float:
    """Normalize a drift time to the 4 Torr reference pressure."""
    return drift_time_ms / (pressure_torr / DRIFT_TIME_REFERENCE_PRESSURE_TORR)


@njit
def denormalize_drift_time(normalized_drift_time_ms: float, pressure_torr: float) -> float:
    """Inverse of :func:`normalize_drift_time`."""
    return normalized_drift_time_ms * (pressure_torr / DRIFT_TIME_REFERENCE_PRESSURE_TORR)


# ========== Mass accuracy ==========

@njit
def ppm_error(observed_mz: float, theoretical_mz: float) -> float:
    """Mass error in PPM (positive when observed is heavier)."""
    return (observed_mz - theoretical_mz) / theoretical_mz * 1e6


@njit
def ppm_to_dalton(ppm: float, mz: float) -> float:
    return mz * ppm / 1e6
