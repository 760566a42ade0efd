"""Isomer tracks: one conformer followed across voltage groups.

A track holds at most one :class:`ObservedPeak` per voltage group. Each peak
becomes one point of the linearized Mason–Schamp relation

    x = apex drift time [s]
    y = P_nd / (V · T_nd)  [1/V]

whose slope is K0 / L² (reduced mobility over squared drift-tube length). From
the slope the track derives

    mobility K0 = L² · slope                         [cm²/(V·s)]
    CCS = 18459 / sqrt(μ · T) · |z| / K0             [Å²]

with μ the reduced mass of ion and buffer gas (Da) and T the frame-weighted
mean temperature (K) of the groups on the fit.

Examples
--------
>>> track = IsomerTrack(target, arena)
>>> for observed in peaks:
...     track.add_observation(observed)
>>> track.refine(min_r2=0.9, min_fit_points=3)
>>> track.mobility, track.cross_section
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import FrozenSet, List, Tuple

import numpy as np
from numba import njit

from ..constants import CCS_PREFACTOR, DRIFT_TUBE_LENGTH_CM, NITROGEN_MASS
from ..scoring.feature_scoring import ObservedPeak
from ..scoring.voltage_group_scoring import average_stability_score
from ..targets import ImsTarget, target_mz
from ..units import ppm_error
from ..voltage.group import VoltageGroup, VoltageGroupArena
from .fitline import FitLine


@dataclass(frozen=True)
class ArrivalTimeSnapshot:
    """Measured arrival time of one track peak and its group's conditions."""
    voltage_group_id: int
    measured_arrival_time_ms: float
    drift_tube_voltage: float
    temperature_kelvin: float
    pressure_torr: float


# ========== Physics ==========

@njit
def reduced_mass(ion_mass: float, gas_mass: float) -> float:
    """Reduced mass (Da) of an ion colliding with a buffer-gas molecule."""
    return ion_mass * gas_mass / (ion_mass + gas_mass)


@njit
def mobility_from_slope(slope: float, drift_tube_length_cm: float) -> float:
    """K0 = L² / (1 / slope); slope in 1/(V·s), result in cm²/(V·s)."""
    return drift_tube_length_cm * drift_tube_length_cm * slope


@njit
def collision_cross_section(
    mobility: float,
    mean_temperature_kelvin: float,
    charge_state: int,
    reduced_mass_da: float,
) -> float:
    """Mason–Schamp cross section in Å². Returns 0 for unphysical inputs."""
    if mobility <= 0.0 or mean_temperature_kelvin <= 0.0 or reduced_mass_da <= 0.0:
        return 0.0
    return CCS_PREFACTOR / math.sqrt(reduced_mass_da * mean_temperature_kelvin) * abs(charge_state) / mobility


def fit_point(group: VoltageGroup, apex_drift_time_ms: float) -> Tuple[float, float]:
    """(drift time in s, P_nd / (V · T_nd)) for one peak in one group."""
    x = apex_drift_time_ms / 1000.0
    y = group.mean_pressure_nd / group.mean_voltage / group.mean_temperature_nd
    return x, y


# ========== Track ==========

class IsomerTrack:
    """Peaks of one conformer across voltage groups, with its mobility fit.

    The fit is computed lazily and invalidated whenever an observation is
    added. :meth:`refine` removes outlier peaks from the fit; they stay in
    ``observed_peaks`` but no longer count as fit points.
    """

    def __init__(
        self,
        target: ImsTarget,
        arena: VoltageGroupArena,
        drift_tube_length_cm: float = DRIFT_TUBE_LENGTH_CM,
        buffer_gas_mass: float = NITROGEN_MASS,
    ):
        self.target = target
        self.arena = arena
        self.drift_tube_length_cm = drift_tube_length_cm
        self.buffer_gas_mass = buffer_gas_mass
        self._peaks: List[ObservedPeak] = []
        self._line = None

    def __len__(self) -> int:
        return len(self._peaks)

    def __repr__(self) -> str:
        return (
            f"IsomerTrack(peaks={len(self._peaks)}, fit_points={self.fit_points_count}, "
            f"mobility={self.mobility:.4f}, r2={self.r_squared:.4f})"
        )

    def add_observation(self, observed: ObservedPeak):
        """Add a peak; a track holds at most one peak per voltage group.

        Raises:
            ValueError: If the track already has a peak in that voltage group
        """
        if observed.voltage_group_id in self.voltage_group_ids:
            raise ValueError(
                f"Track already holds a peak in voltage group {observed.voltage_group_id}"
            )
        self._peaks.append(observed)
        self._line = None

    @property
    def observed_peaks(self) -> Tuple[ObservedPeak, ...]:
        return tuple(self._peaks)

    @property
    def voltage_group_ids(self) -> FrozenSet[int]:
        return frozenset(p.voltage_group_id for p in self._peaks)

    # ---------- Fit ----------

    @property
    def line(self) -> FitLine:
        if self._line is None:
            points = [
                fit_point(self.arena[p.voltage_group_id], p.peak.apex_drift_time_ms)
                for p in self._peaks
            ]
            x = np.array([pt[0] for pt in points], dtype=np.float64)
            y = np.array([pt[1] for pt in points], dtype=np.float64)
            self._line = FitLine(x, y)
        return self._line

    def refine(self, min_r2: float, min_fit_points: int) -> List[ObservedPeak]:
        """Robust refit; returns the peaks removed as outliers."""
        removed = self.line.robust_refine(min_r2, min_fit_points)
        return [self._peaks[i] for i in removed]

    @property
    def fitted_peaks(self) -> List[ObservedPeak]:
        active = self.line.active
        return [p for p, keep in zip(self._peaks, active) if keep]

    @property
    def outlier_peaks(self) -> List[ObservedPeak]:
        return [self._peaks[i] for i in self.line.outlier_indices]

    @property
    def peak_ids(self) -> FrozenSet[int]:
        """Ids of the peaks on the fit."""
        return frozenset(p.peak_id for p in self.fitted_peaks)

    @property
    def fit_points_count(self) -> int:
        return len(self.line)

    @property
    def r_squared(self) -> float:
        return float(self.line.r_squared)

    @property
    def mobility(self) -> float:
        return float(mobility_from_slope(self.line.slope, self.drift_tube_length_cm))

    # ---------- Derived quantities ----------

    def _fitted_groups(self) -> List[VoltageGroup]:
        return [self.arena[p.voltage_group_id] for p in self.fitted_peaks]

    @property
    def mean_temperature_kelvin(self) -> float:
        """Frame-weighted mean temperature of the groups on the fit."""
        groups = self._fitted_groups()
        frames = sum(g.frame_count for g in groups)
        if frames == 0:
            return 0.0
        return sum(g.mean_temperature_kelvin * g.frame_count for g in groups) / frames

    @property
    def reduced_mass(self) -> float:
        return float(reduced_mass(self.target.mass_with_adduct, self.buffer_gas_mass))

    @property
    def cross_section(self) -> float:
        return float(collision_cross_section(
            self.mobility, self.mean_temperature_kelvin, self.target.charge_state, self.reduced_mass
        ))

    @property
    def average_voltage_group_stability(self) -> float:
        return average_stability_score(self._fitted_groups())

    @property
    def mz_error_ppm(self) -> float:
        """Mean m/z error of the fitted peak apexes against the target."""
        peaks = self.fitted_peaks
        if not peaks:
            return 0.0
        expected = target_mz(self.target)
        return float(np.mean([ppm_error(p.peak.apex_mz, expected) for p in peaks]))

    def arrival_time_snapshots(self) -> List[ArrivalTimeSnapshot]:
        snapshots = []
        for observed in self.fitted_peaks:
            group = self.arena[observed.voltage_group_id]
            snapshots.append(ArrivalTimeSnapshot(
                voltage_group_id=group.group_id,
                measured_arrival_time_ms=observed.peak.apex_drift_time_ms,
                drift_tube_voltage=group.mean_voltage,
                temperature_kelvin=group.mean_temperature_kelvin,
                pressure_torr=group.mean_pressure_torr,
            ))
        return snapshots
