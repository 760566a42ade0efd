"""Streaming voltage-group classification.

Frames are acquired in blocks that share one drift-tube voltage. The voltage
read back for each frame jitters slightly, so frames are clustered online: each
:class:`VoltageGroup` keeps running (Welford) means and population variances of
voltage, temperature and pressure, and decides for every new frame whether it
still belongs to the group. The first rejected frame starts a new group, which
yields contiguous, non-overlapping frame partitions without look-ahead.

Admission rule (first match wins):

1. the group is empty
2. ``|V - mean| < 3 * std``
3. ``|V - mean| < MIN_DIFFERENTIAL_VOLTAGE`` (5 V)
4. admitting V would not more than double the voltage variance

Groups are stored in a :class:`VoltageGroupArena` and referred to everywhere
else by their integer ``group_id``.

Examples
--------
>>> arena = VoltageGroupArena()
>>> group = arena.new_group(first_frame=0)
>>> group.offer(1500.0, 298.0, 4.0, frame_index=0)
True
>>> group.offer(1000.0, 298.0, 4.0, frame_index=1)
False
"""

from __future__ import annotations

import math
from typing import Iterator, List, Optional, Tuple

from ..constants import MIN_DIFFERENTIAL_VOLTAGE
from ..exceptions import DataIntegrityError
from ..units import (
    dimensionalize_pressure_to_torr,
    dimensionalize_temperature_to_kelvin,
    nondimensionalize_pressure,
    nondimensionalize_temperature,
    torr_to_pascal,
)


class RunningStatistic:
    """Online mean and population variance (Welford update)."""

    __slots__ = ("count", "mean", "variance")

    def __init__(self):
        self.count = 0
        self.mean = 0.0
        self.variance = 0.0

    def add(self, x: float):
        self.count += 1
        old_mean = self.mean
        self.mean = old_mean + (x - old_mean) / self.count
        self.variance = ((self.count - 1) * self.variance + (x - self.mean) * (x - old_mean)) / self.count

    def dry_run_variance(self, x: float) -> float:
        """Variance the statistic would have after adding ``x``."""
        n = self.count + 1
        new_mean = self.mean + (x - self.mean) / n
        return ((n - 1) * self.variance + (x - new_mean) * (x - self.mean)) / n


class VoltageGroup:
    """Frames sharing one drift-tube voltage, with running parameter statistics.

    Temperature and pressure are accumulated nondimensionalized (relative to
    273.15 K and one standard atmosphere); the ``*_kelvin``/``*_torr``
    properties convert back.
    """

    def __init__(self, group_id: int, first_frame: int):
        self.group_id = group_id
        self.first_frame = first_frame
        self.last_frame = first_frame - 1
        self.scan_count = 0
        self.accumulations = 0

        self._voltage = RunningStatistic()
        self._temperature = RunningStatistic()
        self._pressure = RunningStatistic()
        self._tof_width = RunningStatistic()

    def __repr__(self) -> str:
        return (
            f"VoltageGroup(id={self.group_id}, frames={self.first_frame}-{self.last_frame}, "
            f"V={self.mean_voltage:.2f})"
        )

    # ========== Classification ==========

    def offer(
        self,
        voltage: float,
        temperature_kelvin: float,
        pressure_torr: float,
        frame_index: Optional[int] = None,
        scan_count: int = 0,
        tof_width_seconds: float = 0.0,
        accumulations: int = 1,
    ) -> bool:
        """Add the frame if its voltage belongs to this group.

        Returns:
            True if the frame was accepted, False if the caller should start a
            new group

        Raises:
            DataIntegrityError: If the voltage is not positive
        """
        if voltage <= 0:
            raise DataIntegrityError(
                f"Drift-tube voltage of {voltage} V in frame {frame_index} indicates an instrument error"
            )

        if not self.accepts(voltage):
            return False

        self.add(voltage, temperature_kelvin, pressure_torr,
                 frame_index=frame_index, scan_count=scan_count,
                 tof_width_seconds=tof_width_seconds, accumulations=accumulations)
        return True

    def accepts(self, voltage: float) -> bool:
        """Voltage admission rule, without modifying the group."""
        stat = self._voltage
        if stat.count == 0:
            return True

        delta = abs(voltage - stat.mean)
        if delta < 3.0 * math.sqrt(stat.variance):
            return True
        if delta < MIN_DIFFERENTIAL_VOLTAGE:
            return True
        return stat.dry_run_variance(voltage) <= 2.0 * stat.variance

    def add(
        self,
        voltage: float,
        temperature_kelvin: float,
        pressure_torr: float,
        frame_index: Optional[int] = None,
        scan_count: int = 0,
        tof_width_seconds: float = 0.0,
        accumulations: int = 1,
    ):
        """Unconditionally add one frame's parameters to the running statistics."""
        if voltage <= 0:
            raise DataIntegrityError(f"Drift-tube voltage of {voltage} V indicates an instrument error")

        self._voltage.add(voltage)
        self._temperature.add(nondimensionalize_temperature(temperature_kelvin))
        self._pressure.add(nondimensionalize_pressure(torr_to_pascal(pressure_torr)))
        if tof_width_seconds > 0:
            self._tof_width.add(tof_width_seconds)

        self.scan_count = max(self.scan_count, scan_count)
        self.accumulations = max(self.accumulations, accumulations)
        if frame_index is not None:
            self.last_frame = frame_index
        else:
            self.last_frame += 1

    # ========== Statistics ==========

    @property
    def frame_count(self) -> int:
        return self._voltage.count

    @property
    def frame_range(self) -> Tuple[int, int]:
        return self.first_frame, self.last_frame

    @property
    def mean_voltage(self) -> float:
        return self._voltage.mean

    @property
    def variance_voltage(self) -> float:
        return self._voltage.variance

    @property
    def mean_temperature_nd(self) -> float:
        return self._temperature.mean

    @property
    def variance_temperature_nd(self) -> float:
        return self._temperature.variance

    @property
    def mean_pressure_nd(self) -> float:
        return self._pressure.mean

    @property
    def variance_pressure_nd(self) -> float:
        return self._pressure.variance

    @property
    def mean_temperature_kelvin(self) -> float:
        return dimensionalize_temperature_to_kelvin(self._temperature.mean)

    @property
    def mean_pressure_torr(self) -> float:
        return dimensionalize_pressure_to_torr(self._pressure.mean)

    @property
    def mean_tof_width_seconds(self) -> float:
        return self._tof_width.mean

    def dry_run_voltage_variance(self, voltage: float) -> float:
        return self._voltage.dry_run_variance(voltage)


class VoltageGroupArena:
    """Owns all voltage groups of one target run; groups are looked up by id."""

    def __init__(self):
        self._groups: List[VoltageGroup] = []

    def new_group(self, first_frame: int) -> VoltageGroup:
        group = VoltageGroup(len(self._groups), first_frame)
        self._groups.append(group)
        return group

    def __getitem__(self, group_id: int) -> VoltageGroup:
        return self._groups[group_id]

    def __len__(self) -> int:
        return len(self._groups)

    def __iter__(self) -> Iterator[VoltageGroup]:
        return iter(self._groups)

    def non_empty(self) -> List[VoltageGroup]:
        return [g for g in self._groups if g.frame_count > 0]
