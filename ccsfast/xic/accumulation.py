"""Voltage-separated XIC accumulation.

Streams every frame of a dataset once: frames are assigned to voltage groups
(:mod:`ccsfast.voltage.group`) and each frame's XIC at the target m/z is merged
into its group's chromatogram. After the last frame, every group chromatogram
is divided by the group's frame count so intensities are per-frame averages.

Examples
--------
>>> accumulated = accumulate_voltage_groups(source, target_mz=500.25, ppm_tolerance=10.0)
>>> for group in accumulated.arena:
...     xic = accumulated.xic(group.group_id)
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterator, Optional, Tuple

from ..data.source import FrameDataSource
from ..voltage.group import VoltageGroup, VoltageGroupArena
from .chromatogram import ExtractedIonChromatogram

logger = logging.getLogger(__name__)

# Maps frame parameters to the drift-scan window to extract (inclusive)
ScanWindowFunction = Callable[..., Tuple[int, int]]


class VoltageSeparatedXics:
    """Voltage groups of one run and their accumulated chromatograms."""

    def __init__(self, target_mz: float, ppm_tolerance: float):
        self.target_mz = target_mz
        self.ppm_tolerance = ppm_tolerance
        self.arena = VoltageGroupArena()
        self._xics: Dict[int, ExtractedIonChromatogram] = {}

    def __len__(self) -> int:
        return len(self._xics)

    def __iter__(self) -> Iterator[Tuple[VoltageGroup, ExtractedIonChromatogram]]:
        for group in self.arena:
            if group.group_id in self._xics:
                yield group, self._xics[group.group_id]

    def xic(self, group_id: int) -> ExtractedIonChromatogram:
        return self._xics[group_id]

    def add_frame_xic(self, group: VoltageGroup, xic: ExtractedIonChromatogram):
        existing = self._xics.get(group.group_id)
        if existing is None:
            self._xics[group.group_id] = xic
        else:
            self._xics[group.group_id] = existing + xic

    def average_over_frames(self):
        """Turn accumulated sums into per-frame averages."""
        for group in self.arena:
            if group.group_id in self._xics and group.frame_count > 0:
                self._xics[group.group_id] = self._xics[group.group_id].scaled(1.0 / group.frame_count)


def accumulate_voltage_groups(
    source: FrameDataSource,
    target_mz: float,
    ppm_tolerance: float,
    scan_window: Optional[ScanWindowFunction] = None,
) -> VoltageSeparatedXics:
    """Group frames by voltage and accumulate the target XIC per group.

    Args:
        source: Frame data source
        target_mz: Target ion m/z
        ppm_tolerance: XIC half-width in ppm
        scan_window: Optional ``f(params) -> (scan_low, scan_high)``; defaults
            to the full drift range of each frame

    Returns:
        VoltageSeparatedXics with averaged chromatograms

    Raises:
        DataIntegrityError: On zero voltage or invalid frame parameters
        IncompatibleChromatogramError: If frames of one group differ in scan count
    """
    result = VoltageSeparatedXics(target_mz, ppm_tolerance)
    current: Optional[VoltageGroup] = None

    for frame in range(source.frame_count()):
        params = source.frame_params(frame)
        params.validate()

        if current is None or not current.offer(
            params.voltage, params.temperature, params.pressure,
            frame_index=frame,
            scan_count=params.scan_count,
            tof_width_seconds=params.tof_width_seconds,
            accumulations=params.accumulations,
        ):
            current = result.arena.new_group(first_frame=frame)
            current.offer(
                params.voltage, params.temperature, params.pressure,
                frame_index=frame,
                scan_count=params.scan_count,
                tof_width_seconds=params.tof_width_seconds,
                accumulations=params.accumulations,
            )

        if scan_window is None:
            scan_range = (0, params.scan_count - 1)
        else:
            scan_range = scan_window(params)

        data = source.get_xic(target_mz, ppm_tolerance, (frame, frame), scan_range)
        xic = ExtractedIonChromatogram(
            target_mz, params.scan_count, data.scans, data.intensities, data.saturated
        )
        result.add_frame_xic(current, xic)

    result.average_over_frames()
    logger.info(
        f"✓ Accumulated {source.frame_count():,} frames into {len(result.arena)} voltage groups "
        f"at m/z {target_mz:.4f}"
    )
    return result
