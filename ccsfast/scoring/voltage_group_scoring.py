"""Stability score of a voltage group.

Frames of a well-controlled group share almost identical drift conditions; the
product of the voltage, temperature and pressure variances (the latter two
nondimensionalized) is inverse-mapped so that 1e-17 scores 0.9.
"""

from typing import Iterable

import numpy as np

from ..voltage.group import VoltageGroup
from .normalization import map_to_zero_one

STABILITY_NINETY_PERCENT_VARIANCE = 1e-17


def voltage_group_stability_score(group: VoltageGroup) -> float:
    variance_product = (
        group.variance_voltage * group.variance_temperature_nd * group.variance_pressure_nd
    )
    return map_to_zero_one(variance_product, True, STABILITY_NINETY_PERCENT_VARIANCE)


def average_stability_score(groups: Iterable[VoltageGroup]) -> float:
    """Mean stability over groups; 0 for none."""
    scores = [voltage_group_stability_score(g) for g in groups]
    if not scores:
        return 0.0
    return float(np.mean(scores))
