"""Streaming voltage-group classification."""

from .group import RunningStatistic, VoltageGroup, VoltageGroupArena

__all__ = [
    'RunningStatistic',
    'VoltageGroup',
    'VoltageGroupArena',
]
