"""Frame data access."""

from .source import FrameDataSource, FrameParams, InMemoryFrameSource, XicData

__all__ = [
    'FrameDataSource',
    'FrameParams',
    'InMemoryFrameSource',
    'XicData',
]
