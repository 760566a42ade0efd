"""Arrival-time peak detection."""

from .peak_detection import (
    FeatureBlob,
    PeakDetectionParams,
    PeakDetectorType,
    StandardImsPeak,
    detect_blobs,
    find_peaks,
    local_maxima_labels,
    watershed_labels,
)

__all__ = [
    'FeatureBlob',
    'PeakDetectionParams',
    'PeakDetectorType',
    'StandardImsPeak',
    'detect_blobs',
    'find_peaks',
    'local_maxima_labels',
    'watershed_labels',
]
