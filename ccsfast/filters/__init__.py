"""Peak, voltage-group and track filters."""

from .feature_filters import (
    FeatureEvaluation,
    FeatureFilterThresholds,
    RejectionReason,
    VoltageGroupEvaluation,
    evaluate_feature,
    filter_voltage_group,
)
from .track_filters import (
    has_enough_fit_points,
    has_good_fit,
    is_consistent_with_ion_dynamics,
    is_valid_track,
)

__all__ = [
    # Peaks and voltage groups
    'FeatureEvaluation',
    'FeatureFilterThresholds',
    'RejectionReason',
    'VoltageGroupEvaluation',
    'evaluate_feature',
    'filter_voltage_group',
    # Tracks
    'has_enough_fit_points',
    'has_good_fit',
    'is_consistent_with_ion_dynamics',
    'is_valid_track',
]
