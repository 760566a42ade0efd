"""Isomer tracks, mobility fits and hypothesis search."""

from .fitline import FitLine, cooks_distances, fit_statistics, leverages
from .hypothesis import AssociationHypothesis
from .ion_tracker import CombinatorialIonTracker, HypothesisCriterion, TrackingOutcome
from .isomer_track import (
    ArrivalTimeSnapshot,
    IsomerTrack,
    collision_cross_section,
    mobility_from_slope,
    reduced_mass,
)

__all__ = [
    # Regression
    'FitLine',
    'fit_statistics',
    'leverages',
    'cooks_distances',
    # Tracks
    'ArrivalTimeSnapshot',
    'IsomerTrack',
    'collision_cross_section',
    'mobility_from_slope',
    'reduced_mass',
    # Association
    'AssociationHypothesis',
    'CombinatorialIonTracker',
    'HypothesisCriterion',
    'TrackingOutcome',
]
