"""Per-target cross-section extraction."""

from .cross_section import CrossSectionWorkflow
from .parameters import CrossSectionSearchParameters
from .result import (
    AnalysisStatus,
    AssociationHypothesisInfo,
    CrossSectionResult,
    IdentifiedIsomerInfo,
    conclude_track_status,
    create_error_result,
    create_negative_result,
    create_result_from_hypothesis,
    create_unconfirmed_result,
    track_to_hypothesis_conclusion,
)

__all__ = [
    'CrossSectionWorkflow',
    'CrossSectionSearchParameters',
    # Results
    'AnalysisStatus',
    'AssociationHypothesisInfo',
    'CrossSectionResult',
    'IdentifiedIsomerInfo',
    'conclude_track_status',
    'track_to_hypothesis_conclusion',
    'create_error_result',
    'create_negative_result',
    'create_result_from_hypothesis',
    'create_unconfirmed_result',
]
