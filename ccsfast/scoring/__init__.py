"""Confidence scoring of arrival-time peaks and voltage groups.

Every score lives in [0, 1], with 0 meaning "fails or unknown":

- Intensity against the group's digitizer ceiling
- Peak shape via Jarque-Bera normality
- Isotopic profile similarity (angle, Euclidean, Pearson, Bhattacharyya)
- Voltage-group stability from parameter variances

Examples
--------
>>> from ccsfast.scoring import map_to_zero_one, isotope_similarity
>>> map_to_zero_one(9.21, True, 9.21)
>>> isotope_similarity(observed, theoretical, IsotopicScoreMethod.ANGLE)
"""

from .feature_scoring import (
    ObservedPeak,
    PeakScores,
    average_peak_scores,
    intensity_score,
    isotopic_profile_score,
    peak_shape_score,
    score_feature,
)
from .isotope_similarity import IsotopicScoreMethod, isotope_similarity
from .likelihood import (
    LIKELIHOOD_FUNCTIONS,
    intensity_dominant_likelihood,
    intensity_likelihood,
    isotopic_likelihood,
    target_presence_likelihood,
)
from .normality import jarque_bera, peak_to_random_variable
from .normalization import map_to_zero_one, max_global_intensity
from .voltage_group_scoring import average_stability_score, voltage_group_stability_score

__all__ = [
    # Peak scores
    "ObservedPeak",
    "PeakScores",
    "average_peak_scores",
    "intensity_score",
    "isotopic_profile_score",
    "peak_shape_score",
    "score_feature",
    # Isotopic similarity
    "IsotopicScoreMethod",
    "isotope_similarity",
    # Likelihoods
    "LIKELIHOOD_FUNCTIONS",
    "intensity_likelihood",
    "isotopic_likelihood",
    "intensity_dominant_likelihood",
    "target_presence_likelihood",
    # Normality and normalization
    "jarque_bera",
    "peak_to_random_variable",
    "map_to_zero_one",
    "max_global_intensity",
    # Voltage groups
    "voltage_group_stability_score",
    "average_stability_score",
]
