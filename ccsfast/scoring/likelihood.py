"""Feature likelihood functions.

A likelihood function turns the :class:`PeakScores` of one peak into the
probability, in [0, 1], that the peak is a genuine observation of the target
ion. The ion tracker uses it to weigh explained against unexplained peaks.
"""

from typing import Callable, Dict

from .feature_scoring import PeakScores

FeatureLikelihood = Callable[[PeakScores], float]


def intensity_likelihood(scores: PeakScores) -> float:
    return scores.intensity_score


def isotopic_likelihood(scores: PeakScores) -> float:
    return scores.isotopic_score


def intensity_dominant_likelihood(scores: PeakScores) -> float:
    """Intensity weighted 2:1 over isotopic fit; intensity alone without composition."""
    if scores.isotopic_score == 0.0:
        return scores.intensity_score
    return (2.0 * scores.intensity_score + scores.isotopic_score) / 3.0


def target_presence_likelihood(scores: PeakScores) -> float:
    """Weighted mean of all available evidence (isotopic fit counts double).

    Peak shape always contributes; the isotopic score only when non-zero, so
    targets without composition are not penalized for it.
    """
    total = scores.intensity_score + scores.peak_shape_score
    weight = 2.0
    if scores.isotopic_score > 0.0:
        total += 2.0 * scores.isotopic_score
        weight += 2.0
    return total / weight


LIKELIHOOD_FUNCTIONS: Dict[str, FeatureLikelihood] = {
    "intensity": intensity_likelihood,
    "isotopic": isotopic_likelihood,
    "intensity_dominant": intensity_dominant_likelihood,
    "target_presence": target_presence_likelihood,
}
