"""Combinatorial association of observed peaks into isomer tracks.

Search
------
1. Candidate tracks: every way of picking at most one peak per voltage group
   (best-scoring peaks first, "no peak" last) with at least ``min_fit_points``
   peaks. Each candidate is fitted and robustly refined; valid tracks
   (enough points, positive mobility, R² >= min) are kept, deduplicated by the
   set of peaks left on the fit.
2. Hypotheses: every peak-disjoint combination of valid tracks, including the
   empty hypothesis (everything is noise).
3. Scoring:

       log P(D|H) = Σ_tracks log(R² / min_R²)
                  + Σ_on-track log(s_p + (1 - s_p) · n_p)
                  + Σ_off-track log n_p
       n_p        = 1 - s_p · P_outlier
       P(H)       = prior^(k-1)   for k >= 1 tracks, prior^0 for k = 0

   with s_p the feature likelihood of a peak and ``prior`` 0.5 when isomers
   are expected, else 0.1. An on-track peak is the target with probability
   s_p and otherwise noise that happens to sit on the line, so moving a peak
   onto a track never lowers P(D|H), and the fit term of a valid track is
   never negative. A single valid track therefore always beats the empty
   hypothesis. Posteriors are normalized over all explored hypotheses.
4. Selection: the hypothesis maximizing the criterion wins. A tie between
   different hypotheses, or an empty winner, is a negative finding.

Both enumeration steps stop at ``max_explored_hypotheses`` and log a warning;
a truncated search still returns the best hypothesis seen.

Examples
--------
>>> tracker = CombinatorialIonTracker(min_fit_points=3, min_r2=0.9)
>>> outcome = tracker.find_optimum_hypothesis(observed_peaks, arena, target)
>>> if outcome.best_hypothesis is not None:
...     for track in outcome.best_hypothesis.tracks:
...         print(track.mobility, track.cross_section)
"""

from __future__ import annotations

import itertools
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ..constants import DRIFT_TUBE_LENGTH_CM, NITROGEN_MASS
from ..filters.track_filters import is_valid_track
from ..scoring.feature_scoring import ObservedPeak
from ..scoring.likelihood import FeatureLikelihood, target_presence_likelihood
from ..targets import ImsTarget
from ..voltage.group import VoltageGroupArena
from .hypothesis import AssociationHypothesis
from .isomer_track import IsomerTrack

logger = logging.getLogger(__name__)

# Probability that a genuine target peak ends up off every track
OUTLIER_PRESENCE_PROBABILITY = 0.8

# Prior weight per additional track
ISOMER_PRIOR_EXPECTED = 0.5
ISOMER_PRIOR_UNEXPECTED = 0.1

# Probabilities are clamped to [eps, 1 - eps] before taking logs
PROBABILITY_EPSILON = 1e-12

# Relative criterion difference below which two hypotheses tie
TIE_TOLERANCE = 1e-9


class HypothesisCriterion(Enum):
    """Quantity maximized when selecting the winning hypothesis."""
    POSTERIOR = "posterior"      # P(H|D)
    LIKELIHOOD = "likelihood"    # P(D|H)


@dataclass
class TrackingOutcome:
    """Everything the tracker found for one target."""
    best_hypothesis: Optional[AssociationHypothesis]
    hypotheses: List[AssociationHypothesis] = field(default_factory=list)
    valid_tracks: List[IsomerTrack] = field(default_factory=list)
    best_invalid_track: Optional[IsomerTrack] = None
    explored_tracks: int = 0
    truncated: bool = False
    tie: bool = False

    @property
    def found_tracks(self) -> bool:
        return self.best_hypothesis is not None and not self.best_hypothesis.is_empty


def _clamp_probability(p: float) -> float:
    return min(max(p, PROBABILITY_EPSILON), 1.0 - PROBABILITY_EPSILON)


class CombinatorialIonTracker:
    """Exhaustive (capped) search for the best peak-to-track association."""

    def __init__(
        self,
        min_fit_points: int = 3,
        min_r2: float = 0.9,
        expect_isomer: bool = False,
        max_explored_hypotheses: int = 3000,
        likelihood_function: FeatureLikelihood = target_presence_likelihood,
        criterion: HypothesisCriterion = HypothesisCriterion.POSTERIOR,
        drift_tube_length_cm: float = DRIFT_TUBE_LENGTH_CM,
        buffer_gas_mass: float = NITROGEN_MASS,
        outlier_presence_probability: float = OUTLIER_PRESENCE_PROBABILITY,
    ):
        if min_fit_points < 2:
            raise ValueError(f"A line needs at least 2 fit points, got {min_fit_points}")
        if max_explored_hypotheses < 1:
            raise ValueError("max_explored_hypotheses must be positive")

        self.min_fit_points = min_fit_points
        self.min_r2 = min_r2
        self.expect_isomer = expect_isomer
        self.max_explored_hypotheses = max_explored_hypotheses
        self.likelihood_function = likelihood_function
        self.criterion = criterion
        self.drift_tube_length_cm = drift_tube_length_cm
        self.buffer_gas_mass = buffer_gas_mass
        self.outlier_presence_probability = outlier_presence_probability

    @property
    def isomer_prior(self) -> float:
        return ISOMER_PRIOR_EXPECTED if self.expect_isomer else ISOMER_PRIOR_UNEXPECTED

    # ========== Candidate tracks ==========

    def candidate_peak_sets(
        self, observed_peaks: Sequence[ObservedPeak]
    ) -> Iterator[Tuple[ObservedPeak, ...]]:
        """Lazily yield peak combinations with at most one peak per group."""
        by_group: Dict[int, List[ObservedPeak]] = defaultdict(list)
        for observed in observed_peaks:
            by_group[observed.voltage_group_id].append(observed)

        options = []
        for group_id in sorted(by_group):
            peaks = sorted(
                by_group[group_id],
                key=lambda p: self.likelihood_function(p.scores),
                reverse=True,
            )
            options.append(peaks + [None])

        for choice in itertools.product(*options):
            peaks = tuple(p for p in choice if p is not None)
            if len(peaks) >= self.min_fit_points:
                yield peaks

    def build_track(
        self,
        peaks: Sequence[ObservedPeak],
        arena: VoltageGroupArena,
        target: ImsTarget,
    ) -> IsomerTrack:
        """Fit and robustly refine a track over ``peaks``."""
        track = IsomerTrack(target, arena, self.drift_tube_length_cm, self.buffer_gas_mass)
        for observed in peaks:
            track.add_observation(observed)
        track.refine(self.min_r2, self.min_fit_points)
        return track

    def is_valid(self, track: IsomerTrack) -> bool:
        return is_valid_track(track, self.min_fit_points, self.min_r2)

    def find_valid_tracks(
        self,
        observed_peaks: Sequence[ObservedPeak],
        arena: VoltageGroupArena,
        target: ImsTarget,
    ) -> Tuple[List[IsomerTrack], Optional[IsomerTrack], int, bool]:
        """Fit candidate tracks up to the exploration cap.

        Returns:
            (valid tracks, best invalid track, candidates explored, truncated)
        """
        valid: Dict[frozenset, IsomerTrack] = {}
        best_invalid = None
        explored = 0
        truncated = False

        for peaks in self.candidate_peak_sets(observed_peaks):
            if explored >= self.max_explored_hypotheses:
                truncated = True
                break
            explored += 1

            track = self.build_track(peaks, arena, target)
            if self.is_valid(track):
                valid.setdefault(track.peak_ids, track)
            elif best_invalid is None or (
                (track.fit_points_count, track.r_squared)
                > (best_invalid.fit_points_count, best_invalid.r_squared)
            ):
                best_invalid = track

        if truncated:
            logger.warning(
                f"Candidate track search truncated after {explored:,} tracks "
                f"(max_explored_hypotheses={self.max_explored_hypotheses})"
            )
        return list(valid.values()), best_invalid, explored, truncated

    def best_effort_track(
        self,
        observed_peaks: Sequence[ObservedPeak],
        arena: VoltageGroupArena,
        target: ImsTarget,
    ) -> Optional[IsomerTrack]:
        """Track through the best-scoring peak of each group, for diagnostics.

        Meant for targets seen in fewer than ``min_fit_points`` groups, where no
        candidate track exists. None below two groups.
        """
        best: Dict[int, ObservedPeak] = {}
        for observed in observed_peaks:
            current = best.get(observed.voltage_group_id)
            if current is None or (
                self.likelihood_function(observed.scores) > self.likelihood_function(current.scores)
            ):
                best[observed.voltage_group_id] = observed

        if len(best) < 2:
            return None
        return self.build_track([best[g] for g in sorted(best)], arena, target)

    # ========== Hypotheses ==========

    def enumerate_hypotheses(
        self,
        observed_peaks: Sequence[ObservedPeak],
        tracks: Sequence[IsomerTrack],
    ) -> Tuple[List[AssociationHypothesis], bool]:
        """All peak-disjoint track combinations (empty one first), capped."""
        hypotheses = []
        truncated = False
        stack = [(0, ())]

        while stack:
            if len(hypotheses) >= self.max_explored_hypotheses:
                truncated = True
                break
            start, chosen = stack.pop()

            hypothesis = AssociationHypothesis(observed_peaks)
            for track in chosen:
                hypothesis.add_isomer_track(track)
            hypotheses.append(hypothesis)

            for i in range(len(tracks) - 1, start - 1, -1):
                if not hypothesis.is_conflict(tracks[i]):
                    stack.append((i + 1, chosen + (tracks[i],)))

        if truncated:
            logger.warning(
                f"Hypothesis enumeration truncated at {len(hypotheses):,} hypotheses"
            )
        return hypotheses, truncated

    # ========== Scoring ==========

    def log_likelihood(self, hypothesis: AssociationHypothesis) -> float:
        """log P(D|H)."""
        log_min_r2 = math.log(_clamp_probability(self.min_r2))
        total = 0.0
        for track in hypothesis.tracks:
            total += math.log(_clamp_probability(track.r_squared)) - log_min_r2

        for observed in hypothesis.all_peaks:
            s = _clamp_probability(self.likelihood_function(observed.scores))
            noise = _clamp_probability(1.0 - s * self.outlier_presence_probability)
            if hypothesis.is_on_track(observed):
                total += math.log(s + (1.0 - s) * noise)
            else:
                total += math.log(noise)
        return total

    def log_prior(self, hypothesis: AssociationHypothesis) -> float:
        """log P(H); the empty and the single-track hypothesis share the base prior."""
        extra_tracks = max(len(hypothesis.tracks) - 1, 0)
        return extra_tracks * math.log(self.isomer_prior)

    def score_hypotheses(self, hypotheses: Sequence[AssociationHypothesis]):
        """Fill in likelihoods and normalized posteriors in place."""
        if not hypotheses:
            return
        for hypothesis in hypotheses:
            hypothesis.log_likelihood = self.log_likelihood(hypothesis)
            hypothesis.log_prior = self.log_prior(hypothesis)

        log_joint = np.array([h.log_likelihood + h.log_prior for h in hypotheses])
        weights = np.exp(log_joint - np.max(log_joint))
        posteriors = weights / np.sum(weights)
        for hypothesis, posterior in zip(hypotheses, posteriors):
            hypothesis.probability_of_hypothesis_given_data = float(posterior)

    def criterion_value(self, hypothesis: AssociationHypothesis) -> float:
        if self.criterion == HypothesisCriterion.POSTERIOR:
            return hypothesis.log_likelihood + hypothesis.log_prior
        elif self.criterion == HypothesisCriterion.LIKELIHOOD:
            return hypothesis.log_likelihood
        else:
            raise ValueError(f"Unknown hypothesis criterion: {self.criterion}")

    def select(
        self, hypotheses: Sequence[AssociationHypothesis]
    ) -> Tuple[Optional[AssociationHypothesis], bool]:
        """Winning hypothesis and whether it tied with a different one."""
        if not hypotheses:
            return None, False

        ranked = sorted(hypotheses, key=self.criterion_value, reverse=True)
        best = ranked[0]
        if len(ranked) > 1:
            runner_up = ranked[1]
            a = self.criterion_value(best)
            b = self.criterion_value(runner_up)
            if (
                abs(a - b) <= TIE_TOLERANCE * max(1.0, abs(a))
                and best.track_keys != runner_up.track_keys
            ):
                return None, True
        return best, False

    # ========== Entry point ==========

    def find_optimum_hypothesis(
        self,
        observed_peaks: Sequence[ObservedPeak],
        arena: VoltageGroupArena,
        target: ImsTarget,
    ) -> TrackingOutcome:
        """Search tracks and hypotheses and select the winner.

        Args:
            observed_peaks: Peaks surviving the feature filters (unique ids)
            arena: Voltage groups the peaks refer to
            target: The target ion (for reduced mass and charge)

        Returns:
            TrackingOutcome; ``best_hypothesis`` is None on a tie
        """
        ids = [p.peak_id for p in observed_peaks]
        if len(set(ids)) != len(ids):
            raise ValueError("Observed peak ids must be unique")

        tracks, best_invalid, explored, tracks_truncated = self.find_valid_tracks(
            observed_peaks, arena, target
        )
        tracks.sort(key=lambda t: t.r_squared, reverse=True)

        hypotheses, hypotheses_truncated = self.enumerate_hypotheses(observed_peaks, tracks)
        self.score_hypotheses(hypotheses)
        best, tie = self.select(hypotheses)

        logger.info(
            f"✓ Tracked {len(observed_peaks)} peaks: {explored:,} candidate tracks, "
            f"{len(tracks)} valid, {len(hypotheses):,} hypotheses"
        )
        if tie:
            logger.info("Top hypotheses tie; no association selected")

        return TrackingOutcome(
            best_hypothesis=best,
            hypotheses=hypotheses,
            valid_tracks=tracks,
            best_invalid_track=best_invalid,
            explored_tracks=explored,
            truncated=tracks_truncated or hypotheses_truncated,
            tie=tie,
        )
