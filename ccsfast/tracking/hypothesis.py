"""Association hypotheses: peak-disjoint sets of isomer tracks.

A hypothesis explains every observed peak either as part of one of its tracks
(on-track) or as noise (off-track). The tracker fills in the two probabilities
after scoring all competing hypotheses.
"""

from __future__ import annotations

import math
from typing import FrozenSet, Iterable, List, Tuple

from ..scoring.feature_scoring import ObservedPeak
from .isomer_track import IsomerTrack


class AssociationHypothesis:
    """A candidate partition of the observed peaks into tracks and noise."""

    def __init__(self, all_peaks: Iterable[ObservedPeak]):
        self.all_peaks: Tuple[ObservedPeak, ...] = tuple(all_peaks)
        self._tracks: List[IsomerTrack] = []
        self._on_track_ids: set = set()

        # log P(D|H), log P(H) and normalized P(H|D), set by the tracker
        self.log_likelihood = -math.inf
        self.log_prior = 0.0
        self.probability_of_hypothesis_given_data = 0.0

    def __repr__(self) -> str:
        return (
            f"AssociationHypothesis(tracks={len(self._tracks)}, "
            f"log_likelihood={self.log_likelihood:.4f}, "
            f"posterior={self.probability_of_hypothesis_given_data:.4f})"
        )

    @property
    def tracks(self) -> Tuple[IsomerTrack, ...]:
        return tuple(self._tracks)

    @property
    def track_keys(self) -> FrozenSet[FrozenSet[int]]:
        """Identity of the hypothesis: the peak-id sets of its tracks."""
        return frozenset(track.peak_ids for track in self._tracks)

    @property
    def is_empty(self) -> bool:
        return not self._tracks

    @property
    def probability_of_data_given_hypothesis(self) -> float:
        return math.exp(self.log_likelihood)

    def is_conflict(self, track: IsomerTrack) -> bool:
        """True if ``track`` shares a peak with a track already in the hypothesis."""
        return not self._on_track_ids.isdisjoint(track.peak_ids)

    def add_isomer_track(self, track: IsomerTrack):
        """Add a track; tracks of one hypothesis are mutually peak-disjoint.

        Raises:
            ValueError: If the track shares a peak with an existing track
        """
        if self.is_conflict(track):
            raise ValueError("Track shares peaks with a track already in the hypothesis")
        self._tracks.append(track)
        self._on_track_ids.update(track.peak_ids)

    def is_on_track(self, observed: ObservedPeak) -> bool:
        return observed.peak_id in self._on_track_ids

    def on_track_peaks(self) -> List[ObservedPeak]:
        return [p for p in self.all_peaks if self.is_on_track(p)]

    def off_track_peaks(self) -> List[ObservedPeak]:
        return [p for p in self.all_peaks if not self.is_on_track(p)]
