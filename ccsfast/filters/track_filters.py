"""Validity predicates for isomer tracks.

Tracks are passed duck-typed: anything exposing ``fit_points_count``,
``mobility`` and ``r_squared``.
"""


def has_enough_fit_points(track, min_fit_points: int) -> bool:
    return track.fit_points_count >= min_fit_points


def is_consistent_with_ion_dynamics(track) -> bool:
    """Drift time must grow with P/(V·T): a non-positive mobility is unphysical."""
    return track.mobility > 0.0


def has_good_fit(track, min_r2: float) -> bool:
    return track.r_squared >= min_r2


def is_valid_track(track, min_fit_points: int, min_r2: float) -> bool:
    return (
        has_enough_fit_points(track, min_fit_points)
        and is_consistent_with_ion_dynamics(track)
        and has_good_fit(track, min_r2)
    )
