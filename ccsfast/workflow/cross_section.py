"""Cross-section extraction workflow.

One run per target, strictly sequential:

1. Group frames by voltage and accumulate the target XIC per group
2. Detect arrival-time peaks in every group
3. Score each peak (intensity, peak shape, isotopic profile)
4. Filter peaks; drop groups without surviving peaks. Fewer surviving groups
   than ``min_fit_points`` ends the run as NotSufficientPoints
5. Associate the surviving peaks into isomer tracks and select the best
   hypothesis; candidate tracks without a valid one end the run as Rejected
6. Assemble the :class:`CrossSectionResult`

Any exception inside a run is logged and turned into an ``UNKNOWN_ERROR``
result, so a batch keeps going past a broken target.

Examples
--------
>>> workflow = CrossSectionWorkflow(source, CrossSectionSearchParameters(), "run_01")
>>> result = workflow.run(molecule_target_from_mz(500.25, charge_state=1))
>>> result.analysis_status, [i.cross_section for i in result.identified_isomers]
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional

from ..data.source import FrameDataSource, FrameParams
from ..features.peak_detection import find_peaks
from ..filters.feature_filters import filter_voltage_group
from ..scoring.feature_scoring import ObservedPeak, average_peak_scores, score_feature
from ..scoring.voltage_group_scoring import average_stability_score
from ..targets import ImsTarget, TargetType, target_descriptor, target_mz
from ..tracking.isomer_track import IsomerTrack
from ..units import denormalize_drift_time, drift_time_ms_to_scan
from ..xic.accumulation import ScanWindowFunction, accumulate_voltage_groups
from .parameters import CrossSectionSearchParameters
from .result import (
    AnalysisStatus,
    CrossSectionResult,
    IdentifiedIsomerInfo,
    create_error_result,
    create_negative_result,
    create_result_from_hypothesis,
    create_unconfirmed_result,
    identified_isomer_info,
    track_to_hypothesis_conclusion,
)

logger = logging.getLogger(__name__)


class CrossSectionWorkflow:
    """Mobility and CCS extraction for targets in one dataset.

    The frame source is opened by the caller and reused across targets;
    nothing else is shared between runs.
    """

    def __init__(
        self,
        source: FrameDataSource,
        params: Optional[CrossSectionSearchParameters] = None,
        dataset_name: str = "",
    ):
        self.source = source
        self.params = params if params is not None else CrossSectionSearchParameters()
        self.dataset_name = dataset_name

    def scan_window_for(self, target: ImsTarget) -> Optional[ScanWindowFunction]:
        """Drift-time targets restrict each frame's XIC to expected drift time ± tolerance."""
        if target.target_type != TargetType.DRIFT_TIME:
            return None

        tolerance = self.params.drift_time_tolerance_ms

        def window(params: FrameParams):
            expected = denormalize_drift_time(target.normalized_drift_time_ms, params.pressure)
            low = drift_time_ms_to_scan(expected - tolerance, params.tof_width_seconds)
            high = drift_time_ms_to_scan(expected + tolerance, params.tof_width_seconds)
            low = min(max(int(math.floor(low)), 0), params.scan_count - 1)
            high = min(max(int(math.ceil(high)), 0), params.scan_count - 1)
            return low, high

        return window

    def run(self, target: ImsTarget) -> CrossSectionResult:
        """Analyse one target; never raises."""
        try:
            return self._run(target)
        except Exception as e:
            logger.exception(f"Cross-section extraction failed for {target_descriptor(target)}")
            return create_error_result(target, self.dataset_name, f"{type(e).__name__}: {e}")

    def run_batch(self, targets: Iterable[ImsTarget]) -> List[CrossSectionResult]:
        results = [self.run(target) for target in targets]
        positives = sum(r.analysis_status == AnalysisStatus.POSITIVE for r in results)
        logger.info(f"✓ Analysed {len(results)} targets in {self.dataset_name or 'dataset'}: {positives} positive")
        return results

    def _run(self, target: ImsTarget) -> CrossSectionResult:
        params = self.params
        mz = target_mz(target)
        descriptor = target_descriptor(target)
        logger.info(f"Searching {descriptor} at m/z {mz:.4f} (z={target.charge_state})")

        accumulated = accumulate_voltage_groups(
            self.source, mz, params.mass_tolerance_ppm, self.scan_window_for(target)
        )

        detection = params.peak_detection_params()
        thresholds = params.filter_thresholds()

        observed_peaks: List[ObservedPeak] = []
        rejected_features = []
        rejected_group_ids = []
        accepted_groups = []
        next_peak_id = 0

        for group, xic in accumulated:
            group_peaks = []
            for peak in find_peaks(self.source, group, xic, mz, detection):
                scores = score_feature(
                    self.source, group, peak, target,
                    params.drift_time_tolerance_ms, params.isotopic_score_method,
                )
                group_peaks.append(ObservedPeak(next_peak_id, group.group_id, peak, scores))
                next_peak_id += 1

            evaluation = filter_voltage_group(group_peaks, group, target, thresholds)
            rejected_features.extend(evaluation.rejected)
            if evaluation.accepted:
                observed_peaks.extend(evaluation.accepted_peaks)
                accepted_groups.append(group)
            else:
                rejected_group_ids.append(group.group_id)

        logger.info(
            f"{len(accepted_groups)} of {len(accumulated.arena)} voltage groups kept, "
            f"{len(observed_peaks)} peaks, {len(rejected_features)} rejected"
        )

        average_scores = average_peak_scores(p.scores for p in observed_peaks)
        stability = average_stability_score(accepted_groups)

        if not observed_peaks:
            return create_negative_result(
                target, self.dataset_name,
                rejected_features=rejected_features,
                rejected_voltage_group_ids=rejected_group_ids,
            )

        tracker = params.ion_tracker()
        diagnostics = dict(
            rejected_features=rejected_features,
            rejected_voltage_group_ids=rejected_group_ids,
            average_observed_peak_scores=average_scores,
            average_voltage_group_stability=stability,
        )

        if len(accepted_groups) < params.min_fit_points:
            best_effort = tracker.best_effort_track(observed_peaks, accumulated.arena, target)
            logger.info(
                f"✓ {descriptor}: not sufficient points "
                f"({len(accepted_groups)} groups, {params.min_fit_points} needed)"
            )
            return create_unconfirmed_result(
                target, self.dataset_name, AnalysisStatus.NOT_SUFFICIENT_POINTS,
                best_invalid_isomer=self._isomer_info(best_effort),
                **diagnostics,
            )

        outcome = tracker.find_optimum_hypothesis(observed_peaks, accumulated.arena, target)

        if not outcome.found_tracks:
            best_invalid = self._isomer_info(outcome.best_invalid_track)
            status = AnalysisStatus.NEGATIVE
            if not outcome.valid_tracks and best_invalid is not None:
                status = track_to_hypothesis_conclusion([best_invalid.analysis_status])
            logger.info(f"✓ {descriptor}: {status.value}")
            return create_unconfirmed_result(
                target, self.dataset_name, status,
                best_invalid_isomer=best_invalid,
                **diagnostics,
            )

        result = create_result_from_hypothesis(
            target, self.dataset_name, outcome.best_hypothesis,
            params.min_fit_points, params.min_r2,
            **diagnostics,
        )
        ccs = ", ".join(f"{i.cross_section:.2f}" for i in result.identified_isomers)
        logger.info(f"✓ {descriptor}: {result.analysis_status.value}, CCS [{ccs}] Å²")
        return result

    def _isomer_info(self, track: Optional[IsomerTrack]) -> Optional[IdentifiedIsomerInfo]:
        if track is None:
            return None
        return identified_isomer_info(track, self.params.min_fit_points, self.params.min_r2)
