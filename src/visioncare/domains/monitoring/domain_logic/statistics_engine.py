"""Heart-rate statistics and composite risk scoring over a subject's history.

Everything is recomputed from the store on every call; new samples may have
arrived since the last one. The only state kept here is the append-only
analysis log.
"""

from __future__ import annotations

import logging
import math
import statistics

from visioncare.core.scheduling.clock import Clock, SystemClock, iso_timestamp
from visioncare.domains.monitoring.domain_logic.models import (
    AnalysisSnapshot,
    RiskComparison,
    Trend,
)
from visioncare.domains.monitoring.domain_logic.vitals_store import VitalsStore

logger = logging.getLogger(__name__)

RAPID_SPIKE_DELTA = 25
TREND_WINDOW = 3
TREND_MIN_SAMPLES = 5
TREND_DELTA = 15
MAX_RISK_SCORE = 100

# (exclusive lower bound, points), checked highest first
HEART_RATE_TIERS = [(130, 40), (110, 25), (95, 15)]
VARIABILITY_TIERS = [(20, 20), (10, 10)]
RAPID_SPIKE_POINTS = 20
INCREASING_TREND_POINTS = 15

# (exclusive lower bound on sample count, confidence)
CONFIDENCE_STEPS = [(40, 95), (25, 85), (10, 70)]
BASE_CONFIDENCE = 50


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _tier_points(value: float, tiers: list[tuple[float, int]]) -> int:
    for bound, points in tiers:
        if value > bound:
            return points
    return 0


class StatisticsEngine:
    """Computes per-subject analytics from the ``VitalsStore`` history.

    Usage::

        engine = StatisticsEngine(store)
        snapshot = engine.full_analysis(1)
        snapshot.risk_score  # 0-100
    """

    def __init__(self, store: VitalsStore, *, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._analysis_log: list[AnalysisSnapshot] = []

    # ---------------------------------------------------------------
    # Individual statistics
    # ---------------------------------------------------------------

    def average(self, subject_id: int) -> int:
        """Mean heart rate over the history, rounded to whole bpm; 0 when empty."""
        data = self._store.history_values(subject_id)
        if not data:
            return 0
        return _round_half_up(statistics.fmean(data))

    def variability(self, subject_id: int) -> int:
        """Mean absolute difference between consecutive samples; 0 below 2 samples.

        This is a cheap fluctuation magnitude, not a statistical variance.
        """
        data = self._store.history_values(subject_id)
        if len(data) < 2:
            return 0
        diffs = [abs(b - a) for a, b in zip(data, data[1:])]
        return _round_half_up(statistics.fmean(diffs))

    def rapid_spike(self, subject_id: int) -> bool:
        """True when the last sample jumped more than 25 bpm over the previous one."""
        data = self._store.history_values(subject_id)
        if len(data) < 3:
            return False
        return (data[-1] - data[-2]) > RAPID_SPIKE_DELTA

    def trend(self, subject_id: int) -> Trend:
        """Compare the mean of the first three samples with the last three.

        Fewer than five samples reports ``stable``; that is a lack of data,
        not a claim about direction.
        """
        data = self._store.history_values(subject_id)
        if len(data) < TREND_MIN_SAMPLES:
            return Trend.STABLE

        first = statistics.fmean(data[:TREND_WINDOW])
        last = statistics.fmean(data[-TREND_WINDOW:])
        if last > first + TREND_DELTA:
            return Trend.INCREASING
        if last < first - TREND_DELTA:
            return Trend.DECREASING
        return Trend.STABLE

    def risk_score(self, subject_id: int) -> int:
        """Additive 0-100 score from heart rate, variability, spikes and trend."""
        subject = self._store.get_subject(subject_id)
        if subject is None:
            return 0

        score = _tier_points(subject.heart_rate, HEART_RATE_TIERS)
        score += _tier_points(self.variability(subject_id), VARIABILITY_TIERS)
        if self.rapid_spike(subject_id):
            score += RAPID_SPIKE_POINTS
        if self.trend(subject_id) is Trend.INCREASING:
            score += INCREASING_TREND_POINTS

        return max(0, min(score, MAX_RISK_SCORE))

    def ai_confidence(self, subject_id: int) -> int:
        """Step function of the sample count (50/70/85/95)."""
        count = len(self._store.history_values(subject_id))
        for bound, confidence in CONFIDENCE_STEPS:
            if count > bound:
                return confidence
        return BASE_CONFIDENCE

    # ---------------------------------------------------------------
    # Aggregates
    # ---------------------------------------------------------------

    def full_analysis(self, subject_id: int) -> AnalysisSnapshot | None:
        """Bundle every statistic into a snapshot and append it to the analysis log.

        Returns:
            The snapshot, or None for an unknown subject id.
        """
        if self._store.get_subject(subject_id) is None:
            logger.warning("Analysis requested for unknown subject %r", subject_id)
            return None

        snapshot = AnalysisSnapshot(
            subject_id=subject_id,
            average_hr=self.average(subject_id),
            variability=self.variability(subject_id),
            rapid_spike_detected=self.rapid_spike(subject_id),
            trend=self.trend(subject_id),
            risk_score=self.risk_score(subject_id),
            ai_confidence=self.ai_confidence(subject_id),
            timestamp=iso_timestamp(self._clock),
        )
        self._analysis_log.append(snapshot)
        logger.debug("Analysis generated for subject %d: %s", subject_id, snapshot)
        return snapshot

    def compare(self, subject_a: int, subject_b: int) -> RiskComparison | None:
        """Report which of two subjects has the higher risk score.

        ``subject_a`` wins only on a strictly higher score, so a tie resolves
        to ``subject_b``.
        """
        a = self.full_analysis(subject_a)
        b = self.full_analysis(subject_b)
        if a is None or b is None:
            return None

        higher = subject_a if a.risk_score > b.risk_score else subject_b
        return RiskComparison(
            higher_risk_subject=higher,
            scores={subject_a: a.risk_score, subject_b: b.risk_score},
        )

    def system_health_score(self) -> float:
        """``100 - mean(risk score)`` across all subjects, floored at 0."""
        ids = self._store.subject_ids()
        if not ids:
            return 100.0
        avg_risk = statistics.fmean(self.risk_score(sid) for sid in ids)
        return max(100.0 - avg_risk, 0.0)

    def analysis_history(self) -> list[AnalysisSnapshot]:
        return list(self._analysis_log)

