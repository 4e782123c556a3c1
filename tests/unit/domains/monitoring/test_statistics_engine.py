"""Tests for the StatisticsEngine: history statistics and risk scoring."""

from __future__ import annotations

import pytest

from visioncare.domains.monitoring.domain_logic.models import Trend
from visioncare.domains.monitoring.domain_logic.statistics_engine import StatisticsEngine
from visioncare.domains.monitoring.domain_logic.vitals_store import VitalsStore


def _feed(store: VitalsStore, subject_id: int, values) -> None:
    for value in values:
        store.update_heart_rate(subject_id, value)


@pytest.fixture
def engine(store, clock) -> StatisticsEngine:
    return StatisticsEngine(store, clock=clock)


class TestBasicStatistics:
    def test_empty_history(self, engine):
        assert engine.average(1) == 0
        assert engine.variability(1) == 0
        assert engine.rapid_spike(1) is False
        assert engine.trend(1) is Trend.STABLE
        assert engine.risk_score(1) == 0
        assert engine.ai_confidence(1) == 50

    def test_average_rounds_half_up(self, store, engine):
        _feed(store, 1, [70, 71])
        assert engine.average(1) == 71

    def test_variability_is_mean_absolute_difference(self, store, engine):
        _feed(store, 1, [70, 80, 75])
        # |80-70| + |75-80| = 15, over 2 diffs
        assert engine.variability(1) == 8

    def test_single_sample_has_no_variability(self, store, engine):
        _feed(store, 1, [90])
        assert engine.variability(1) == 0


class TestRapidSpike:
    def test_detects_jump_over_25(self, store, engine):
        _feed(store, 1, [70, 72, 98])
        assert engine.rapid_spike(1) is True

    def test_jump_of_exactly_25_is_not_a_spike(self, store, engine):
        _feed(store, 1, [70, 72, 97])
        assert engine.rapid_spike(1) is False

    def test_needs_three_samples(self, store, engine):
        _feed(store, 1, [70, 120])
        assert engine.rapid_spike(1) is False

    def test_drop_is_not_a_spike(self, store, engine):
        _feed(store, 1, [70, 120, 60])
        assert engine.rapid_spike(1) is False


class TestTrend:
    def test_fewer_than_five_is_stable(self, store, engine):
        _feed(store, 1, [60, 70, 90, 120])
        assert engine.trend(1) is Trend.STABLE

    def test_increasing(self, store, engine):
        _feed(store, 1, [60, 62, 64, 90, 95])
        assert engine.trend(1) is Trend.INCREASING

    def test_decreasing(self, store, engine):
        _feed(store, 1, [110, 108, 105, 80, 75])
        assert engine.trend(1) is Trend.DECREASING

    def test_small_change_is_stable(self, store, engine):
        _feed(store, 1, [70, 72, 74, 76, 78])
        assert engine.trend(1) is Trend.STABLE


class TestRiskScore:
    def test_heart_rate_tiers(self, store, engine):
        _feed(store, 1, [96])
        assert engine.risk_score(1) == 15
        store.reset(1)
        _feed(store, 1, [111])
        assert engine.risk_score(1) == 25
        store.reset(1)
        _feed(store, 1, [131])
        assert engine.risk_score(1) == 40

    def test_combined_factors(self, store, engine):
        # hr 150 (+40), variability (2 + 78)/2 = 40 (+20), spike +20
        _feed(store, 1, [70, 72, 150])
        assert engine.risk_score(1) == 80

    def test_all_factors_stay_within_bounds(self, store, engine):
        # hr 200 (+40), variability > 20 (+20), spike (+20), increasing (+15)
        _feed(store, 1, [60, 60, 60, 100, 200])
        assert engine.trend(1) is Trend.INCREASING
        assert engine.rapid_spike(1) is True
        assert engine.risk_score(1) == 95

    def test_unknown_subject_scores_zero(self, engine):
        assert engine.risk_score(42) == 0


class TestConfidence:
    @pytest.mark.parametrize("count,expected", [
        (0, 50), (10, 50), (11, 70), (25, 70), (26, 85), (40, 85), (41, 95),
    ])
    def test_steps_by_sample_count(self, store, engine, count, expected):
        _feed(store, 1, [70] * count)
        assert engine.ai_confidence(1) == expected


class TestAggregates:
    def test_full_analysis_appends_to_log(self, store, engine):
        _feed(store, 1, [70, 72, 150])
        snapshot = engine.full_analysis(1)
        assert snapshot.average_hr == 97
        assert snapshot.risk_score == 80
        assert snapshot.rapid_spike_detected is True
        assert engine.analysis_history() == [snapshot]
        assert snapshot.to_dict()["patientId"] == 1

    def test_full_analysis_unknown_subject(self, engine):
        assert engine.full_analysis(42) is None
        assert engine.analysis_history() == []

    def test_compare_picks_higher(self, store, engine):
        _feed(store, 1, [131])
        _feed(store, 2, [70])
        result = engine.compare(1, 2)
        assert result.higher_risk_subject == 1
        assert result.scores == {1: 40, 2: 0}

    def test_compare_tie_goes_to_second(self, engine):
        assert engine.compare(1, 2).higher_risk_subject == 2
        assert engine.compare(2, 1).higher_risk_subject == 1

    def test_compare_unknown_subject(self, engine):
        assert engine.compare(1, 42) is None

    def test_system_health_score(self, store, engine):
        assert engine.system_health_score() == 100.0
        _feed(store, 1, [131])
        assert engine.system_health_score() == 80.0

    def test_system_health_score_without_subjects(self, clock):
        engine = StatisticsEngine(VitalsStore([], clock=clock), clock=clock)
        assert engine.system_health_score() == 100.0
